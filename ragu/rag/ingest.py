"""Ingest pipeline for tabular files.

Orchestrates:
- CSV reading
- Row normalization
- Embedding generation
- Bulk insertion into the vector store, or export back to CSV
"""
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
import structlog

from ragu.rag.embedder import EmbeddingClient
from ragu.rag.normalizer import normalize_rows
from ragu.rag.store import VectorStore

logger = structlog.get_logger()

EMBEDDINGS_COLUMN = "embeddings"


def read_table(path: Path) -> pd.DataFrame:
    """Read a CSV file with a header row, keeping integer columns integral.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return pd.read_csv(path, dtype_backend="numpy_nullable")


def table_rows(df: pd.DataFrame) -> List[Tuple[Any, ...]]:
    """Rows as plain tuples; missing cells become ``None``."""
    cells = df.astype(object).where(df.notna(), None)
    return list(cells.itertuples(index=False, name=None))


def format_embedding(vector: Sequence[float]) -> str:
    return "[" + ", ".join(str(component) for component in vector) + "]"


class IngestPipeline:
    """Pipeline for embedding tabular rows."""

    def __init__(self, embedder: EmbeddingClient, store: Optional[VectorStore] = None):
        """Initialize the ingest pipeline.

        Args:
            embedder: Embedding client
            store: Vector store (only needed for :meth:`load_file`)
        """
        self.embedder = embedder
        self.store = store
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {"rows_read": 0, "embeddings_generated": 0, "rows_stored": 0}

    async def vectorize(self, path: Path) -> Tuple[pd.DataFrame, List[str], List[List[float]]]:
        """Read, normalize and embed every row of ``path``.

        Returns:
            Tuple of (source frame, normalized texts, vectors aligned with texts)
        """
        self.stats = self._empty_stats()

        logger.info("reading_table", path=str(path))
        df = read_table(path)
        texts = normalize_rows(table_rows(df))
        self.stats["rows_read"] = len(texts)

        logger.info("table_read", path=str(path), rows=len(texts), columns=len(df.columns))

        vectors = await self.embedder.embed_many(texts)
        self.stats["embeddings_generated"] = len(vectors)
        return df, texts, vectors

    async def load_file(self, path: Path) -> Dict[str, int]:
        """Embed every row of a CSV file and store it.

        Nothing is written unless every chunk was embedded successfully.

        Returns:
            Dictionary with ingestion statistics
        """
        if self.store is None:
            raise RuntimeError("No vector store configured for loading")

        _, texts, vectors = await self.vectorize(path)
        self.stats["rows_stored"] = await self.store.bulk_insert(texts, vectors)

        logger.info("load_completed", path=str(path), stats=self.stats)
        return self.stats

    async def export_to_csv(self, source: Path, destination: Path) -> Dict[str, int]:
        """Write ``source`` back out with an extra ``embeddings`` column.

        The destination only appears once the whole file has been written.

        Returns:
            Dictionary with export statistics
        """
        df, _, vectors = await self.vectorize(source)
        df = df.assign(**{EMBEDDINGS_COLUMN: [format_embedding(v) for v in vectors]})

        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
        )
        os.close(fd)
        try:
            df.to_csv(tmp_name, index=False)
            os.replace(tmp_name, destination)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("export_completed", source=str(source), destination=str(destination))
        return self.stats
