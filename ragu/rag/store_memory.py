"""In-process vector store with exact cosine search.

Keeps every vector in a numpy matrix and scans all of them per query. Used
for tests and for small runs that do not need PostgreSQL.
"""
from typing import List, Optional, Sequence

import numpy as np
import structlog

from ragu.rag.store import (
    SimilarityMatch,
    VectorStore,
    validate_batch,
    validate_query_vector,
)

logger = structlog.get_logger()


class InMemoryVectorStore(VectorStore):
    """numpy-backed store; ids are assigned sequentially from 1."""

    def __init__(self, dimension: int):
        self.dimension = dimension
        self._vectors = np.empty((0, dimension), dtype=np.float64)
        self._texts: List[str] = []
        self._ids: List[int] = []
        self._next_id = 1
        self.query_count = 0

    async def bulk_insert(
        self, texts: Sequence[str], vectors: Sequence[Sequence[float]]
    ) -> int:
        validate_batch(texts, vectors, self.dimension)
        if not texts:
            return 0

        new_vectors = np.asarray(vectors, dtype=np.float64).reshape(len(vectors), self.dimension)
        new_ids = list(range(self._next_id, self._next_id + len(texts)))

        # All checks happened above, so the batch becomes visible at once
        self._vectors = np.vstack([self._vectors, new_vectors])
        self._texts.extend(texts)
        self._ids.extend(new_ids)
        self._next_id += len(texts)

        logger.info("vectors_added", count=len(texts), total_vectors=len(self._ids))
        return len(texts)

    async def similarity_query(
        self,
        query_vector: Sequence[float],
        relevance_threshold: float,
        limit: Optional[int] = None,
    ) -> List[SimilarityMatch]:
        validate_query_vector(query_vector, self.dimension)
        self.query_count += 1

        if not self._ids:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        norms = np.linalg.norm(self._vectors, axis=1) * np.linalg.norm(query)

        # Zero vectors yield NaN, which never passes the threshold
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = (self._vectors @ query) / norms

        matches = [
            SimilarityMatch(record_id=record_id, text=text, score=float(score))
            for record_id, text, score in zip(self._ids, self._texts, scores)
            if score >= relevance_threshold
        ]
        matches.sort(key=SimilarityMatch.sort_key)

        if limit is not None:
            matches = matches[:limit]

        logger.info(
            "vector_search_completed",
            threshold=relevance_threshold,
            results_found=len(matches),
        )
        return matches

    async def count(self) -> int:
        return len(self._ids)
