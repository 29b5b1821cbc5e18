"""Vector store interface shared by the PostgreSQL and in-memory backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ragu.errors import ShapeMismatchError


@dataclass(frozen=True)
class SimilarityMatch:
    """A stored row together with its similarity to the query.

    ``score`` is ``1 - cosine_distance``, so it lies in [-1, 1] and 1 means
    the same direction.
    """

    record_id: int
    text: str
    score: float

    def sort_key(self):
        """Descending by score, then ascending by id."""
        return (-self.score, self.record_id)


def validate_batch(
    texts: Sequence[str], vectors: Sequence[Sequence[float]], dimension: int
) -> None:
    """Check a bulk insert batch before anything is written.

    Raises:
        ShapeMismatchError: If lengths differ or a vector has the wrong dimension
    """
    if len(texts) != len(vectors):
        raise ShapeMismatchError(
            f"Number of texts ({len(texts)}) must match number of vectors ({len(vectors)})"
        )
    for position, vector in enumerate(vectors):
        if len(vector) != dimension:
            raise ShapeMismatchError(
                f"Embedding dimension mismatch at row {position}: "
                f"expected {dimension}, got {len(vector)}"
            )


def validate_query_vector(vector: Sequence[float], dimension: int) -> None:
    if len(vector) != dimension:
        raise ShapeMismatchError(
            f"Query dimension mismatch: expected {dimension}, got {len(vector)}"
        )


class VectorStore(ABC):
    """Persists (text, vector) pairs and ranks them against a query vector."""

    dimension: int

    @abstractmethod
    async def bulk_insert(
        self, texts: Sequence[str], vectors: Sequence[Sequence[float]]
    ) -> int:
        """Insert every pair or none of them.

        Returns:
            Number of rows inserted
        """

    @abstractmethod
    async def similarity_query(
        self,
        query_vector: Sequence[float],
        relevance_threshold: float,
        limit: Optional[int] = None,
    ) -> List[SimilarityMatch]:
        """Return matches with ``score >= relevance_threshold``, best first."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""
