"""Retriever for semantic search over stored rows.

Handles:
- Query embedding generation
- Thresholded similarity ranking in the vector store
- Optional answer synthesis over the ranked rows
"""
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

import structlog

from ragu.rag.embedder import EmbeddingClient
from ragu.rag.store import SimilarityMatch, VectorStore
from ragu.rag.synthesizer import AnswerSynthesizer

logger = structlog.get_logger()


@dataclass(frozen=True)
class Query:
    """A question, optionally paired with a context used only for retrieval."""

    question: str
    context: Optional[str] = None

    @property
    def embedding_text(self) -> str:
        """Text that is embedded and searched for."""
        return self.context if self.context else self.question


@dataclass
class Answer:
    """Outcome of the query path."""

    query: Query
    matches: List[SimilarityMatch] = field(default_factory=list)
    text: Optional[str] = None
    duration: Optional[timedelta] = None


class Retriever:
    """Semantic retriever for the RAG pipeline."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        synthesizer: Optional[AnswerSynthesizer] = None,
        threshold: float = 0.5,
        top_k: Optional[int] = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Client used to embed the query
            store: Vector store to rank against
            synthesizer: Optional answer stage
            threshold: Default minimum score for a match
            top_k: Default cap on returned matches (None = uncapped)
        """
        self.embedder = embedder
        self.store = store
        self.synthesizer = synthesizer
        self.threshold = threshold
        self.top_k = top_k

    async def retrieve(
        self,
        query_text: str,
        threshold: Optional[float] = None,
        top_k: Optional[int] = None,
    ) -> List[SimilarityMatch]:
        """Retrieve stored rows similar to ``query_text``.

        Args:
            query_text: Text to embed and search for
            threshold: Minimum score (overrides default)
            top_k: Maximum number of matches (overrides default; 0 = uncapped)

        Returns:
            Matches sorted by score descending; empty when nothing crosses the
            threshold

        Raises:
            RaguError: If embedding or the store query fails; the store is not
                queried when embedding fails
            ValueError: If ``top_k`` is negative
        """
        threshold = self.threshold if threshold is None else threshold
        top_k = self.top_k if top_k is None else (top_k or None)
        if top_k is not None and top_k < 0:
            raise ValueError(f"top_k must not be negative, got {top_k}")

        logger.info("retrieval_started", query_length=len(query_text), threshold=threshold)

        query_vector = await self.embedder.embed_single(query_text)
        matches = await self.store.similarity_query(query_vector, threshold, limit=top_k)

        logger.info(
            "retrieval_completed",
            results_returned=len(matches),
            top_score=matches[0].score if matches else None,
        )
        return matches

    async def ask(
        self,
        query: Query,
        threshold: Optional[float] = None,
        top_k: Optional[int] = None,
        synthesize: bool = True,
    ) -> Answer:
        """Run retrieval and, when a synthesizer is configured, answer generation.

        Retrieval uses ``query.embedding_text``; the answer is composed for
        ``query.question``.
        """
        matches = await self.retrieve(query.embedding_text, threshold=threshold, top_k=top_k)
        answer = Answer(query=query, matches=matches)

        if synthesize and self.synthesizer is not None:
            answer.text, answer.duration = await self.synthesizer.synthesize(
                matches, query.question
            )

        return answer
