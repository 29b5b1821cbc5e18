"""Embedding client for the HuggingFace feature-extraction inference API.

Handles:
- Splitting large batches into bounded-size chunks
- One request per chunk, issued sequentially
- Reassembling vectors in the original input order
- Strict validation of every response (no retries, no partial results)
"""
from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog
from pydantic import StrictFloat, TypeAdapter, ValidationError

from ragu.config import Settings
from ragu.errors import (
    EmbeddingServiceError,
    EmbeddingTransportError,
    MalformedResponseError,
    ShapeMismatchError,
)
from ragu.events import EventHook, log_event

logger = structlog.get_logger()

_VECTORS = TypeAdapter(List[List[StrictFloat]])


def plan_chunks(count: int, chunk_threshold: int, chunk_size: int) -> List[range]:
    """Return the index ranges sent as separate requests for ``count`` texts.

    Batches of up to ``chunk_threshold`` texts go out as one request; larger
    batches are cut into consecutive slices of ``chunk_size`` (the last one may
    be shorter).
    """
    if count == 0:
        return []
    if count <= chunk_threshold:
        return [range(0, count)]
    return [
        range(start, min(start + chunk_size, count))
        for start in range(0, count, chunk_size)
    ]


def parse_embedding_body(payload: Any) -> List[List[float]]:
    """Extract the vectors from a decoded response body.

    The hosted pipeline answers with a bare ``[[...], ...]`` array; an
    ``{"output": [[...], ...]}`` envelope is accepted as well.

    Raises:
        MalformedResponseError: If the body is neither shape
    """
    if isinstance(payload, dict):
        if "output" not in payload:
            raise MalformedResponseError(
                f"Embedding response has no 'output' field (keys: {sorted(payload)})"
            )
        payload = payload["output"]

    try:
        return _VECTORS.validate_python(payload)
    except ValidationError as e:
        raise MalformedResponseError(f"Embedding response is not a list of vectors: {e}") from e


class EmbeddingClient:
    """Async client turning texts into embedding vectors."""

    def __init__(
        self,
        settings: Settings,
        event_hook: Optional[EventHook] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the embedding client.

        Args:
            settings: Runtime settings (endpoint, token, chunking, timeout)
            event_hook: Called after every response (default: structlog)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        self.url = settings.resolved_embedding_url
        self.model = settings.embedding_model
        self.token = settings.hf_token
        self.chunk_threshold = settings.chunk_threshold
        self.chunk_size = settings.chunk_size
        self.timeout = settings.request_timeout
        self.event_hook = event_hook or log_event
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def _request_chunk(
        self,
        client: httpx.AsyncClient,
        texts: List[str],
        chunk_index: int,
        chunk_count: int,
    ) -> List[List[float]]:
        """Send one chunk and validate the vectors that come back."""
        payload = {"inputs": texts, "options": {"wait_for_model": True}}
        fields = {
            "model": self.model,
            "chunk": chunk_index + 1,
            "chunks": chunk_count,
            "inputs": len(texts),
        }

        try:
            response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            self.event_hook(
                "embedding_request_failed",
                {**fields, "error": str(e), "error_type": type(e).__name__},
            )
            raise EmbeddingTransportError(f"Embedding request failed: {e}") from e

        if not response.is_success:
            self.event_hook(
                "embedding_request_failed",
                {**fields, "status_code": response.status_code, "body": response.text[:200]},
            )
            raise EmbeddingServiceError(
                f"Embedding service returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            vectors = parse_embedding_body(response.json())
        except ValueError as e:
            self.event_hook(
                "embedding_response_failed",
                {**fields, "status_code": response.status_code, "error": str(e)},
            )
            raise MalformedResponseError(f"Embedding response is not JSON: {e}") from e
        except MalformedResponseError as e:
            self.event_hook(
                "embedding_response_failed",
                {**fields, "status_code": response.status_code, "error": str(e)},
            )
            raise

        if len(vectors) != len(texts):
            self.event_hook(
                "embedding_response_failed",
                {**fields, "returned": len(vectors)},
            )
            raise ShapeMismatchError(
                f"Embedding service returned {len(vectors)} vectors for {len(texts)} inputs"
            )

        self.event_hook(
            "embedding_chunk_response",
            {**fields, "status_code": response.status_code},
        )
        return vectors

    async def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed texts, returning one vector per text in input order.

        Args:
            texts: Texts to embed

        Returns:
            List of embedding vectors aligned with ``texts``

        Raises:
            EmbeddingTransportError: Service unreachable
            EmbeddingServiceError: Non-success status on any chunk
            MalformedResponseError: Body does not parse into vectors
            ShapeMismatchError: Wrong vector count or inconsistent dimensions
        """
        texts = list(texts)
        chunks = plan_chunks(len(texts), self.chunk_threshold, self.chunk_size)
        if not chunks:
            return []

        logger.info(
            "embedding_batch_started",
            model=self.model,
            inputs=len(texts),
            chunks=len(chunks),
        )

        embeddings: List[List[float]] = []
        async with self._client() as client:
            for index, span in enumerate(chunks):
                chunk_texts = texts[span.start:span.stop]
                vectors = await self._request_chunk(client, chunk_texts, index, len(chunks))
                embeddings.extend(vectors)

        dimensions = {len(vector) for vector in embeddings}
        if len(dimensions) > 1:
            raise ShapeMismatchError(
                f"Embedding service returned vectors of mixed dimensions: {sorted(dimensions)}"
            )

        logger.info(
            "embedding_batch_completed",
            model=self.model,
            vectors=len(embeddings),
            dimension=dimensions.pop(),
        )
        return embeddings

    async def embed_single(self, text: str) -> List[float]:
        """Embed one text (used for queries)."""
        async with self._client() as client:
            vectors = await self._request_chunk(client, [text], 0, 1)
        return vectors[0]
