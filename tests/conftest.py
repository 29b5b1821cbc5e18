"""Pytest configuration and shared fixtures."""
import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from ragu.config import Settings
from ragu.events import EventRecorder


class FakeEmbeddingService:
    """Stands in for the feature-extraction endpoint.

    Each input ``"row-<i>"`` is answered with the index-tagged vector
    ``[i, 1.0]``; other inputs are looked up in ``vectors``.
    """

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        status_code: int = 200,
        body: Optional[Callable[[List[str]], object]] = None,
    ):
        self.vectors = vectors or {}
        self.status_code = status_code
        self.body = body
        self.requests: List[httpx.Request] = []

    @property
    def batches(self) -> List[List[str]]:
        return [json.loads(request.content)["inputs"] for request in self.requests]

    def vector_for(self, text: str) -> List[float]:
        if text in self.vectors:
            return self.vectors[text]
        return [float(text.rsplit("-", 1)[1]), 1.0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        inputs = json.loads(request.content)["inputs"]

        if self.status_code != 200:
            return httpx.Response(self.status_code, text="model overloaded")
        if self.body is not None:
            payload = self.body(inputs)
            if isinstance(payload, str):
                return httpx.Response(200, text=payload)
            return httpx.Response(200, json=payload)
        return httpx.Response(200, json=[self.vector_for(text) for text in inputs])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def settings():
    """Small settings: 2-dimensional vectors and tiny chunk boundaries."""
    return Settings(
        hf_token="hf_test_token",
        embedding_url="https://embeddings.test/feature-extraction",
        embedding_dimension=2,
        chunk_threshold=10,
        chunk_size=4,
        request_timeout=5.0,
        ollama_base_url="http://ollama.test",
        chat_model="test-model",
        relevance_threshold=0.5,
        retrieval_top_k=None,
    )


@pytest.fixture
def events():
    return EventRecorder()


@pytest.fixture
def embedding_service():
    """Factory for configured fake embedding services."""
    return FakeEmbeddingService


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddingService()
