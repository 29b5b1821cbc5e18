"""Ollama generate client with error handling."""
from datetime import timedelta
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError
import structlog

from ragu.config import Settings
from ragu.errors import (
    GenerationServiceError,
    GenerationTransportError,
    MalformedResponseError,
)
from ragu.events import EventHook, log_event

logger = structlog.get_logger()


class GenerationResult(BaseModel):
    """Non-streaming ``/api/generate`` response. Durations are nanoseconds."""

    model: str
    response: str
    done: bool
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    prompt_eval_duration: int = 0
    eval_count: int = 0
    eval_duration: int = 0

    @property
    def duration(self) -> timedelta:
        return timedelta(microseconds=self.total_duration / 1000)


class OllamaClient:
    """Async client for the Ollama generate API."""

    def __init__(
        self,
        settings: Settings,
        event_hook: Optional[EventHook] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            settings: Provides base URL, model and request timeout
            event_hook: Called after every response (default: structlog)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        self.base_url = settings.ollama_base_url.rstrip("/")
        self.model = settings.chat_model
        self.timeout = settings.request_timeout
        self.event_hook = event_hook or log_event
        self._transport = transport

    async def generate(self, prompt: str, model: str = None) -> GenerationResult:
        """Send a single non-streaming completion request.

        Args:
            prompt: Full prompt text
            model: Model to use (defaults to the configured chat model)

        Returns:
            Parsed generation result

        Raises:
            GenerationTransportError: If Ollama is unreachable
            GenerationServiceError: On a non-success status
            MalformedResponseError: If the body is not a finished generation
        """
        model = model or self.model
        payload = {"model": model, "prompt": prompt, "stream": False}

        logger.info("ollama_generate_request", model=model, prompt_length=len(prompt))

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
        except httpx.HTTPError as e:
            self.event_hook(
                "generation_failed",
                {"model": model, "error": str(e), "base_url": self.base_url},
            )
            raise GenerationTransportError(f"Ollama request failed: {e}") from e

        if not response.is_success:
            self.event_hook(
                "generation_failed",
                {"model": model, "status_code": response.status_code, "body": response.text[:200]},
            )
            raise GenerationServiceError(
                f"Ollama returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            result = GenerationResult.model_validate_json(response.content)
        except ValidationError as e:
            self.event_hook(
                "generation_failed",
                {"model": model, "status_code": response.status_code, "error": str(e)},
            )
            raise MalformedResponseError(f"Unexpected Ollama response: {e}") from e

        if not result.done:
            self.event_hook("generation_failed", {"model": model, "error": "incomplete"})
            raise MalformedResponseError("Ollama returned an unfinished generation")

        self.event_hook(
            "generation_response",
            {
                "model": result.model,
                "status_code": response.status_code,
                "response_length": len(result.response),
                "eval_count": result.eval_count,
                "total_duration_ms": result.total_duration // 1_000_000,
            },
        )
        return result
