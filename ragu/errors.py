"""Exception hierarchy for the ingestion and query pipelines."""
from typing import Optional


class RaguError(Exception):
    """Base class for every error raised by ragu."""


class ConfigError(RaguError):
    """Invalid configuration value."""


class TransportError(RaguError):
    """A collaborator could not be reached (connection, timeout, protocol)."""


class ServiceError(RaguError):
    """A collaborator answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedResponseError(RaguError):
    """A success response whose body does not have the expected shape."""


class ShapeMismatchError(RaguError, ValueError):
    """Batch lengths or vector dimensions do not line up."""


class EmbeddingTransportError(TransportError):
    pass


class EmbeddingServiceError(ServiceError):
    pass


class GenerationTransportError(TransportError):
    pass


class GenerationServiceError(ServiceError):
    pass


class StoreError(RaguError):
    """The vector store rejected or failed a statement."""
