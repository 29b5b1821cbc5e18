"""Application configuration with sensible defaults.

Values come from the environment (a local ``.env`` file is loaded first) and
are collected once into a :class:`Settings` object that is handed to every
component explicitly.
"""
import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from ragu.errors import ConfigError

HF_FEATURE_EXTRACTION_URL = (
    "https://api-inference.huggingface.co/pipeline/feature-extraction/{model}"
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration shared by the ingestion and query paths."""

    # Embedding service (HuggingFace inference API)
    hf_token: Optional[str] = None
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_url: Optional[str] = None
    embedding_dimension: int = 384
    chunk_threshold: int = 2000   # batches larger than this are split
    chunk_size: int = 500         # texts per request once split
    request_timeout: float = 60.0

    # Vector store (PostgreSQL + pgvector)
    database_url: str = "postgresql://localhost:5432/ragu"
    db_pool_min: int = 1
    db_pool_max: int = 5
    vector_table: str = "embedded_rows"

    # Generation (Ollama)
    ollama_base_url: str = "http://localhost:11434"
    chat_model: str = "llama3.2"

    # Retrieval
    relevance_threshold: float = 0.5
    retrieval_top_k: Optional[int] = 40

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.chunk_threshold < 0:
            raise ConfigError(
                f"chunk_threshold must not be negative, got {self.chunk_threshold}"
            )
        if self.embedding_dimension <= 0:
            raise ConfigError(
                f"embedding_dimension must be positive, got {self.embedding_dimension}"
            )
        if not -1.0 <= self.relevance_threshold <= 1.0:
            raise ConfigError(
                f"relevance_threshold must be within [-1, 1], got {self.relevance_threshold}"
            )
        if not self.vector_table.replace("_", "").isalnum():
            raise ConfigError(f"Invalid table name: {self.vector_table!r}")

    @property
    def resolved_embedding_url(self) -> str:
        """Embedding endpoint, derived from the model id unless overridden."""
        return self.embedding_url or HF_FEATURE_EXTRACTION_URL.format(
            model=self.embedding_model
        )

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables.

        Args:
            dotenv: Load a ``.env`` file from the working directory first

        Raises:
            ConfigError: If a variable holds an invalid value
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        top_k = _env_int("RETRIEVAL_TOP_K", 40)

        return cls(
            hf_token=os.getenv("HF_TOKEN"),
            embedding_model=os.getenv("EMBEDDING_MODEL", cls.embedding_model),
            embedding_url=os.getenv("EMBEDDING_URL") or None,
            embedding_dimension=_env_int("EMBEDDING_DIMENSION", cls.embedding_dimension),
            chunk_threshold=_env_int("EMBED_CHUNK_THRESHOLD", cls.chunk_threshold),
            chunk_size=_env_int("EMBED_CHUNK_SIZE", cls.chunk_size),
            request_timeout=_env_float("REQUEST_TIMEOUT", cls.request_timeout),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            db_pool_min=_env_int("DB_POOL_MIN", cls.db_pool_min),
            db_pool_max=_env_int("DB_POOL_MAX", cls.db_pool_max),
            vector_table=os.getenv("VECTOR_TABLE", cls.vector_table),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", cls.ollama_base_url),
            chat_model=os.getenv("CHAT_MODEL", cls.chat_model),
            relevance_threshold=_env_float("RELEVANCE_THRESHOLD", cls.relevance_threshold),
            retrieval_top_k=top_k if top_k > 0 else None,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            log_json=_env_bool("LOG_JSON", cls.log_json),
        )
