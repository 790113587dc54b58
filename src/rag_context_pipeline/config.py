"""
Application Configuration

Loads connection strings, model deployments and retrieval settings from
environment variables. Read once at start-up and never mutated; the
pipeline receives everything it needs at construction time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from rag_context_pipeline.core.errors import ConfigurationError

_TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in _TRUE_VALUES


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class AppConfig:
    """Process-wide configuration.

    Environment Variables:
        DATABASE_URL: Postgres connection string (pgvector store)
        CONTENT_TABLE_NAME: Table holding embedded content (default: embedded_content)
        VECTOR_SEARCH_INDEX_NAME: Name of the vector index (default: vector_index)
        EMBEDDING_DIM: Embedding dimensionality (default: 1536)
        OPENAI_API_KEY: API key for OpenAI or Azure OpenAI
        OPENAI_ENDPOINT: Azure OpenAI endpoint (optional, plain OpenAI if empty)
        OPENAI_API_VERSION: Azure OpenAI API version
        OPENAI_EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
        OPENAI_EMBEDDING_DEPLOYMENT: Azure deployment name for embeddings
        EMBEDDING_MAX_RETRIES: Attempts delegated to the SDK client (default: 3)
        EMBEDDING_TIMEOUT_S: Per-request timeout in seconds (default: 5)
        USE_MOCK_EMBEDDINGS: Use the offline MockEmbedder (default: false)
        USE_POSTGRES: Use PgVectorContentStore instead of in-memory (default: false)
        RETRIEVAL_K / RETRIEVAL_MIN_SCORE / RETRIEVAL_TOTAL_MAX_K: primary query
        BOOST_*: settings of the default source booster
    """

    database_url: str = "postgresql://localhost/rag_context"
    content_table_name: str = "embedded_content"
    vector_search_index_name: str = "vector_index"
    embedding_dim: int = 1536

    openai_api_key: str | None = None
    openai_endpoint: str | None = None
    openai_api_version: str = "2024-02-01"
    openai_embedding_model: str = "text-embedding-3-small"
    openai_embedding_deployment: str | None = None
    embedding_max_retries: int = 3
    embedding_timeout_s: float = 5.0

    use_mock_embeddings: bool = False
    use_postgres: bool = False

    retrieval_k: int = 5
    retrieval_min_score: float = 0.9
    retrieval_total_max_k: int | None = None

    boost_source_name: str = "snooty-docs"
    boost_k: int = 2
    boost_min_score: float = 0.88
    boost_max_words: int = 3
    boost_max_carry_over: int = 3
    boost_total_max_k: int | None = 5

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            database_url=os.environ.get("DATABASE_URL", "postgresql://localhost/rag_context"),
            content_table_name=os.environ.get("CONTENT_TABLE_NAME", "embedded_content"),
            vector_search_index_name=os.environ.get("VECTOR_SEARCH_INDEX_NAME", "vector_index"),
            embedding_dim=_env_int("EMBEDDING_DIM", 1536),
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            openai_endpoint=os.environ.get("OPENAI_ENDPOINT") or None,
            openai_api_version=os.environ.get("OPENAI_API_VERSION", "2024-02-01"),
            openai_embedding_model=os.environ.get("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            openai_embedding_deployment=os.environ.get("OPENAI_EMBEDDING_DEPLOYMENT") or None,
            embedding_max_retries=_env_int("EMBEDDING_MAX_RETRIES", 3),
            embedding_timeout_s=_env_float("EMBEDDING_TIMEOUT_S", 5.0),
            use_mock_embeddings=_env_bool("USE_MOCK_EMBEDDINGS", "false"),
            use_postgres=_env_bool("USE_POSTGRES", "false"),
            retrieval_k=_env_int("RETRIEVAL_K", 5),
            retrieval_min_score=_env_float("RETRIEVAL_MIN_SCORE", 0.9),
            retrieval_total_max_k=_env_int("RETRIEVAL_TOTAL_MAX_K", None),
            boost_source_name=os.environ.get("BOOST_SOURCE_NAME", "snooty-docs"),
            boost_k=_env_int("BOOST_K", 2),
            boost_min_score=_env_float("BOOST_MIN_SCORE", 0.88),
            boost_max_words=_env_int("BOOST_MAX_WORDS", 3),
            boost_max_carry_over=_env_int("BOOST_MAX_CARRY_OVER", 3),
            boost_total_max_k=_env_int("BOOST_TOTAL_MAX_K", 5),
        )

    @property
    def uses_azure(self) -> bool:
        return self.openai_endpoint is not None

    def require_openai(self) -> None:
        """Fail fast when a real embedder is requested without credentials."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if self.uses_azure and not self.openai_embedding_deployment:
            missing.append("OPENAI_EMBEDDING_DEPLOYMENT")
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


# Global config singleton
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global app config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
