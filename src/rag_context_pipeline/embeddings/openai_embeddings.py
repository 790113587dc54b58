"""
Embeddings Module - Single Responsibility: Generate text embeddings.

It has ONE job: convert text to vector embeddings.

SOLID PRINCIPLE: Single Responsibility
- This module ONLY handles embedding generation
- No database logic, no result merging
- Easy to swap for different embedding providers

Retry and backoff are delegated to the OpenAI SDK client
(max_retries / timeout). The pipeline never retries on its own.
"""

from __future__ import annotations

import hashlib
import logging
import re

import numpy as np
from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

from rag_context_pipeline.config import AppConfig, get_config
from rag_context_pipeline.core.errors import EmbeddingError
from rag_context_pipeline.core.protocols import Embedder

logger = logging.getLogger(__name__)

_MODEL_DIMS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedder:
    """
    OpenAI-based embedder.

    Talks to Azure OpenAI when an endpoint is configured (the model
    argument is then the deployment name), otherwise to api.openai.com.
    Uses text-embedding-3-small by default (1536 dimensions).
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        azure_endpoint: str | None = None,
        api_version: str | None = None,
        max_retries: int = 3,
        timeout: float = 5.0,
    ):
        self.model = model
        if azure_endpoint:
            self._client = AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=azure_endpoint,
                api_version=api_version,
                max_retries=max_retries,
                timeout=timeout,
            )
        else:
            self._client = AsyncOpenAI(
                api_key=api_key,
                max_retries=max_retries,
                timeout=timeout,
            )

    @classmethod
    def from_config(cls, config: AppConfig) -> "OpenAIEmbedder":
        config.require_openai()
        if config.uses_azure:
            model = config.openai_embedding_deployment
        else:
            model = config.openai_embedding_model
        return cls(
            model=model,
            api_key=config.openai_api_key,
            azure_endpoint=config.openai_endpoint,
            api_version=config.openai_api_version,
            max_retries=config.embedding_max_retries,
            timeout=config.embedding_timeout_s,
        )

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions for the model."""
        return _MODEL_DIMS.get(self.model, 1536)

    async def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        vectors = await self._create([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts efficiently."""
        if not texts:
            return []
        return await self._create(texts)

    async def _create(self, texts: list[str]) -> list[np.ndarray]:
        try:
            response = await self._client.embeddings.create(
                input=texts,
                model=self.model,
            )
        except OpenAIError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if len(response.data) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, provider returned {len(response.data)}"
            )
        # Provider may return items out of order for batches
        items = sorted(response.data, key=lambda item: item.index)
        return [np.array(item.embedding, dtype=np.float32) for item in items]


class MockEmbedder:
    """
    Mock embedder for testing without API calls.

    Uses the hashing trick: every lowercase token lands in a hashed
    bucket with a hashed sign, and the vector is L2-normalised. Texts
    that share words end up close together, which is enough to make
    retrieval behave sensibly offline.
    NOT for production use - only for testing/development.
    """

    _TOKEN = re.compile(r"[a-z0-9$]+")

    def __init__(self, dimensions: int = 1536):
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _vectorize(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimensions, dtype=np.float32)
        for token in self._TOKEN.findall(text.lower()):
            digest = hashlib.sha256(token.encode()).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector

    async def embed(self, text: str) -> np.ndarray:
        """Generate deterministic pseudo-embedding from hashed tokens."""
        return self._vectorize(text)

    async def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        return [self._vectorize(text) for text in texts]


def get_embedder(
    use_mock: bool | None = None,
    config: AppConfig | None = None,
) -> Embedder:
    """
    Factory function to get the appropriate embedder.

    Args:
        use_mock: If True, return MockEmbedder (defaults to USE_MOCK_EMBEDDINGS)
        config: App configuration (uses the global config if not provided)
    """
    config = config or get_config()
    if use_mock is None:
        use_mock = config.use_mock_embeddings

    if use_mock:
        logger.debug(f"Using MockEmbedder ({config.embedding_dim} dims)")
        return MockEmbedder(dimensions=config.embedding_dim)
    return OpenAIEmbedder.from_config(config)
