"""
Core protocols defining contracts for the retrieval pipeline.

All infrastructure components implement these protocols,
enabling dependency injection and easy testing.

PATTERN: This follows the same structure as embeddings/openai_embeddings.py
- Protocol defines the contract
- Multiple implementations possible
- Factory functions for instantiation
- Test doubles for fast unit tests

The data classes here are created fresh for every query and never
mutated afterwards, so concurrent requests can share nothing but the
pipeline object itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np

# 1-D float32 vector. Its length must match the store's dimensionality.
EmbeddingVector = np.ndarray

# {"source_name": "snooty-docs", "version": {"$in": ["v7.0", "v8.0"]}}
MetadataFilter = Mapping[str, Any]


# ---------------------------------------------------------------------------
# CONTENT
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContentItem:
    """A retrievable unit of reference text, owned by the content store."""

    text: str
    source_name: str
    url: str = ""
    version: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def key(self) -> str:
        """Identity used for deduplication. Independent of any score."""
        return self.text


@dataclass(frozen=True)
class ScoredResult:
    """A content item paired with its similarity to one query vector."""

    content: ContentItem
    score: float

    @property
    def text(self) -> str:
        return self.content.text

    @property
    def source_name(self) -> str:
        return self.content.source_name

    @property
    def key(self) -> str:
        return self.content.key

    def to_dict(self) -> dict:
        """Convert to the shape handed to the prompt builder."""
        return {
            "text": self.content.text,
            "source_name": self.content.source_name,
            "url": self.content.url,
            "version": self.content.version,
            "score": self.score,
        }


# ---------------------------------------------------------------------------
# SEARCH OPTIONS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchOptions:
    """
    Configuration for one nearest-neighbor query.

    k is advisory per query: the pipeline's final output is the union of
    all queries after merge and dedup.
    """

    k: int
    index_name: str = "vector_index"
    path: str = "embedding"
    min_score: float = 0.0  # inclusive
    filter: MetadataFilter | None = None

    def __post_init__(self) -> None:
        if self.k < 1:
            raise ValueError(f"k must be a positive integer, got {self.k}")
        if not 0.0 <= self.min_score <= 1.0:
            raise ValueError(f"min_score must be within [0, 1], got {self.min_score}")
        if not self.path:
            raise ValueError("path must name the field holding the vector")


# ---------------------------------------------------------------------------
# EMBEDDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class Embedder(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbedder (production, OpenAI or Azure OpenAI)
    - MockEmbedder (testing)

    Retry/backoff is the implementation's own business. Failures surface
    as EmbeddingError.
    """

    async def embed(self, text: str) -> EmbeddingVector:
        """Generate embedding for a single text."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingVector]:
        """Generate embeddings for multiple texts."""
        ...


# ---------------------------------------------------------------------------
# CONTENT STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class ContentStore(Protocol):
    """
    Contract for nearest-neighbor search over embedded content.

    Implementations:
    - PgVectorContentStore (production with PostgreSQL)
    - InMemoryContentStore (testing/development)
    """

    async def connect(self) -> None:
        """Establish connection to the store."""
        ...

    async def close(self) -> None:
        """Close connection to the store."""
        ...

    async def find_nearest_neighbors(
        self,
        vector: EmbeddingVector,
        options: SearchOptions,
        filter: MetadataFilter | None = None,
    ) -> list[ScoredResult]:
        """
        Return at most options.k results with score >= options.min_score,
        highest score first. `filter` is AND-combined with options.filter.
        """
        ...


# ---------------------------------------------------------------------------
# SEARCH BOOSTER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class SearchBooster(Protocol):
    """
    Contract for a conditional secondary retrieval policy.

    Boosters only see the raw query text in should_apply(). The merge
    step works on the embedding so it stays deterministic with respect
    to the vector space. merge() must return a new list and leave
    `existing` untouched.

    Implementations:
    - FilterBooster (ensure results from a source are present)
    - SourceCapBooster (limit how much of a source survives)
    """

    name: str

    def should_apply(self, query_text: str) -> bool:
        """Decide whether this booster runs for the query."""
        ...

    async def merge(
        self,
        embedding: EmbeddingVector,
        store: ContentStore,
        existing: Sequence[ScoredResult],
    ) -> list[ScoredResult]:
        """Produce a new result set from the current one."""
        ...
