"""
Retrieval module - context selection for RAG prompts.

This module provides:
- EmbeddedContent: The stored content model
- ContentStoreConfig / PgVectorContentStore / InMemoryContentStore: stores
- get_content_store(): Factory function
- merge_results() and friends: score-merge/dedup utilities
- FilterBooster / SourceCapBooster: booster policies
- RetrievalPipeline / build_pipeline(): the orchestrator

ARCHITECTURE:
-------------
1. Protocols define the contracts (in core.protocols)
2. Multiple implementations (PgVectorContentStore, InMemoryContentStore)
3. Factory functions for instantiation
4. Test doubles for fast unit tests
"""

from rag_context_pipeline.retrieval.content import EmbeddedContent

from rag_context_pipeline.retrieval.store import (
    ContentStoreConfig,
    PgVectorContentStore,
    InMemoryContentStore,
    get_content_store,
)

from rag_context_pipeline.retrieval.merge import (
    merge_results,
    dedupe_results,
    sort_by_score,
    cap_results,
)

from rag_context_pipeline.retrieval.boosters import (
    FilterBooster,
    SourceCapBooster,
    boost_on_source,
    max_word_count,
    mentions_any,
    always,
)

from rag_context_pipeline.retrieval.pipeline import (
    FindContentResult,
    RetrievalPipeline,
    build_boosters,
    build_pipeline,
)

from rag_context_pipeline.retrieval.seeds import (
    get_documentation_content,
    seed_content_store,
)

__all__ = [
    # Content
    "EmbeddedContent",
    # Stores
    "ContentStoreConfig",
    "PgVectorContentStore",
    "InMemoryContentStore",
    "get_content_store",
    # Merge
    "merge_results",
    "dedupe_results",
    "sort_by_score",
    "cap_results",
    # Boosters
    "FilterBooster",
    "SourceCapBooster",
    "boost_on_source",
    "max_word_count",
    "mentions_any",
    "always",
    # Pipeline
    "FindContentResult",
    "RetrievalPipeline",
    "build_boosters",
    "build_pipeline",
    # Seeds
    "get_documentation_content",
    "seed_content_store",
]
