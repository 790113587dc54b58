"""
Core module - shared protocols, data model and errors.

This module provides the foundational contracts that enable:
- Dependency injection throughout the codebase
- Easy testing with mock implementations
- Clear separation of concerns

USAGE:
------
from rag_context_pipeline.core import ContentStore, Embedder

class MyContentStore:
    '''Implements ContentStore protocol.'''
    ...
"""

from rag_context_pipeline.core.errors import (
    RetrievalPipelineError,
    ConfigurationError,
    EmbeddingError,
    StoreQueryError,
    BoosterError,
)
from rag_context_pipeline.core.protocols import (
    # Protocols
    Embedder,
    ContentStore,
    SearchBooster,
    # Data classes
    ContentItem,
    ScoredResult,
    SearchOptions,
    # Aliases
    EmbeddingVector,
    MetadataFilter,
)

__all__ = [
    # Errors
    "RetrievalPipelineError",
    "ConfigurationError",
    "EmbeddingError",
    "StoreQueryError",
    "BoosterError",
    # Protocols
    "Embedder",
    "ContentStore",
    "SearchBooster",
    # Data classes
    "ContentItem",
    "ScoredResult",
    "SearchOptions",
    # Aliases
    "EmbeddingVector",
    "MetadataFilter",
]
