"""
Embeddings module - text embedding generation.

The pattern every infrastructure module here follows:
1. Protocol (Embedder, in core.protocols) defines the interface
2. Production implementation (OpenAIEmbedder)
3. Test double (MockEmbedder) for fast testing
4. Factory function (get_embedder)
"""

from rag_context_pipeline.embeddings.openai_embeddings import (
    OpenAIEmbedder,
    MockEmbedder,
    get_embedder,
)

__all__ = [
    "OpenAIEmbedder",
    "MockEmbedder",
    "get_embedder",
]
