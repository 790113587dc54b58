"""
Seed data for the retrieval system.

This package contains externalized knowledge base content.
Separating data from infrastructure enables:
- Content updates without code changes
- Different datasets for different environments
- Easy testing with controlled data
"""

from rag_context_pipeline.retrieval.seeds.docs_content import (
    get_documentation_content,
    seed_content_store,
)

__all__ = ["get_documentation_content", "seed_content_store"]
