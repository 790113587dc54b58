"""
Golden Sets Package

Provides retrieval cases with the content each query must surface.

Example:
    from rag_context_pipeline.golden_sets import GoldenQuery, get_all_golden_queries
"""

from rag_context_pipeline.golden_sets.docs_cases import (
    GoldenQuery,
    DOCS_CASES,
    get_all_golden_queries,
    get_query_by_id,
)

__all__ = [
    "GoldenQuery",
    "DOCS_CASES",
    "get_all_golden_queries",
    "get_query_by_id",
]
