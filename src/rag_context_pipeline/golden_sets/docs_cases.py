"""
Golden queries for retrieval quality.

Each case names the content that MUST show up in the context for the
query (by URL). Short queries double as regression tests for the
manual booster: they only find manual pages when boosting works.
"""

from dataclasses import dataclass, field


@dataclass
class GoldenQuery:
    """A single golden retrieval case."""
    id: str
    query: str
    expected_urls: list[str]
    description: str = ""
    tags: list[str] = field(default_factory=list)


DOCS_CASES: list[GoldenQuery] = [
    GoldenQuery(
        id="docs-001",
        query="createIndex",
        expected_urls=["https://www.mongodb.com/docs/manual/indexes/"],
        description="One-word query, manual page must be boosted in",
        tags=["short", "boost"],
    ),
    GoldenQuery(
        id="docs-002",
        query="$lookup join",
        expected_urls=[
            "https://www.mongodb.com/docs/manual/reference/operator/aggregation/lookup/",
        ],
        description="Short operator query",
        tags=["short", "boost"],
    ),
    GoldenQuery(
        id="docs-003",
        query="How do I order the keys of a compound index so it serves both the filter and the sort?",
        expected_urls=[
            "https://www.mongodb.com/developer/products/mongodb/esr-index-rule/",
            "https://www.mongodb.com/docs/manual/indexes/",
        ],
        description="Long query, no boost, mixed sources",
        tags=["long"],
    ),
    GoldenQuery(
        id="docs-004",
        query="How should I retry transactions and commit them with a session?",
        expected_urls=[
            "https://www.mongodb.com/docs/manual/core/transactions/",
            "https://learn.mongodb.com/courses/transactions/lesson-2",
        ],
        description="Long query spanning manual and course content",
        tags=["long"],
    ),
    GoldenQuery(
        id="docs-005",
        query="vector search embeddings",
        expected_urls=[
            "https://www.mongodb.com/docs/atlas/atlas-vector-search/vector-search-stage/",
            "https://www.mongodb.com/developer/products/atlas/rag-chatbot-vector-search/",
        ],
        description="Short query where the booster and primary results overlap",
        tags=["short", "boost", "dedup"],
    ),
]


def get_all_golden_queries() -> list[GoldenQuery]:
    """Get all golden retrieval cases."""
    return list(DOCS_CASES)


def get_query_by_id(case_id: str) -> GoldenQuery | None:
    """Get a specific golden case by ID."""
    for case in DOCS_CASES:
        if case.id == case_id:
            return case
    return None
