"""
Semantic Conventions for Span Attributes

Keys for the retrieval.* namespace. Embedding-call attributes (model,
token usage) come from the OpenInference instrumentor, not from here.
"""

# ---------------------------------------------------------------------------
# RETRIEVAL NAMESPACE (custom)
# ---------------------------------------------------------------------------

# Request level
RETRIEVAL_QUERY_TEXT = "retrieval.query.text"  # only with PHOENIX_CAPTURE_QUERY_TEXT
RETRIEVAL_QUERY_WORD_COUNT = "retrieval.query.word_count"
RETRIEVAL_EMBEDDING_DIM = "retrieval.embedding.dim"

# Store query level
RETRIEVAL_INDEX_NAME = "retrieval.index_name"
RETRIEVAL_K = "retrieval.k"
RETRIEVAL_MIN_SCORE = "retrieval.min_score"
RETRIEVAL_RESULT_COUNT = "retrieval.result_count"
RETRIEVAL_TOP_SCORE = "retrieval.top_score"
RETRIEVAL_TOTAL_MAX_K = "retrieval.total_max_k"
RETRIEVAL_SOURCES = "retrieval.sources"

# Booster level
RETRIEVAL_BOOSTER_NAME = "retrieval.booster.name"
RETRIEVAL_BOOSTER_APPLIED = "retrieval.booster.applied"  # bool
RETRIEVAL_BOOSTER_FAILED = "retrieval.booster.failed"  # bool
RETRIEVAL_BOOSTER_ERROR = "retrieval.booster.error"
RETRIEVAL_BOOSTER_COUNT = "retrieval.booster.count"
RETRIEVAL_BOOSTER_FAILURES = "retrieval.booster.failures"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def search_attributes(
    index_name: str,
    k: int,
    min_score: float,
) -> dict:
    """Create attributes dict for a store query span."""
    return {
        RETRIEVAL_INDEX_NAME: index_name,
        RETRIEVAL_K: k,
        RETRIEVAL_MIN_SCORE: min_score,
    }


def result_attributes(results: list) -> dict:
    """Create attributes dict summarising a result set."""
    attrs = {
        RETRIEVAL_RESULT_COUNT: len(results),
        RETRIEVAL_SOURCES: sorted({r.source_name for r in results}),
    }
    if results:
        attrs[RETRIEVAL_TOP_SCORE] = max(r.score for r in results)
    return attrs


def booster_attributes(
    booster_name: str,
    applied: bool,
    error: str | None = None,
) -> dict:
    """Create attributes dict for a booster span."""
    attrs = {
        RETRIEVAL_BOOSTER_NAME: booster_name,
        RETRIEVAL_BOOSTER_APPLIED: applied,
        RETRIEVAL_BOOSTER_FAILED: error is not None,
    }
    if error:
        attrs[RETRIEVAL_BOOSTER_ERROR] = error
    return attrs
