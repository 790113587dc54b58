"""
Evaluation gates module.

- retrieval_eval: Retrieval quality (recall, precision) over golden queries
"""

from rag_context_pipeline.evals.retrieval_eval import (
    RetrievalMetrics,
    RetrievalEvalResult,
    RetrievalEvalReport,
    calculate_retrieval_metrics,
    evaluate_retrieval,
)

__all__ = [
    "RetrievalMetrics",
    "RetrievalEvalResult",
    "RetrievalEvalReport",
    "calculate_retrieval_metrics",
    "evaluate_retrieval",
]
