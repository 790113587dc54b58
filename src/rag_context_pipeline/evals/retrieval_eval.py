"""
Retrieval Quality Eval

Evaluates whether the pipeline puts the RIGHT content into the prompt
context for a set of golden queries.

Regressions this catches:
- A new embedding model or deployment shifting similarity scores
- min_score thresholds that are too strict or too loose
- Booster predicates or filters no longer pulling in the manual
- Dedup/merge regressions crowding out expected content

METRICS (over result URLs):
---------------------------
recall    = expected URLs found / expected URLs
precision = expected URLs found / URLs returned
f1        = harmonic mean of the two

A case passes when its RECALL reaches the threshold: context windows are
meant to carry a few extra passages, so precision is reported but not
gated on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rag_context_pipeline.core.errors import RetrievalPipelineError
from rag_context_pipeline.golden_sets import GoldenQuery, get_all_golden_queries

if TYPE_CHECKING:
    from rag_context_pipeline.retrieval.pipeline import RetrievalPipeline

logger = logging.getLogger(__name__)


@dataclass
class RetrievalMetrics:
    """Retrieval quality metrics for a single case."""
    recall: float
    precision: float
    f1_score: float
    retrieved: list[str]
    expected: list[str]
    missing: list[str]
    extra: list[str]


@dataclass
class RetrievalEvalResult:
    """Result of retrieval eval for a single case."""
    case_id: str
    query: str
    passed: bool
    metrics: RetrievalMetrics | None
    error: str | None = None


@dataclass
class RetrievalEvalReport:
    """Aggregate retrieval eval results."""
    total_cases: int
    passed_cases: int
    failed_cases: int
    avg_recall: float
    avg_precision: float
    avg_f1: float
    threshold: float
    results: list[RetrievalEvalResult]

    @property
    def all_passed(self) -> bool:
        return self.failed_cases == 0

    @property
    def pass_rate(self) -> float:
        if self.total_cases == 0:
            return 0.0
        return self.passed_cases / self.total_cases


def calculate_retrieval_metrics(
    retrieved: list[str],
    expected: list[str],
) -> RetrievalMetrics:
    """Calculate recall, precision and F1 over content identifiers."""
    retrieved_set = set(retrieved)
    expected_set = set(expected)

    if not expected_set:
        # Nothing expected - vacuously complete, precise only if nothing came back
        return RetrievalMetrics(
            recall=1.0,
            precision=1.0 if not retrieved_set else 0.0,
            f1_score=1.0 if not retrieved_set else 0.0,
            retrieved=retrieved,
            expected=expected,
            missing=[],
            extra=sorted(retrieved_set),
        )

    overlap = retrieved_set & expected_set
    recall = len(overlap) / len(expected_set)
    precision = len(overlap) / len(retrieved_set) if retrieved_set else 0.0
    if precision + recall > 0:
        f1 = 2 * (precision * recall) / (precision + recall)
    else:
        f1 = 0.0

    return RetrievalMetrics(
        recall=recall,
        precision=precision,
        f1_score=f1,
        retrieved=retrieved,
        expected=expected,
        missing=sorted(expected_set - retrieved_set),
        extra=sorted(retrieved_set - expected_set),
    )


async def evaluate_retrieval(
    pipeline: RetrievalPipeline,
    cases: list[GoldenQuery] | None = None,
    threshold: float = 1.0,
    verbose: bool = False,
) -> RetrievalEvalReport:
    """
    Run every golden query through the pipeline and score the context.

    A query whose retrieval fails counts as a failed case; the eval
    itself keeps going.

    Args:
        pipeline: The pipeline under test
        cases: Cases to evaluate. Defaults to all golden queries.
        threshold: Minimum recall to pass. Default 1.0 (all expected content present).
        verbose: Print progress.
    """
    cases = cases if cases is not None else get_all_golden_queries()
    results: list[RetrievalEvalResult] = []

    for case in cases:
        if verbose:
            print(f"Running retrieval eval: {case.id}...")
        try:
            retrieved = await pipeline.retrieve(case.query)
        except RetrievalPipelineError as e:
            logger.warning(f"{case.id}: retrieval failed: {e}")
            results.append(RetrievalEvalResult(
                case_id=case.id,
                query=case.query,
                passed=False,
                metrics=None,
                error=str(e),
            ))
            continue

        metrics = calculate_retrieval_metrics(
            [r.content.url for r in retrieved],
            case.expected_urls,
        )
        results.append(RetrievalEvalResult(
            case_id=case.id,
            query=case.query,
            passed=metrics.recall >= threshold,
            metrics=metrics,
        ))

    scored = [r.metrics for r in results if r.metrics is not None]
    if scored:
        avg_recall = sum(m.recall for m in scored) / len(scored)
        avg_precision = sum(m.precision for m in scored) / len(scored)
        avg_f1 = sum(m.f1_score for m in scored) / len(scored)
    else:
        avg_recall = avg_precision = avg_f1 = 0.0
    passed = sum(1 for r in results if r.passed)

    return RetrievalEvalReport(
        total_cases=len(results),
        passed_cases=passed,
        failed_cases=len(results) - passed,
        avg_recall=avg_recall,
        avg_precision=avg_precision,
        avg_f1=avg_f1,
        threshold=threshold,
        results=results,
    )
