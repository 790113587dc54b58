"""
Score-merge utilities for result sets.

Pure functions, no I/O. Every booster builds its output from these, so
the pipeline-wide invariants live here:
- no two results share a ContentItem identity
- results are ordered by descending score
- equal scores keep their input order (stable)
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rag_context_pipeline.core.protocols import ScoredResult


def dedupe_results(results: Iterable[ScoredResult]) -> list[ScoredResult]:
    """Drop later results whose content identity was already seen."""
    seen: set[str] = set()
    unique = []
    for result in results:
        if result.key in seen:
            continue
        seen.add(result.key)
        unique.append(result)
    return unique


def sort_by_score(results: Iterable[ScoredResult]) -> list[ScoredResult]:
    """Sort by descending score. Stable for ties."""
    return sorted(results, key=lambda r: r.score, reverse=True)


def cap_results(results: Sequence[ScoredResult], max_results: int) -> list[ScoredResult]:
    """
    Keep the max_results highest-scored results in their current order.

    On sorted input this is results[:max_results]. On pinned input it
    drops the lowest scores without reordering what survives.
    """
    if max_results < 0:
        raise ValueError(f"max_results must be >= 0, got {max_results}")
    if len(results) <= max_results:
        return list(results)
    ranked = sorted(range(len(results)), key=lambda i: results[i].score, reverse=True)
    keep = set(ranked[:max_results])
    return [r for i, r in enumerate(results) if i in keep]


def merge_results(
    a: Sequence[ScoredResult],
    b: Sequence[ScoredResult],
    max_combined: int | None = None,
) -> list[ScoredResult]:
    """
    Merge two result sets.

    Concatenates a then b, deduplicates by content identity (first
    occurrence wins, so argument order decides precedence), sorts by
    descending score and optionally truncates to max_combined.
    """
    merged = sort_by_score(dedupe_results([*a, *b]))
    if max_combined is not None:
        merged = cap_results(merged, max_combined)
    return merged
