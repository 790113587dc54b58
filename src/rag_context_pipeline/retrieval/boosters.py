"""
Search boosters - conditional secondary retrievals merged into the
primary result set.

Every booster is a small frozen dataclass implementing the SearchBooster
protocol (core.protocols): should_apply() looks at the raw query text,
merge() turns the current result set into a new one. Boosters hold no
per-request state, so one instance serves any number of concurrent
requests.

ORDERING CHOICE:
----------------
Whether boosted items are re-sorted by score or pinned ahead of the
carried-over results is a per-booster decision (FilterBooster.pin_to_front).
Re-sorting is the default and keeps the pipeline's "sorted by descending
score" contract; pinning deliberately deviates from it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from rag_context_pipeline.core.protocols import (
    ContentStore,
    EmbeddingVector,
    ScoredResult,
    SearchOptions,
)
from rag_context_pipeline.retrieval.merge import cap_results, dedupe_results, merge_results, sort_by_score

logger = logging.getLogger(__name__)

QueryPredicate = Callable[[str], bool]


# ---------------------------------------------------------------------------
# PREDICATES
# ---------------------------------------------------------------------------


def max_word_count(max_words: int) -> QueryPredicate:
    """Apply to short queries: `max_words` whitespace-separated words or fewer."""

    def predicate(query_text: str) -> bool:
        return len(query_text.split()) <= max_words

    return predicate


def mentions_any(*keywords: str, case_sensitive: bool = False) -> QueryPredicate:
    """Apply when the query contains any of the keywords as a substring."""
    needles = keywords if case_sensitive else tuple(k.lower() for k in keywords)

    def predicate(query_text: str) -> bool:
        haystack = query_text if case_sensitive else query_text.lower()
        return any(needle in haystack for needle in needles)

    return predicate


def always() -> QueryPredicate:
    return lambda query_text: True


# ---------------------------------------------------------------------------
# ENSURE-SOURCE-PRESENT
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilterBooster:
    """
    Ensure up to options.k results matching options.filter are present.

    The secondary query has its own k and min_score, usually more
    permissive than the primary query, so relevant but lower-scoring
    content from the filtered source is forced into view.

    Merge:
    1. Query the store with `options`.
    2. Carry over at most `max_carry_over` of the existing results.
    3. Drop carried-over results whose text matches a boosted one
       (boosted results win).
    4. Boosted + carry-over, re-sorted by score, or boosted first when
       `pin_to_front` is set.
    5. Optionally cap at `total_max_k`.
    """

    name: str
    predicate: QueryPredicate
    options: SearchOptions
    max_carry_over: int = 3
    pin_to_front: bool = False
    total_max_k: int | None = None

    def __post_init__(self) -> None:
        if self.max_carry_over < 0:
            raise ValueError(f"max_carry_over must be >= 0, got {self.max_carry_over}")
        if self.total_max_k is not None and self.total_max_k < 1:
            raise ValueError(f"total_max_k must be positive, got {self.total_max_k}")

    def should_apply(self, query_text: str) -> bool:
        return self.predicate(query_text)

    async def merge(
        self,
        embedding: EmbeddingVector,
        store: ContentStore,
        existing: Sequence[ScoredResult],
    ) -> list[ScoredResult]:
        boosted = dedupe_results(await store.find_nearest_neighbors(embedding, self.options))
        boosted_keys = {result.key for result in boosted}

        carry_over = [
            result for result in existing[:self.max_carry_over]
            if result.key not in boosted_keys
        ]
        logger.debug(
            f"{self.name}: {len(boosted)} boosted, {len(carry_over)} carried over"
        )

        if self.pin_to_front:
            results = sort_by_score(boosted) + sort_by_score(dedupe_results(carry_over))
            if self.total_max_k is not None:
                results = cap_results(results, self.total_max_k)
            return results
        return merge_results(boosted, carry_over, max_combined=self.total_max_k)


def boost_on_source(
    source_name: str,
    predicate: QueryPredicate,
    k: int,
    min_score: float,
    index_name: str = "vector_index",
    path: str = "embedding",
    max_carry_over: int = 3,
    total_max_k: int | None = None,
    pin_to_front: bool = False,
) -> FilterBooster:
    """Build a FilterBooster scoped to one source."""
    return FilterBooster(
        name=f"boost:{source_name}",
        predicate=predicate,
        options=SearchOptions(
            k=k,
            index_name=index_name,
            path=path,
            min_score=min_score,
            filter={"source_name": source_name},
        ),
        max_carry_over=max_carry_over,
        pin_to_front=pin_to_front,
        total_max_k=total_max_k,
    )


# ---------------------------------------------------------------------------
# LIMIT-SOURCE-REPRESENTATION
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceCapBooster:
    """
    Keep at most `max_results` results from `source_name`.

    Issues no store query and preserves the existing order. Place it after
    a FilterBooster to bound what that booster pulled in.
    """

    name: str
    source_name: str
    max_results: int
    predicate: QueryPredicate = always()

    def __post_init__(self) -> None:
        if self.max_results < 0:
            raise ValueError(f"max_results must be >= 0, got {self.max_results}")

    def should_apply(self, query_text: str) -> bool:
        return self.predicate(query_text)

    async def merge(
        self,
        embedding: EmbeddingVector,
        store: ContentStore,
        existing: Sequence[ScoredResult],
    ) -> list[ScoredResult]:
        kept = []
        seen = 0
        for result in existing:
            if result.source_name == self.source_name:
                if seen >= self.max_results:
                    continue
                seen += 1
            kept.append(result)
        return kept
