"""
Retrieval pipeline - selects the context passages for a prompt.

Stages, strictly sequential:
1. Embed the query (once).
2. Primary nearest-neighbor query (once).
3. Fold the boosters over the result set, in construction order. A booster
   whose predicate is false leaves the results untouched; a booster that
   fails is skipped and reported.
4. Optional global cap (total_max_k).

The pipeline is TESTABLE IN ISOLATION because:
1. Embedder, store and tracer are injected, not global
2. No state survives a request
3. Deterministic given same inputs
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from rag_context_pipeline.config import AppConfig, get_config
from rag_context_pipeline.core.errors import BoosterError, EmbeddingError, StoreQueryError
from rag_context_pipeline.core.protocols import (
    ContentStore,
    Embedder,
    EmbeddingVector,
    ScoredResult,
    SearchBooster,
    SearchOptions,
)
from rag_context_pipeline.observability import get_tracer
from rag_context_pipeline.observability.attributes import (
    RETRIEVAL_BOOSTER_COUNT,
    RETRIEVAL_BOOSTER_FAILURES,
    RETRIEVAL_EMBEDDING_DIM,
    RETRIEVAL_QUERY_TEXT,
    RETRIEVAL_QUERY_WORD_COUNT,
    RETRIEVAL_TOTAL_MAX_K,
    booster_attributes,
    result_attributes,
    search_attributes,
)
from rag_context_pipeline.observability.config import get_config as get_phoenix_config
from rag_context_pipeline.observability.tracer import TracerProtocol
from rag_context_pipeline.retrieval.boosters import boost_on_source, max_word_count
from rag_context_pipeline.retrieval.merge import cap_results

logger = logging.getLogger(__name__)


@dataclass
class FindContentResult:
    """Everything one retrieval produced, for callers that want more than the passages."""
    query_text: str
    query_embedding: EmbeddingVector
    content: list[ScoredResult]
    applied_boosters: list[str] = field(default_factory=list)
    booster_errors: list[BoosterError] = field(default_factory=list)


class RetrievalPipeline:
    """
    Nearest-neighbor retrieval plus an ordered chain of boosters.

    Example:
        >>> pipeline = RetrievalPipeline(embedder, store, SearchOptions(k=5, min_score=0.9),
        ...                              boosters=[boost_manual])
        >>> results = await pipeline.retrieve("aggregation $lookup")
    """

    def __init__(
        self,
        embedder: Embedder,
        store: ContentStore,
        search_options: SearchOptions,
        boosters: Sequence[SearchBooster] = (),
        total_max_k: int | None = None,
        tracer: TracerProtocol | None = None,
    ):
        if total_max_k is not None and total_max_k < 1:
            raise ValueError(f"total_max_k must be positive, got {total_max_k}")
        self.embedder = embedder
        self.store = store
        self.search_options = search_options
        self.boosters = tuple(boosters)
        self.total_max_k = total_max_k
        self._tracer = tracer

    @property
    def tracer(self) -> TracerProtocol:
        return self._tracer or get_tracer()

    async def retrieve(self, query_text: str) -> list[ScoredResult]:
        """
        Return the ranked context for a query, most relevant first.

        Raises:
            EmbeddingError: the query could not be embedded (no store query is made)
            StoreQueryError: the primary store query failed
        """
        result = await self.find_content(query_text)
        return result.content

    async def find_content(self, query_text: str) -> FindContentResult:
        """Like retrieve(), but also returns the embedding and booster outcomes."""
        attributes = {RETRIEVAL_QUERY_WORD_COUNT: len(query_text.split())}
        if get_phoenix_config().capture_query_text:
            attributes[RETRIEVAL_QUERY_TEXT] = query_text

        with self.tracer.start_span("retrieval.find_content", attributes=attributes) as span:
            try:
                embedding = await self._embed(query_text)
                results = await self._primary_query(embedding)
            except (EmbeddingError, StoreQueryError) as e:
                span.record_exception(e)
                span.set_status("error", str(e))
                raise

            outcome = FindContentResult(
                query_text=query_text,
                query_embedding=embedding,
                content=results,
            )
            for booster in self.boosters:
                outcome.content = await self._apply_booster(booster, query_text, embedding, outcome)

            if self.total_max_k is not None:
                outcome.content = cap_results(outcome.content, self.total_max_k)
                span.set_attribute(RETRIEVAL_TOTAL_MAX_K, self.total_max_k)

            for key, value in result_attributes(outcome.content).items():
                span.set_attribute(key, value)
            span.set_attribute(RETRIEVAL_BOOSTER_COUNT, len(outcome.applied_boosters))
            span.set_attribute(RETRIEVAL_BOOSTER_FAILURES, len(outcome.booster_errors))
            span.set_status("ok")

        logger.debug(
            f"Retrieved {len(outcome.content)} results "
            f"(boosters applied: {outcome.applied_boosters or 'none'})"
        )
        return outcome

    async def _embed(self, query_text: str) -> EmbeddingVector:
        with self.tracer.start_span("retrieval.embed") as span:
            try:
                embedding = await self.embedder.embed(query_text)
            except EmbeddingError:
                raise
            except Exception as e:
                raise EmbeddingError(f"Embedder failed: {e}") from e
            span.set_attribute(RETRIEVAL_EMBEDDING_DIM, len(embedding))
            return embedding

    async def _primary_query(self, embedding: EmbeddingVector) -> list[ScoredResult]:
        options = self.search_options
        with self.tracer.start_span(
            "retrieval.primary_query",
            attributes=search_attributes(options.index_name, options.k, options.min_score),
        ) as span:
            try:
                results = await self.store.find_nearest_neighbors(embedding, options)
            except StoreQueryError:
                raise
            except Exception as e:
                raise StoreQueryError(f"Primary query failed: {e}") from e
            for key, value in result_attributes(results).items():
                span.set_attribute(key, value)
            return list(results)

    async def _apply_booster(
        self,
        booster: SearchBooster,
        query_text: str,
        embedding: EmbeddingVector,
        outcome: FindContentResult,
    ) -> list[ScoredResult]:
        """Run one booster. Any failure leaves the result set as it was."""
        existing = outcome.content
        with self.tracer.start_span("retrieval.booster") as span:
            try:
                if not booster.should_apply(query_text):
                    for key, value in booster_attributes(booster.name, applied=False).items():
                        span.set_attribute(key, value)
                    return existing
                boosted = await booster.merge(embedding, self.store, tuple(existing))
            except Exception as e:
                error = BoosterError(booster.name, str(e))
                error.__cause__ = e
                logger.warning(f"{error}; continuing without it")
                span.record_exception(e)
                for key, value in booster_attributes(booster.name, applied=False, error=str(e)).items():
                    span.set_attribute(key, value)
                outcome.booster_errors.append(error)
                return existing

            for key, value in booster_attributes(booster.name, applied=True).items():
                span.set_attribute(key, value)
            for key, value in result_attributes(boosted).items():
                span.set_attribute(key, value)
            outcome.applied_boosters.append(booster.name)
            return list(boosted)


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def build_boosters(config: AppConfig) -> list[SearchBooster]:
    """
    Default booster chain.

    Short queries (BOOST_MAX_WORDS words or fewer) get up to BOOST_K results
    from BOOST_SOURCE_NAME, which is usually the product manual.
    """
    return [
        boost_on_source(
            source_name=config.boost_source_name,
            predicate=max_word_count(config.boost_max_words),
            k=config.boost_k,
            min_score=config.boost_min_score,
            index_name=config.vector_search_index_name,
            max_carry_over=config.boost_max_carry_over,
            total_max_k=config.boost_total_max_k,
        )
    ]


def build_pipeline(
    config: AppConfig | None = None,
    embedder: Embedder | None = None,
    store: ContentStore | None = None,
    boosters: Sequence[SearchBooster] | None = None,
    tracer: TracerProtocol | None = None,
) -> RetrievalPipeline:
    """
    Assemble the pipeline from configuration.

    Args:
        config: App configuration (uses the global config if not provided)
        embedder: Embedder (built from config if not provided)
        store: Content store (built from config if not provided)
        boosters: Booster chain (build_boosters(config) if not provided)
        tracer: Tracer (global tracer if not provided)
    """
    config = config or get_config()

    if embedder is None:
        from rag_context_pipeline.embeddings import get_embedder
        embedder = get_embedder(config=config)
    if store is None:
        from rag_context_pipeline.retrieval.store import get_content_store
        store = get_content_store(config=config)
    if boosters is None:
        boosters = build_boosters(config)

    return RetrievalPipeline(
        embedder=embedder,
        store=store,
        search_options=SearchOptions(
            k=config.retrieval_k,
            index_name=config.vector_search_index_name,
            path="embedding",
            min_score=config.retrieval_min_score,
        ),
        boosters=boosters,
        total_max_k=config.retrieval_total_max_k,
        tracer=tracer,
    )
