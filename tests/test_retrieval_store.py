"""
Unit Tests for InMemoryContentStore and the store factory

Uses 3-dimensional vectors so scores are easy to reason about:
identical direction scores 1.0, orthogonal 0.5, opposite 0.0.
"""

import numpy as np
import pytest

from rag_context_pipeline.config import AppConfig
from rag_context_pipeline.core import ContentStore, SearchOptions, StoreQueryError
from rag_context_pipeline.embeddings import MockEmbedder
from rag_context_pipeline.retrieval import (
    EmbeddedContent,
    InMemoryContentStore,
    PgVectorContentStore,
    get_content_store,
    get_documentation_content,
    seed_content_store,
)


def content(text, vector, source="snooty-docs", **kwargs):
    return EmbeddedContent(
        text=text,
        source_name=source,
        embedding=np.array(vector, dtype=np.float32),
        **kwargs,
    )


QUERY = np.array([1.0, 0.0, 0.0], dtype=np.float32)


def make_store():
    store = InMemoryContentStore(embedding_dim=3)
    store._contents = {
        c.text: c
        for c in [
            content("same", [1, 0, 0], url="https://example.com/same", version="v7.0"),
            content("close", [1, 1, 0], source="devcenter", metadata={"page_rank": 3}),
            content("orthogonal", [0, 1, 0], source="university", metadata={"page_rank": 1}),
            content("opposite", [-1, 0, 0], source="devcenter"),
        ]
    }
    return store


# ---------------------------------------------------------------------------
# IN-MEMORY STORE
# ---------------------------------------------------------------------------


class TestInMemoryContentStore:
    """Test the in-memory nearest-neighbor search."""

    def test_implements_protocol(self):
        assert isinstance(InMemoryContentStore(), ContentStore)

    @pytest.mark.asyncio
    async def test_scores_are_normalised_cosine(self):
        store = make_store()

        results = await store.find_nearest_neighbors(QUERY, SearchOptions(k=10))

        scores = {r.text: r.score for r in results}
        assert scores["same"] == pytest.approx(1.0)
        assert scores["close"] == pytest.approx((1 + 1 / np.sqrt(2)) / 2)
        assert scores["orthogonal"] == pytest.approx(0.5)
        assert scores["opposite"] == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_results_sorted_by_descending_score(self):
        store = make_store()

        results = await store.find_nearest_neighbors(QUERY, SearchOptions(k=10))

        assert [r.text for r in results] == ["same", "close", "orthogonal", "opposite"]

    @pytest.mark.asyncio
    async def test_respects_k(self):
        store = make_store()

        results = await store.find_nearest_neighbors(QUERY, SearchOptions(k=2))

        assert [r.text for r in results] == ["same", "close"]

    @pytest.mark.asyncio
    async def test_min_score_is_inclusive(self):
        store = make_store()

        results = await store.find_nearest_neighbors(QUERY, SearchOptions(k=10, min_score=0.5))

        assert [r.text for r in results] == ["same", "close", "orthogonal"]

    @pytest.mark.asyncio
    async def test_options_filter(self):
        store = make_store()
        options = SearchOptions(k=10, filter={"source_name": "devcenter"})

        results = await store.find_nearest_neighbors(QUERY, options)

        assert [r.text for r in results] == ["close", "opposite"]

    @pytest.mark.asyncio
    async def test_extra_filter_is_and_combined(self):
        store = make_store()
        options = SearchOptions(k=10, filter={"source_name": "devcenter"})

        results = await store.find_nearest_neighbors(
            QUERY, options, filter={"metadata.page_rank": {"$gte": 2}},
        )

        assert [r.text for r in results] == ["close"]

    @pytest.mark.asyncio
    async def test_filter_matching_nothing(self):
        store = make_store()

        results = await store.find_nearest_neighbors(
            QUERY, SearchOptions(k=10, filter={"source_name": "nowhere"}),
        )

        assert results == []

    @pytest.mark.asyncio
    async def test_results_carry_content_fields(self):
        store = make_store()

        results = await store.find_nearest_neighbors(QUERY, SearchOptions(k=1))

        item = results[0].content
        assert item.url == "https://example.com/same"
        assert item.version == "v7.0"
        assert item.source_name == "snooty-docs"

    @pytest.mark.asyncio
    async def test_dimension_mismatch_raises(self):
        store = make_store()

        with pytest.raises(StoreQueryError, match="dimensions"):
            await store.find_nearest_neighbors(np.ones(4, dtype=np.float32), SearchOptions(k=1))

    @pytest.mark.asyncio
    async def test_unknown_path_raises(self):
        store = make_store()

        with pytest.raises(StoreQueryError, match="path"):
            await store.find_nearest_neighbors(QUERY, SearchOptions(k=1, path="title_embedding"))

    @pytest.mark.asyncio
    async def test_invalid_filter_raises(self):
        store = make_store()

        with pytest.raises(StoreQueryError):
            await store.find_nearest_neighbors(
                QUERY, SearchOptions(k=1, filter={"source_name": {"$regex": "docs"}}),
            )

    @pytest.mark.asyncio
    async def test_insert_upserts_by_text(self):
        store = InMemoryContentStore(embedding_dim=3)

        await store.insert_content([content("same", [1, 0, 0], source="devcenter")])
        await store.insert_content([content("same", [1, 0, 0], source="snooty-docs")])

        assert len(store) == 1
        results = await store.find_nearest_neighbors(QUERY, SearchOptions(k=1))
        assert results[0].source_name == "snooty-docs"

    @pytest.mark.asyncio
    async def test_insert_without_embedding_raises(self):
        store = InMemoryContentStore()

        with pytest.raises(ValueError):
            await store.insert_content([EmbeddedContent(text="t", source_name="s")])

    @pytest.mark.asyncio
    async def test_insert_wrong_dimensions_raises(self):
        store = InMemoryContentStore(embedding_dim=3)

        with pytest.raises(StoreQueryError):
            await store.insert_content([content("t", [1, 0])])

    @pytest.mark.asyncio
    async def test_empty_store(self):
        results = await InMemoryContentStore().find_nearest_neighbors(QUERY, SearchOptions(k=5))
        assert results == []


# ---------------------------------------------------------------------------
# SEARCH OPTIONS
# ---------------------------------------------------------------------------


class TestSearchOptions:
    """Test SearchOptions validation."""

    def test_defaults(self):
        options = SearchOptions(k=5)

        assert options.index_name == "vector_index"
        assert options.path == "embedding"
        assert options.min_score == 0.0
        assert options.filter is None

    @pytest.mark.parametrize("k", [0, -1])
    def test_non_positive_k_raises(self, k):
        with pytest.raises(ValueError):
            SearchOptions(k=k)

    @pytest.mark.parametrize("min_score", [-0.1, 1.1])
    def test_min_score_out_of_range_raises(self, min_score):
        with pytest.raises(ValueError):
            SearchOptions(k=1, min_score=min_score)

    def test_empty_path_raises(self):
        with pytest.raises(ValueError):
            SearchOptions(k=1, path="")


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


class TestGetContentStore:
    """Test the store factory."""

    def test_in_memory_by_default(self):
        store = get_content_store(config=AppConfig(embedding_dim=8))

        assert isinstance(store, InMemoryContentStore)
        assert store.embedding_dim == 8

    def test_postgres_from_config(self):
        config = AppConfig(use_postgres=True, content_table_name="docs", vector_search_index_name="idx")

        store = get_content_store(config=config)

        assert isinstance(store, PgVectorContentStore)
        assert store.config.table_name == "docs"
        assert store.config.index_name == "idx"

    def test_explicit_flag_wins(self):
        store = get_content_store(use_postgres=False, config=AppConfig(use_postgres=True))

        assert isinstance(store, InMemoryContentStore)


# ---------------------------------------------------------------------------
# SEED DATA
# ---------------------------------------------------------------------------


class TestSeedContent:
    """Test the documentation seed corpus."""

    def test_corpus_spans_sources(self):
        sources = {c.source_name for c in get_documentation_content()}

        assert sources == {"snooty-docs", "devcenter", "university"}

    def test_texts_are_unique(self):
        texts = [c.text for c in get_documentation_content()]

        assert len(texts) == len(set(texts))

    @pytest.mark.asyncio
    async def test_seed_embeds_and_inserts(self):
        embedder = MockEmbedder(dimensions=32)
        store = InMemoryContentStore(embedding_dim=32)

        count = await seed_content_store(store, embedder)

        assert count == len(get_documentation_content())
        assert len(store) == count

    @pytest.mark.asyncio
    async def test_seed_keeps_existing_embeddings(self):
        embedder = MockEmbedder(dimensions=3)
        store = InMemoryContentStore(embedding_dim=3)
        existing = content("pre-embedded", [0, 0, 1])

        await seed_content_store(store, embedder, [existing])

        results = await store.find_nearest_neighbors(
            np.array([0, 0, 1], dtype=np.float32), SearchOptions(k=1),
        )
        assert results[0].score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_seed_leaves_given_content_unembedded(self):
        items = [
            EmbeddedContent(text="Indexes support efficient queries.", source_name="snooty-docs"),
            EmbeddedContent(text="Use the ESR rule.", source_name="devcenter"),
        ]
        small = InMemoryContentStore(embedding_dim=4)
        large = InMemoryContentStore(embedding_dim=8)

        await seed_content_store(small, MockEmbedder(dimensions=4), items)
        await seed_content_store(large, MockEmbedder(dimensions=8), items)

        assert all(item.embedding is None for item in items)
        assert {len(c.embedding) for c in small._contents.values()} == {4}
        assert {len(c.embedding) for c in large._contents.values()} == {8}
