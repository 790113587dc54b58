"""
Unit Tests for metadata filters

The same filter is evaluated in Python (InMemoryContentStore) and
compiled to SQL (PgVectorContentStore). SQL output is checked through
its parameters, which needs no database connection.
"""

import pytest
from psycopg import sql
from psycopg.types.json import Jsonb

from rag_context_pipeline.core import ContentItem
from rag_context_pipeline.retrieval.filters import (
    combine_filters,
    compile_filter,
    matches_filter,
    validate_filter,
)


@pytest.fixture
def item():
    return ContentItem(
        text="The $lookup stage performs a left outer join.",
        source_name="snooty-docs",
        url="https://www.mongodb.com/docs/manual/reference/operator/aggregation/lookup/",
        version="v7.0",
        metadata={"page_rank": 4, "tags": "aggregation"},
    )


# ---------------------------------------------------------------------------
# COMBINE
# ---------------------------------------------------------------------------


class TestCombineFilters:
    """Test AND-combination of filters."""

    def test_nothing_to_combine(self):
        assert combine_filters(None, {}) is None

    def test_single_filter_returned_as_is(self):
        f = {"source_name": "devcenter"}
        assert combine_filters(None, f) is f

    def test_multiple_filters(self):
        a = {"source_name": "devcenter"}
        b = {"version": "v7.0"}

        assert combine_filters(a, b) == {"$and": [a, b]}


# ---------------------------------------------------------------------------
# VALIDATION
# ---------------------------------------------------------------------------


class TestValidateFilter:
    """Test filter validation."""

    def test_valid_filter(self):
        validate_filter({
            "source_name": "snooty-docs",
            "version": {"$in": ["v6.0", "v7.0"]},
            "$and": [{"metadata.page_rank": {"$gte": 3}}],
        })

    def test_unknown_operator(self):
        with pytest.raises(ValueError, match=r"\$regex"):
            validate_filter({"text": {"$regex": "join"}})

    def test_unknown_top_level_operator(self):
        with pytest.raises(ValueError):
            validate_filter({"$or": [{"source_name": "a"}]})

    def test_in_requires_list(self):
        with pytest.raises(ValueError):
            validate_filter({"version": {"$in": "v7.0"}})

    def test_and_requires_list(self):
        with pytest.raises(ValueError):
            validate_filter({"$and": {"source_name": "a"}})

    def test_ordering_against_null_rejected(self):
        with pytest.raises(ValueError, match="null"):
            validate_filter({"metadata.page_rank": {"$gt": None}})

    def test_null_equality_allowed(self):
        validate_filter({"version": None, "metadata.author": {"$ne": None}})


# ---------------------------------------------------------------------------
# PYTHON EVALUATION
# ---------------------------------------------------------------------------


class TestMatchesFilter:
    """Test in-process filter evaluation."""

    def test_no_filter_matches(self, item):
        assert matches_filter(item, None) is True
        assert matches_filter(item, {}) is True

    def test_equality_on_column(self, item):
        assert matches_filter(item, {"source_name": "snooty-docs"}) is True
        assert matches_filter(item, {"source_name": "devcenter"}) is False

    def test_metadata_field(self, item):
        assert matches_filter(item, {"tags": "aggregation"}) is True
        assert matches_filter(item, {"metadata.tags": "aggregation"}) is True

    def test_comparisons(self, item):
        assert matches_filter(item, {"metadata.page_rank": {"$gte": 4}}) is True
        assert matches_filter(item, {"metadata.page_rank": {"$gt": 4}}) is False
        assert matches_filter(item, {"metadata.page_rank": {"$lt": 5, "$gt": 1}}) is True

    def test_in_and_nin(self, item):
        assert matches_filter(item, {"version": {"$in": ["v6.0", "v7.0"]}}) is True
        assert matches_filter(item, {"version": {"$nin": ["v6.0", "v7.0"]}}) is False

    def test_missing_field(self, item):
        assert matches_filter(item, {"metadata.author": "someone"}) is False
        assert matches_filter(item, {"metadata.author": {"$ne": "someone"}}) is True
        assert matches_filter(item, {"metadata.author": {"$nin": ["someone"]}}) is True
        assert matches_filter(item, {"metadata.author": {"$in": ["someone"]}}) is False

    def test_none_version(self):
        item = ContentItem(text="t", source_name="devcenter")

        assert matches_filter(item, {"version": {"$ne": "v7.0"}}) is True
        assert matches_filter(item, {"version": {"$gte": "v6.0"}}) is False

    def test_incomparable_types_do_not_match(self, item):
        assert matches_filter(item, {"metadata.page_rank": {"$gt": "three"}}) is False

    def test_and(self, item):
        assert matches_filter(item, {"$and": [{"source_name": "snooty-docs"}, {"version": "v7.0"}]}) is True
        assert matches_filter(item, {"$and": [{"source_name": "snooty-docs"}, {"version": "v8.0"}]}) is False

    def test_empty_and_matches(self, item):
        assert matches_filter(item, {"$and": []}) is True

    def test_null_equality_matches_absent_fields(self, item):
        stored_null = ContentItem(text="t", source_name="devcenter", metadata={"author": None})

        assert matches_filter(item, {"metadata.author": None}) is True
        assert matches_filter(item, {"metadata.author": {"$ne": None}}) is False
        assert matches_filter(stored_null, {"metadata.author": None}) is True
        assert matches_filter(stored_null, {"metadata.author": {"$ne": None}}) is False
        assert matches_filter(item, {"metadata.tags": {"$ne": None}}) is True
        assert matches_filter(item, {"version": None}) is False
        assert matches_filter(ContentItem(text="t", source_name="devcenter"), {"version": None}) is True


# ---------------------------------------------------------------------------
# SQL COMPILATION
# ---------------------------------------------------------------------------


class TestCompileFilter:
    """Test SQL compilation through the parameters it produces."""

    def test_no_filter(self):
        clause, params = compile_filter(None)

        assert isinstance(clause, sql.Composable)
        assert params == []

    def test_column_equality_passes_plain_value(self):
        clause, params = compile_filter({"source_name": "snooty-docs"})

        assert isinstance(clause, sql.Composable)
        assert params == ["snooty-docs"]

    def test_metadata_values_are_jsonb(self):
        _, params = compile_filter({"metadata.page_rank": {"$gte": 3}})

        assert len(params) == 1
        assert isinstance(params[0], Jsonb)
        assert params[0].obj == 3

    def test_in_produces_one_param_per_value(self):
        _, params = compile_filter({"version": {"$in": ["v6.0", "v7.0"]}})

        assert params == ["v6.0", "v7.0"]

    def test_empty_in_has_no_params(self):
        _, params = compile_filter({"version": {"$in": []}})

        assert params == []

    def test_and_concatenates_params_in_order(self):
        _, params = compile_filter({
            "$and": [{"source_name": "devcenter"}, {"version": {"$ne": "v5.0"}}],
        })

        assert params == ["devcenter", "v5.0"]

    def test_empty_and_compiles_to_true(self):
        clause, params = compile_filter({"$and": []})

        assert clause == sql.SQL("TRUE")
        assert params == []

    def test_null_comparison_on_column_uses_is_null(self):
        eq_clause, eq_params = compile_filter({"version": None})
        ne_clause, ne_params = compile_filter({"version": {"$ne": None}})

        assert eq_clause == sql.SQL("{} IS NULL").format(sql.Identifier("version"))
        assert ne_clause == sql.SQL("{} IS NOT NULL").format(sql.Identifier("version"))
        assert eq_params == ne_params == []

    def test_null_comparison_on_metadata_binds_no_jsonb_null(self):
        _, params = compile_filter({"metadata.author": {"$ne": None}})

        assert params == []
