"""
Metadata filters for nearest-neighbor queries.

A filter maps a field to either a plain value (equality) or to an
operator document, Mongo style:

    {"source_name": "snooty-docs"}
    {"version": {"$in": ["v7.0", "v8.0"]}, "metadata.page_rank": {"$gte": 3}}
    {"$and": [{"source_name": "devcenter"}, {"tags": {"$ne": "archived"}}]}

Fields text / source_name / url / version address the content item
itself. Anything else (optionally written as "metadata.<key>") addresses
its metadata mapping.

The same filter is evaluated in Python by InMemoryContentStore and
compiled to SQL by PgVectorContentStore, so both stores agree.
"""

from __future__ import annotations

import operator
from typing import Any, Callable

from psycopg import sql
from psycopg.types.json import Jsonb

from rag_context_pipeline.core.protocols import ContentItem, MetadataFilter

COLUMN_FIELDS = ("text", "source_name", "url", "version")

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}
_SET_OPERATORS = ("$in", "$nin")
_EQUALITY_OPERATORS = ("$eq", "$ne")
_SQL_OPERATORS = {
    "$eq": "=",
    "$ne": "<>",
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
}

_MISSING = object()


def combine_filters(*filters: MetadataFilter | None) -> MetadataFilter | None:
    """AND-combine filters, ignoring empty ones."""
    present = [f for f in filters if f]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return {"$and": present}


def _field_name(key: str) -> tuple[bool, str]:
    """Return (is_column, name)."""
    if key.startswith("metadata."):
        return False, key[len("metadata."):]
    return key in COLUMN_FIELDS, key


def _conditions(value: Any) -> dict[str, Any]:
    """Normalise a field condition to an operator document."""
    if isinstance(value, dict) and value and all(k.startswith("$") for k in value):
        return value
    return {"$eq": value}


def validate_filter(filter: MetadataFilter) -> None:
    """Raise ValueError on unknown operators or malformed operands."""
    for key, value in filter.items():
        if key == "$and":
            if not isinstance(value, (list, tuple)):
                raise ValueError("$and expects a list of filters")
            for sub in value:
                validate_filter(sub)
            continue
        if key.startswith("$"):
            raise ValueError(f"Unsupported top-level operator: {key}")
        for op, operand in _conditions(value).items():
            if op in _SET_OPERATORS:
                if not isinstance(operand, (list, tuple, set, frozenset)):
                    raise ValueError(f"{op} expects a list for field '{key}'")
            elif op not in _COMPARISONS:
                raise ValueError(f"Unsupported operator {op} for field '{key}'")
            elif operand is None and op not in _EQUALITY_OPERATORS:
                raise ValueError(f"{op} cannot compare field '{key}' against null")


# ---------------------------------------------------------------------------
# PYTHON EVALUATION (InMemoryContentStore)
# ---------------------------------------------------------------------------


def _lookup(item: ContentItem, key: str) -> Any:
    is_column, name = _field_name(key)
    if is_column:
        return getattr(item, name)
    return item.metadata.get(name, _MISSING)


def _compare(op: str, actual: Any, operand: Any) -> bool:
    if op in ("$in", "$nin"):
        found = actual is not _MISSING and actual in operand
        return found if op == "$in" else not found
    absent = actual is _MISSING or actual is None
    if operand is None and op in _EQUALITY_OPERATORS:
        # {"field": None} matches absent fields, {"$ne": None} present ones
        return absent if op == "$eq" else not absent
    if absent:
        # Missing fields only satisfy $ne
        return op == "$ne"
    try:
        return _COMPARISONS[op](actual, operand)
    except TypeError:
        return False


def matches_filter(item: ContentItem, filter: MetadataFilter | None) -> bool:
    """True when the item satisfies every condition of the filter."""
    if not filter:
        return True
    for key, value in filter.items():
        if key == "$and":
            if not all(matches_filter(item, sub) for sub in value):
                return False
            continue
        actual = _lookup(item, key)
        for op, operand in _conditions(value).items():
            if not _compare(op, actual, operand):
                return False
    return True


# ---------------------------------------------------------------------------
# SQL COMPILATION (PgVectorContentStore)
# ---------------------------------------------------------------------------


def compile_filter(filter: MetadataFilter | None) -> tuple[sql.Composable, list[Any]]:
    """
    Compile a filter into a parameterised WHERE fragment.

    Column fields compare directly. Metadata fields compare as jsonb
    (`metadata -> 'key'`), which orders numbers numerically and strings
    lexically, matching the Python evaluation.
    """
    if not filter:
        return sql.SQL("TRUE"), []

    clauses: list[sql.Composable] = []
    params: list[Any] = []

    for key, value in filter.items():
        if key == "$and":
            for sub in value:
                sub_sql, sub_params = compile_filter(sub)
                clauses.append(sql.SQL("({})").format(sub_sql))
                params.extend(sub_params)
            continue

        is_column, name = _field_name(key)
        if is_column:
            target = sql.Identifier(name)
        else:
            target = sql.SQL("(metadata -> {})").format(sql.Literal(name))

        def wrap(operand: Any) -> Any:
            return operand if is_column else Jsonb(operand)

        for op, operand in _conditions(value).items():
            if op in _SET_OPERATORS:
                values = list(operand)
                if not values:
                    clauses.append(sql.SQL("FALSE" if op == "$in" else "TRUE"))
                    continue
                placeholders = sql.SQL(", ").join(sql.Placeholder() * len(values))
                if op == "$in":
                    clause = sql.SQL("{} IN ({})").format(target, placeholders)
                else:
                    # Missing fields satisfy $nin
                    clause = sql.SQL("({0} IS NULL OR {0} NOT IN ({1}))").format(target, placeholders)
                clauses.append(clause)
                params.extend(wrap(v) for v in values)
            elif operand is None and op in _EQUALITY_OPERATORS:
                clauses.append(_absence_check(target, is_column, present=op == "$ne"))
            elif op == "$ne":
                clauses.append(sql.SQL("{} IS DISTINCT FROM {}").format(target, sql.Placeholder()))
                params.append(wrap(operand))
            else:
                clauses.append(
                    sql.SQL("{} {} {}").format(target, sql.SQL(_SQL_OPERATORS[op]), sql.Placeholder())
                )
                params.append(wrap(operand))

    if not clauses:
        return sql.SQL("TRUE"), params
    if len(clauses) == 1:
        return clauses[0], params
    return sql.SQL(" AND ").join(clauses), params


def _absence_check(target: sql.Composable, is_column: bool, present: bool) -> sql.Composable:
    """Test a field for SQL NULL, or for a missing or JSON null metadata key."""
    if is_column:
        return sql.SQL("{} IS NOT NULL" if present else "{} IS NULL").format(target)
    comparison = sql.SQL("<>" if present else "=")
    return sql.SQL("COALESCE({}, 'null'::jsonb) {} 'null'::jsonb").format(target, comparison)
