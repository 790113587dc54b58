"""
Content store implementations.

Pattern: Protocol → Production impl → Test double → Factory

This module contains:
1. ContentStoreConfig - Configuration dataclass
2. PgVectorContentStore - PostgreSQL with pgvector (production)
3. InMemoryContentStore - In-memory store (testing/development)
4. get_content_store() - Factory function

Both stores report normalised cosine similarity, (1 + cos) / 2, so every
score lies in [0, 1] and min_score thresholds mean the same thing
regardless of backend.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import psycopg
from pgvector.psycopg import register_vector_async
from psycopg import sql
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from rag_context_pipeline.config import AppConfig, get_config
from rag_context_pipeline.core.errors import StoreQueryError
from rag_context_pipeline.core.protocols import (
    ContentItem,
    ContentStore,
    EmbeddingVector,
    MetadataFilter,
    ScoredResult,
    SearchOptions,
)
from rag_context_pipeline.retrieval.content import EmbeddedContent
from rag_context_pipeline.retrieval.filters import (
    combine_filters,
    compile_filter,
    matches_filter,
    validate_filter,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass
class ContentStoreConfig:
    """Configuration for the content store."""

    connection_string: str = "postgresql://localhost/rag_context"
    table_name: str = "embedded_content"
    embedding_dim: int = 1536
    index_name: str = "vector_index"
    index_type: str = "hnsw"  # or "ivfflat"
    pool_min_size: int = 1
    pool_max_size: int = 10
    connect_timeout: float = 30.0

    @classmethod
    def from_app_config(cls, config: AppConfig) -> "ContentStoreConfig":
        return cls(
            connection_string=config.database_url,
            table_name=config.content_table_name,
            embedding_dim=config.embedding_dim,
            index_name=config.vector_search_index_name,
        )


def _check_dimensions(vector: EmbeddingVector, expected: int | None) -> None:
    if expected is not None and len(vector) != expected:
        raise StoreQueryError(
            f"Query vector has {len(vector)} dimensions, index expects {expected}"
        )


# ---------------------------------------------------------------------------
# PGVECTOR STORE (Production)
# ---------------------------------------------------------------------------


class PgVectorContentStore:
    """
    PostgreSQL content store using pgvector over an async psycopg pool.

    WHY PGVECTOR:
    - HYBRID SEARCH: Combine vector similarity with SQL metadata filters
    - HNSW INDEX: Fast approximate nearest neighbor search
    - NO VENDOR LOCK: Open source, runs anywhere

    Concurrent pipeline runs share one store; each query borrows its own
    connection from the pool.
    """

    _COLUMNS = sql.SQL("text, source_name, url, version, metadata")

    def __init__(self, config: ContentStoreConfig):
        self.config = config
        self._pool: AsyncConnectionPool | None = None
        self._lock = asyncio.Lock()

    @staticmethod
    async def _configure_connection(conn: psycopg.AsyncConnection) -> None:
        # Runs on every new pooled connection. The vector type must exist before it can be registered.
        await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        await register_vector_async(conn)

    async def connect(self) -> None:
        """Open the connection pool. Concurrent and repeated calls open it once."""
        async with self._lock:
            if self._pool is not None:
                return

            pool = AsyncConnectionPool(
                self.config.connection_string,
                min_size=self.config.pool_min_size,
                max_size=self.config.pool_max_size,
                kwargs={"autocommit": True},
                configure=self._configure_connection,
                open=False,
            )
            try:
                await pool.open(wait=True, timeout=self.config.connect_timeout)
            except psycopg.Error as e:
                await pool.close()
                raise StoreQueryError(f"Could not connect to content store: {e}") from e

            self._pool = pool
            logger.debug(f"{self.config.table_name}: connection pool open")

    async def close(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is not None:
                await self._pool.close()
                self._pool = None

    async def _get_pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            await self.connect()
        return self._pool

    async def create_schema(self) -> None:
        """Create the content table and its indexes."""
        pool = await self._get_pool()

        table = sql.Identifier(self.config.table_name)
        if self.config.index_type == "ivfflat":
            index_method = sql.SQL("ivfflat (embedding vector_cosine_ops) WITH (lists = 100)")
        else:
            index_method = sql.SQL("hnsw (embedding vector_cosine_ops) WITH (m = 16, ef_construction = 64)")

        async with pool.connection() as conn:
            await conn.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {table} (
                        id BIGSERIAL PRIMARY KEY,
                        text TEXT NOT NULL UNIQUE,
                        source_name TEXT NOT NULL,
                        url TEXT NOT NULL DEFAULT '',
                        version TEXT,
                        metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                        embedding vector({dim})
                    )
                    """
                ).format(table=table, dim=sql.Literal(self.config.embedding_dim))
            )

            # Vector index for nearest-neighbor search
            await conn.execute(
                sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} USING {method}").format(
                    index=sql.Identifier(self.config.index_name),
                    table=table,
                    method=index_method,
                )
            )

            # GIN index for metadata filtering
            await conn.execute(
                sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} USING GIN (metadata)").format(
                    index=sql.Identifier(f"{self.config.table_name}_metadata_idx"),
                    table=table,
                )
            )

            await conn.execute(
                sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} (source_name)").format(
                    index=sql.Identifier(f"{self.config.table_name}_source_name_idx"),
                    table=table,
                )
            )

    async def insert_content(self, contents: Sequence[EmbeddedContent]) -> None:
        """Upsert content keyed on its text."""
        for content in contents:
            if content.embedding is None:
                raise ValueError(f"Content from {content.url or content.source_name} has no embedding")

        pool = await self._get_pool()
        query = sql.SQL(
            """
            INSERT INTO {table} (text, source_name, url, version, metadata, embedding)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (text) DO UPDATE SET
                source_name = EXCLUDED.source_name,
                url = EXCLUDED.url,
                version = EXCLUDED.version,
                metadata = EXCLUDED.metadata,
                embedding = EXCLUDED.embedding
            """
        ).format(table=sql.Identifier(self.config.table_name))

        async with pool.connection() as conn:
            for content in contents:
                await conn.execute(
                    query,
                    (
                        content.text,
                        content.source_name,
                        content.url,
                        content.version,
                        Jsonb(content.metadata),
                        content.embedding,
                    ),
                )

    def build_query(
        self,
        vector: EmbeddingVector,
        options: SearchOptions,
        filter: MetadataFilter | None = None,
    ) -> tuple[sql.Composed, list]:
        """Compile the nearest-neighbor query and its parameters."""
        where, where_params = compile_filter(combine_filters(options.filter, filter))
        distance = sql.SQL("({} <=> {})").format(sql.Identifier(options.path), sql.Placeholder())
        score = sql.SQL("((2 - {}) / 2)").format(distance)

        query = sql.SQL(
            """
            SELECT {columns}, {score} AS score
            FROM {table}
            WHERE ({where}) AND {score} >= {min_score}
            ORDER BY {distance}
            LIMIT {limit}
            """
        ).format(
            columns=self._COLUMNS,
            score=score,
            table=sql.Identifier(self.config.table_name),
            where=where,
            min_score=sql.Placeholder(),
            distance=distance,
            limit=sql.Placeholder(),
        )
        params = [vector, *where_params, vector, options.min_score, vector, options.k]
        return query, params

    async def find_nearest_neighbors(
        self,
        vector: EmbeddingVector,
        options: SearchOptions,
        filter: MetadataFilter | None = None,
    ) -> list[ScoredResult]:
        """Search for the nearest content with optional metadata filter."""
        _check_dimensions(vector, self.config.embedding_dim)
        try:
            validate_filter(combine_filters(options.filter, filter) or {})
        except ValueError as e:
            raise StoreQueryError(str(e)) from e

        pool = await self._get_pool()
        query, params = self.build_query(vector, options, filter)
        try:
            async with pool.connection() as conn:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
        except psycopg.Error as e:
            raise StoreQueryError(f"Nearest-neighbor query failed: {e}") from e

        logger.debug(f"{self.config.table_name}: {len(rows)} results for k={options.k}")
        return [
            ScoredResult(
                content=ContentItem(
                    text=row[0],
                    source_name=row[1],
                    url=row[2] or "",
                    version=row[3],
                    metadata=row[4] or {},
                ),
                score=float(row[5]),
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryContentStore:
    """
    In-memory content store for development/testing.

    Implements the same interface as PgVectorContentStore but doesn't
    require Postgres. Ties keep insertion order.
    """

    def __init__(self, embedding_dim: int | None = None):
        self.embedding_dim = embedding_dim
        self._contents: dict[str, EmbeddedContent] = {}

    def __len__(self) -> int:
        return len(self._contents)

    async def connect(self) -> None:
        """No-op for in-memory store."""
        pass

    async def close(self) -> None:
        """No-op for in-memory store."""
        pass

    async def create_schema(self) -> None:
        """No-op for in-memory store."""
        pass

    async def insert_content(self, contents: Sequence[EmbeddedContent]) -> None:
        """Upsert content keyed on its text."""
        for content in contents:
            if content.embedding is None:
                raise ValueError(f"Content from {content.url or content.source_name} has no embedding")
            _check_dimensions(content.embedding, self.embedding_dim)
            self._contents[content.text] = content

    @staticmethod
    def _similarity(a: np.ndarray, b: np.ndarray) -> float:
        """Cosine similarity mapped onto [0, 1]."""
        denom = float(np.linalg.norm(a) * np.linalg.norm(b))
        cosine = float(np.dot(a, b)) / denom if denom else 0.0
        return min(1.0, max(0.0, (1.0 + cosine) / 2.0))

    async def find_nearest_neighbors(
        self,
        vector: EmbeddingVector,
        options: SearchOptions,
        filter: MetadataFilter | None = None,
    ) -> list[ScoredResult]:
        """Search using cosine similarity."""
        _check_dimensions(vector, self.embedding_dim)
        if options.path != "embedding":
            raise StoreQueryError(f"Unknown vector path: {options.path}")

        combined = combine_filters(options.filter, filter)
        try:
            validate_filter(combined or {})
        except ValueError as e:
            raise StoreQueryError(str(e)) from e

        scored = []
        for content in self._contents.values():
            if len(content.embedding) != len(vector):
                raise StoreQueryError(
                    f"Query vector has {len(vector)} dimensions, stored content has {len(content.embedding)}"
                )
            item = content.to_content_item()
            if not matches_filter(item, combined):
                continue
            score = self._similarity(vector, content.embedding)
            if score >= options.min_score:
                scored.append(ScoredResult(content=item, score=score))

        # Sort by score descending
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:options.k]


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_content_store(
    use_postgres: bool | None = None,
    config: AppConfig | None = None,
) -> ContentStore:
    """
    Factory function to get the appropriate content store.

    Args:
        use_postgres: Use PostgreSQL store (defaults to USE_POSTGRES)
        config: App configuration (uses the global config if not provided)

    Returns:
        ContentStore implementation
    """
    config = config or get_config()
    if use_postgres is None:
        use_postgres = config.use_postgres

    if use_postgres:
        return PgVectorContentStore(ContentStoreConfig.from_app_config(config))
    return InMemoryContentStore(embedding_dim=config.embedding_dim)
