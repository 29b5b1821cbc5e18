"""PostgreSQL + pgvector vector store.

Handles:
- Atomic bulk insert of (text, vector) pairs in one statement and transaction
- Exact cosine ranking with the ``<=>`` distance operator
"""
from typing import List, Optional, Sequence

import psycopg
from psycopg import sql
from psycopg_pool import AsyncConnectionPool
import structlog

from ragu.config import Settings
from ragu.errors import StoreError
from ragu.rag.store import (
    SimilarityMatch,
    VectorStore,
    validate_batch,
    validate_query_vector,
)

logger = structlog.get_logger()

# <=> yields NaN for zero vectors and PostgreSQL sorts NaN above every number,
# so those rows are excluded explicitly.
SIMILARITY_QUERY = (
    "SELECT id, data, 1 - (embedding <=> %(query)s::vector) AS score "
    "FROM {table} "
    "WHERE (embedding <=> %(query)s::vector) <> 'NaN'::float8 "
    "AND 1 - (embedding <=> %(query)s::vector) >= %(threshold)s "
    "ORDER BY score DESC, id ASC"
)


def vector_literal(vector: Sequence[float]) -> str:
    """Render a vector in pgvector's text input format, e.g. ``[1.0,0.5]``."""
    return "[" + ",".join(repr(float(component)) for component in vector) + "]"


class PgVectorStore(VectorStore):
    """Vector store backed by a pgvector column."""

    def __init__(self, pool: AsyncConnectionPool, settings: Settings):
        """Initialize the store.

        Args:
            pool: Shared async connection pool (opened by the caller)
            settings: Provides the table name and vector dimension
        """
        self.pool = pool
        self.dimension = settings.embedding_dimension
        self.table = settings.vector_table

        logger.info("pgvector_store_initialized", table=self.table, dimension=self.dimension)

    async def bulk_insert(
        self, texts: Sequence[str], vectors: Sequence[Sequence[float]]
    ) -> int:
        validate_batch(texts, vectors, self.dimension)
        if not texts:
            return 0

        statement = sql.SQL(
            "INSERT INTO {table} (data, embedding) "
            "SELECT data, embedding::vector "
            "FROM unnest(%s::text[], %s::text[]) AS batch(data, embedding)"
        ).format(table=sql.Identifier(self.table))

        try:
            async with self.pool.connection() as conn:
                async with conn.transaction():
                    cursor = await conn.execute(
                        statement,
                        (list(texts), [vector_literal(v) for v in vectors]),
                    )
                    inserted = cursor.rowcount
        except psycopg.Error as e:
            logger.error("bulk_insert_failed", table=self.table, rows=len(texts), error=str(e))
            raise StoreError(f"Bulk insert into {self.table} failed: {e}") from e

        logger.info("vectors_added", table=self.table, count=inserted)
        return inserted

    async def similarity_query(
        self,
        query_vector: Sequence[float],
        relevance_threshold: float,
        limit: Optional[int] = None,
    ) -> List[SimilarityMatch]:
        validate_query_vector(query_vector, self.dimension)

        statement = sql.SQL(SIMILARITY_QUERY).format(table=sql.Identifier(self.table))
        params = {"query": vector_literal(query_vector), "threshold": relevance_threshold}

        if limit is not None:
            statement = statement + sql.SQL(" LIMIT %(limit)s")
            params["limit"] = limit

        try:
            async with self.pool.connection() as conn:
                cursor = await conn.execute(statement, params)
                rows = await cursor.fetchall()
        except psycopg.Error as e:
            logger.error("similarity_query_failed", table=self.table, error=str(e))
            raise StoreError(f"Similarity query on {self.table} failed: {e}") from e

        matches = [
            SimilarityMatch(record_id=row[0], text=row[1], score=float(row[2]))
            for row in rows
        ]

        logger.info(
            "vector_search_completed",
            threshold=relevance_threshold,
            results_found=len(matches),
        )
        return matches

    async def count(self) -> int:
        statement = sql.SQL("SELECT count(*) FROM {table}").format(
            table=sql.Identifier(self.table)
        )
        try:
            async with self.pool.connection() as conn:
                cursor = await conn.execute(statement)
                row = await cursor.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"Count on {self.table} failed: {e}") from e
        return row[0]
