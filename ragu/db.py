"""PostgreSQL connection pool and schema helpers.

The pool is shared by the ingestion and query paths. Schema creation here is
a convenience for fresh databases (``ragu init-db``); production schemas are
expected to be managed by migrations.
"""
from psycopg import sql
from psycopg_pool import AsyncConnectionPool
import structlog

from ragu.config import Settings

logger = structlog.get_logger()


def create_pool(settings: Settings) -> AsyncConnectionPool:
    """Create an unopened async connection pool.

    Callers open it with ``await pool.open()`` or ``async with pool``.
    """
    return AsyncConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.db_pool_min,
        max_size=settings.db_pool_max,
        open=False,
    )


async def init_database(pool: AsyncConnectionPool, settings: Settings) -> None:
    """Create the pgvector extension and the embeddings table if missing.

    Table layout:
    - id: bigserial primary key (tie-breaker for equal scores)
    - data: the normalized row text
    - embedding: vector of ``settings.embedding_dimension`` components
    """
    table = sql.Identifier(settings.vector_table)

    async with pool.connection() as conn:
        async with conn.transaction():
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            await conn.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {table} (
                        id BIGSERIAL PRIMARY KEY,
                        data TEXT NOT NULL,
                        embedding vector({dimension}) NOT NULL
                    )
                    """
                ).format(
                    table=table,
                    dimension=sql.Literal(settings.embedding_dimension),
                )
            )

    logger.info(
        "database_initialized",
        table=settings.vector_table,
        dimension=settings.embedding_dimension,
    )
