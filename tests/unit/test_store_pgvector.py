"""Unit tests for the pgvector store (database replaced by a recording fake)."""
import asyncio
from contextlib import asynccontextmanager

import psycopg
from psycopg import sql
import pytest

from ragu.errors import ShapeMismatchError, StoreError
from ragu.rag.store_pgvector import SIMILARITY_QUERY, PgVectorStore, vector_literal


class FakeCursor:
    def __init__(self, rows, rowcount):
        self._rows = rows
        self.rowcount = rowcount

    async def fetchall(self):
        return self._rows

    async def fetchone(self):
        return self._rows[0]


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    @asynccontextmanager
    async def transaction(self):
        self.pool.transactions += 1
        yield

    async def execute(self, statement, params=None):
        if self.pool.error is not None:
            raise self.pool.error
        self.pool.executed.append(params)
        self.pool.statements.append(statement)
        return FakeCursor(self.pool.rows, self.pool.rowcount)


class FakePool:
    def __init__(self, rows=None, rowcount=0, error=None):
        self.rows = rows or []
        self.rowcount = rowcount
        self.error = error
        self.executed = []
        self.statements = []
        self.transactions = 0

    @asynccontextmanager
    async def connection(self):
        yield FakeConnection(self)


def make_store(settings, pool):
    return PgVectorStore(pool, settings)


def test_vector_literal():
    assert vector_literal([1, 0.5, -2.25]) == "[1.0,0.5,-2.25]"


class TestBulkInsert:
    """Tests for bulk insertion."""

    def test_single_statement_in_one_transaction(self, settings):
        pool = FakePool(rowcount=2)
        store = make_store(settings, pool)

        inserted = asyncio.run(store.bulk_insert(["Alice, 30", "Bob, 25"], [[1, 0], [0, 1]]))

        assert inserted == 2
        assert pool.transactions == 1
        assert pool.executed == [(["Alice, 30", "Bob, 25"], ["[1.0,0.0]", "[0.0,1.0]"])]

    def test_dimension_checked_before_database(self, settings):
        pool = FakePool()
        with pytest.raises(ShapeMismatchError):
            asyncio.run(make_store(settings, pool).bulk_insert(["a"], [[1.0, 2.0, 3.0]]))
        assert pool.executed == []

    def test_length_checked_before_database(self, settings):
        pool = FakePool()
        with pytest.raises(ShapeMismatchError):
            asyncio.run(make_store(settings, pool).bulk_insert(["a", "b"], [[1.0, 2.0]]))
        assert pool.executed == []

    def test_database_error_wrapped(self, settings):
        pool = FakePool(error=psycopg.OperationalError("connection lost"))
        with pytest.raises(StoreError):
            asyncio.run(make_store(settings, pool).bulk_insert(["a"], [[1.0, 2.0]]))


class TestSimilarityQuery:
    """Tests for ranked queries."""

    def test_rows_become_matches(self, settings):
        pool = FakePool(rows=[(1, "Alice, 30", 0.99), (7, "Carol, 41", 0.61)])
        matches = asyncio.run(make_store(settings, pool).similarity_query([0.9, 0.1], 0.5))

        assert [(m.record_id, m.text) for m in matches] == [(1, "Alice, 30"), (7, "Carol, 41")]
        assert pool.executed == [{"query": "[0.9,0.1]", "threshold": 0.5}]

    def test_limit_passed_as_parameter(self, settings):
        pool = FakePool()
        asyncio.run(make_store(settings, pool).similarity_query([0.9, 0.1], 0.5, limit=3))
        assert pool.executed[0]["limit"] == 3

    def test_undefined_scores_excluded(self, settings):
        pool = FakePool()
        asyncio.run(make_store(settings, pool).similarity_query([0.0, 0.0], -1.0))

        assert pool.statements == [
            sql.SQL(SIMILARITY_QUERY).format(table=sql.Identifier(settings.vector_table))
        ]
        assert "(embedding <=> %(query)s::vector) <> 'NaN'::float8" in SIMILARITY_QUERY

    def test_query_dimension_checked(self, settings):
        pool = FakePool()
        with pytest.raises(ShapeMismatchError):
            asyncio.run(make_store(settings, pool).similarity_query([1.0], 0.5))
        assert pool.executed == []

    def test_count(self, settings):
        pool = FakePool(rows=[(12,)])
        assert asyncio.run(make_store(settings, pool).count()) == 12
