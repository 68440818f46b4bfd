"""
Shared fixtures and fakes for sql/ module tests.

Key fixtures:
- fake_executor: in-memory Executor that records every call.
- builder_factory: returns a QueryBuilder bound to a table and the fake executor.
"""

import pytest


class FakeExecutor:
    """
    Executor double that records calls and returns canned results.

    Attributes:
        rows: Rows returned by fetch_all; the first one by fetch_one
        error: Exception raised by fetch_one/fetch_all when set
        calls: List of (method_name, args) tuples in call order
    """

    def __init__(self, rows=None, error=None, primary_key='id'):
        self.rows = rows if rows is not None else []
        self.error = error
        self.pk = primary_key
        self.calls = []
        self._last_sql = None

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in ('fetch_one', 'fetch_all', 'execute'):
            self._last_sql = args[0]

    def execute(self, sql, parameters=None):
        self._record('execute', sql, parameters)
        return len(self.rows)

    def fetch_one(self, sql, parameters=None, fetch_style=None):
        self._record('fetch_one', sql, parameters, fetch_style)
        if self.error:
            raise self.error
        return self.rows[0] if self.rows else None

    def fetch_all(self, sql, parameters=None, fetch_style=None):
        self._record('fetch_all', sql, parameters, fetch_style)
        if self.error:
            raise self.error
        return list(self.rows)

    def insert(self, table, data):
        self._record('insert', table, data)
        return 42

    def update(self, table, data, where, parameters=None):
        self._record('update', table, data, where, parameters)
        return 3

    def delete(self, table, where='', parameters=None):
        self._record('delete', table, where, parameters)
        return 2

    def primary_key(self, table):
        self._record('primary_key', table)
        return self.pk

    def last_sql(self):
        return self._last_sql


@pytest.fixture
def fake_executor():
    """Provide an empty FakeExecutor."""
    return FakeExecutor()


@pytest.fixture
def builder_factory(fake_executor):
    """
    Factory that creates a QueryBuilder on the shared fake executor.

    Note: Import is done inside the fixture so collection does not depend on
    the sql package importing cleanly.
    """
    def factory(table_name='users', db=fake_executor):
        from sql.query_builder import QueryBuilder
        return QueryBuilder(table_name, db)

    return factory
