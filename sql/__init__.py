"""
====================================================
SQL package for the table-bound query builder.
====================================================

This package holds the query builder, the Executor contract it depends on,
and the statement builders behind its write operations.

The package follows a clear organization:
    - query_builder.py: QueryBuilder, the fluent table-bound SELECT builder
    - executor.py: Executor protocol and FetchStyle
    - dml.py: INSERT/UPDATE/DELETE statement builders (positional placeholders)

Architecture:
    - query_builder.py depends on executor.py only (never on a driver)
    - dml.py is pure functions (no side effects), used by Executor implementations

Example:
    >>> from sql import QueryBuilder
    >>>
    >>> users = QueryBuilder('users', db=connection)
    >>> users.select('id, name').where('age > ?', [18]).limit(10).combine_sql()
    'SELECT id, name FROM users WHERE age > ? LIMIT 10'
"""

__version__ = "1.0.0"
__all__ = [
    'QueryBuilder', 'ConfigurationError',
    'Executor', 'FetchStyle', 'Row',
    'insert_sql', 'update_sql', 'delete_sql'
]

from .dml import delete_sql, insert_sql, update_sql
from .executor import Executor, FetchStyle, Row
from .query_builder import ConfigurationError, QueryBuilder
