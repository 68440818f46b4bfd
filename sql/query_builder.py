"""
==========================
Table-bound query builder.
==========================

This module provides ``QueryBuilder``, a fluent, stateful SELECT builder bound
to one table. Configuration calls store raw SQL fragments and return the
builder; a terminal call assembles the statement, runs it through an
Executor, then resets the fragments so the same builder can serve the next
query on the same table.

Fragments are stored and emitted verbatim. Nothing is escaped, quoted or
validated: callers own the SQL-injection safety of every raw fragment they
pass. Only the values given as ``parameters`` are bound by the driver.

Section order of the assembled statement is fixed, whatever order the calls
were made in:

    SELECT <fields> FROM <table> [AS <alias>] [<joins>] [UNION <b1> UNION ...]
    [WHERE <predicate>] [GROUP BY <group> [HAVING <having>]] [ORDER BY <order>]
    [LIMIT <limit>] [OFFSET <offset>]

Usage:
    from sql.query_builder import QueryBuilder
    from utils.database_utils import Connection

    users = QueryBuilder('users', Connection.from_config())

    rows = (
        users.select('id, name')
        .where('age > ?', [18])
        .order_by('id DESC')
        .limit(10)
        .fetch_all()
    )
    total = users.where('active = ?', [True]).scalar('count(*)')

    # Table bound through a subclass
    class Users(QueryBuilder):
        table_name = 'users'
        db = Connection.from_config()

    first = Users.find().order_by('id').fetch()
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from sql.executor import Executor, FetchStyle, Row

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when a builder is used without a table name or a database."""
    pass


class QueryBuilder:
    """Fluent SELECT builder bound to a single table.

    Attributes:
        table_name: Table every statement targets
        db: Executor the statements are handed to

    Both attributes can be given to the constructor or declared on a
    subclass. A builder instance is not meant to be shared between threads.
    """

    table_name: Optional[str] = None
    db: Optional[Executor] = None

    def __init__(self, table_name: Optional[str] = None, db: Optional[Executor] = None):
        if table_name is not None:
            self.table_name = table_name
        if db is not None:
            self.db = db

        self._primary_key: Optional[str] = None
        self._reset()

    @classmethod
    def find(cls) -> 'QueryBuilder':
        """Return a fresh builder of this class."""
        return cls()

    def get_db(self) -> Executor:
        if self.db is None:
            raise ConfigurationError("Attribute `db` is not defined")
        return self.db

    def get_table_name(self) -> str:
        if not self.table_name:
            raise ConfigurationError("Attribute `table_name` is not defined")
        return self.table_name

    def get_primary_key(self) -> Optional[str]:
        """Return the table's primary key column.

        Looked up through the Executor on first use, then cached for the
        lifetime of this builder.
        """
        if self._primary_key is None:
            self._primary_key = self.get_db().primary_key(self.get_table_name())
        return self._primary_key

    def get_last_sql(self) -> Optional[str]:
        """Return the last statement the Executor ran."""
        return self.get_db().last_sql()

    # ------------------------------------------------------------------
    # Fluent configuration
    # ------------------------------------------------------------------

    def select(self, fields: str = '*') -> 'QueryBuilder':
        self._fields = fields
        return self

    def alias(self, alias: str) -> 'QueryBuilder':
        self._alias = alias
        return self

    def join(self, join: str) -> 'QueryBuilder':
        """Append a raw join clause, e.g. ``LEFT JOIN orders o ON o.user_id = u.id``."""
        self._joins.append(join)
        return self

    def union(self, union: str) -> 'QueryBuilder':
        """Append a raw SELECT statement as a UNION branch."""
        self._unions.append(union)
        return self

    def where(self, where: str, parameters: Optional[Sequence[Any]] = None) -> 'QueryBuilder':
        """Set the WHERE body and its positional parameters.

        Replaces any earlier predicate and parameters; calls are not merged.
        """
        self._where = where
        self._parameters = list(parameters) if parameters else []
        return self

    def limit(self, limit: Union[int, str], offset: Optional[Union[int, str]] = None) -> 'QueryBuilder':
        self._limit = limit
        if offset is not None:
            self._offset = offset
        return self

    def offset(self, offset: Union[int, str]) -> 'QueryBuilder':
        self._offset = offset
        return self

    def group_by(self, group: str) -> 'QueryBuilder':
        self._group = group
        return self

    def having(self, having: str) -> 'QueryBuilder':
        """Set the HAVING body. Only emitted when group_by() is also set."""
        self._having = having
        return self

    def order_by(self, order: str) -> 'QueryBuilder':
        self._order = order
        return self

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    @property
    def parameters(self) -> List[Any]:
        """Positional parameters bound to the current predicate."""
        return list(self._parameters)

    def combine_sql(self) -> str:
        """Assemble the configured fragments into one SELECT statement."""
        sql = 'SELECT '

        if self._fields:
            sql += self._fields

        sql += ' FROM ' + self.get_table_name()

        if self._alias:
            sql += ' AS ' + self._alias

        if self._joins:
            sql += ' ' + ' '.join(self._joins)

        if self._unions:
            sql += ' UNION ' + ' UNION '.join(self._unions)

        if self._where:
            sql += ' WHERE ' + self._where

        if self._group:
            sql += ' GROUP BY ' + self._group

            if self._having:
                sql += ' HAVING ' + self._having

        if self._order:
            sql += ' ORDER BY ' + self._order

        # Presence, not truthiness: LIMIT 0 / OFFSET 0 are still emitted
        if self._limit is not None:
            sql += f' LIMIT {self._limit}'

        if self._offset is not None:
            sql += f' OFFSET {self._offset}'

        return sql

    def _reset(self) -> None:
        self._fields: str = '*'
        self._alias: Optional[str] = None
        self._joins: List[str] = []
        self._unions: List[str] = []
        self._where: Optional[str] = None
        self._parameters: List[Any] = []
        self._group: Optional[str] = None
        self._having: Optional[str] = None
        self._order: Optional[str] = None
        self._limit: Optional[Union[int, str]] = None
        self._offset: Optional[Union[int, str]] = None

    # ------------------------------------------------------------------
    # Terminal reads
    # ------------------------------------------------------------------

    def fetch_all(self, fetch_style: FetchStyle = FetchStyle.ASSOC) -> List[Row]:
        """Run the assembled query and return every row.

        The builder is reset afterwards, also when the Executor raises.
        """
        try:
            db = self.get_db()
            sql = self.combine_sql()
            logger.debug(f"fetch_all: {sql} {self._parameters}")
            return db.fetch_all(sql, self._parameters, fetch_style)
        finally:
            self._reset()

    def fetch_one(self, fetch_style: FetchStyle = FetchStyle.ASSOC) -> Optional[Row]:
        """Run the assembled query and return its first row, or None.

        The builder is reset afterwards, also when the Executor raises.
        """
        try:
            db = self.get_db()
            sql = self.combine_sql()
            logger.debug(f"fetch_one: {sql} {self._parameters}")
            return db.fetch_one(sql, self._parameters, fetch_style)
        finally:
            self._reset()

    fetch = fetch_one

    def scalar(self, column: Optional[str] = None) -> Any:
        """Return the first column of the first matching row.

        Args:
            column: Optional expression to select instead of the configured
                fields, e.g. ``'count(*)'``

        Returns:
            The value, or None when no row matched or the row was empty
        """
        if column is not None:
            self.select(column)
        row = self.limit(1).fetch_one(FetchStyle.NUM)

        if row:
            return row[0]
        return None

    # ------------------------------------------------------------------
    # Terminal writes (fluent fragments do not apply)
    # ------------------------------------------------------------------

    def insert(self, data: Mapping[str, Any]) -> Any:
        """Insert one row and return its identifier."""
        return self.get_db().insert(self.get_table_name(), data)

    def update(
        self,
        data: Mapping[str, Any],
        where: str,
        parameters: Optional[Sequence[Any]] = None
    ) -> int:
        """Update rows matching ``where`` and return the affected count."""
        return self.get_db().update(self.get_table_name(), data, where, list(parameters or []))

    def delete(self, where: str = '', parameters: Optional[Sequence[Any]] = None) -> int:
        """Delete rows matching ``where`` (every row when empty)."""
        return self.get_db().delete(self.get_table_name(), where, list(parameters or []))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table_name={self.table_name!r})"
