"""
===============================
Executor collaborator contract.
===============================

The query builder never talks to a database driver itself. It hands the
assembled SQL text and its positional parameters to an object satisfying
the ``Executor`` protocol below. ``utils.database_utils.Connection`` is the
SQLAlchemy-backed implementation; tests use in-memory fakes.

Placeholders are ``?`` positional markers. An executor is free to translate
them to its driver's paramstyle.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

Row = Union[Dict[str, Any], Tuple[Any, ...]]


class FetchStyle(str, Enum):
    """Shape of fetched rows.

    ASSOC rows are dicts keyed by column name, NUM rows are tuples in
    column order.
    """

    ASSOC = 'assoc'
    NUM = 'num'


@runtime_checkable
class Executor(Protocol):
    """Runs SQL on behalf of a QueryBuilder."""

    def execute(self, sql: str, parameters: Optional[Sequence[Any]] = None) -> int:
        """Run a statement and return the number of affected rows."""
        ...

    def fetch_one(
        self,
        sql: str,
        parameters: Optional[Sequence[Any]] = None,
        fetch_style: FetchStyle = FetchStyle.ASSOC
    ) -> Optional[Row]:
        """Return the first row, or None when the query matched nothing."""
        ...

    def fetch_all(
        self,
        sql: str,
        parameters: Optional[Sequence[Any]] = None,
        fetch_style: FetchStyle = FetchStyle.ASSOC
    ) -> List[Row]:
        """Return every row in result order."""
        ...

    def insert(self, table: str, data: Mapping[str, Any]) -> Any:
        """Insert one row and return the last inserted identifier."""
        ...

    def update(
        self,
        table: str,
        data: Mapping[str, Any],
        where: str,
        parameters: Optional[Sequence[Any]] = None
    ) -> int:
        """Update matching rows and return the affected row count."""
        ...

    def delete(
        self,
        table: str,
        where: str = '',
        parameters: Optional[Sequence[Any]] = None
    ) -> int:
        """Delete matching rows and return the affected row count."""
        ...

    def primary_key(self, table: str) -> Optional[str]:
        """Return the table's primary key column, or None if it has none."""
        ...

    def last_sql(self) -> Optional[str]:
        """Return the text of the most recently executed statement."""
        ...
