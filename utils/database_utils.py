"""
==================================================
Database connectivity for the query builder.
==================================================

Provides the SQLAlchemy-backed ``Connection`` that executes what the query
builder assembles, plus engine creation and PostgreSQL health checks.

``Connection`` satisfies ``sql.executor.Executor``: statements arrive with
``?`` positional placeholders and are rewritten to the driver's paramstyle
before they are run with ``exec_driver_sql``. Each call runs in its own
transaction (``engine.begin()``), so writes are committed on return.

Key Features:
    - Engine creation from config with connection pooling
    - Paramstyle translation (qmark, numeric, named, format, pyformat)
    - Row shaping into dicts or tuples
    - Primary key discovery through SQLAlchemy inspection
    - Database availability checking with retries

Example:
    >>> from utils.database_utils import Connection, wait_for_database
    >>>
    >>> wait_for_database(max_retries=5)
    >>> db = Connection.from_config()
    >>> db.fetch_all("SELECT id, name FROM users WHERE age > ?", [18])
    [{'id': 1, 'name': 'Ada'}]
"""

import logging
import re
import time
from itertools import count
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import psycopg2
from psycopg2 import OperationalError
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import URL, CursorResult, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from core.config import config
from sql.dml import delete_sql, insert_sql, update_sql
from sql.executor import FetchStyle, Row

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\?")


class DatabaseConnectionError(Exception):
    """Exception raised when the database never becomes reachable."""
    pass


class QueryExecutionError(Exception):
    """Exception raised when the database rejects or fails a statement.

    The underlying SQLAlchemy error is available as ``__cause__``.
    """
    pass


def create_sqlalchemy_engine(
    url: Optional[Union[str, URL]] = None,
    echo: Optional[bool] = None,
    pool_size: Optional[int] = None,
    max_overflow: Optional[int] = None
) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    Args:
        url: Database URL (defaults to DATABASE_URL, else the POSTGRES_* settings)
        echo: Enable SQL statement logging (defaults to config)
        pool_size: Connection pool size (defaults to config)
        max_overflow: Maximum overflow connections (defaults to config)

    Returns:
        Configured SQLAlchemy Engine

    Example:
        >>> engine = create_sqlalchemy_engine()
        >>> sqlite_engine = create_sqlalchemy_engine('sqlite:///local.db')
    """
    db = config.db

    if url is None:
        if db.url:
            url = db.url
        else:
            url = URL.create(
                drivername='postgresql',
                username=db.user,
                password=db.password,
                host=db.host,
                port=db.port,
                database=db.database
            )

    connection_url = make_url(url)
    kwargs: Dict[str, Any] = {
        'echo': db.echo if echo is None else echo,
        'pool_pre_ping': True
    }

    # SQLite uses a single-connection pool that rejects sizing arguments
    if connection_url.get_backend_name() != 'sqlite':
        kwargs['pool_size'] = db.pool_size if pool_size is None else pool_size
        kwargs['max_overflow'] = db.max_overflow if max_overflow is None else max_overflow

    return create_engine(connection_url, **kwargs)


class Connection:
    """SQLAlchemy implementation of the query builder's Executor.

    Every ``?`` in a statement that has parameters is rewritten for the
    driver, including ``?`` inside string literals and the PostgreSQL JSONB
    operators ``?``, ``?|`` and ``?&``. Use the function forms
    (``jsonb_exists``, ``jsonb_exists_any``, ``jsonb_exists_all``) in
    parameterised predicates.

    Attributes:
        engine: Engine every statement is run on

    Example:
        >>> db = Connection(create_engine('sqlite://'))
        >>> db.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
        >>> db.insert('users', {'name': 'Ada'})
        1
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._last_sql: Optional[str] = None
        self._primary_keys: Dict[str, Optional[str]] = {}

    @classmethod
    def from_config(cls, **engine_kwargs) -> 'Connection':
        """Build a Connection on an engine created from core.config."""
        return cls(create_sqlalchemy_engine(**engine_kwargs))

    def last_sql(self) -> Optional[str]:
        """Return the last statement run, as passed in (``?`` placeholders)."""
        return self._last_sql

    def _driver_statement(
        self,
        sql: str,
        parameters: Sequence[Any]
    ) -> Tuple[str, Union[Tuple[Any, ...], Dict[str, Any]]]:
        """Rewrite ``?`` placeholders for the engine's DB-API paramstyle."""
        params = tuple(parameters)
        paramstyle = self.engine.dialect.paramstyle

        if paramstyle == 'qmark':
            return sql, params

        if paramstyle in ('format', 'pyformat'):
            return _PLACEHOLDER.sub('%s', sql.replace('%', '%%')), params

        if paramstyle == 'numeric':
            position = count(1)
            return _PLACEHOLDER.sub(lambda _: f":{next(position)}", sql), params

        if paramstyle == 'named':
            position = count(1)
            statement = _PLACEHOLDER.sub(lambda _: f":p{next(position)}", sql)
            return statement, {f"p{i}": value for i, value in enumerate(params, start=1)}

        raise QueryExecutionError(f"Unsupported DB-API paramstyle: {paramstyle}")

    def _run(
        self,
        sql: str,
        parameters: Optional[Sequence[Any]],
        handler: Callable[[CursorResult], Any]
    ) -> Any:
        self._last_sql = sql
        logger.debug(f"Executing: {sql} {list(parameters or [])}")

        try:
            with self.engine.begin() as conn:
                if parameters:
                    statement, params = self._driver_statement(sql, parameters)
                    result = conn.exec_driver_sql(statement, params)
                else:
                    result = conn.exec_driver_sql(sql)
                return handler(result)
        except SQLAlchemyError as e:
            logger.error(f"Query failed: {sql}: {e}")
            raise QueryExecutionError(f"Query failed: {e}") from e

    @staticmethod
    def _shape(row, fetch_style: FetchStyle) -> Row:
        if fetch_style == FetchStyle.NUM:
            return tuple(row)
        return dict(row._mapping)

    def execute(self, sql: str, parameters: Optional[Sequence[Any]] = None) -> int:
        """Run a statement and return the affected row count."""
        return self._run(sql, parameters, lambda result: result.rowcount)

    def fetch_one(
        self,
        sql: str,
        parameters: Optional[Sequence[Any]] = None,
        fetch_style: FetchStyle = FetchStyle.ASSOC
    ) -> Optional[Row]:
        """Return the first row, or None when nothing matched."""
        def handler(result):
            row = result.first()
            return None if row is None else self._shape(row, fetch_style)

        return self._run(sql, parameters, handler)

    def fetch_all(
        self,
        sql: str,
        parameters: Optional[Sequence[Any]] = None,
        fetch_style: FetchStyle = FetchStyle.ASSOC
    ) -> List[Row]:
        """Return every row in result order."""
        return self._run(
            sql,
            parameters,
            lambda result: [self._shape(row, fetch_style) for row in result.all()]
        )

    def insert(self, table: str, data: Mapping[str, Any]) -> Any:
        """
        Insert one row.

        On dialects supporting INSERT ... RETURNING the primary key column is
        returned by the statement itself (psycopg2 reports the row OID as
        lastrowid, which is 0 on current PostgreSQL). Elsewhere, and for
        tables without a primary key, the driver's lastrowid is used.

        Returns:
            The inserted row's identifier
        """
        columns = list(data)
        values = [data[col] for col in columns]

        returning = None
        if getattr(self.engine.dialect, 'insert_returning', False):
            if table not in self._primary_keys:
                self._primary_keys[table] = self.primary_key(table)
            returning = self._primary_keys[table]

        if returning:
            return self._run(
                insert_sql(table, columns, returning=returning),
                values,
                lambda result: result.scalar()
            )
        return self._run(insert_sql(table, columns), values, lambda result: result.lastrowid)

    def update(
        self,
        table: str,
        data: Mapping[str, Any],
        where: str,
        parameters: Optional[Sequence[Any]] = None
    ) -> int:
        """Update rows matching ``where``; SET values bind before ``parameters``."""
        columns = list(data)
        values = [data[col] for col in columns] + list(parameters or [])
        return self.execute(update_sql(table, columns, where), values)

    def delete(
        self,
        table: str,
        where: str = '',
        parameters: Optional[Sequence[Any]] = None
    ) -> int:
        """Delete rows matching ``where``; every row when it is empty."""
        return self.execute(delete_sql(table, where), parameters)

    def primary_key(self, table: str) -> Optional[str]:
        """Return the first primary key column of ``table``, or None."""
        try:
            constraint = inspect(self.engine).get_pk_constraint(table)
        except SQLAlchemyError as e:
            logger.error(f"Failed to inspect primary key of {table}: {e}")
            raise QueryExecutionError(f"Failed to inspect primary key of {table}: {e}") from e

        columns = constraint.get('constrained_columns') or []
        return columns[0] if columns else None

    def dispose(self) -> None:
        """Close every pooled connection of the engine."""
        self.engine.dispose()


def check_database_available(
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None,
    timeout: int = 5
) -> bool:
    """
    Check if the PostgreSQL server accepts connections.

    Probes the POSTGRES_* settings with psycopg2. A DATABASE_URL override is
    not consulted, so pass host and port explicitly when it points elsewhere.

    Args:
        host: Database hostname (defaults to config)
        port: Database port (defaults to config)
        user: Database user (defaults to config)
        password: Database password (defaults to config)
        database: Database name (defaults to config)
        timeout: Connection timeout in seconds

    Returns:
        True if database is available, False otherwise
    """
    try:
        conn = psycopg2.connect(
            host=host or config.db_host,
            port=port or config.db_port,
            user=user or config.db_user,
            password=password or config.db_password,
            database=database or config.db_name,
            connect_timeout=timeout
        )
        conn.close()
        return True
    except OperationalError as e:
        logger.debug(f"Database not available: {e}")
        return False


def wait_for_database(
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None,
    max_retries: int = 10,
    retry_delay: int = 2,
    timeout: int = 5
) -> bool:
    """
    Wait for PostgreSQL to become available with retries.

    Like check_database_available, this probes the POSTGRES_* settings (or
    the explicit arguments), never a DATABASE_URL override.

    Args:
        host: Database hostname (defaults to config)
        port: Database port (defaults to config)
        user: Database user (defaults to config)
        password: Database password (defaults to config)
        database: Database name (defaults to config)
        max_retries: Maximum number of attempts
        retry_delay: Delay between attempts in seconds
        timeout: Connection timeout per attempt in seconds

    Returns:
        True once the database answered

    Raises:
        DatabaseConnectionError: If database never becomes available
    """
    host = host or config.db_host
    port = port or config.db_port
    database = database or config.db_name

    logger.info(f"Waiting for PostgreSQL at {host}:{port}/{database}...")

    for attempt in range(1, max_retries + 1):
        if check_database_available(host, port, user, password, database, timeout):
            logger.info(f"✅ PostgreSQL is available (attempt {attempt}/{max_retries})")
            return True

        if attempt < max_retries:
            logger.warning(
                f"⏳ PostgreSQL not available yet (attempt {attempt}/{max_retries}), "
                f"retrying in {retry_delay}s..."
            )
            time.sleep(retry_delay)

    error_msg = (
        f"PostgreSQL at {host}:{port}/{database} did not become available "
        f"after {max_retries} attempts"
    )
    logger.error(f"❌ {error_msg}")
    raise DatabaseConnectionError(error_msg)
