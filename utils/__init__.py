"""
==========================
Utility Functions Package.
==========================

Database connectivity for the query builder: the SQLAlchemy-backed
Executor, engine creation and health checks.

Modules:
    database_utils: Connection, engine factory and PostgreSQL availability checks
"""

__version__ = "1.0.0"
__all__ = [
    'Connection',
    'DatabaseConnectionError',
    'QueryExecutionError',
    'create_sqlalchemy_engine',
    'check_database_available',
    'wait_for_database'
]

from .database_utils import (
    Connection,
    DatabaseConnectionError,
    QueryExecutionError,
    check_database_available,
    create_sqlalchemy_engine,
    wait_for_database,
)
