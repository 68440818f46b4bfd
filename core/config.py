"""
================================================
Configuration management for the query builder.
================================================

Loads database and logging settings from environment variables (.env file)
and provides a centralized Config singleton for application-wide access.

The configuration system ensures:
- Single source of truth for connection settings
- Type conversion of numeric and boolean values
- A full DATABASE_URL override for non-PostgreSQL backends

Example:
    >>> from core.config import config
    >>>
    >>> # Database connection
    >>> engine_url = config.get_connection_string()
    >>>
    >>> # Access individual settings
    >>> print(f"Host: {config.db_host}, Port: {config.db_port}")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class DatabaseConfig:
    """Database configuration settings.

    Attributes:
        host: PostgreSQL server hostname or IP address
        port: PostgreSQL server port number
        user: Database username
        password: Database password
        database: Database name
        url: Optional full SQLAlchemy URL, wins over the individual fields
        echo: Echo every statement through SQLAlchemy's own logger
        pool_size: Connection pool size
        max_overflow: Connections allowed above pool_size
    """

    host: str
    port: int
    user: str
    password: str
    database: str
    url: Optional[str] = None
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10

    def get_connection_string(self) -> str:
        """Get the SQLAlchemy connection string.

        Returns:
            The DATABASE_URL override if set, otherwise a PostgreSQL URL
        """
        if self.url:
            return self.url
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"

    def get_connection_params(self) -> dict:
        """Get connection parameters as dictionary.

        Returns:
            Dictionary with keys: host, port, user, password, database
        """
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database
        }


class Config:
    """Centralized configuration manager.

    Attributes:
        db: DatabaseConfig instance with database connection settings
        log_level: Root log level used by setup_logging()

    Example:
        >>> config = Config()
        >>> conn_str = config.get_connection_string()
        >>> print(f"Connecting to {config.db_host}:{config.db_port}")
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.db = DatabaseConfig(
            host=os.getenv('POSTGRES_HOST', 'localhost'),
            port=int(os.getenv('POSTGRES_PORT', '5432')),
            user=os.getenv('POSTGRES_USER', 'postgres'),
            password=os.getenv('POSTGRES_PASSWORD', ''),
            database=os.getenv('POSTGRES_DB', 'postgres'),
            url=os.getenv('DATABASE_URL') or None,
            echo=_env_bool('SQL_ECHO'),
            pool_size=int(os.getenv('DB_POOL_SIZE', '5')),
            max_overflow=int(os.getenv('DB_MAX_OVERFLOW', '10'))
        )
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    @property
    def db_host(self) -> str:
        """Get database server hostname."""
        return self.db.host

    @property
    def db_port(self) -> int:
        """Get database server port number."""
        return self.db.port

    @property
    def db_user(self) -> str:
        """Get database username."""
        return self.db.user

    @property
    def db_password(self) -> str:
        """Get database password."""
        return self.db.password

    @property
    def db_name(self) -> str:
        """Get database name."""
        return self.db.database

    def get_connection_string(self) -> str:
        """Get database connection string.

        Returns:
            SQLAlchemy-compatible connection string
        """
        return self.db.get_connection_string()

    def get_connection_params(self) -> dict:
        """Get database connection parameters."""
        return self.db.get_connection_params()


# Global configuration instance
config = Config()
