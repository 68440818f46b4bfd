"""
Test suite for core.config and core.logger.

Tests cover:
- DatabaseConfig connection strings and URL override
- Config environment loading and type conversion
- setup_logging handler wiring
- ColoredFormatter decoration without leaking into other handlers
"""

import logging

import pytest

from core.config import Config, DatabaseConfig
from core.logger import ColoredFormatter, get_logger, setup_logging

# ============================================================================
# UNIT TESTS - Config
# ============================================================================


@pytest.mark.unit
def test_database_config_postgres_url():
    """Without an override the connection string is a PostgreSQL URL."""
    db = DatabaseConfig(host='db', port=5433, user='app', password='pw', database='main')

    assert db.get_connection_string() == "postgresql://app:pw@db:5433/main"


@pytest.mark.unit
def test_database_config_url_override():
    """An explicit url wins over the individual fields."""
    db = DatabaseConfig(host='db', port=5433, user='app', password='pw', database='main', url='sqlite://')

    assert db.get_connection_string() == 'sqlite://'


@pytest.mark.unit
def test_config_reads_environment(monkeypatch):
    """Config converts numeric and boolean environment values."""
    monkeypatch.setenv('POSTGRES_HOST', 'pg.internal')
    monkeypatch.setenv('POSTGRES_PORT', '6543')
    monkeypatch.setenv('SQL_ECHO', 'true')
    monkeypatch.setenv('DB_POOL_SIZE', '2')
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    monkeypatch.delenv('DATABASE_URL', raising=False)

    cfg = Config()

    assert cfg.db_host == 'pg.internal'
    assert cfg.db_port == 6543
    assert cfg.db.echo is True
    assert cfg.db.pool_size == 2
    assert cfg.db.url is None
    assert cfg.log_level == 'DEBUG'
    assert cfg.get_connection_params()['host'] == 'pg.internal'


@pytest.mark.unit
def test_config_database_url(monkeypatch):
    """DATABASE_URL becomes the connection string."""
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///app.db')

    assert Config().get_connection_string() == 'sqlite:///app.db'


# ============================================================================
# UNIT TESTS - Logging
# ============================================================================


@pytest.fixture
def restore_root_logger():
    """Remove handlers installed by the test and restore the root level."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.mark.unit
def test_setup_logging_console_and_file(tmp_path, restore_root_logger):
    """setup_logging installs one console and one file handler."""
    setup_logging(log_level='DEBUG', log_file='queries.log', log_dir=str(tmp_path))

    root = restore_root_logger
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert isinstance(root.handlers[0].formatter, ColoredFormatter)
    assert isinstance(root.handlers[1], logging.FileHandler)

    logging.getLogger('sql.query_builder').debug("SELECT * FROM users")
    root.handlers[1].flush()
    content = (tmp_path / 'queries.log').read_text(encoding='utf-8')
    assert 'sql.query_builder - DEBUG - SELECT * FROM users' in content


@pytest.mark.unit
def test_setup_logging_without_colors(restore_root_logger):
    """use_colors=False uses a plain formatter."""
    setup_logging(log_level='INFO', use_colors=False)

    formatter = restore_root_logger.handlers[0].formatter
    assert not isinstance(formatter, ColoredFormatter)


@pytest.mark.unit
def test_colored_formatter_does_not_mutate_record():
    """The record keeps its plain level name after colored formatting."""
    record = logging.LogRecord('x', logging.ERROR, __file__, 1, 'failed', None, None)

    output = ColoredFormatter('%(emoji)s %(levelname)s %(message)s').format(record)

    assert '\033[31mERROR\033[0m' in output
    assert output.startswith('❌')
    assert record.levelname == 'ERROR'


@pytest.mark.unit
def test_get_logger_level_override():
    """get_logger applies an explicit level."""
    logger = get_logger('tests.level_override', level='warning')

    assert logger.level == logging.WARNING
