"""Shared pytest fixtures for all tests."""

import sqlite3
import pytest
from pathlib import Path

from config import Config, get_migrations_dir
from services.base import Services
from tests.helpers import run_migrations


@pytest.fixture
def test_db():
    """Create an in-memory SQLite database for testing.

    Yields:
        sqlite3.Connection: Connection to in-memory database.
    """
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    yield conn
    conn.close()


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary database.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "saldo",
        db_data_dir=tmp_path / "saldo" / "db",
        db_filename="test.db",
        log_level="DEBUG",
        log_dir=tmp_path / "saldo" / "logs",
        archive_enabled=False,
        archive_dir=tmp_path / "saldo" / "archives",
        llm_enabled=False,
        llm_provider="openai",
        llm_openai_api_key="",
        llm_openai_model="gpt-4o-mini",
        duplicate_window_days=90,
        confidence_threshold=0.7,
        similarity_threshold=0.7,
        history_limit=500,
        ai_examples_limit=100,
        ai_batch_limit=50,
        ai_concurrency=5,
        undo_delay_seconds=5.0,
    )


@pytest.fixture
def db_manager_with_schema(test_db, test_config):
    """Create a DatabaseManager with schema already set up.

    This fixture provides a DatabaseManager that uses an in-memory database
    with all migrations already applied.

    Args:
        test_db: In-memory database connection fixture.
        test_config: Test configuration fixture.

    Returns:
        DatabaseManager: Database manager with schema ready.
    """
    # Run migrations to set up schema
    migrations_dir = get_migrations_dir()
    run_migrations(test_db, migrations_dir)

    # Create a custom DatabaseManager that uses our in-memory connection
    class TestDatabaseManager:
        """Test database manager that uses in-memory connection."""

        def __init__(self, conn, config):
            self.conn = conn
            self.config = config

        def connect(self):
            """Return a context manager for the test connection."""
            return _TestConnectionContext(self.conn)

        def exists(self):
            return True

        def get_db_path(self):
            """Return a fake path for the test database."""
            return Path(":memory:")

        def get_migrations_dir(self):
            """Get the migrations directory path."""
            return get_migrations_dir()

    class _TestConnectionContext:
        """Context manager for test database connections."""

        def __init__(self, conn):
            self.conn = conn

        def __enter__(self):
            return self.conn

        def __exit__(self, exc_type, exc_val, exc_tb):
            # Don't close the connection - let the fixture handle it
            pass

    return TestDatabaseManager(test_db, test_config)


@pytest.fixture
def services(test_config, db_manager_with_schema):
    """Create a Services container with test database.

    This fixture provides access to all services with a clean test database.

    Args:
        test_config: Test configuration fixture.
        db_manager_with_schema: Database manager with schema set up.

    Returns:
        Services: Services container for testing.
    """
    return Services(test_config, db_manager=db_manager_with_schema)


@pytest.fixture
def seeded_services(services):
    """Services with the default taxonomy and merchant rules loaded."""
    services.categories.seed()
    services.rules.seed_defaults()
    return services
