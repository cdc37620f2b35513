"""SQLite connection handling for Saldo."""

import sqlite3
from contextlib import contextmanager
from config import Config, get_migrations_dir

# Seconds to wait on a locked database before failing
BUSY_TIMEOUT = 10.0


class DatabaseManager:
    """Opens connections to the configured database file.

    Every connection enforces foreign keys. ``check_same_thread`` is off so
    results from categorization worker threads can be written back through
    the same manager.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        self.config = config

    @contextmanager
    def connect(self):
        """Yield a connection that is closed when the block exits.

        Callers commit explicitly; anything uncommitted is discarded on close.
        """
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def exists(self) -> bool:
        """Whether the database file has been created yet."""
        return self.config.db_path.exists()

    def get_db_path(self):
        return self.config.db_path

    def get_migrations_dir(self):
        return get_migrations_dir()
