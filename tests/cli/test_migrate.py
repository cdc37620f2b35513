from config import get_migrations_dir
from cli.migrate import apply_pending, get_pending_migrations, seed_defaults
from db.manager import DatabaseManager
from services.base import Services


class TestMigrate:
    """Tests for applying migrations to a database file."""

    def test_apply_then_nothing_pending(self, test_config):
        """Test that every migration is applied once."""
        db_manager = DatabaseManager(test_config)
        assert not db_manager.exists()

        available = len(list(get_migrations_dir().glob("*.sql")))
        assert apply_pending(db_manager) == available
        assert db_manager.exists()
        assert apply_pending(db_manager) == 0

        with db_manager.connect() as conn:
            assert get_pending_migrations(conn, db_manager) == []

    def test_seed_defaults(self, test_config):
        """Test that seeding loads the taxonomy and default rules."""
        db_manager = DatabaseManager(test_config)
        apply_pending(db_manager)

        seed_defaults(db_manager)
        seed_defaults(db_manager)

        services = Services(test_config, db_manager=db_manager)
        assert services.categories.get_taxonomy().majors
        rules = services.rules.find_active()
        assert rules
        assert len({r.keyword for r in rules}) == len(rules)
