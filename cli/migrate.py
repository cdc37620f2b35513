#!/usr/bin/env python3

from services.base import Services
from logger import get_logger

logger = get_logger()


def init_schema_migrations_table(conn):
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            migration_file TEXT PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()


def get_applied_migrations(conn):
    cursor = conn.execute(
        "SELECT migration_file FROM schema_migrations ORDER BY migration_file"
    )
    return {row[0] for row in cursor.fetchall()}


def get_available_migrations(db_manager):
    """SQL files in the migrations directory, in the order they apply."""
    migrations_dir = db_manager.get_migrations_dir()
    if not migrations_dir.exists():
        return []
    return sorted(path.name for path in migrations_dir.glob("*.sql"))


def get_pending_migrations(conn, db_manager):
    init_schema_migrations_table(conn)
    applied = get_applied_migrations(conn)
    return [m for m in get_available_migrations(db_manager) if m not in applied]


def apply_migration(conn, migration_file, db_manager):
    migration_path = db_manager.get_migrations_dir() / migration_file
    sql = migration_path.read_text(encoding="utf-8")

    try:
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_migrations (migration_file) VALUES (?)",
            (migration_file,),
        )
        conn.commit()
        logger.info(f"Applied migration: {migration_file}")
    except Exception as e:
        conn.rollback()
        logger.error(f"Error applying migration {migration_file}: {e}")
        raise


def apply_pending(db_manager) -> int:
    """Apply every pending migration. Returns how many were applied."""
    with db_manager.connect() as conn:
        pending = get_pending_migrations(conn, db_manager)
        for migration in pending:
            apply_migration(conn, migration, db_manager)
    return len(pending)


def seed_defaults(db_manager):
    """Load the default taxonomy and merchant rules (both idempotent)."""
    services = Services(db_manager.config, db_manager=db_manager)
    majors = services.categories.seed()
    rules = services.rules.seed_defaults()
    logger.info(f"Seeded {majors} major categories and {rules} default rule(s)")


def cmd_status(args, db_manager):
    """Show migration status."""
    if not db_manager.exists():
        logger.info(
            "Database does not exist. Run 'python -m cli migrate apply' to create it."
        )
        return

    with db_manager.connect() as conn:
        init_schema_migrations_table(conn)
        applied = get_applied_migrations(conn)
        available = get_available_migrations(db_manager)

    logger.info("Migration Status:")
    logger.info("================")

    if not available:
        logger.info("No migrations found.")
        return

    for migration in available:
        status_text = "APPLIED" if migration in applied else "PENDING"
        logger.info(f"{migration}: {status_text}")

    pending_count = len([m for m in available if m not in applied])
    logger.info(f"\nTotal migrations: {len(available)}")
    logger.info(f"Applied: {len(available) - pending_count}")
    logger.info(f"Pending: {pending_count}")


def cmd_apply(args, db_manager):
    """Apply pending migrations, then optionally seed default data."""
    count = apply_pending(db_manager)
    if count:
        logger.info(f"Successfully applied {count} migration(s).")
    else:
        logger.info("No pending migrations.")

    if args.seed:
        seed_defaults(db_manager)


def setup_parser(subparsers):
    """Setup migrate subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "migrate",
        help="Database migrations",
        description="Manage database schema migrations",
    )

    migrate_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available migration commands",
        dest="subcommand",
        required=True,
    )

    status_parser = migrate_subparsers.add_parser(
        "status", help="Show migration status"
    )
    status_parser.set_defaults(func=cmd_status)

    apply_parser = migrate_subparsers.add_parser(
        "apply", help="Apply pending migrations"
    )
    apply_parser.add_argument(
        "--seed",
        action="store_true",
        help="Also load the default taxonomy and merchant rules",
    )
    apply_parser.set_defaults(func=cmd_apply)
