#!/usr/bin/env python3
"""
Saldo CLI - import, review and categorize personal finance transactions.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    transactions Import, review and categorize transactions
    rules        Keyword categorization rules
    taxonomy     Category taxonomy
    feedback     Category suggestion feedback
    migrate      Database migrations

Examples:
    python -m cli migrate apply --seed
    python -m cli transactions ingest statement.csv --origin personal --bank CGD
    python -m cli transactions review
    python -m cli transactions categorize --ai
    python -m cli rules add "padaria" --major "Custos Variaveis" --category "Alimentação"
"""

import sys
import argparse
from cli import feedback, migrate, rules, taxonomy, transactions
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging

_SERVICE_COMMANDS = ("transactions", "rules", "taxonomy", "feedback")


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Saldo - Personal finance transaction management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Create subparsers for each command
    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    # Register each command's subparser
    transactions.setup_parser(subparsers)
    rules.setup_parser(subparsers)
    taxonomy.setup_parser(subparsers)
    feedback.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    # Parse arguments and execute
    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            if args.command in _SERVICE_COMMANDS:
                args.func(args, Services(config))
            elif args.command == "migrate":
                # Migrate commands need db_manager for raw database operations
                args.func(args, DatabaseManager(config))
            else:
                args.func(args)
        except Exception as e:
            print(f"Error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
