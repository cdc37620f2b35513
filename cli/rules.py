#!/usr/bin/env python3

import sys

from cli.countdown import run_staged
from services.rules import RuleError
from logger import get_logger

logger = get_logger()


def _describe(rule) -> str:
    target = f"{rule.major_category} > {rule.category}"
    if rule.sub_category:
        target += f" > {rule.sub_category}"
    kind = "default" if rule.is_default else "custom"
    return f"{rule.id:>4}  {rule.keyword:<20}  {target}  ({kind})"


def cmd_list(args, services):
    """List rules in the order they are applied."""
    if args.deleted:
        rules = [r for r in services.rules.find_all(include_deleted=True) if not r.is_active]
    else:
        rules = services.rules.find_active()

    if not rules:
        logger.info("No rules found.")
        return

    for rule in rules:
        logger.info(_describe(rule))
    logger.info(f"\nTotal rules: {len(rules)}")


def cmd_add(args, services):
    tags = args.tags.split(",") if args.tags else None
    try:
        rule = services.rules.create(
            args.keyword, args.major, args.category, args.sub_category, tags
        )
    except RuleError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"✓ Rule created with ID: {rule.id}")
    logger.info(f"  {_describe(rule)}")


def cmd_delete(args, services):
    """Delete a custom rule after an undo countdown (Ctrl-C to undo)."""
    delay = args.delay if args.delay is not None else services.config.undo_delay_seconds
    result = run_staged(
        [args.rule_id],
        services.rules.delete,
        f"Deleting rule {args.rule_id}",
        delay,
        key_prefix="rule:",
    )
    if result is None:
        return
    if args.rule_id in result.failed:
        logger.error(result.failed[args.rule_id])
        sys.exit(1)
    logger.info(f"✓ Deleted rule {args.rule_id} (restore with 'rules restore {args.rule_id}')")


def cmd_restore(args, services):
    try:
        rule = services.rules.restore(args.rule_id)
    except RuleError as e:
        logger.error(str(e))
        sys.exit(1)
    logger.info(f"✓ Restored rule '{rule.keyword}'")


def cmd_seed(args, services):
    created = services.rules.seed_defaults()
    logger.info(f"✓ Seeded {created} default rule(s)")


def setup_parser(subparsers):
    """Setup rules subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "rules",
        help="Manage keyword categorization rules",
        description="Manage keyword categorization rules",
    )

    rules_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available rule commands",
        dest="subcommand",
        required=True,
    )

    list_parser = rules_subparsers.add_parser("list", help="List rules")
    list_parser.add_argument(
        "--deleted", action="store_true", help="Show deleted rules instead"
    )
    list_parser.set_defaults(func=cmd_list)

    add_parser = rules_subparsers.add_parser("add", help="Create a custom rule")
    add_parser.add_argument("keyword", help="Text to look for in descriptions")
    add_parser.add_argument("--major", required=True, help="Major category")
    add_parser.add_argument("--category", required=True, help="Category")
    add_parser.add_argument("--sub-category", dest="sub_category", help="Sub-category")
    add_parser.add_argument("--tags", help="Comma-separated tags")
    add_parser.set_defaults(func=cmd_add)

    delete_parser = rules_subparsers.add_parser("delete", help="Delete a custom rule")
    delete_parser.add_argument("rule_id", type=int, help="Rule ID")
    delete_parser.add_argument(
        "--delay", type=float, help="Seconds before the delete happens"
    )
    delete_parser.set_defaults(func=cmd_delete)

    restore_parser = rules_subparsers.add_parser("restore", help="Restore a deleted rule")
    restore_parser.add_argument("rule_id", type=int, help="Rule ID")
    restore_parser.set_defaults(func=cmd_restore)

    seed_parser = rules_subparsers.add_parser("seed", help="Create the default rules")
    seed_parser.set_defaults(func=cmd_seed)
