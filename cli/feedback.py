#!/usr/bin/env python3

import sys

from models.feedback import ACTION_OVERRIDE, ACTIONS
from logger import get_logger

logger = get_logger()


def cmd_record(args, services):
    """Record what the user did with a transaction's automatic category."""
    transaction = services.transactions.find(args.transaction_id, include_deleted=True)
    if not transaction:
        logger.error(f"Transaction with ID '{args.transaction_id}' not found.")
        sys.exit(1)

    if args.action == ACTION_OVERRIDE and not (args.major and args.category):
        logger.error("--major and --category are required for 'override'.")
        sys.exit(1)

    feedback = services.feedback.record(
        transaction.id,
        args.action,
        suggested_major_category=transaction.major_category,
        suggested_category=transaction.category,
        suggested_confidence=transaction.classifier_confidence,
        suggestion_source=transaction.classifier_source or "unknown",
        suggested_tags=transaction.tags,
        actual_major_category=args.major,
        actual_category=args.category,
    )
    logger.info(f"✓ Recorded '{feedback.action}' feedback (ID: {feedback.id})")


def cmd_stats(args, services):
    rows = services.feedback.stats()
    if not rows:
        logger.info("No feedback recorded yet.")
        return

    logger.info(f"{'action':<10}  {'source':<10}  count")
    for row in rows:
        logger.info(f"{row['action']:<10}  {row['source']:<10}  {row['count']}")


def setup_parser(subparsers):
    """Setup feedback subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "feedback",
        help="Category suggestion feedback",
        description="Record and summarize feedback on automatic categories",
    )

    feedback_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available feedback commands",
        dest="subcommand",
        required=True,
    )

    record_parser = feedback_subparsers.add_parser("record", help="Record feedback")
    record_parser.add_argument("transaction_id", help="Transaction ID")
    record_parser.add_argument("action", choices=ACTIONS)
    record_parser.add_argument("--major", help="Actual major category (override)")
    record_parser.add_argument("--category", help="Actual category (override)")
    record_parser.set_defaults(func=cmd_record)

    stats_parser = feedback_subparsers.add_parser(
        "stats", help="Feedback counts by action and source"
    )
    stats_parser.set_defaults(func=cmd_stats)
