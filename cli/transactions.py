#!/usr/bin/env python3

import sys
from pathlib import Path

from categorization import auto_categorize_pending, build_categorizer
from ingestion import get_available_modules
from llm import RateLimitedError, ServiceUnavailableError
from llm import get_llm_provider
from cli.countdown import run_staged
from logger import get_logger

logger = get_logger()


def _format_transaction(t) -> str:
    category = "-"
    if t.is_categorized:
        category = f"{t.major_category} > {t.category}"
        if t.sub_category:
            category += f" > {t.sub_category}"
    flag = " [flagged]" if t.flagged else ""
    return (
        f"{t.id[:8]}  {t.raw_date.date().isoformat()}  {t.raw_amount:>10.2f}  "
        f"{t.raw_description[:40]:<40}  {category}{flag}"
    )


def _resolve_ids(services, prefixes, include_deleted=False):
    """Expand short id prefixes (as printed by list) to full transaction ids."""
    if include_deleted:
        pool = services.transactions.find_deleted()
    else:
        pool = (
            services.transactions.find_all(limit=10000)
            + services.transactions.find_pending_review()
        )
    known = {t.id for t in pool}

    resolved = []
    for prefix in prefixes:
        matches = [i for i in known if i.startswith(prefix)]
        if len(matches) == 1:
            resolved.append(matches[0])
        else:
            # Let the service report it as not found
            resolved.append(prefix)
    return resolved


def cmd_ingest(args, services):
    """Import transactions from a statement file.

    Args:
        args: Parsed command-line arguments with file, origin, bank
        services: Services container
    """
    path = Path(args.file)
    if not path.exists():
        logger.error(f"File not found: {args.file}")
        sys.exit(1)

    logger.info(f"Importing {path.name} (origin: {args.origin}, bank: {args.bank})")
    logger.info("-" * 80)

    provider = get_llm_provider(services.config)

    try:
        result = services.imports.import_file(
            path, args.origin, args.bank, module_name=args.format, provider=provider
        )
    except ServiceUnavailableError as e:
        logger.error(f"{e}")
        logger.info("Configure the LLM provider in ~/.config/saldo.toml to import this file.")
        sys.exit(1)
    except RateLimitedError as e:
        logger.error(f"LLM provider is rate limited: {e}")
        logger.info("Retry the import later.")
        sys.exit(1)

    logger.info(f"✓ Imported {result.imported} transaction(s)")
    if result.skipped_duplicates:
        logger.info(f"  ({result.skipped_duplicates} duplicate transaction(s) skipped)")
    for error in result.per_row_errors:
        logger.warning(f"  {error}")

    if result.imported and not args.no_categorize:
        # Categorization should never fail the import
        try:
            logger.info("\nRunning auto-categorization...")
            batch = auto_categorize_pending(
                services,
                provider=provider,
                use_ai=args.ai,
                transaction_ids=[t.id for t in result.transactions],
            )
            logger.info(f"✓ Auto-categorized {len(batch.categorized)} transaction(s)")
        except Exception as e:
            logger.warning(f"Auto-categorization failed (import was successful): {e}")


def cmd_list(args, services):
    """List reviewed transactions, newest first."""
    transactions = services.transactions.find_all(limit=args.limit, page=args.page)
    if not transactions:
        logger.info("No transactions found.")
        return

    for t in transactions:
        logger.info(_format_transaction(t))
    logger.info(f"\nShowing {len(transactions)} transaction(s) (page {args.page})")


def cmd_review(args, services):
    """Show the review queue with a suggestion for each transaction."""
    pending = services.transactions.find_pending_review()
    progress = services.transactions.review_progress()

    logger.info(
        f"Review progress: {progress['reviewed']} reviewed, {progress['pending']} pending "
        f"({progress['percent_complete']}% complete)"
    )
    if not pending:
        logger.info("Nothing to review.")
        return

    categorizer = build_categorizer(services)
    logger.info("=" * 80)
    for t in pending:
        logger.info(_format_transaction(t))
        if not t.is_categorized:
            suggestion = categorizer.suggest(t)
            if suggestion is not None:
                logger.info(
                    f"          suggestion: {suggestion.major_category} > "
                    f"{suggestion.category} ({suggestion.source}, "
                    f"{suggestion.confidence:.2f})"
                )
    logger.info(f"\nTotal pending review: {len(pending)}")


def _undo_delay(args, services):
    return args.delay if args.delay is not None else services.config.undo_delay_seconds


def _report(result, verb):
    logger.info(f"✓ {verb} {result.success_count} transaction(s)")
    for item_id, error in result.failed.items():
        logger.warning(f"  {item_id[:8]}: {error}")


def cmd_approve(args, services):
    """Approve transactions after an undo countdown (Ctrl-C to undo)."""
    ids = _resolve_ids(services, args.ids)
    result = run_staged(
        ids,
        lambda i: services.transactions.approve([i]) == 1,
        f"Approving {len(ids)} transaction(s)",
        _undo_delay(args, services),
    )
    if result is not None:
        _report(result, "Approved")


def cmd_reject(args, services):
    """Reject transactions after an undo countdown (Ctrl-C to undo)."""
    ids = _resolve_ids(services, args.ids)
    result = run_staged(
        ids,
        lambda i: services.transactions.reject([i]) == 1,
        f"Rejecting {len(ids)} transaction(s)",
        _undo_delay(args, services),
    )
    if result is not None:
        _report(result, "Rejected")


def cmd_delete(args, services):
    """Soft-delete transactions after an undo countdown (Ctrl-C to undo)."""
    ids = _resolve_ids(services, args.ids)
    result = run_staged(
        ids,
        services.transactions.soft_delete,
        f"Deleting {len(ids)} transaction(s)",
        _undo_delay(args, services),
    )
    if result is not None:
        _report(result, "Deleted")


def cmd_restore(args, services):
    ids = _resolve_ids(services, args.ids, include_deleted=True)
    result = services.transactions.bulk_restore(ids)
    _report(result, "Restored")


def cmd_trash(args, services):
    deleted = services.transactions.find_deleted()
    if not deleted:
        logger.info("Trash is empty.")
        return

    for t in deleted:
        logger.info(f"{_format_transaction(t)}  (deleted {t.deleted_at:%Y-%m-%d %H:%M})")
    logger.info(f"\nTotal in trash: {len(deleted)}")


def cmd_categorize(args, services):
    """Auto-categorize pending transactions."""
    provider = get_llm_provider(services.config) if args.ai else None
    ids = _resolve_ids(services, args.ids) if args.ids else None

    result = auto_categorize_pending(
        services, provider=provider, use_ai=args.ai, transaction_ids=ids, force=args.force
    )

    counts = result.count_by_source()
    logger.info(f"✓ Categorized {len(result.categorized)} transaction(s)")
    logger.info(
        f"  rule: {counts['rule']}, pattern: {counts['pattern']}, ai: {counts['ai']}"
    )
    if result.flagged_count:
        logger.info(f"  {result.flagged_count} flagged for review (low confidence)")
    if result.deferred:
        logger.info(f"  {result.deferred} deferred; run the command again to continue")

    kinds = {o.error_kind for o in result.errors}
    for o in result.errors:
        logger.warning(f"  {o.transaction_id[:8]}: {o.error}")
    if ServiceUnavailableError.kind in kinds:
        logger.info("Configure the LLM provider in ~/.config/saldo.toml to use AI.")
    elif RateLimitedError.kind in kinds:
        logger.info("The LLM provider is rate limited; retry later.")


def cmd_classify(args, services):
    """Set a transaction's category by hand and record feedback on the suggestion."""
    transaction_id = _resolve_ids(services, [args.transaction_id])[0]
    transaction = services.transactions.find(transaction_id)
    if not transaction:
        logger.error(f"Transaction with ID '{args.transaction_id}' not found.")
        sys.exit(1)

    taxonomy = services.categories.get_taxonomy()
    if taxonomy.majors and not taxonomy.is_valid(
        args.major, args.category, args.sub_category
    ):
        logger.error(f"'{args.major} > {args.category}' is not in the taxonomy.")
        logger.info("Use 'python -m cli taxonomy list' to see available categories.")
        sys.exit(1)

    suggestion = build_categorizer(services).suggest(transaction)
    tags = args.tags.split(",") if args.tags else None

    services.transactions.update_category(
        transaction_id, args.major, args.category, args.sub_category, tags
    )

    if suggestion is not None:
        accepted = (suggestion.major_category, suggestion.category) == (
            args.major,
            args.category,
        )
        services.feedback.record_outcome(
            suggestion,
            "accept" if accepted else "override",
            actual_major_category=args.major,
            actual_category=args.category,
            actual_tags=tags,
        )

    logger.info("✓ Transaction categorized successfully")
    logger.info(f"  Transaction: {transaction.raw_description[:50]}")
    logger.info(f"  Category: {args.major} > {args.category}")


def setup_parser(subparsers):
    """Setup transactions subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "transactions",
        help="Import, review and categorize transactions",
        description="Import, review and categorize transactions",
    )

    transactions_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available transaction commands",
        dest="subcommand",
        required=True,
    )

    # transactions ingest
    ingest_parser = transactions_subparsers.add_parser(
        "ingest", help="Import transactions from a CSV, XLSX, JSON or PDF file"
    )
    ingest_parser.add_argument("file", help="Path to the statement file")
    ingest_parser.add_argument("--origin", required=True, help="Origin (e.g. personal, joint)")
    ingest_parser.add_argument("--bank", required=True, help="Bank label")
    ingest_parser.add_argument(
        "--format",
        choices=get_available_modules(),
        help="Ingestion module (default: from the file extension)",
    )
    ingest_parser.add_argument(
        "--ai", action="store_true", help="Use the LLM for categorization"
    )
    ingest_parser.add_argument(
        "--no-categorize", action="store_true", help="Skip auto-categorization"
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    # transactions list
    list_parser = transactions_subparsers.add_parser("list", help="List transactions")
    list_parser.add_argument("--limit", type=int, default=50)
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.set_defaults(func=cmd_list)

    # transactions review
    review_parser = transactions_subparsers.add_parser(
        "review", help="Show transactions waiting for review"
    )
    review_parser.set_defaults(func=cmd_review)

    for name, func, help_text in (
        ("approve", cmd_approve, "Approve reviewed transactions (with undo countdown)"),
        ("reject", cmd_reject, "Reject imported transactions (with undo countdown)"),
        ("delete", cmd_delete, "Move transactions to the trash (with undo countdown)"),
    ):
        sub = transactions_subparsers.add_parser(name, help=help_text)
        sub.add_argument("ids", nargs="+", help="Transaction IDs (or unique prefixes)")
        sub.add_argument("--delay", type=float, help="Seconds before the change happens")
        sub.set_defaults(func=func)

    # transactions restore
    restore_parser = transactions_subparsers.add_parser(
        "restore", help="Restore transactions from the trash"
    )
    restore_parser.add_argument("ids", nargs="+", help="Transaction IDs (or unique prefixes)")
    restore_parser.set_defaults(func=cmd_restore)

    # transactions trash
    trash_parser = transactions_subparsers.add_parser(
        "trash", help="List deleted transactions"
    )
    trash_parser.set_defaults(func=cmd_trash)

    # transactions categorize
    categorize_parser = transactions_subparsers.add_parser(
        "categorize", help="Auto-categorize pending transactions"
    )
    categorize_parser.add_argument("ids", nargs="*", help="Only these transactions")
    categorize_parser.add_argument("--ai", action="store_true", help="Use the LLM")
    categorize_parser.add_argument(
        "--force", action="store_true", help="Re-classify already categorized transactions"
    )
    categorize_parser.set_defaults(func=cmd_categorize)

    # transactions classify
    classify_parser = transactions_subparsers.add_parser(
        "classify", help="Set a transaction's category"
    )
    classify_parser.add_argument("transaction_id", help="Transaction ID")
    classify_parser.add_argument("--major", required=True, help="Major category")
    classify_parser.add_argument("--category", required=True, help="Category")
    classify_parser.add_argument("--sub-category", dest="sub_category", help="Sub-category")
    classify_parser.add_argument("--tags", help="Comma-separated tags")
    classify_parser.set_defaults(func=cmd_classify)
