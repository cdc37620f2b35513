#!/usr/bin/env python3

from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """Show the category hierarchy."""
    taxonomy = services.categories.get_taxonomy()

    if not taxonomy.majors:
        logger.info("No categories found. Run 'python -m cli taxonomy seed' first.")
        return

    logger.info("\nCategories:")
    logger.info("=" * 80)
    logger.info(taxonomy.describe())
    logger.info(f"\nTotal major categories: {len(taxonomy.majors)}")


def cmd_seed(args, services):
    created = services.categories.seed()
    if created:
        logger.info(f"✓ Seeded {created} major categories")
    else:
        logger.info("Taxonomy already present; nothing to do.")


def setup_parser(subparsers):
    """Setup taxonomy subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "taxonomy",
        help="Category taxonomy",
        description="Show or seed the major category / category / sub-category tree",
    )

    taxonomy_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available taxonomy commands",
        dest="subcommand",
        required=True,
    )

    list_parser = taxonomy_subparsers.add_parser("list", help="Show all categories")
    list_parser.set_defaults(func=cmd_list)

    seed_parser = taxonomy_subparsers.add_parser(
        "seed", help="Load the default taxonomy"
    )
    seed_parser.set_defaults(func=cmd_seed)
