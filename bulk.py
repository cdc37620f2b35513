"""Bulk operations with per-item failure isolation."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List

from logger import get_logger

logger = get_logger()


@dataclass
class BulkResult:
    """Per-item results of a bulk operation."""

    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # id -> error message

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


def run_bulk(ids: Iterable[str], operation: Callable[[str], object]) -> BulkResult:
    """Apply ``operation`` to every id, collecting failures instead of stopping.

    An item fails if ``operation`` raises or returns False.
    """
    result = BulkResult()
    for item_id in ids:
        try:
            outcome = operation(item_id)
        except Exception as e:
            logger.warning(f"Bulk operation failed for {item_id}: {e}")
            result.failed[item_id] = str(e)
            continue

        if outcome is False:
            result.failed[item_id] = "Not found"
        else:
            result.succeeded.append(item_id)

    logger.info(
        f"Bulk operation finished: {result.success_count} succeeded, "
        f"{result.failure_count} failed"
    )
    return result
