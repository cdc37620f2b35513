"""Countdown before destructive CLI actions, with Ctrl-C to undo."""

from typing import Callable, Iterable, Optional

from bulk import BulkResult
from review import UndoCoordinator
from logger import get_logger

logger = get_logger()


def run_staged(
    ids: Iterable,
    operation: Callable[[object], object],
    message: str,
    delay: float,
    key_prefix: str = "",
) -> Optional[BulkResult]:
    """Stage ``operation(id)`` for every id and run them when the delay expires.

    Each id gets its own pending action, so staging the same id twice keeps
    only the latest. An id fails if ``operation`` raises or returns False.

    Args:
        ids: Entities to act on.
        operation: Called once per id when its countdown ends.
        message: Shown while counting down.
        delay: Seconds before the actions run.
        key_prefix: Namespaces the pending-action keys (e.g. "rule:").

    Returns:
        BulkResult, or None if the user interrupted the countdown.
    """
    result = BulkResult()

    def execute(item):
        if operation(item) is False:
            result.failed[item] = "Not found"
        else:
            result.succeeded.append(item)

    def on_error(item):
        return lambda e: result.failed.__setitem__(item, str(e))

    with UndoCoordinator(delay=delay) as coordinator:
        actions = [
            coordinator.stage(
                f"{key_prefix}{item}",
                lambda item=item: execute(item),
                message=message,
                on_error=on_error(item),
            )
            for item in ids
        ]
        try:
            for action in actions:
                while not action.wait(timeout=1.0):
                    logger.info(f"{message} in {action.remaining():.0f}s... (Ctrl-C to undo)")
        except KeyboardInterrupt:
            undone = sum(1 for action in actions if action.undo())
            logger.info(f"Undone. {undone} pending action(s) cancelled.")
            return None

    return result
