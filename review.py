"""Undoable actions with a countdown before they take effect.

Destructive or provisional actions (delete, approve, reject) are staged rather
than run. An optional ``apply`` callback makes the optimistic local change
right away; ``execute`` runs when the delay elapses. Calling ``undo`` before
that cancels the timer and runs ``rollback`` instead. If ``execute`` raises,
``rollback`` runs as well and the error is handed to ``on_error``.

Only one action per target can be pending: staging a second one supersedes
(cancels and rolls back) the first. ``close`` cancels everything still pending.
"""

import threading
import time
from typing import Callable, Dict, Optional

from logger import get_logger

logger = get_logger()

DEFAULT_DELAY_SECONDS = 5.0

PENDING = "pending"
RUNNING = "running"
EXECUTED = "executed"
FAILED = "failed"
UNDONE = "undone"
SUPERSEDED = "superseded"
CANCELLED = "cancelled"


class PendingAction:
    """Handle for a staged action."""

    def __init__(
        self,
        coordinator: "UndoCoordinator",
        target_id: str,
        execute: Callable[[], object],
        message: str,
        delay: float,
        rollback: Optional[Callable[[], object]],
        on_error: Optional[Callable[[Exception], object]],
    ):
        self.coordinator = coordinator
        self.target_id = target_id
        self.message = message
        self.delay = delay
        self.state = PENDING
        self.error: Optional[Exception] = None

        self._execute = execute
        self._rollback = rollback
        self._on_error = on_error
        self._timer = None
        self._started_at = coordinator.clock()
        self._done = threading.Event()

    @property
    def is_pending(self) -> bool:
        return self.state == PENDING

    def remaining(self) -> float:
        """Seconds left before the action executes (0 once it is no longer pending)."""
        if not self.is_pending:
            return 0.0
        elapsed = self.coordinator.clock() - self._started_at
        return max(0.0, self.delay - elapsed)

    def undo(self) -> bool:
        """Cancel the action. Returns False if it already ran or was cancelled."""
        return self.coordinator.undo(self.target_id, action=self)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the action has executed, failed or been cancelled."""
        return self._done.wait(timeout)

    def _finish(self, state: str) -> None:
        self.state = state
        self._done.set()

    def _run_rollback(self) -> None:
        if self._rollback is None:
            return
        try:
            self._rollback()
        except Exception as e:
            logger.error(f"Rollback failed for {self.target_id}: {e}")

    def __repr__(self) -> str:
        return f"PendingAction(target_id={self.target_id!r}, state={self.state!r})"


class UndoCoordinator:
    """Owns the timers of staged actions for one session.

    Args:
        delay: Seconds before a staged action executes.
        timer_factory: Callable ``(interval, function) -> timer`` where the timer
            has ``start()`` and ``cancel()``. Defaults to ``threading.Timer``.
        clock: Monotonic clock used for the countdown.
    """

    def __init__(
        self,
        delay: float = DEFAULT_DELAY_SECONDS,
        timer_factory: Callable = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.delay = delay
        self.timer_factory = timer_factory
        self.clock = clock
        self._pending: Dict[str, PendingAction] = {}
        self._lock = threading.Lock()

    def stage(
        self,
        target_id: str,
        execute: Callable[[], object],
        message: str = "",
        apply: Optional[Callable[[], object]] = None,
        rollback: Optional[Callable[[], object]] = None,
        on_error: Optional[Callable[[Exception], object]] = None,
        delay: Optional[float] = None,
    ) -> PendingAction:
        """Stage an action for ``target_id``; it runs after the delay unless undone.

        Args:
            target_id: Entity the action applies to.
            execute: The real operation.
            message: Text shown alongside the countdown.
            apply: Optimistic local change, run immediately.
            rollback: Reverts ``apply``; run on undo, supersede, close or failure.
            on_error: Called with the exception if ``execute`` fails.
            delay: Overrides the coordinator's delay for this action.

        Returns:
            PendingAction handle.
        """
        action = PendingAction(
            self,
            target_id,
            execute,
            message,
            self.delay if delay is None else delay,
            rollback,
            on_error,
        )

        with self._lock:
            previous = self._pending.pop(target_id, None)
            if previous is not None:
                self._cancel(previous, SUPERSEDED)

        if previous is not None:
            logger.info(f"Superseded pending action for {target_id}")
            previous._run_rollback()

        if apply is not None:
            apply()

        timer = self.timer_factory(action.delay, lambda: self._fire(action))
        action._timer = timer
        with self._lock:
            # Another stage() for the same target may have landed meanwhile
            stale = self._pending.get(target_id)
            if stale is not None:
                self._cancel(stale, SUPERSEDED)
            self._pending[target_id] = action
        if stale is not None:
            stale._run_rollback()
        timer.start()
        logger.debug(f"Staged action for {target_id} ({action.delay:.1f}s)")
        return action

    def undo(self, target_id: str, action: Optional[PendingAction] = None) -> bool:
        """Cancel the pending action for ``target_id`` and roll it back.

        Args:
            target_id: Entity whose pending action should be undone.
            action: Only undo if this specific action is still the pending one.

        Returns:
            True if an action was cancelled.
        """
        with self._lock:
            current = self._pending.get(target_id)
            if current is None or (action is not None and current is not action):
                return False
            del self._pending[target_id]
            self._cancel(current, UNDONE)

        logger.info(f"Undid pending action for {target_id}")
        current._run_rollback()
        return True

    def pending(self, target_id: str) -> Optional[PendingAction]:
        with self._lock:
            return self._pending.get(target_id)

    def close(self) -> None:
        """Cancel and roll back every pending action."""
        with self._lock:
            actions = list(self._pending.values())
            self._pending.clear()
            for action in actions:
                self._cancel(action, CANCELLED)

        for action in actions:
            action._run_rollback()

    def __enter__(self) -> "UndoCoordinator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _cancel(self, action: PendingAction, state: str) -> None:
        # Caller holds the lock
        if action._timer is not None:
            action._timer.cancel()
        action._finish(state)

    def _fire(self, action: PendingAction) -> None:
        with self._lock:
            if self._pending.get(action.target_id) is not action or not action.is_pending:
                return
            del self._pending[action.target_id]
            action.state = RUNNING

        try:
            action._execute()
        except Exception as e:
            logger.error(f"Action for {action.target_id} failed: {e}")
            action.error = e
            action._run_rollback()
            try:
                if action._on_error is not None:
                    action._on_error(e)
            finally:
                action._finish(FAILED)
            return

        action._finish(EXECUTED)
        logger.debug(f"Executed action for {action.target_id}")
