"""Exact-duplicate detection for imported transactions.

Detection is fingerprint equality only. The history side is a set of
fingerprints built fresh for each import from a bounded time window (see
``TransactionService.find_fingerprints_since``); duplicates older than the
window are not detected.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from models.transaction import TransactionCandidate
from logger import get_logger

logger = get_logger()


@dataclass
class DuplicateResult:
    """Outcome of partitioning a batch into new rows and duplicates."""

    to_import: List[TransactionCandidate] = field(default_factory=list)
    duplicates: List[TransactionCandidate] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


def detect_duplicates(
    candidates: Iterable[TransactionCandidate],
    existing_fingerprints: Iterable[str],
) -> DuplicateResult:
    """Split candidates into rows to import and exact duplicates.

    The lookup set is seeded from history and every accepted candidate's
    fingerprint is added as it is accepted, so repeated rows inside the same
    batch are caught in the same pass.

    Args:
        candidates: Normalized rows in file order.
        existing_fingerprints: Fingerprints of active transactions in the window.

    Returns:
        DuplicateResult with the rows to import and the skipped duplicates.
    """
    seen: Set[str] = set(existing_fingerprints)
    result = DuplicateResult()

    for candidate in candidates:
        key = candidate.fingerprint()
        if key in seen:
            logger.debug(f"Skipping duplicate: {key}")
            result.duplicates.append(candidate)
            continue

        seen.add(key)
        result.to_import.append(candidate)

    return result
