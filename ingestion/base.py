"""Shared types and row handling for ingestion modules."""

from dataclasses import dataclass, field
from typing import List, Optional

from models.transaction import TransactionCandidate
from normalization import normalize_amount, normalize_date


class UnsupportedFormatError(ValueError):
    """The file type, or the shape of its contents, cannot be ingested."""


@dataclass
class ParseResult:
    """Rows read from one file.

    Attributes:
        candidates: Normalized rows ready for duplicate detection.
        errors: One message per row that could not be read.
        bank: Bank label applied to the rows.
    """

    candidates: List[TransactionCandidate] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    bank: Optional[str] = None


def row_error(row_number: int, error) -> str:
    return f"Error parsing row {row_number}: {error}"


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def build_candidate(
    date,
    description,
    amount,
    origin: str,
    bank: str,
    balance=None,
) -> TransactionCandidate:
    """Normalize raw cell values into a candidate.

    Raises:
        ValueError: If the date or description is missing, or the date is unreadable.
    """
    if _is_blank(date):
        raise ValueError("missing date")
    if _is_blank(description):
        raise ValueError("missing description")

    return TransactionCandidate(
        date=normalize_date(date),
        description=str(description).strip(),
        amount=normalize_amount(amount),
        origin=origin,
        bank=bank,
        balance=None if _is_blank(balance) else normalize_amount(balance),
    )


def is_empty_row(values) -> bool:
    return all(_is_blank(v) for v in values)
