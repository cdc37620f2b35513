import json
import logging
from typing import Any, Dict, Optional, Sequence, TextIO

from ingestion.base import ParseResult, UnsupportedFormatError, build_candidate, row_error

logger = logging.getLogger(__name__)

BINARY = False

# Accepted spellings for each field, tried in order
DATE_KEYS = ("date", "Date", "rawDate")
DESCRIPTION_KEYS = ("description", "Description", "label", "rawDescription")
AMOUNT_KEYS = ("amount", "Amount", "rawAmount")
BALANCE_KEYS = ("balance", "Balance", "rawBalance")
BANK_KEYS = ("bank", "Bank")
ORIGIN_KEYS = ("origin", "Origin")


def _lookup(item: Dict[str, Any], keys: Sequence[str]) -> Optional[Any]:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def item_to_candidate(item: Any, origin: str, bank: str):
    """Convert one JSON record to a candidate.

    The caller's ``origin`` and ``bank`` win; a record's own values are used
    only when those are empty. A missing amount or description is a row
    error rather than a silent zero or blank.

    Raises:
        ValueError: If the record is not an object or lacks required fields.
    """
    if not isinstance(item, dict):
        raise ValueError(f"expected an object, got {type(item).__name__}")

    amount = _lookup(item, AMOUNT_KEYS)
    if amount is None:
        raise ValueError("missing amount")

    return build_candidate(
        _lookup(item, DATE_KEYS),
        _lookup(item, DESCRIPTION_KEYS),
        amount,
        str(origin or _lookup(item, ORIGIN_KEYS) or ""),
        str(bank or _lookup(item, BANK_KEYS) or ""),
        balance=_lookup(item, BALANCE_KEYS),
    )


def ingest(source: TextIO, origin: str, bank: str) -> ParseResult:
    """
    Ingest a JSON export.

    Accepts either an array of transaction objects or an object with a
    ``transactions`` array.

    Raises:
        UnsupportedFormatError: If the document is not valid JSON or has another shape.
    """
    try:
        data = json.load(source)
    except json.JSONDecodeError as e:
        raise UnsupportedFormatError(f"Invalid JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("transactions"), list):
        data = data["transactions"]
    if not isinstance(data, list):
        raise UnsupportedFormatError(
            "JSON must be an array of transactions or an object with a 'transactions' array"
        )

    result = ParseResult(bank=bank)
    for row_number, item in enumerate(data, start=1):
        try:
            result.candidates.append(item_to_candidate(item, origin, bank))
        except ValueError as e:
            logger.warning(f"Skipping record {row_number}: {e}")
            result.errors.append(row_error(row_number, e))

    logger.info(
        f"Parsed {len(result.candidates)} records from JSON ({len(result.errors)} errors)"
    )
    return result
