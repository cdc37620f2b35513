"""Amount and date normalization for imported rows.

Bank exports disagree on decimal separators and date encodings. These helpers
turn a raw cell into a canonical float or datetime:

- ``normalize_amount`` never raises; an unparseable cell becomes ``0.0`` so a
  single bad value cannot abort a batch import.
- ``normalize_date`` raises ``DateParseError`` so the caller can report the
  failing row and carry on with the rest.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from models.transaction import to_utc_naive

# Days between the spreadsheet epoch (1899-12-30) and 1970-01-01
SPREADSHEET_EPOCH_OFFSET = 25569

_CURRENCY_AND_SPACE_RE = re.compile(r"[€$£¥\s]")
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DMY_LONG_RE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")
_DMY_SHORT_RE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{2})$")


class DateParseError(ValueError):
    """Raised when a value does not match any supported date format."""


def normalize_amount(value: Any) -> float:
    """Parse an amount in European (1.234,56) or American (1,234.56) notation.

    The separator that appears last is the decimal point; earlier occurrences
    of the other separator are thousands separators.

    Args:
        value: Raw cell value (number or string).

    Returns:
        The parsed amount, or 0.0 when the value cannot be parsed.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if value is None:
        return 0.0

    text = str(value).strip()
    if not text:
        return 0.0

    text = _CURRENCY_AND_SPACE_RE.sub("", text)

    last_comma = text.rfind(",")
    last_period = text.rfind(".")

    if last_comma > last_period:
        # European: periods group thousands, comma is the decimal point
        text = text.replace(".", "").replace(",", ".", 1)
    else:
        text = text.replace(",", "")

    match = _LEADING_NUMBER_RE.match(text)
    if not match:
        return 0.0
    return float(match.group(0))


def _build_date(year: int, month: int, day: int, raw: str) -> datetime:
    try:
        return datetime(year, month, day)
    except ValueError as e:
        raise DateParseError(f"Unable to parse date: {raw}") from e


def _expand_two_digit_year(year: int) -> int:
    if year < 50:
        year += 2000
    if year < 100:
        year += 1900
    return year


def _from_spreadsheet_serial(serial: float) -> datetime:
    return datetime(1970, 1, 1) + timedelta(days=serial - SPREADSHEET_EPOCH_OFFSET)


def normalize_date(value: Any) -> datetime:
    """Parse a date cell into a naive datetime.

    Accepted inputs, tried in order: datetime/date objects, ISO ``YYYY-MM-DD``,
    ``DD/MM/YYYY`` or ``DD-MM-YYYY``, two-digit-year variants of the latter,
    ISO timestamps, and spreadsheet serial numbers (only when the result
    falls strictly between 1900 and 2100).

    Raises:
        DateParseError: If the value matches none of the formats.
    """
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    raw = "" if value is None else str(value).strip()

    match = _ISO_DATE_RE.match(raw)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _build_date(year, month, day, raw)

    match = _DMY_LONG_RE.match(raw)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _build_date(year, month, day, raw)

    match = _DMY_SHORT_RE.match(raw)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _build_date(_expand_two_digit_year(year), month, day, raw)

    if "T" in raw:
        try:
            return to_utc_naive(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            pass

    if not isinstance(value, bool) and raw:
        try:
            serial = float(raw)
        except ValueError:
            serial = None
        if serial is not None:
            try:
                result = _from_spreadsheet_serial(serial)
            except (OverflowError, ValueError):
                result = None
            if result is not None and 1900 < result.year < 2100:
                return result

    raise DateParseError(f"Unable to parse date: {raw}")
