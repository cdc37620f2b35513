import csv
import logging
from typing import List, TextIO

from ingestion.base import ParseResult, build_candidate, is_empty_row, row_error

logger = logging.getLogger(__name__)

BINARY = False


def row_to_candidate(row: List[str], origin: str, bank: str):
    """Convert a CSV row (date, description, amount[, balance]) to a candidate.

    Raises:
        ValueError: If required fields are missing or invalid
    """
    if len(row) < 3:
        raise ValueError(f"expected at least 3 columns, got {len(row)}")

    balance = row[3] if len(row) > 3 else None
    return build_candidate(row[0], row[1], row[2], origin, bank, balance=balance)


def ingest(source: TextIO, origin: str, bank: str) -> ParseResult:
    """
    Ingest a plain CSV statement.

    Expected format:
    - Header row (line 1): ignored
    - Transaction rows (line 2+): date, description, amount, optional balance

    Amounts may use either decimal convention; dates may be ISO, European or
    spreadsheet serial numbers. Rows that fail are reported, not raised.
    """
    result = ParseResult(bank=bank)
    reader = csv.reader(source)

    header = next(reader, None)
    if header is None:
        logger.warning("CSV file is empty")
        return result

    # Row numbers count the header as row 1, like a spreadsheet view
    for row_number, row in enumerate(reader, start=2):
        if not row or is_empty_row(row):
            continue

        try:
            result.candidates.append(row_to_candidate(row, origin, bank))
        except ValueError as e:
            logger.warning(f"Skipping row {row_number}: {row} - {e}")
            result.errors.append(row_error(row_number, e))

    logger.info(
        f"Parsed {len(result.candidates)} rows from CSV ({len(result.errors)} errors)"
    )
    return result
