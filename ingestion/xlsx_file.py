import logging
from typing import BinaryIO, Union
from pathlib import Path

from openpyxl import load_workbook

from ingestion.base import ParseResult, build_candidate, is_empty_row, row_error

logger = logging.getLogger(__name__)

BINARY = True


def ingest(source: Union[BinaryIO, Path, str], origin: str, bank: str) -> ParseResult:
    """
    Ingest the first worksheet of an XLSX workbook.

    Expected format matches the CSV module: a header row, then rows of
    date, description, amount and optional balance. Date cells may be real
    dates or serial numbers.
    """
    result = ParseResult(bank=bank)

    workbook = load_workbook(source, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        logger.info(f"Using first sheet: {sheet.title}")

        rows = sheet.iter_rows(values_only=True)
        if next(rows, None) is None:
            logger.warning("Worksheet is empty")
            return result

        for row_number, row in enumerate(rows, start=2):
            if row is None or is_empty_row(row):
                continue

            cells = list(row) + [None] * (4 - len(row))
            try:
                result.candidates.append(
                    build_candidate(
                        cells[0], cells[1], cells[2], origin, bank, balance=cells[3]
                    )
                )
            except ValueError as e:
                logger.warning(f"Skipping row {row_number}: {e}")
                result.errors.append(row_error(row_number, e))
    finally:
        workbook.close()

    logger.info(
        f"Parsed {len(result.candidates)} rows from XLSX ({len(result.errors)} errors)"
    )
    return result
