import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

import pdfplumber

from ingestion.base import ParseResult, UnsupportedFormatError, build_candidate, row_error
from llm.errors import RateLimitedError, ServiceUnavailableError
from llm.providers.base import LLMProvider

logger = logging.getLogger(__name__)

BINARY = True
REQUIRES_AI = True


def extract_text(source: Union[BinaryIO, Path, str]) -> str:
    """Concatenate the text of every page that has any."""
    pages_text = []
    with pdfplumber.open(source) as pdf:
        for page_number, page in enumerate(pdf.pages, start=1):
            text = page.extract_text()
            if text and text.strip():
                pages_text.append(text)
                logger.debug(f"Extracted text from page {page_number}")
    return "\n".join(pages_text)


def ingest(
    source: Union[BinaryIO, Path, str],
    origin: str,
    bank: str,
    provider: Optional[LLMProvider] = None,
) -> ParseResult:
    """
    Ingest a PDF statement by handing its text to the LLM provider.

    There is no rule-based fallback for PDFs: when the provider is missing or
    refuses the call, the error is raised for the user to act on.

    Raises:
        ServiceUnavailableError: No configured LLM provider.
        RateLimitedError: The provider is rate limited; retry later.
        TransientError: The provider call failed.
        UnsupportedFormatError: The PDF has no extractable text.
    """
    if provider is None or not provider.is_configured():
        raise ServiceUnavailableError(
            "PDF import needs an LLM provider. Enable [llm] in the config and "
            "set an OpenAI API key."
        )

    text = extract_text(source)
    if not text.strip():
        raise UnsupportedFormatError("No text could be extracted from the PDF (scanned?)")

    logger.info(f"Extracted {len(text)} characters from PDF; sending to LLM")
    try:
        rows = provider.parse_document(text, bank)
    except RateLimitedError:
        logger.error("LLM provider is rate limited; retry the PDF import later")
        raise
    except ServiceUnavailableError:
        logger.error("LLM provider unavailable; check its configuration")
        raise

    result = ParseResult(bank=bank)
    for row_number, row in enumerate(rows, start=1):
        try:
            result.candidates.append(
                build_candidate(
                    row.date, row.description, row.amount, origin, bank, balance=row.balance
                )
            )
        except ValueError as e:
            logger.warning(f"Skipping extracted row {row_number}: {e}")
            result.errors.append(row_error(row_number, e))

    logger.info(
        f"Parsed {len(result.candidates)} rows from PDF ({len(result.errors)} errors)"
    )
    return result
