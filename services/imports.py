"""Import operation: parse, de-duplicate and store transactions."""

import gzip
import io
import shutil
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from duplicates import detect_duplicates
from ingestion import get_ingestion_module, module_for_filename
from llm.providers.base import LLMProvider
from models.transaction import (
    REVIEW_PENDING,
    STATUS_CATEGORIZED,
    STATUS_PENDING,
    Transaction,
    TransactionCandidate,
)
from logger import get_logger

logger = get_logger()

# Bank exports that are not UTF-8 are almost always Windows-1252
FALLBACK_ENCODING = "cp1252"


@dataclass
class ImportResult:
    """Summary of one import. Partial success is normal, never an exception."""

    imported: int = 0
    skipped_duplicates: int = 0
    per_row_errors: List[str] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    batch_id: Optional[int] = None


class ImportService:
    """Turns parsed candidates into stored transactions.

    Args:
        services: Services container (transactions, import_batches, config).
        clock: Returns "now"; the duplicate window is measured back from it.
    """

    def __init__(self, services, clock: Callable[[], datetime] = datetime.now):
        self.services = services
        self.clock = clock

    def import_candidates(
        self,
        candidates: List[TransactionCandidate],
        origin: str,
        bank: str,
        filename: Optional[str] = None,
        errors: Iterable[str] = (),
    ) -> ImportResult:
        """Store the candidates that are not exact duplicates.

        A single candidate that already carries a category is treated as a
        manual add: it is stored categorized, outside the review queue and
        without an import batch.

        Args:
            candidates: Normalized rows.
            origin: Origin recorded on the import batch.
            bank: Bank recorded on the import batch.
            filename: Archived file name, if any.
            errors: Per-row errors collected while parsing.

        Returns:
            ImportResult with counts, errors and the created transactions.
        """
        result = ImportResult(per_row_errors=list(errors))
        config = self.services.config

        existing = self.services.transactions.find_fingerprints_since(
            config.duplicate_window_days, now=self.clock()
        )
        detected = detect_duplicates(candidates, existing)
        result.skipped_duplicates = detected.duplicate_count

        if detected.duplicate_count:
            logger.info(f"{detected.duplicate_count} duplicate transaction(s) skipped")

        if not detected.to_import:
            logger.info("No new transactions to import")
            return result

        is_manual_add = len(candidates) == 1 and candidates[0].has_category

        batch_id = None
        if not is_manual_add:
            batch = self.services.import_batches.create(origin, bank, filename)
            batch_id = batch.id
            logger.info(f"Created import batch record (ID: {batch_id})")

        created_at = self.clock()
        transactions = [
            self._to_transaction(candidate, batch_id, created_at, is_manual_add)
            for candidate in detected.to_import
        ]

        result.imported = self.services.transactions.bulk_create(transactions)
        result.transactions = transactions
        result.batch_id = batch_id

        logger.info(
            f"Imported {result.imported} transaction(s), skipped "
            f"{result.skipped_duplicates} duplicate(s), "
            f"{len(result.per_row_errors)} row error(s)"
        )
        return result

    def import_file(
        self,
        path: Path,
        origin: str,
        bank: str,
        module_name: Optional[str] = None,
        provider: Optional[LLMProvider] = None,
    ) -> ImportResult:
        """Parse a statement file, archive it and import its rows.

        Args:
            path: File to import.
            origin: Origin applied to every row.
            bank: Bank label applied to every row.
            module_name: Ingestion module; inferred from the extension if None.
            provider: LLM provider for formats that need one (PDF).

        Raises:
            UnsupportedFormatError: Unknown extension or unreadable structure.
            ClassificationError: A PDF could not be parsed by the provider.
        """
        path = Path(path)
        module_name = module_name or module_for_filename(path.name)
        module = get_ingestion_module(module_name)
        logger.info(f"Ingesting {path.name} with the '{module_name}' module")

        if getattr(module, "REQUIRES_AI", False):
            with open(path, "rb") as f:
                parsed = module.ingest(f, origin, bank, provider=provider)
        elif module.BINARY:
            with open(path, "rb") as f:
                parsed = module.ingest(f, origin, bank)
        else:
            source = io.StringIO(self._read_text(path), newline="")
            parsed = module.ingest(source, origin, bank)

        archive_filename = self._archive(path, bank) if parsed.candidates else None

        return self.import_candidates(
            parsed.candidates,
            origin,
            parsed.bank or bank,
            filename=archive_filename,
            errors=parsed.errors,
        )

    def _read_text(self, path: Path) -> str:
        """Decode a text statement as UTF-8, falling back to cp1252."""
        raw = path.read_bytes()
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.warning(f"{path.name} is not UTF-8; reading it as {FALLBACK_ENCODING}")
            return raw.decode(FALLBACK_ENCODING, errors="replace")

    def _archive(self, path: Path, bank: str) -> Optional[str]:
        """Gzip a copy of the imported file into the archive directory."""
        config = self.services.config
        if not config.archive_enabled:
            return None

        config.archive_dir.mkdir(parents=True, exist_ok=True)

        # {bank}_{timestamp}_{original_filename}.gz
        timestamp = self.clock().strftime("%Y%m%d_%H%M%S")
        archive_filename = f"{bank}_{timestamp}_{path.name}.gz"
        archive_path = config.archive_dir / archive_filename

        with open(path, "rb") as f_in:
            with gzip.open(archive_path, "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)

        logger.info(f"Archived file to: {archive_path}")
        return archive_filename

    def _to_transaction(
        self,
        candidate: TransactionCandidate,
        batch_id: Optional[int],
        created_at: datetime,
        is_manual_add: bool,
    ) -> Transaction:
        return Transaction(
            id=uuid.uuid4().hex,
            raw_date=candidate.date,
            raw_description=candidate.description,
            raw_amount=candidate.amount,
            raw_balance=candidate.balance,
            origin=candidate.origin,
            bank=candidate.bank,
            major_category=candidate.major_category,
            category=candidate.category,
            sub_category=candidate.sub_category,
            tags=list(candidate.tags),
            notes=candidate.notes,
            status=STATUS_CATEGORIZED if candidate.has_category else STATUS_PENDING,
            review_status=None if is_manual_add else REVIEW_PENDING,
            flagged=not is_manual_add,
            import_batch_id=batch_id,
            created_at=created_at,
        )
