"""ImportBatch service for database operations."""

from typing import List, Optional
from datetime import datetime
from models.import_batch import ImportBatch

_BATCH_FIELDS = "id, origin, bank, filename, created_at"


class ImportBatchService:
    """Service for managing import batch records."""

    def __init__(self, db_manager):
        """Initialize the import batch service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, origin: str, bank: str, filename: Optional[str]) -> ImportBatch:
        """Create a new import batch record.

        Args:
            origin: Household/person scope of the import.
            bank: Source institution label.
            filename: Name of the archived file (None if archiving disabled).

        Returns:
            The created ImportBatch object with id and created_at populated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO import_batches (origin, bank, filename) VALUES (?, ?, ?)",
                (origin, bank, filename),
            )
            conn.commit()

            # Fetch the created record to get the created_at timestamp
            cursor = conn.execute(
                f"SELECT {_BATCH_FIELDS} FROM import_batches WHERE id = ?",
                (cursor.lastrowid,),
            )
            return self._row_to_batch(cursor.fetchone())

    def find(self, batch_id: int) -> Optional[ImportBatch]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_BATCH_FIELDS} FROM import_batches WHERE id = ?",
                (batch_id,),
            )
            row = cursor.fetchone()
            return self._row_to_batch(row) if row else None

    def find_all(self) -> List[ImportBatch]:
        """Get all import batches, newest first."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_BATCH_FIELDS} FROM import_batches ORDER BY id DESC"
            )
            return [self._row_to_batch(row) for row in cursor.fetchall()]

    def _row_to_batch(self, row: tuple) -> ImportBatch:
        return ImportBatch(
            id=row[0],
            origin=row[1],
            bank=row[2],
            filename=row[3],
            created_at=datetime.fromisoformat(row[4]),
        )
