"""ImportBatch model representing one import operation."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class ImportBatch:
    """Represents an import operation.

    Attributes:
        id: Unique identifier (auto-generated).
        origin: Household/person scope of the imported rows.
        bank: Source institution label.
        filename: Name of the archived file (None if archiving disabled).
        created_at: Timestamp when the import was created.
    """

    id: int
    origin: str
    bank: str
    filename: Optional[str]
    created_at: datetime
