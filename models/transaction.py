from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
import json

STATUS_PENDING = "pending"
STATUS_CATEGORIZED = "categorized"

REVIEW_PENDING = "pending_review"
REVIEW_REJECTED = "rejected"

SOURCE_RULE = "rule"
SOURCE_PATTERN = "pattern"
SOURCE_AI = "ai"


def to_utc_naive(value: datetime) -> datetime:
    """Return value as a naive datetime in UTC (naive input is assumed UTC)."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def format_amount(amount) -> str:
    """Render an amount the same way regardless of int/float/Decimal input."""
    value = float(amount)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T00:00:00.000Z."""
    value = to_utc_naive(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def fingerprint(
    date: datetime, description: str, amount, origin: str, bank: str
) -> str:
    """Build the identity key used for exact-duplicate detection.

    Components are joined as-is: two transactions share a fingerprint only when
    date, description, amount, origin and bank are all identical.
    """
    return f"{format_timestamp(date)}_{description}_{format_amount(amount)}_{origin}_{bank}"


@dataclass
class TransactionCandidate:
    """A normalized row produced by ingestion, not yet persisted."""

    date: datetime
    description: str
    amount: float
    origin: str
    bank: str
    balance: Optional[float] = None
    major_category: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    @property
    def has_category(self) -> bool:
        return bool(self.major_category and self.category)

    def fingerprint(self) -> str:
        return fingerprint(
            self.date, self.description, self.amount, self.origin, self.bank
        )


@dataclass
class Transaction:
    id: str
    raw_date: datetime
    raw_description: str
    raw_amount: float  # signed: positive = income, negative = expense
    origin: str
    bank: str
    raw_balance: Optional[float] = None
    major_category: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    status: str = STATUS_PENDING
    review_status: Optional[str] = REVIEW_PENDING
    flagged: bool = True
    potential_duplicate_id: Optional[str] = None
    notes: Optional[str] = None
    classifier_confidence: Optional[float] = None
    classifier_reasoning: Optional[str] = None
    classifier_source: Optional[str] = None
    classifier_version: Optional[str] = None
    import_batch_id: Optional[int] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_categorized(self) -> bool:
        return self.major_category is not None and self.category is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def fingerprint(self) -> str:
        return fingerprint(
            self.raw_date,
            self.raw_description,
            self.raw_amount,
            self.origin,
            self.bank,
        )

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for database storage."""
        return {
            "id": self.id,
            "raw_date": to_utc_naive(self.raw_date).isoformat(),
            "raw_description": self.raw_description,
            "raw_amount": float(self.raw_amount),
            "raw_balance": (
                float(self.raw_balance) if self.raw_balance is not None else None
            ),
            "origin": self.origin,
            "bank": self.bank,
            "major_category": self.major_category,
            "category": self.category,
            "sub_category": self.sub_category,
            "tags": json.dumps(self.tags) if self.tags else None,
            "status": self.status,
            "review_status": self.review_status,
            "flagged": 1 if self.flagged else 0,
            "potential_duplicate_id": self.potential_duplicate_id,
            "notes": self.notes,
            "classifier_confidence": self.classifier_confidence,
            "classifier_reasoning": self.classifier_reasoning,
            "classifier_source": self.classifier_source,
            "classifier_version": self.classifier_version,
            "import_batch_id": self.import_batch_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }
