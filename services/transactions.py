"""Transaction service for database operations."""

import json
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Set

from bulk import BulkResult, run_bulk
from models.transaction import (
    REVIEW_PENDING,
    REVIEW_REJECTED,
    STATUS_CATEGORIZED,
    STATUS_PENDING,
    Transaction,
    fingerprint,
)

_TRANSACTION_FIELDS = (
    "id",
    "raw_date",
    "raw_description",
    "raw_amount",
    "raw_balance",
    "origin",
    "bank",
    "major_category",
    "category",
    "sub_category",
    "tags",
    "status",
    "review_status",
    "flagged",
    "potential_duplicate_id",
    "notes",
    "classifier_confidence",
    "classifier_reasoning",
    "classifier_source",
    "classifier_version",
    "import_batch_id",
    "created_at",
    "deleted_at",
)

_TRANSACTION_SELECT_FIELDS = ", ".join(_TRANSACTION_FIELDS)
_TRANSACTION_INSERT_PLACEHOLDERS = f"({', '.join(['?'] * len(_TRANSACTION_FIELDS))})"

_ACTIVE = "deleted_at IS NULL"


class TransactionNotFoundError(LookupError):
    """Raised when a transaction does not exist or is not in the expected state."""


class TransactionService:
    """Service for managing transactions.

    Deletion is always a soft tombstone (``deleted_at``); rows are never
    removed from the table.
    """

    def __init__(self, db_manager):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, transaction: Transaction) -> Transaction:
        """Insert a single transaction.

        Raises:
            sqlite3.IntegrityError: If the ID already exists.
        """
        self.bulk_create([transaction])
        return transaction

    def bulk_create(self, transactions: List[Transaction]) -> int:
        """Insert many transactions in one database transaction.

        Returns:
            Number of rows inserted.
        """
        if not transactions:
            return 0

        with self.db_manager.connect() as conn:
            before = conn.total_changes
            conn.executemany(
                f"""
                INSERT INTO transactions ({_TRANSACTION_SELECT_FIELDS})
                VALUES {_TRANSACTION_INSERT_PLACEHOLDERS}
                """,
                [self._to_row(t) for t in transactions],
            )
            conn.commit()
            return conn.total_changes - before

    def find(
        self, transaction_id: str, include_deleted: bool = False
    ) -> Optional[Transaction]:
        """Get a single transaction by ID (active only unless include_deleted)."""
        query = f"SELECT {_TRANSACTION_SELECT_FIELDS} FROM transactions WHERE id = ?"
        if not include_deleted:
            query += f" AND {_ACTIVE}"

        rows = self._query(query, (transaction_id,))
        return rows[0] if rows else None

    def find_many(self, transaction_ids: Iterable[str]) -> List[Transaction]:
        """Get active transactions by ID, in the order given."""
        ids = list(transaction_ids)
        if not ids:
            return []

        placeholders = ", ".join(["?"] * len(ids))
        found = self._query(
            f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE id IN ({placeholders}) AND {_ACTIVE}
            """,
            ids,
        )
        by_id = {t.id: t for t in found}
        return [by_id[i] for i in ids if i in by_id]

    def find_all(self, limit: int = 1000, page: int = 1) -> List[Transaction]:
        """Active, reviewed transactions for listings, newest first.

        Args:
            limit: Page size, capped at 10000.
            page: 1-based page number.
        """
        limit = max(1, min(limit, 10000))
        offset = (max(page, 1) - 1) * limit
        return self._query(
            f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE {_ACTIVE}
              AND (review_status IS NULL OR review_status != ?)
            ORDER BY raw_date DESC, id
            LIMIT ? OFFSET ?
            """,
            (REVIEW_PENDING, limit, offset),
        )

    def find_pending(self) -> List[Transaction]:
        """Active transactions that still need a category."""
        return self._query(
            f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE status = ? AND {_ACTIVE}
            ORDER BY raw_date DESC, id
            """,
            (STATUS_PENDING,),
        )

    def find_pending_review(self) -> List[Transaction]:
        """Active transactions waiting for approval, most recently imported first."""
        return self._query(
            f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE review_status = ? AND {_ACTIVE}
            ORDER BY created_at DESC, id
            """,
            (REVIEW_PENDING,),
        )

    def find_deleted(self) -> List[Transaction]:
        """Soft-deleted transactions (the trash), most recently deleted first."""
        return self._query(
            f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE deleted_at IS NOT NULL
            ORDER BY deleted_at DESC, id
            """
        )

    def find_categorized_history(self, limit: int = 500) -> List[Transaction]:
        """Recent categorized transactions used for similarity and AI examples."""
        return self._query(
            f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE status = ?
              AND major_category IS NOT NULL
              AND category IS NOT NULL
              AND {_ACTIVE}
            ORDER BY raw_date DESC, id
            LIMIT ?
            """,
            (STATUS_CATEGORIZED, limit),
        )

    def find_fingerprints_since(
        self, days: int = 90, now: Optional[datetime] = None
    ) -> Set[str]:
        """Fingerprints of active, non-rejected transactions in the last ``days``.

        Older transactions are deliberately left out to bound the lookup.
        """
        cutoff = ((now or datetime.now()) - timedelta(days=days)).isoformat()

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT raw_date, raw_description, raw_amount, origin, bank
                FROM transactions
                WHERE raw_date >= ?
                  AND (review_status IS NULL OR review_status != ?)
                  AND {_ACTIVE}
                """,
                (cutoff, REVIEW_REJECTED),
            )
            return {
                fingerprint(datetime.fromisoformat(row[0]), row[1], row[2], row[3], row[4])
                for row in cursor.fetchall()
            }

    def apply_categorization(self, outcome) -> bool:
        """Write a categorization outcome to its transaction.

        Args:
            outcome: A categorized ``categorization.CategorizationOutcome``.

        Returns:
            True if the transaction was updated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE transactions
                SET major_category = ?, category = ?, sub_category = ?, tags = ?,
                    status = ?, flagged = ?,
                    classifier_confidence = ?, classifier_reasoning = ?,
                    classifier_source = ?, classifier_version = ?
                WHERE id = ? AND {_ACTIVE}
                """,
                (
                    outcome.major_category,
                    outcome.category,
                    outcome.sub_category,
                    json.dumps(outcome.tags) if outcome.tags else None,
                    STATUS_CATEGORIZED,
                    1 if outcome.flagged else 0,
                    outcome.confidence,
                    outcome.reasoning,
                    outcome.source,
                    outcome.version,
                    outcome.transaction_id,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0

    def update_category(
        self,
        transaction_id: str,
        major_category: str,
        category: str,
        sub_category: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> bool:
        """Set a category chosen by the user; clears the review flag."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE transactions
                SET major_category = ?, category = ?, sub_category = ?,
                    tags = COALESCE(?, tags), status = ?, flagged = 0
                WHERE id = ? AND {_ACTIVE}
                """,
                (
                    major_category,
                    category,
                    sub_category,
                    json.dumps(tags) if tags is not None else None,
                    STATUS_CATEGORIZED,
                    transaction_id,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0

    def approve(self, transaction_ids: Iterable[str]) -> int:
        """Clear the pending-review state. Returns the number approved."""
        return self._update_review(
            transaction_ids, "review_status = NULL", (), REVIEW_PENDING
        )

    def reject(self, transaction_ids: Iterable[str]) -> int:
        """Mark as rejected and soft-delete. Returns the number rejected."""
        return self._update_review(
            transaction_ids,
            "review_status = ?, deleted_at = ?",
            (REVIEW_REJECTED, datetime.now().isoformat()),
            REVIEW_PENDING,
        )

    def review_progress(self) -> dict:
        """Counts for the review screen."""
        with self.db_manager.connect() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM transactions WHERE {_ACTIVE}"
            ).fetchone()[0]
            pending = conn.execute(
                f"SELECT COUNT(*) FROM transactions WHERE review_status = ? AND {_ACTIVE}",
                (REVIEW_PENDING,),
            ).fetchone()[0]
            rejected = conn.execute(
                "SELECT COUNT(*) FROM transactions WHERE review_status = ?",
                (REVIEW_REJECTED,),
            ).fetchone()[0]

        approved = total - pending
        reviewed = approved + rejected
        overall = total + rejected
        return {
            "total": total,
            "pending": pending,
            "approved": approved,
            "rejected": rejected,
            "reviewed": reviewed,
            "percent_complete": round(reviewed / overall * 100) if overall else 100,
        }

    def soft_delete(self, transaction_id: str) -> bool:
        """Tombstone an active transaction. Returns False if not found."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"UPDATE transactions SET deleted_at = ? WHERE id = ? AND {_ACTIVE}",
                (datetime.now().isoformat(), transaction_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def restore(self, transaction_id: str) -> Transaction:
        """Clear the tombstone; a rejected transaction goes back to review.

        Raises:
            TransactionNotFoundError: If the transaction is not in the trash.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE transactions
                SET deleted_at = NULL,
                    review_status = CASE WHEN review_status = ? THEN ? ELSE review_status END
                WHERE id = ? AND deleted_at IS NOT NULL
                """,
                (REVIEW_REJECTED, REVIEW_PENDING, transaction_id),
            )
            conn.commit()

        if cursor.rowcount == 0:
            raise TransactionNotFoundError(
                f"Transaction {transaction_id} not found in trash"
            )
        return self.find(transaction_id)

    def bulk_delete(self, transaction_ids: Iterable[str]) -> BulkResult:
        """Soft-delete each transaction independently; failures don't stop the rest."""
        return run_bulk(transaction_ids, self.soft_delete)

    def bulk_restore(self, transaction_ids: Iterable[str]) -> BulkResult:
        return run_bulk(transaction_ids, self.restore)

    def _update_review(
        self, transaction_ids, set_clause: str, set_params: tuple, current_status: str
    ) -> int:
        ids = list(transaction_ids)
        if not ids:
            return 0

        placeholders = ", ".join(["?"] * len(ids))
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE transactions
                SET {set_clause}
                WHERE id IN ({placeholders})
                  AND review_status = ?
                  AND {_ACTIVE}
                """,
                (*set_params, *ids, current_status),
            )
            conn.commit()
            return cursor.rowcount

    def _query(self, query: str, params=()) -> List[Transaction]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def _to_row(self, transaction: Transaction) -> tuple:
        data = transaction.to_dict()
        return tuple(data[name] for name in _TRANSACTION_FIELDS)

    def _row_to_transaction(self, row: tuple) -> Transaction:
        """Convert a database row to a Transaction object."""
        data = dict(zip(_TRANSACTION_FIELDS, row))
        return Transaction(
            id=data["id"],
            raw_date=datetime.fromisoformat(data["raw_date"]),
            raw_description=data["raw_description"],
            raw_amount=data["raw_amount"],
            raw_balance=data["raw_balance"],
            origin=data["origin"],
            bank=data["bank"],
            major_category=data["major_category"],
            category=data["category"],
            sub_category=data["sub_category"],
            tags=json.loads(data["tags"]) if data["tags"] else [],
            status=data["status"],
            review_status=data["review_status"],
            flagged=bool(data["flagged"]),
            potential_duplicate_id=data["potential_duplicate_id"],
            notes=data["notes"],
            classifier_confidence=data["classifier_confidence"],
            classifier_reasoning=data["classifier_reasoning"],
            classifier_source=data["classifier_source"],
            classifier_version=data["classifier_version"],
            import_batch_id=data["import_batch_id"],
            created_at=(
                datetime.fromisoformat(data["created_at"])
                if data["created_at"]
                else None
            ),
            deleted_at=(
                datetime.fromisoformat(data["deleted_at"])
                if data["deleted_at"]
                else None
            ),
        )
