"""Feedback service: append-only log of what users did with suggestions."""

import json
from datetime import datetime
from typing import List, Optional

from models.feedback import ACTION_ACCEPT, ACTIONS, CategorySuggestionFeedback
from services.transactions import TransactionNotFoundError

_FEEDBACK_FIELDS = (
    "id, transaction_id, suggested_major_category, suggested_category, "
    "suggested_tags, suggested_confidence, suggestion_source, action, "
    "actual_major_category, actual_category, actual_tags, created_at"
)


class FeedbackService:
    """Service for recording category suggestion feedback."""

    def __init__(self, db_manager):
        self.db_manager = db_manager

    def record(
        self,
        transaction_id: str,
        action: str,
        suggested_major_category: Optional[str] = None,
        suggested_category: Optional[str] = None,
        suggested_confidence: Optional[float] = None,
        suggestion_source: str = "unknown",
        suggested_tags: Optional[List[str]] = None,
        actual_major_category: Optional[str] = None,
        actual_category: Optional[str] = None,
        actual_tags: Optional[List[str]] = None,
    ) -> CategorySuggestionFeedback:
        """Append a feedback record.

        On ``accept`` the actual category is the suggested one.

        Raises:
            ValueError: If the action is unknown.
            TransactionNotFoundError: If the transaction does not exist.
        """
        if action not in ACTIONS:
            raise ValueError(
                f"Unknown feedback action '{action}'. Expected one of: {', '.join(ACTIONS)}"
            )

        if action == ACTION_ACCEPT:
            actual_major_category = suggested_major_category
            actual_category = suggested_category
            actual_tags = suggested_tags

        created_at = datetime.now()
        with self.db_manager.connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM transactions WHERE id = ?", (transaction_id,)
            ).fetchone()
            if not exists:
                raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

            cursor = conn.execute(
                """
                INSERT INTO category_suggestion_feedback
                    (transaction_id, suggested_major_category, suggested_category,
                     suggested_tags, suggested_confidence, suggestion_source, action,
                     actual_major_category, actual_category, actual_tags, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction_id,
                    suggested_major_category,
                    suggested_category,
                    json.dumps(suggested_tags) if suggested_tags else None,
                    suggested_confidence,
                    suggestion_source,
                    action,
                    actual_major_category,
                    actual_category,
                    json.dumps(actual_tags) if actual_tags else None,
                    created_at.isoformat(),
                ),
            )
            conn.commit()
            feedback_id = cursor.lastrowid

        return CategorySuggestionFeedback(
            id=feedback_id,
            transaction_id=transaction_id,
            suggested_major_category=suggested_major_category,
            suggested_category=suggested_category,
            suggested_confidence=suggested_confidence,
            suggestion_source=suggestion_source,
            action=action,
            actual_major_category=actual_major_category,
            actual_category=actual_category,
            created_at=created_at,
            suggested_tags=list(suggested_tags or []),
            actual_tags=list(actual_tags or []),
        )

    def record_outcome(self, outcome, action: str, **actual) -> CategorySuggestionFeedback:
        """Record feedback for a ``CategorizationOutcome`` suggestion."""
        return self.record(
            outcome.transaction_id,
            action,
            suggested_major_category=outcome.major_category,
            suggested_category=outcome.category,
            suggested_confidence=outcome.confidence,
            suggestion_source=outcome.source or "unknown",
            suggested_tags=outcome.tags,
            **actual,
        )

    def find_by_transaction(self, transaction_id: str) -> List[CategorySuggestionFeedback]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_FEEDBACK_FIELDS}
                FROM category_suggestion_feedback
                WHERE transaction_id = ?
                ORDER BY id
                """,
                (transaction_id,),
            )
            return [self._row_to_feedback(row) for row in cursor.fetchall()]

    def stats(self) -> List[dict]:
        """Counts per (action, suggestion source), most frequent first."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT action, suggestion_source, COUNT(*) AS total
                FROM category_suggestion_feedback
                GROUP BY action, suggestion_source
                ORDER BY total DESC, action, suggestion_source
                """
            )
            return [
                {"action": row[0], "source": row[1], "count": row[2]}
                for row in cursor.fetchall()
            ]

    def _row_to_feedback(self, row: tuple) -> CategorySuggestionFeedback:
        return CategorySuggestionFeedback(
            id=row[0],
            transaction_id=row[1],
            suggested_major_category=row[2],
            suggested_category=row[3],
            suggested_tags=json.loads(row[4]) if row[4] else [],
            suggested_confidence=row[5],
            suggestion_source=row[6],
            action=row[7],
            actual_major_category=row[8],
            actual_category=row[9],
            actual_tags=json.loads(row[10]) if row[10] else [],
            created_at=datetime.fromisoformat(row[11]),
        )
