"""Rule service for database operations."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from config import get_seed_dir
from models.rule import Rule
from rules import order_rules
from logger import get_logger

logger = get_logger()

_RULE_FIELDS = (
    "id, keyword, major_category, category, sub_category, tags, "
    "is_default, created_at, deleted_at"
)


class RuleError(ValueError):
    """Raised when a rule operation is not allowed."""


class RuleService:
    """Service for managing keyword categorization rules."""

    def __init__(self, db_manager):
        """Initialize the rule service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_active(self) -> List[Rule]:
        """Active rules in evaluation order (custom newest first, then defaults)."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_RULE_FIELDS} FROM rules WHERE deleted_at IS NULL"
            )
            return order_rules(self._row_to_rule(row) for row in cursor.fetchall())

    def find_all(self, include_deleted: bool = False) -> List[Rule]:
        query = f"SELECT {_RULE_FIELDS} FROM rules"
        if not include_deleted:
            query += " WHERE deleted_at IS NULL"
        query += " ORDER BY keyword, id"

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query)
            return [self._row_to_rule(row) for row in cursor.fetchall()]

    def find(self, rule_id: int) -> Optional[Rule]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_RULE_FIELDS} FROM rules WHERE id = ?", (rule_id,)
            )
            row = cursor.fetchone()
            return self._row_to_rule(row) if row else None

    def create(
        self,
        keyword: str,
        major_category: str,
        category: str,
        sub_category: Optional[str] = None,
        tags: Optional[List[str]] = None,
        is_default: bool = False,
    ) -> Rule:
        """Create a rule. The keyword is stored lowercased.

        Raises:
            RuleError: If the keyword is empty or already used by an active rule.
        """
        keyword = keyword.strip().lower()
        if not keyword:
            raise RuleError("Rule keyword cannot be empty")

        created_at = datetime.now()
        try:
            with self.db_manager.connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO rules
                        (keyword, major_category, category, sub_category, tags,
                         is_default, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        keyword,
                        major_category,
                        category,
                        sub_category,
                        json.dumps(tags) if tags else None,
                        1 if is_default else 0,
                        created_at.isoformat(),
                    ),
                )
                conn.commit()
                rule_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise RuleError(f"An active rule for '{keyword}' already exists")

        logger.info(f"Created rule '{keyword}' -> {major_category}/{category}")
        return Rule(
            id=rule_id,
            keyword=keyword,
            major_category=major_category,
            category=category,
            sub_category=sub_category,
            tags=list(tags or []),
            is_default=is_default,
            created_at=created_at,
        )

    def delete(self, rule_id: int) -> Rule:
        """Soft-delete a custom rule.

        Raises:
            RuleError: If the rule does not exist, is already deleted, or is a default.
        """
        rule = self.find(rule_id)
        if rule is None or not rule.is_active:
            raise RuleError(f"Rule {rule_id} not found")
        if rule.is_default:
            raise RuleError("Default rules cannot be deleted")

        deleted_at = datetime.now()
        with self.db_manager.connect() as conn:
            conn.execute(
                "UPDATE rules SET deleted_at = ? WHERE id = ?",
                (deleted_at.isoformat(), rule_id),
            )
            conn.commit()

        rule.deleted_at = deleted_at
        logger.info(f"Deleted rule '{rule.keyword}'")
        return rule

    def restore(self, rule_id: int) -> Rule:
        """Bring a soft-deleted rule back.

        Raises:
            RuleError: If the rule is not deleted or its keyword was reused meanwhile.
        """
        rule = self.find(rule_id)
        if rule is None or rule.is_active:
            raise RuleError(f"Rule {rule_id} not found in trash")

        try:
            with self.db_manager.connect() as conn:
                conn.execute("UPDATE rules SET deleted_at = NULL WHERE id = ?", (rule_id,))
                conn.commit()
        except sqlite3.IntegrityError:
            raise RuleError(f"An active rule for '{rule.keyword}' already exists")

        rule.deleted_at = None
        logger.info(f"Restored rule '{rule.keyword}'")
        return rule

    def seed_defaults(self, path: Optional[Path] = None) -> int:
        """Create the default merchant rules that don't exist yet.

        Returns:
            Number of rules created.
        """
        path = path or get_seed_dir() / "rules.json"
        with open(path, "r", encoding="utf-8") as f:
            defaults = json.load(f)

        existing = {rule.keyword for rule in self.find_all()}
        created = 0
        for entry in defaults:
            if entry["keyword"].lower() in existing:
                continue
            self.create(
                entry["keyword"],
                entry["major_category"],
                entry["category"],
                sub_category=entry.get("sub_category"),
                tags=entry.get("tags"),
                is_default=True,
            )
            created += 1

        logger.info(f"Seeded {created} default rule(s)")
        return created

    def _row_to_rule(self, row: tuple) -> Rule:
        return Rule(
            id=row[0],
            keyword=row[1],
            major_category=row[2],
            category=row[3],
            sub_category=row[4],
            tags=json.loads(row[5]) if row[5] else [],
            is_default=bool(row[6]),
            created_at=datetime.fromisoformat(row[7]) if row[7] else None,
            deleted_at=datetime.fromisoformat(row[8]) if row[8] else None,
        )
