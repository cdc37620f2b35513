"""Helper utilities for tests."""

from datetime import datetime
from pathlib import Path
import sqlite3
import uuid

from llm.errors import ClassificationError
from llm.providers.base import AIClassification, LLMProvider
from models.category import Category, MajorCategory, SubCategory, Taxonomy
from models.rule import Rule
from models.transaction import (
    REVIEW_PENDING,
    STATUS_CATEGORIZED,
    STATUS_PENDING,
    Transaction,
    TransactionCandidate,
)


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    # Get all .sql files and sort them
    migration_files = sorted(migrations_dir.glob("*.sql"))

    for migration_file in migration_files:
        with open(migration_file, "r") as f:
            sql = f.read()

        # Execute the migration
        conn.executescript(sql)

    conn.commit()


def make_transaction(
    description="COMPRA TESTE",
    amount=-10.0,
    date=None,
    major_category=None,
    category=None,
    sub_category=None,
    **kwargs,
) -> Transaction:
    """Build a Transaction with sensible defaults."""
    categorized = major_category is not None and category is not None
    values = dict(
        id=uuid.uuid4().hex,
        raw_date=date or datetime(2024, 1, 15),
        raw_description=description,
        raw_amount=amount,
        origin="Personal",
        bank="CGD",
        major_category=major_category,
        category=category,
        sub_category=sub_category,
        status=STATUS_CATEGORIZED if categorized else STATUS_PENDING,
        review_status=REVIEW_PENDING,
        flagged=True,
        created_at=datetime(2024, 1, 20),
    )
    values.update(kwargs)
    return Transaction(**values)


def make_candidate(
    description="Starbucks Coffee",
    amount=-5.99,
    date=None,
    origin="Card",
    bank="CTT",
    **kwargs,
) -> TransactionCandidate:
    return TransactionCandidate(
        date=date or datetime(2024, 1, 15),
        description=description,
        amount=amount,
        origin=origin,
        bank=bank,
        **kwargs,
    )


def make_rule(keyword, major_category, category, rule_id=1, **kwargs) -> Rule:
    return Rule(
        id=rule_id,
        keyword=keyword,
        major_category=major_category,
        category=category,
        **kwargs,
    )


def make_taxonomy() -> Taxonomy:
    """A small taxonomy covering the categories used in tests."""
    supermercado = SubCategory(id=1, category_id=1, name="Supermercado")
    take_away = SubCategory(id=2, category_id=3, name="Take Away")
    return Taxonomy(
        majors=[
            MajorCategory(
                id=1,
                name="Custos Fixos",
                categories=[
                    Category(id=1, major_category_id=1, name="Alimentação",
                             sub_categories=[supermercado]),
                    Category(id=2, major_category_id=1, name="Transportes"),
                ],
            ),
            MajorCategory(
                id=2,
                name="Custos Variaveis",
                categories=[
                    Category(id=3, major_category_id=2, name="Alimentação",
                             sub_categories=[take_away]),
                ],
            ),
        ]
    )


class FakeProvider(LLMProvider):
    """LLM provider returning canned answers, or raising a given error."""

    def __init__(self, confidence=0.9, error: ClassificationError = None,
                 configured=True, answer=("Custos Variaveis", "Alimentação")):
        self.confidence = confidence
        self.error = error
        self.configured = configured
        self.answer = answer
        self.calls = []
        self.document_rows = []

    def is_configured(self) -> bool:
        return self.configured

    def classify_transaction(self, transaction, examples, taxonomy):
        self.calls.append((transaction, list(examples)))
        if self.error is not None:
            raise self.error
        return AIClassification(
            major_category=self.answer[0],
            category=self.answer[1],
            confidence=self.confidence,
            reasoning="test",
            version="v-test",
        )

    def parse_document(self, text, bank):
        self.calls.append((text, bank))
        if self.error is not None:
            raise self.error
        return list(self.document_rows)


class FakeTimer:
    """Stand-in for threading.Timer that fires only when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
