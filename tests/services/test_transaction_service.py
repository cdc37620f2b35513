from datetime import datetime

import pytest

from models.transaction import REVIEW_PENDING, REVIEW_REJECTED, fingerprint
from services.transactions import TransactionNotFoundError
from tests.helpers import make_transaction


class TestTransactionService:
    """Tests for TransactionService."""

    def test_create_and_find(self, services):
        """Test that a created transaction round-trips through the database."""
        txn = make_transaction(
            description="COMPRA CONTINENTE",
            amount=-42.1,
            raw_balance=957.9,
            tags=["store:continente"],
            notes="weekly shop",
        )
        services.transactions.create(txn)

        found = services.transactions.find(txn.id)

        assert found.raw_description == "COMPRA CONTINENTE"
        assert found.raw_amount == -42.1
        assert found.raw_balance == 957.9
        assert found.raw_date == datetime(2024, 1, 15)
        assert found.tags == ["store:continente"]
        assert found.notes == "weekly shop"
        assert found.review_status == REVIEW_PENDING
        assert found.flagged is True

    def test_bulk_create_counts(self, services):
        """Test that bulk_create returns the number of rows inserted."""
        created = services.transactions.bulk_create(
            [make_transaction(description=f"LOJA {i}") for i in range(3)]
        )
        assert created == 3
        assert len(services.transactions.find_pending_review()) == 3

    def test_find_many_keeps_order(self, services):
        """Test that find_many returns active rows in the order asked for."""
        a, b = make_transaction(description="A"), make_transaction(description="B")
        services.transactions.bulk_create([a, b])
        services.transactions.soft_delete(a.id)

        assert [t.id for t in services.transactions.find_many([b.id, a.id])] == [b.id]

    def test_find_all_hides_pending_review(self, services):
        """Test that the main list only shows reviewed rows."""
        pending = make_transaction(description="PENDING")
        reviewed = make_transaction(description="REVIEWED", review_status=None)
        services.transactions.bulk_create([pending, reviewed])

        assert [t.id for t in services.transactions.find_all()] == [reviewed.id]

    def test_fingerprints_window(self, services):
        """Test that the fingerprint lookup covers only the recent window."""
        recent = make_transaction(description="RECENT", date=datetime(2024, 1, 15))
        old = make_transaction(description="OLD", date=datetime(2023, 6, 1))
        services.transactions.bulk_create([recent, old])

        prints = services.transactions.find_fingerprints_since(
            90, now=datetime(2024, 2, 1)
        )

        assert prints == {
            fingerprint(datetime(2024, 1, 15), "RECENT", -10.0, "Personal", "CGD")
        }

    def test_fingerprints_skip_rejected_and_deleted(self, services):
        """Test that rejected and deleted rows don't block re-import."""
        rejected = make_transaction(description="REJECTED")
        deleted = make_transaction(description="DELETED")
        services.transactions.bulk_create([rejected, deleted])
        services.transactions.reject([rejected.id])
        services.transactions.soft_delete(deleted.id)

        assert services.transactions.find_fingerprints_since(
            90, now=datetime(2024, 2, 1)
        ) == set()

    def test_approve(self, services):
        """Test that approve clears the review state of pending rows only."""
        txn = make_transaction()
        services.transactions.create(txn)

        assert services.transactions.approve([txn.id]) == 1
        assert services.transactions.find(txn.id).review_status is None
        assert services.transactions.approve([txn.id]) == 0

    def test_reject_and_restore(self, services):
        """Test that a rejected row is tombstoned and restores back into review."""
        txn = make_transaction()
        services.transactions.create(txn)

        assert services.transactions.reject([txn.id]) == 1
        assert services.transactions.find(txn.id) is None

        trashed = services.transactions.find(txn.id, include_deleted=True)
        assert trashed.review_status == REVIEW_REJECTED
        assert trashed.deleted_at is not None

        restored = services.transactions.restore(txn.id)
        assert restored.review_status == REVIEW_PENDING
        assert restored.deleted_at is None

    def test_restore_not_in_trash(self, services):
        """Test that restoring an active row raises TransactionNotFoundError."""
        txn = make_transaction()
        services.transactions.create(txn)

        with pytest.raises(TransactionNotFoundError):
            services.transactions.restore(txn.id)

    def test_review_progress(self, services):
        """Test review counts after one approval and one rejection."""
        txns = [make_transaction(description=f"LOJA {i}") for i in range(4)]
        services.transactions.bulk_create(txns)
        services.transactions.approve([txns[0].id])
        services.transactions.reject([txns[1].id])

        progress = services.transactions.review_progress()

        assert progress["total"] == 3
        assert progress["pending"] == 2
        assert progress["approved"] == 1
        assert progress["rejected"] == 1
        assert progress["reviewed"] == 2
        assert progress["percent_complete"] == 50

    def test_review_progress_empty(self, services):
        """Test that an empty database counts as fully reviewed."""
        assert services.transactions.review_progress()["percent_complete"] == 100

    def test_update_category_clears_flag(self, services):
        """Test that a user-chosen category unflags the row."""
        txn = make_transaction()
        services.transactions.create(txn)

        assert services.transactions.update_category(
            txn.id, "Custos Fixos", "Alimentação", "Supermercado", tags=["x:y"]
        )

        found = services.transactions.find(txn.id)
        assert found.is_categorized
        assert found.sub_category == "Supermercado"
        assert found.tags == ["x:y"]
        assert found.flagged is False

    def test_bulk_delete_isolates_failures(self, services):
        """Test that a missing id fails alone while the rest are deleted."""
        a, b = make_transaction(description="A"), make_transaction(description="B")
        services.transactions.bulk_create([a, b])

        result = services.transactions.bulk_delete([a.id, "missing", b.id])

        assert result.succeeded == [a.id, b.id]
        assert result.failed == {"missing": "Not found"}
        assert {t.id for t in services.transactions.find_deleted()} == {a.id, b.id}

    def test_bulk_restore(self, services):
        """Test that bulk restore reports ids that were not in the trash."""
        a, b = make_transaction(description="A"), make_transaction(description="B")
        services.transactions.bulk_create([a, b])
        services.transactions.soft_delete(a.id)

        result = services.transactions.bulk_restore([a.id, b.id])

        assert result.succeeded == [a.id]
        assert b.id in result.failed
