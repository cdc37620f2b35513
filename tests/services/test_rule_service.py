import json

import pytest

from config import get_seed_dir
from services.rules import RuleError


class TestRuleService:
    """Tests for RuleService."""

    def test_create_lowercases_keyword(self, services):
        """Test that keywords are stored lowercased and trimmed."""
        rule = services.rules.create("  Pastelaria Aloma ", "Custos Variaveis", "Alimentação")

        assert rule.keyword == "pastelaria aloma"
        assert rule.is_default is False
        assert services.rules.find(rule.id).keyword == "pastelaria aloma"

    def test_empty_keyword(self, services):
        """Test that a blank keyword is rejected."""
        with pytest.raises(RuleError, match="empty"):
            services.rules.create("   ", "Custos Fixos", "Casa")

    def test_duplicate_keyword(self, services):
        """Test that two active rules cannot share a keyword."""
        services.rules.create("ginasio", "Custos Fixos", "Saúde")
        with pytest.raises(RuleError, match="already exists"):
            services.rules.create("GINASIO", "Custos Fixos", "Casa")

    def test_default_cannot_be_deleted(self, services):
        """Test that default rules are protected."""
        rule = services.rules.create("galp", "Custos Fixos", "Transportes", is_default=True)

        with pytest.raises(RuleError, match="Default rules"):
            services.rules.delete(rule.id)
        assert services.rules.find(rule.id).is_active

    def test_delete_then_restore(self, services):
        """Test that a deleted rule comes back intact."""
        rule = services.rules.create(
            "farmacia", "Custos Fixos", "Saúde", sub_category="Farmácia", tags=["health"]
        )

        services.rules.delete(rule.id)
        assert [r.id for r in services.rules.find_active()] == []
        assert [r.id for r in services.rules.find_all(include_deleted=True)] == [rule.id]

        restored = services.rules.restore(rule.id)
        assert restored.is_active
        found = services.rules.find(rule.id)
        assert found.keyword == "farmacia"
        assert found.sub_category == "Farmácia"
        assert found.tags == ["health"]

    def test_keyword_reusable_after_delete(self, services):
        """Test that a deleted keyword can be reused, blocking the old rule's restore."""
        old = services.rules.create("padaria", "Custos Variaveis", "Alimentação")
        services.rules.delete(old.id)
        services.rules.create("padaria", "Custos Fixos", "Alimentação")

        with pytest.raises(RuleError, match="already exists"):
            services.rules.restore(old.id)

    def test_restore_active_rule(self, services):
        """Test that restoring a rule not in the trash is an error."""
        rule = services.rules.create("yoga", "Custos Variaveis", "Lazer")
        with pytest.raises(RuleError, match="not found in trash"):
            services.rules.restore(rule.id)

    def test_delete_missing(self, services):
        """Test deleting an unknown rule id."""
        with pytest.raises(RuleError, match="not found"):
            services.rules.delete(999)

    def test_find_active_order(self, services):
        """Test that custom rules come first (newest first), then defaults."""
        default = services.rules.create("lidl", "Custos Fixos", "Alimentação", is_default=True)
        first = services.rules.create("loja a", "Custos Fixos", "Casa")
        second = services.rules.create("loja b", "Custos Fixos", "Casa")

        ids = [r.id for r in services.rules.find_active()]
        assert ids == [second.id, first.id, default.id]

    def test_seed_defaults_idempotent(self, services):
        """Test that seeding twice creates the defaults once."""
        with open(get_seed_dir() / "rules.json", encoding="utf-8") as f:
            expected = len(json.load(f))

        assert services.rules.seed_defaults() == expected
        assert services.rules.seed_defaults() == 0
        assert all(r.is_default for r in services.rules.find_active())
