"""Keyword rule matching, the first categorization strategy.

Priority is fixed: active custom rules newest first, then default rules in
the order they were seeded. Soft-deleted rules never match.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from models.rule import Rule


@dataclass
class RuleMatch:
    rule: Rule

    @property
    def major_category(self) -> str:
        return self.rule.major_category

    @property
    def category(self) -> str:
        return self.rule.category

    @property
    def sub_category(self) -> Optional[str]:
        return self.rule.sub_category

    @property
    def tags(self) -> List[str]:
        return list(self.rule.tags)


def order_rules(rules: Iterable[Rule]) -> List[Rule]:
    """Return active rules in matching priority order."""
    active = [rule for rule in rules if rule.is_active]
    custom = sorted(
        (rule for rule in active if not rule.is_default),
        key=lambda rule: (rule.created_at is not None, rule.created_at, rule.id),
        reverse=True,
    )
    defaults = sorted(
        (rule for rule in active if rule.is_default), key=lambda rule: rule.id
    )
    return custom + defaults


def apply_rules(description: str, rules: Iterable[Rule]) -> Optional[RuleMatch]:
    """Find the first rule whose keyword appears in the description.

    Args:
        description: Raw transaction description.
        rules: Candidate rules; inactive ones are ignored.

    Returns:
        RuleMatch for the winning rule, or None.
    """
    text = (description or "").lower()
    for rule in order_rules(rules):
        keyword = rule.keyword.lower()
        if keyword and keyword in text:
            return RuleMatch(rule=rule)
    return None
