"""Feedback recorded when a user acts on a category suggestion."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

ACTION_ACCEPT = "accept"
ACTION_REJECT = "reject"
ACTION_OVERRIDE = "override"

ACTIONS = (ACTION_ACCEPT, ACTION_REJECT, ACTION_OVERRIDE)


@dataclass(frozen=True)
class CategorySuggestionFeedback:
    """Append-only audit record of a suggestion and what the user did with it."""

    id: int
    transaction_id: str
    suggested_major_category: Optional[str]
    suggested_category: Optional[str]
    suggested_confidence: Optional[float]
    suggestion_source: str
    action: str
    actual_major_category: Optional[str]
    actual_category: Optional[str]
    created_at: datetime
    suggested_tags: List[str] = field(default_factory=list)
    actual_tags: List[str] = field(default_factory=list)
