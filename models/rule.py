"""Rule model for keyword-based categorization."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Rule:
    """Maps a description keyword to a category.

    Attributes:
        id: Unique identifier (auto-generated).
        keyword: Lowercase match key; fires when contained in a description.
        major_category: Target major category.
        category: Target category.
        sub_category: Optional target sub-category.
        tags: Tags applied alongside the category.
        is_default: Seeded rules cannot be deleted.
        created_at: Creation timestamp, used for rule priority.
        deleted_at: Tombstone for soft-deleted custom rules.
    """

    id: int
    keyword: str
    major_category: str
    category: str
    sub_category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_default: bool = False
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None
