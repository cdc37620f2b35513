"""Three-tier category taxonomy: major category -> category -> sub-category."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class SubCategory:
    id: int
    category_id: int
    name: str


@dataclass
class Category:
    """A category inside a major category.

    Attributes:
        id: Unique identifier (auto-generated).
        major_category_id: Parent major category ID.
        name: Category name (unique within its major category).
        sub_categories: Optional refinements of this category.
    """

    id: int
    major_category_id: int
    name: str
    sub_categories: List[SubCategory] = field(default_factory=list)


@dataclass
class MajorCategory:
    id: int
    name: str
    categories: List[Category] = field(default_factory=list)


@dataclass
class Taxonomy:
    """The full category hierarchy, used to validate and describe categories."""

    majors: List[MajorCategory] = field(default_factory=list)

    def _index(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            major.name: {
                cat.name: [sub.name for sub in cat.sub_categories]
                for cat in major.categories
            }
            for major in self.majors
        }

    def is_valid(
        self, major_category: str, category: str, sub_category: Optional[str] = None
    ) -> bool:
        """Check that the (major, category[, sub]) path exists in the taxonomy."""
        categories = self._index().get(major_category)
        if categories is None or category not in categories:
            return False
        if sub_category is None:
            return True
        return sub_category in categories[category]

    def describe(self) -> str:
        """Render the hierarchy as an indented outline."""
        if not self.majors:
            return "No categories available."

        lines = []
        for major in self.majors:
            lines.append(f"- {major.name}")
            for cat in major.categories:
                subs = ", ".join(sub.name for sub in cat.sub_categories)
                lines.append(f"  - {cat.name}" + (f" ({subs})" if subs else ""))
        return "\n".join(lines)
