"""Taxonomy service for the major category / category / sub-category tables."""

import json
from pathlib import Path
from typing import List, Optional

from config import get_seed_dir
from models.category import Category, MajorCategory, SubCategory, Taxonomy
from logger import get_logger

logger = get_logger()


class TaxonomyService:
    """Service for managing the category taxonomy."""

    def __init__(self, db_manager):
        """Initialize the taxonomy service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def get_taxonomy(self) -> Taxonomy:
        """Load the full hierarchy in display order."""
        with self.db_manager.connect() as conn:
            majors = [
                MajorCategory(id=row[0], name=row[1])
                for row in conn.execute(
                    "SELECT id, name FROM major_categories ORDER BY sort_order, id"
                ).fetchall()
            ]
            categories = [
                Category(id=row[0], major_category_id=row[1], name=row[2])
                for row in conn.execute(
                    "SELECT id, major_category_id, name FROM categories "
                    "ORDER BY sort_order, id"
                ).fetchall()
            ]
            subs = [
                SubCategory(id=row[0], category_id=row[1], name=row[2])
                for row in conn.execute(
                    "SELECT id, category_id, name FROM sub_categories "
                    "ORDER BY sort_order, id"
                ).fetchall()
            ]

        categories_by_id = {cat.id: cat for cat in categories}
        for sub in subs:
            categories_by_id[sub.category_id].sub_categories.append(sub)

        majors_by_id = {major.id: major for major in majors}
        for cat in categories:
            majors_by_id[cat.major_category_id].categories.append(cat)

        return Taxonomy(majors=majors)

    def find_major_by_name(self, name: str) -> Optional[MajorCategory]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                "SELECT id, name FROM major_categories WHERE name = ?", (name,)
            ).fetchone()
            return MajorCategory(id=row[0], name=row[1]) if row else None

    def create_major(self, name: str, sort_order: int = 0) -> MajorCategory:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO major_categories (name, sort_order) VALUES (?, ?)",
                (name, sort_order),
            )
            conn.commit()
            return MajorCategory(id=cursor.lastrowid, name=name)

    def create_category(
        self, major_category_id: int, name: str, sort_order: int = 0
    ) -> Category:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO categories (major_category_id, name, sort_order) "
                "VALUES (?, ?, ?)",
                (major_category_id, name, sort_order),
            )
            conn.commit()
            return Category(
                id=cursor.lastrowid, major_category_id=major_category_id, name=name
            )

    def create_sub_category(
        self, category_id: int, name: str, sort_order: int = 0
    ) -> SubCategory:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO sub_categories (category_id, name, sort_order) "
                "VALUES (?, ?, ?)",
                (category_id, name, sort_order),
            )
            conn.commit()
            return SubCategory(id=cursor.lastrowid, category_id=category_id, name=name)

    def seed(self, path: Optional[Path] = None) -> int:
        """Load the default taxonomy if no major categories exist yet.

        Returns:
            Number of major categories created (0 when already seeded).
        """
        if self.get_taxonomy().majors:
            logger.info("Taxonomy already seeded")
            return 0

        path = path or get_seed_dir() / "taxonomy.json"
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)

        for major_order, major_entry in enumerate(entries):
            major = self.create_major(major_entry["name"], major_order)
            for cat_order, cat_entry in enumerate(major_entry.get("categories", [])):
                category = self.create_category(major.id, cat_entry["name"], cat_order)
                for sub_order, sub_name in enumerate(cat_entry.get("sub_categories", [])):
                    self.create_sub_category(category.id, sub_name, sub_order)

        logger.info(f"Seeded {len(entries)} major categories")
        return len(entries)

    def list_names(self) -> List[str]:
        """Flat 'Major > Category > Sub' paths, for CLI listings."""
        paths = []
        for major in self.get_taxonomy().majors:
            for cat in major.categories:
                if not cat.sub_categories:
                    paths.append(f"{major.name} > {cat.name}")
                for sub in cat.sub_categories:
                    paths.append(f"{major.name} > {cat.name} > {sub.name}")
        return paths
