# newsdrip/database/category_repository.py
from typing import List, Optional, Iterable
from newsdrip.database.connection import Database
from newsdrip.models.domain import Category
import logging

logger = logging.getLogger(__name__)

class CategoryRepository:
    def __init__(self, db: Database):
        self.db = db

    async def list_categories(self) -> List[Category]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id, name, description, created_at FROM categories ORDER BY name"
            )
        return [Category(**dict(row)) for row in rows]

    async def get_categories_by_ids(self, category_ids: Iterable[int]) -> List[Category]:
        """Fetch the given categories; unknown ids are skipped"""
        ids = list(set(category_ids))
        if not ids:
            return []

        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, name, description, created_at
                FROM categories
                WHERE id = ANY($1::int[])
                ORDER BY name
                """,
                ids
            )
        return [Category(**dict(row)) for row in rows]

    async def create_category(self, name: str, description: Optional[str] = None) -> Category:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO categories (name, description)
                VALUES ($1, $2)
                RETURNING id, name, description, created_at
                """,
                name, description
            )
        logger.info(f"Created category: {name}")
        return Category(**dict(row))
