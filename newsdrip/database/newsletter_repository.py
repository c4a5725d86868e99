# newsdrip/database/newsletter_repository.py
from typing import Optional, Dict, Any, List, Iterable
from datetime import datetime
from newsdrip.database.connection import Database
from newsdrip.models.domain import Category, Newsletter
import logging

logger = logging.getLogger(__name__)

NEWSLETTER_COLUMNS = """
    n.id, n.title, n.subject, n.content, n.author_id, n.status, n.template,
    n.sent_at, n.created_at, n.updated_at,
    ARRAY(
        SELECT nc.category_id FROM newsletter_categories nc
        WHERE nc.newsletter_id = n.id ORDER BY nc.category_id
    ) AS category_ids
"""

UPDATABLE_FIELDS = ("title", "subject", "content", "template", "status", "sent_at")

def _to_newsletter(row) -> Optional[Newsletter]:
    return Newsletter(**dict(row)) if row else None

class NewsletterRepository:
    def __init__(self, db: Database):
        self.db = db

    async def list_newsletters(self) -> List[Newsletter]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {NEWSLETTER_COLUMNS} FROM newsletters n ORDER BY n.created_at DESC"
            )
        return [_to_newsletter(row) for row in rows]

    async def list_published(self) -> List[Newsletter]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {NEWSLETTER_COLUMNS} FROM newsletters n
                WHERE n.status = 'sent'
                ORDER BY n.sent_at DESC NULLS LAST
                """
            )
        return [_to_newsletter(row) for row in rows]

    async def get_newsletter(self, newsletter_id: int) -> Optional[Newsletter]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {NEWSLETTER_COLUMNS} FROM newsletters n WHERE n.id = $1",
                newsletter_id
            )
        return _to_newsletter(row)

    async def create_newsletter(self, fields: Dict[str, Any], category_ids: Iterable[int]) -> Newsletter:
        """Insert a newsletter and its category links in one transaction"""
        try:
            async with self.db.acquire() as conn:
                async with conn.transaction():
                    newsletter_id = await conn.fetchval(
                        """
                        INSERT INTO newsletters (
                            title, subject, content, author_id, status, template, sent_at
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                        RETURNING id
                        """,
                        fields["title"],
                        fields.get("subject"),
                        fields["content"],
                        fields["author_id"],
                        fields.get("status", "draft"),
                        fields.get("template", "classic"),
                        fields.get("sent_at")
                    )
                    await self._replace_categories(conn, newsletter_id, category_ids)

            logger.info(f"Created newsletter {newsletter_id}: {fields['title']}")
            return await self.get_newsletter(newsletter_id)

        except Exception as e:
            logger.error(f"Failed to create newsletter {fields.get('title')}: {e}")
            raise

    async def update_newsletter(
        self,
        newsletter_id: int,
        fields: Dict[str, Any],
        category_ids: Optional[Iterable[int]] = None
    ) -> Optional[Newsletter]:
        updates = []
        params = []
        param_count = 1

        for column in UPDATABLE_FIELDS:
            if column in fields:
                updates.append(f"{column} = ${param_count}")
                params.append(fields[column])
                param_count += 1

        async with self.db.acquire() as conn:
            async with conn.transaction():
                if updates:
                    updates.append("updated_at = CURRENT_TIMESTAMP")
                    params.append(newsletter_id)
                    await conn.execute(
                        f"UPDATE newsletters SET {', '.join(updates)} WHERE id = ${param_count}",
                        *params
                    )
                if category_ids is not None:
                    await self._replace_categories(conn, newsletter_id, category_ids)

        return await self.get_newsletter(newsletter_id)

    async def mark_sent(self, newsletter_id: int, sent_at: datetime) -> Optional[Newsletter]:
        """Move a draft to sent; returns None when it was not a draft"""
        async with self.db.acquire() as conn:
            updated_id = await conn.fetchval(
                """
                UPDATE newsletters
                SET status = 'sent', sent_at = $2, updated_at = CURRENT_TIMESTAMP
                WHERE id = $1 AND status = 'draft'
                RETURNING id
                """,
                newsletter_id, sent_at
            )
        if updated_id is None:
            return None
        return await self.get_newsletter(updated_id)

    async def delete_newsletter(self, newsletter_id: int) -> bool:
        # Category links and deliveries go with it (ON DELETE CASCADE)
        async with self.db.acquire() as conn:
            result = await conn.execute("DELETE FROM newsletters WHERE id = $1", newsletter_id)
        return result.endswith(" 1")

    async def get_newsletter_categories(self, newsletter_id: int) -> List[Category]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT c.id, c.name, c.description, c.created_at
                FROM newsletter_categories nc
                JOIN categories c ON c.id = nc.category_id
                WHERE nc.newsletter_id = $1
                ORDER BY c.name
                """,
                newsletter_id
            )
        return [Category(**dict(row)) for row in rows]

    async def _replace_categories(self, conn, newsletter_id: int, category_ids: Iterable[int]):
        await conn.execute(
            "DELETE FROM newsletter_categories WHERE newsletter_id = $1",
            newsletter_id
        )
        ids = sorted(set(category_ids))
        if ids:
            await conn.execute(
                """
                INSERT INTO newsletter_categories (newsletter_id, category_id)
                SELECT $1, c.id FROM categories c WHERE c.id = ANY($2::int[])
                ON CONFLICT DO NOTHING
                """,
                newsletter_id, ids
            )

    async def get_stats(self) -> Dict[str, int]:
        async with self.db.acquire() as conn:
            stats = await conn.fetchrow(
                """
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE status = 'sent') AS sent,
                    COUNT(*) FILTER (WHERE status = 'draft') AS drafts
                FROM newsletters
                """
            )
        return dict(stats)
