# newsdrip/database/subscriber_repository.py
from typing import Optional, Dict, Any, List, Iterable
from datetime import datetime, timedelta, timezone
from newsdrip.database.connection import Database
from newsdrip.models.domain import Category, Subscriber
import logging

logger = logging.getLogger(__name__)

SUBSCRIBER_COLUMNS = """
    s.id, s.email, s.phone, s.contact_method, s.frequency, s.is_active,
    s.unsubscribe_token, s.preferences_token, s.created_at, s.updated_at,
    ARRAY(
        SELECT sc.category_id FROM subscriber_categories sc
        WHERE sc.subscriber_id = s.id ORDER BY sc.category_id
    ) AS category_ids
"""

UPDATABLE_FIELDS = ("email", "phone", "contact_method", "frequency", "is_active")

def _to_subscriber(row) -> Optional[Subscriber]:
    return Subscriber(**dict(row)) if row else None

class SubscriberRepository:
    def __init__(self, db: Database):
        self.db = db

    async def list_subscribers(self) -> List[Subscriber]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers s ORDER BY s.created_at DESC"
            )
        return [_to_subscriber(row) for row in rows]

    async def get_subscriber(self, subscriber_id: int) -> Optional[Subscriber]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers s WHERE s.id = $1",
                subscriber_id
            )
        return _to_subscriber(row)

    async def get_by_email(self, email: str) -> Optional[Subscriber]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers s WHERE LOWER(s.email) = LOWER($1)",
                email
            )
        return _to_subscriber(row)

    async def get_by_unsubscribe_token(self, token: str) -> Optional[Subscriber]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers s WHERE s.unsubscribe_token = $1",
                token
            )
        return _to_subscriber(row)

    async def get_by_preferences_token(self, token: str) -> Optional[Subscriber]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers s WHERE s.preferences_token = $1",
                token
            )
        return _to_subscriber(row)

    async def get_active_subscribers_by_categories(
        self,
        category_ids: Iterable[int]
    ) -> List[Subscriber]:
        """Distinct active subscribers belonging to any of the categories"""
        ids = list(set(category_ids))
        if not ids:
            return []

        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {SUBSCRIBER_COLUMNS}
                FROM subscribers s
                WHERE s.is_active = true
                  AND EXISTS (
                      SELECT 1 FROM subscriber_categories sc
                      WHERE sc.subscriber_id = s.id AND sc.category_id = ANY($1::int[])
                  )
                ORDER BY s.id
                """,
                ids
            )
        return [_to_subscriber(row) for row in rows]

    async def create_subscriber(
        self,
        contact_method: str,
        email: Optional[str],
        phone: Optional[str],
        frequency: str,
        unsubscribe_token: str,
        preferences_token: str,
        category_ids: Iterable[int]
    ) -> Subscriber:
        """Insert a subscriber together with its category links"""
        try:
            async with self.db.acquire() as conn:
                async with conn.transaction():
                    subscriber_id = await conn.fetchval(
                        """
                        INSERT INTO subscribers (
                            email, phone, contact_method, frequency, is_active,
                            unsubscribe_token, preferences_token
                        ) VALUES ($1, $2, $3, $4, true, $5, $6)
                        RETURNING id
                        """,
                        email, phone, contact_method, frequency,
                        unsubscribe_token, preferences_token
                    )
                    await self._replace_categories(conn, subscriber_id, category_ids)

            logger.info(f"Created subscriber {subscriber_id} ({contact_method})")
            return await self.get_subscriber(subscriber_id)

        except Exception as e:
            logger.error(f"Failed to create subscriber {email or phone}: {e}")
            raise

    async def update_subscriber(self, subscriber_id: int, fields: Dict[str, Any]) -> Optional[Subscriber]:
        """Update the given columns; unknown keys are ignored"""
        updates = []
        params = []
        param_count = 1

        for column in UPDATABLE_FIELDS:
            if column in fields:
                updates.append(f"{column} = ${param_count}")
                params.append(fields[column])
                param_count += 1

        if not updates:
            return await self.get_subscriber(subscriber_id)

        updates.append("updated_at = CURRENT_TIMESTAMP")
        params.append(subscriber_id)

        async with self.db.acquire() as conn:
            await conn.execute(
                f"UPDATE subscribers SET {', '.join(updates)} WHERE id = ${param_count}",
                *params
            )
        return await self.get_subscriber(subscriber_id)

    async def delete_subscriber(self, subscriber_id: int) -> bool:
        async with self.db.acquire() as conn:
            result = await conn.execute("DELETE FROM subscribers WHERE id = $1", subscriber_id)
        return result.endswith(" 1")

    async def get_subscriber_categories(self, subscriber_id: int) -> List[Category]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT c.id, c.name, c.description, c.created_at
                FROM subscriber_categories sc
                JOIN categories c ON c.id = sc.category_id
                WHERE sc.subscriber_id = $1
                ORDER BY c.name
                """,
                subscriber_id
            )
        return [Category(**dict(row)) for row in rows]

    async def set_subscriber_categories(self, subscriber_id: int, category_ids: Iterable[int]):
        async with self.db.acquire() as conn:
            async with conn.transaction():
                await self._replace_categories(conn, subscriber_id, category_ids)

    async def _replace_categories(self, conn, subscriber_id: int, category_ids: Iterable[int]):
        await conn.execute(
            "DELETE FROM subscriber_categories WHERE subscriber_id = $1",
            subscriber_id
        )
        ids = sorted(set(category_ids))
        if ids:
            # Unknown category ids are dropped rather than violating the foreign key
            await conn.execute(
                """
                INSERT INTO subscriber_categories (subscriber_id, category_id)
                SELECT $1, c.id FROM categories c WHERE c.id = ANY($2::int[])
                ON CONFLICT DO NOTHING
                """,
                subscriber_id, ids
            )

    async def get_stats(self) -> Dict[str, int]:
        week_ago = datetime.now(timezone.utc) - timedelta(days=7)
        async with self.db.acquire() as conn:
            stats = await conn.fetchrow(
                """
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE created_at >= $1) AS new_this_week,
                    COUNT(*) FILTER (WHERE contact_method = 'email') AS email_subscribers,
                    COUNT(*) FILTER (WHERE contact_method = 'sms') AS sms_subscribers
                FROM subscribers
                """,
                week_ago
            )
        return dict(stats)
