# newsdrip/database/delivery_repository.py
from typing import Optional, Dict, Any, List
from newsdrip.database.connection import Database
from newsdrip.models.domain import Delivery, DeliveryStats, DeliveryStatus
import logging

logger = logging.getLogger(__name__)

DELIVERY_COLUMNS = """
    id, newsletter_id, subscriber_id, method, status, reason,
    batch_id::text AS batch_id, sent_at, opened_at
"""

def _to_delivery(row) -> Optional[Delivery]:
    return Delivery(**dict(row)) if row else None

class DeliveryRepository:
    def __init__(self, db: Database):
        self.db = db

    async def create_delivery(
        self,
        newsletter_id: int,
        subscriber_id: int,
        method: str,
        batch_id: str
    ) -> Delivery:
        """Record a pending delivery before the send attempt starts"""
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO deliveries (newsletter_id, subscriber_id, method, status, batch_id)
                VALUES ($1, $2, $3, $4, $5::uuid)
                RETURNING {DELIVERY_COLUMNS}
                """,
                newsletter_id, subscriber_id, method,
                DeliveryStatus.PENDING.value, batch_id
            )
        return _to_delivery(row)

    async def update_delivery_status(
        self,
        delivery_id: int,
        status: DeliveryStatus,
        reason: Optional[str] = None
    ) -> Optional[Delivery]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE deliveries
                SET status = $1, reason = $2, sent_at = CURRENT_TIMESTAMP
                WHERE id = $3
                RETURNING {DELIVERY_COLUMNS}
                """,
                status.value, reason, delivery_id
            )
        return _to_delivery(row)

    async def mark_opened(self, delivery_id: int) -> Optional[Delivery]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE deliveries SET opened_at = COALESCE(opened_at, CURRENT_TIMESTAMP)
                WHERE id = $1
                RETURNING {DELIVERY_COLUMNS}
                """,
                delivery_id
            )
        return _to_delivery(row)

    async def get_delivery(self, delivery_id: int) -> Optional[Delivery]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {DELIVERY_COLUMNS} FROM deliveries WHERE id = $1",
                delivery_id
            )
        return _to_delivery(row)

    async def list_for_newsletter(self, newsletter_id: int) -> List[Delivery]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {DELIVERY_COLUMNS} FROM deliveries WHERE newsletter_id = $1 ORDER BY id",
                newsletter_id
            )
        return [_to_delivery(row) for row in rows]

    async def list_deliveries(self) -> List[Delivery]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {DELIVERY_COLUMNS} FROM deliveries ORDER BY sent_at DESC"
            )
        return [_to_delivery(row) for row in rows]

    async def stats_for_newsletter(self, newsletter_id: int, batch_id: Optional[str] = None) -> DeliveryStats:
        query = """
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE status = 'sent') AS sent,
                COUNT(*) FILTER (WHERE status = 'pending') AS pending,
                COUNT(*) FILTER (WHERE status = 'failed') AS failed
            FROM deliveries
            WHERE newsletter_id = $1
        """
        params = [newsletter_id]
        if batch_id:
            query += " AND batch_id = $2::uuid"
            params.append(batch_id)

        async with self.db.acquire() as conn:
            row = await conn.fetchrow(query, *params)
        return DeliveryStats(**dict(row))

    async def get_stats(self) -> Dict[str, Any]:
        async with self.db.acquire() as conn:
            stats = await conn.fetchrow(
                """
                SELECT
                    COUNT(*) AS total_deliveries,
                    COUNT(*) FILTER (WHERE status = 'sent') AS successful_deliveries,
                    COUNT(*) FILTER (WHERE status = 'failed') AS failed_deliveries,
                    COUNT(*) FILTER (WHERE opened_at IS NOT NULL) AS opened_deliveries
                FROM deliveries
                """
            )
        return dict(stats)
