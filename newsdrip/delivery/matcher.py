# newsdrip/delivery/matcher.py
from typing import Iterable, List
from newsdrip.database.subscriber_repository import SubscriberRepository
from newsdrip.models.domain import Subscriber
import logging

logger = logging.getLogger(__name__)

class CategoryMatcher:
    """Resolves the audience of a newsletter from its target categories"""

    def __init__(self, subscribers: SubscriberRepository):
        self.subscribers = subscribers

    async def resolve_recipients(self, category_ids: Iterable[int]) -> List[Subscriber]:
        """Active subscribers in any of the categories, each exactly once.

        Unknown category ids match nobody. Store errors propagate as
        StoreUnavailable; a partial audience is never returned.
        """
        wanted = set(category_ids)
        if not wanted:
            return []

        candidates = await self.subscribers.get_active_subscribers_by_categories(wanted)

        recipients = {}
        for subscriber in candidates:
            if not subscriber.is_active:
                continue
            if wanted.isdisjoint(subscriber.category_ids):
                continue
            recipients.setdefault(subscriber.id, subscriber)

        logger.info(
            f"Resolved {len(recipients)} recipients for categories {sorted(wanted)}"
        )
        return list(recipients.values())
