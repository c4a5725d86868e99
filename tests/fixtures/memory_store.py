"""In-memory stand-ins for the asyncpg repositories and channel adapters."""

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from newsdrip.delivery.channels import ChannelAdapter
from newsdrip.errors import StoreUnavailable
from newsdrip.models.domain import (
    Category,
    Delivery,
    DeliveryOutcome,
    DeliveryStats,
    DeliveryStatus,
    Newsletter,
    NewsletterStatus,
    Subscriber,
)


class MemoryCategoryRepository:
    def __init__(self, categories: Optional[List[Category]] = None):
        self.items: Dict[int, Category] = {category.id: category for category in categories or []}
        self._ids = itertools.count(max(self.items, default=0) + 1)

    async def list_categories(self) -> List[Category]:
        return sorted(self.items.values(), key=lambda category: category.name)

    async def get_categories_by_ids(self, category_ids: Iterable[int]) -> List[Category]:
        return [self.items[category_id] for category_id in sorted(set(category_ids)) if category_id in self.items]

    async def create_category(self, name: str, description: Optional[str] = None) -> Category:
        category = Category(id=next(self._ids), name=name, description=description)
        self.items[category.id] = category
        return category


class MemorySubscriberRepository:
    def __init__(self, categories: MemoryCategoryRepository, subscribers: Optional[List[Subscriber]] = None):
        self.categories = categories
        self.items: Dict[int, Subscriber] = {subscriber.id: subscriber for subscriber in subscribers or []}
        self._ids = itertools.count(max(self.items, default=0) + 1)
        self.unavailable = False

    def _check(self):
        if self.unavailable:
            raise StoreUnavailable("Database unavailable")

    async def list_subscribers(self) -> List[Subscriber]:
        return list(self.items.values())

    async def get_subscriber(self, subscriber_id: int) -> Optional[Subscriber]:
        return self.items.get(subscriber_id)

    async def get_by_email(self, email: str) -> Optional[Subscriber]:
        return next(
            (s for s in self.items.values() if s.email and s.email.lower() == email.lower()),
            None,
        )

    async def get_by_unsubscribe_token(self, token: str) -> Optional[Subscriber]:
        return next((s for s in self.items.values() if s.unsubscribe_token == token), None)

    async def get_by_preferences_token(self, token: str) -> Optional[Subscriber]:
        return next((s for s in self.items.values() if s.preferences_token == token), None)

    async def get_active_subscribers_by_categories(self, category_ids: Iterable[int]) -> List[Subscriber]:
        self._check()
        wanted = set(category_ids)
        return [
            subscriber
            for subscriber in self.items.values()
            if subscriber.is_active and wanted.intersection(subscriber.category_ids)
        ]

    async def create_subscriber(self, contact_method, email, phone, frequency,
                                unsubscribe_token, preferences_token, category_ids) -> Subscriber:
        subscriber = Subscriber(
            id=next(self._ids),
            contact_method=contact_method,
            email=email,
            phone=phone,
            frequency=frequency,
            unsubscribe_token=unsubscribe_token,
            preferences_token=preferences_token,
            category_ids=[c for c in category_ids if c in self.categories.items],
            created_at=datetime.now(timezone.utc),
        )
        self.items[subscriber.id] = subscriber
        return subscriber

    async def update_subscriber(self, subscriber_id: int, fields: Dict[str, Any]) -> Optional[Subscriber]:
        subscriber = self.items.get(subscriber_id)
        if not subscriber:
            return None
        self.items[subscriber_id] = subscriber.model_copy(update=fields)
        return self.items[subscriber_id]

    async def delete_subscriber(self, subscriber_id: int) -> bool:
        return self.items.pop(subscriber_id, None) is not None

    async def get_subscriber_categories(self, subscriber_id: int) -> List[Category]:
        subscriber = self.items.get(subscriber_id)
        if not subscriber:
            return []
        return await self.categories.get_categories_by_ids(subscriber.category_ids)

    async def set_subscriber_categories(self, subscriber_id: int, category_ids: Iterable[int]):
        known = [c for c in category_ids if c in self.categories.items]
        await self.update_subscriber(subscriber_id, {"category_ids": known})

    async def get_stats(self) -> Dict[str, int]:
        subscribers = list(self.items.values())
        return {
            "total": len(subscribers),
            "new_this_week": len(subscribers),
            "email_subscribers": sum(1 for s in subscribers if s.contact_method == "email"),
            "sms_subscribers": sum(1 for s in subscribers if s.contact_method == "sms"),
        }


class MemoryNewsletterRepository:
    def __init__(self, categories: MemoryCategoryRepository, newsletters: Optional[List[Newsletter]] = None):
        self.categories = categories
        self.items: Dict[int, Newsletter] = {newsletter.id: newsletter for newsletter in newsletters or []}
        self._ids = itertools.count(max(self.items, default=0) + 1)

    async def list_newsletters(self) -> List[Newsletter]:
        return list(self.items.values())

    async def list_published(self) -> List[Newsletter]:
        return [n for n in self.items.values() if n.status == NewsletterStatus.SENT]

    async def get_newsletter(self, newsletter_id: int) -> Optional[Newsletter]:
        return self.items.get(newsletter_id)

    async def create_newsletter(self, fields: Dict[str, Any], category_ids: Iterable[int]) -> Newsletter:
        newsletter = Newsletter(
            id=next(self._ids),
            category_ids=[c for c in category_ids if c in self.categories.items],
            **fields,
        )
        self.items[newsletter.id] = newsletter
        return newsletter

    async def update_newsletter(self, newsletter_id: int, fields: Dict[str, Any],
                                category_ids: Optional[Iterable[int]] = None) -> Optional[Newsletter]:
        newsletter = self.items.get(newsletter_id)
        if not newsletter:
            return None
        update = dict(fields)
        if category_ids is not None:
            update["category_ids"] = [c for c in category_ids if c in self.categories.items]
        self.items[newsletter_id] = newsletter.model_copy(update=update)
        return self.items[newsletter_id]

    async def mark_sent(self, newsletter_id: int, sent_at: datetime) -> Optional[Newsletter]:
        newsletter = self.items.get(newsletter_id)
        if not newsletter or newsletter.status != NewsletterStatus.DRAFT:
            return None
        return await self.update_newsletter(
            newsletter_id, {"status": NewsletterStatus.SENT, "sent_at": sent_at}
        )

    async def delete_newsletter(self, newsletter_id: int) -> bool:
        return self.items.pop(newsletter_id, None) is not None

    async def get_newsletter_categories(self, newsletter_id: int) -> List[Category]:
        newsletter = self.items.get(newsletter_id)
        if not newsletter:
            return []
        return await self.categories.get_categories_by_ids(newsletter.category_ids)

    async def get_stats(self) -> Dict[str, int]:
        sent = sum(1 for n in self.items.values() if n.status == NewsletterStatus.SENT)
        return {"total": len(self.items), "sent": sent, "drafts": len(self.items) - sent}


class MemoryDeliveryRepository:
    def __init__(self):
        self.items: Dict[int, Delivery] = {}
        self._ids = itertools.count(1)
        self.fail_create = False
        self.fail_update = False

    async def create_delivery(self, newsletter_id: int, subscriber_id: int, method: str, batch_id: str) -> Delivery:
        if self.fail_create:
            raise StoreUnavailable("Database unavailable")
        delivery = Delivery(
            id=next(self._ids),
            newsletter_id=newsletter_id,
            subscriber_id=subscriber_id,
            method=method,
            status=DeliveryStatus.PENDING,
            batch_id=batch_id,
        )
        self.items[delivery.id] = delivery
        return delivery

    async def update_delivery_status(self, delivery_id: int, status: DeliveryStatus,
                                     reason: Optional[str] = None) -> Optional[Delivery]:
        if self.fail_update:
            raise StoreUnavailable("Database unavailable")
        delivery = self.items.get(delivery_id)
        if not delivery:
            return None
        self.items[delivery_id] = delivery.model_copy(update={
            "status": status,
            "reason": reason,
            "sent_at": datetime.now(timezone.utc),
        })
        return self.items[delivery_id]

    async def mark_opened(self, delivery_id: int) -> Optional[Delivery]:
        delivery = self.items.get(delivery_id)
        if not delivery:
            return None
        self.items[delivery_id] = delivery.model_copy(
            update={"opened_at": delivery.opened_at or datetime.now(timezone.utc)}
        )
        return self.items[delivery_id]

    async def get_delivery(self, delivery_id: int) -> Optional[Delivery]:
        return self.items.get(delivery_id)

    async def list_for_newsletter(self, newsletter_id: int) -> List[Delivery]:
        return [d for d in self.items.values() if d.newsletter_id == newsletter_id]

    async def list_deliveries(self) -> List[Delivery]:
        return list(self.items.values())

    async def stats_for_newsletter(self, newsletter_id: int, batch_id: Optional[str] = None) -> DeliveryStats:
        return DeliveryStats.from_statuses([
            d.status
            for d in self.items.values()
            if d.newsletter_id == newsletter_id and (batch_id is None or d.batch_id == batch_id)
        ])

    async def get_stats(self) -> Dict[str, Any]:
        deliveries = list(self.items.values())
        return {
            "total_deliveries": len(deliveries),
            "successful_deliveries": sum(1 for d in deliveries if d.status == DeliveryStatus.SENT),
            "failed_deliveries": sum(1 for d in deliveries if d.status == DeliveryStatus.FAILED),
            "opened_deliveries": sum(1 for d in deliveries if d.opened_at is not None),
        }


class RecordingAdapter(ChannelAdapter):
    """Channel adapter that records calls and answers from a script.

    ``outcomes`` maps subscriber id to the outcome to return; anyone else
    gets ``sent``. ``delay`` keeps each send in flight for that many
    seconds so concurrency can be observed.
    """

    def __init__(self, method: str = "email", outcomes: Optional[Dict[int, DeliveryOutcome]] = None,
                 delay: float = 0.0, error: Optional[Exception] = None):
        self.method = method
        self.outcomes = outcomes or {}
        self.delay = delay
        self.error = error
        self.calls: List[int] = []
        self.delivery_ids: List[Optional[int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _send(self, subscriber, newsletter, category_names, delivery_id=None) -> DeliveryOutcome:
        self.calls.append(subscriber.id)
        self.delivery_ids.append(delivery_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.outcomes.get(subscriber.id, DeliveryOutcome.sent(f"msg-{subscriber.id}"))
        finally:
            self.in_flight -= 1
