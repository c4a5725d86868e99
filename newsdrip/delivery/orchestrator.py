# newsdrip/delivery/orchestrator.py - Newsletter fan-out to matched subscribers
import asyncio
import uuid
from typing import Dict, Iterable, List, Optional
from newsdrip.config import settings
from newsdrip.database.category_repository import CategoryRepository
from newsdrip.database.delivery_repository import DeliveryRepository
from newsdrip.database.newsletter_repository import NewsletterRepository
from newsdrip.database.subscriber_repository import SubscriberRepository
from newsdrip.delivery.channels import ChannelAdapter
from newsdrip.delivery.matcher import CategoryMatcher
from newsdrip.errors import NewsdripError, NotFound, StoreUnavailable
from newsdrip.models.domain import (
    ContactMethod,
    Delivery,
    DeliveryOutcome,
    DeliveryStats,
    DeliveryStatus,
    Newsletter,
    Subscriber,
)
import logging

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = {method.value for method in ContactMethod}

class FanoutOrchestrator:
    """Sends one newsletter to every matched subscriber and tracks each attempt.

    Every recipient gets a ``pending`` delivery row before any provider is
    called. Sends then run concurrently, at most ``max_concurrency`` at a
    time and each bounded by ``send_timeout`` seconds. A failing recipient
    is recorded on its own row and never stops the rest of the batch; only
    recipient resolution and record creation can fail the whole call.
    """

    def __init__(
        self,
        matcher: CategoryMatcher,
        subscribers: SubscriberRepository,
        newsletters: NewsletterRepository,
        categories: CategoryRepository,
        deliveries: DeliveryRepository,
        adapters: Dict[str, ChannelAdapter],
        max_concurrency: Optional[int] = None,
        send_timeout: Optional[float] = None
    ):
        self.matcher = matcher
        self.subscribers = subscribers
        self.newsletters = newsletters
        self.categories = categories
        self.deliveries = deliveries
        self.adapters = adapters
        self.max_concurrency = max_concurrency or settings.delivery_max_concurrency
        self.send_timeout = send_timeout or settings.delivery_timeout_seconds
        self._retry_locks: Dict[int, asyncio.Lock] = {}
        self._retry_users: Dict[int, int] = {}

    async def send_newsletter(self, newsletter: Newsletter, category_ids: Iterable[int]) -> DeliveryStats:
        category_ids = set(category_ids)
        batch_id = str(uuid.uuid4())

        recipients = await self.matcher.resolve_recipients(category_ids)
        if not recipients:
            logger.info(f"Newsletter {newsletter.id} has no active recipients")
            return DeliveryStats()

        category_names = [
            category.name
            for category in await self.categories.get_categories_by_ids(category_ids)
        ]

        records = await self._create_records(newsletter, recipients, batch_id)
        logger.info(
            f"Dispatching newsletter {newsletter.id} to {len(records)} recipients (batch {batch_id})"
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(*(
            self._deliver(semaphore, record, subscriber, newsletter, category_names)
            for record, subscriber in zip(records, recipients)
        ))

        stats = DeliveryStats.from_statuses([outcome.status for outcome in outcomes])
        logger.info(
            f"Newsletter {newsletter.id} delivered: {stats.sent} sent, "
            f"{stats.pending} pending, {stats.failed} failed of {stats.total}"
        )
        return stats

    async def send_newsletter_by_id(self, newsletter_id: int) -> DeliveryStats:
        newsletter = await self.newsletters.get_newsletter(newsletter_id)
        if not newsletter:
            raise NotFound(f"Newsletter {newsletter_id} not found")
        return await self.send_newsletter(newsletter, newsletter.category_ids)

    async def get_delivery_status(self, newsletter_id: int) -> List[Delivery]:
        return await self.deliveries.list_for_newsletter(newsletter_id)

    async def get_delivery_stats(self, newsletter_id: int) -> DeliveryStats:
        return await self.deliveries.stats_for_newsletter(newsletter_id)

    async def record_open(self, delivery_id: int) -> Delivery:
        """Stamp the first open of a delivered message"""
        delivery = await self.deliveries.mark_opened(delivery_id)
        if not delivery:
            raise NotFound(f"Delivery {delivery_id} not found")
        return delivery

    async def retry_delivery(self, delivery_id: int) -> Delivery:
        """Re-attempt one delivery in place; a row already sent is left alone"""
        lock = self._retry_locks.setdefault(delivery_id, asyncio.Lock())
        self._retry_users[delivery_id] = self._retry_users.get(delivery_id, 0) + 1
        try:
            async with lock:
                return await self._retry_locked(delivery_id)
        finally:
            self._retry_users[delivery_id] -= 1
            if not self._retry_users[delivery_id]:
                del self._retry_users[delivery_id]
                del self._retry_locks[delivery_id]

    async def _retry_locked(self, delivery_id: int) -> Delivery:
        delivery = await self.deliveries.get_delivery(delivery_id)
        if not delivery:
            raise NotFound(f"Delivery {delivery_id} not found")
        if delivery.status == DeliveryStatus.SENT:
            return delivery

        subscriber = await self.subscribers.get_subscriber(delivery.subscriber_id)
        newsletter = await self.newsletters.get_newsletter(delivery.newsletter_id)
        if not subscriber or not newsletter:
            raise NotFound(f"Delivery {delivery_id} no longer has a subscriber or newsletter")

        if not subscriber.is_active:
            outcome = DeliveryOutcome.failed("subscriber_inactive")
        else:
            categories = await self.newsletters.get_newsletter_categories(newsletter.id)
            outcome = await self._dispatch(
                subscriber, newsletter, [category.name for category in categories], delivery_id
            )

        logger.info(f"Retried delivery {delivery_id}: {outcome.status.value}")
        return await self.deliveries.update_delivery_status(
            delivery_id, outcome.status, outcome.reason
        )

    async def _create_records(
        self,
        newsletter: Newsletter,
        recipients: List[Subscriber],
        batch_id: str
    ) -> List[Delivery]:
        results = await asyncio.gather(*(
            self.deliveries.create_delivery(
                newsletter.id, subscriber.id, subscriber.contact_method, batch_id
            )
            for subscriber in recipients
        ), return_exceptions=True)

        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            logger.error(
                f"Could not record {len(errors)} of {len(results)} deliveries "
                f"for newsletter {newsletter.id}: {errors[0]}"
            )
            if isinstance(errors[0], NewsdripError):
                raise errors[0]
            raise StoreUnavailable("Failed to record deliveries") from errors[0]
        return results

    async def _deliver(
        self,
        semaphore: asyncio.Semaphore,
        record: Delivery,
        subscriber: Subscriber,
        newsletter: Newsletter,
        category_names: List[str]
    ) -> DeliveryOutcome:
        async with semaphore:
            outcome = await self._dispatch(subscriber, newsletter, category_names, record.id)

        try:
            await self.deliveries.update_delivery_status(record.id, outcome.status, outcome.reason)
        except Exception as e:
            # The row keeps its pending status, so report it that way
            logger.error(f"Failed to record outcome of delivery {record.id}: {e}")
            return DeliveryOutcome.pending("status_update_failed")
        return outcome

    async def _dispatch(
        self,
        subscriber: Subscriber,
        newsletter: Newsletter,
        category_names: List[str],
        delivery_id: Optional[int] = None
    ) -> DeliveryOutcome:
        method = subscriber.contact_method
        if method not in SUPPORTED_METHODS:
            return DeliveryOutcome.failed("unsupported_method")
        if method == ContactMethod.EMAIL.value and not subscriber.email:
            return DeliveryOutcome.failed("missing_email")
        if method == ContactMethod.SMS.value and not subscriber.phone:
            return DeliveryOutcome.failed("missing_phone")

        adapter = self.adapters.get(method)
        if adapter is None:
            return DeliveryOutcome.failed("unsupported_method")

        try:
            return await asyncio.wait_for(
                adapter.attempt_send(subscriber, newsletter, category_names, delivery_id),
                timeout=self.send_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"{method} delivery to subscriber {subscriber.id} timed out")
            return DeliveryOutcome.failed("timeout")
        except Exception as e:
            logger.error(f"Dispatch to subscriber {subscriber.id} failed: {e}")
            return DeliveryOutcome.failed(f"unexpected_error: {type(e).__name__}")
