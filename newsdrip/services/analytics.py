# newsdrip/services/analytics.py
import asyncio
from typing import Any, Dict
from newsdrip.database.category_repository import CategoryRepository
from newsdrip.database.delivery_repository import DeliveryRepository
from newsdrip.database.newsletter_repository import NewsletterRepository
from newsdrip.database.subscriber_repository import SubscriberRepository
from newsdrip.models.responses import DashboardStats

class AnalyticsService:
    """Counters for the admin dashboard"""

    def __init__(
        self,
        subscribers: SubscriberRepository,
        newsletters: NewsletterRepository,
        deliveries: DeliveryRepository,
        categories: CategoryRepository
    ):
        self.subscribers = subscribers
        self.newsletters = newsletters
        self.deliveries = deliveries
        self.categories = categories

    async def dashboard(self) -> DashboardStats:
        subscriber_stats, newsletter_stats, delivery_counts = await asyncio.gather(
            self.subscribers.get_stats(),
            self.newsletters.get_stats(),
            self.deliveries.get_stats(),
        )

        total = delivery_counts["total_deliveries"]
        opened = delivery_counts.pop("opened_deliveries", 0)
        open_rate = (opened / total) * 100 if total > 0 else 0.0
        delivery_counts["open_rate"] = round(open_rate, 1)

        return DashboardStats(
            subscriber_stats=subscriber_stats,
            newsletter_stats=newsletter_stats,
            delivery_stats=delivery_counts
        )

    async def delivery_report(self) -> Dict[str, Any]:
        deliveries, categories = await asyncio.gather(
            self.deliveries.list_deliveries(),
            self.categories.list_categories(),
        )
        return {"deliveries": deliveries, "categories": categories}
