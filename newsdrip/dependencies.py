# newsdrip/dependencies.py - Service wiring shared by the app and its routers
from dataclasses import dataclass
from typing import Dict, Optional
from fastapi import Request
from newsdrip.config import Settings, settings as default_settings
from newsdrip.database import (
    CategoryRepository,
    Database,
    DeliveryRepository,
    NewsletterRepository,
    SubscriberRepository,
)
from newsdrip.delivery import CategoryMatcher, ChannelAdapter, EmailAdapter, FanoutOrchestrator, SmsAdapter
from newsdrip.models.domain import ContactMethod
from newsdrip.newsletter.service import NewsletterService
from newsdrip.services.analytics import AnalyticsService
from newsdrip.services.mailer import SesMailer
from newsdrip.subscribers.service import SubscriberService
from newsdrip.utils.rate_limiting import RateLimiter

@dataclass
class Services:
    db: Database
    categories: CategoryRepository
    orchestrator: FanoutOrchestrator
    newsletters: NewsletterService
    subscribers: SubscriberService
    analytics: AnalyticsService
    rate_limiter: RateLimiter
    adapters: Dict[str, ChannelAdapter]

def build_services(
    db: Database,
    adapters: Optional[Dict[str, ChannelAdapter]] = None,
    config: Settings = default_settings
) -> Services:
    """Assemble repositories, adapters and services around one database"""
    categories = CategoryRepository(db)
    subscribers = SubscriberRepository(db)
    newsletters = NewsletterRepository(db)
    deliveries = DeliveryRepository(db)

    mailer = SesMailer(send_timeout=config.delivery_timeout_seconds)
    if adapters is None:
        adapters = {
            ContactMethod.EMAIL.value: EmailAdapter(
                mailer=mailer, base_url=config.public_base_url, frontend_url=config.frontend_url
            ),
            ContactMethod.SMS.value: SmsAdapter(
                base_url=config.public_base_url, frontend_url=config.frontend_url
            ),
        }

    orchestrator = FanoutOrchestrator(
        matcher=CategoryMatcher(subscribers),
        subscribers=subscribers,
        newsletters=newsletters,
        categories=categories,
        deliveries=deliveries,
        adapters=adapters,
        max_concurrency=config.delivery_max_concurrency,
        send_timeout=config.delivery_timeout_seconds
    )

    return Services(
        db=db,
        categories=categories,
        orchestrator=orchestrator,
        newsletters=NewsletterService(newsletters, orchestrator),
        subscribers=SubscriberService(
            subscribers, categories, mailer=mailer,
            base_url=config.public_base_url, frontend_url=config.frontend_url
        ),
        analytics=AnalyticsService(subscribers, newsletters, deliveries, categories),
        rate_limiter=RateLimiter(db),
        adapters=adapters
    )

def get_services(request: Request) -> Services:
    return request.app.state.services
