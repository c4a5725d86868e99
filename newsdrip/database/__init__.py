# newsdrip/database/__init__.py
from .connection import Database
from .category_repository import CategoryRepository
from .subscriber_repository import SubscriberRepository
from .newsletter_repository import NewsletterRepository
from .delivery_repository import DeliveryRepository

__all__ = [
    "Database",
    "CategoryRepository",
    "SubscriberRepository",
    "NewsletterRepository",
    "DeliveryRepository",
]
