from .domain import (
    Category,
    ContactMethod,
    Delivery,
    DeliveryOutcome,
    DeliveryStats,
    DeliveryStatus,
    Frequency,
    Newsletter,
    NewsletterStatus,
    Subscriber,
)

__all__ = [
    'Category',
    'ContactMethod',
    'Delivery',
    'DeliveryOutcome',
    'DeliveryStats',
    'DeliveryStatus',
    'Frequency',
    'Newsletter',
    'NewsletterStatus',
    'Subscriber',
]
