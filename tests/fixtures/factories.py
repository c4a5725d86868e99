"""Factory functions for creating test categories, subscribers and newsletters."""

import itertools
from typing import List, Optional

from newsdrip.models.domain import Category, Newsletter, NewsletterStatus, Subscriber

_ids = itertools.count(1000)


def create_test_category(category_id: Optional[int] = None, name: str = "Technology", **overrides) -> Category:
    """Factory for creating a category."""
    data = {
        "id": category_id if category_id is not None else next(_ids),
        "name": name,
        "description": f"{name} news",
    }
    data.update(overrides)
    return Category(**data)


def create_test_subscriber(
    subscriber_id: Optional[int] = None,
    contact_method: str = "email",
    email: Optional[str] = "alice@example.com",
    phone: Optional[str] = None,
    is_active: bool = True,
    category_ids: Optional[List[int]] = None,
    **overrides,
) -> Subscriber:
    """Factory for creating a subscriber with unsubscribe/preferences tokens."""
    subscriber_id = subscriber_id if subscriber_id is not None else next(_ids)
    data = {
        "id": subscriber_id,
        "contact_method": contact_method,
        "email": email,
        "phone": phone,
        "is_active": is_active,
        "frequency": "weekly",
        "unsubscribe_token": f"unsub-{subscriber_id}",
        "preferences_token": f"prefs-{subscriber_id}",
        "category_ids": category_ids if category_ids is not None else [1],
    }
    data.update(overrides)
    return Subscriber(**data)


def create_test_sms_subscriber(subscriber_id: Optional[int] = None, phone: str = "+15551234567", **overrides) -> Subscriber:
    """Factory for a subscriber reached by text message."""
    return create_test_subscriber(
        subscriber_id=subscriber_id,
        contact_method="sms",
        email=None,
        phone=phone,
        **overrides,
    )


def create_test_newsletter(
    newsletter_id: Optional[int] = None,
    title: str = "Weekly Roundup",
    content: str = "First paragraph.\n\nSecond paragraph.",
    status: NewsletterStatus = NewsletterStatus.DRAFT,
    category_ids: Optional[List[int]] = None,
    **overrides,
) -> Newsletter:
    """Factory for creating a newsletter."""
    data = {
        "id": newsletter_id if newsletter_id is not None else next(_ids),
        "title": title,
        "subject": None,
        "content": content,
        "author_id": "admin-1",
        "status": status,
        "category_ids": category_ids if category_ids is not None else [1],
    }
    data.update(overrides)
    return Newsletter(**data)
