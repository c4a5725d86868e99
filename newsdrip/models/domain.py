# newsdrip/models/domain.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum

class ContactMethod(str, Enum):
    EMAIL = "email"
    SMS = "sms"

class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

class NewsletterStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"

class DeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

class Category(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

class Subscriber(BaseModel):
    id: int
    # Stored as plain text so rows with an unexpected method still load
    contact_method: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True
    frequency: str = Frequency.WEEKLY.value
    unsubscribe_token: Optional[str] = None
    preferences_token: Optional[str] = None
    category_ids: List[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class Newsletter(BaseModel):
    id: int
    title: str
    subject: Optional[str] = None
    content: str
    author_id: str
    status: NewsletterStatus = NewsletterStatus.DRAFT
    template: str = "classic"
    category_ids: List[int] = Field(default_factory=list)
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_subject(self) -> str:
        return self.subject or self.title

class Delivery(BaseModel):
    id: int
    newsletter_id: int
    subscriber_id: int
    method: str
    status: DeliveryStatus
    reason: Optional[str] = None
    batch_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None

class DeliveryOutcome(BaseModel):
    """Result of one send attempt, as reported by a channel adapter"""
    status: DeliveryStatus
    reason: Optional[str] = None
    provider_message_id: Optional[str] = None

    @classmethod
    def sent(cls, provider_message_id: Optional[str] = None) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.SENT, provider_message_id=provider_message_id)

    @classmethod
    def pending(cls, reason: str) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.PENDING, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.FAILED, reason=reason)

class DeliveryStats(BaseModel):
    total: int = 0
    sent: int = 0
    pending: int = 0
    failed: int = 0

    @classmethod
    def from_statuses(cls, statuses: List[DeliveryStatus]) -> "DeliveryStats":
        stats = cls(total=len(statuses))
        for status in statuses:
            if status == DeliveryStatus.SENT:
                stats.sent += 1
            elif status == DeliveryStatus.FAILED:
                stats.failed += 1
            else:
                stats.pending += 1
        return stats
