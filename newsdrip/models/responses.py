# newsdrip/models/responses.py
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime
from newsdrip.models.domain import Category, DeliveryStats, Newsletter, Subscriber

class NewsletterResult(BaseModel):
    message: str
    newsletter: Newsletter
    delivery_stats: Optional[DeliveryStats] = None

class NewsletterDetails(Newsletter):
    categories: List[Category] = []
    delivery_stats: Optional[DeliveryStats] = None

class ArchiveEntry(BaseModel):
    id: int
    title: str
    subject: Optional[str] = None
    excerpt: str
    categories: List[str]
    sent_at: Optional[datetime] = None

class SubscriberDetails(Subscriber):
    categories: List[Category] = []

class SubscriptionResult(BaseModel):
    message: str
    subscriber: Subscriber

class DashboardStats(BaseModel):
    subscriber_stats: Dict[str, Any]
    newsletter_stats: Dict[str, Any]
    delivery_stats: Dict[str, Any]
