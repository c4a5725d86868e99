# newsdrip/models/requests.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal
from newsdrip.models.domain import ContactMethod, Frequency

NewsletterAction = Literal["draft", "send"]

class SubscribeRequest(BaseModel):
    contact_method: ContactMethod
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    frequency: Frequency = Frequency.WEEKLY
    category_ids: List[int] = Field(min_length=1)
    # Honeypot fields, real users never fill these in
    website: Optional[str] = None
    confirm_subscription: Optional[bool] = None
    # Milliseconds the form was open before submit
    submission_time: Optional[int] = None

class PreferencesUpdateRequest(BaseModel):
    contact_method: ContactMethod
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    frequency: Frequency
    category_ids: List[int] = Field(min_length=1)
    is_active: bool = True

class SubscriberUpdateRequest(BaseModel):
    contact_method: Optional[ContactMethod] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    frequency: Optional[Frequency] = None
    is_active: Optional[bool] = None
    category_ids: Optional[List[int]] = None

class NewsletterCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    subject: Optional[str] = Field(default=None, max_length=255)
    content: str = Field(min_length=1)
    template: str = "classic"
    category_ids: List[int] = Field(min_length=1)
    action: NewsletterAction = "draft"

class NewsletterUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    subject: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    template: Optional[str] = None
    category_ids: Optional[List[int]] = None
    action: Optional[NewsletterAction] = None
