# newsdrip/subscribers/service.py
from typing import Callable, List, Optional, Tuple
from newsdrip.config import settings
from newsdrip.database.category_repository import CategoryRepository
from newsdrip.database.subscriber_repository import SubscriberRepository
from newsdrip.errors import NotFound, ValidationFailure
from newsdrip.models.domain import Category, Subscriber
from newsdrip.models.requests import (
    PreferencesUpdateRequest,
    SubscribeRequest,
    SubscriberUpdateRequest,
)
from newsdrip.models.responses import SubscriberDetails, SubscriptionResult
from newsdrip.services.mailer import SesMailer
from newsdrip.services.templates import (
    build_subscriber_links,
    render_preferences_updated_email,
    render_welcome_email,
)
from newsdrip.utils.validation import (
    check_subscriber_email,
    generate_subscriber_token,
    is_suspicious_timing,
    normalize_phone,
    require_contact,
)
import logging

logger = logging.getLogger(__name__)

NoticeRenderer = Callable[[Subscriber, List[str], str, str, str], Tuple[str, str, str]]

class SubscriberService:
    """Public subscription flow plus admin subscriber management.

    With a ``mailer`` the service emails a welcome message after a new
    subscription and a confirmation after a preferences change. Those
    emails are best effort: a failed send is logged and the request still
    succeeds.
    """

    def __init__(
        self,
        subscribers: SubscriberRepository,
        categories: CategoryRepository,
        mailer: Optional[SesMailer] = None,
        base_url: Optional[str] = None,
        frontend_url: Optional[str] = None
    ):
        self.subscribers = subscribers
        self.categories = categories
        self.mailer = mailer
        self.base_url = base_url or settings.public_base_url
        self.frontend_url = frontend_url or settings.frontend_url

    async def subscribe(self, request: SubscribeRequest, client_ip: Optional[str] = None) -> SubscriptionResult:
        if (request.website and request.website.strip()) or request.confirm_subscription is True:
            logger.warning(f"Honeypot triggered for IP: {client_ip}")
            raise ValidationFailure("Invalid submission detected.")

        if request.submission_time is not None and is_suspicious_timing(request.submission_time):
            logger.warning(f"Suspicious timing for IP: {client_ip}, time: {request.submission_time}ms")
            raise ValidationFailure("Please take your time filling out the form.")

        contact_method = request.contact_method.value
        email = request.email.lower() if request.email else None
        phone = normalize_phone(request.phone) if request.phone else None
        require_contact(contact_method, email, phone)

        categories = await self._known_categories(request.category_ids)
        category_ids = [category.id for category in categories]

        if email:
            check_subscriber_email(email)

            existing = await self.subscribers.get_by_email(email)
            if existing:
                if existing.is_active:
                    raise ValidationFailure("This email is already subscribed to our newsletter.")

                await self.subscribers.update_subscriber(existing.id, {
                    "is_active": True,
                    "frequency": request.frequency.value,
                })
                await self.subscribers.set_subscriber_categories(existing.id, category_ids)
                logger.info(f"Reactivated subscription: {email}")
                return SubscriptionResult(
                    message="Welcome back! Your subscription has been reactivated.",
                    subscriber=await self.subscribers.get_subscriber(existing.id)
                )

        subscriber = await self.subscribers.create_subscriber(
            contact_method=contact_method,
            email=email,
            phone=phone,
            frequency=request.frequency.value,
            unsubscribe_token=generate_subscriber_token(),
            preferences_token=generate_subscriber_token(),
            category_ids=category_ids
        )
        logger.info(f"Newsletter subscription created: {subscriber.id} via {contact_method}")

        welcomed = await self._send_notice(
            subscriber, [category.name for category in categories], render_welcome_email, "welcome"
        )
        message = "Successfully subscribed!"
        if welcomed:
            message += " Check your inbox for preference management options."
        return SubscriptionResult(message=message, subscriber=subscriber)

    async def get_preferences(self, token: str) -> SubscriberDetails:
        subscriber = await self.subscribers.get_by_preferences_token(token)
        if not subscriber:
            raise NotFound("Invalid or expired preferences link")
        return await self._with_categories(subscriber)

    async def update_preferences(self, token: str, request: PreferencesUpdateRequest) -> SubscriberDetails:
        subscriber = await self.subscribers.get_by_preferences_token(token)
        if not subscriber:
            raise NotFound("Invalid or expired preferences link")

        email = request.email.lower() if request.email else None
        phone = normalize_phone(request.phone) if request.phone else None
        require_contact(request.contact_method.value, email, phone)
        if email and email != (subscriber.email or "").lower():
            check_subscriber_email(email)

        categories = await self._known_categories(request.category_ids)
        category_ids = [category.id for category in categories]

        await self.subscribers.update_subscriber(subscriber.id, {
            "contact_method": request.contact_method.value,
            "email": email,
            "phone": phone,
            "frequency": request.frequency.value,
            "is_active": request.is_active,
        })
        await self.subscribers.set_subscriber_categories(subscriber.id, category_ids)
        logger.info(f"Preferences updated for subscriber {subscriber.id}")

        updated = await self.subscribers.get_subscriber(subscriber.id)
        if updated.is_active:
            await self._send_notice(
                updated, [category.name for category in categories],
                render_preferences_updated_email, "preferences confirmation"
            )
        return await self._with_categories(updated)

    async def unsubscribe(self, token: str) -> Subscriber:
        subscriber = await self.subscribers.get_by_unsubscribe_token(token)
        if not subscriber:
            raise NotFound("Invalid or expired unsubscribe link")

        await self.subscribers.update_subscriber(subscriber.id, {"is_active": False})
        await self.subscribers.set_subscriber_categories(subscriber.id, [])
        logger.info(f"Subscriber {subscriber.id} unsubscribed")

        return await self.subscribers.get_subscriber(subscriber.id)

    async def list_subscribers(self) -> List[SubscriberDetails]:
        return [
            await self._with_categories(subscriber)
            for subscriber in await self.subscribers.list_subscribers()
        ]

    async def update_subscriber(self, subscriber_id: int, request: SubscriberUpdateRequest) -> SubscriberDetails:
        subscriber = await self.subscribers.get_subscriber(subscriber_id)
        if not subscriber:
            raise NotFound(f"Subscriber {subscriber_id} not found")

        fields = {
            key: value
            for key, value in request.model_dump(mode="json", exclude_unset=True, exclude={"category_ids"}).items()
            # email and phone may be cleared, the other columns are NOT NULL
            if value is not None or key in ("email", "phone")
        }
        if fields.get("email"):
            fields["email"] = fields["email"].lower()
        if fields.get("phone"):
            fields["phone"] = normalize_phone(fields["phone"])

        # Validate the record as it will look after the update
        require_contact(
            fields.get("contact_method", subscriber.contact_method),
            fields.get("email", subscriber.email),
            fields.get("phone", subscriber.phone)
        )

        await self.subscribers.update_subscriber(subscriber_id, fields)
        if request.category_ids is not None:
            await self.subscribers.set_subscriber_categories(subscriber_id, request.category_ids)

        logger.info(f"Subscriber {subscriber_id} updated by admin")
        return await self._with_categories(await self.subscribers.get_subscriber(subscriber_id))

    async def delete_subscriber(self, subscriber_id: int):
        deleted = await self.subscribers.delete_subscriber(subscriber_id)
        if not deleted:
            raise NotFound(f"Subscriber {subscriber_id} not found")
        logger.info(f"Subscriber {subscriber_id} removed by admin")

    async def _known_categories(self, category_ids: List[int]) -> List[Category]:
        categories = await self.categories.get_categories_by_ids(category_ids)
        if not categories:
            raise ValidationFailure("Please select at least one category")
        return categories

    async def _send_notice(
        self,
        subscriber: Subscriber,
        category_names: List[str],
        render: NoticeRenderer,
        kind: str
    ) -> bool:
        """Email a subscriber notice; returns whether SES accepted it"""
        if not self.mailer or not subscriber.email:
            return False

        unsubscribe_url, preferences_url = build_subscriber_links(
            subscriber, self.base_url, self.frontend_url
        )
        subject, html_content, text_content = render(
            subscriber, category_names, unsubscribe_url, preferences_url, self.mailer.from_name
        )
        try:
            await self.mailer.send_email(subscriber.email, subject, html_content, text_content)
        except Exception as e:
            logger.error(f"Failed to send {kind} email to subscriber {subscriber.id}: {e}")
            return False

        logger.info(f"Sent {kind} email to subscriber {subscriber.id}")
        return True

    async def _with_categories(self, subscriber: Subscriber) -> SubscriberDetails:
        categories = await self.subscribers.get_subscriber_categories(subscriber.id)
        return SubscriberDetails(**subscriber.model_dump(), categories=categories)
