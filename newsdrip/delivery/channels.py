# newsdrip/delivery/channels.py - Email (AWS SES) and SMS (Twilio) delivery channels
import httpx
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, List
from newsdrip.config import settings
from newsdrip.errors import AdapterFailure, PartialAcceptance
from newsdrip.models.domain import ContactMethod, DeliveryOutcome, Newsletter, Subscriber
from newsdrip.services.mailer import SesMailer
from newsdrip.services.templates import (
    build_subscriber_links,
    build_tracking_url,
    render_newsletter_html,
    render_newsletter_text,
    render_sms_body,
)
import logging

logger = logging.getLogger(__name__)


class ChannelAdapter:
    """Uniform send attempt over one contact method.

    Subclasses implement ``_send`` and may raise ``AdapterFailure`` or
    ``PartialAcceptance``; ``attempt_send`` turns every exception into an
    outcome so nothing from the provider layer escapes.
    """

    method: str = ""

    async def attempt_send(
        self,
        subscriber: Subscriber,
        newsletter: Newsletter,
        category_names: List[str],
        delivery_id: Optional[int] = None
    ) -> DeliveryOutcome:
        try:
            return await self._send(subscriber, newsletter, category_names, delivery_id)
        except PartialAcceptance as e:
            logger.warning(
                f"{self.method} delivery to subscriber {subscriber.id} accepted but held: {e}"
            )
            return DeliveryOutcome.pending(e.reason)
        except AdapterFailure as e:
            logger.error(f"{self.method} delivery to subscriber {subscriber.id} failed: {e}")
            return DeliveryOutcome.failed(e.reason)
        except Exception as e:
            logger.error(
                f"Unexpected {type(e).__name__} sending {self.method} to subscriber {subscriber.id}: {e}"
            )
            return DeliveryOutcome.failed(f"unexpected_error: {type(e).__name__}")

    async def _send(
        self,
        subscriber: Subscriber,
        newsletter: Newsletter,
        category_names: List[str],
        delivery_id: Optional[int] = None
    ) -> DeliveryOutcome:
        raise NotImplementedError

class EmailAdapter(ChannelAdapter):
    method = ContactMethod.EMAIL.value

    def __init__(
        self,
        ses_client=None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
        configuration_set: Optional[str] = None,
        base_url: Optional[str] = None,
        frontend_url: Optional[str] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        send_timeout: Optional[float] = None,
        mailer: Optional[SesMailer] = None
    ):
        self.mailer = mailer or SesMailer(
            ses_client=ses_client,
            from_email=from_email,
            from_name=from_name,
            reply_to=reply_to,
            configuration_set=configuration_set,
            executor=executor,
            send_timeout=send_timeout
        )
        self.base_url = base_url or settings.public_base_url
        self.frontend_url = frontend_url or settings.frontend_url

    async def _send(
        self,
        subscriber: Subscriber,
        newsletter: Newsletter,
        category_names: List[str],
        delivery_id: Optional[int] = None
    ) -> DeliveryOutcome:
        if not subscriber.email:
            raise AdapterFailure("missing_email")

        unsubscribe_url, preferences_url = build_subscriber_links(
            subscriber, self.base_url, self.frontend_url
        )
        tracking_url = build_tracking_url(delivery_id, self.base_url) if delivery_id else None
        html_content = render_newsletter_html(
            newsletter, category_names, unsubscribe_url, preferences_url, self.mailer.from_name,
            tracking_url=tracking_url
        )
        text_content = render_newsletter_text(
            newsletter, category_names, unsubscribe_url, preferences_url, self.mailer.from_name
        )

        result = await self.mailer.send_email(
            subscriber.email,
            newsletter.effective_subject,
            html_content,
            text_content
        )

        logger.info(f"Newsletter {newsletter.id} emailed to subscriber {subscriber.id}")
        return DeliveryOutcome.sent(result.get('message_id'))

class SmsAdapter(ChannelAdapter):
    method = ContactMethod.SMS.value

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        api_url: Optional[str] = None,
        base_url: Optional[str] = None,
        frontend_url: Optional[str] = None
    ):
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_from_number
        self.api_url = (api_url or settings.twilio_api_url).rstrip("/")
        self.base_url = base_url or settings.public_base_url
        self.frontend_url = frontend_url or settings.frontend_url
        self.http_client = http_client or httpx.AsyncClient(timeout=10.0)

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def _send(
        self,
        subscriber: Subscriber,
        newsletter: Newsletter,
        category_names: List[str],
        delivery_id: Optional[int] = None
    ) -> DeliveryOutcome:
        if not subscriber.phone:
            raise AdapterFailure("missing_phone")

        if not self.configured:
            raise PartialAcceptance("channel_not_configured", "Twilio credentials are not set")

        unsubscribe_url, _ = build_subscriber_links(subscriber, self.base_url, self.frontend_url)
        body = render_sms_body(newsletter, unsubscribe_url)

        try:
            response = await self.http_client.post(
                f"{self.api_url}/Accounts/{self.account_sid}/Messages.json",
                data={
                    "From": self.from_number,
                    "To": subscriber.phone,
                    "Body": body,
                },
                auth=(self.account_sid, self.auth_token)
            )
        except httpx.HTTPError as e:
            raise AdapterFailure("transport_error", str(e))

        if response.is_error:
            raise AdapterFailure(
                "provider_error",
                f"Twilio API error: {response.status_code} - {response.text}"
            )

        try:
            message_sid = response.json().get("sid")
        except ValueError:
            message_sid = None

        logger.info(f"Newsletter {newsletter.id} texted to subscriber {subscriber.id}")
        return DeliveryOutcome.sent(message_sid)

    async def close(self):
        await self.http_client.aclose()
