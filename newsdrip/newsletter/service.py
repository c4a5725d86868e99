# newsdrip/newsletter/service.py
import re
from datetime import datetime, timezone
from typing import List, Optional
from newsdrip.database.newsletter_repository import NewsletterRepository
from newsdrip.delivery.orchestrator import FanoutOrchestrator
from newsdrip.errors import InvalidTransition, NotFound
from newsdrip.models.domain import Newsletter, NewsletterStatus
from newsdrip.models.requests import NewsletterCreateRequest, NewsletterUpdateRequest
from newsdrip.models.responses import ArchiveEntry, NewsletterDetails, NewsletterResult
import logging

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 160
TAG_PATTERN = re.compile(r"<[^>]*>")

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _sent_message(result_stats) -> str:
    return (
        f"Newsletter sent to {result_stats.total} subscribers! "
        f"({result_stats.sent} delivered, {result_stats.pending} pending, {result_stats.failed} failed)"
    )

class NewsletterService:
    """Owns the draft -> sent lifecycle and triggers fan-out on send"""

    def __init__(self, newsletters: NewsletterRepository, orchestrator: FanoutOrchestrator):
        self.newsletters = newsletters
        self.orchestrator = orchestrator

    async def create_newsletter(self, request: NewsletterCreateRequest, author_id: str) -> NewsletterResult:
        sending = request.action == "send"
        fields = {
            "title": request.title,
            "subject": request.subject,
            "content": request.content,
            "template": request.template,
            "author_id": author_id,
            "status": NewsletterStatus.SENT.value if sending else NewsletterStatus.DRAFT.value,
            "sent_at": _now() if sending else None,
        }

        newsletter = await self.newsletters.create_newsletter(fields, request.category_ids)

        if not sending:
            return NewsletterResult(message="Newsletter saved as draft!", newsletter=newsletter)

        stats = await self.orchestrator.send_newsletter(newsletter, newsletter.category_ids)
        return NewsletterResult(
            message=_sent_message(stats),
            newsletter=newsletter,
            delivery_stats=stats
        )

    async def update_newsletter(
        self,
        newsletter_id: int,
        request: NewsletterUpdateRequest,
        action: Optional[str] = None
    ) -> NewsletterResult:
        """Edit a newsletter; with action "send" a draft is sent.

        Sending a newsletter that already went out is rejected here, use
        ``resend_newsletter`` for that.
        """
        action = action or request.action
        existing = await self.newsletters.get_newsletter(newsletter_id)
        if not existing:
            raise NotFound(f"Newsletter {newsletter_id} not found")

        if action == "send" and existing.status == NewsletterStatus.SENT:
            raise InvalidTransition(
                f"Newsletter {newsletter_id} was already sent; resend it explicitly"
            )

        fields = {
            key: value
            for key, value in request.model_dump(exclude_unset=True, exclude={"category_ids", "action"}).items()
            # subject is the only nullable column
            if value is not None or key == "subject"
        }
        newsletter = await self.newsletters.update_newsletter(
            newsletter_id, fields, request.category_ids
        )

        if action != "send":
            return NewsletterResult(message="Newsletter updated!", newsletter=newsletter)

        # Conditional update so two concurrent sends cannot both win
        newsletter = await self.newsletters.mark_sent(newsletter_id, _now())
        if not newsletter:
            raise InvalidTransition(
                f"Newsletter {newsletter_id} was already sent; resend it explicitly"
            )

        stats = await self.orchestrator.send_newsletter(newsletter, newsletter.category_ids)
        return NewsletterResult(
            message=_sent_message(stats),
            newsletter=newsletter,
            delivery_stats=stats
        )

    async def send_newsletter(self, newsletter_id: int) -> NewsletterResult:
        return await self.update_newsletter(newsletter_id, NewsletterUpdateRequest(), action="send")

    async def resend_newsletter(self, newsletter_id: int) -> NewsletterResult:
        """Deliver an already sent newsletter again as a new batch"""
        existing = await self.newsletters.get_newsletter(newsletter_id)
        if not existing:
            raise NotFound(f"Newsletter {newsletter_id} not found")
        if existing.status != NewsletterStatus.SENT:
            raise InvalidTransition(f"Newsletter {newsletter_id} is a draft; send it first")

        newsletter = await self.newsletters.update_newsletter(newsletter_id, {"sent_at": _now()})
        logger.info(f"Resending newsletter {newsletter_id}")

        stats = await self.orchestrator.send_newsletter(newsletter, newsletter.category_ids)
        return NewsletterResult(
            message=_sent_message(stats),
            newsletter=newsletter,
            delivery_stats=stats
        )

    async def get_newsletter(self, newsletter_id: int) -> Newsletter:
        newsletter = await self.newsletters.get_newsletter(newsletter_id)
        if not newsletter:
            raise NotFound(f"Newsletter {newsletter_id} not found")
        return newsletter

    async def list_newsletters(self) -> List[NewsletterDetails]:
        details = []
        for newsletter in await self.newsletters.list_newsletters():
            categories = await self.newsletters.get_newsletter_categories(newsletter.id)
            stats = None
            if newsletter.status == NewsletterStatus.SENT:
                stats = await self.orchestrator.get_delivery_stats(newsletter.id)
            details.append(NewsletterDetails(
                **newsletter.model_dump(),
                categories=categories,
                delivery_stats=stats
            ))
        return details

    async def delete_newsletter(self, newsletter_id: int):
        deleted = await self.newsletters.delete_newsletter(newsletter_id)
        if not deleted:
            raise NotFound(f"Newsletter {newsletter_id} not found")
        logger.info(f"Deleted newsletter {newsletter_id}")

    async def list_published(self) -> List[ArchiveEntry]:
        """Public archive of sent newsletters"""
        entries = []
        for newsletter in await self.newsletters.list_published():
            categories = await self.newsletters.get_newsletter_categories(newsletter.id)
            text = TAG_PATTERN.sub("", newsletter.content).strip()
            excerpt = text if len(text) <= EXCERPT_LENGTH else text[:EXCERPT_LENGTH] + "..."
            entries.append(ArchiveEntry(
                id=newsletter.id,
                title=newsletter.title,
                subject=newsletter.subject,
                excerpt=excerpt,
                categories=[category.name for category in categories],
                sent_at=newsletter.sent_at
            ))
        return entries
