# newsdrip/routes/public.py - Subscription, preferences and archive endpoints
import base64
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import HTMLResponse
from typing import List
from newsdrip.config import settings
from newsdrip.dependencies import Services, get_services
from newsdrip.errors import NotFound
from newsdrip.models.domain import Category
from newsdrip.models.requests import PreferencesUpdateRequest, SubscribeRequest
from newsdrip.models.responses import ArchiveEntry, SubscriberDetails, SubscriptionResult
from newsdrip.services.templates import render_unsubscribe_page
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["subscriptions"])

# 1x1 transparent GIF
TRACKING_PIXEL = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

@router.get("/categories", response_model=List[Category])
async def list_categories(services: Services = Depends(get_services)):
    return await services.categories.list_categories()

@router.post("/subscribe", response_model=SubscriptionResult)
async def subscribe(
    request: SubscribeRequest,
    req: Request,
    services: Services = Depends(get_services)
):
    """Subscribe to newsletters in the chosen categories"""
    client_ip = req.client.host if req.client else "unknown"

    allowed = await services.rate_limiter.check_rate_limit(
        client_ip,
        max_requests=settings.subscribe_rate_limit,
        window=settings.subscribe_rate_window_seconds,
        endpoint="subscribe"
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many subscription attempts. Please try again later."
        )

    return await services.subscribers.subscribe(request, client_ip=client_ip)

@router.get("/preferences/{token}", response_model=SubscriberDetails)
async def get_preferences(token: str, services: Services = Depends(get_services)):
    return await services.subscribers.get_preferences(token)

@router.put("/preferences/{token}")
async def update_preferences(
    token: str,
    request: PreferencesUpdateRequest,
    services: Services = Depends(get_services)
):
    subscriber = await services.subscribers.update_preferences(token, request)
    return {"message": "Preferences updated successfully!", "subscriber": subscriber}

@router.post("/unsubscribe/{token}")
async def unsubscribe(token: str, services: Services = Depends(get_services)):
    subscriber = await services.subscribers.unsubscribe(token)
    return {"message": "Successfully unsubscribed from all newsletters", "subscriber": subscriber}

@router.get("/unsubscribe/{token}", response_class=HTMLResponse)
async def unsubscribe_link(token: str, services: Services = Depends(get_services)):
    """One-click unsubscribe target of the link in every newsletter"""
    try:
        subscriber = await services.subscribers.unsubscribe(token)
    except NotFound:
        logger.warning("Unsubscribe link used with an unknown token")
        return HTMLResponse(render_unsubscribe_page(None), status_code=status.HTTP_404_NOT_FOUND)
    return HTMLResponse(render_unsubscribe_page(subscriber.email or subscriber.phone or ""))

@router.get("/newsletters/archive", response_model=List[ArchiveEntry])
async def newsletter_archive(services: Services = Depends(get_services)):
    return await services.newsletters.list_published()

@router.get("/deliveries/{delivery_id}/open.gif")
async def track_open(delivery_id: int, services: Services = Depends(get_services)):
    """Open-tracking pixel; unknown ids still get the image"""
    try:
        await services.orchestrator.record_open(delivery_id)
    except NotFound:
        logger.warning(f"Open recorded for unknown delivery {delivery_id}")
    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers={"Cache-Control": "no-store"})
