# newsdrip/routes/admin.py - Newsletter, subscriber and delivery management
from fastapi import APIRouter, Depends
from typing import List
from newsdrip.auth.dependencies import get_current_admin
from newsdrip.auth.models import AdminUser
from newsdrip.dependencies import Services, get_services
from newsdrip.models.domain import Delivery, DeliveryStats
from newsdrip.models.requests import (
    NewsletterCreateRequest,
    NewsletterUpdateRequest,
    SubscriberUpdateRequest,
)
from newsdrip.models.responses import (
    DashboardStats,
    NewsletterDetails,
    NewsletterResult,
    SubscriberDetails,
)
import logging

logger = logging.getLogger(__name__)

# Every admin route requires an authenticated user
router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(get_current_admin)]
)

@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(services: Services = Depends(get_services)):
    return await services.analytics.dashboard()

@router.get("/analytics")
async def analytics(services: Services = Depends(get_services)):
    return await services.analytics.delivery_report()

# Newsletter management

@router.get("/newsletters", response_model=List[NewsletterDetails])
async def list_newsletters(services: Services = Depends(get_services)):
    return await services.newsletters.list_newsletters()

@router.post("/newsletters", response_model=NewsletterResult)
async def create_newsletter(
    request: NewsletterCreateRequest,
    admin: AdminUser = Depends(get_current_admin),
    services: Services = Depends(get_services)
):
    """Save a draft, or create and send immediately with action=send"""
    logger.info(f"Admin {admin.id} creating newsletter ({request.action}): {request.title}")
    return await services.newsletters.create_newsletter(request, author_id=admin.id)

@router.put("/newsletters/{newsletter_id}", response_model=NewsletterResult)
async def update_newsletter(
    newsletter_id: int,
    request: NewsletterUpdateRequest,
    services: Services = Depends(get_services)
):
    return await services.newsletters.update_newsletter(newsletter_id, request)

@router.delete("/newsletters/{newsletter_id}")
async def delete_newsletter(newsletter_id: int, services: Services = Depends(get_services)):
    await services.newsletters.delete_newsletter(newsletter_id)
    return {"message": "Newsletter deleted!"}

@router.post("/newsletters/{newsletter_id}/send", response_model=NewsletterResult)
async def send_newsletter(newsletter_id: int, services: Services = Depends(get_services)):
    return await services.newsletters.send_newsletter(newsletter_id)

@router.post("/newsletters/{newsletter_id}/resend", response_model=NewsletterResult)
async def resend_newsletter(newsletter_id: int, services: Services = Depends(get_services)):
    return await services.newsletters.resend_newsletter(newsletter_id)

@router.get("/newsletters/{newsletter_id}/deliveries", response_model=List[Delivery])
async def delivery_status(newsletter_id: int, services: Services = Depends(get_services)):
    await services.newsletters.get_newsletter(newsletter_id)
    return await services.orchestrator.get_delivery_status(newsletter_id)

@router.get("/newsletters/{newsletter_id}/stats", response_model=DeliveryStats)
async def delivery_stats(newsletter_id: int, services: Services = Depends(get_services)):
    await services.newsletters.get_newsletter(newsletter_id)
    return await services.orchestrator.get_delivery_stats(newsletter_id)

@router.post("/deliveries/{delivery_id}/retry", response_model=Delivery)
async def retry_delivery(delivery_id: int, services: Services = Depends(get_services)):
    return await services.orchestrator.retry_delivery(delivery_id)

# Subscriber management

@router.get("/subscribers", response_model=List[SubscriberDetails])
async def list_subscribers(services: Services = Depends(get_services)):
    return await services.subscribers.list_subscribers()

@router.put("/subscribers/{subscriber_id}")
async def update_subscriber(
    subscriber_id: int,
    request: SubscriberUpdateRequest,
    services: Services = Depends(get_services)
):
    subscriber = await services.subscribers.update_subscriber(subscriber_id, request)
    return {"message": "Subscriber updated!", "subscriber": subscriber}

@router.delete("/subscribers/{subscriber_id}")
async def delete_subscriber(subscriber_id: int, services: Services = Depends(get_services)):
    await services.subscribers.delete_subscriber(subscriber_id)
    return {"message": "Subscriber removed!"}
