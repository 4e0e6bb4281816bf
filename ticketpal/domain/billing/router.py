"""Billing router - subscription lookup and the RevenueCat webhook"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import REVENUECAT_WEBHOOK_SECRET
from ...database import get_db
from ...models import User
from ...webhook_security import REVENUECAT_SIGNATURE_HEADER, verify_signed_request
from .schemas import RevenueCatWebhook, SubscriptionResponse
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])
webhooks_router = APIRouter(tags=["Webhooks"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Get the current user's subscription tier"""
    return service.get_subscription(user)


@webhooks_router.post("/webhooks/revenuecat")
async def handle_revenuecat_webhook(
    request: Request,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    RevenueCat subscription events.

    X-RevenueCat-Signature carries the hex HMAC-SHA256 of the raw body.
    """
    raw_body = await verify_signed_request(
        request, REVENUECAT_SIGNATURE_HEADER, REVENUECAT_WEBHOOK_SECRET, failure_status=400
    )

    try:
        payload = RevenueCatWebhook.model_validate(json.loads(raw_body))
    except (ValueError, ValidationError) as e:
        logger.error(f"❌ Invalid RevenueCat webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload") from e

    result = service.handle_revenuecat_event(payload.event)
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.error)
    return result.data
