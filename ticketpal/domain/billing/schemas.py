"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RevenueCatEvent(BaseModel):
    """The `event` object of a RevenueCat webhook; unknown fields are kept"""

    model_config = ConfigDict(extra="allow")

    type: str
    app_user_id: str
    original_app_user_id: Optional[str] = None
    product_id: Optional[str] = None
    original_transaction_id: Optional[str] = None
    environment: Optional[str] = None
    store: Optional[str] = None


class RevenueCatWebhook(BaseModel):
    model_config = ConfigDict(extra="allow")

    api_version: Optional[str] = None
    event: RevenueCatEvent


class SubscriptionResponse(BaseModel):
    """Schema for the caller's current subscription"""

    tier: Optional[str] = None  # STANDARD, PREMIUM or None for free users
    source: Optional[str] = None
    revenuecatSubscriptionId: Optional[str] = None
    stripeSubscriptionId: Optional[str] = None
    updatedAt: Optional[datetime] = None
