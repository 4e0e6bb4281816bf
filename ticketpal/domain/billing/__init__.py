"""
Billing Domain

Subscription tiers driven by RevenueCat webhooks.
"""

from .router import router, webhooks_router

__all__ = ["router", "webhooks_router"]
