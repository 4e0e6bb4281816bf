"""Subscription service - RevenueCat events toggle the user's subscription tier"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...enums import SubscriptionSource, SubscriptionType
from ...models import User
from ...shared.results import NOT_FOUND, ActionResult
from .repository import BillingRepository
from .schemas import RevenueCatEvent

logger = logging.getLogger(__name__)

PURCHASE_EVENTS = {"INITIAL_PURCHASE", "RENEWAL", "UNCANCELLATION", "PRODUCT_CHANGE"}
REMOVAL_EVENTS = {"CANCELLATION", "EXPIRATION"}

# Versioned product ids, e.g. standard_sub_monthly_v1, premium_sub_yearly_v2
PRODUCT_PREFIXES = {
    "standard_sub": SubscriptionType.STANDARD,
    "premium_sub": SubscriptionType.PREMIUM,
}


def subscription_type_for_product(product_id: Optional[str]) -> Optional[SubscriptionType]:
    if not product_id:
        return None
    for prefix, subscription_type in PRODUCT_PREFIXES.items():
        if product_id.startswith(prefix):
            return subscription_type
    return None


class SubscriptionService:
    """Service for subscription management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def get_subscription(self, user: User) -> dict:
        subscription = self.repo.get_subscription(self.db, user.id)
        if not subscription:
            return {"tier": None, "source": None}
        return {
            "tier": subscription.type,
            "source": subscription.source,
            "revenuecatSubscriptionId": subscription.revenuecat_subscription_id,
            "stripeSubscriptionId": subscription.stripe_subscription_id,
            "updatedAt": subscription.updated_at,
        }

    def handle_revenuecat_event(self, event: RevenueCatEvent) -> ActionResult:
        """
        Apply a verified RevenueCat event.

        Purchases, renewals and plan changes upsert the subscription; cancellations
        and expirations remove it when it came from RevenueCat. Everything else is
        only logged.
        """
        logger.info(f"📨 RevenueCat event {event.type} for user {event.app_user_id}, product {event.product_id}")

        user = self.repo.get_user_by_public_id(self.db, event.app_user_id)
        if not user:
            logger.error(f"❌ RevenueCat webhook for unknown user {event.app_user_id}")
            return ActionResult.fail("User not found", NOT_FOUND)

        if not user.revenuecat_customer_id and event.original_app_user_id:
            self.repo.set_revenuecat_customer_id(self.db, user, event.original_app_user_id)

        if event.type in PURCHASE_EVENTS:
            subscription_type = subscription_type_for_product(event.product_id)
            if subscription_type is None:
                logger.info(f"Product {event.product_id} is not a subscription, nothing to update")
                return ActionResult.ok({"received": True})

            self.repo.upsert_subscription(
                self.db,
                user.id,
                subscription_type=subscription_type.value,
                source=SubscriptionSource.REVENUECAT.value,
                revenuecat_subscription_id=event.original_transaction_id,
            )
            logger.info(f"✅ Subscription updated: {subscription_type.value} for user {user.id}")

        elif event.type in REMOVAL_EVENTS:
            subscription = self.repo.get_subscription(self.db, user.id)
            if subscription and subscription.source == SubscriptionSource.REVENUECAT.value:
                self.repo.delete_subscription(self.db, subscription)
                logger.info(f"🗑️ Subscription removed for user {user.id}")

        elif event.type == "NON_RENEWING_PURCHASE":
            logger.info(f"Non-renewing purchase: {event.product_id} for user {user.id}")

        elif event.type == "BILLING_ISSUE":
            logger.warning(f"⚠️ Billing issue for user {user.id}")

        elif event.type == "SUBSCRIPTION_PAUSED":
            logger.info(f"Subscription paused for user {user.id}")

        else:
            logger.warning(f"⚠️ Unhandled RevenueCat event type: {event.type}")

        return ActionResult.ok({"received": True})
