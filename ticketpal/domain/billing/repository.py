"""Billing repository - Database operations for billing"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Subscription, User


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_user_by_public_id(db: Session, public_id: str) -> Optional[User]:
        """RevenueCat's app_user_id is the user's public id"""
        return db.query(User).filter(User.public_id == public_id).first()

    @staticmethod
    def get_subscription(db: Session, user_id: int) -> Optional[Subscription]:
        return db.query(Subscription).filter(Subscription.user_id == user_id).first()

    @staticmethod
    def set_revenuecat_customer_id(db: Session, user: User, customer_id: str) -> User:
        user.revenuecat_customer_id = customer_id
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def upsert_subscription(
        db: Session,
        user_id: int,
        subscription_type: str,
        source: str,
        revenuecat_subscription_id: Optional[str] = None,
    ) -> Subscription:
        """Create or replace the user's single subscription row"""
        subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()
        if subscription is None:
            subscription = Subscription(user_id=user_id)
            db.add(subscription)

        subscription.type = subscription_type
        subscription.source = source
        subscription.revenuecat_subscription_id = revenuecat_subscription_id

        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def delete_subscription(db: Session, subscription: Subscription) -> None:
        db.delete(subscription)
        db.commit()
