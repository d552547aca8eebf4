"""
Subscription status resolution and persistence of billing events
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.orm import Session

from lingo.config import settings
from lingo.models import UserSubscription
from lingo.schemas.subscription import SubscriptionStatus
from lingo.utils.events import event_bus, ProgressChanged

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SubscriptionService:
    """
    Service deciding whether a user has unlimited hearts

    A subscription stays active for a grace period after its billing
    period ends so a late renewal webhook does not lock the user out.
    """

    @property
    def grace_period(self) -> timedelta:
        return timedelta(hours=settings.SUBSCRIPTION_GRACE_PERIOD_HOURS)

    def is_active(
        self,
        subscription: Optional[UserSubscription],
        now: Optional[datetime] = None
    ) -> bool:
        """
        Args:
            subscription: Stored subscription or None
            now: Reference time (defaults to current UTC time)

        Returns:
            True if a price is set and period end + grace is after now
        """
        if subscription is None or not subscription.stripe_price_id:
            return False
        if subscription.stripe_current_period_end is None:
            return False

        now = _naive_utc(now or utcnow())
        period_end = _naive_utc(subscription.stripe_current_period_end)
        return period_end + self.grace_period > now

    def get_subscription(self, db: Session, user_id: str) -> Optional[UserSubscription]:
        return db.query(UserSubscription).filter(UserSubscription.user_id == user_id).first()

    def has_active_subscription(self, db: Session, user_id: str) -> bool:
        return self.is_active(self.get_subscription(db, user_id))

    def get_subscription_status(self, db: Session, user_id: str) -> SubscriptionStatus:
        subscription = self.get_subscription(db, user_id)
        if not subscription:
            return SubscriptionStatus(is_active=False)

        return SubscriptionStatus(
            is_active=self.is_active(subscription),
            stripe_price_id=subscription.stripe_price_id,
            stripe_current_period_end=subscription.stripe_current_period_end
        )

    def record_checkout(
        self,
        db: Session,
        user_id: str,
        customer_id: str,
        subscription_id: str,
        price_id: str,
        period_end: datetime
    ) -> UserSubscription:
        """
        Store a newly purchased subscription

        Upserts on the subscription id (then the user id), so a redelivered
        checkout event leaves a single row.
        """
        subscription = db.query(UserSubscription).filter(
            UserSubscription.stripe_subscription_id == subscription_id
        ).first() or self.get_subscription(db, user_id)

        try:
            if not subscription:
                subscription = UserSubscription(user_id=user_id)
                db.add(subscription)

            subscription.user_id = user_id
            subscription.stripe_customer_id = customer_id
            subscription.stripe_subscription_id = subscription_id
            subscription.stripe_price_id = price_id
            subscription.stripe_current_period_end = _naive_utc(period_end)

            db.commit()
            db.refresh(subscription)
        except Exception:
            db.rollback()
            raise

        logger.info(f"Subscription {subscription_id} recorded for user {user_id}")
        event_bus.publish(ProgressChanged(user_id=user_id, reason="subscription_started"))
        return subscription

    def record_renewal(
        self,
        db: Session,
        subscription_id: str,
        price_id: str,
        period_end: datetime
    ) -> bool:
        """Extend a known subscription; False if the id is unknown"""
        subscription = db.query(UserSubscription).filter(
            UserSubscription.stripe_subscription_id == subscription_id
        ).first()

        if not subscription:
            logger.warning(f"Renewal for unknown subscription {subscription_id}")
            return False

        try:
            subscription.stripe_price_id = price_id
            subscription.stripe_current_period_end = _naive_utc(period_end)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Subscription {subscription_id} renewed until {subscription.stripe_current_period_end}")
        event_bus.publish(ProgressChanged(user_id=subscription.user_id, reason="subscription_renewed"))
        return True


# Global instance
subscription_service = SubscriptionService()
