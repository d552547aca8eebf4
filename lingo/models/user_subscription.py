"""
UserSubscription model - Stripe subscription state per user
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP
from lingo.database import Base


class UserSubscription(Base):
    """
    User subscription table - written only by billing webhooks
    """
    __tablename__ = "user_subscription"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, unique=True)
    stripe_customer_id = Column(String(255), nullable=False, unique=True)
    stripe_subscription_id = Column(String(255), nullable=False, unique=True)
    stripe_price_id = Column(String(255), nullable=False)
    stripe_current_period_end = Column(TIMESTAMP, nullable=False)

    def __repr__(self):
        return f"<UserSubscription(user_id={self.user_id}, subscription={self.stripe_subscription_id})>"
