"""
Pydantic schemas for subscription status and checkout
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SubscriptionStatus(BaseModel):
    is_active: bool
    stripe_price_id: Optional[str] = None
    stripe_current_period_end: Optional[datetime] = None


class CheckoutResponse(BaseModel):
    """URL the client should redirect to"""
    url: str


class WebhookAck(BaseModel):
    received: bool = True
    event_type: Optional[str] = None
