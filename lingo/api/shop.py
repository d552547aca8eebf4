"""
Shop API endpoints: hearts refill and Pro subscription
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from lingo.database import get_db
from lingo.schemas.progress import HeartsAndPoints
from lingo.schemas.subscription import CheckoutResponse, SubscriptionStatus
from lingo.services.billing_service import billing_service
from lingo.services.grading_service import grading_service
from lingo.services.progress_service import progress_service
from lingo.services.subscription_service import subscription_service
from lingo.utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/api", tags=["shop"])
logger = logging.getLogger(__name__)


@router.post("/shop/refill", response_model=HeartsAndPoints)
async def refill_hearts(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Spend points on a full set of hearts"""
    grading_service.refill_hearts(db, user.user_id)
    return progress_service.get_hearts_and_points(db, user.user_id)


@router.get("/subscription", response_model=SubscriptionStatus)
async def get_subscription_status(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Whether the caller currently has unlimited hearts"""
    return subscription_service.get_subscription_status(db, user.user_id)


@router.post("/subscription/checkout", response_model=CheckoutResponse)
async def create_checkout(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Stripe URL to redirect to

    - Existing customers: billing portal
    - Others: subscription checkout
    """
    return CheckoutResponse(url=billing_service.create_checkout_url(db, user))
