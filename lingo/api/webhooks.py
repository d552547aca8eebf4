"""
Billing provider webhook endpoint
"""
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from lingo.database import get_db
from lingo.exceptions import LingoError
from lingo.schemas.subscription import WebhookAck
from lingo.services.billing_service import billing_service

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db)
):
    """
    Receive Stripe events

    The signature is verified over the raw body before anything is trusted.
    Any non-2xx answer makes Stripe retry the delivery.
    """
    payload = await request.body()

    try:
        event_type = billing_service.handle_webhook(db, payload, stripe_signature)
    except LingoError as e:
        logger.error(f"Stripe webhook rejected: {e.message}")
        raise

    logger.info(f"Stripe webhook processed: {event_type}")
    return WebhookAck(event_type=event_type)
