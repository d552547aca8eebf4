"""
Stripe billing: checkout and portal sessions, webhook verification and dispatch
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from lingo.config import settings
from lingo.exceptions import InvalidOperation, UpstreamBillingError, WebhookVerificationFailed
from lingo.services.subscription_service import subscription_service
from lingo.utils.auth import CurrentUser

logger = logging.getLogger(__name__)

# Configure Stripe API
stripe.api_key = settings.STRIPE_API_KEY

CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_PAID = "invoice.payment_succeeded"


def _price_id(subscription: Any) -> str:
    return subscription["items"]["data"][0]["price"]["id"]


def _period_end(subscription: Any) -> datetime:
    """Billing period end; newer API versions report it per subscription item"""
    try:
        timestamp = subscription["current_period_end"]
    except KeyError:
        timestamp = subscription["items"]["data"][0]["current_period_end"]
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    subscription_id = invoice.get("subscription")
    if subscription_id:
        return subscription_id
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


class BillingService:
    """Service for all Stripe operations"""

    PRODUCT_NAME = "Lingo Pro"
    PRODUCT_DESCRIPTION = "Unlimited hearts."

    @property
    def return_url(self) -> str:
        return f"{settings.APP_URL.rstrip('/')}/shop"

    def create_checkout_url(self, db: Session, user: CurrentUser) -> str:
        """
        URL for buying or managing the subscription

        Existing customers get the billing portal, everyone else a
        monthly subscription checkout tagged with their user id.

        Raises:
            UpstreamBillingError: Stripe request failed
        """
        subscription = subscription_service.get_subscription(db, user.user_id)

        try:
            if subscription and subscription.stripe_customer_id:
                session = stripe.billing_portal.Session.create(
                    customer=subscription.stripe_customer_id,
                    return_url=self.return_url
                )
                logger.info(f"Billing portal session created for user {user.user_id}")
                return session.url

            params = dict(
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{
                    "quantity": 1,
                    "price_data": {
                        "currency": settings.STRIPE_CURRENCY,
                        "product_data": {
                            "name": self.PRODUCT_NAME,
                            "description": self.PRODUCT_DESCRIPTION,
                        },
                        "unit_amount": settings.STRIPE_PRICE_AMOUNT,
                        "recurring": {"interval": "month"},
                    },
                }],
                metadata={"userId": user.user_id},
                success_url=self.return_url,
                cancel_url=self.return_url,
            )
            if user.email:
                params["customer_email"] = user.email

            session = stripe.checkout.Session.create(**params)
            logger.info(f"Checkout session created for user {user.user_id}")
            return session.url

        except stripe.StripeError as e:
            logger.error(f"Stripe session creation failed for user {user.user_id}: {str(e)}")
            raise UpstreamBillingError("Could not reach the billing provider")

    def _retrieve_subscription(self, subscription_id: Optional[str]) -> Any:
        if not subscription_id:
            raise InvalidOperation("Event carries no subscription")

        try:
            return stripe.Subscription.retrieve(subscription_id)
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {str(e)}")
            raise UpstreamBillingError("Could not reach the billing provider")

    def verify_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Check the Stripe-Signature header against the raw body

        Raises:
            WebhookVerificationFailed: missing/invalid signature or malformed payload
        """
        if not signature:
            raise WebhookVerificationFailed("Missing Stripe-Signature header")
        if not settings.STRIPE_WEBHOOK_SECRET:
            raise WebhookVerificationFailed("Webhook secret is not configured")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
                stripe.Webhook.DEFAULT_TOLERANCE
            )
            event = json.loads(body)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationFailed(f"Invalid signature: {str(e)}")
        except ValueError as e:
            raise WebhookVerificationFailed(f"Invalid payload: {str(e)}")

        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationFailed("Invalid payload")
        return event

    def handle_webhook(self, db: Session, payload: bytes, signature: Optional[str]) -> str:
        """
        Verify and apply a billing event

        Args:
            db: Database session
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            The event type
        """
        event = self.verify_event(payload, signature)
        event_type = event["type"]
        data = (event.get("data") or {}).get("object") or {}

        if event_type == CHECKOUT_COMPLETED:
            user_id = (data.get("metadata") or {}).get("userId")
            if not user_id:
                raise WebhookVerificationFailed("User id is required.")

            subscription = self._retrieve_subscription(data.get("subscription"))
            subscription_service.record_checkout(
                db,
                user_id=user_id,
                customer_id=subscription["customer"],
                subscription_id=subscription["id"],
                price_id=_price_id(subscription),
                period_end=_period_end(subscription)
            )

        elif event_type == INVOICE_PAID:
            subscription = self._retrieve_subscription(_invoice_subscription_id(data))
            subscription_service.record_renewal(
                db,
                subscription_id=subscription["id"],
                price_id=_price_id(subscription),
                period_end=_period_end(subscription)
            )

        else:
            logger.info(f"Ignoring Stripe event {event_type}")

        return event_type


# Global instance
billing_service = BillingService()
