"""
Stripe Payment Service

Infrastructure service for Stripe payment processing: customers,
hosted Checkout sessions, subscription lookups and webhook verification.

The stripe SDK is synchronous, so calls run in a worker thread.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import stripe
from stripe import StripeError

from app.config.settings import Settings
from app.infrastructure.exceptions import (
    BillingProviderError,
    ConfigurationError,
    ValidationError,
)


logger = logging.getLogger(__name__)


PROVIDER = "stripe"


class StripeService:
    """
    Stripe payment processing service.

    Args:
        settings: Application settings (secret key, webhook secret, price)
    """

    def __init__(self, settings: Settings):
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._price_id = settings.stripe_price_id
        self._app_url = settings.app_url.rstrip("/")

        if self._api_key:
            stripe.api_key = self._api_key

    def _require_api_key(self) -> None:
        if not self._api_key:
            raise ConfigurationError(
                "Stripe is not configured",
                missing_keys=["STRIPE_SECRET_KEY"],
            )

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def get_or_create_customer(
        self,
        user_id: str,
        email: Optional[str],
        existing_customer_id: Optional[str] = None,
    ) -> str:
        """
        Get existing customer or create new one.

        Returns:
            Stripe customer id
        """
        self._require_api_key()

        if existing_customer_id:
            try:
                customer = await asyncio.to_thread(
                    stripe.Customer.retrieve, existing_customer_id
                )
                if not getattr(customer, "deleted", False):
                    return customer.id
            except StripeError:
                logger.warning(f"Customer {existing_customer_id} not found, creating new")

        try:
            customer = await asyncio.to_thread(
                lambda: stripe.Customer.create(
                    email=email,
                    metadata={"user_id": user_id},
                )
            )
        except StripeError as e:
            logger.error(f"Failed to create Stripe customer: {e}")
            raise BillingProviderError(
                f"Failed to create customer: {e.user_message}",
                provider=PROVIDER,
                original_error=e,
            )

        logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
        return customer.id

    # =========================================================================
    # Checkout Session
    # =========================================================================

    async def create_checkout_session(self, customer_id: str, user_id: str) -> str:
        """
        Create a hosted Checkout Session for the pro subscription.

        Returns:
            Checkout URL
        """
        self._require_api_key()
        if not self._price_id:
            raise ConfigurationError(
                "No Stripe price configured",
                missing_keys=["STRIPE_PRICE_ID"],
            )

        try:
            session = await asyncio.to_thread(
                lambda: stripe.checkout.Session.create(
                    customer=customer_id,
                    payment_method_types=["card"],
                    line_items=[{"price": self._price_id, "quantity": 1}],
                    mode="subscription",
                    success_url=f"{self._app_url}/settings?session_id={{CHECKOUT_SESSION_ID}}",
                    cancel_url=f"{self._app_url}/settings",
                    billing_address_collection="auto",
                    metadata={"user_id": user_id},
                    subscription_data={"metadata": {"user_id": user_id}},
                )
            )
        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise BillingProviderError(
                f"Failed to create checkout: {e.user_message}",
                provider=PROVIDER,
                original_error=e,
            )

        logger.info(f"Created checkout session {session.id} for user {user_id}")
        return session.url

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> Dict[str, Any]:
        """
        Verify webhook signature and return the event as plain JSON.

        Raises:
            ValidationError if the payload or signature is invalid
        """
        if not self._webhook_secret:
            raise ConfigurationError(
                "Stripe webhook secret not configured",
                missing_keys=["STRIPE_WEBHOOK_SECRET"],
            )
        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
            )
        except ValueError as e:
            raise ValidationError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise ValidationError(f"Invalid signature: {e}")
        return json.loads(payload)
