"""
Payments Infrastructure Module

Stripe and PayPal billing-provider clients.
"""

from app.infrastructure.payments.paypal_service import PayPalService
from app.infrastructure.payments.stripe_service import StripeService

__all__ = ["PayPalService", "StripeService"]
