"""
CONTENTMUX - Billing Module

Stripe-backed subscription billing:
- Checkout sessions for paid tiers
- Cancellation at period end
"""

from .stripe_integration import (
    StripeBilling,
    CheckoutSession,
    StripeIntegrationError,
    price_ids_from_env,
)

__all__ = [
    "StripeBilling",
    "CheckoutSession",
    "StripeIntegrationError",
    "price_ids_from_env",
]
