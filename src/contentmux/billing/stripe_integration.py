"""
Stripe Integration for ContentMux

Integrates with Stripe for:
- Customer creation per user
- Subscription checkout sessions per paid tier
- Cancellation at the end of the current period

Without STRIPE_API_KEY the integration runs in mock mode and returns
deterministic fake ids, so the rest of the service can run locally.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import structlog
import stripe

from ..core.tiers import TierId, parse_tier_id

logger = structlog.get_logger()

# Paid tiers only; trial has no Stripe price
DEFAULT_PRICE_IDS = {
    TierId.BASIC: "price_basic_monthly",
    TierId.PRO: "price_pro_monthly",
    TierId.BUSINESS: "price_business_monthly",
    TierId.ENTERPRISE: "price_enterprise_monthly",
}

MOCK_PERIOD_DAYS = 30


class StripeIntegrationError(Exception):
    """Raised when Stripe integration fails."""
    pass


def price_ids_from_env() -> Dict[TierId, str]:
    """Price ids, overridable per tier with STRIPE_PRICE_<TIER>."""
    return {
        tier: os.environ.get(f"STRIPE_PRICE_{tier.name}", default)
        for tier, default in DEFAULT_PRICE_IDS.items()
    }


@dataclass
class CheckoutSession:
    """A created checkout session the client is redirected to."""
    session_id: str
    url: str
    customer_id: str
    tier: TierId
    created_customer: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "url": self.url,
        }


class StripeBilling:
    """
    Thin wrapper over the Stripe SDK for subscription billing.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        price_ids: Optional[Dict[TierId, str]] = None,
    ):
        """
        Initialize Stripe integration.

        Args:
            api_key: Stripe secret key (or STRIPE_API_KEY env var)
            price_ids: Mapping of paid tiers to Stripe price IDs
        """
        self.api_key = api_key or os.environ.get("STRIPE_API_KEY")
        self.price_ids = price_ids or price_ids_from_env()
        self._initialized = False

        if self.api_key:
            stripe.api_key = self.api_key
            self._initialized = True
            logger.info("stripe_integration_initialized")
        else:
            logger.warning("stripe_not_configured", api_key_set=False)

    @property
    def is_available(self) -> bool:
        """Check if Stripe integration is available."""
        return self._initialized

    def price_for(self, tier: Any) -> str:
        """Price id for a paid tier; raises for trial or unknown tiers."""
        parsed = parse_tier_id(tier)
        if parsed is None or parsed not in self.price_ids:
            raise StripeIntegrationError(f"No price configured for tier {tier}")
        return self.price_ids[parsed]

    def create_customer(self, user_id: str, email: str) -> str:
        """Create a Stripe customer and return its id."""
        if not self._initialized:
            return f"cus_mock_{user_id[:8]}"

        try:
            customer = stripe.Customer.create(
                email=email,
                metadata={"userId": user_id},
            )
        except Exception as e:
            logger.error("stripe_customer_create_failed", user_id=user_id, error=str(e))
            raise StripeIntegrationError(f"Failed to create customer: {e}") from e

        logger.info("stripe_customer_created", customer_id=customer.id, user_id=user_id)
        return customer.id

    def verify_customer(self, customer_id: str) -> Optional[str]:
        """
        Check that a stored customer id still exists in this Stripe account.

        Returns the id, or None when Stripe does not know it (deleted, or
        created under the other test/live mode). Mock mode trusts the id.
        """
        if not self._initialized:
            return customer_id

        try:
            customer = stripe.Customer.retrieve(customer_id)
        except stripe.InvalidRequestError as e:
            logger.warning("stripe_customer_invalid", customer_id=customer_id, error=str(e))
            return None
        except Exception as e:
            logger.error("stripe_customer_retrieve_failed", customer_id=customer_id, error=str(e))
            raise StripeIntegrationError(f"Failed to retrieve customer: {e}") from e

        if customer.get("deleted"):
            logger.warning("stripe_customer_deleted", customer_id=customer_id)
            return None
        return customer_id

    def create_checkout_session(
        self,
        user_id: str,
        email: str,
        tier: Any,
        origin: str,
        customer_id: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a subscription checkout session for a paid tier.

        Reuses `customer_id` when the user already has one, otherwise creates
        a customer first. userId and tier travel in the session and
        subscription metadata.
        """
        price_id = self.price_for(tier)
        tier_id = parse_tier_id(tier)

        created_customer = False
        if not customer_id:
            customer_id = self.create_customer(user_id, email)
            created_customer = True

        metadata = {"userId": user_id, "tier": tier_id.value}
        origin = origin.rstrip("/")

        if not self._initialized:
            session_id = f"cs_mock_{user_id[:8]}_{tier_id.value}"
            return CheckoutSession(
                session_id=session_id,
                url=f"{origin}/dashboard?success=true&session_id={session_id}",
                customer_id=customer_id,
                tier=tier_id,
                created_customer=created_customer,
            )

        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=f"{origin}/dashboard?success=true&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{origin}/pricing?canceled=true",
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )
        except Exception as e:
            logger.error("stripe_checkout_create_failed", user_id=user_id, tier=tier_id.value, error=str(e))
            raise StripeIntegrationError(f"Failed to create checkout session: {e}") from e

        logger.info(
            "stripe_checkout_created",
            session_id=session.id,
            user_id=user_id,
            tier=tier_id.value,
        )

        return CheckoutSession(
            session_id=session.id,
            url=session.url,
            customer_id=customer_id,
            tier=tier_id,
            created_customer=created_customer,
        )

    def cancel_subscription(self, stripe_subscription_id: str) -> datetime:
        """
        Cancel a subscription at the end of its current period.

        Returns the time access ends.
        """
        if not self._initialized:
            return datetime.now(timezone.utc) + timedelta(days=MOCK_PERIOD_DAYS)

        try:
            subscription = stripe.Subscription.modify(
                stripe_subscription_id,
                cancel_at_period_end=True,
            )
        except Exception as e:
            logger.error(
                "stripe_subscription_cancel_failed",
                subscription_id=stripe_subscription_id,
                error=str(e),
            )
            raise StripeIntegrationError(f"Failed to cancel subscription: {e}") from e

        access_until = datetime.fromtimestamp(_period_end(subscription), timezone.utc)
        logger.info(
            "stripe_subscription_cancel_scheduled",
            subscription_id=stripe_subscription_id,
            access_until=access_until.isoformat(),
        )
        return access_until


def _period_end(subscription: Any) -> int:
    """current_period_end moved from the subscription to its items in newer API versions."""
    period_end = subscription.get("current_period_end")
    if period_end:
        return period_end
    items = subscription.get("items") or {}
    data = items.get("data") or []
    if data and data[0].get("current_period_end"):
        return data[0]["current_period_end"]
    raise StripeIntegrationError("Subscription has no current period end")
