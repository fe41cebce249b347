"""
Stripe billing for Ledger Cover Studio.

Creates Checkout and Billing Portal sessions for signed-in users and reads the
subscription and payment history rows the webhook keeps in sync. Calls are
blocking; routes run them through asyncio.to_thread.
"""

import logging
from typing import Dict, List, Optional

import stripe
from supabase import Client

from ..database.models import PaymentRecord, Subscription, SubscriptionStatus
from ..errors import ServiceError

logger = logging.getLogger(__name__)

PAYMENT_HISTORY_LIMIT = 20


class StripeBilling:
    """Checkout, portal and subscription reads for one Stripe account."""

    def __init__(self, supabase_client: Client, secret_key: str, price_ids: Dict[str, str]):
        self.supabase = supabase_client
        self.price_ids = price_ids
        stripe.api_key = secret_key

    def _subscription_row(self, user_id: str) -> Optional[Dict]:
        result = (
            self.supabase.table("subscriptions")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def get_or_create_customer(self, user_id: str, plan_id: str) -> str:
        """Stripe customer for `user_id`, created on first checkout.

        A new customer also gets an `incomplete` subscriptions row so the
        webhook can map Stripe events back to the user.
        """
        existing = self._subscription_row(user_id)
        if existing and existing.get("stripe_customer_id"):
            return existing["stripe_customer_id"]

        user = self.supabase.table("users").select("email, artist_name").eq("id", user_id).limit(1).execute()
        email = user.data[0].get("email") if user.data else None

        customer = stripe.Customer.create(
            email=email,
            metadata={"supabase_user_id": user_id},
        )

        self.supabase.table("subscriptions").insert({
            "user_id": user_id,
            "stripe_customer_id": customer.id,
            "plan_id": plan_id,
            "status": SubscriptionStatus.INCOMPLETE.value,
        }).execute()

        logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
        return customer.id

    def create_checkout_session(self, user_id: str, plan_id: str, success_url: str, cancel_url: str) -> str:
        """Create a subscription Checkout Session and return its URL.

        Raises:
            ServiceError: for unknown plans or Stripe/database failures
        """
        price_id = self.price_ids.get(plan_id)
        if not price_id:
            raise ServiceError("Invalid plan ID")

        try:
            customer_id = self.get_or_create_customer(user_id, plan_id)
            session = stripe.checkout.Session.create(
                customer=customer_id,
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                subscription_data={"metadata": {"supabase_user_id": user_id}},
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise ServiceError(e.user_message or str(e)) from e
        except Exception as e:
            logger.error(f"Unexpected error creating checkout session: {e}")
            raise ServiceError("Failed to create checkout session") from e

        logger.info(f"Created checkout session {session.id} for user {user_id}")
        return session.url

    def create_portal_session(self, user_id: str, return_url: str) -> str:
        """Create a Billing Portal session for an existing customer."""
        try:
            existing = self._subscription_row(user_id)
        except Exception as e:
            logger.error(f"Failed to read subscription: {e}")
            raise ServiceError("Failed to create billing portal session") from e

        if not existing or not existing.get("stripe_customer_id"):
            raise ServiceError("No subscription found")

        try:
            session = stripe.billing_portal.Session.create(
                customer=existing["stripe_customer_id"],
                return_url=return_url,
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create billing portal session: {e}")
            raise ServiceError(e.user_message or str(e)) from e
        except Exception as e:
            logger.error(f"Unexpected error creating billing portal session: {e}")
            raise ServiceError("Failed to create billing portal session") from e

        return session.url

    def get_user_subscription(self, user_id: str) -> Optional[Subscription]:
        try:
            row = self._subscription_row(user_id)
            return Subscription(**row) if row else None
        except Exception as e:
            logger.error(f"Get subscription error: {e}")
            return None

    def get_payment_history(self, user_id: str) -> List[PaymentRecord]:
        """Newest payments first."""
        try:
            result = (
                self.supabase.table("payment_history")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(PAYMENT_HISTORY_LIMIT)
                .execute()
            )
            return [PaymentRecord(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Get payment history error: {e}")
            return []
