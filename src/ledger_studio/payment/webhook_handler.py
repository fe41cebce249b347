"""
Stripe webhook handling.

Verifies the Stripe signature, then keeps the `subscriptions`, `users` and
`payment_history` tables in step with subscription and payment events.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from supabase import Client

from ..database.models import PaymentStatus, SubscriptionStatus
from ..dependencies import get_supabase, get_webhook_secret

logger = logging.getLogger(__name__)

webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _timestamp(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, timezone.utc).isoformat()


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _plan_id(subscription: Dict[str, Any]) -> str:
    price = _first_item(subscription).get("price") or {}
    return price.get("lookup_key") or "pro"


def _period(subscription: Dict[str, Any], name: str) -> Optional[str]:
    # Newer API versions only carry the billing period on subscription items.
    value = subscription.get(name)
    if value is None:
        value = _first_item(subscription).get(name)
    return _timestamp(value)


def _subscription_for_customer(supabase: Client, customer_id: str) -> Optional[Dict[str, Any]]:
    result = (
        supabase.table("subscriptions")
        .select("id, user_id")
        .eq("stripe_customer_id", customer_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def handle_subscription_change(subscription: Dict[str, Any], supabase: Client) -> Dict[str, Any]:
    """Handle `customer.subscription.created` and `.updated`."""
    customer_id = subscription.get("customer")
    plan_id = _plan_id(subscription)
    status = subscription.get("status")

    values = {
        "stripe_subscription_id": subscription.get("id"),
        "plan_id": plan_id,
        "status": status,
        "current_period_start": _period(subscription, "current_period_start"),
        "current_period_end": _period(subscription, "current_period_end"),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end", False)),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    existing = _subscription_for_customer(supabase, customer_id)
    if existing:
        supabase.table("subscriptions").update(values).eq("stripe_customer_id", customer_id).execute()
        user_id = existing["user_id"]
    else:
        user_id = (subscription.get("metadata") or {}).get("supabase_user_id")
        if not user_id:
            logger.warning(f"No subscription row or user metadata for customer {customer_id}")
            return {"status": "ignored", "customer_id": customer_id}
        supabase.table("subscriptions").insert({
            "user_id": user_id,
            "stripe_customer_id": customer_id,
            **values,
        }).execute()

    supabase.table("users").update({
        "subscription_tier": plan_id,
        "subscription_status": status,
    }).eq("id", user_id).execute()

    logger.info(f"Subscription for user {user_id} is now {plan_id}/{status}")
    return {"status": "success", "user_id": user_id, "plan_id": plan_id}


def handle_subscription_deleted(subscription: Dict[str, Any], supabase: Client) -> Dict[str, Any]:
    customer_id = subscription.get("customer")
    existing = _subscription_for_customer(supabase, customer_id)
    if not existing:
        logger.warning(f"No subscription row for customer {customer_id}")
        return {"status": "ignored", "customer_id": customer_id}

    supabase.table("subscriptions").update({
        "status": SubscriptionStatus.CANCELED.value,
        "cancel_at_period_end": False,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("stripe_customer_id", customer_id).execute()

    supabase.table("users").update({
        "subscription_tier": "free",
        "subscription_status": SubscriptionStatus.CANCELED.value,
    }).eq("id", existing["user_id"]).execute()

    logger.info(f"Canceled subscription for user {existing['user_id']}")
    return {"status": "success", "user_id": existing["user_id"]}


def handle_payment_intent(payment_intent: Dict[str, Any], supabase: Client, succeeded: bool) -> Dict[str, Any]:
    """Record a payment; a failed one also marks the user past due."""
    customer_id = payment_intent.get("customer")
    if not customer_id:
        return {"status": "ignored"}

    existing = _subscription_for_customer(supabase, customer_id)
    if not existing:
        logger.warning(f"No subscription row for customer {customer_id}")
        return {"status": "ignored", "customer_id": customer_id}

    status = PaymentStatus.SUCCEEDED if succeeded else PaymentStatus.FAILED
    supabase.table("payment_history").insert({
        "user_id": existing["user_id"],
        "subscription_id": existing["id"],
        "stripe_payment_intent_id": payment_intent.get("id"),
        "amount": payment_intent.get("amount"),
        "currency": payment_intent.get("currency"),
        "status": status.value,
    }).execute()

    if not succeeded:
        supabase.table("users").update({
            "subscription_status": SubscriptionStatus.PAST_DUE.value,
        }).eq("id", existing["user_id"]).execute()

    logger.info(f"Recorded {status.value} payment {payment_intent.get('id')} for user {existing['user_id']}")
    return {"status": "success", "payment_status": status.value}


def handle_webhook(payload: bytes, signature: str, webhook_secret: str, supabase: Client) -> Dict[str, Any]:
    """Verify and dispatch one Stripe event.

    Raises:
        stripe.SignatureVerificationError: if the signature does not match
        ValueError: if the payload is not valid JSON
    """
    stripe.Webhook.construct_event(payload, signature, webhook_secret)
    event = json.loads(payload)
    event_type = event.get("type")
    obj = event.get("data", {}).get("object", {})

    logger.info(f"Received webhook event: {event_type}")

    if event_type in ("customer.subscription.created", "customer.subscription.updated"):
        return handle_subscription_change(obj, supabase)
    elif event_type == "customer.subscription.deleted":
        return handle_subscription_deleted(obj, supabase)
    elif event_type == "payment_intent.succeeded":
        return handle_payment_intent(obj, supabase, succeeded=True)
    elif event_type == "payment_intent.payment_failed":
        return handle_payment_intent(obj, supabase, succeeded=False)

    logger.info(f"Unhandled webhook event type: {event_type}")
    return {"status": "ignored", "event_type": event_type}


@webhook_router.post("/stripe")
async def stripe_webhook_endpoint(
    request: Request,
    webhook_secret: str = Depends(get_webhook_secret),
    supabase: Client = Depends(get_supabase),
) -> JSONResponse:
    """Receive Stripe events. Any failure is answered with 400."""
    signature = request.headers.get("stripe-signature")
    if not signature:
        return JSONResponse(status_code=400, content={"error": "No signature"})

    payload = await request.body()
    try:
        result = await asyncio.to_thread(handle_webhook, payload, signature, webhook_secret, supabase)
    except Exception as e:
        logger.error(f"Webhook error: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})

    logger.info(f"Webhook processed: {result}")
    return JSONResponse(status_code=200, content={"received": True})
