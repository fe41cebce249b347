"""Subscription plan catalogue and plan helpers."""

from typing import Dict, List, Optional

from pydantic import BaseModel

UNLIMITED = -1

ACTIVE_STATUSES = ("active", "trialing")

STATUS_LABELS = {
    "active": "Active",
    "trialing": "Trial",
    "past_due": "Past Due",
    "canceled": "Canceled",
    "unpaid": "Unpaid",
    "incomplete": "Incomplete",
    "incomplete_expired": "Expired",
}

# Action name to the plan limit it counts against.
ACTION_LIMITS = {
    "createProject": "projects",
    "export": "exports",
    "aiGeneration": "aiGenerations",
}


class SubscriptionPlan(BaseModel):
    """Subscription plan configuration."""
    id: str
    name: str
    price: int
    interval: str = "month"
    features: List[str]
    limits: Dict[str, int]


SUBSCRIPTION_PLANS: Dict[str, SubscriptionPlan] = {
    "free": SubscriptionPlan(
        id="free",
        name="Free",
        price=0,
        features=[
            "3 AI cover generations per month",
            "2 projects max",
            "Basic export options",
            "Community support",
        ],
        limits={"projects": 2, "exports": 10, "aiGenerations": 3},
    ),
    "pro": SubscriptionPlan(
        id="pro",
        name="Pro",
        price=19,
        features=[
            "Unlimited AI generations",
            "Unlimited projects",
            "HD exports",
            "Priority support",
            "Advanced visualizer features",
        ],
        limits={"projects": UNLIMITED, "exports": UNLIMITED, "aiGenerations": UNLIMITED},
    ),
    "premium": SubscriptionPlan(
        id="premium",
        name="Premium",
        price=49,
        features=[
            "Everything in Pro",
            "Custom branding",
            "API access",
            "White-label exports",
            "Dedicated support",
            "Early access to features",
        ],
        limits={"projects": UNLIMITED, "exports": UNLIMITED, "aiGenerations": UNLIMITED},
    ),
}


def get_plan_details(plan_id: str) -> Optional[SubscriptionPlan]:
    return SUBSCRIPTION_PLANS.get(plan_id)


def can_perform_action(current_plan: str, action: str, current_usage: Dict[str, int]) -> bool:
    """Whether `current_usage` leaves room for one more `action` on the plan.

    Unknown plans and unknown actions are refused.
    """
    plan = SUBSCRIPTION_PLANS.get(current_plan)
    limit_name = ACTION_LIMITS.get(action)
    if plan is None or limit_name is None:
        return False

    limit = plan.limits[limit_name]
    return limit == UNLIMITED or current_usage.get(limit_name, 0) < limit


def is_subscription_active(status: str) -> bool:
    return status in ACTIVE_STATUSES


def get_subscription_status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def format_price(amount: int, currency: str = "USD") -> str:
    """Format an amount in minor units, e.g. 1900 -> "$19.00"."""
    value = amount / 100
    if currency.upper() == "USD":
        return f"${value:,.2f}"
    return f"{value:,.2f} {currency.upper()}"
