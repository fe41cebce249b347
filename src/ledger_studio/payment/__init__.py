"""
Payment module for Ledger Cover Studio.

Routers live in `billing_endpoints` and `webhook_handler` and are mounted by
the API app.
"""

from .plans import (
    SUBSCRIPTION_PLANS,
    SubscriptionPlan,
    can_perform_action,
    format_price,
    get_plan_details,
    get_subscription_status_label,
    is_subscription_active,
)
from .stripe_integration import StripeBilling

__all__ = [
    "SUBSCRIPTION_PLANS",
    "SubscriptionPlan",
    "can_perform_action",
    "format_price",
    "get_plan_details",
    "get_subscription_status_label",
    "is_subscription_active",
    "StripeBilling",
]
