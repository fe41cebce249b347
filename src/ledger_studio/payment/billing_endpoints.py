"""
Billing API endpoints.

Checkout and portal handlers answer every failure, authentication included,
with `400 {"error": message}`.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..database.models import PaymentRecord, Subscription
from ..dependencies import get_auth_service, get_billing, get_current_user, optional_security
from ..errors import ServiceError
from ..security.auth import AuthService
from .plans import SUBSCRIPTION_PLANS, SubscriptionPlan
from .stripe_integration import StripeBilling

logger = logging.getLogger(__name__)

billing_router = APIRouter(prefix="/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    plan_id: str = Field(..., alias="planId")
    success_url: str = Field(..., alias="successUrl")
    cancel_url: str = Field(..., alias="cancelUrl")


class PortalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    return_url: str = Field(..., alias="returnUrl")


class BillingError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


async def _authorized_user_id(
    credentials: Optional[HTTPAuthorizationCredentials],
    auth: AuthService,
) -> str:
    if credentials is None:
        raise BillingError("No authorization header")
    user = await asyncio.to_thread(auth.verify_token, credentials.credentials)
    if not user:
        raise BillingError("Unauthorized")
    return user["id"]


async def _parse(request: Request, model):
    try:
        return model(**await request.json())
    except (ValueError, TypeError, ValidationError) as e:
        raise BillingError(f"Invalid request body: {e}") from e


@billing_router.post("/checkout-session")
async def create_checkout_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    auth: AuthService = Depends(get_auth_service),
    billing: StripeBilling = Depends(get_billing),
) -> JSONResponse:
    """Start a subscription checkout for the signed-in user."""
    try:
        user_id = await _authorized_user_id(credentials, auth)
        body = await _parse(request, CheckoutRequest)
        if body.user_id != user_id:
            raise BillingError("User ID mismatch")

        session_url = await asyncio.to_thread(
            billing.create_checkout_session,
            user_id,
            body.plan_id,
            body.success_url,
            body.cancel_url,
        )
    except (BillingError, ServiceError) as e:
        logger.error(f"Create checkout error: {e.message}")
        return _error(e.message)

    return JSONResponse(status_code=200, content={"sessionUrl": session_url})


@billing_router.post("/portal-session")
async def create_portal_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    auth: AuthService = Depends(get_auth_service),
    billing: StripeBilling = Depends(get_billing),
) -> JSONResponse:
    """Open the Stripe billing portal for the signed-in user."""
    try:
        user_id = await _authorized_user_id(credentials, auth)
        body = await _parse(request, PortalRequest)
        if body.user_id != user_id:
            raise BillingError("User ID mismatch")

        portal_url = await asyncio.to_thread(billing.create_portal_session, user_id, body.return_url)
    except (BillingError, ServiceError) as e:
        logger.error(f"Create billing portal error: {e.message}")
        return _error(e.message)

    return JSONResponse(status_code=200, content={"portalUrl": portal_url})


@billing_router.get("/plans", response_model=List[SubscriptionPlan])
async def list_plans() -> List[SubscriptionPlan]:
    return list(SUBSCRIPTION_PLANS.values())


@billing_router.get("/subscription", response_model=Optional[Subscription])
async def get_subscription(
    current_user: Dict[str, Any] = Depends(get_current_user),
    billing: StripeBilling = Depends(get_billing),
) -> Optional[Subscription]:
    return await asyncio.to_thread(billing.get_user_subscription, current_user["id"])


@billing_router.get("/payments", response_model=List[PaymentRecord])
async def get_payments(
    current_user: Dict[str, Any] = Depends(get_current_user),
    billing: StripeBilling = Depends(get_billing),
) -> List[PaymentRecord]:
    """Newest 20 payments of the signed-in user."""
    return await asyncio.to_thread(billing.get_payment_history, current_user["id"])
