"""
Main FastAPI Application for Ledger Cover Studio

This module provides the central FastAPI application that integrates all components:
- Onboarding wizard and cover generation
- Authentication endpoints
- Billing and payment webhooks
- Health checks and the landing/dashboard view router
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from ..config import DEFAULT_ALLOWED_ORIGINS, ConfigurationError, Settings, get_settings
from ..dependencies import get_app_settings, get_optional_user
from ..errors import ServiceError
from ..onboarding.routes import onboarding_router
from ..payment.billing_endpoints import billing_router
from ..payment.webhook_handler import webhook_router
from .auth_endpoints import auth_router
from .rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Ledger Cover Studio API"
VERSION = "1.0.0"


def resolve_view(user: Optional[Dict[str, Any]], show_landing: bool) -> str:
    """Which top-level view a visitor sees."""
    if user or not show_landing:
        return "dashboard"
    return "landing"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.
    """
    logger.info(f"Starting {SERVICE_NAME}...")

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.critical(f"Cannot start: {e}")
        raise

    logger.info(f"{SERVICE_NAME} started in {settings.environment} mode")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}...")


def _allowed_origins():
    try:
        return get_settings().allowed_origins
    except ConfigurationError:
        # The lifespan reports the missing configuration.
        return list(DEFAULT_ALLOWED_ORIGINS)


app = FastAPI(
    title=SERVICE_NAME,
    description="""
    Backend for musicians creating cover art:

    - **Onboarding**: guided brief, Imagen cover generation, pre-signup pending projects
    - **Authentication**: Supabase sign-up and sign-in with pending project claim
    - **Billing**: Stripe Checkout, Billing Portal and subscription webhooks
    """,
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-Client-Info", "Apikey", "stripe-signature"],
)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "type": "http_exception",
            }
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    logger.error(f"Service error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=502,
        content={
            "error": {
                "code": 502,
                "message": exc.message,
                "type": "service_error",
            }
        },
    )


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log requests and add timing information."""
    start_time = time.time()
    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"Response: {response.status_code} - {process_time:.4f}s")
    return response


@app.get("/health", tags=["health"])
async def health_check(settings: Settings = Depends(get_app_settings)):
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "environment": settings.environment,
    }


@app.get("/app/view", tags=["root"])
async def app_view(
    show_landing: bool = True,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """Landing page for anonymous visitors until they choose to get started."""
    return {"view": resolve_view(user, show_landing)}


app.include_router(auth_router)
app.include_router(onboarding_router)
app.include_router(billing_router)
app.include_router(webhook_router)


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "ledger_studio.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )
