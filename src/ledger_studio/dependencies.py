"""
FastAPI dependency providers.

Every external service reaches the routes through one of these functions so
tests can swap them with `app.dependency_overrides`.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from .config import Settings, get_settings
from .database.client import get_supabase_client
from .database.pending_projects import PendingProjectRepository
from .database.projects import ProjectRepository
from .generation.imagen_client import CoverArtGenerator
from .onboarding.claim import PendingProjectClaimer
from .onboarding.session_store import SESSION_COOKIE, SessionStore
from .payment.stripe_integration import StripeBilling
from .security.auth import AuthService

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_app_settings() -> Settings:
    return get_settings()


def get_supabase() -> Client:
    return get_supabase_client()


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    return SessionStore()


@lru_cache(maxsize=1)
def _generator(api_key: str, model: str) -> CoverArtGenerator:
    return CoverArtGenerator(api_key, model)


def get_generator(settings: Settings = Depends(get_app_settings)) -> CoverArtGenerator:
    return _generator(settings.google_ai_api_key, settings.imagen_model)


def get_pending_repository(supabase: Client = Depends(get_supabase)) -> PendingProjectRepository:
    return PendingProjectRepository(supabase)


@lru_cache(maxsize=1)
def get_claimer() -> PendingProjectClaimer:
    """Process-wide claimer so its per-session locks are shared."""
    client = get_supabase_client()
    return PendingProjectClaimer(PendingProjectRepository(client), ProjectRepository(client))


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_billing(
    settings: Settings = Depends(get_app_settings),
    supabase: Client = Depends(get_supabase),
) -> StripeBilling:
    return StripeBilling(supabase, settings.stripe_secret_key, settings.price_ids)


def get_webhook_secret(settings: Settings = Depends(get_app_settings)) -> str:
    return settings.stripe_webhook_secret


def get_session_id(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> str:
    """Anonymous session id from the cookie, starting a new session when needed."""
    current = request.cookies.get(SESSION_COOKIE)
    session_id = store.get_or_create_session_id(current)
    if session_id != current:
        response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    return session_id


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Get current authenticated user from the bearer token."""
    user = await asyncio.to_thread(auth.verify_token, credentials.credentials)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token or user not found")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    if credentials is None:
        return None
    return await asyncio.to_thread(auth.verify_token, credentials.credentials)
