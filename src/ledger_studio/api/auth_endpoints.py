"""
User authentication API endpoints for Ledger Cover Studio.

Sign-up and sign-in also claim the pending project of the visitor's anonymous
session, so cover art generated before the account existed lands in the new
account. Sign-out clears the anonymous session.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr, Field, field_validator

from ..dependencies import (
    get_auth_service,
    get_claimer,
    get_current_user,
    get_session_store,
)
from ..errors import ServiceError
from ..onboarding.claim import PendingProjectClaimer
from ..onboarding.session_store import SESSION_COOKIE, SessionStore
from ..security.auth import AuthResult, AuthService
from .rate_limit import limiter

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["authentication"])


class SignUpRequest(BaseModel):
    """User signup request model."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password (minimum 6 characters)")
    artist_name: Optional[str] = Field(None, max_length=100, description="Artist name")
    primary_genre: Optional[str] = Field(None, description="Primary genre")
    explicit_content: Optional[bool] = Field(None, description="Explicit content flag")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return v


class SignInRequest(BaseModel):
    """User signin request model."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class AuthResponse(BaseModel):
    """Authentication response model."""
    access_token: Optional[str] = Field(None, description="JWT access token, absent until email is confirmed")
    refresh_token: Optional[str] = Field(None, description="JWT refresh token")
    expires_in: Optional[int] = Field(None, description="Token expiration time in seconds")
    user: Dict[str, Any] = Field(..., description="User information")
    claimed_project: Optional[Dict[str, Any]] = Field(None, description="Project claimed from the session")


class MessageResponse(BaseModel):
    """Generic message response model."""
    message: str = Field(..., description="Response message")
    success: bool = Field(default=True, description="Operation success status")


async def _claim_session_project(
    request: Request,
    claimer: PendingProjectClaimer,
    user_id: str,
) -> Optional[Dict[str, Any]]:
    """Claim the session's pending project. A failed claim never fails the login."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        return None
    try:
        project = await claimer.claim_for_user(session_id, user_id)
    except ServiceError as e:
        logger.error(f"Claim after authentication failed for user {user_id}: {e.message}")
        return None
    return project.model_dump(mode="json") if project else None


def _auth_response(result: AuthResult, claimed: Optional[Dict[str, Any]]) -> AuthResponse:
    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
        user={
            "id": result.user_id,
            "email": result.email,
            "profile": result.profile.model_dump(mode="json") if result.profile else None,
        },
        claimed_project=claimed,
    )


@auth_router.post("/signup", response_model=AuthResponse)
@limiter.limit("5/minute")
async def signup(
    request: Request,
    signup_data: SignUpRequest,
    auth: AuthService = Depends(get_auth_service),
    claimer: PendingProjectClaimer = Depends(get_claimer),
    store: SessionStore = Depends(get_session_store),
) -> AuthResponse:
    """
    Register a new user account.

    Profile values not given in the request are taken from the onboarding
    brief of the current session.
    """
    artist_data = signup_data.model_dump(include={"artist_name", "primary_genre", "explicit_content"}, exclude_none=True)

    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id and store.has_session(session_id):
        brief = store.load_onboarding_data(session_id)
        artist_data.setdefault("artist_name", brief.artist_name)
        artist_data.setdefault("primary_genre", brief.genre)
        artist_data.setdefault("explicit_content", brief.is_explicit)

    try:
        result = await asyncio.to_thread(auth.sign_up, signup_data.email, signup_data.password, artist_data)
    except ServiceError as e:
        raise HTTPException(status_code=400, detail=e.message)

    claimed = await _claim_session_project(request, claimer, result.user_id)
    return _auth_response(result, claimed)


@auth_router.post("/signin", response_model=AuthResponse)
@limiter.limit("10/minute")
async def signin(
    request: Request,
    signin_data: SignInRequest,
    auth: AuthService = Depends(get_auth_service),
    claimer: PendingProjectClaimer = Depends(get_claimer),
) -> AuthResponse:
    """Authenticate with email and password and return JWT tokens."""
    try:
        result = await asyncio.to_thread(auth.sign_in, signin_data.email, signin_data.password)
    except ServiceError as e:
        raise HTTPException(status_code=401, detail=e.message)

    claimed = await _claim_session_project(request, claimer, result.user_id)
    return _auth_response(result, claimed)


@auth_router.post("/signout", response_model=MessageResponse)
async def signout(
    request: Request,
    response: Response,
    current_user: Dict[str, Any] = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    store: SessionStore = Depends(get_session_store),
) -> MessageResponse:
    """Sign out and drop the anonymous session data."""
    try:
        await asyncio.to_thread(auth.sign_out)
    except ServiceError as e:
        raise HTTPException(status_code=500, detail=e.message)

    store.clear(request.cookies.get(SESSION_COOKIE))
    response.delete_cookie(SESSION_COOKIE)

    logger.info(f"User signed out: {current_user['email']}")
    return MessageResponse(message="Successfully signed out", success=True)


@auth_router.get("/verify-token")
async def verify_token(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Check that the bearer token is valid."""
    return {"valid": True, "user_id": current_user["id"], "email": current_user["email"]}


@auth_router.get("/profile")
async def get_profile(
    current_user: Dict[str, Any] = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    profile = await asyncio.to_thread(auth.get_user_profile, current_user["id"])
    if not profile:
        raise HTTPException(status_code=404, detail="User profile not found")
    return profile.model_dump(mode="json")
