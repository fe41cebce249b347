"""
Supabase authentication for Ledger Cover Studio.

Wraps Supabase auth (sign-up, sign-in, sign-out, token verification) and the
`users` profile table. Supabase error texts are mapped to messages fit for
the user.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from supabase import Client

from ..database.models import UserProfile
from ..errors import ServiceError

logger = logging.getLogger(__name__)

AUTH_ERROR_MESSAGES = {
    "Invalid login credentials": "Invalid email or password",
    "User already registered": "An account with this email already exists",
    "Email not confirmed": "Please verify your email address",
}

DEFAULT_PROFILE = {
    "artist_name": "New Artist",
    "primary_genre": "Pop",
    "brand_colors": ["#8B5CF6", "#06B6D4", "#F59E0B"],
    "explicit_content": False,
    "subscription_tier": "free",
    "subscription_status": "active",
}


def friendly_auth_error(error: Exception) -> str:
    message = getattr(error, "message", None) or str(error)
    for known, friendly in AUTH_ERROR_MESSAGES.items():
        if known in message:
            return friendly
    return message or "Authentication failed"


@dataclass
class AuthResult:
    """Outcome of a successful sign-up or sign-in."""
    user_id: str
    email: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    profile: Optional[UserProfile] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _auth_result(response, profile: Optional[UserProfile]) -> AuthResult:
    session = response.session
    return AuthResult(
        user_id=response.user.id,
        email=response.user.email,
        access_token=session.access_token if session else None,
        refresh_token=session.refresh_token if session else None,
        expires_in=session.expires_in if session else None,
        profile=profile,
        metadata=response.user.user_metadata or {},
    )


class AuthService:
    """Blocking Supabase auth calls. Run them through asyncio.to_thread."""

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    def sign_up(self, email: str, password: str, artist_data: Optional[Dict[str, Any]] = None) -> AuthResult:
        """Create an account and its `users` profile.

        Args:
            email: Account email
            password: Account password
            artist_data: Optional profile values (artist_name, primary_genre,
                explicit_content) overriding the defaults

        Raises:
            ServiceError: with a user-facing message
        """
        artist_data = {key: value for key, value in (artist_data or {}).items() if value not in (None, "")}

        try:
            response = self.supabase.auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "data": {"artist_name": artist_data.get("artist_name")},
                },
            })
        except Exception as e:
            logger.error(f"Sign up error: {e}")
            raise ServiceError(friendly_auth_error(e)) from e

        if not response.user:
            raise ServiceError("Failed to create user account")

        profile = self.create_user_profile(response.user.id, email, artist_data)
        logger.info(f"New user registered: {email}")
        return _auth_result(response, profile)

    def create_user_profile(self, user_id: str, email: str, artist_data: Optional[Dict[str, Any]] = None) -> UserProfile:
        row = {"id": user_id, "email": email, **DEFAULT_PROFILE}
        for key in ("artist_name", "primary_genre", "explicit_content"):
            if artist_data and key in artist_data:
                row[key] = artist_data[key]

        try:
            result = self.supabase.table("users").insert(row).execute()
        except Exception as e:
            logger.error(f"Create user profile error: {e}")
            raise ServiceError("Failed to create user profile") from e

        return UserProfile(**(result.data[0] if result.data else row))

    def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            response = self.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            logger.error(f"Sign in error: {e}")
            raise ServiceError(friendly_auth_error(e)) from e

        if not response.user or not response.session:
            raise ServiceError("Invalid email or password")

        logger.info(f"User signed in: {email}")
        return _auth_result(response, self.get_user_profile(response.user.id))

    def sign_out(self) -> None:
        try:
            self.supabase.auth.sign_out()
        except Exception as e:
            logger.error(f"Sign out error: {e}")
            raise ServiceError("Failed to sign out") from e

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            result = self.supabase.table("users").select("*").eq("id", user_id).limit(1).execute()
            return UserProfile(**result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"Error fetching user profile: {e}")
            return None

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """User behind a bearer token, or None when the token is not valid."""
        try:
            response = self.supabase.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            return None

        if not response or not response.user:
            return None

        return {
            "id": response.user.id,
            "email": response.user.email,
            "user_metadata": response.user.user_metadata or {},
        }
