"""Security module for Ledger Cover Studio."""

from .auth import AuthResult, AuthService, friendly_auth_error

__all__ = ["AuthResult", "AuthService", "friendly_auth_error"]
