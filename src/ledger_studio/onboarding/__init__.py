"""Onboarding module for Ledger Cover Studio."""

from .claim import PendingProjectClaimer
from .generation_flow import GenerationResult, generate_cover_art, run_generation_step
from .session_store import SESSION_COOKIE, SessionStore
from .wizard import GENRES, MOODS, STYLES, OnboardingWizard, WizardStep, WizardValidationError

__all__ = [
    "PendingProjectClaimer",
    "GenerationResult",
    "generate_cover_art",
    "run_generation_step",
    "SESSION_COOKIE",
    "SessionStore",
    "GENRES",
    "MOODS",
    "STYLES",
    "OnboardingWizard",
    "WizardStep",
    "WizardValidationError",
]
