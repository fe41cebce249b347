"""Database module for Ledger Cover Studio."""

from .models import (
    GeneratedImage,
    OnboardingData,
    PendingProject,
    PendingProjectStatus,
    Project,
    ProjectStatus,
    ProjectType,
    Subscription,
    PaymentRecord,
    UserProfile,
)
from .pending_projects import PendingProjectRepository
from .projects import ProjectRepository

__all__ = [
    "GeneratedImage",
    "OnboardingData",
    "PendingProject",
    "PendingProjectStatus",
    "Project",
    "ProjectStatus",
    "ProjectType",
    "Subscription",
    "PaymentRecord",
    "UserProfile",
    "PendingProjectRepository",
    "ProjectRepository",
]
