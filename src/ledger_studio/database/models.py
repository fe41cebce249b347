"""
Database models for Ledger Cover Studio.

This module defines Pydantic models that correspond to Supabase database tables
for user profiles, projects, pending projects, subscriptions and payments, plus
the creative brief collected by the onboarding wizard.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from enum import Enum


def current_year() -> str:
    return str(datetime.now().year)


class ProjectType(str, Enum):
    """Project type enumeration."""
    COVER = "cover"
    VISUALIZER = "visualizer"


class ProjectStatus(str, Enum):
    """Project status enumeration."""
    DRAFT = "draft"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PendingProjectStatus(str, Enum):
    """Pending project status enumeration."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration (mirrors Stripe)."""
    ACTIVE = "active"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAST_DUE = "past_due"
    TRIALING = "trialing"
    UNPAID = "unpaid"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GeneratedImage(BaseModel):
    """One generated (or placeholder) cover image."""

    url: str = Field(..., description="Image data URL or public URL")
    prompt: Optional[str] = Field(None, description="Prompt the image was requested with")


class OnboardingData(BaseModel):
    """Creative brief collected by the onboarding wizard."""

    project_type: str = Field(default="single", description="Only singles are supported")
    song_title: str = Field(default="", description="Song title")
    artist_name: str = Field(default="", description="Artist name")
    featuring: str = Field(default="", description="Featured artist")
    producer: str = Field(default="", description="Producer credit")
    release_year: str = Field(default_factory=current_year, description="Release year")
    genre: str = Field(default="Hip-Hop", description="Genre")
    mood: str = Field(default="Energetic", description="Mood")
    lyrics: str = Field(default="", description="Song lyrics")
    visual_style: str = Field(default="Cinematic", description="Visual style")
    additional_prompt: str = Field(default="", description="Free-form extra requests")
    is_explicit: bool = Field(default=False, description="Explicit content flag")


class UserProfile(BaseModel):
    """User profile stored in the `users` table."""

    id: str = Field(..., description="Supabase user ID")
    email: str = Field(..., description="User email address")
    artist_name: str = Field(default="New Artist", description="Artist name")
    primary_genre: str = Field(default="Pop", description="Primary genre")
    brand_colors: List[str] = Field(
        default_factory=lambda: ["#8B5CF6", "#06B6D4", "#F59E0B"],
        description="Brand colour palette",
    )
    explicit_content: bool = Field(default=False, description="Explicit content flag")
    avatar_url: Optional[str] = Field(None, description="User avatar URL")
    subscription_tier: str = Field(default="free", description="Current plan id")
    subscription_status: str = Field(default="active", description="Current subscription status")
    created_at: Optional[datetime] = Field(None, description="Account creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class Project(BaseModel):
    """Project stored in the `projects` table."""

    id: str = Field(..., description="Project ID")
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field(..., description="Project title")
    type: ProjectType = Field(default=ProjectType.COVER, description="Project type")
    status: ProjectStatus = Field(default=ProjectStatus.DRAFT, description="Project status")
    thumbnail_url: Optional[str] = Field(None, description="Thumbnail URL")
    settings: Dict[str, Any] = Field(default_factory=dict, description="Brief and generated images")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class PendingProject(BaseModel):
    """Anonymous pre-signup project stored in the `pending_projects` table."""

    id: str = Field(..., description="Pending project ID")
    session_id: str = Field(..., description="Anonymous session identifier")
    project_type: str = Field(default="single", description="Project type")
    song_title: str = Field(default="", description="Song title")
    artist_name: str = Field(default="", description="Artist name")
    album_title: Optional[str] = Field(None, description="Album title (unused for singles)")
    featuring: Optional[str] = Field(None, description="Featured artist")
    producer: Optional[str] = Field(None, description="Producer credit")
    release_year: Optional[str] = Field(None, description="Release year")
    genre: str = Field(default="", description="Genre")
    mood: str = Field(default="", description="Mood")
    lyrics: str = Field(default="", description="Lyrics")
    visual_style: str = Field(default="", description="Visual style")
    additional_prompt: Optional[str] = Field(None, description="Extra requests")
    tracklist: Optional[List[Dict[str, Any]]] = Field(None, description="Tracklist (unused for singles)")
    generated_images: List[GeneratedImage] = Field(default_factory=list, description="Generated images")
    status: PendingProjectStatus = Field(default=PendingProjectStatus.PENDING, description="Generation status")
    is_explicit: bool = Field(default=False, description="Explicit content flag")
    claimed_by_user_id: Optional[str] = Field(None, description="User who claimed the project")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @field_validator("generated_images", mode="before")
    @classmethod
    def default_images(cls, v):
        return v or []

    @property
    def is_claimable(self) -> bool:
        """Completed, unclaimed and holding at least one image."""
        return (
            self.status == PendingProjectStatus.COMPLETED
            and bool(self.generated_images)
            and self.claimed_by_user_id is None
        )

    def to_onboarding_data(self) -> OnboardingData:
        """Rebuild the wizard brief from the stored record."""
        return OnboardingData(
            project_type=self.project_type,
            song_title=self.song_title,
            artist_name=self.artist_name,
            featuring=self.featuring or "",
            producer=self.producer or "",
            release_year=self.release_year or current_year(),
            genre=self.genre,
            mood=self.mood,
            lyrics=self.lyrics,
            visual_style=self.visual_style,
            additional_prompt=self.additional_prompt or "",
            is_explicit=self.is_explicit,
        )


class Subscription(BaseModel):
    """Subscription row kept in sync by the Stripe webhook."""

    id: str = Field(..., description="Row ID")
    user_id: str = Field(..., description="Supabase user ID")
    stripe_customer_id: str = Field(..., description="Stripe customer ID")
    stripe_subscription_id: Optional[str] = Field(None, description="Stripe subscription ID")
    plan_id: str = Field(default="free", description="Plan id")
    status: str = Field(default=SubscriptionStatus.INCOMPLETE.value, description="Subscription status")
    current_period_start: Optional[datetime] = Field(None, description="Current billing period start")
    current_period_end: Optional[datetime] = Field(None, description="Current billing period end")
    cancel_at_period_end: bool = Field(default=False, description="Whether to cancel at period end")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class PaymentRecord(BaseModel):
    """Payment history row written by the Stripe webhook."""

    id: str = Field(..., description="Row ID")
    user_id: str = Field(..., description="Supabase user ID")
    subscription_id: Optional[str] = Field(None, description="Related subscriptions row ID")
    stripe_payment_intent_id: str = Field(..., description="Stripe payment intent ID")
    amount: int = Field(..., description="Amount in minor currency units")
    currency: str = Field(default="usd", description="Currency code")
    status: PaymentStatus = Field(..., description="Payment status")
    created_at: Optional[datetime] = Field(None, description="Payment timestamp")
