"""
Pending project storage.

Pending projects hold a creative brief and its generated images before the
visitor has an account. They are keyed by the anonymous session id and later
claimed by the user who signs up from that session.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from ..errors import ServiceError
from .models import GeneratedImage, OnboardingData, PendingProject, PendingProjectStatus

logger = logging.getLogger(__name__)

TABLE = "pending_projects"


class PendingProjectRepository:
    """Thin wrapper over the `pending_projects` table."""

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    def create_pending_project(self, session_id: str, data: OnboardingData) -> PendingProject:
        """Insert a pending project built from the wizard brief."""
        try:
            row = {
                "session_id": session_id,
                "project_type": data.project_type,
                "song_title": data.song_title,
                "artist_name": data.artist_name,
                "album_title": None,
                "featuring": data.featuring or None,
                "producer": data.producer or None,
                "release_year": data.release_year or None,
                "genre": data.genre,
                "mood": data.mood,
                "lyrics": data.lyrics,
                "visual_style": data.visual_style,
                "additional_prompt": data.additional_prompt or None,
                "tracklist": None,
                "generated_images": [],
                "status": PendingProjectStatus.PENDING.value,
                "is_explicit": data.is_explicit,
            }
            result = self.supabase.table(TABLE).insert(row).execute()
            if not result.data:
                raise ValueError("insert returned no rows")

            project = PendingProject(**result.data[0])
            logger.info(f"Created pending project {project.id} for session {session_id}")
            return project

        except Exception as e:
            logger.error(f"Create pending project error: {e}")
            raise ServiceError("Failed to create pending project") from e

    def update_pending_project(
        self,
        project_id: str,
        status: Optional[PendingProjectStatus] = None,
        generated_images: Optional[List[GeneratedImage]] = None,
        **fields: Any,
    ) -> PendingProject:
        """Update status, images or brief fields of a pending project."""
        updates: Dict[str, Any] = dict(fields)
        if status is not None:
            updates["status"] = status.value
        if generated_images is not None:
            updates["generated_images"] = [image.model_dump() for image in generated_images]
        updates["updated_at"] = datetime.now(timezone.utc).isoformat()

        try:
            result = self.supabase.table(TABLE).update(updates).eq("id", project_id).execute()
            if not result.data:
                raise ValueError(f"pending project {project_id} not found")
            return PendingProject(**result.data[0])

        except Exception as e:
            logger.error(f"Update pending project error: {e}")
            raise ServiceError("Failed to update pending project") from e

    def get_pending_project_by_session(self, session_id: str) -> Optional[PendingProject]:
        """Newest unclaimed pending project for a session, or None."""
        try:
            result = (
                self.supabase.table(TABLE)
                .select("*")
                .eq("session_id", session_id)
                .is_("claimed_by_user_id", "null")
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            return PendingProject(**result.data[0]) if result.data else None

        except Exception as e:
            logger.error(f"Get pending project error: {e}")
            return None

    def get_pending_project(self, project_id: str) -> Optional[PendingProject]:
        try:
            result = self.supabase.table(TABLE).select("*").eq("id", project_id).limit(1).execute()
            return PendingProject(**result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"Get pending project error: {e}")
            return None

    def claim_pending_project(self, project_id: str, user_id: str) -> bool:
        """Mark a pending project as claimed by `user_id`.

        The update only matches rows that are still unclaimed, so of two
        concurrent claims exactly one sees a changed row.

        Returns:
            True if this call claimed the project
        """
        try:
            result = (
                self.supabase.table(TABLE)
                .update({
                    "claimed_by_user_id": user_id,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })
                .eq("id", project_id)
                .is_("claimed_by_user_id", "null")
                .execute()
            )
            return bool(result.data)

        except Exception as e:
            logger.error(f"Claim pending project error: {e}")
            raise ServiceError("Failed to claim pending project") from e

    def release_claim(self, project_id: str, user_id: str) -> None:
        """Undo a claim made by `user_id`."""
        try:
            (
                self.supabase.table(TABLE)
                .update({"claimed_by_user_id": None})
                .eq("id", project_id)
                .eq("claimed_by_user_id", user_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Release pending project claim error: {e}")
            raise ServiceError("Failed to release pending project") from e

    def delete_pending_project(self, project_id: str) -> None:
        try:
            self.supabase.table(TABLE).delete().eq("id", project_id).execute()
        except Exception as e:
            logger.error(f"Delete pending project error: {e}")
            raise ServiceError("Failed to delete pending project") from e
