"""
Claiming a pending project after authentication.

The newest completed pending project of the visitor's anonymous session is
converted into a regular project owned by the signed-in user.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..database.models import PendingProject, Project, ProjectStatus, ProjectType
from ..database.pending_projects import PendingProjectRepository
from ..database.projects import ProjectRepository
from ..errors import ServiceError
from .session_store import SessionLocks

logger = logging.getLogger(__name__)


def project_settings(pending: PendingProject) -> Dict:
    """Settings blob stored on the claimed project."""
    return {
        "projectType": pending.project_type,
        "artistName": pending.artist_name,
        "genre": pending.genre,
        "mood": pending.mood,
        "lyrics": pending.lyrics,
        "visualStyle": pending.visual_style,
        "additionalPrompt": pending.additional_prompt,
        "generatedImages": [image.model_dump() for image in pending.generated_images],
    }


class PendingProjectClaimer:
    """Serializes claims per session and performs them atomically."""

    def __init__(self, pending_repository: PendingProjectRepository, project_repository: ProjectRepository):
        self.pending_repository = pending_repository
        self.project_repository = project_repository
        self.locks = SessionLocks()

    async def claim_for_user(self, session_id: Optional[str], user_id: str) -> Optional[Project]:
        """Claim the session's pending project for `user_id`.

        Returns:
            The created project, or None when there was nothing to claim or
            another caller claimed it first

        Raises:
            ServiceError: if the project could not be created
        """
        if not session_id:
            return None

        async with self.locks.hold(session_id):
            pending = await asyncio.to_thread(
                self.pending_repository.get_pending_project_by_session, session_id
            )
            if pending is None or not pending.is_claimable:
                logger.info(f"No claimable pending project for session {session_id}")
                return None

            claimed = await asyncio.to_thread(
                self.pending_repository.claim_pending_project, pending.id, user_id
            )
            if not claimed:
                logger.info(f"Pending project {pending.id} was already claimed")
                return None

            try:
                project = await asyncio.to_thread(
                    self.project_repository.create_project,
                    user_id,
                    pending.song_title or "Untitled Project",
                    ProjectType.COVER,
                    ProjectStatus.COMPLETED,
                    pending.generated_images[0].url,
                    project_settings(pending),
                )
            except ServiceError:
                logger.error(f"Releasing claim on pending project {pending.id}")
                try:
                    await asyncio.to_thread(self.pending_repository.release_claim, pending.id, user_id)
                except ServiceError as release_error:
                    logger.error(f"Could not release claim on pending project {pending.id}: {release_error.message}")
                raise

        logger.info(f"User {user_id} claimed pending project {pending.id} as project {project.id}")
        return project
