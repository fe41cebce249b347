"""Project storage used when a pending project is claimed."""

import logging
from typing import Any, Dict, Optional

from supabase import Client

from ..errors import ServiceError
from .models import Project, ProjectStatus, ProjectType

logger = logging.getLogger(__name__)


class ProjectRepository:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    def create_project(
        self,
        user_id: str,
        title: str,
        type: ProjectType = ProjectType.COVER,
        status: ProjectStatus = ProjectStatus.DRAFT,
        thumbnail_url: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> Project:
        """Insert a project row owned by `user_id`."""
        try:
            row = {
                "user_id": user_id,
                "title": title,
                "type": type.value,
                "status": status.value,
                "thumbnail_url": thumbnail_url,
                "settings": settings or {},
            }
            result = self.supabase.table("projects").insert(row).execute()
            if not result.data:
                raise ValueError("insert returned no rows")

            project = Project(**result.data[0])
            logger.info(f"Created project {project.id} for user {user_id}")
            return project

        except Exception as e:
            logger.error(f"Create project error: {e}")
            raise ServiceError("Failed to create project") from e
