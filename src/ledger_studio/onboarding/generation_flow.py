"""
Generation step of the onboarding wizard.

Creates (or reuses) the pending project for an anonymous session, asks the
image generator for cover variations, and stores the result on the pending
project so it can be claimed after sign-up.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List

from ..database.models import GeneratedImage, OnboardingData, PendingProjectStatus
from ..database.pending_projects import PendingProjectRepository
from ..errors import ServiceError
from ..generation.imagen_client import CoverArtGenerator, GenerationOptions
from .session_store import SessionLocks
from .wizard import OnboardingWizard

logger = logging.getLogger(__name__)

GENERATION_LOCKS = SessionLocks()


@dataclass
class GenerationResult:
    pending_project_id: str
    images: List[GeneratedImage]
    reused: bool = False


def options_from_brief(brief: OnboardingData, number_of_images: int = 4) -> GenerationOptions:
    return GenerationOptions(
        lyrics=brief.lyrics,
        additional_prompt=brief.additional_prompt,
        genre=brief.genre,
        style=brief.visual_style,
        mood=brief.mood,
        song_title=brief.song_title,
        artist_name=brief.artist_name,
        featured_artist=brief.featuring or None,
        number_of_images=number_of_images,
    )


async def generate_cover_art(
    repository: PendingProjectRepository,
    generator: CoverArtGenerator,
    session_id: str,
    brief: OnboardingData,
    number_of_images: int = 4,
) -> GenerationResult:
    """Produce cover variations for a session's brief.

    A completed, unclaimed pending project that already holds images is
    returned as is instead of generating again.

    Raises:
        ServiceError: if the pending project cannot be stored or generation fails
    """
    existing = await asyncio.to_thread(repository.get_pending_project_by_session, session_id)
    if existing is not None and existing.is_claimable:
        logger.info(f"Reusing pending project {existing.id} for session {session_id}")
        return GenerationResult(existing.id, list(existing.generated_images), reused=True)

    project_id = None
    try:
        pending = await asyncio.to_thread(repository.create_pending_project, session_id, brief)
        project_id = pending.id

        await asyncio.to_thread(
            repository.update_pending_project, project_id, status=PendingProjectStatus.GENERATING
        )

        images = await generator.generate_variations(options_from_brief(brief, number_of_images))

        await asyncio.to_thread(
            repository.update_pending_project,
            project_id,
            status=PendingProjectStatus.COMPLETED,
            generated_images=images,
        )

        logger.info(f"Pending project {project_id} completed with {len(images)} images")
        return GenerationResult(project_id, images)

    except ServiceError as e:
        logger.error(f"Generation failed for session {session_id}: {e.message}")
        if project_id is not None:
            try:
                await asyncio.to_thread(
                    repository.update_pending_project, project_id, status=PendingProjectStatus.FAILED
                )
            except ServiceError as mark_error:
                logger.error(f"Could not mark pending project {project_id} failed: {mark_error.message}")
        raise


async def run_generation_step(
    wizard: OnboardingWizard,
    repository: PendingProjectRepository,
    generator: CoverArtGenerator,
    locks: SessionLocks = GENERATION_LOCKS,
    retry: bool = False,
) -> OnboardingWizard:
    """Run generation once for the wizard's session.

    Skipped when images already exist, another request is generating, or an
    earlier attempt left an error. `retry` clears that error first. Failures
    are recorded on the wizard rather than raised.
    """
    async with locks.hold(wizard.session_id):
        wizard.reload()
        if retry and wizard.state.error and not wizard.state.generated_images:
            logger.info(f"Retrying generation for session {wizard.session_id}")
            wizard.set_error(None)

        if wizard.state.generated_images or wizard.state.error or wizard.state.is_generating:
            return wizard

        wizard.set_generating(True)
        try:
            result = await generate_cover_art(repository, generator, wizard.session_id, wizard.data)
        except ServiceError as e:
            wizard.set_error(e.message)
        else:
            wizard.set_generated_images(result.images)
            wizard.set_pending_project_id(result.pending_project_id)
        finally:
            wizard.set_generating(False)

    return wizard
