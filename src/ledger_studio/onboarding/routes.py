"""
Onboarding wizard API endpoints.

The wizard is bound to the anonymous session named by the `ledger_session_id`
cookie. Every endpoint returns the wizard snapshot after the operation.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..api.rate_limit import limiter
from ..database.pending_projects import PendingProjectRepository
from ..dependencies import (
    get_claimer,
    get_current_user,
    get_generator,
    get_pending_repository,
    get_session_id,
    get_session_store,
)
from ..generation.imagen_client import CoverArtGenerator
from .claim import PendingProjectClaimer
from .generation_flow import run_generation_step
from .session_store import SessionStore
from .wizard import GENRES, MOODS, STYLES, OnboardingWizard, WizardStep

logger = logging.getLogger(__name__)

onboarding_router = APIRouter(prefix="/onboarding", tags=["onboarding"])


class GoToStepRequest(BaseModel):
    step: int = Field(..., description="Target step number")


class UpdateDataRequest(BaseModel):
    values: Dict[str, Any] = Field(..., description="Brief fields to merge")


class SubmitStepRequest(BaseModel):
    step: int = Field(..., description="Step being submitted")
    values: Dict[str, Any] = Field(default_factory=dict, description="Fields of that step")


def get_wizard(
    session_id: str = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
) -> OnboardingWizard:
    return OnboardingWizard(store, session_id)


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=getattr(e, "message", None) or str(e))


@onboarding_router.get("/options")
async def get_options() -> Dict[str, Any]:
    """Choices offered by the genre, mood and style screens."""
    return {"genres": GENRES, "moods": MOODS, "styles": STYLES}


@onboarding_router.get("/state")
async def get_state(wizard: OnboardingWizard = Depends(get_wizard)) -> Dict[str, Any]:
    return wizard.snapshot()


@onboarding_router.post("/open")
async def open_wizard(wizard: OnboardingWizard = Depends(get_wizard)) -> Dict[str, Any]:
    wizard.open()
    return wizard.snapshot()


@onboarding_router.post("/close")
async def close_wizard(wizard: OnboardingWizard = Depends(get_wizard)) -> Dict[str, Any]:
    wizard.close()
    return wizard.snapshot()


@onboarding_router.post("/next")
async def next_step(wizard: OnboardingWizard = Depends(get_wizard)) -> Dict[str, Any]:
    try:
        wizard.next_step()
    except ValueError as e:
        raise _bad_request(e)
    return wizard.snapshot()


@onboarding_router.post("/previous")
async def previous_step(wizard: OnboardingWizard = Depends(get_wizard)) -> Dict[str, Any]:
    wizard.previous_step()
    return wizard.snapshot()


@onboarding_router.post("/goto")
async def go_to_step(
    body: GoToStepRequest,
    wizard: OnboardingWizard = Depends(get_wizard),
) -> Dict[str, Any]:
    try:
        wizard.go_to_step(body.step)
    except ValueError as e:
        raise _bad_request(e)
    return wizard.snapshot()


@onboarding_router.patch("/data")
async def update_data(
    body: UpdateDataRequest,
    wizard: OnboardingWizard = Depends(get_wizard),
) -> Dict[str, Any]:
    try:
        wizard.update_data(body.values)
    except ValueError as e:
        raise _bad_request(e)
    return wizard.snapshot()


@onboarding_router.post("/submit")
async def submit_step(
    body: SubmitStepRequest,
    wizard: OnboardingWizard = Depends(get_wizard),
) -> Dict[str, Any]:
    try:
        wizard.submit_step(body.step, body.values)
    except ValueError as e:
        raise _bad_request(e)
    return wizard.snapshot()


@onboarding_router.post("/generate")
@limiter.limit("10/minute")
async def generate(
    request: Request,
    wizard: OnboardingWizard = Depends(get_wizard),
    repository: PendingProjectRepository = Depends(get_pending_repository),
    generator: CoverArtGenerator = Depends(get_generator),
    retry: bool = False,
) -> Dict[str, Any]:
    """Run the generation screen for this session. `retry=true` tries again after a failure."""
    if wizard.step != WizardStep.GENERATING:
        raise HTTPException(
            status_code=400,
            detail=f"Generation runs on step {int(WizardStep.GENERATING)}, wizard is on step {int(wizard.step)}",
        )

    await run_generation_step(wizard, repository, generator, retry=retry)
    return wizard.snapshot()


@onboarding_router.post("/reset")
async def reset(wizard: OnboardingWizard = Depends(get_wizard)) -> Dict[str, Any]:
    wizard.reset()
    return wizard.snapshot()


@onboarding_router.post("/claim")
async def claim(
    current_user: Dict[str, Any] = Depends(get_current_user),
    session_id: str = Depends(get_session_id),
    claimer: PendingProjectClaimer = Depends(get_claimer),
) -> Dict[str, Any]:
    """Link this session's pending project to the signed-in user."""
    project = await claimer.claim_for_user(session_id, current_user["id"])
    return {
        "claimed": project is not None,
        "project": project.model_dump(mode="json") if project else None,
    }
