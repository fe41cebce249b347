"""
Onboarding wizard state machine.

The wizard walks an anonymous visitor through a fixed sequence of
single-purpose screens that build up a creative brief, then generates cover
art and offers sign-up. State lives in the session store so every request of
the session sees the same wizard.
"""

import logging
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..database.models import GeneratedImage, OnboardingData
from .session_store import SessionStore, WIZARD_STATE_KEY

logger = logging.getLogger(__name__)

GENRES = [
    "Hip-Hop", "Trap", "Punjabi Pop", "Lo-Fi", "EDM", "Indie",
    "Rock", "R&B", "Pop", "Country", "Jazz", "Electronic",
]

MOODS = [
    "Energetic", "Melancholic", "Romantic", "Aggressive",
    "Peaceful", "Dark", "Uplifting", "Mysterious",
]

STYLES = [
    "Cinematic", "Minimalist", "Vintage", "Abstract",
    "Retro", "Futuristic", "Watercolor", "Gothic",
    "Cyberpunk", "Comic", "GTA", "Neon",
]


class WizardStep(IntEnum):
    PROJECT_TYPE = 1
    TITLE = 2
    ARTIST = 3
    GENRE = 4
    MOOD = 5
    LYRICS = 6
    STYLE = 7
    ADDITIONAL = 8
    GENERATING = 9
    SIGNUP = 10


TOTAL_FORM_STEPS = WizardStep.ADDITIONAL
FIRST_STEP = WizardStep.PROJECT_TYPE
LAST_STEP = WizardStep.SIGNUP

# Brief fields each screen is allowed to edit.
STEP_FIELDS: Dict[WizardStep, List[str]] = {
    WizardStep.PROJECT_TYPE: ["project_type"],
    WizardStep.TITLE: ["song_title"],
    WizardStep.ARTIST: ["artist_name", "featuring", "producer", "release_year", "is_explicit"],
    WizardStep.GENRE: ["genre"],
    WizardStep.MOOD: ["mood"],
    WizardStep.LYRICS: ["lyrics"],
    WizardStep.STYLE: ["visual_style"],
    WizardStep.ADDITIONAL: ["additional_prompt"],
    WizardStep.GENERATING: [],
    WizardStep.SIGNUP: [],
}

TRIMMED_FIELDS = {
    "song_title", "artist_name", "featuring", "producer",
    "release_year", "lyrics", "additional_prompt",
}


class WizardValidationError(ValueError):
    """The current screen's input does not allow moving on."""

    def __init__(self, step: WizardStep, message: str):
        self.step = step
        self.message = message
        super().__init__(message)


class WizardState(BaseModel):
    """Everything about the wizard except the brief itself."""
    is_open: bool = False
    current_step: int = Field(default=int(FIRST_STEP), ge=int(FIRST_STEP), le=int(LAST_STEP))
    generated_images: List[GeneratedImage] = Field(default_factory=list)
    is_generating: bool = False
    error: Optional[str] = None
    pending_project_id: Optional[str] = None


def validate_step(step: WizardStep, data: OnboardingData) -> None:
    """Raise WizardValidationError when `data` does not satisfy `step`."""
    if step == WizardStep.PROJECT_TYPE and data.project_type != "single":
        raise WizardValidationError(step, "Only single cover projects are supported")
    if step == WizardStep.TITLE and not data.song_title.strip():
        raise WizardValidationError(step, "Song title is required")
    if step == WizardStep.ARTIST and not data.artist_name.strip():
        raise WizardValidationError(step, "Artist name is required")
    if step == WizardStep.GENRE and data.genre not in GENRES:
        raise WizardValidationError(step, f"Unknown genre: {data.genre}")
    if step == WizardStep.MOOD and data.mood not in MOODS:
        raise WizardValidationError(step, f"Unknown mood: {data.mood}")
    if step == WizardStep.LYRICS and not data.lyrics.strip():
        raise WizardValidationError(step, "Lyrics are required")
    if step == WizardStep.STYLE and data.visual_style not in STYLES:
        raise WizardValidationError(step, f"Unknown visual style: {data.visual_style}")


class OnboardingWizard:
    """Wizard bound to one anonymous session.

    Every change re-reads the stored state and writes back only the fields
    it touches, so requests of the same session that interleave across an
    await do not undo each other.
    """

    def __init__(self, store: SessionStore, session_id: str):
        self.store = store
        self.session_id = session_id
        self.data = store.load_onboarding_data(session_id)
        self.state = self._load_state()

    def _load_state(self) -> WizardState:
        stored_state = self.store.get_json(self.session_id, WIZARD_STATE_KEY)
        if not isinstance(stored_state, dict):
            return WizardState()
        try:
            return WizardState(**stored_state)
        except ValueError:
            logger.warning(f"Resetting unreadable wizard state for session {self.session_id}")
            return WizardState()

    def reload(self) -> None:
        """Pick up changes other requests made to this session."""
        self.data = self.store.load_onboarding_data(self.session_id)
        self.state = self._load_state()

    def _update_state(self, **changes: Any) -> None:
        state = self._load_state()
        for field, value in changes.items():
            setattr(state, field, value)
        self.store.set_json(self.session_id, WIZARD_STATE_KEY, state.model_dump())
        self.state = state

    @property
    def step(self) -> WizardStep:
        return WizardStep(self.state.current_step)

    @property
    def progress_percent(self) -> float:
        """Progress bar fill; full once the form screens are done."""
        return min(self.state.current_step, int(TOTAL_FORM_STEPS)) / int(TOTAL_FORM_STEPS) * 100

    @property
    def show_back(self) -> bool:
        return FIRST_STEP < self.state.current_step <= TOTAL_FORM_STEPS

    @property
    def show_close(self) -> bool:
        return self.state.current_step <= TOTAL_FORM_STEPS

    @property
    def can_escape(self) -> bool:
        return self.state.is_open and self.state.current_step <= TOTAL_FORM_STEPS

    def open(self) -> None:
        self._update_state(is_open=True, current_step=int(FIRST_STEP), error=None)

    def close(self) -> None:
        self._update_state(is_open=False, error=None)

    def next_step(self) -> WizardStep:
        self.reload()
        validate_step(self.step, self.data)
        self._update_state(current_step=min(self.state.current_step + 1, int(LAST_STEP)))
        return self.step

    def previous_step(self) -> WizardStep:
        self.reload()
        self._update_state(current_step=max(int(FIRST_STEP), self.state.current_step - 1))
        return self.step

    def go_to_step(self, step: int) -> WizardStep:
        if not FIRST_STEP <= step <= LAST_STEP:
            raise ValueError(f"Step must be between {int(FIRST_STEP)} and {int(LAST_STEP)}")
        self._update_state(current_step=step)
        return self.step

    def update_data(self, values: Dict[str, Any]) -> OnboardingData:
        """Merge `values` into the brief and persist it right away."""
        merged = self.store.load_onboarding_data(self.session_id).model_dump()
        for key, value in values.items():
            if key not in OnboardingData.model_fields:
                raise ValueError(f"Unknown onboarding field: {key}")
            merged[key] = value.strip() if key in TRIMMED_FIELDS and isinstance(value, str) else value
        self.data = OnboardingData(**merged)
        self.store.save_onboarding_data(self.session_id, self.data)
        return self.data

    def submit_step(self, step: int, values: Dict[str, Any]) -> WizardStep:
        """Save the fields of the current screen and move to the next one."""
        self.reload()
        if step != self.state.current_step:
            raise WizardValidationError(self.step, f"Wizard is on step {self.state.current_step}, not {step}")

        allowed = STEP_FIELDS[self.step]
        unexpected = set(values) - set(allowed)
        if unexpected:
            raise WizardValidationError(
                self.step, f"Fields not part of this step: {', '.join(sorted(unexpected))}"
            )

        candidate = OnboardingData(**{**self.data.model_dump(), **values})
        validate_step(self.step, candidate)
        self.update_data(values)
        return self.next_step()

    def set_generating(self, generating: bool) -> None:
        self._update_state(is_generating=generating)

    def set_error(self, error: Optional[str]) -> None:
        self._update_state(error=error)

    def set_generated_images(self, images: List[GeneratedImage]) -> None:
        self._update_state(generated_images=list(images))

    def set_pending_project_id(self, project_id: Optional[str]) -> None:
        self._update_state(pending_project_id=project_id)

    def reset(self) -> None:
        """Back to a blank brief on step one. The only way stored input is dropped."""
        is_open = self._load_state().is_open
        self.data = OnboardingData()
        self.store.clear_onboarding_data(self.session_id)
        self.state = WizardState(is_open=is_open)
        self.store.set_json(self.session_id, WIZARD_STATE_KEY, self.state.model_dump())

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the wizard for API responses."""
        return {
            "session_id": self.session_id,
            "is_open": self.state.is_open,
            "current_step": self.state.current_step,
            "step_name": self.step.name.lower(),
            "total_form_steps": int(TOTAL_FORM_STEPS),
            "progress_percent": self.progress_percent,
            "show_back": self.show_back,
            "show_close": self.show_close,
            "can_escape": self.can_escape,
            "data": self.data.model_dump(),
            "generated_images": [image.model_dump() for image in self.state.generated_images],
            "is_generating": self.state.is_generating,
            "error": self.state.error,
            "pending_project_id": self.state.pending_project_id,
        }
