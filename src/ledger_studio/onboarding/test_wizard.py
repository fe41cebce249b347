import pytest

from ledger_studio.database.models import GeneratedImage
from ledger_studio.onboarding.session_store import WIZARD_STATE_KEY
from ledger_studio.onboarding.wizard import (
    OnboardingWizard,
    WizardStep,
    WizardValidationError,
)

SESSION = "session_1700000000000_abc123xyz"


@pytest.fixture
def wizard(session_store):
    session_store.get_or_create_session_id(None)
    return OnboardingWizard(session_store, SESSION)


def fill_form(wizard):
    wizard.open()
    wizard.submit_step(1, {"project_type": "single"})
    wizard.submit_step(2, {"song_title": "  Midnight Drive  "})
    wizard.submit_step(3, {"artist_name": "Nova", "featuring": "Kite"})
    wizard.submit_step(4, {"genre": "Lo-Fi"})
    wizard.submit_step(5, {"mood": "Dark"})
    wizard.submit_step(6, {"lyrics": "neon rain on empty streets"})
    wizard.submit_step(7, {"visual_style": "Neon"})
    wizard.submit_step(8, {"additional_prompt": ""})


def test_open_starts_on_first_step(wizard):
    wizard.go_to_step(5)
    wizard.set_error("boom")

    wizard.open()

    assert wizard.state.is_open
    assert wizard.step == WizardStep.PROJECT_TYPE
    assert wizard.state.error is None


def test_close_keeps_form_input(wizard):
    wizard.open()
    wizard.update_data({"song_title": "Keep Me"})

    wizard.close()

    assert not wizard.state.is_open
    assert wizard.data.song_title == "Keep Me"


def test_full_form_reaches_generating_step(wizard):
    fill_form(wizard)

    assert wizard.step == WizardStep.GENERATING
    assert wizard.data.song_title == "Midnight Drive"
    assert wizard.data.featuring == "Kite"
    assert wizard.data.genre == "Lo-Fi"


def test_next_step_validates_current_step(wizard):
    wizard.open()
    wizard.next_step()

    with pytest.raises(WizardValidationError) as exc_info:
        wizard.next_step()

    assert exc_info.value.step == WizardStep.TITLE
    assert wizard.step == WizardStep.TITLE


def test_blank_title_is_rejected(wizard):
    wizard.open()
    wizard.next_step()

    with pytest.raises(WizardValidationError):
        wizard.submit_step(2, {"song_title": "   "})


def test_unknown_genre_is_rejected(wizard):
    wizard.go_to_step(4)

    with pytest.raises(WizardValidationError):
        wizard.submit_step(4, {"genre": "Polka"})
    assert wizard.data.genre == "Hip-Hop"


def test_submit_rejects_fields_of_other_steps(wizard):
    wizard.go_to_step(2)

    with pytest.raises(WizardValidationError):
        wizard.submit_step(2, {"song_title": "Ok", "genre": "Rock"})


def test_submit_requires_current_step(wizard):
    wizard.go_to_step(3)

    with pytest.raises(WizardValidationError):
        wizard.submit_step(2, {"song_title": "Late"})


def test_next_step_never_passes_last_step(wizard):
    wizard.go_to_step(10)

    assert wizard.next_step() == WizardStep.SIGNUP


def test_previous_step_floors_at_first(wizard):
    wizard.open()

    assert wizard.previous_step() == WizardStep.PROJECT_TYPE


@pytest.mark.parametrize("step", [0, 11, -3])
def test_go_to_step_out_of_range(wizard, step):
    with pytest.raises(ValueError):
        wizard.go_to_step(step)


def test_unknown_field_in_update(wizard):
    with pytest.raises(ValueError):
        wizard.update_data({"tempo": 120})


def test_derived_flags(wizard):
    wizard.open()
    assert wizard.progress_percent == pytest.approx(12.5)
    assert not wizard.show_back
    assert wizard.show_close
    assert wizard.can_escape

    wizard.go_to_step(8)
    assert wizard.progress_percent == pytest.approx(100)
    assert wizard.show_back

    wizard.go_to_step(9)
    assert not wizard.show_back
    assert not wizard.show_close
    assert not wizard.can_escape


def test_reset_clears_everything(wizard, session_store):
    fill_form(wizard)
    wizard.set_generated_images([GeneratedImage(url="data:image/png;base64,AA", prompt="p")])
    wizard.set_pending_project_id("pending-1")
    wizard.set_error("failed")

    wizard.reset()

    assert wizard.step == WizardStep.PROJECT_TYPE
    assert wizard.data.song_title == ""
    assert wizard.state.generated_images == []
    assert wizard.state.pending_project_id is None
    assert wizard.state.error is None
    assert not wizard.state.is_generating
    assert session_store.load_onboarding_data(SESSION).song_title == ""


def test_state_survives_new_instance(wizard, session_store):
    wizard.open()
    wizard.submit_step(1, {"project_type": "single"})
    wizard.update_data({"song_title": "Persisted"})

    reloaded = OnboardingWizard(session_store, SESSION)

    assert reloaded.step == WizardStep.TITLE
    assert reloaded.state.is_open
    assert reloaded.data.song_title == "Persisted"


def test_corrupt_state_falls_back_to_defaults(session_store):
    session_store.set_item(SESSION, WIZARD_STATE_KEY, "{not json")

    wizard = OnboardingWizard(session_store, SESSION)

    assert wizard.step == WizardStep.PROJECT_TYPE
    assert not wizard.state.is_open


def test_snapshot_includes_escape_flag(wizard):
    wizard.open()
    assert wizard.snapshot()["can_escape"] is True

    wizard.go_to_step(9)
    assert wizard.snapshot()["can_escape"] is False


def test_stale_wizard_does_not_undo_other_changes(wizard, session_store):
    wizard.open()
    wizard.go_to_step(9)
    other = OnboardingWizard(session_store, SESSION)

    other.close()
    wizard.set_generated_images([GeneratedImage(url="data:image/png;base64,AA", prompt="p")])
    wizard.set_pending_project_id("pending-1")

    stored = OnboardingWizard(session_store, SESSION).state
    assert stored.is_open is False
    assert stored.pending_project_id == "pending-1"
    assert len(stored.generated_images) == 1


def test_previous_starts_from_stored_step(wizard, session_store):
    wizard.open()
    OnboardingWizard(session_store, SESSION).go_to_step(5)

    assert wizard.previous_step() == WizardStep.GENRE
