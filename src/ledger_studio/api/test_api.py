import pytest

from ledger_studio.api.main import resolve_view
from ledger_studio.onboarding.session_store import SESSION_COOKIE

FORM = [
    (1, {"project_type": "single"}),
    (2, {"song_title": "Golden Static"}),
    (3, {"artist_name": "Mara Vale", "is_explicit": True}),
    (4, {"genre": "R&B"}),
    (5, {"mood": "Romantic"}),
    (6, {"lyrics": "you and me under sodium lights"}),
    (7, {"visual_style": "Retro"}),
    (8, {"additional_prompt": "cassette tape texture"}),
]


def complete_form(client):
    client.post("/onboarding/open")
    for step, values in FORM:
        response = client.post("/onboarding/submit", json={"step": step, "values": values})
        assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.parametrize("user, show_landing, view", [
    (None, True, "landing"),
    (None, False, "dashboard"),
    ({"id": "u1"}, True, "dashboard"),
    ({"id": "u1"}, False, "dashboard"),
])
def test_resolve_view(user, show_landing, view):
    assert resolve_view(user, show_landing) == view


def test_view_endpoint(client, fake_supabase):
    token = fake_supabase.auth.sign_up({"email": "v@example.com", "password": "secret1"}).session.access_token

    assert client.get("/app/view").json() == {"view": "landing"}
    assert client.get("/app/view", params={"show_landing": False}).json() == {"view": "dashboard"}
    assert client.get("/app/view", headers={"Authorization": f"Bearer {token}"}).json() == {"view": "dashboard"}


def test_wizard_sets_session_cookie(client, session_store):
    response = client.get("/onboarding/state")

    session_id = response.cookies.get(SESSION_COOKIE)
    assert session_id.startswith("session_")
    assert session_store.has_session(session_id)
    assert response.json()["current_step"] == 1


def test_options(client):
    options = client.get("/onboarding/options").json()

    assert "Punjabi Pop" in options["genres"]
    assert len(options["moods"]) == 8
    assert "GTA" in options["styles"]


def test_form_walkthrough(client):
    state = complete_form(client)

    assert state["current_step"] == 9
    assert state["step_name"] == "generating"
    assert state["data"]["song_title"] == "Golden Static"
    assert not state["show_close"]


def test_navigation_endpoints(client):
    client.post("/onboarding/open")

    assert client.post("/onboarding/next").json()["current_step"] == 2
    assert client.post("/onboarding/previous").json()["current_step"] == 1
    assert client.post("/onboarding/goto", json={"step": 7}).json()["current_step"] == 7

    response = client.post("/onboarding/goto", json={"step": 11})
    assert response.status_code == 400
    assert "between 1 and 10" in response.json()["error"]["message"]


def test_invalid_submit(client):
    client.post("/onboarding/open")

    response = client.post("/onboarding/submit", json={"step": 1, "values": {"project_type": "album"}})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Only single cover projects are supported"


def test_data_patch_persists(client):
    client.patch("/onboarding/data", json={"values": {"lyrics": "saved as I type"}})

    assert client.get("/onboarding/state").json()["data"]["lyrics"] == "saved as I type"


def test_generate_requires_generating_step(client):
    client.post("/onboarding/open")

    response = client.post("/onboarding/generate")

    assert response.status_code == 400


def test_generate_then_signup_claims_project(client, fake_supabase):
    complete_form(client)

    generated = client.post("/onboarding/generate").json()
    assert len(generated["generated_images"]) == 4
    assert generated["pending_project_id"]

    response = client.post("/auth/signup", json={"email": "mara@example.com", "password": "secret1"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["claimed_project"]["title"] == "Golden Static"
    assert body["user"]["profile"]["artist_name"] == "Mara Vale"
    assert body["user"]["profile"]["primary_genre"] == "R&B"
    assert body["user"]["profile"]["explicit_content"] is True

    projects = fake_supabase.rows("projects")
    assert len(projects) == 1
    assert projects[0]["settings"]["genre"] == "R&B"
    assert fake_supabase.rows("pending_projects")[0]["claimed_by_user_id"] == body["user"]["id"]


def test_signin_claims_project(client, fake_supabase):
    fake_supabase.auth.sign_up({"email": "back@example.com", "password": "secret1"})
    complete_form(client)
    client.post("/onboarding/generate")

    response = client.post("/auth/signin", json={"email": "back@example.com", "password": "secret1"})

    assert response.status_code == 200
    assert response.json()["claimed_project"] is not None


def test_explicit_claim(client, fake_supabase):
    token = fake_supabase.auth.sign_up({"email": "claim@example.com", "password": "secret1"}).session.access_token
    complete_form(client)
    client.post("/onboarding/generate")
    headers = {"Authorization": f"Bearer {token}"}

    first = client.post("/onboarding/claim", headers=headers).json()
    second = client.post("/onboarding/claim", headers=headers).json()

    assert first["claimed"] is True
    assert second == {"claimed": False, "project": None}


def test_signin_with_bad_password(client, fake_supabase):
    fake_supabase.auth.sign_up({"email": "who@example.com", "password": "secret1"})

    response = client.post("/auth/signin", json={"email": "who@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid email or password"


def test_signup_rejects_short_password(client):
    response = client.post("/auth/signup", json={"email": "short@example.com", "password": "123"})

    assert response.status_code == 422


def test_duplicate_signup(client):
    client.post("/auth/signup", json={"email": "dupe@example.com", "password": "secret1"})

    response = client.post("/auth/signup", json={"email": "dupe@example.com", "password": "secret1"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "An account with this email already exists"


def test_signout_clears_session(client, session_store, fake_supabase):
    client.patch("/onboarding/data", json={"values": {"song_title": "Forget Me"}})
    session_id = client.cookies.get(SESSION_COOKIE)
    token = client.post(
        "/auth/signup", json={"email": "bye@example.com", "password": "secret1"}
    ).json()["access_token"]

    response = client.post("/auth/signout", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert fake_supabase.auth.signed_out == 1
    assert not session_store.has_session(session_id)


def test_signup_is_rate_limited(client):
    statuses = [
        client.post("/auth/signup", json={"email": f"bulk{i}@example.com", "password": "secret1"}).status_code
        for i in range(6)
    ]

    assert statuses[:5] == [200] * 5
    assert statuses[5] == 429


def test_generate_retry_after_failure(client, fake_supabase):
    complete_form(client)
    fake_supabase.failing_tables.add("pending_projects")

    failed = client.post("/onboarding/generate").json()
    assert failed["error"] == "Failed to create pending project"

    fake_supabase.failing_tables.clear()
    assert client.post("/onboarding/generate").json()["generated_images"] == []

    retried = client.post("/onboarding/generate", params={"retry": True}).json()
    assert retried["error"] is None
    assert len(retried["generated_images"]) == 4
