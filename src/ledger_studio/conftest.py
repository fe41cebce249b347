"""Shared fixtures: an in-memory Supabase stand-in and a wired test client."""

import itertools
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from ledger_studio.config import Settings
from ledger_studio.database.pending_projects import PendingProjectRepository
from ledger_studio.database.projects import ProjectRepository
from ledger_studio.generation.imagen_client import CoverArtGenerator
from ledger_studio.onboarding.claim import PendingProjectClaimer
from ledger_studio.onboarding.session_store import SessionStore

_clock = itertools.count()
_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _next_timestamp() -> str:
    # Strictly increasing so ordering by created_at is deterministic.
    return (_EPOCH + timedelta(seconds=next(_clock))).isoformat()


class FakeQuery:
    """Chainable query with the subset of the PostgREST builder the app uses."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None

    def select(self, *columns):
        self.operation = "select"
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def execute(self):
        if self.table in self.db.failing_tables:
            raise RuntimeError(f"{self.table} is unavailable")

        rows = self.db.tables.setdefault(self.table, [])

        if self.operation == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for new_row in new_rows:
                row = {"id": str(uuid.uuid4()), "created_at": _next_timestamp(), **new_row}
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.operation == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.operation == "delete":
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda row: row.get(column) or "", reverse=desc)
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeAuth:
    """Supabase auth client double keyed by email."""

    def __init__(self):
        self.accounts = {}
        self.tokens = {}
        self.signed_out = 0

    def _response(self, account):
        token = f"token-{account['id']}"
        self.tokens[token] = account
        user = SimpleNamespace(
            id=account["id"],
            email=account["email"],
            user_metadata=account["metadata"],
            created_at=account["created_at"],
        )
        session = SimpleNamespace(access_token=token, refresh_token=f"refresh-{account['id']}", expires_in=3600)
        return SimpleNamespace(user=user, session=session)

    def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.accounts:
            raise Exception("User already registered")
        account = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": credentials["password"],
            "metadata": credentials.get("options", {}).get("data", {}),
            "created_at": _next_timestamp(),
        }
        self.accounts[email] = account
        return self._response(account)

    def sign_in_with_password(self, credentials):
        account = self.accounts.get(credentials["email"])
        if account is None or account["password"] != credentials["password"]:
            raise Exception("Invalid login credentials")
        return self._response(account)

    def sign_out(self):
        self.signed_out += 1

    def get_user(self, token):
        account = self.tokens.get(token)
        if account is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return self._response(account)

    def token_for(self, email):
        return self._response(self.accounts[email]).session.access_token


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.failing_tables = set()
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])


def image_response(image_bytes=b"jpeg-bytes"):
    return SimpleNamespace(
        generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=image_bytes))]
    )


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def imagen_client():
    client = MagicMock()
    client.aio.models.generate_images = AsyncMock(return_value=image_response())
    return client


@pytest.fixture
def generator(imagen_client):
    return CoverArtGenerator(api_key="test-google-key", client=imagen_client)


@pytest.fixture
def pending_repository(fake_supabase):
    return PendingProjectRepository(fake_supabase)


@pytest.fixture
def project_repository(fake_supabase):
    return ProjectRepository(fake_supabase)


@pytest.fixture
def claimer(pending_repository, project_repository):
    return PendingProjectClaimer(pending_repository, project_repository)


@pytest.fixture
def settings():
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="service-role-key",
        google_ai_api_key="test-google-key",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        stripe_pro_price_id="price_pro",
        stripe_premium_price_id="price_premium",
    )


@pytest.fixture
def client(settings, fake_supabase, session_store, generator, claimer):
    from ledger_studio import dependencies
    from ledger_studio.api.main import app
    from ledger_studio.api.rate_limit import limiter

    app.dependency_overrides[dependencies.get_app_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_supabase] = lambda: fake_supabase
    app.dependency_overrides[dependencies.get_session_store] = lambda: session_store
    app.dependency_overrides[dependencies.get_generator] = lambda: generator
    app.dependency_overrides[dependencies.get_claimer] = lambda: claimer
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()
