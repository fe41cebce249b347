"""
Anonymous session storage.

Holds per-visitor key/value data in process memory: the in-progress wizard
brief, the wizard's position, and the session identifier that later
reconnects a pre-signup pending project to a new account. Values are kept as
JSON strings, the way browser session storage keeps them. Sessions left idle
longer than the idle timeout are evicted.
"""

import asyncio
import json
import logging
import secrets
import string
import threading
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional

from ..database.models import OnboardingData

logger = logging.getLogger(__name__)

SESSION_COOKIE = "ledger_session_id"
ONBOARDING_DATA_KEY = "ledger_onboarding_data"
WIZARD_STATE_KEY = "ledger_wizard_state"

SESSION_IDLE_TIMEOUT = 24 * 60 * 60

_BASE36 = string.digits + string.ascii_lowercase


def new_session_id() -> str:
    """`session_<epoch ms>_<9 random base36 chars>`."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionLocks:
    """Per-session asyncio locks that are dropped once nobody holds or waits on them."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, session_id: str):
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._holders[session_id] = self._holders.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[session_id] -= 1
            if not self._holders[session_id]:
                del self._holders[session_id]
                del self._locks[session_id]


class SessionStore:
    """In-process session-scoped key/value store."""

    def __init__(self, idle_timeout: float = SESSION_IDLE_TIMEOUT, clock: Callable[[], float] = time.monotonic):
        self._sessions: Dict[str, Dict[str, str]] = {}
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.idle_timeout = idle_timeout
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _touch(self, session_id: str) -> Dict[str, str]:
        self._last_seen[session_id] = self._clock()
        return self._sessions.setdefault(session_id, {})

    def _expired(self, session_id: str, now: float) -> bool:
        return now - self._last_seen.get(session_id, now) > self.idle_timeout

    def evict_idle(self) -> int:
        """Drop sessions idle longer than the timeout; returns how many went."""
        with self._lock:
            now = self._clock()
            idle = [session_id for session_id in self._sessions if self._expired(session_id, now)]
            for session_id in idle:
                self._sessions.pop(session_id, None)
                self._last_seen.pop(session_id, None)
        if idle:
            logger.info(f"Evicted {len(idle)} idle sessions")
        return len(idle)

    def has_session(self, session_id: Optional[str]) -> bool:
        with self._lock:
            if not session_id or session_id not in self._sessions:
                return False
            return not self._expired(session_id, self._clock())

    def get_or_create_session_id(self, session_id: Optional[str] = None) -> str:
        """Return `session_id` when it is known, otherwise start a new session."""
        if session_id and self.has_session(session_id):
            with self._lock:
                self._touch(session_id)
            return session_id

        self.evict_idle()
        created = new_session_id()
        with self._lock:
            self._touch(created)
        logger.info(f"Started anonymous session {created}")
        return created

    def get_item(self, session_id: str, key: str) -> Optional[str]:
        with self._lock:
            if session_id not in self._sessions or self._expired(session_id, self._clock()):
                return None
            return self._touch(session_id).get(key)

    def set_item(self, session_id: str, key: str, value: str) -> None:
        with self._lock:
            self._touch(session_id)[key] = value

    def remove_item(self, session_id: str, key: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._touch(session_id).pop(key, None)

    def clear(self, session_id: Optional[str]) -> None:
        """Drop every key of a session."""
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)
        logger.info(f"Cleared session {session_id}")

    def get_json(self, session_id: str, key: str) -> Optional[Any]:
        raw = self.get_item(session_id, key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable {key} for session {session_id}")
            return None

    def set_json(self, session_id: str, key: str, value: Any) -> None:
        self.set_item(session_id, key, json.dumps(value))

    def load_onboarding_data(self, session_id: str) -> OnboardingData:
        """Stored brief for a session, or the defaults when absent or unreadable."""
        stored = self.get_json(session_id, ONBOARDING_DATA_KEY)
        if not isinstance(stored, dict):
            return OnboardingData()
        try:
            return OnboardingData(**stored)
        except ValueError as e:
            logger.warning(f"Stored onboarding data invalid for session {session_id}: {e}")
            return OnboardingData()

    def save_onboarding_data(self, session_id: str, data: OnboardingData) -> None:
        self.set_json(session_id, ONBOARDING_DATA_KEY, data.model_dump())

    def clear_onboarding_data(self, session_id: str) -> None:
        self.remove_item(session_id, ONBOARDING_DATA_KEY)
