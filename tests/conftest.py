"""
tests/conftest.py -- Shared test fixtures for the Alliance portal tests.

This module provides:
  - _make_test_stores(): isolated in-memory user DB + in-memory session store
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - web_client: TestClient with follow_redirects=False for route tests
  - sign_in / read_session helpers that work on the client's session cookie

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DATABASE_URL must be set before the first get_settings() call, otherwise the
settings validator raises.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import Any, Optional

# CRITICAL: set before any core/web import so get_settings() validates.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.store import UserStore
from core.config import get_settings
from core.i18n import Localizer
from session.cookies import SessionCookieSigner
from session.store import MemorySessionStore
from web.limiter import limiter

# Rate limits are exercised separately; functional tests post freely.
limiter.enabled = False


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores() -> tuple[UserStore, MemorySessionStore]:
    """Create a fresh user DB and session store for a single test.

    The random suffix keeps every test's shared-memory DB separate.
    """
    user_url = f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    settings = get_settings()
    return UserStore(db_url=user_url), MemorySessionStore(ttl=settings.session_max_age)


def _patch_lifespan(user_store: UserStore, session_store: MemorySessionStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can cancel a real
    asyncio.Task the same way the production lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.session_store = session_store
        app.state.cookie_signer = SessionCookieSigner(settings.session_secret)
        app.state.localizer = Localizer(settings.locales_dir, settings.supported_locales, settings.default_locale)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def stores() -> Generator[tuple[UserStore, MemorySessionStore], None, None]:
    user_store, session_store = _make_test_stores()
    yield user_store, session_store
    user_store.close()
    session_store.close()


@pytest.fixture()
def web_client(stores: tuple[UserStore, MemorySessionStore]) -> Generator[TestClient, None, None]:
    """Yield a TestClient running the real app against the test stores.

    follow_redirects=False is essential: most assertions are about redirect
    locations, which are invisible once the client follows them.
    """
    app.router.lifespan_context = _patch_lifespan(*stores)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture()
def user_store(stores: tuple[UserStore, MemorySessionStore]) -> UserStore:
    return stores[0]


@pytest.fixture()
def session_store(stores: tuple[UserStore, MemorySessionStore]) -> MemorySessionStore:
    return stores[1]


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


def session_id_of(client: TestClient) -> Optional[str]:
    """Return the unsigned session id held in the client's cookie jar."""
    settings = get_settings()
    signer = SessionCookieSigner(settings.session_secret)
    return signer.unsign(client.cookies.get(settings.session_cookie_name))


def read_session(client: TestClient, session_store: MemorySessionStore) -> Optional[dict[str, Any]]:
    """Return the stored session data for the client's cookie, or None."""
    session_id = session_id_of(client)
    return session_store.get(session_id) if session_id else None


def sign_in(client: TestClient, session_store: MemorySessionStore, user_id: int) -> str:
    """Attach user_id to the client's server-side session.

    GET /register makes the server issue a real session cookie; the stored
    record is then rewritten directly. Skips the login form (and bcrypt) for
    tests that only need a logged-in user. Returns the session id.
    """
    client.get("/register")
    session_id = session_id_of(client)
    assert session_id is not None
    session_store.save(session_id, {"user_id": user_id})
    return session_id
