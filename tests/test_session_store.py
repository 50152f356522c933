"""
tests/test_session_store.py -- TTL behaviour of both session backends.

Both stores take an injectable clock, so expiry is tested by advancing a
fake clock rather than sleeping. The same scenarios run against the SQL and
in-memory backends through a parametrized fixture.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from sqlalchemy.exc import OperationalError

from core.errors import ErrorCode, SessionStoreError
from session.store import MemorySessionStore, SQLSessionStore


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["sql", "memory"])
def store(request: pytest.FixtureRequest, clock: FakeClock) -> Generator:
    if request.param == "sql":
        url = f"sqlite:///file:test_sessions_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
        backend = SQLSessionStore(url, ttl=100, clock=clock)
    else:
        backend = MemorySessionStore(ttl=100, clock=clock)
    yield backend
    backend.close()


class TestSaveAndGet:
    def test_roundtrip(self, store) -> None:
        store.save("sid-1", {"user_id": 7, "captcha": "1234"})
        assert store.get("sid-1") == {"user_id": 7, "captcha": "1234"}

    def test_unknown_id(self, store) -> None:
        assert store.get("missing") is None

    def test_save_replaces(self, store) -> None:
        store.save("sid-1", {"captcha": "1111"})
        store.save("sid-1", {"user_id": 3})
        assert store.get("sid-1") == {"user_id": 3}

    def test_returned_dict_is_a_copy(self, store) -> None:
        store.save("sid-1", {"user_id": 1})
        data = store.get("sid-1")
        data["user_id"] = 99
        assert store.get("sid-1") == {"user_id": 1}


class TestExpiry:
    def test_expires_after_ttl(self, store, clock: FakeClock) -> None:
        store.save("sid-1", {"user_id": 1})
        clock.advance(99)
        assert store.get("sid-1") is not None
        clock.advance(1)
        assert store.get("sid-1") is None

    def test_touch_slides_expiry(self, store, clock: FakeClock) -> None:
        store.save("sid-1", {"user_id": 1})
        clock.advance(80)
        assert store.touch("sid-1") is True
        clock.advance(80)
        assert store.get("sid-1") == {"user_id": 1}

    def test_touch_expired_or_unknown(self, store, clock: FakeClock) -> None:
        store.save("sid-1", {"user_id": 1})
        clock.advance(100)
        assert store.touch("sid-1") is False
        assert store.touch("never-saved") is False

    def test_purge_expired(self, store, clock: FakeClock) -> None:
        store.save("old", {"user_id": 1})
        clock.advance(60)
        store.save("new", {"user_id": 2})
        clock.advance(50)
        assert store.purge_expired() == 1
        assert store.get("old") is None
        assert store.get("new") == {"user_id": 2}


class TestDestroy:
    def test_destroy_removes_record(self, store) -> None:
        store.save("sid-1", {"user_id": 1})
        store.destroy("sid-1")
        assert store.get("sid-1") is None

    def test_destroy_unknown_is_noop(self, store) -> None:
        store.destroy("never-saved")

    def test_sql_failure_raises_session_store_error(self, clock: FakeClock, monkeypatch: pytest.MonkeyPatch) -> None:
        url = f"sqlite:///file:test_sessions_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
        backend = SQLSessionStore(url, ttl=100, clock=clock)

        def broken(session_id: str) -> None:
            raise OperationalError("DELETE", {}, Exception("database is locked"))

        monkeypatch.setattr(backend, "_delete", broken)
        with pytest.raises(SessionStoreError) as exc_info:
            backend.destroy("sid-1")
        assert exc_info.value.code is ErrorCode.SESSION_DESTROY_FAILED
        assert exc_info.value.message == "Server failed to clear session."
        assert exc_info.value.status_code == 500
        backend.close()
