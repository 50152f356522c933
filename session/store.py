"""
session/store.py -- Session backends with a fixed time-to-live.

Every backend implements the same small capability (SessionStore):

    get(session_id)          -> dict or None (None if unknown or expired)
    save(session_id, data)   -> store data, expiry = now + ttl
    touch(session_id)        -> slide expiry to now + ttl, True if it existed
    destroy(session_id)      -> remove the record
    purge_expired()          -> delete expired records, return the count

SQLSessionStore keeps sessions in the application database (sessions table)
and is what the app runs with. MemorySessionStore is a dict behind a lock,
used by the test suite and handy for single-process development.

Usage:
    store = SQLSessionStore("sqlite:///portal.db", ttl=86400)
    store.save("abc", {"user_id": 1})
    store.get("abc")        # {"user_id": 1}
    store.purge_expired()   # call periodically to trim old rows
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Optional, Protocol

from sqlalchemy import Column, Float, MetaData, String, Table, Text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.db import make_engine
from core.errors import SessionStoreError

_DEFAULT_TTL = 60 * 60 * 24  # 24 hours in seconds


class SessionStore(Protocol):
    ttl: int

    def get(self, session_id: str) -> Optional[dict[str, Any]]: ...

    def save(self, session_id: str, data: dict[str, Any]) -> None: ...

    def touch(self, session_id: str) -> bool: ...

    def destroy(self, session_id: str) -> None: ...

    def purge_expired(self) -> int: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# SQL backend
# ---------------------------------------------------------------------------

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("session_id", String(64), primary_key=True),
    Column("data", Text, nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
)


class SQLSessionStore:
    def __init__(self, db_url: str, ttl: int = _DEFAULT_TTL, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def get(self, session_id: str) -> Optional[dict[str, Any]]:
        """Return the session data if it exists and hasn't expired."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _sessions.select().where(_sessions.c.session_id == session_id)
            ).fetchone()
        if row is None:
            return None
        if row.expires_at <= self._clock():
            self._delete(session_id)
            return None
        return json.loads(row.data)

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        """Store data for session_id, replacing any existing record."""
        payload = json.dumps(data)
        expires_at = self._clock() + self.ttl
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where(_sessions.c.session_id == session_id)
                .values(data=payload, expires_at=expires_at)
            )
            if result.rowcount == 0:
                try:
                    conn.execute(
                        _sessions.insert().values(session_id=session_id, data=payload, expires_at=expires_at)
                    )
                except IntegrityError:
                    # A concurrent request inserted the same id first; last write wins.
                    conn.rollback()
                    conn.execute(
                        _sessions.update()
                        .where(_sessions.c.session_id == session_id)
                        .values(data=payload, expires_at=expires_at)
                    )
            conn.commit()

    def touch(self, session_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where((_sessions.c.session_id == session_id) & (_sessions.c.expires_at > self._clock()))
                .values(expires_at=self._clock() + self.ttl)
            )
            conn.commit()
        return result.rowcount > 0

    def destroy(self, session_id: str) -> None:
        """Remove the session. Raises SessionStoreError if the delete fails."""
        try:
            self._delete(session_id)
        except SQLAlchemyError as exc:
            raise SessionStoreError() from exc

    def purge_expired(self) -> int:
        """Delete all expired sessions. Returns number of rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= self._clock()))
            conn.commit()
        return result.rowcount

    def _delete(self, session_id: str) -> None:
        with self.engine.connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class MemorySessionStore:
    def __init__(self, ttl: int = _DEFAULT_TTL, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, tuple[str, float]] = {}

    def get(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            payload, expires_at = record
            if expires_at <= self._clock():
                del self._records[session_id]
                return None
        # Stored as JSON so callers never share a mutable dict with the store.
        return json.loads(payload)

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._records[session_id] = (json.dumps(data), self._clock() + self.ttl)

    def touch(self, session_id: str) -> bool:
        with self._lock:
            record = self._records.get(session_id)
            if record is None or record[1] <= self._clock():
                return False
            self._records[session_id] = (record[0], self._clock() + self.ttl)
            return True

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [sid for sid, (_, expires_at) in self._records.items() if expires_at <= now]
            for sid in expired:
                del self._records[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    def close(self) -> None:
        with self._lock:
            self._records.clear()
