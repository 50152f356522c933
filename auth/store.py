"""
auth/store.py -- SQLAlchemy Core persistence layer for registered users.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route code never touches SQL directly.

Invariants enforced here rather than in the routes:
  - phone_number is UNIQUE at the database level. Two concurrent
    registrations for the same number cannot both insert; the loser gets
    sqlalchemy.exc.IntegrityError, which the registration flow maps to
    DuplicatePhoneNumber.
  - Plaintext passwords never reach the table. create_user() and
    update_password() hash on write.

Security:
  All queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select, text
from sqlalchemy.engine import Engine

from auth.models import User
from auth.passwords import hash_password
from core.db import make_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("country_code", String(8), nullable=False),
    Column("phone_number", String(32), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("is_admin", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///portal.db")
        uid = store.create_user("+1", "5551234", "secret")
        user = store.get_by_phone("5551234")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, country_code: str, phone_number: str, password: str, is_admin: bool = False) -> int:
        """Hash the password, insert the user and return its database ID.

        Raises sqlalchemy.exc.IntegrityError if the phone number is taken.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    country_code=country_code,
                    phone_number=phone_number,
                    hashed_password=hash_password(password),
                    is_admin=1 if is_admin else 0,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_password(self, user_id: int, password: str) -> bool:
        """Re-hash and store a new password. Returns False if user_id is unknown."""
        return self._update(user_id, hashed_password=hash_password(password))

    def set_admin(self, user_id: int, is_admin: bool = True) -> bool:
        """Grant or revoke the admin flag. Returns False if user_id is unknown."""
        return self._update(user_id, is_admin=1 if is_admin else 0)

    def _update(self, user_id: int, **fields) -> bool:
        fields["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_phone(self, phone_number: str) -> User | None:
        """Look up a user by exact phone number. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.phone_number == phone_number)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Round-trip a trivial query. Used by the health endpoint."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        country_code=row.country_code,
        phone_number=row.phone_number,
        hashed_password=row.hashed_password,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
