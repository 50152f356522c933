"""
tests/test_user_store.py -- Unit tests for UserStore.

Each test gets its own named shared-memory SQLite database through the
user_store fixture, so inserts never leak between tests.

Coverage:
  - create_user() hashes on write and returns the new ID
  - phone_number uniqueness is enforced by the database (IntegrityError)
  - lookups by phone number and by ID, including misses
  - admin flag and password updates
  - count_users() and ping()
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from auth.passwords import verify_password
from auth.store import UserStore


class TestCreateUser:
    def test_returns_id_and_stores_fields(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+234", "8031234567", "s3cret-pass")
        user = user_store.get_by_id(uid)
        assert user is not None
        assert user.id == uid
        assert user.country_code == "+234"
        assert user.phone_number == "8031234567"
        assert user.is_admin is False
        assert user.created_at is not None
        assert user.created_at == user.updated_at

    def test_password_is_hashed(self, user_store: UserStore) -> None:
        """The stored value must be a bcrypt hash, never the plaintext."""
        uid = user_store.create_user("+1", "5550001", "plain-text")
        user = user_store.get_by_id(uid)
        assert user.hashed_password != "plain-text"
        assert user.hashed_password.startswith("$2")
        assert verify_password("plain-text", user.hashed_password)

    def test_duplicate_phone_raises_integrity_error(self, user_store: UserStore) -> None:
        user_store.create_user("+1", "5550002", "first")
        with pytest.raises(IntegrityError):
            user_store.create_user("+44", "5550002", "second")

    def test_same_phone_different_country_still_duplicate(self, user_store: UserStore) -> None:
        """Uniqueness is on the phone number alone, not on the country pair."""
        user_store.create_user("+1", "5550003", "pw")
        with pytest.raises(IntegrityError):
            user_store.create_user("+33", "5550003", "pw")
        assert user_store.count_users() == 1

    def test_create_admin(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+1", "5550004", "pw", is_admin=True)
        assert user_store.get_by_id(uid).is_admin is True


class TestLookups:
    def test_get_by_phone(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+1", "5550010", "pw")
        user = user_store.get_by_phone("5550010")
        assert user is not None
        assert user.id == uid

    def test_get_by_phone_miss(self, user_store: UserStore) -> None:
        assert user_store.get_by_phone("0000000") is None

    def test_get_by_id_miss(self, user_store: UserStore) -> None:
        assert user_store.get_by_id(999) is None

    def test_display_phone(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+49", "1701234567", "pw")
        assert user_store.get_by_id(uid).display_phone == "+49 1701234567"


class TestUpdates:
    def test_set_admin_and_revoke(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+1", "5550020", "pw")
        assert user_store.set_admin(uid) is True
        assert user_store.get_by_id(uid).is_admin is True
        assert user_store.set_admin(uid, False) is True
        assert user_store.get_by_id(uid).is_admin is False

    def test_set_admin_unknown_user(self, user_store: UserStore) -> None:
        assert user_store.set_admin(12345) is False

    def test_update_password(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+1", "5550021", "old-password")
        assert user_store.update_password(uid, "new-password") is True
        user = user_store.get_by_id(uid)
        assert verify_password("new-password", user.hashed_password)
        assert not verify_password("old-password", user.hashed_password)


class TestCounts:
    def test_count_users(self, user_store: UserStore) -> None:
        assert user_store.count_users() == 0
        user_store.create_user("+1", "5550030", "pw")
        user_store.create_user("+1", "5550031", "pw")
        assert user_store.count_users() == 2

    def test_ping(self, user_store: UserStore) -> None:
        assert user_store.ping() is True
