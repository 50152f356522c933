"""
tests/test_passwords.py -- Password hashing and credential checks.

authenticate_user() must give the same answer (None) for an unknown phone
number and for a wrong password, so callers cannot tell the two apart.
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from auth.passwords import authenticate_user, hash_password, verify_password
from auth.store import UserStore


class TestHashing:
    def test_hash_is_salted(self) -> None:
        assert hash_password("same") != hash_password("same")

    def test_verify_roundtrip(self) -> None:
        hashed = hash_password("correct horse")
        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong horse", hashed) is False

    def test_malformed_hash_returns_false(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestAuthenticateUser:
    def test_success_returns_user(self, user_store: UserStore) -> None:
        uid = user_store.create_user("+1", "5551000", "hunter22")
        user = authenticate_user(user_store, "5551000", "hunter22")
        assert user is not None
        assert user.id == uid

    def test_wrong_password(self, user_store: UserStore) -> None:
        user_store.create_user("+1", "5551001", "hunter22")
        assert authenticate_user(user_store, "5551001", "hunter23") is None

    def test_unknown_phone(self, user_store: UserStore) -> None:
        assert authenticate_user(user_store, "5551999", "hunter22") is None

    def test_store_error_propagates(self, user_store: UserStore, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(phone_number: str):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(user_store, "get_by_phone", broken)
        with pytest.raises(OperationalError):
            authenticate_user(user_store, "5551000", "hunter22")
