"""
auth/models.py -- Domain dataclass for the registered user.

Pattern: Data class (pure data container, zero logic). UserStore does the
work; routes and templates only read fields.

Layer rule: no imports from web/ or session/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account, identified by its phone number.

    hashed_password is always a bcrypt hash. UserStore.create_user() and
    UserStore.update_password() take the plaintext and hash it on write, so
    a User loaded from the store never carries the plaintext.
    """

    country_code: str
    phone_number: str
    hashed_password: str
    id: int | None = None
    is_admin: bool = False
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def display_phone(self) -> str:
        return f"{self.country_code} {self.phone_number}".strip()
