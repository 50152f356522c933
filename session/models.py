"""
session/models.py -- Server-side session state.

A Session is a small mutable record hydrated from the session store at the
start of each request. Handlers read and write its attributes; the session
middleware decides afterwards whether anything needs persisting by looking
at the modified / touched / destroyed flags.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Any, Optional


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class Flash:
    message: str
    category: str = "error"


@dataclass
class Session:
    id: str = field(default_factory=new_session_id)
    data: dict[str, Any] = field(default_factory=dict)
    is_new: bool = True
    modified: bool = False
    touched: bool = False
    destroyed: bool = False
    replaced_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> Optional[int]:
        return self.data.get("user_id")

    @user_id.setter
    def user_id(self, value: Optional[int]) -> None:
        self._set("user_id", value)

    @property
    def captcha(self) -> Optional[str]:
        return self.data.get("captcha")

    @captcha.setter
    def captcha(self, value: Optional[str]) -> None:
        self._set("captcha", value)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def _set(self, key: str, value: Any) -> None:
        if value is None:
            if key in self.data:
                del self.data[key]
                self.modified = True
            return
        if self.data.get(key) != value:
            self.data[key] = value
            self.modified = True

    # ------------------------------------------------------------------
    # Flash messages
    # ------------------------------------------------------------------

    def flash(self, message: str, category: str = "error") -> None:
        self._set("flash", {"message": message, "category": category})

    def pop_flash(self) -> Optional[Flash]:
        """Return the pending flash message and clear it (read-once)."""
        raw = self.data.get("flash")
        if raw is None:
            return None
        self._set("flash", None)
        return Flash(message=raw["message"], category=raw.get("category", "error"))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def touch(self) -> None:
        """Ask the middleware to slide this session's expiry forward."""
        self.touched = True

    def regenerate(self) -> None:
        """Move the data to a fresh id.

        The middleware saves under the new id and deletes the old record, so
        an id known before login is worthless after it.
        """
        if not self.is_new and self.replaced_id is None:
            self.replaced_id = self.id
        self.id = new_session_id()
        self.modified = True

    def mark_destroyed(self) -> None:
        self.destroyed = True
        self.data.clear()
