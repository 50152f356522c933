"""
session/cookies.py -- Signed session-id cookie values.

The cookie carries only the opaque session id, signed with SESSION_SECRET so
a client cannot probe the store with guessed or forged ids. All state lives
server-side in the SessionStore.
"""

from __future__ import annotations

from typing import Optional

from itsdangerous import BadSignature, Signer

_SALT = "alliance.session.v1"


class SessionCookieSigner:
    def __init__(self, secret: str) -> None:
        self._signer = Signer(secret_key=secret, salt=_SALT)

    def sign(self, session_id: str) -> str:
        return self._signer.sign(session_id).decode("utf-8")

    def unsign(self, value: Optional[str]) -> Optional[str]:
        """Return the session id from a cookie value, or None if tampered/absent."""
        if not value:
            return None
        try:
            return self._signer.unsign(value).decode("utf-8")
        except BadSignature:
            return None
