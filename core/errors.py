"""
core/errors.py -- Error taxonomy shared by the auth flows and the web layer.

Every failure the portal can report has an ErrorCode. The code owns the
user-facing message (which doubles as the translation key in locales/*.json)
and the HTTP status used when the failure is surfaced as a response rather
than as a flash message.

Layer rule: no imports from web/, auth/ or session/.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_CAPTCHA = "invalid_captcha"
    PASSWORD_MISMATCH = "password_mismatch"
    AGREEMENT_REQUIRED = "agreement_required"
    DUPLICATE_PHONE_NUMBER = "duplicate_phone_number"
    REGISTRATION_FAILED = "registration_failed"
    INVALID_CREDENTIALS = "invalid_credentials"
    LOGIN_FAILED = "login_failed"
    NOT_AUTHENTICATED = "not_authenticated"
    ACCESS_DENIED = "access_denied"
    SESSION_DESTROY_FAILED = "session_destroy_failed"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"


# Messages are English source strings; the translator looks them up as keys.
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_CAPTCHA: "Verification code is invalid or expired.",
    ErrorCode.PASSWORD_MISMATCH: "Passwords do not match.",
    ErrorCode.AGREEMENT_REQUIRED: "You must agree to the User Agreement.",
    ErrorCode.DUPLICATE_PHONE_NUMBER: "This phone number is already registered.",
    ErrorCode.REGISTRATION_FAILED: "Registration failed due to a server error.",
    ErrorCode.INVALID_CREDENTIALS: "Incorrect phone number or password.",
    ErrorCode.LOGIN_FAILED: "An error occurred during login.",
    ErrorCode.NOT_AUTHENTICATED: "You must be logged in to view that page.",
    ErrorCode.ACCESS_DENIED: "Access Denied. Only Administrators can view that page.",
    ErrorCode.SESSION_DESTROY_FAILED: "Server failed to clear session.",
    ErrorCode.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorCode.NOT_FOUND: "404 Not Found",
    ErrorCode.SERVER_ERROR: "Server Error",
}

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_AUTHENTICATED: 401,
    ErrorCode.ACCESS_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.SESSION_DESTROY_FAILED: 500,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.SERVER_ERROR: 500,
}


class PortalError(Exception):
    """Base exception carrying an ErrorCode.

    message defaults to the code's catalogued message; status_code defaults
    to 400 for input errors not listed in ERROR_STATUS.
    """

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.status_code = ERROR_STATUS.get(code, 400)
        super().__init__(self.message)


class RegistrationError(PortalError):
    """Raised by the registration flow; always recovered into a flash + redirect."""


class SessionStoreError(PortalError):
    """Raised when the session backend cannot complete a write or delete."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorCode.SESSION_DESTROY_FAILED, message)
