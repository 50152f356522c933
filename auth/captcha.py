"""
auth/captcha.py -- Four-digit registration challenge.

The code is drawn from the secrets CSPRNG, uniformly over [1000, 9999], and
kept as a string so comparison against form input is an exact string match.
"""

from __future__ import annotations

import hmac
import secrets

CAPTCHA_MIN = 1000
CAPTCHA_MAX = 9999


def generate_captcha() -> str:
    return str(CAPTCHA_MIN + secrets.randbelow(CAPTCHA_MAX - CAPTCHA_MIN + 1))


def captcha_matches(expected: str | None, submitted: str | None) -> bool:
    """Return True only for a non-empty exact match.

    A missing expected code (never issued, or cleared after use) always
    fails, as does an empty submission.
    """
    if not expected or not submitted:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), submitted.encode("utf-8"))
