"""
auth/registration.py -- Registration checks and account creation.

The checks run in a fixed order and stop at the first failure:
  1. CAPTCHA matches the challenge stored in the session
  2. password == confirm_password
  3. agreement checkbox submitted as "on"

create_account() then inserts the user. Uniqueness is left to the database
constraint so two racing requests cannot both succeed.

Layer rule: no imports from web/ or session/. Callers pass plain values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.captcha import captcha_matches
from auth.store import UserStore
from core.errors import ErrorCode, RegistrationError

logger = logging.getLogger("alliance.auth.registration")

AGREEMENT_ACCEPTED = "on"

# bcrypt refuses secrets longer than this.
MAX_PASSWORD_BYTES = 72


@dataclass
class RegistrationForm:
    country_code: str = ""
    phone_number: str = ""
    password: str = ""
    confirm_password: str = ""
    user_captcha: str = ""
    agreement: str = ""


def validate_registration(form: RegistrationForm, expected_captcha: str | None) -> None:
    """Raise RegistrationError for the first failing check, else return None."""
    if not captcha_matches(expected_captcha, form.user_captcha):
        raise RegistrationError(ErrorCode.INVALID_CAPTCHA)
    if form.password != form.confirm_password:
        raise RegistrationError(ErrorCode.PASSWORD_MISMATCH)
    if form.agreement != AGREEMENT_ACCEPTED:
        raise RegistrationError(ErrorCode.AGREEMENT_REQUIRED)


def create_account(store: UserStore, form: RegistrationForm) -> int:
    """Insert the user described by form and return its ID.

    Blank required fields and unexpected database failures both surface as
    RegistrationFailed; a phone number collision surfaces as
    DuplicatePhoneNumber.
    """
    country_code = form.country_code.strip()
    phone_number = form.phone_number.strip()
    if not country_code or not phone_number or not form.password:
        raise RegistrationError(ErrorCode.REGISTRATION_FAILED)
    if len(form.password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise RegistrationError(ErrorCode.REGISTRATION_FAILED)
    try:
        return store.create_user(country_code, phone_number, form.password)
    except IntegrityError as exc:
        raise RegistrationError(ErrorCode.DUPLICATE_PHONE_NUMBER) from exc
    except SQLAlchemyError as exc:
        logger.exception("User creation failed for a new registration")
        raise RegistrationError(ErrorCode.REGISTRATION_FAILED) from exc
