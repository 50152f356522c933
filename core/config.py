"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the portal happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment.

Startup policy:
  DATABASE_URL is mandatory. An empty value raises ValueError; the lifespan
  and the CLI turn that into a logged fatal diagnostic and a process exit.

  SESSION_SECRET falls back to an insecure well-known value when unset. The
  fallback is logged as a warning on every startup so it is not missed.

Layer rule: core/ is the kernel. This module may not import from web/, auth/
or session/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("alliance.config")

INSECURE_SESSION_SECRET = "fallback_secret"

_DEFAULT_LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except database_url has a default so tests only need to set
    DATABASE_URL before the first get_settings() call.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    # Forces DEBUG on the alliance.* loggers regardless of log_level.
    debug: bool = False
    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured"; the validator raises.
    database_url: str = ""

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    session_secret: str = ""
    session_cookie_name: str = "session_id"
    session_max_age: int = 60 * 60 * 24  # 24 hours
    session_purge_interval: int = 60 * 60
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Localization
    # ------------------------------------------------------------------

    locale_cookie_name: str = "lang"
    locale_cookie_max_age: int = 60 * 60 * 24
    default_locale: str = "en"
    supported_locales: list[str] = ["en", "fr", "es", "de", "ig", "yo", "ha"]
    locales_dir: Path = _DEFAULT_LOCALES_DIR

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Reject a missing database URL and substitute the session secret fallback."""
        if not self.database_url:
            raise ValueError("DATABASE_URL is not defined. Set it in your environment or .env file.")
        if not self.session_secret:
            self.session_secret = INSECURE_SESSION_SECRET
            logger.warning("SESSION_SECRET is not set -- using an insecure fallback secret.")
        if self.default_locale not in self.supported_locales:
            raise ValueError(f"DEFAULT_LOCALE {self.default_locale!r} is not in SUPPORTED_LOCALES.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
