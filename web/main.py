"""
web/main.py -- FastAPI application object, lifecycle and cross-cutting handlers.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. log_requests      -- request logging
  2. hydrate_session   -- server-side session load/save
  3. resolve_locale    -- locale negotiation, ?lang= switches
  4. SlowAPIMiddleware -- per-route rate limits from web.limiter

Lifespan handles startup (settings validation, stores, localizer, session
purge task) and shutdown (cancel purge task, dispose engines) symmetrically.
A missing DATABASE_URL is fatal: it is logged at CRITICAL and the process
exits before any request is served.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth.store import UserStore
from core.config import get_settings
from core.errors import ERROR_MESSAGES, ErrorCode
from core.i18n import Localizer
from session.cookies import SessionCookieSigner
from session.store import SQLSessionStore
from web.limiter import limiter, retry_after_seconds
from web.middleware import hydrate_session, log_requests, resolve_locale
from web.rendering import render_error

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("alliance.app")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Delete expired sessions every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await run_in_threadpool(app.state.session_store.purge_expired)
        except SQLAlchemyError:
            logger.exception("Session purge failed")
            continue
        if removed:
            logger.info("Purged %d expired sessions", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the stores on startup and release them on shutdown."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        logger.critical("FATAL ERROR: invalid configuration -- %s", exc)
        raise SystemExit(1) from exc

    logging.getLogger("alliance").setLevel("DEBUG" if settings.debug else settings.log_level.upper())
    logger.info("Alliance portal starting up")

    app.state.settings = settings
    app.state.user_store = UserStore(settings.database_url)
    app.state.session_store = SQLSessionStore(settings.database_url, ttl=settings.session_max_age)
    app.state.cookie_signer = SessionCookieSigner(settings.session_secret)
    app.state.localizer = Localizer(settings.locales_dir, settings.supported_locales, settings.default_locale)
    logger.info("Database connected")
    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval))

    yield

    app.state.purge_task.cancel()
    app.state.session_store.close()
    app.state.user_store.close()
    logger.info("Alliance portal shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Alliance Portal",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() and @app.middleware both wrap the existing stack, so the
# last one registered is the first one a request meets.
# ---------------------------------------------------------------------------

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.middleware("http")(resolve_locale)
app.middleware("http")(hydrate_session)
app.middleware("http")(log_requests)


# ---------------------------------------------------------------------------
# Exception handlers
#
# The portal is HTML-first: every handler renders a page, never a JSON
# envelope or a raw traceback.
# ---------------------------------------------------------------------------


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> HTMLResponse:
    """Render 404.html for unmatched routes and error.html for other HTTP errors."""
    code = ErrorCode.NOT_FOUND if exc.status_code == 404 else ErrorCode.SERVER_ERROR
    response = render_error(request, code, exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> HTMLResponse:
    """Return 429 with a rendered page when a rate limit is exceeded."""
    response = render_error(request, ErrorCode.RATE_LIMITED, message=ERROR_MESSAGES[ErrorCode.RATE_LIMITED])
    response.headers["Retry-After"] = str(retry_after_seconds(request, exc))
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> HTMLResponse:
    """Catch-all for unexpected server errors.

    The traceback goes to the log only; the client gets the generic error page.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return render_error(request, ErrorCode.SERVER_ERROR)
