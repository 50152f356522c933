"""
web/middleware.py -- Per-request pipeline stages installed by web/main.py.

Registered with @app.middleware("http"), outermost first:

  log_requests     -- method, path, status, latency, client for every request
  hydrate_session  -- load the Session named by the signed cookie, persist it
                      afterwards if the handler changed or touched it
  resolve_locale   -- pick the display locale, honour ?lang= switches

Pattern: Interceptor / Chain of Responsibility. Each stage either returns a
response of its own (short-circuit) or awaits call_next.

Store I/O is synchronous SQLAlchemy, so the session stage hops to the
threadpool with run_in_threadpool rather than blocking the event loop.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from core.errors import SessionStoreError
from session.models import Session

logger = logging.getLogger("alliance.web")

_LOCALE_SWITCH_METHODS = ("GET", "HEAD")


async def log_requests(request: Request, call_next) -> Response:
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


async def hydrate_session(request: Request, call_next) -> Response:
    """Attach request.state.session and write it back after the handler runs.

    A brand-new session is only saved (and its cookie only issued) once
    something has been written to it, so anonymous page views leave no
    record behind. A session the handler destroyed is never written back.
    """
    settings = request.app.state.settings
    store = request.app.state.session_store
    signer = request.app.state.cookie_signer

    session_id = signer.unsign(request.cookies.get(settings.session_cookie_name))
    data = await run_in_threadpool(store.get, session_id) if session_id else None
    if data is None:
        session = Session()
    else:
        session = Session(id=session_id, data=data, is_new=False)
    request.state.session = session

    response = await call_next(request)

    if session.destroyed:
        return response
    if session.modified and (session.data or not session.is_new):
        await run_in_threadpool(store.save, session.id, session.data)
        _set_session_cookie(response, settings, signer.sign(session.id))
        if session.replaced_id:
            await _drop_replaced(store, session.replaced_id)
    elif session.touched and not session.is_new:
        await run_in_threadpool(store.touch, session.id)
        _set_session_cookie(response, settings, signer.sign(session.id))
    return response


async def _drop_replaced(store, session_id: str) -> None:
    try:
        await run_in_threadpool(store.destroy, session_id)
    except SessionStoreError:
        # Left to expire through the TTL; the client already holds the new id.
        logger.warning("Could not delete replaced session record", exc_info=True)


def _set_session_cookie(response: Response, settings, value: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        value=value,
        max_age=settings.session_max_age,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


async def resolve_locale(request: Request, call_next) -> Response:
    """Resolve the request locale and expose it to the renderer.

    ?lang=<code> naming a supported locale other than the current one is
    persisted to the locale cookie, then the browser is sent back to the same
    path without the query string so the switch is applied exactly once.
    """
    settings = request.app.state.settings
    localizer = request.app.state.localizer

    locale = localizer.negotiate(
        request.cookies.get(settings.locale_cookie_name),
        request.headers.get("accept-language"),
    )
    requested = request.query_params.get("lang")
    if (
        requested
        and requested != locale
        and localizer.is_supported(requested)
        and request.method in _LOCALE_SWITCH_METHODS
    ):
        response = RedirectResponse(request.url.path, status_code=302)
        response.set_cookie(
            settings.locale_cookie_name,
            value=requested,
            max_age=settings.locale_cookie_max_age,
            samesite="lax",
            secure=settings.secure_cookies,
        )
        return response

    request.state.locale = locale
    request.state.translator = localizer.translator(locale)
    request.state.current_url = request.url.path
    return await call_next(request)
