"""
web/guards.py -- Request guards for protected pages.

A guard takes the Request and returns None to let the request continue, or
a Response that short-circuits the handler. check_guards() runs a chain of
guards in order and returns the first short-circuit response.

Call at the top of protected route handlers:
    if response := check_guards(request, require_auth):
        return response

Guards must run before any handler code that reads per-user data.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from core.errors import ERROR_MESSAGES, ERROR_STATUS, ErrorCode
from web.rendering import render, render_error

logger = logging.getLogger("alliance.web.guards")

Guard = Callable[[Request], Optional[Response]]


def check_guards(request: Request, *guards: Guard) -> Optional[Response]:
    for guard in guards:
        response = guard(request)
        if response is not None:
            return response
    return None


def login_redirect(request: Request) -> RedirectResponse:
    """Flash NotAuthenticated and send the browser to /login."""
    request.state.session.flash(ERROR_MESSAGES[ErrorCode.NOT_AUTHENTICATED])
    return RedirectResponse("/login", status_code=302)


def require_auth(request: Request) -> Optional[Response]:
    """Continue if the session carries a user id, sliding its expiry forward."""
    session = request.state.session
    if session.is_authenticated:
        session.touch()
        return None
    return login_redirect(request)


def require_admin(request: Request) -> Optional[Response]:
    """Continue only for an authenticated user whose record has is_admin set.

    Outcomes:
      not logged in          -> 302 /login (NotAuthenticated)
      user lookup raised     -> 500 error page
      user no longer exists  -> session user cleared, 302 /login
      not an admin           -> 403 forbidden page (AccessDenied)
      admin                  -> None; request.state.user holds the User
    """
    if response := require_auth(request):
        return response

    session = request.state.session
    user_store = request.app.state.user_store
    try:
        user = user_store.get_by_id(session.user_id)
    except SQLAlchemyError:
        logger.exception("Admin check failed for user %s", session.user_id)
        return render_error(request, ErrorCode.SERVER_ERROR)

    if user is None:
        logger.warning("Session references missing user %s", session.user_id)
        session.user_id = None
        return login_redirect(request)

    if not user.is_admin:
        logger.warning("Non-admin user %s denied access to %s", user.id, request.url.path)
        return render(
            request,
            "forbidden.html",
            {"title": "Forbidden", "message": ERROR_MESSAGES[ErrorCode.ACCESS_DENIED]},
            status_code=ERROR_STATUS[ErrorCode.ACCESS_DENIED],
        )

    request.state.user = user
    return None
