"""
web/rendering.py -- Template rendering with per-request context.

render() is the only way routes produce HTML. It injects what every view
needs from the request pipeline:

  t            -- the request's Translator (set by the locale middleware)
  locale       -- resolved locale code, for <html lang> and the switcher
  current_url  -- request path without query string, for ?lang= links
  flash        -- the pending one-shot message, popped from the session
  is_authenticated

The translator is passed per render rather than registered as a Jinja2
global, so two concurrent requests in different locales never share one.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from core.errors import ERROR_MESSAGES, ERROR_STATUS, ErrorCode
from core.i18n import Translator

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def _translator(request: Request) -> Translator:
    translator = getattr(request.state, "translator", None)
    if translator is not None:
        return translator
    # Exception handlers can run before the locale middleware did.
    localizer = getattr(request.app.state, "localizer", None)
    if localizer is not None:
        return localizer.translator(localizer.default)
    return Translator("en", {})


def render(
    request: Request,
    name: str,
    context: Optional[dict[str, Any]] = None,
    status_code: int = 200,
    consume_flash: bool = True,
) -> HTMLResponse:
    translator = _translator(request)
    session = getattr(request.state, "session", None)
    ctx: dict[str, Any] = {
        "t": translator,
        "locale": getattr(request.state, "locale", translator.locale),
        "current_url": getattr(request.state, "current_url", request.url.path),
        "supported_locales": getattr(getattr(request.app.state, "localizer", None), "supported", []),
        "flash": session.pop_flash() if session is not None and consume_flash else None,
        "is_authenticated": bool(session is not None and session.is_authenticated),
    }
    if context:
        ctx.update(context)
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)


def render_error(
    request: Request,
    code: ErrorCode,
    status_code: Optional[int] = None,
    message: Optional[str] = None,
) -> HTMLResponse:
    """Render the error page for code.

    status_code defaults to the code's entry in ERROR_STATUS.
    """
    if status_code is None:
        status_code = ERROR_STATUS.get(code, 500)
    template = "404.html" if status_code == 404 else "error.html"
    return render(
        request,
        template,
        {
            "title": ERROR_MESSAGES[code],
            "message": message,
            "status_code": status_code,
        },
        status_code=status_code,
        consume_flash=False,
    )
