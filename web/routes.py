"""
web/routes.py -- Jinja2 template routes for the portal.

Every failure on a form POST is turned into a one-shot flash message and a
302 redirect back to the form, so a browser refresh never resubmits POST
data. Only POST /logout answers with JSON (it is called from script.js).

Routes:
  GET  /                     -- 302 to /home (logged in) or /register
  GET  /register             -- registration form with a fresh CAPTCHA
  POST /register             -- create account, 302 /login or /register
  GET  /login                -- login form
  POST /login                -- check credentials, 302 /home or /login
  POST /logout               -- destroy session, JSON {success, redirect}
  GET  /home                 -- dashboard (auth required)
  GET  /invest               -- investment overview (auth required)
  GET  /alliance             -- alliance page (auth required)
  GET  /profile              -- current user's profile (auth required)
  GET  /invest1 .. /invest5  -- public plan pages
  GET  /admin                -- total user count (admin required)
  GET  /health               -- JSON liveness and database check
"""

import logging

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from auth.captcha import generate_captcha
from auth.passwords import authenticate_user
from auth.registration import RegistrationForm, create_account, validate_registration
from auth.store import UserStore
from core.errors import ERROR_MESSAGES, ErrorCode, RegistrationError, SessionStoreError
from web.guards import check_guards, login_redirect, require_admin, require_auth
from web.limiter import AUTH_RATE_LIMIT, limiter
from web.rendering import render, render_error
from web.schemas import HealthResponse, LogoutResponse

logger = logging.getLogger("alliance.web")

router = APIRouter()

VERSION = "1.0.0"

REGISTRATION_SUCCESS = "Registration successful. Please log in."

# Public plan pages /invest1 .. /invest5.
INVEST_PLAN_COUNT = 5


# ---------------------------------------------------------------------------
# GET / -- landing redirect
# ---------------------------------------------------------------------------


@router.get("/")
def index(request: Request) -> RedirectResponse:
    target = "/home" if request.state.session.is_authenticated else "/register"
    return RedirectResponse(target, status_code=302)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    """Render the registration form with a freshly generated CAPTCHA."""
    session = request.state.session
    session.captcha = generate_captcha()
    return render(request, "register.html", {"title": "Register", "captcha": session.captcha})


@router.post("/register")
@limiter.limit(AUTH_RATE_LIMIT)
def register_submit(
    request: Request,
    country_code: str = Form("", alias="countryCode"),
    phone_number: str = Form("", alias="phoneNumber"),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    user_captcha: str = Form("", alias="userCaptcha"),
    agreement: str = Form(""),
) -> RedirectResponse:
    """Validate the form, create the account and send the user to /login.

    Checks run in order (CAPTCHA, password confirmation, agreement) and the
    first failure is flashed. The stored CAPTCHA survives a failed attempt;
    GET /register replaces it anyway.
    """
    session = request.state.session
    user_store: UserStore = request.app.state.user_store
    form = RegistrationForm(
        country_code=country_code,
        phone_number=phone_number,
        password=password,
        confirm_password=confirm_password,
        user_captcha=user_captcha,
        agreement=agreement,
    )
    try:
        validate_registration(form, session.captcha)
        user_id = create_account(user_store, form)
    except RegistrationError as exc:
        logger.info("Registration rejected: %s", exc.code.value)
        session.flash(exc.message)
        return RedirectResponse("/register", status_code=302)

    logger.info("User %d registered", user_id)
    session.captcha = None
    session.flash(REGISTRATION_SUCCESS, category="success")
    return RedirectResponse("/login", status_code=302)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    return render(request, "login.html", {"title": "Login"})


@router.post("/login")
@limiter.limit(AUTH_RATE_LIMIT)
def login_submit(
    request: Request,
    phone_number: str = Form("", alias="phoneNumber"),
    password: str = Form(""),
) -> RedirectResponse:
    """Handle phone number / password login.

    Unknown phone number and wrong password share one message so the
    response does not reveal which field was wrong.
    """
    session = request.state.session
    user_store: UserStore = request.app.state.user_store
    try:
        user = authenticate_user(user_store, phone_number.strip(), password)
    except SQLAlchemyError:
        logger.exception("Login lookup failed")
        session.flash(ERROR_MESSAGES[ErrorCode.LOGIN_FAILED])
        return RedirectResponse("/login", status_code=302)

    if user is None:
        session.flash(ERROR_MESSAGES[ErrorCode.INVALID_CREDENTIALS])
        return RedirectResponse("/login", status_code=302)

    # Fresh id on privilege change; the pre-login id stops working.
    session.regenerate()
    session.user_id = user.id
    resp = RedirectResponse("/home", status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> JSONResponse:
    """Destroy the server-side session and clear the session cookie.

    If the store cannot delete the record the cookie is kept, so the client
    can simply retry.
    """
    session = request.state.session
    settings = request.app.state.settings
    try:
        request.app.state.session_store.destroy(session.id)
    except SessionStoreError as exc:
        logger.exception("Logout failed")
        return JSONResponse(
            status_code=exc.status_code,
            content=LogoutResponse(success=False, message=request.state.translator(exc.message)).model_dump(
                exclude_none=True
            ),
        )

    session.mark_destroyed()
    resp = JSONResponse(content=LogoutResponse(success=True, redirect="/register").model_dump(exclude_none=True))
    resp.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    return resp


# ---------------------------------------------------------------------------
# Dashboard (auth required)
# ---------------------------------------------------------------------------


@router.get("/home", response_class=HTMLResponse)
def home(request: Request) -> Response:
    if response := check_guards(request, require_auth):
        return response
    return render(request, "home.html", {"title": "Home Dashboard"})


@router.get("/invest", response_class=HTMLResponse)
def invest(request: Request) -> Response:
    if response := check_guards(request, require_auth):
        return response
    return render(
        request,
        "invest.html",
        {"title": "Investment", "plans": range(1, INVEST_PLAN_COUNT + 1)},
    )


@router.get("/alliance", response_class=HTMLResponse)
def alliance(request: Request) -> Response:
    if response := check_guards(request, require_auth):
        return response
    return render(request, "alliance.html", {"title": "Alliance"})


@router.get("/profile", response_class=HTMLResponse)
def profile(request: Request) -> Response:
    if response := check_guards(request, require_auth):
        return response
    session = request.state.session
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(session.user_id)
    if user is None:
        logger.warning("Session references missing user %s", session.user_id)
        session.user_id = None
        return login_redirect(request)
    return render(request, "profile.html", {"title": "Profile", "user": user})


# ---------------------------------------------------------------------------
# Public plan pages
# ---------------------------------------------------------------------------


@router.get("/invest{number:int}", response_class=HTMLResponse)
def invest_plan(request: Request, number: int) -> HTMLResponse:
    # The int convertor also matches /invest01; only the canonical spelling is served.
    if not 1 <= number <= INVEST_PLAN_COUNT or request.url.path != f"/invest{number}":
        raise HTTPException(status_code=404)
    return render(
        request,
        "invests/plan.html",
        {"title": "Investment plan {number}", "title_params": {"number": number}, "number": number},
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/admin", response_class=HTMLResponse)
def admin(request: Request) -> Response:
    if response := check_guards(request, require_admin):
        return response
    user_store: UserStore = request.app.state.user_store
    try:
        total_users = user_store.count_users()
    except SQLAlchemyError:
        logger.exception("Error fetching admin data")
        return render_error(request, ErrorCode.SERVER_ERROR)
    return render(request, "admin.html", {"title": "Admin Dashboard", "total_users": total_users})


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
def health(request: Request) -> JSONResponse:
    """Return liveness plus a database round-trip check. No auth, no rate limit."""
    components = {"app": "ok", "database": "ok"}
    try:
        request.app.state.user_store.ping()
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        components["database"] = "error"
    healthy = components["database"] == "ok"
    body = HealthResponse(status="healthy" if healthy else "degraded", version=VERSION, components=components)
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())
