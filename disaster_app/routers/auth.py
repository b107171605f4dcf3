import base64
import hashlib
import logging
import string
from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from passlib.context import CryptContext
from passlib.utils import handlers as uh
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .. import config
from ..db import SessionDep
from ..models import ROLE_ADMIN, ROLE_USER, ROLE_VOLUNTEER, User
from ..schemas import LoginForm, RegisterForm
from ..sessions import (
    USER_EMAIL,
    USER_ID,
    USER_NAME,
    USER_ROLE,
    create_session_token,
    session_store,
    verify_session_token,
)
from ..templating import render
from ..validation import add_error, errors_from_validation, read_form

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

INVALID_CREDENTIALS = "Invalid login credentials"

ROLE_HOME = {
    ROLE_USER: "/user",
    ROLE_VOLUNTEER: "/volunteer",
    ROLE_ADMIN: "/admin",
}


class base64_sha256(uh.StaticHandler):
    """
    Unsalted SHA-256 of the UTF-8 password, base64 encoded.

    Existing accounts are stored in this format. It is fast and unsalted, so
    it is not a real credential hash.
    """

    name = "base64_sha256"
    checksum_chars = string.ascii_letters + string.digits + "+/="
    checksum_size = 44

    def _calc_checksum(self, secret):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        return base64.b64encode(hashlib.sha256(secret).digest()).decode("ascii")


pwd_context = CryptContext(
    schemes=[base64_sha256],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Stored value isn't a digest we recognise
        logger.warning("Unrecognised password digest format")
        return False


def home_url(role: Optional[str]) -> str:
    return ROLE_HOME.get(role, ROLE_HOME[ROLE_USER])


class LoginRequired(Exception):
    """Raised by the session dependencies; the app turns it into a redirect to /login."""

    def __init__(self, reason: str = "Not logged in"):
        self.reason = reason
        super().__init__(reason)


def get_optional_session(
    session_token: Optional[str] = Cookie(default=None, alias=config.SESSION_COOKIE_NAME),
) -> Optional[dict]:
    """
    Reads the 'session' cookie, verifies the signature and looks the
    session up in the store. Returns None when there is no usable session.

    Returns {"token", "email", "role", "user_id", "name"}.
    """
    if session_token is None:
        return None

    token = verify_session_token(session_token)
    if token is None:
        return None

    values = session_store.get(token)
    if not values or not values.get(USER_EMAIL) or values.get(USER_ID) is None:
        return None

    return {
        "token": token,
        "email": values[USER_EMAIL],
        "role": values.get(USER_ROLE),
        "user_id": values[USER_ID],
        "name": values.get(USER_NAME),
    }


OptionalSessionDep = Annotated[Optional[dict], Depends(get_optional_session)]


def require_login(current: OptionalSessionDep) -> dict:
    if current is None:
        raise LoginRequired()
    return current


CurrentSessionDep = Annotated[dict, Depends(require_login)]


def require_admin(current: CurrentSessionDep) -> dict:
    if current["role"] != ROLE_ADMIN:
        raise LoginRequired(f"Admin role required, session has {current['role']!r}")
    return current


AdminSessionDep = Annotated[dict, Depends(require_admin)]


def start_session(user: User) -> str:
    """Put the user into a new session and return the signed cookie value."""
    token = session_store.create(
        {
            USER_EMAIL: user.email,
            USER_ROLE: user.role,
            USER_ID: user.id,
            USER_NAME: user.full_name,
        }
    )
    return create_session_token(token)


def set_session_cookie(response, cookie_value: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=cookie_value,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=config.SESSION_MAX_AGE,
    )


@router.get("/register", response_class=HTMLResponse)
def register_page(
    request: Request,
    current: OptionalSessionDep,
):
    if current is not None:
        return RedirectResponse(url=home_url(current["role"]), status_code=303)

    return render(request, "register.html", form_data={}, errors={})


def _register_failed(request: Request, form_data: dict, errors: dict):
    form_data.pop("password", None)
    return render(
        request,
        "register.html",
        status_code=400,
        form_data=form_data,
        errors=errors,
    )


@router.post("/register")
async def register(request: Request, session: SessionDep):
    """
    Register a new account and send the user to the login page.
    The password is stored as a digest, never in plain text.
    """
    form = await request.form()
    form_data = read_form(form, ("full_name", "email", "password", "role"))

    try:
        user_in = RegisterForm(**form_data)
    except ValidationError as exc:
        return _register_failed(request, form_data, errors_from_validation(exc))

    existing = session.exec(
        select(User).where(User.email == user_in.email)
    ).first()
    if existing:
        logger.info("Registration rejected, email already in use: %s", user_in.email)
        return _register_failed(
            request, form_data, add_error({}, "email", "Email is already registered.")
        )

    user = User(
        full_name=user_in.full_name,
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        role=user_in.role,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info("Registration lost a race on email: %s", user_in.email)
        return _register_failed(
            request, form_data, add_error({}, "email", "Email is already registered.")
        )
    session.refresh(user)

    logger.info("Registered user %s (%s) as %s", user.id, user.email, user.role)
    return RedirectResponse(url="/login", status_code=303)


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    current: OptionalSessionDep,
):
    if current is not None:
        return RedirectResponse(url=home_url(current["role"]), status_code=303)

    return render(request, "login.html", form_data={}, errors={}, error=None)


@router.post("/login")
async def login(request: Request, session: SessionDep, current: OptionalSessionDep):
    """
    Log in with email + password, start a session and send the user
    to the dashboard for their role.
    """
    form = await request.form()
    form_data = read_form(form, ("email", "password"))

    try:
        credentials = LoginForm(**form_data)
    except ValidationError as exc:
        form_data.pop("password", None)
        return render(
            request,
            "login.html",
            status_code=400,
            form_data=form_data,
            errors=errors_from_validation(exc),
            error=INVALID_CREDENTIALS,
        )

    user = session.exec(
        select(User).where(User.email == credentials.email)
    ).first()

    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.warning("Failed login for %s", credentials.email)
        return render(
            request,
            "login.html",
            status_code=400,
            form_data={"email": credentials.email},
            errors={},
            error=INVALID_CREDENTIALS,
        )

    if current is not None:
        # The new session replaces the one behind the presented cookie
        session_store.delete(current["token"])

    logger.info("User %s logged in as %s", user.id, user.role)
    response = RedirectResponse(url=home_url(user.role), status_code=303)
    set_session_cookie(response, start_session(user))
    return response


@router.post("/logout")
def logout(current: OptionalSessionDep):
    """
    Drop the server-side session, clear the cookie and go home.
    """
    if current is not None:
        session_store.delete(current["token"])
        logger.info("User %s logged out", current["user_id"])

    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return response
