import hmac
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request, Response
from jose import jwt, JWTError
from sqlmodel import Session as DBSession

from . import config
from .db import get_session
from .errors import Forbidden, Unauthorized
from .models import User

# ---- cookie config (use SAME values for set & delete) ----
SESSION_COOKIE   = "session"
CSRF_COOKIE      = "_csrf"
CSRF_HEADER      = "X-CSRF-Token"
STATE_COOKIE     = "oauth_state"
COOKIE_PATH      = "/"
COOKIE_SAMESITE  = "lax"
STATE_TTL        = timedelta(minutes=10)

# ---- token config ----
JWT_ALG = "HS256"
JWT_TTL = timedelta(hours=config.SESSION_TTL_HOURS)


# ---- JWT helpers ----
def make_token(user_id: int) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + JWT_TTL).timestamp()),
    }
    return jwt.encode(payload, config.SESSION_SECRET, algorithm=JWT_ALG)


def read_token(token: str) -> int:
    try:
        data = jwt.decode(token, config.SESSION_SECRET, algorithms=[JWT_ALG])
        return int(data.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise Unauthorized("Invalid or expired session")


# ---- cookie helpers ----
def _set_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        samesite=COOKIE_SAMESITE,
        secure=config.COOKIE_SECURE,
        path=COOKIE_PATH,
        max_age=max_age,
    )


def set_session_cookie(response: Response, token: str) -> None:
    _set_cookie(response, SESSION_COOKIE, token, int(JWT_TTL.total_seconds()))


def set_state_cookie(response: Response, state: str) -> None:
    _set_cookie(response, STATE_COOKIE, state, int(STATE_TTL.total_seconds()))


def clear_auth_cookies(response: Response) -> None:
    for key in (SESSION_COOKIE, CSRF_COOKIE):
        response.delete_cookie(key=key, path=COOKIE_PATH)


def issue_csrf_token(request: Request, response: Response) -> str:
    """Reuse the caller's CSRF cookie or mint a new one."""
    token = request.cookies.get(CSRF_COOKIE) or secrets.token_urlsafe(32)
    _set_cookie(response, CSRF_COOKIE, token, int(JWT_TTL.total_seconds()))
    return token


# ---- dependencies ----
def get_current_user(request: Request, db: DBSession = Depends(get_session)) -> User:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise Unauthorized("Not authenticated")
    user = db.get(User, read_token(token))
    if not user:
        raise Unauthorized("User not found")
    request.state.user_id = user.id
    return user


def require_csrf(request: Request, user: User = Depends(get_current_user)) -> User:
    """Current user, provided the double-submit CSRF token matches."""
    cookie = request.cookies.get(CSRF_COOKIE) or ""
    header = request.headers.get(CSRF_HEADER) or ""
    if not cookie or not header or not hmac.compare_digest(cookie.encode(), header.encode()):
        raise Forbidden("Invalid CSRF token")
    return user
