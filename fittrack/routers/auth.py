import logging
import secrets

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ValidationError
from sqlmodel import Session as DBSession
from starlette.concurrency import run_in_threadpool

from .. import config
from ..auth import (
    STATE_COOKIE,
    clear_auth_cookies,
    get_current_user,
    issue_csrf_token,
    make_token,
    require_csrf,
    set_session_cookie,
    set_state_cookie,
)
from ..db import get_session
from ..errors import ServiceUnavailable
from ..models import User
from ..schemas import UserRead
from ..services import users_service
from ..services.adapters import google

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class CsrfOut(BaseModel):
    csrf_token: str


def _failure_redirect() -> RedirectResponse:
    resp = RedirectResponse(f"{config.CORS_ORIGIN}/login?error=auth_failed", status_code=302)
    resp.delete_cookie(key=STATE_COOKIE, path="/")
    return resp


@router.get("/google")
def google_login():
    if not config.google_configured():
        raise ServiceUnavailable("Google sign-in is not configured")
    state = secrets.token_urlsafe(24)
    resp = RedirectResponse(google.authorization_url(state), status_code=302)
    set_state_cookie(resp, state)
    return resp


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str = "",
    state: str = "",
    db: DBSession = Depends(get_session),
):
    expected = request.cookies.get(STATE_COOKIE) or ""
    if not state or not expected or not secrets.compare_digest(state.encode(), expected.encode()):
        logger.warning("OAuth callback rejected: state mismatch")
        return _failure_redirect()

    try:
        profile = await google.fetch_google_profile(code)
    except (google.GoogleAuthError, httpx.HTTPError, ValidationError) as e:
        logger.warning("OAuth callback rejected: %s", e)
        return _failure_redirect()

    user = await run_in_threadpool(users_service.upsert_oauth_user, db, profile)
    logger.info("User %s logged in", user.id)

    resp = RedirectResponse(config.CORS_ORIGIN, status_code=302)
    resp.delete_cookie(key=STATE_COOKIE, path="/")
    set_session_cookie(resp, make_token(user.id))
    return resp


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/logout", status_code=204)
def logout(response: Response, user: User = Depends(require_csrf)):
    clear_auth_cookies(response)
    logger.info("User %s logged out", user.id)
    return None


@router.get("/csrf", response_model=CsrfOut)
def csrf(request: Request, response: Response):
    return CsrfOut(csrf_token=issue_csrf_token(request, response))
