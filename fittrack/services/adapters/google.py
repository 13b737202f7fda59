from typing import Optional
from urllib.parse import urlencode

import httpx

from ... import config
from ...schemas import GoogleProfile


GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = "openid profile email"


class GoogleAuthError(Exception):
    pass


def authorization_url(state: str) -> str:
    params = {
        "client_id": config.GOOGLE_CLIENT_ID,
        "redirect_uri": config.GOOGLE_CALLBACK_URL,
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def profile_from_userinfo(data: dict) -> GoogleProfile:
    sub = str(data.get("sub") or "").strip()
    email = str(data.get("email") or "").strip().lower()
    if not sub:
        raise GoogleAuthError("Google profile has no subject id")
    if not email:
        raise GoogleAuthError("No email found in Google profile")
    name = " ".join((data.get("name") or "").split()) or email.split("@")[0]
    return GoogleProfile(sub=sub, email=email, name=name, picture=data.get("picture") or None)


async def fetch_google_profile(
    code: str, transport: Optional[httpx.AsyncBaseTransport] = None
) -> GoogleProfile:
    """Exchange an authorization code for the signed-in user's profile."""
    if not code:
        raise GoogleAuthError("Missing authorization code")

    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        r = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": config.GOOGLE_CLIENT_ID,
                "client_secret": config.GOOGLE_CLIENT_SECRET,
                "redirect_uri": config.GOOGLE_CALLBACK_URL,
                "grant_type": "authorization_code",
            },
        )
        r.raise_for_status()
        access_token = r.json().get("access_token")
        if not access_token:
            raise GoogleAuthError("Token response did not include an access token")

        r = await client.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        r.raise_for_status()
        return profile_from_userinfo(r.json())
