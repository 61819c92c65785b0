"""Vercel OAuth sign-in (authorization code + PKCE) and session cookies."""

import base64
import hashlib
import logging
import secrets
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.responses import RedirectResponse
from fastapi.responses import Response

from neo import config
from neo.auth import OAuthExchangeError
from neo.auth import exchange_oauth_code
from neo.auth import fetch_vercel_user
from neo.auth import revoke_oauth_token
from neo.auth import session_token_from_request

logger = logging.getLogger("neo.api.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])

AUTHORIZE_URL = "https://vercel.com/oauth/authorize"
OAUTH_SCOPE = "openid profile email"
OAUTH_COOKIE_MAX_AGE = 10 * 60

STATE_COOKIE = "oauth_state"
VERIFIER_COOKIE = "oauth_code_verifier"
NEXT_COOKIE = "oauth_next"
SESSION_COOKIE = "session_token"


def make_code_verifier() -> str:
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("ascii").rstrip("=")


def code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def callback_url(request: Request) -> str:
    # Honour proxies so the redirect URI matches the registered one
    scheme = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    return f"{scheme}://{host}/api/auth/callback/vercel"


def safe_next(value: str | None) -> str:
    """Only same-site paths are allowed as post-login destinations."""
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return "/"


def build_authorize_url(redirect_uri: str, state: str, verifier: str) -> str:
    params = {
        "client_id": config.VERCEL_OAUTH_CLIENT_ID,
        "redirect_uri": redirect_uri,
        "scope": OAUTH_SCOPE,
        "response_type": "code",
        "state": state,
        "code_challenge": code_challenge(verifier),
        "code_challenge_method": "S256",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def _set_cookie(resp: Response, key: str, value: str, max_age: int) -> None:
    resp.set_cookie(
        key,
        value,
        max_age=max_age,
        path="/",
        secure=config.IS_PRODUCTION,
        httponly=True,
        samesite="lax",
    )


def _clear_oauth_cookies(resp: Response) -> None:
    for key in (STATE_COOKIE, VERIFIER_COOKIE, NEXT_COOKIE):
        resp.delete_cookie(key, path="/")


@router.post("/login")
def auth_login(
    request: Request, next_path: str | None = Query(None, alias="next")
) -> JSONResponse:
    if not config.VERCEL_OAUTH_CLIENT_ID:
        raise HTTPException(status_code=500, detail="VERCEL_OAUTH_CLIENT_ID is not configured")

    state = secrets.token_urlsafe(24)
    verifier = make_code_verifier()
    resp = JSONResponse({"url": build_authorize_url(callback_url(request), state, verifier)})
    _set_cookie(resp, STATE_COOKIE, state, OAUTH_COOKIE_MAX_AGE)
    _set_cookie(resp, VERIFIER_COOKIE, verifier, OAUTH_COOKIE_MAX_AGE)
    _set_cookie(resp, NEXT_COOKIE, safe_next(next_path), OAUTH_COOKIE_MAX_AGE)
    return resp


@router.get("/callback/vercel")
async def auth_callback_vercel(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> Response:
    next_path = safe_next(request.cookies.get(NEXT_COOKIE))

    if error:
        fragment = urlencode({"auth_error": error_description or error})
        resp = RedirectResponse(f"{next_path}#{fragment}", status_code=302)
        _clear_oauth_cookies(resp)
        return resp

    verifier = request.cookies.get(VERIFIER_COOKIE)
    expected_state = request.cookies.get(STATE_COOKIE)
    if not code or not verifier or not state or state != expected_state:
        raise HTTPException(status_code=400, detail="Invalid OAuth callback")

    try:
        tokens = await exchange_oauth_code(code, verifier, callback_url(request))
    except OAuthExchangeError as e:
        logger.error("oauth token exchange failed status=%d", e.status_code)
        raise HTTPException(status_code=502, detail="Could not sign in with Vercel")
    if not tokens.access_token:
        raise HTTPException(status_code=502, detail="Could not sign in with Vercel")

    resp = RedirectResponse(next_path, status_code=302)
    _set_cookie(resp, SESSION_COOKIE, tokens.access_token, tokens.expires_in)
    _clear_oauth_cookies(resp)
    return resp


@router.get("/me")
async def auth_me(request: Request) -> dict[str, Any]:
    token = session_token_from_request(request)
    user = await fetch_vercel_user(token) if token else None
    if user is None:
        return {"authenticated": False}
    return {"authenticated": True, "user": user.model_dump()}


@router.post("/logout")
async def auth_logout(request: Request) -> JSONResponse:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        await revoke_oauth_token(token)
    resp = JSONResponse({"ok": True})
    resp.delete_cookie(SESSION_COOKIE, path="/")
    return resp
