import datetime
import logging
from typing import Any

import httpx
import jwt
from fastapi import HTTPException
from fastapi import Request
from pydantic import BaseModel

from neo import config

logger = logging.getLogger("neo.auth")

VERCEL_USER_URL = "https://api.vercel.com/v2/user"
VERCEL_TOKEN_URL = "https://vercel.com/api/login/oauth/token"
VERCEL_REVOKE_URL = "https://vercel.com/api/login/oauth/token/revoke"


class CurrentUser(BaseModel):
    id: str
    name: str | None = None
    username: str | None = None
    email: str | None = None
    avatar: str | None = None
    plan: str | None = None

    @property
    def has_pro_access(self) -> bool:
        return (self.plan or "").lower() == "pro"


def make_stream_token(payload: dict[str, Any]) -> str:
    """Sign a payload that authorizes one SSE connection."""
    now = datetime.datetime.now(datetime.timezone.utc)
    claims = {
        **payload,
        "iat": now,
        "exp": now + datetime.timedelta(seconds=config.STREAM_TOKEN_TTL_SECONDS),
    }
    return jwt.encode(claims, config.STREAM_TOKEN_SECRET, algorithm="HS256")


def read_stream_token(token: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, config.STREAM_TOKEN_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Stream token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid stream token")
    claims.pop("iat", None)
    claims.pop("exp", None)
    return claims


def normalize_vercel_user(raw: dict[str, Any]) -> CurrentUser:
    user_data = raw.get("user") or raw

    avatar_hash = user_data.get("avatar")
    avatar_url = user_data.get("avatarUrl")
    if not avatar_url and avatar_hash and isinstance(avatar_hash, str):
        avatar_url = f"https://vercel.com/api/www/avatar/{avatar_hash}"

    billing = user_data.get("billing") or {}
    plan = billing.get("plan")

    return CurrentUser(
        id=str(user_data.get("id") or user_data.get("uid") or ""),
        name=user_data.get("name"),
        username=user_data.get("username"),
        email=user_data.get("email"),
        avatar=avatar_url,
        plan=plan if isinstance(plan, str) and plan else None,
    )


def session_token_from_request(request: Request) -> str | None:
    token = request.cookies.get("session_token")
    if token:
        return token
    header = request.headers.get("authorization") or ""
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


async def fetch_vercel_user(access_token: str) -> CurrentUser | None:
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            resp = await client.get(
                VERCEL_USER_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.info("vercel user lookup failed: %s", str(e))
            return None
    user = normalize_vercel_user(resp.json())
    return user if user.id else None


async def require_user(request: Request) -> CurrentUser:
    """FastAPI dependency resolving the signed-in user or failing with 401."""
    token = session_token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="User not authenticated")
    user = await fetch_vercel_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return user


class OAuthTokens(BaseModel):
    access_token: str
    expires_in: int = 3600


class OAuthExchangeError(Exception):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"token exchange failed with status {status_code}")
        self.status_code = status_code
        self.body = body


async def exchange_oauth_code(code: str, verifier: str, redirect_uri: str) -> OAuthTokens:
    """Trade an authorization code (plus PKCE verifier) for an access token."""
    async with httpx.AsyncClient(timeout=15.0) as client:
        resp = await client.post(
            VERCEL_TOKEN_URL,
            data={
                "client_id": config.VERCEL_OAUTH_CLIENT_ID,
                "client_secret": config.VERCEL_OAUTH_CLIENT_SECRET,
                "code": code,
                "code_verifier": verifier,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
    if resp.status_code >= 400:
        raise OAuthExchangeError(resp.status_code, resp.text)
    data = resp.json()
    return OAuthTokens(
        access_token=data.get("access_token") or "",
        expires_in=int(data.get("expires_in") or 3600),
    )


async def revoke_oauth_token(token: str) -> None:
    if not config.VERCEL_OAUTH_CLIENT_ID or not config.VERCEL_OAUTH_CLIENT_SECRET:
        return
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            await client.post(
                VERCEL_REVOKE_URL,
                data={"token": token},
                auth=(config.VERCEL_OAUTH_CLIENT_ID, config.VERCEL_OAUTH_CLIENT_SECRET),
            )
        except httpx.HTTPError as e:
            logger.warning("token revoke failed: %s", str(e))
