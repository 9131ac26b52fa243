"""Google identity verification.

A bearer token is tried first as an OAuth access token (userinfo lookup), then
as a signed ID token verified locally against Google's published keys.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from jose import JWTError
from pydantic import BaseModel

from app.Core.config import get_settings
from app.Core.secrets import get_secret
from .jwks_cache import GOOGLE_ISSUERS, GOOGLE_JWKS

logger = logging.getLogger("auth.google")

USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


class AuthenticationError(Exception):
    """No credential, or a credential that does not verify."""


class NotAllowedError(Exception):
    """Verified identity outside the configured allow-list."""


class AuthUser(BaseModel):
    email: str
    name: Optional[str] = None


async def fetch_userinfo(token: str) -> Optional[AuthUser]:
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            r = await client.get(USERINFO_URL, headers={"Authorization": f"Bearer {token}"})
    except httpx.HTTPError as exc:
        logger.info("userinfo lookup failed (%s), trying ID token verification", exc)
        return None
    if r.status_code != 200:
        return None
    try:
        data = r.json()
    except ValueError:
        return None
    if not isinstance(data, dict) or not data.get("email"):
        return None
    return AuthUser(email=data["email"], name=data.get("name"))


async def verify_id_token(token: str) -> Optional[AuthUser]:
    client_id = await get_secret("GOOGLE_CLIENT_ID")
    if not client_id:
        return None
    try:
        claims = await GOOGLE_JWKS.verify(token, audience=client_id, issuers=GOOGLE_ISSUERS)
    except (JWTError, ValueError, httpx.HTTPError) as exc:
        logger.error("Error verifying Google token: %s", exc)
        return None
    email = claims.get("email")
    if not email:
        return None
    return AuthUser(email=email, name=claims.get("name"))


async def verify_google_token(token: str) -> Optional[AuthUser]:
    user = await fetch_userinfo(token)
    if user is not None:
        return user
    return await verify_id_token(token)


def is_user_whitelisted(email: str) -> bool:
    whitelist = get_settings().user_whitelist
    if not whitelist:
        return True
    return email.lower() in whitelist


async def get_user_from_auth_header(auth_header: Optional[str]) -> AuthUser:
    """Resolve the caller from an ``Authorization: Bearer ...`` header.

    Raises ``AuthenticationError`` for a missing or unverifiable token and
    ``NotAllowedError`` when the verified email is not allow-listed.
    """
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Missing bearer token")
    token = auth_header[len("Bearer "):].strip()
    if not token:
        raise AuthenticationError("Missing bearer token")

    user = await verify_google_token(token)
    if user is None:
        raise AuthenticationError("Invalid token")
    if not is_user_whitelisted(user.email):
        raise NotAllowedError("User not authorized")
    return user
