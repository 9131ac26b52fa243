"""Shared FastAPI dependencies for authentication and ownership checks."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from pydantic import BaseModel

from app.Auth.service import AuthenticationError, NotAllowedError, get_user_from_auth_header
from app.Core.secrets import is_google_auth_configured
from app.features.presentations.schemas import PresentationMetadata


logger = logging.getLogger("auth.deps")

ANONYMOUS_EMAIL = "anonymous@dev.local"


class CurrentUser(BaseModel):
    """Caller identity shared across endpoints.

    ``auth_enabled`` is False in development mode (no Google client id
    configured); every request then acts as the anonymous identity.
    """
    email: str
    name: Optional[str] = None
    auth_enabled: bool = True


async def get_current_user(request: Request) -> CurrentUser:
    """Resolve the caller, or fall back to the anonymous identity when auth is off."""
    if not await is_google_auth_configured():
        logger.info("Auth disabled - GOOGLE_CLIENT_ID not configured")
        return CurrentUser(email=ANONYMOUS_EMAIL, auth_enabled=False)

    try:
        user = await get_user_from_auth_header(request.headers.get("Authorization"))
    except NotAllowedError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authorized")
    except AuthenticationError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    request_id = getattr(request.state, "request_id", None)
    logger.info("auth_resolved email=%s request_id=%s path=%s", user.email, request_id, request.url.path)
    return CurrentUser(email=user.email, name=user.name)


def is_owner(actor_email: str, metadata: PresentationMetadata, auth_enabled: bool) -> bool:
    """Ownership predicate; always true while auth is disabled."""
    if not auth_enabled:
        return True
    return metadata.user_id == actor_email


def require_owner(user: CurrentUser, metadata: PresentationMetadata) -> None:
    if not is_owner(user.email, metadata, user.auth_enabled):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - you do not own this presentation",
        )
