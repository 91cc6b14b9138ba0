from __future__ import annotations

import datetime as dt
import logging
from enum import Enum
from typing import Any, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from medifind.core.config import get_settings

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)

_ALGORITHM = "HS256"
_OWNER_ROLE = "owner"


class AccessTier(str, Enum):
    """Caller tier gating result filter/sort privileges."""

    GUEST = "guest"
    MEMBER = "member"


def _sign(subject: str, claims: dict[str, Any]) -> str:
    settings = get_settings()
    payload = {
        "sub": subject,
        **claims,
        "exp": dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=settings.member_token_ttl_hours),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def _verify(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired") from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def create_member_token(email: str) -> str:
    """
    Create a member JWT for an authenticated customer.

    Account management lives with the identity store; this only signs the
    claim the API trusts when deciding the access tier.

    Args:
        email: Customer email, stored as the ``sub`` claim

    Returns:
        JWT token string
    """
    return _sign(email, {"tier": AccessTier.MEMBER.value})


def create_owner_token(email: str) -> str:
    """Create a JWT for a pharmacy owner; ``sub`` is the store's owner email."""
    return _sign(email, {"role": _OWNER_ROLE})


def decode_member_token(token: str) -> str:
    """
    Verify a member token and return its subject.

    Raises:
        HTTPException: If the token is invalid, expired or not a member token
    """
    payload = _verify(token)
    subject = payload.get("sub")
    if not subject or payload.get("tier") != AccessTier.MEMBER.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return subject


async def get_access_tier(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AccessTier:
    """
    Resolve the caller's access tier from an optional bearer token.

    No token means guest. A token that is present but invalid is rejected
    rather than silently downgraded.
    """
    if credentials is None:
        return AccessTier.GUEST

    subject = decode_member_token(credentials.credentials)
    logger.debug("Member request from %s", subject)
    return AccessTier.MEMBER


async def require_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Verify an owner JWT and return the owner email it was issued for.

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if it is
            valid but not an owner token
    """
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    payload = _verify(credentials.credentials)
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if payload.get("role") != _OWNER_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return subject


__all__ = [
    "AccessTier",
    "create_member_token",
    "create_owner_token",
    "decode_member_token",
    "get_access_tier",
    "require_owner",
]
