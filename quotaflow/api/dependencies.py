"""
FastAPI dependencies for token checks and the acting user.

Session authentication is handled in front of this service. Every route
sits behind a bearer token; the actor header is only trusted once the
token has been checked.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Query, status

from quotaflow.config import settings


def _matches(candidate: Optional[str], secret: Optional[str]) -> bool:
    if not candidate or not secret:
        return False
    return secrets.compare_digest(candidate, secret)


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return None


async def require_admin_token(
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Require `Authorization: Bearer <ADMIN_API_TOKEN>`.

    Raises 403 when the token is missing, wrong or not configured.
    """
    if not _matches(_bearer(authorization), settings.admin_api_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )


async def require_api_token(
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Require `Authorization: Bearer <API_TOKEN>` on user-facing routes.

    The admin token is accepted too. Raises 403 otherwise.
    """
    token = _bearer(authorization)
    if _matches(token, settings.api_token) or _matches(token, settings.admin_api_token):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Forbidden",
    )


async def require_cron_auth(
    authorization: Optional[str] = Header(None),
    x_vercel_cron: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
) -> None:
    """
    Accept the platform cron header, or the cron secret as a bearer token
    or `?token=` query parameter.
    """
    if x_vercel_cron == "1":
        return
    if _matches(_bearer(authorization), settings.cron_secret) or _matches(token, settings.cron_secret):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Forbidden",
    )


async def get_actor_user_id(
    x_actor_user_id: Optional[int] = Header(None),
) -> Optional[int]:
    """Acting user id for audit entries, if the caller supplied one."""
    return x_actor_user_id


async def require_actor_user_id(
    x_actor_user_id: Optional[int] = Header(None),
) -> int:
    """Acting user id; 401 when absent."""
    if x_actor_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_actor_user_id
