"""
Authentication for the onboarding API.

Every request carries the caller's Supabase access token. The token is
checked against Supabase Auth, and the onboarding writes for that request
go through a client scoped to it, so row-level security applies to the
user who is onboarding. Tokens are never reused across requests; a
refreshed token simply arrives with the next call.
"""

import logging
from typing import Any

from fastapi import HTTPException, Header
from pydantic import BaseModel

from thittam.db.client import get_authenticated_client, get_service_client

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class AuthenticatedUser(BaseModel):
    """The onboarding user behind the current request."""
    id: str
    email: str | None
    access_token: str

    def client(self) -> Any:
        """Supabase client acting as this user, for this request's token."""
        return get_authenticated_client(self.access_token)


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    if not authorization.lower().startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Invalid authorization format")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Empty bearer token")
    return token


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """Resolve the onboarding user from "Authorization: Bearer <access_token>"."""
    access_token = _bearer_token(authorization)

    try:
        user_response = get_service_client().auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Rejected onboarding request, token validation failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = user_response.user
    return AuthenticatedUser(id=str(user.id), email=user.email, access_token=access_token)
