"""
Derived role cache.

Route guards ask `get_user_roles()` which roles a user holds. Results are
cached per user; `refresh_user_roles()` re-reads user_roles after a grant.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# user_id -> granted role names
_role_cache: dict[str, set[str]] = {}


def _fetch_roles(client: Any, user_id: str) -> set[str]:
    response = client.table("user_roles").select("role").eq("user_id", user_id).execute()
    return {row["role"] for row in (response.data or [])}


def get_user_roles(user_id: str, client: Any | None = None) -> set[str]:
    """Cached roles for a user."""
    if user_id not in _role_cache:
        if client is None:
            from thittam.db.client import get_service_client
            client = get_service_client()
        _role_cache[user_id] = _fetch_roles(client, user_id)
    return set(_role_cache[user_id])


async def refresh_user_roles(user_id: str, client: Any | None = None) -> set[str]:
    """Re-read a user's roles into the cache."""
    if client is None:
        from thittam.db.client import get_service_client
        client = get_service_client()
    roles = _fetch_roles(client, user_id)
    _role_cache[user_id] = roles
    logger.debug(f"Refreshed roles for user {user_id}: {sorted(roles)}")
    return set(roles)


def invalidate_user_roles(user_id: str) -> None:
    _role_cache.pop(user_id, None)
