"""
Thittam - Supabase Client.

Low-level database access. All queries go through here.
"""

from supabase import Client, create_client

from thittam.config import settings

# Singleton client instances
_client: Client | None = None
_service_client: Client | None = None


def get_client() -> Client:
    """
    Get the anon-key Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )

    return _client


def get_service_client() -> Client:
    """
    Get the service-role Supabase client.

    Bypasses RLS. Used for token validation and server-side writes.
    """
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def get_authenticated_client(access_token: str) -> Client:
    """
    Get a Supabase client acting as the user behind access_token.

    A fresh client per request, so RLS policies see the caller's identity.
    """
    client = create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
    )
    client.postgrest.auth(access_token)
    return client


def reset_clients() -> None:
    """Drop cached clients (used by tests and after settings changes)."""
    global _client, _service_client
    _client = None
    _service_client = None
