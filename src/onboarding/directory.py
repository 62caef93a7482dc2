"""
Onboarding Collaborators - organization directory and identity store.

The submission orchestrator talks to these protocols only. The Supabase
implementations below write to:
- organizations, organization_memberships  (SupabaseOrganizationDirectory)
- user_profiles, user_preferences, user_roles  (SupabaseIdentityStore)
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .forms import CreateOrganization

logger = logging.getLogger(__name__)


@dataclass
class CreatedOrganization:
    """Identity of an organization created during onboarding."""
    id: str
    slug: str


@runtime_checkable
class OrganizationDirectory(Protocol):
    """Organization lookup and membership."""

    async def create_organization(self, user_id: str, setup: CreateOrganization) -> CreatedOrganization:
        ...

    async def request_join(self, user_id: str, organization_id: str) -> None:
        ...

    async def search_organizations(self, query: str, limit: int = 10) -> list[dict]:
        ...


@runtime_checkable
class IdentityStore(Protocol):
    """Profile, preferences and role grants for a user."""

    async def update_profile(self, user_id: str, fields: dict) -> None:
        ...

    async def upsert_preferences(self, user_id: str, fields: dict) -> None:
        ...

    async def upsert_role_grant(self, user_id: str, role: str) -> None:
        ...


# =============================================================================
# Supabase implementations
# =============================================================================


class SupabaseOrganizationDirectory:
    """Organizations stored in Supabase."""

    def __init__(self, client: Any):
        self.client = client

    async def create_organization(self, user_id: str, setup: CreateOrganization) -> CreatedOrganization:
        """
        Insert the organization and make the creator its owner.

        The insert and the owner membership are separate writes. An
        organization this user already owns under the same slug is reused,
        so a retry after a failed membership write does not insert again.
        """
        org = self._find_owned(user_id, setup.slug)
        if org is not None:
            logger.info(f"Reusing organization {org['slug']} ({org['id']}) already owned by user {user_id}")
        else:
            response = self.client.table("organizations").insert({
                "name": setup.name,
                "slug": setup.slug,
                "category": setup.category,
                "description": setup.description,
                "website": setup.website,
                "email": setup.email,
                "owner_id": user_id,
            }).execute()

            if not response.data:
                raise RuntimeError(f"Organization '{setup.slug}' was not created")
            org = response.data[0]
            logger.info(f"Created organization {org['slug']} ({org['id']}) for user {user_id}")

        self.client.table("organization_memberships").upsert(
            {
                "organization_id": org["id"],
                "user_id": user_id,
                "role": "OWNER",
                "status": "ACTIVE",
            },
            on_conflict="organization_id,user_id",
        ).execute()

        return CreatedOrganization(id=org["id"], slug=org["slug"])

    def _find_owned(self, user_id: str, slug: str) -> dict | None:
        response = (
            self.client.table("organizations")
            .select("id, slug")
            .eq("slug", slug)
            .eq("owner_id", user_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def request_join(self, user_id: str, organization_id: str) -> None:
        """Record a pending membership. Repeating the request is harmless."""
        self.client.table("organization_memberships").upsert(
            {
                "organization_id": organization_id,
                "user_id": user_id,
                "role": "MEMBER",
                "status": "PENDING",
            },
            on_conflict="organization_id,user_id",
        ).execute()

    async def search_organizations(self, query: str, limit: int = 10) -> list[dict]:
        """Name search for the organization setup step."""
        q = self.client.table("organizations").select("id, name, slug, category")
        if query:
            q = q.ilike("name", f"%{query}%")
        response = q.order("name").limit(limit).execute()
        return response.data or []


class SupabaseIdentityStore:
    """User profile rows stored in Supabase."""

    def __init__(self, client: Any):
        self.client = client

    async def update_profile(self, user_id: str, fields: dict) -> None:
        self.client.table("user_profiles").update(fields).eq("id", user_id).execute()

    async def upsert_preferences(self, user_id: str, fields: dict) -> None:
        data = {**fields, "user_id": user_id}
        self.client.table("user_preferences").upsert(data, on_conflict="user_id").execute()

    async def upsert_role_grant(self, user_id: str, role: str) -> None:
        self.client.table("user_roles").upsert(
            {"user_id": user_id, "role": role},
            on_conflict="user_id,role",
        ).execute()
