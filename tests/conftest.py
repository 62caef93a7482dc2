"""
Pytest configuration and fixtures for onboarding tests.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

# Set test environment before importing thittam modules
os.environ["APP_ENV"] = "development"
os.environ["ONBOARDING_STORE"] = "memory"

from onboarding.directory import CreatedOrganization
from onboarding.forms import (
    AttendeeAbout,
    AttendeePreferences,
    BasicProfile,
    Connectivity,
    CreateOrganization,
    JoinOrganization,
    OrganizerPreferences,
    SkipOrganization,
)
from onboarding.persistence import InMemoryKeyValueStore, ProgressPersistence, progress_key
from onboarding.state import OnboardingAnswers, Role

USER_ID = "user-1"


class FrozenClock:
    """Controllable now() for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FakeIdentityStore:
    """In-memory user_profiles / user_preferences / user_roles."""

    def __init__(self, calls: list[str], fail_on: str | None = None):
        self.calls = calls
        self.fail_on = fail_on
        self.profiles: dict[str, dict] = {}
        self.preferences: dict[str, dict] = {}
        self.roles: set[tuple[str, str]] = set()

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    async def update_profile(self, user_id: str, fields: dict) -> None:
        self._record("update_profile")
        self.profiles.setdefault(user_id, {}).update(fields)

    async def upsert_preferences(self, user_id: str, fields: dict) -> None:
        self._record("upsert_preferences")
        self.preferences[user_id] = dict(fields)

    async def upsert_role_grant(self, user_id: str, role: str) -> None:
        self._record("upsert_role_grant")
        self.roles.add((user_id, role))


class FakeOrganizationDirectory:
    """In-memory organizations and membership requests."""

    def __init__(self, calls: list[str], fail_on: str | None = None):
        self.calls = calls
        self.fail_on = fail_on
        self.organizations: dict[str, dict] = {}
        self.join_requests: set[tuple[str, str]] = set()

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    async def create_organization(self, user_id: str, setup: CreateOrganization) -> CreatedOrganization:
        self._record("create_organization")
        org_id = f"org_{len(self.organizations) + 1}"
        self.organizations[org_id] = {"id": org_id, "slug": setup.slug, "owner_id": user_id}
        return CreatedOrganization(id=org_id, slug=setup.slug)

    async def request_join(self, user_id: str, organization_id: str) -> None:
        self._record("request_join")
        self.join_requests.add((user_id, organization_id))

    async def search_organizations(self, query: str, limit: int = 10) -> list[dict]:
        self._record("search_organizations")
        return [
            {"id": "org_42", "name": "Tech University", "slug": "tech-university", "category": "COLLEGE"},
        ][:limit]


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def persistence(kv_store, clock):
    return ProgressPersistence(kv_store, progress_key(USER_ID), now=clock)


@pytest.fixture
def calls():
    """Shared, ordered log of remote calls across fakes."""
    return []


@pytest.fixture
def identity(calls):
    return FakeIdentityStore(calls)


@pytest.fixture
def directory(calls):
    return FakeOrganizationDirectory(calls)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.ilike.return_value = mock_table
    mock_table.order.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.maybe_single.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def basic_profile():
    return BasicProfile(display_name="Priya Raman", handle="@Priya", avatar_url="https://cdn.example.com/p.png")


@pytest.fixture
def attendee_answers(basic_profile):
    """A complete attendee answer set."""
    return OnboardingAnswers(
        role=Role.ATTENDEE,
        basic_profile=basic_profile,
        about=AttendeeAbout(
            organization="Anna University",
            bio="Backend developer",
            skills=["python", "sql"],
            experience_level="intermediate",
        ),
        connectivity=Connectivity(github_url="https://github.com/priya"),
        preferences=AttendeePreferences(
            event_interests=["hackathons", "workshops"],
            looking_for=["networking"],
            notification_frequency="daily",
        ),
    )


@pytest.fixture
def make_organizer_answers(basic_profile):
    """Factory for a complete organizer answer set with the given organization setup."""
    def _make(setup) -> OnboardingAnswers:
        return OnboardingAnswers(
            role=Role.ORGANIZER,
            basic_profile=basic_profile,
            organization_setup=setup,
            connectivity=None,
            preferences=OrganizerPreferences(expected_event_types=["conference"], team_size="6-20"),
        )
    return _make


@pytest.fixture
def create_setup():
    return CreateOrganization(name="Tech University", category="COLLEGE")


@pytest.fixture
def join_setup():
    return JoinOrganization(organization_id="org_42", organization_name="Tech University")


@pytest.fixture
def skip_setup():
    return SkipOrganization()
