"""
Onboarding Forms - typed payloads for each wizard step.

Every step produces exactly one of these models. Role-dependent steps use
tagged variants so the payload shape can be recovered from stored JSON:
- about / preferences are discriminated by `kind` ("attendee" | "organizer")
- organization setup is discriminated by `action` ("create" | "join" | "skip")
"""

import logging
import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationInfo, field_validator

logger = logging.getLogger(__name__)


# =============================================================================
# Valid Options
# =============================================================================

EXPERIENCE_LEVELS = ["beginner", "intermediate", "advanced", "expert"]

ORGANIZATION_TYPES = ["college", "company", "industry", "non_profit", "community", "other"]

ORGANIZATION_CATEGORIES = {
    "COLLEGE": "College / University",
    "COMPANY": "Company / Startup",
    "INDUSTRY": "Industry Association",
    "NON_PROFIT": "Non-profit / NGO",
}

NOTIFICATION_FREQUENCIES = ["realtime", "daily", "weekly", "never"]

TEAM_SIZES = ["solo", "2-5", "6-20", "21-50", "50+"]

SLUG_MAX_LENGTH = 50
SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


def generate_slug(name: str) -> str:
    """
    Derive a URL handle from an organization name.

    "Tech University!" -> "tech-university"
    """
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    slug = re.sub(r"^-+|-+$", "", slug)
    return slug[:SLUG_MAX_LENGTH]


def _blank_to_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


# =============================================================================
# Step 1: Basic Profile
# =============================================================================

class BasicProfile(BaseModel):
    """Name, handle and avatar shown across the platform."""

    display_name: str = Field(min_length=1, max_length=100)
    handle: str = Field(min_length=3, max_length=30)
    avatar_url: str | None = None

    @field_validator("handle", mode="before")
    @classmethod
    def normalize_handle(cls, v: str) -> str:
        """Handles are stored lowercase without a leading @."""
        return v.strip().lstrip("@").lower() if isinstance(v, str) else v

    @field_validator("avatar_url", mode="before")
    @classmethod
    def blank_avatar(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


# =============================================================================
# Step 2: About You (attendee) / About (organizer, "about" variant)
# =============================================================================

class AttendeeAbout(BaseModel):
    """Attendee background."""

    kind: Literal["attendee"] = "attendee"
    organization: str | None = None
    bio: str | None = Field(default=None, max_length=500)
    skills: list[str] = Field(default_factory=list)
    experience_level: Literal["beginner", "intermediate", "advanced", "expert"] | None = None

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, v: list[str] | None) -> list[str]:
        """Drop empty entries and duplicates, keep first-seen order."""
        if not v:
            return []
        seen: list[str] = []
        for skill in v:
            if skill and skill.strip() and skill.strip() not in seen:
                seen.append(skill.strip())
        return seen


class OrganizerAbout(BaseModel):
    """Organizer background (used when inline organization setup is off)."""

    kind: Literal["organizer"] = "organizer"
    organization_name: str | None = None
    job_title: str | None = None
    organization_type: str | None = None

    @field_validator("organization_type")
    @classmethod
    def check_organization_type(cls, v: str | None) -> str | None:
        if v is not None and v not in ORGANIZATION_TYPES:
            # Accept free-form types, the list is a UI hint
            logger.info(f"Unknown organization type (accepted): {v}")
        return v


AboutData = Annotated[Union[AttendeeAbout, OrganizerAbout], Field(discriminator="kind")]


# =============================================================================
# Step 2 (organizer variant): Organization Setup
# =============================================================================

class CreateOrganization(BaseModel):
    """Create a brand-new organization owned by the user."""

    action: Literal["create"] = "create"
    name: str = Field(min_length=2, max_length=100)
    slug: str = Field(default="", max_length=SLUG_MAX_LENGTH, validate_default=True)
    category: Literal["COLLEGE", "COMPANY", "INDUSTRY", "NON_PROFIT"]
    description: str | None = Field(default=None, max_length=1000)
    website: str | None = None
    email: str | None = None

    @field_validator("website", "email", "description", mode="before")
    @classmethod
    def blank_optional(cls, v: str | None) -> str | None:
        return _blank_to_none(v)

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            v = generate_slug(info.data.get("name", ""))
        if not SLUG_PATTERN.match(v):
            raise ValueError("Use only lowercase letters, numbers, and hyphens")
        return v


class JoinOrganization(BaseModel):
    """Request membership in an existing organization."""

    action: Literal["join"] = "join"
    organization_id: str = Field(min_length=1)
    organization_name: str = ""


class SkipOrganization(BaseModel):
    """Defer organization setup until after onboarding."""

    action: Literal["skip"] = "skip"


OrganizationSetup = Annotated[
    Union[CreateOrganization, JoinOrganization, SkipOrganization],
    Field(discriminator="action"),
]


# =============================================================================
# Step 3: Connectivity
# =============================================================================

class Connectivity(BaseModel):
    """Optional social links and phone. The whole step may be skipped."""

    linkedin_url: str | None = None
    github_url: str | None = None
    twitter_url: str | None = None
    phone: str | None = None

    @field_validator("linkedin_url", "github_url", "twitter_url", "phone", mode="before")
    @classmethod
    def blank_optional(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


# =============================================================================
# Step 4: Preferences
# =============================================================================

class AttendeePreferences(BaseModel):
    """What the attendee wants to hear about."""

    kind: Literal["attendee"] = "attendee"
    event_interests: list[str] = Field(default_factory=list)
    looking_for: list[str] = Field(default_factory=list)
    notification_frequency: Literal["realtime", "daily", "weekly", "never"] = "weekly"


class OrganizerPreferences(BaseModel):
    """What the organizer expects to run."""

    kind: Literal["organizer"] = "organizer"
    expected_event_types: list[str] = Field(default_factory=list)
    team_size: Literal["solo", "2-5", "6-20", "21-50", "50+"] | None = None


PreferencesData = Annotated[
    Union[AttendeePreferences, OrganizerPreferences],
    Field(discriminator="kind"),
]


# Adapters used to rebuild tagged payloads from stored JSON
about_adapter: TypeAdapter = TypeAdapter(AboutData)
organization_setup_adapter: TypeAdapter = TypeAdapter(OrganizationSetup)
preferences_adapter: TypeAdapter = TypeAdapter(PreferencesData)


def get_form_options() -> dict:
    """Option lists for rendering the step forms."""
    return {
        "experience_levels": EXPERIENCE_LEVELS,
        "organization_types": ORGANIZATION_TYPES,
        "organization_categories": [
            {"id": key, "label": label} for key, label in ORGANIZATION_CATEGORIES.items()
        ],
        "notification_frequencies": NOTIFICATION_FREQUENCIES,
        "team_sizes": TEAM_SIZES,
    }
