"""
Onboarding Payload Builders.

Maps the finished OnboardingAnswers onto the rows written at submission:
- user_profiles  -> build_profile_update()
- user_preferences -> build_preferences_row()
- user_roles     -> build_role_grant()

Skipped steps are written as explicit nulls, never omitted: submitting
with connectivity skipped blanks any previously stored links.
"""

from datetime import datetime

from .forms import AttendeeAbout, AttendeePreferences, OrganizerAbout, OrganizerPreferences
from .state import OnboardingAnswers, Role

# Column names per role-specific about shape
ATTENDEE_ABOUT_COLUMNS = ("organization", "bio", "skills", "experience_level")
ORGANIZER_ABOUT_COLUMNS = ("organization", "job_title", "organization_type")


class IncompleteAnswersError(ValueError):
    """Required answers are missing; nothing can be committed."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Onboarding is missing required answers: {', '.join(missing)}")


def check_required(answers: OnboardingAnswers) -> None:
    """Role, basic profile and preferences must be present to submit."""
    missing = [
        key for key in ("role", "basic_profile", "preferences")
        if getattr(answers, key) is None
    ]
    if missing:
        raise IncompleteAnswersError(missing)


def build_profile_update(answers: OnboardingAnswers, completed_at: datetime, total_steps: int) -> dict:
    """
    Build the user_profiles update.

    Includes basic profile, connectivity (nulls when skipped), the
    role-specific about columns (nulls when unanswered) and completion stamps.
    """
    check_required(answers)
    profile = answers.basic_profile
    connectivity = answers.connectivity

    update = {
        "full_name": profile.display_name,
        "username": profile.handle,
        "avatar_url": profile.avatar_url,
        "linkedin_url": connectivity.linkedin_url if connectivity else None,
        "github_url": connectivity.github_url if connectivity else None,
        "twitter_url": connectivity.twitter_url if connectivity else None,
        "phone": connectivity.phone if connectivity else None,
        "onboarding_completed_at": completed_at.isoformat(),
        "onboarding_step": total_steps,
    }

    about = answers.about
    if answers.role is Role.ATTENDEE:
        if isinstance(about, AttendeeAbout):
            update.update({
                "organization": about.organization,
                "bio": about.bio,
                "skills": about.skills,
                "experience_level": about.experience_level,
            })
        else:
            update.update({column: None for column in ATTENDEE_ABOUT_COLUMNS})
    else:
        if isinstance(about, OrganizerAbout):
            update.update({
                "organization": about.organization_name,
                "job_title": about.job_title,
                "organization_type": about.organization_type,
            })
        else:
            update.update({column: None for column in ORGANIZER_ABOUT_COLUMNS})

    return update


def build_preferences_row(user_id: str, answers: OnboardingAnswers) -> dict:
    """Build the user_preferences upsert row (keyed by user_id)."""
    check_required(answers)
    prefs = answers.preferences

    if isinstance(prefs, AttendeePreferences):
        return {
            "user_id": user_id,
            "event_interests": prefs.event_interests,
            "looking_for": prefs.looking_for,
            "notification_frequency": prefs.notification_frequency,
        }

    if isinstance(prefs, OrganizerPreferences):
        return {
            "user_id": user_id,
            "expected_event_types": prefs.expected_event_types,
            "team_size": prefs.team_size,
        }

    raise TypeError(f"Unsupported preferences payload: {type(prefs).__name__}")


def build_role_grant(user_id: str, role: Role) -> dict:
    """Build the user_roles upsert row (keyed by user_id + role)."""
    return {"user_id": user_id, "role": role.value}
