"""
Tests for the answer store and aggregate serialization.
"""

import pytest

from onboarding.forms import (
    AttendeeAbout,
    AttendeePreferences,
    Connectivity,
    CreateOrganization,
    JoinOrganization,
    OrganizerAbout,
    OrganizerPreferences,
)
from onboarding.state import OnboardingAnswers, Role, RoleMismatchError, StepDataStore


class TestStepDataStore:
    """Test update / snapshot / reset semantics."""

    def test_starts_empty(self):
        store = StepDataStore()
        assert store.snapshot() == OnboardingAnswers()
        assert store.role is None

    def test_update_replaces_whole_field(self, basic_profile):
        store = StepDataStore()
        store.update("role", Role.ATTENDEE)
        store.update("connectivity", Connectivity(github_url="https://github.com/a", phone="123"))
        store.update("connectivity", Connectivity(linkedin_url="https://linkedin.com/in/a"))

        connectivity = store.get("connectivity")
        assert connectivity.linkedin_url == "https://linkedin.com/in/a"
        # No merge with the previous value
        assert connectivity.github_url is None
        assert connectivity.phone is None

    def test_role_accepts_string(self):
        store = StepDataStore()
        store.update("role", "organizer")
        assert store.role is Role.ORGANIZER

    def test_unknown_key(self):
        store = StepDataStore()
        with pytest.raises(KeyError):
            store.update("favourite_colour", "teal")

    def test_about_requires_role(self):
        store = StepDataStore()
        with pytest.raises(RoleMismatchError):
            store.update("about", AttendeeAbout(bio="hi"))

    def test_about_must_match_role(self):
        store = StepDataStore()
        store.update("role", Role.ATTENDEE)
        with pytest.raises(RoleMismatchError):
            store.update("about", OrganizerAbout(job_title="Lead"))

    def test_preferences_must_match_role(self):
        store = StepDataStore()
        store.update("role", Role.ORGANIZER)
        with pytest.raises(RoleMismatchError):
            store.update("preferences", AttendeePreferences())
        store.update("preferences", OrganizerPreferences(team_size="solo"))
        assert store.get("preferences").team_size == "solo"

    def test_organization_setup_organizer_only(self):
        store = StepDataStore()
        store.update("role", Role.ATTENDEE)
        with pytest.raises(RoleMismatchError):
            store.update("organization_setup", JoinOrganization(organization_id="org_1"))

    def test_changing_role_restarts(self, basic_profile):
        store = StepDataStore()
        store.update("role", Role.ATTENDEE)
        store.update("basic_profile", basic_profile)

        restarted = store.update("role", Role.ORGANIZER)

        assert restarted is True
        assert store.role is Role.ORGANIZER
        assert store.get("basic_profile") is None

    def test_same_role_keeps_answers(self, basic_profile):
        store = StepDataStore()
        store.update("role", Role.ATTENDEE)
        store.update("basic_profile", basic_profile)

        assert store.update("role", Role.ATTENDEE) is False
        assert store.get("basic_profile") == basic_profile

    def test_snapshot_is_a_copy(self, attendee_answers):
        store = StepDataStore(attendee_answers)
        snap = store.snapshot()
        snap.about.skills.append("rust")
        assert store.get("about").skills == ["python", "sql"]

    def test_reset(self, attendee_answers):
        store = StepDataStore(attendee_answers)
        store.reset()
        assert store.snapshot() == OnboardingAnswers()


class TestOnboardingAnswersSerialization:
    """Test to_dict / from_dict with tagged payloads."""

    def test_attendee_round_trip(self, attendee_answers):
        restored = OnboardingAnswers.from_json(attendee_answers.to_json())
        assert restored == attendee_answers
        assert isinstance(restored.about, AttendeeAbout)
        assert isinstance(restored.preferences, AttendeePreferences)

    def test_organizer_round_trip(self, make_organizer_answers, create_setup):
        answers = make_organizer_answers(create_setup)
        restored = OnboardingAnswers.from_dict(answers.to_dict())
        assert isinstance(restored.organization_setup, CreateOrganization)
        assert restored.organization_setup.slug == "tech-university"
        assert restored == answers

    def test_empty_round_trip(self):
        data = OnboardingAnswers().to_dict()
        assert data["role"] is None
        assert OnboardingAnswers.from_dict(data) == OnboardingAnswers()

    def test_role_serialized_as_value(self, attendee_answers):
        assert attendee_answers.to_dict()["role"] == "attendee"

    def test_malformed_raises(self):
        with pytest.raises(Exception):
            OnboardingAnswers.from_dict({"role": "admin"})

    def test_role_shape_mismatch_raises(self, attendee_answers):
        data = attendee_answers.to_dict()
        data["about"] = {"kind": "organizer", "job_title": "CTO"}
        with pytest.raises(RoleMismatchError):
            OnboardingAnswers.from_dict(data)

    def test_organization_setup_for_attendee_raises(self, attendee_answers):
        data = attendee_answers.to_dict()
        data["organization_setup"] = {"action": "skip"}
        with pytest.raises(RoleMismatchError):
            OnboardingAnswers.from_dict(data)
