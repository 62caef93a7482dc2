"""
Onboarding State Management.

Holds the accumulated answers of the wizard, keyed by step. The aggregate
is serialized into the progress snapshot on every change so a reload can
resume where the user left off.
"""

import copy
import json
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Literal

from .forms import (
    AttendeeAbout,
    AttendeePreferences,
    BasicProfile,
    Connectivity,
    CreateOrganization,
    JoinOrganization,
    OrganizerAbout,
    OrganizerPreferences,
    SkipOrganization,
    about_adapter,
    organization_setup_adapter,
    preferences_adapter,
)


class Role(Enum):
    """Account role chosen at step 0."""
    ATTENDEE = "attendee"
    ORGANIZER = "organizer"


AnswerKey = Literal[
    "role",
    "basic_profile",
    "about",
    "organization_setup",
    "connectivity",
    "preferences",
]


class RoleMismatchError(ValueError):
    """A role-shaped payload does not match the selected role."""


@dataclass
class OnboardingAnswers:
    """
    The in-progress answer set across all steps.

    Exactly one of the attendee/organizer shapes is held in `about` and
    `preferences`, selected by `role`. Unanswered steps are None.
    """
    role: Role | None = None
    basic_profile: BasicProfile | None = None
    about: AttendeeAbout | OrganizerAbout | None = None
    organization_setup: CreateOrganization | JoinOrganization | SkipOrganization | None = None
    connectivity: Connectivity | None = None
    preferences: AttendeePreferences | OrganizerPreferences | None = None

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dict."""
        data: dict[str, Any] = {"role": self.role.value if self.role else None}
        for name in ("basic_profile", "about", "organization_setup", "connectivity", "preferences"):
            value = getattr(self, name)
            data[name] = value.model_dump(mode="json") if value is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingAnswers":
        """
        Deserialize from dict.

        Raises on malformed data, including role-shaped answers that do not
        match the stored role.
        """
        def _load(key: str, loader):
            raw = data.get(key)
            return loader(raw) if raw is not None else None

        answers = cls(
            role=Role(data["role"]) if data.get("role") else None,
            basic_profile=_load("basic_profile", BasicProfile.model_validate),
            about=_load("about", about_adapter.validate_python),
            organization_setup=_load("organization_setup", organization_setup_adapter.validate_python),
            connectivity=_load("connectivity", Connectivity.model_validate),
            preferences=_load("preferences", preferences_adapter.validate_python),
        )
        for key in ("about", "organization_setup", "preferences"):
            _check_role_shape(answers.role, key, getattr(answers, key))
        return answers

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "OnboardingAnswers":
        return cls.from_dict(json.loads(json_str))


_ANSWER_KEYS = {f.name for f in fields(OnboardingAnswers)}

# Role-shaped keys: the payload's `kind` must equal the selected role
_ROLE_SHAPED = {"about", "preferences"}


def _check_role_shape(role: Role | None, key: str, value: Any) -> None:
    if value is None:
        return
    if key in _ROLE_SHAPED:
        if role is None:
            raise RoleMismatchError(f"Cannot record '{key}' before a role is selected")
        if value.kind != role.value:
            raise RoleMismatchError(
                f"'{key}' payload is for {value.kind}, but role is {role.value}"
            )
    if key == "organization_setup" and role is not Role.ORGANIZER:
        raise RoleMismatchError("Organization setup is only available to organizers")


class StepDataStore:
    """
    Single source of truth for the wizard's answers.

    `update` replaces one top-level field; there is no merging inside a
    field. Selecting a different role after one was set restarts the flow:
    every other answer is dropped.
    """

    def __init__(self, answers: OnboardingAnswers | None = None):
        self._answers = answers or OnboardingAnswers()

    @property
    def role(self) -> Role | None:
        return self._answers.role

    def update(self, key: AnswerKey, value: Any) -> bool:
        """
        Replace the answer stored under `key`.

        Returns True when the update restarted the flow (role changed).
        """
        if key not in _ANSWER_KEYS:
            raise KeyError(f"Unknown answer key: {key}")

        if key == "role":
            role = Role(value) if value is not None else None
            restarted = self._answers.role is not None and role != self._answers.role
            if restarted:
                self._answers = OnboardingAnswers()
            self._answers.role = role
            return restarted

        _check_role_shape(self._answers.role, key, value)
        setattr(self._answers, key, value)
        return False

    def get(self, key: AnswerKey) -> Any:
        return getattr(self._answers, key)

    def snapshot(self) -> OnboardingAnswers:
        """Deep copy of the current answers."""
        return copy.deepcopy(self._answers)

    def replace(self, answers: OnboardingAnswers) -> None:
        """Swap in a rehydrated aggregate."""
        self._answers = copy.deepcopy(answers)

    def reset(self) -> None:
        self._answers = OnboardingAnswers()

    def to_dict(self) -> dict:
        return self._answers.to_dict()
