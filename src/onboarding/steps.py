"""
Onboarding Steps - role branching and navigation.

The step list depends on the selected role:

    role unset:  [role_selection]
    attendee:    [role_selection, basic_profile, about, connectivity, preferences]
    organizer:   [role_selection, basic_profile, organization_setup, connectivity, preferences]

Organizers get `about` instead of `organization_setup` under FlowVariant.ABOUT.
"""

import dataclasses
from enum import Enum
from typing import Callable

from .state import OnboardingAnswers, Role


class StepId(Enum):
    """Stable step identifiers."""
    ROLE_SELECTION = "role_selection"
    BASIC_PROFILE = "basic_profile"
    ABOUT = "about"
    ORGANIZATION_SETUP = "organization_setup"
    CONNECTIVITY = "connectivity"
    PREFERENCES = "preferences"


class FlowVariant(Enum):
    """Which step organizers see at index 2."""
    ORGANIZATION_SETUP = "organization_setup"
    ABOUT = "about"


STEP_LABELS = {
    StepId.ROLE_SELECTION: "Role",
    StepId.BASIC_PROFILE: "Profile",
    StepId.ABOUT: "About",
    StepId.ORGANIZATION_SETUP: "Organization",
    StepId.CONNECTIVITY: "Connect",
    StepId.PREFERENCES: "Preferences",
}


def steps_for(role: Role | None, variant: FlowVariant = FlowVariant.ORGANIZATION_SETUP) -> list[StepId]:
    """Ordered step ids for a role. Not cached: the role changes at step 0."""
    if role is None:
        return [StepId.ROLE_SELECTION]

    if role is Role.ORGANIZER and variant is FlowVariant.ORGANIZATION_SETUP:
        third = StepId.ORGANIZATION_SETUP
    else:
        third = StepId.ABOUT

    return [
        StepId.ROLE_SELECTION,
        StepId.BASIC_PROFILE,
        third,
        StepId.CONNECTIVITY,
        StepId.PREFERENCES,
    ]


def step_labels(role: Role | None, variant: FlowVariant = FlowVariant.ORGANIZATION_SETUP) -> list[str]:
    """Progress-bar labels for a role."""
    return [STEP_LABELS[step] for step in steps_for(role, variant)]


# Answer keys owned by a step that only one organizer variant shows
_BRANCH_STEPS = {
    "about": StepId.ABOUT,
    "organization_setup": StepId.ORGANIZATION_SETUP,
}


class StepNotInFlowError(ValueError):
    """An answer was given for a step the current flow does not show."""


def check_step_in_flow(role: Role | None, variant: FlowVariant, key: str) -> None:
    """Reject answers for the variant step the user never sees."""
    step = _BRANCH_STEPS.get(key)
    if role is None or step is None:
        return
    if step not in steps_for(role, variant):
        raise StepNotInFlowError(
            f"'{key}' is not a step of the {role.value} flow ({variant.value} variant)"
        )


def drop_inactive_answers(answers: OnboardingAnswers, variant: FlowVariant) -> OnboardingAnswers:
    """Copy of the answers without values for steps outside the flow."""
    active = steps_for(answers.role, variant)
    kept = dataclasses.replace(answers)
    for key, step in _BRANCH_STEPS.items():
        if step not in active:
            setattr(kept, key, None)
    return kept


def clamp(index: int, total_steps: int) -> int:
    return max(0, min(index, total_steps - 1))


class StepSequencer:
    """
    Step index state machine.

    The index always lies in [0, total_steps - 1]; every transition clamps.
    Role gating of "continue" is the caller's job, the sequencer trusts it.
    """

    def __init__(self, total_steps: Callable[[], int], index: int = 0):
        self._total_steps = total_steps
        self._index = clamp(index, self.total_steps)

    @property
    def total_steps(self) -> int:
        return self._total_steps()

    @property
    def current(self) -> int:
        # Re-clamp on read: total_steps shrinks to 1 when the role is reset
        return clamp(self._index, self.total_steps)

    @property
    def is_last(self) -> bool:
        return self.current == self.total_steps - 1

    def next(self) -> int:
        return self.go_to(self.current + 1)

    def prev(self) -> int:
        return self.go_to(self.current - 1)

    def go_to(self, index: int) -> int:
        self._index = clamp(index, self.total_steps)
        return self._index

    def restore(self, index: int) -> int:
        """Rehydrate from a saved snapshot."""
        return self.go_to(index)
