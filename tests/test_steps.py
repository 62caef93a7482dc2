"""
Tests for role branching and step navigation.
"""

import random

import pytest

from onboarding.state import Role
from onboarding.steps import FlowVariant, StepId, StepSequencer, step_labels, steps_for


class TestStepsFor:
    """Test the role -> step sequence mapping."""

    def test_no_role_single_step(self):
        assert steps_for(None) == [StepId.ROLE_SELECTION]
        assert len(steps_for(None)) == 1

    def test_attendee_steps(self):
        assert steps_for(Role.ATTENDEE) == [
            StepId.ROLE_SELECTION,
            StepId.BASIC_PROFILE,
            StepId.ABOUT,
            StepId.CONNECTIVITY,
            StepId.PREFERENCES,
        ]

    def test_organizer_gets_organization_setup(self):
        steps = steps_for(Role.ORGANIZER)
        assert len(steps) == 5
        assert steps[2] == StepId.ORGANIZATION_SETUP

    def test_organizer_about_variant(self):
        steps = steps_for(Role.ORGANIZER, FlowVariant.ABOUT)
        assert steps[2] == StepId.ABOUT

    def test_attendee_ignores_variant(self):
        assert steps_for(Role.ATTENDEE, FlowVariant.ORGANIZATION_SETUP)[2] == StepId.ABOUT

    def test_labels(self):
        assert step_labels(None) == ["Role"]
        assert step_labels(Role.ORGANIZER) == ["Role", "Profile", "Organization", "Connect", "Preferences"]
        assert step_labels(Role.ATTENDEE) == ["Role", "Profile", "About", "Connect", "Preferences"]


class TestStepSequencer:
    """Test clamped navigation."""

    def test_starts_at_zero(self):
        seq = StepSequencer(lambda: 5)
        assert seq.current == 0

    def test_next_and_prev(self):
        seq = StepSequencer(lambda: 5)
        assert seq.next() == 1
        assert seq.next() == 2
        assert seq.prev() == 1

    def test_next_stops_at_last(self):
        seq = StepSequencer(lambda: 5, index=4)
        assert seq.next() == 4
        assert seq.is_last

    def test_prev_stops_at_zero(self):
        seq = StepSequencer(lambda: 5)
        assert seq.prev() == 0

    def test_go_to_clamps(self):
        seq = StepSequencer(lambda: 5)
        assert seq.go_to(99) == 4
        assert seq.go_to(-3) == 0
        assert seq.go_to(2) == 2

    def test_single_step_when_role_unset(self):
        seq = StepSequencer(lambda: 1)
        assert seq.next() == 0
        assert seq.go_to(3) == 0

    def test_restore_clamps(self):
        seq = StepSequencer(lambda: 5)
        assert seq.restore(7) == 4

    def test_total_steps_queried_live(self):
        total = {"n": 1}
        seq = StepSequencer(lambda: total["n"])
        assert seq.next() == 0
        total["n"] = 5
        assert seq.next() == 1

    def test_current_reclamps_when_total_shrinks(self):
        total = {"n": 5}
        seq = StepSequencer(lambda: total["n"], index=3)
        total["n"] = 1
        assert seq.current == 0

    @pytest.mark.parametrize("total_steps", [1, 5])
    def test_random_walk_stays_in_bounds(self, total_steps):
        rng = random.Random(7)
        seq = StepSequencer(lambda: total_steps)
        for _ in range(200):
            op = rng.choice(["next", "prev", "goto"])
            if op == "next":
                seq.next()
            elif op == "prev":
                seq.prev()
            else:
                seq.go_to(rng.randint(-10, 10))
            assert 0 <= seq.current <= total_steps - 1
