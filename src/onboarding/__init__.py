"""
Thittam Onboarding.

Two-role (attendee / organizer) account onboarding wizard. Collects answers
step by step, saves progress for 24 hours so a reload can resume, and
commits everything in order when the user finishes.

Steps:
0. Role selection
1. Basic profile
2. About you (attendee) / Organization setup (organizer)
3. Connectivity (optional)
4. Preferences -> submit
"""

from .state import OnboardingAnswers, Role, StepDataStore
from .steps import FlowVariant, StepId, StepSequencer, steps_for
from .persistence import ProgressPersistence, KeyValueStore
from .submission import SubmissionOrchestrator, SubmissionError, SubmissionResult
from .wizard import OnboardingWizard

__all__ = [
    "OnboardingAnswers",
    "Role",
    "StepDataStore",
    "FlowVariant",
    "StepId",
    "StepSequencer",
    "steps_for",
    "ProgressPersistence",
    "KeyValueStore",
    "SubmissionOrchestrator",
    "SubmissionError",
    "SubmissionResult",
    "OnboardingWizard",
]
