"""
Onboarding Wizard.

Facade over the answer store, step sequencer, progress persistence and
submission orchestrator. Step handlers call update_data() and the
navigation methods; the final step calls submit().

Every answer update and every navigation writes a snapshot of the whole
aggregate plus the (new) step index.
"""

import logging
from datetime import timedelta
from typing import Any

from .persistence import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    ProgressPersistence,
    SupabaseKeyValueStore,
    progress_key,
)
from .state import AnswerKey, OnboardingAnswers, Role, StepDataStore
from .steps import (
    FlowVariant,
    StepId,
    StepSequencer,
    check_step_in_flow,
    drop_inactive_answers,
    step_labels,
    steps_for,
)
from .submission import SubmissionOrchestrator, SubmissionResult

logger = logging.getLogger(__name__)


class OnboardingWizard:
    """One user's onboarding attempt."""

    def __init__(
        self,
        user_id: str,
        persistence: ProgressPersistence,
        orchestrator: SubmissionOrchestrator | None = None,
        variant: FlowVariant = FlowVariant.ORGANIZATION_SETUP,
    ):
        self.user_id = user_id
        self.persistence = persistence
        self.orchestrator = orchestrator
        self.variant = variant
        self.store = StepDataStore()
        self.sequencer = StepSequencer(lambda: self.total_steps)
        self.initialized = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def mount(self) -> "OnboardingWizard":
        """Rehydrate from saved progress, or start fresh."""
        saved = self.persistence.load()
        if not saved.is_empty:
            self.store.replace(drop_inactive_answers(saved.answers, self.variant))
            self.sequencer.restore(saved.step_index)
            logger.info(f"Resumed onboarding for user {self.user_id} at step {self.current_step}")
        self.initialized = True
        return self

    def reset(self) -> None:
        """Abandon the attempt: forget saved progress and in-memory answers."""
        self.persistence.clear()
        self.store.reset()
        self.sequencer.go_to(0)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    @property
    def role(self) -> Role | None:
        return self.store.role

    @property
    def steps(self) -> list[StepId]:
        return steps_for(self.store.role, self.variant)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def labels(self) -> list[str]:
        return step_labels(self.store.role, self.variant)

    @property
    def current_step(self) -> int:
        return self.sequencer.current

    @property
    def current_step_id(self) -> StepId:
        return self.steps[self.current_step]

    @property
    def answers(self) -> OnboardingAnswers:
        return self.store.snapshot()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def update_data(self, key: AnswerKey, value: Any) -> None:
        """
        Record one step's validated answer and persist the snapshot.

        Raises StepNotInFlowError for the organizer step this variant does
        not show, and RoleMismatchError for a payload of the other role.
        """
        if value is not None:
            check_step_in_flow(self.store.role, self.variant, key)
        restarted = self.store.update(key, value)
        if restarted:
            logger.info(f"Role changed for user {self.user_id}, restarting onboarding")
            self.sequencer.go_to(0)
        self._save()

    def next_step(self) -> int:
        index = self.sequencer.next()
        self._save()
        return index

    def prev_step(self) -> int:
        index = self.sequencer.prev()
        self._save()
        return index

    def go_to(self, index: int) -> int:
        index = self.sequencer.go_to(index)
        self._save()
        return index

    async def submit(self) -> SubmissionResult:
        """Commit everything. On failure the step and answers are untouched."""
        if self.orchestrator is None:
            raise RuntimeError("Wizard has no submission orchestrator")
        result = await self.orchestrator.submit(self.user_id, self.store, self.total_steps, self.variant)
        self.sequencer.go_to(0)
        return result

    def _save(self) -> None:
        self.persistence.save(self.store.snapshot(), self.current_step)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """State for API responses."""
        return {
            "user_id": self.user_id,
            "current_step": self.current_step,
            "current_step_id": self.current_step_id.value,
            "total_steps": self.total_steps,
            "steps": [step.value for step in self.steps],
            "labels": self.labels,
            "answers": self.store.to_dict(),
        }


# =============================================================================
# Construction from settings
# =============================================================================


def get_progress_store() -> KeyValueStore:
    """Key-value store selected by ONBOARDING_STORE."""
    from thittam.config import settings

    if settings.onboarding_store == "memory":
        return _memory_store
    if settings.onboarding_store == "file":
        return JsonFileKeyValueStore(settings.onboarding_store_path)

    from thittam.db.client import get_service_client
    return SupabaseKeyValueStore(get_service_client())


# Process-wide slot map for ONBOARDING_STORE=memory
_memory_store = InMemoryKeyValueStore()


def get_flow_variant() -> FlowVariant:
    from thittam.config import settings
    return FlowVariant(settings.onboarding_organizer_variant)


def get_persistence(user_id: str, store: KeyValueStore | None = None) -> ProgressPersistence:
    from thittam.config import settings

    return ProgressPersistence(
        store or get_progress_store(),
        progress_key(user_id),
        ttl=timedelta(hours=settings.onboarding_progress_ttl_hours),
    )
