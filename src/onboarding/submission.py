"""
Onboarding Submission.

Commits the finished answers in a fixed order, one remote call at a time:

1. organization create   (organizer, setup action "create")
2. membership request    (organizer, setup action "join")
3. profile update        (idempotent overwrite, skipped fields -> null)
4. preferences upsert    (keyed by user_id)
5. role grant upsert     (keyed by user_id + role)

The sequence is not transactional. A failure at 1-2 aborts before anything
is written; a failure at 3-5 leaves earlier writes in place. Every step is
safe to repeat, so a retry always restarts from the top. On success the
saved progress is cleared, the role cache refresh is fired without waiting
on it, and the caller is sent to the computed destination.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from .directory import CreatedOrganization, IdentityStore, OrganizationDirectory
from .forms import CreateOrganization, JoinOrganization
from .payload import build_preferences_row, build_profile_update, build_role_grant, check_required
from .persistence import ProgressPersistence
from .state import OnboardingAnswers, Role, StepDataStore
from .steps import FlowVariant, drop_inactive_answers

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."

# Post-onboarding destinations
DASHBOARD_PATH = "/dashboard"
ORGANIZATION_SETUP_PATH = "/onboarding/organization"

# Strong references to fire-and-forget tasks until they finish
_background_tasks: set[asyncio.Task] = set()


def organization_dashboard_path(slug: str) -> str:
    return f"/{slug}/dashboard"


class SubmissionStage(Enum):
    """Remote calls made during submission, in order."""
    CREATE_ORGANIZATION = "create_organization"
    REQUEST_JOIN = "request_join"
    UPDATE_PROFILE = "update_profile"
    UPSERT_PREFERENCES = "upsert_preferences"
    GRANT_ROLE = "grant_role"


class SubmissionError(Exception):
    """
    A remote commit call failed.

    The wizard stays on the final step with its answers intact; the whole
    submission can be retried.
    """

    retryable = True

    def __init__(self, stage: SubmissionStage, cause: Exception | None = None):
        self.stage = stage
        self.cause = cause
        self.user_message = GENERIC_ERROR_MESSAGE
        super().__init__(f"Onboarding submission failed at {stage.value}: {cause}")


class MembershipStatus(Enum):
    """Organizer's organization outcome after onboarding."""
    CREATED = "created"
    PENDING = "pending"
    DEFERRED = "deferred"


@dataclass
class SubmissionResult:
    """Outcome of a successful submission."""
    destination: str
    role: Role
    organization: CreatedOrganization | None = None
    membership: MembershipStatus | None = None


def resolve_destination(answers: OnboardingAnswers, created: CreatedOrganization | None) -> str:
    """
    Where to send the user after onboarding.

    organizer + created org -> that org's dashboard
    organizer + join request -> generic dashboard (membership pending)
    organizer + skipped     -> organization setup prompt
    attendee                -> generic dashboard
    """
    if answers.role is not Role.ORGANIZER:
        return DASHBOARD_PATH

    setup = answers.organization_setup
    if created is not None:
        return organization_dashboard_path(created.slug)
    if isinstance(setup, JoinOrganization):
        return DASHBOARD_PATH
    return ORGANIZATION_SETUP_PATH


def _membership_status(answers: OnboardingAnswers, created: CreatedOrganization | None) -> MembershipStatus | None:
    if answers.role is not Role.ORGANIZER:
        return None
    if created is not None:
        return MembershipStatus.CREATED
    if isinstance(answers.organization_setup, JoinOrganization):
        return MembershipStatus.PENDING
    return MembershipStatus.DEFERRED


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionOrchestrator:
    """Runs the ordered commit sequence for one wizard."""

    def __init__(
        self,
        identity: IdentityStore,
        directory: OrganizationDirectory,
        persistence: ProgressPersistence,
        refresh_roles: Callable[[], Awaitable[Any]] | None = None,
        navigate: Callable[[str], Any] | None = None,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.identity = identity
        self.directory = directory
        self.persistence = persistence
        self.refresh_roles = refresh_roles
        self.navigate = navigate
        self._now = now
        # Organizations created by an earlier attempt that failed further on,
        # keyed by (user_id, slug) so a retry does not create a duplicate
        self._created: dict[tuple[str, str], CreatedOrganization] = {}

    async def submit(
        self,
        user_id: str,
        store: StepDataStore,
        total_steps: int,
        variant: FlowVariant = FlowVariant.ORGANIZATION_SETUP,
    ) -> SubmissionResult:
        """
        Commit the store's answers.

        Answers for a step outside the variant's flow are left out, so only
        one of organization setup and the organizer about step is acted on.

        Raises IncompleteAnswersError before any remote call if required
        answers are missing, and SubmissionError if a remote call fails.
        """
        answers = drop_inactive_answers(store.snapshot(), variant)
        check_required(answers)
        logger.info(f"Submitting onboarding for user {user_id} as {answers.role.value}")

        created = await self._setup_organization(user_id, answers)

        profile_update = build_profile_update(answers, self._now(), total_steps)
        await self._call(SubmissionStage.UPDATE_PROFILE, self.identity.update_profile(user_id, profile_update))

        preferences = build_preferences_row(user_id, answers)
        await self._call(SubmissionStage.UPSERT_PREFERENCES, self.identity.upsert_preferences(user_id, preferences))

        grant = build_role_grant(user_id, answers.role)
        await self._call(SubmissionStage.GRANT_ROLE, self.identity.upsert_role_grant(user_id, grant["role"]))

        # Committed: drop local progress
        if created is not None:
            self._created.pop((user_id, created.slug), None)
        self.persistence.clear()
        store.reset()

        result = SubmissionResult(
            destination=resolve_destination(answers, created),
            role=answers.role,
            organization=created,
            membership=_membership_status(answers, created),
        )
        logger.info(f"Onboarding complete for user {user_id}, redirecting to {result.destination}")

        self._schedule_role_refresh()
        if self.navigate is not None:
            self.navigate(result.destination)
        return result

    async def _setup_organization(self, user_id: str, answers: OnboardingAnswers) -> CreatedOrganization | None:
        if answers.role is not Role.ORGANIZER:
            return None

        setup = answers.organization_setup
        if isinstance(setup, CreateOrganization):
            key = (user_id, setup.slug)
            if key in self._created:
                logger.info(f"Reusing organization {setup.slug} created by an earlier attempt")
                return self._created[key]
            created = await self._call(
                SubmissionStage.CREATE_ORGANIZATION,
                self.directory.create_organization(user_id, setup),
            )
            self._created[key] = created
            return created

        if isinstance(setup, JoinOrganization):
            await self._call(
                SubmissionStage.REQUEST_JOIN,
                self.directory.request_join(user_id, setup.organization_id),
            )

        return None

    async def _call(self, stage: SubmissionStage, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except Exception as e:
            logger.exception(f"Onboarding submission failed at {stage.value}")
            raise SubmissionError(stage, e) from e

    def _schedule_role_refresh(self) -> None:
        """Refresh derived roles in the background; failures are ignored."""
        if self.refresh_roles is None:
            return

        async def _refresh():
            try:
                await self.refresh_roles()
            except Exception as e:
                logger.debug(f"Role cache refresh failed (ignored): {e}")

        task = asyncio.create_task(_refresh())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
