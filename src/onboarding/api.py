"""
Onboarding API Endpoints.

Exposes the onboarding wizard over HTTP. The progress store is the only
state kept between requests: each request mounts a fresh wizard from the
saved snapshot, wired to a Supabase client for that request's token.
"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from thittam.web.auth import AuthenticatedUser, get_current_user

from .forms import (
    BasicProfile,
    Connectivity,
    about_adapter,
    get_form_options,
    organization_setup_adapter,
    preferences_adapter,
)
from .payload import IncompleteAnswersError
from .state import Role, RoleMismatchError
from .steps import StepNotInFlowError
from .submission import SubmissionError
from .wizard import OnboardingWizard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Request/Response Models
# =============================================================================


class StateResponse(BaseModel):
    """Current onboarding progress."""
    user_id: str
    current_step: int
    current_step_id: str
    total_steps: int
    steps: list[str]
    labels: list[str]
    answers: dict


class NavigateRequest(BaseModel):
    action: Literal["next", "prev", "goto"]
    index: int | None = None


class SubmitResponse(BaseModel):
    success: bool
    destination: str
    role: str
    organization_id: str | None = None
    organization_slug: str | None = None
    membership: str | None = None


# =============================================================================
# Wizard wiring
# =============================================================================


def build_wizard(user: AuthenticatedUser) -> OnboardingWizard:
    """Assemble a Supabase-backed wizard for the user and load saved progress."""
    from thittam.roles import refresh_user_roles

    from .directory import SupabaseIdentityStore, SupabaseOrganizationDirectory
    from .submission import SubmissionOrchestrator
    from .wizard import get_flow_variant, get_persistence

    client = user.client()
    persistence = get_persistence(user.id)
    orchestrator = SubmissionOrchestrator(
        identity=SupabaseIdentityStore(client),
        directory=SupabaseOrganizationDirectory(client),
        persistence=persistence,
        refresh_roles=lambda: refresh_user_roles(user.id),
    )
    return OnboardingWizard(user.id, persistence, orchestrator, get_flow_variant()).mount()


async def get_wizard(user: AuthenticatedUser = Depends(get_current_user)) -> OnboardingWizard:
    return build_wizard(user)


def _state(wizard: OnboardingWizard) -> StateResponse:
    return StateResponse(**wizard.to_dict())


def _parse_answer(wizard: OnboardingWizard, key: str, payload: dict | None) -> Any:
    """Validate a raw step payload into its typed form."""
    if key == "role":
        if not payload or "role" not in payload:
            raise HTTPException(status_code=400, detail="Missing role")
        try:
            return Role(payload["role"])
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown role: {payload['role']}")

    if key == "connectivity":
        # null body = step skipped
        return Connectivity.model_validate(payload) if payload is not None else None

    if payload is None:
        raise HTTPException(status_code=400, detail=f"Missing payload for {key}")

    if key == "basic_profile":
        return BasicProfile.model_validate(payload)

    if key in ("about", "preferences"):
        if wizard.role is None:
            raise HTTPException(status_code=400, detail="Select a role first")
        payload = {"kind": wizard.role.value, **payload}
        adapter = about_adapter if key == "about" else preferences_adapter
        return adapter.validate_python(payload)

    if key == "organization_setup":
        return organization_setup_adapter.validate_python(payload)

    raise HTTPException(status_code=404, detail=f"Unknown step: {key}")


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/state", response_model=StateResponse)
async def get_onboarding_state(wizard: OnboardingWizard = Depends(get_wizard)) -> StateResponse:
    """Get current onboarding progress."""
    return _state(wizard)


@router.get("/options")
async def get_options():
    """Option lists for the step forms."""
    return get_form_options()


@router.put("/answers/{key}", response_model=StateResponse)
async def record_answer(
    key: str,
    payload: dict | None = Body(default=None),
    advance: bool = False,
    wizard: OnboardingWizard = Depends(get_wizard),
) -> StateResponse:
    """
    Record one step's answer.

    With ?advance=true the wizard also moves to the next step, which is
    what a step's "continue" button does.
    """
    try:
        value = _parse_answer(wizard, key, payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    try:
        wizard.update_data(key, value)
    except (RoleMismatchError, StepNotInFlowError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    if advance:
        wizard.next_step()

    return _state(wizard)


@router.post("/navigate", response_model=StateResponse)
async def navigate(request: NavigateRequest, wizard: OnboardingWizard = Depends(get_wizard)) -> StateResponse:
    """Move forward, back, or jump to a step (clamped)."""
    if request.action == "next":
        wizard.next_step()
    elif request.action == "prev":
        wizard.prev_step()
    else:
        if request.index is None:
            raise HTTPException(status_code=400, detail="goto requires an index")
        wizard.go_to(request.index)
    return _state(wizard)


@router.get("/organizations/search")
async def search_organizations(
    q: str = "",
    limit: int = 10,
    wizard: OnboardingWizard = Depends(get_wizard),
):
    """Find organizations to join."""
    if wizard.orchestrator is None:
        return {"organizations": []}
    limit = max(1, min(limit, 50))
    try:
        results = await wizard.orchestrator.directory.search_organizations(q, limit)
    except Exception as e:
        logger.error(f"Organization search failed: {e}")
        raise HTTPException(status_code=502, detail="Organization search failed")
    return {"organizations": results}


@router.post("/submit", response_model=SubmitResponse)
async def submit_onboarding(wizard: OnboardingWizard = Depends(get_wizard)) -> SubmitResponse:
    """Commit the onboarding answers and return where to go next."""
    try:
        result = await wizard.submit()
    except IncompleteAnswersError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubmissionError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": e.user_message, "stage": e.stage.value, "retryable": e.retryable},
        )
    return SubmitResponse(
        success=True,
        destination=result.destination,
        role=result.role.value,
        organization_id=result.organization.id if result.organization else None,
        organization_slug=result.organization.slug if result.organization else None,
        membership=result.membership.value if result.membership else None,
    )


@router.delete("", response_model=StateResponse)
async def abandon_onboarding(wizard: OnboardingWizard = Depends(get_wizard)) -> StateResponse:
    """Throw away the attempt and start over."""
    wizard.reset()
    return _state(wizard)
