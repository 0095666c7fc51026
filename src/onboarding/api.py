"""
Onboarding API Endpoints.

Thin HTTP surface over WizardController for clients that keep the wizard
server-side. One wizard per store (device/profile); the live controller is
cached in-process so dwell timing spans requests.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from lifecontext.storage import KeyValueStore, get_store

from .analytics import AnalyticsAggregator
from .controller import WizardController, WizardStatus
from .errors import OnboardingError, StepGatedError, TransitionInProgressError, WizardClosedError
from .flow import build_step_definitions, get_intent_label, get_summary_highlights
from .state import Intent, Mode, StepDefinition, Variant
from .storage import DraftStore, get_onboarding_complete

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Request/Response Models
# =============================================================================


class IntentRequest(BaseModel):
    intent: Intent


class ModeRequest(BaseModel):
    mode: Mode


class DataReclamationRequest(BaseModel):
    enabled: bool


class PasscodeConfirmRequest(BaseModel):
    """Outcome of the client-side passcode confirmation dialog."""
    confirmed: bool


class StepResponse(BaseModel):
    id: str
    title: str
    subtitle: str
    help_title: str
    help_text: str
    gradient: str
    icon: str


class StateResponse(BaseModel):
    """Current onboarding state."""
    complete: bool
    status: str
    session_id: str | None = None
    variant: str | None = None
    intent: str | None = None
    intent_label: str | None = None
    intent_chosen: bool = False
    mode: str | None = None
    steps: list[StepResponse] = []
    current_step_index: int = 0
    current_step: str | None = None
    can_proceed: bool = False
    gating_reason: str | None = None
    progress: float = 0.0
    passcode_confirmed: bool = False
    data_reclamation_enabled: bool = False
    summary_highlights: list[str] = []


def _step_response(step: StepDefinition) -> StepResponse:
    return StepResponse(
        id=step.id.value,
        title=step.title,
        subtitle=step.subtitle,
        help_title=step.help_title,
        help_text=step.help_text,
        gradient=step.gradient,
        icon=step.icon.value,
    )


# =============================================================================
# Wizard Management Helpers
# =============================================================================

_wizard: WizardController | None = None


def get_onboarding_store() -> KeyValueStore:
    return get_store()


def reset_wizard() -> None:
    """Forget the cached controller (tests, resets)."""
    global _wizard
    _wizard = None


def _current_wizard(store: KeyValueStore) -> WizardController | None:
    """
    Cached controller for this store, or a resumed/new one.

    Returns None when onboarding already finished and no draft is in flight,
    so a finished device is never re-prompted.
    """
    global _wizard

    if _wizard is not None and _wizard.store is store and _wizard.is_active:
        return _wizard

    if get_onboarding_complete(store) and DraftStore(store).load() is None:
        return None

    _wizard = WizardController.start(store)
    return _wizard


def get_wizard(store: KeyValueStore = Depends(get_onboarding_store)) -> WizardController:
    wizard = _current_wizard(store)
    if wizard is None:
        raise HTTPException(status_code=409, detail="Onboarding already finished")
    return wizard


def _state_response(wizard: WizardController) -> StateResponse:
    draft = wizard.draft
    active = wizard.is_active
    return StateResponse(
        complete=not active,
        status=wizard.status.value,
        session_id=draft.session_id,
        variant=draft.variant.value,
        intent=draft.intent.value,
        intent_label=get_intent_label(draft.intent),
        intent_chosen=draft.intent_chosen,
        mode=draft.mode.value,
        steps=[_step_response(s) for s in wizard.step_definitions],
        current_step_index=wizard.current_index,
        current_step=wizard.current_step.value,
        can_proceed=wizard.can_proceed,
        gating_reason=wizard.gating_reason() if active else None,
        progress=wizard.progress,
        passcode_confirmed=draft.passcode_confirmed,
        data_reclamation_enabled=draft.data_reclamation_enabled,
        summary_highlights=get_summary_highlights(draft.intent),
    )


def _run(action) -> None:
    """Run a controller action, mapping navigation errors to HTTP errors."""
    try:
        action()
    except StepGatedError as e:
        raise HTTPException(status_code=409, detail=e.reason)
    except (WizardClosedError, TransitionInProgressError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OnboardingError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Endpoints: State
# =============================================================================


@router.get("/state", response_model=StateResponse)
async def get_onboarding_state(store: KeyValueStore = Depends(get_onboarding_store)) -> StateResponse:
    """Get current onboarding progress, starting a session if none exists."""
    wizard = _current_wizard(store)
    if wizard is None:
        return StateResponse(complete=True, status="finished")
    return _state_response(wizard)


@router.get("/steps", response_model=list[StepResponse])
async def preview_steps(intent: Intent, mode: Mode, variant: Variant) -> list[StepResponse]:
    """Step list for a given combination. Pure; touches no state."""
    return [_step_response(s) for s in build_step_definitions(intent, mode, variant)]


# =============================================================================
# Endpoints: Choices
# =============================================================================


@router.post("/intent", response_model=StateResponse)
async def submit_intent(request: IntentRequest, wizard: WizardController = Depends(get_wizard)) -> StateResponse:
    _run(lambda: wizard.choose_intent(request.intent))
    return _state_response(wizard)


@router.post("/mode", response_model=StateResponse)
async def submit_mode(request: ModeRequest, wizard: WizardController = Depends(get_wizard)) -> StateResponse:
    _run(lambda: wizard.set_mode(request.mode))
    return _state_response(wizard)


@router.post("/data-reclamation", response_model=StateResponse)
async def submit_data_reclamation(
    request: DataReclamationRequest, wizard: WizardController = Depends(get_wizard)
) -> StateResponse:
    _run(lambda: wizard.set_data_reclamation(request.enabled))
    return _state_response(wizard)


@router.post("/passcode/confirm", response_model=StateResponse)
async def confirm_passcode(
    request: PasscodeConfirmRequest, wizard: WizardController = Depends(get_wizard)
) -> StateResponse:
    """Record the result of the client's passcode confirmation dialog."""
    async def confirmer() -> bool:
        return request.confirmed

    try:
        await wizard.confirm_passcode(confirmer)
    except (WizardClosedError, TransitionInProgressError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _state_response(wizard)


# =============================================================================
# Endpoints: Navigation
# =============================================================================


@router.post("/next", response_model=StateResponse)
async def go_next(wizard: WizardController = Depends(get_wizard)) -> StateResponse:
    _run(wizard.next)
    if wizard.status == WizardStatus.COMPLETED:
        logger.info(f"Onboarding finished via API (session {wizard.session_id})")
    return _state_response(wizard)


@router.post("/back", response_model=StateResponse)
async def go_back(wizard: WizardController = Depends(get_wizard)) -> StateResponse:
    _run(wizard.back)
    return _state_response(wizard)


@router.post("/skip", response_model=StateResponse)
async def skip_onboarding(wizard: WizardController = Depends(get_wizard)) -> StateResponse:
    """Skip the rest of onboarding. The client shows the confirmation dialog first."""
    _run(wizard.skip)
    return _state_response(wizard)


# =============================================================================
# Endpoints: Analytics
# =============================================================================


@router.get("/analytics/summary")
async def get_analytics_summary(store: KeyValueStore = Depends(get_onboarding_store)) -> dict:
    """Funnel summary over every recorded onboarding session."""
    return AnalyticsAggregator(store).summarize().to_dict()
