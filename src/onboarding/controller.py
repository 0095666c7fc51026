"""
Onboarding Wizard Controller.

Navigation state machine for the first-run wizard. States are the index into
the current step list plus the terminal COMPLETED / SKIPPED states.

    NEXT  record dwell, advance (or finish on the last step)
    BACK  record dwell, step back (no-op on the first step)
    SKIP  record dwell, mark the session skipped at the current step

Every non-terminal transition persists the draft before returning, so a
reload resumes from the last fully applied transition. Terminal transitions
set the completion flag, clear the draft and notify the caller.

Rendering is not done here; callers read `current_step_definition`,
`can_proceed` and `progress` and draw whatever they like.
"""

import logging
import math
import time
from enum import Enum
from typing import Awaitable, Callable

from lifecontext.storage import KeyValueStore

from .analytics import SessionTracker
from .errors import (
    OnboardingError,
    StepGatedError,
    TransitionInProgressError,
    WizardClosedError,
)
from .flow import build_steps, resolve_step
from .session import create_session_id
from .state import Draft, Intent, Mode, StepDefinition, StepId, utc_now_iso
from .storage import (
    DraftStore,
    VariantAssigner,
    set_data_reclamation_enabled,
    set_onboarding_complete,
)

logger = logging.getLogger(__name__)

DEFAULT_INTENT = Intent.JOURNALING
DEFAULT_MODE = Mode.FULL


class WizardStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    SKIPPED = "skipped"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class WizardController:
    """
    Drives one onboarding attempt.

    Use WizardController.start() to resume from a stored draft or begin a
    fresh session; the constructor expects an already-loaded draft.
    """

    def __init__(
        self,
        store: KeyValueStore,
        draft: Draft,
        on_complete: Callable[[], None] | None = None,
        on_skip: Callable[[], None] | None = None,
        clock: Callable[[], float] = _monotonic_ms,
        now: Callable[[], str] = utc_now_iso,
    ):
        self.store = store
        self.draft = draft
        self.on_complete = on_complete
        self.on_skip = on_skip
        self.clock = clock
        self.now = now

        self.draft_store = DraftStore(store)
        self.tracker = SessionTracker(store, now=now)

        self.status = WizardStatus.ACTIVE
        self.import_error: str | None = None

        self._busy = False
        self._steps = build_steps(draft.intent, draft.mode, draft.variant)
        self._clamp_index()
        self._step_entered_at = clock()

    @classmethod
    def start(
        cls,
        store: KeyValueStore,
        on_complete: Callable[[], None] | None = None,
        on_skip: Callable[[], None] | None = None,
        clock: Callable[[], float] = _monotonic_ms,
        now: Callable[[], str] = utc_now_iso,
        variant_assigner: VariantAssigner | None = None,
    ) -> "WizardController":
        """
        Resume the stored draft if it validates, otherwise start a new session.

        A draft whose session already reached a terminal status is left over
        from an interrupted finish or skip; it is discarded.
        """
        draft_store = DraftStore(store)
        draft = draft_store.load()

        if draft is not None:
            existing = SessionTracker(store, now=now).get_session(draft.session_id)
            if existing is not None and existing.is_terminal:
                logger.warning(
                    f"Discarding draft for {existing.status.value} session {draft.session_id}"
                )
                draft_store.clear()
                draft = None

        if draft is None:
            variant = (variant_assigner or VariantAssigner(store)).get_or_assign()
            started_at = now()
            draft = Draft(
                session_id=create_session_id(),
                variant=variant,
                intent=DEFAULT_INTENT,
                intent_chosen=False,
                mode=DEFAULT_MODE,
                current_step_index=0,
                passcode_confirmed=False,
                data_reclamation_enabled=False,
                started_at=started_at,
                updated_at=started_at,
            )
            logger.info(f"Starting onboarding session {draft.session_id} ({variant.value})")
        else:
            logger.info(f"Resuming onboarding session {draft.session_id} at step {draft.current_step_index}")

        controller = cls(store, draft, on_complete=on_complete, on_skip=on_skip, clock=clock, now=now)
        controller.tracker.ensure_session(
            draft.session_id, draft.variant, draft.intent, draft.mode, draft.started_at
        )
        controller._persist()
        controller._record_view()
        return controller

    # =========================================================================
    # Read-only view
    # =========================================================================

    @property
    def session_id(self) -> str:
        return self.draft.session_id

    @property
    def steps(self) -> list[StepId]:
        return list(self._steps)

    @property
    def step_definitions(self) -> list[StepDefinition]:
        return [resolve_step(step_id) for step_id in self._steps]

    @property
    def current_index(self) -> int:
        return self.draft.current_step_index

    @property
    def current_step(self) -> StepId:
        return self._steps[self.draft.current_step_index]

    @property
    def current_step_definition(self) -> StepDefinition:
        return resolve_step(self.current_step)

    @property
    def is_first_step(self) -> bool:
        return self.draft.current_step_index == 0

    @property
    def is_last_step(self) -> bool:
        return self.draft.current_step_index == len(self._steps) - 1

    @property
    def progress(self) -> float:
        """Fraction of the flow reached, counting the current step."""
        return (self.draft.current_step_index + 1) / len(self._steps)

    @property
    def is_active(self) -> bool:
        return self.status == WizardStatus.ACTIVE

    @property
    def is_busy(self) -> bool:
        return self._busy

    def gating_reason(self) -> str | None:
        """Why NEXT is disabled on the current step, or None if it is allowed."""
        step = self.current_step
        if step == StepId.INTENT and not self.draft.intent_chosen:
            return "Choose what you are here for before continuing"
        if step == StepId.PASSCODE and not self.draft.passcode_confirmed:
            return "Confirm passcode responsibility before continuing"
        return None

    @property
    def can_proceed(self) -> bool:
        return self.is_active and not self._busy and self.gating_reason() is None

    # =========================================================================
    # Navigation
    # =========================================================================

    def next(self) -> WizardStatus:
        self._ensure_ready()

        reason = self.gating_reason()
        if reason is not None:
            raise StepGatedError(self.current_step, reason)

        self._record_dwell()

        if self.is_last_step:
            self._finish()
            return self.status

        self.draft.current_step_index = min(self.draft.current_step_index + 1, len(self._steps) - 1)
        self._persist()
        self._record_view()
        return self.status

    def back(self) -> WizardStatus:
        self._ensure_ready()

        # Dwell counts even when retreating
        self._record_dwell()

        if self.draft.current_step_index > 0:
            self.draft.current_step_index -= 1
            self._persist()
            self._record_view()

        return self.status

    def skip(self, confirm: Callable[[], bool] | None = None) -> bool:
        """
        Abandon onboarding from the current step.

        confirm is the user confirmation collaborator; a falsy answer cancels
        the skip and leaves the wizard untouched.
        """
        self._ensure_ready()

        if confirm is not None and not confirm():
            return False

        drop_off_step = self.current_step
        self._record_dwell()
        self.tracker.skip_session(self.session_id, drop_off_step, self.draft.intent, self.draft.mode)
        # Skipping sets the same flag as finishing so the wizard is not shown again
        set_onboarding_complete(self.store, True)
        self.draft_store.clear()
        self.status = WizardStatus.SKIPPED

        if self.on_skip is not None:
            self.on_skip()
        return True

    # =========================================================================
    # Choices
    # =========================================================================

    def choose_intent(self, intent: Intent) -> None:
        self._ensure_ready()
        self.draft.intent = intent
        self.draft.intent_chosen = True
        self._recompute_steps()

    def set_mode(self, mode: Mode) -> None:
        self._ensure_ready()
        self.draft.mode = mode
        self._recompute_steps()

    def set_data_reclamation(self, enabled: bool) -> None:
        self._ensure_ready()
        self.draft.data_reclamation_enabled = enabled
        self._persist()

    # =========================================================================
    # External collaborators
    # =========================================================================

    async def confirm_passcode(self, confirmer: Callable[[], Awaitable[bool]]) -> bool:
        """
        Run the passcode confirmation sub-flow.

        Unlocks NEXT on the passcode step once the collaborator reports True.
        """
        self._ensure_ready()

        self._busy = True
        try:
            confirmed = await confirmer()
        finally:
            self._busy = False

        if confirmed:
            self.draft.passcode_confirmed = True
            self._persist()
        return bool(confirmed)

    async def import_backup(self, importer: Callable[[], Awaitable[bool]]) -> bool:
        """
        Restore from an encrypted backup instead of setting up from scratch.

        The importer returns True once the backup is restored and False when
        the user cancelled (closed the file picker, declined the prompt).
        Failures are raised by the importer.

        A successful import finishes onboarding. A raised failure is surfaced
        via import_error; a cancel sets no message. Either way the wizard is
        left exactly where it was.
        """
        self._ensure_ready()
        if self.current_step != StepId.WELCOME:
            raise OnboardingError("Backup import is only offered on the welcome step")

        self.import_error = None
        self._busy = True
        try:
            imported = await importer()
        except Exception as e:
            logger.error(f"Backup import failed for session {self.session_id}: {e}")
            self.import_error = f"Could not import backup: {e}"
            return False
        finally:
            self._busy = False

        if not imported:
            return False

        self._record_dwell()
        self._finish()
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_ready(self) -> None:
        if not self.is_active:
            raise WizardClosedError(f"Onboarding already {self.status.value}")
        if self._busy:
            raise TransitionInProgressError("Another onboarding action is still running")

    def _clamp_index(self) -> None:
        last = len(self._steps) - 1
        self.draft.current_step_index = max(0, min(self.draft.current_step_index, last))

    def _recompute_steps(self) -> None:
        previous_step = self.current_step
        self._steps = build_steps(self.draft.intent, self.draft.mode, self.draft.variant)
        self._clamp_index()

        if self.current_step != previous_step:
            # The list shrank under us; close out dwell on the step we left
            self.tracker.record_step_duration(self.session_id, previous_step, self._elapsed_ms())
            self._step_entered_at = self.clock()

        self._persist()
        self.tracker.record_step_viewed(self.session_id, self.current_step, self.draft.intent, self.draft.mode)

    def _elapsed_ms(self) -> int:
        elapsed = self.clock() - self._step_entered_at
        # Non-finite readings count as zero and are dropped by the tracker
        return round(elapsed) if math.isfinite(elapsed) else 0

    def _record_dwell(self) -> None:
        self.tracker.record_step_duration(self.session_id, self.current_step, self._elapsed_ms())
        self._step_entered_at = self.clock()

    def _record_view(self) -> None:
        self._step_entered_at = self.clock()
        self.tracker.record_step_viewed(self.session_id, self.current_step, self.draft.intent, self.draft.mode)

    def _persist(self) -> None:
        self.draft.updated_at = self.now()
        self.draft_store.save(self.draft)

    def _finish(self) -> None:
        set_onboarding_complete(self.store, True)
        set_data_reclamation_enabled(self.store, self.draft.data_reclamation_enabled)
        self.tracker.complete_session(self.session_id, self.draft.intent, self.draft.mode)
        self.draft_store.clear()
        self.status = WizardStatus.COMPLETED

        if self.on_complete is not None:
            self.on_complete()
