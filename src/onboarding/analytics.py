"""
Onboarding Funnel Analytics.

SessionTracker appends and mutates one SessionRecord per onboarding attempt in
a persisted log; AnalyticsAggregator reads the whole log and derives a summary.

Tracking is best-effort:
- mutations against an unknown session id are silent no-ops (the session may
  have been reset underneath us)
- once a session is completed or skipped it is frozen; later calls are no-ops
- a corrupt log reads as empty rather than failing the wizard
"""

import json
import logging
import math
from collections import defaultdict
from typing import Callable

from pydantic import ValidationError

from lifecontext.storage import KeyValueStore

from .state import (
    AnalyticsLog,
    AnalyticsSummary,
    Intent,
    Mode,
    SessionRecord,
    SessionStatus,
    StepId,
    Variant,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

ONBOARDING_ANALYTICS_KEY = "lcc-onboarding-analytics"


# =============================================================================
# Log persistence
# =============================================================================


def load_analytics_log(store: KeyValueStore, key: str = ONBOARDING_ANALYTICS_KEY) -> AnalyticsLog:
    """
    Load the analytics log.

    A missing or structurally broken document yields an empty log. Individual
    rows that fail validation are dropped; the rest are kept.
    """
    raw = store.get(key)
    if not raw:
        return AnalyticsLog()

    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("Onboarding analytics log is not valid JSON, starting empty")
        return AnalyticsLog()

    if not isinstance(data, dict) or not isinstance(data.get("sessions"), list):
        logger.warning("Onboarding analytics log has no sessions list, starting empty")
        return AnalyticsLog()

    sessions = []
    for row in data["sessions"]:
        try:
            sessions.append(SessionRecord.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Dropping invalid onboarding session row ({e.error_count()} errors)")

    updated_at = data.get("updatedAt")
    if not isinstance(updated_at, str) or not updated_at:
        updated_at = utc_now_iso()

    return AnalyticsLog(sessions=sessions, updated_at=updated_at)


def save_analytics_log(
    store: KeyValueStore,
    log: AnalyticsLog,
    key: str = ONBOARDING_ANALYTICS_KEY,
    now: Callable[[], str] = utc_now_iso,
) -> None:
    log.updated_at = now()
    store.set(key, log.to_json())


# =============================================================================
# Tracker
# =============================================================================


class SessionTracker:
    """Records funnel events for onboarding sessions."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = ONBOARDING_ANALYTICS_KEY,
        now: Callable[[], str] = utc_now_iso,
    ):
        self.store = store
        self.key = key
        self.now = now

    def _load(self) -> AnalyticsLog:
        return load_analytics_log(self.store, self.key)

    def _save(self, log: AnalyticsLog) -> None:
        save_analytics_log(self.store, log, self.key, self.now)

    def _update_session(self, session_id: str, update: Callable[[SessionRecord], None]) -> bool:
        """Apply update to one live session and persist. Returns False on no-op."""
        log = self._load()
        session = log.find(session_id)

        if session is None:
            logger.debug(f"Ignoring analytics update for unknown session {session_id}")
            return False

        if session.is_terminal:
            logger.debug(f"Ignoring analytics update for {session.status.value} session {session_id}")
            return False

        update(session)
        self._save(log)
        return True

    def get_session(self, session_id: str) -> SessionRecord | None:
        return self._load().find(session_id)

    def ensure_session(
        self,
        session_id: str,
        variant: Variant,
        intent: Intent,
        mode: Mode,
        started_at: str,
    ) -> None:
        """Create the session row unless it already exists (remounts, reloads)."""
        log = self._load()
        if log.find(session_id) is not None:
            return

        log.sessions.append(
            SessionRecord(
                session_id=session_id,
                variant=variant,
                intent=intent,
                mode=mode,
                started_at=started_at,
            )
        )
        self._save(log)

    def record_step_viewed(self, session_id: str, step_id: StepId, intent: Intent, mode: Mode) -> None:
        """
        Mark a step as viewed.

        Also overwrites intent/mode so the funnel reflects the path actually
        taken, not the values at session start.
        """
        def update(session: SessionRecord) -> None:
            if step_id not in session.steps_viewed:
                session.steps_viewed.append(step_id)
            session.intent = intent
            session.mode = mode

        self._update_session(session_id, update)

    def record_step_duration(self, session_id: str, step_id: StepId, duration_ms: float) -> None:
        """Add dwell time to a step's running total. Non-positive or non-finite durations are dropped."""
        if not (math.isfinite(duration_ms) and duration_ms > 0):
            return

        def update(session: SessionRecord) -> None:
            previous = session.step_durations_ms.get(step_id, 0)
            session.step_durations_ms[step_id] = previous + duration_ms

        self._update_session(session_id, update)

    def complete_session(self, session_id: str, intent: Intent, mode: Mode) -> None:
        def update(session: SessionRecord) -> None:
            session.intent = intent
            session.mode = mode
            session.status = SessionStatus.COMPLETED
            session.completed_at = self.now()

        if self._update_session(session_id, update):
            logger.info(f"Onboarding session {session_id} completed")

    def skip_session(self, session_id: str, drop_off_step: StepId, intent: Intent, mode: Mode) -> None:
        def update(session: SessionRecord) -> None:
            session.intent = intent
            session.mode = mode
            session.status = SessionStatus.SKIPPED
            session.drop_off_step = drop_off_step
            session.skipped_at = self.now()

        if self._update_session(session_id, update):
            logger.info(f"Onboarding session {session_id} skipped at {drop_off_step.value}")


# =============================================================================
# Aggregator
# =============================================================================


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class AnalyticsAggregator:
    """Read-only funnel report over the whole analytics log."""

    def __init__(self, store: KeyValueStore, key: str = ONBOARDING_ANALYTICS_KEY):
        self.store = store
        self.key = key

    def summarize(self) -> AnalyticsSummary:
        """Recompute the summary from scratch. O(sessions x steps touched)."""
        sessions = load_analytics_log(self.store, self.key).sessions

        total = len(sessions)
        completed = sum(1 for s in sessions if s.status == SessionStatus.COMPLETED)
        skipped = sum(1 for s in sessions if s.status == SessionStatus.SKIPPED)

        duration_totals: dict[StepId, float] = defaultdict(float)
        duration_counts: dict[StepId, int] = defaultdict(int)
        drop_off_counts: dict[StepId, int] = defaultdict(int)

        for session in sessions:
            for step_id, duration in session.step_durations_ms.items():
                duration_totals[step_id] += duration
                duration_counts[step_id] += 1

            if session.status == SessionStatus.SKIPPED and session.drop_off_step is not None:
                drop_off_counts[session.drop_off_step] += 1

        avg_step_duration_ms = {
            step_id: _round_half_up(duration_totals[step_id] / duration_counts[step_id])
            for step_id in duration_totals
        }

        return AnalyticsSummary(
            total_sessions=total,
            completed_sessions=completed,
            skipped_sessions=skipped,
            completion_rate=0.0 if total == 0 else completed / total,
            avg_step_duration_ms=avg_step_duration_ms,
            drop_off_counts=dict(drop_off_counts),
        )
