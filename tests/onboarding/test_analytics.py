"""
Tests for onboarding funnel tracking and the analytics summary.
"""

import json

import pytest

from onboarding.analytics import (
    ONBOARDING_ANALYTICS_KEY,
    AnalyticsAggregator,
    SessionTracker,
    load_analytics_log,
)
from onboarding.state import Intent, Mode, SessionStatus, StepId, Variant

STARTED = "2026-01-01T00:00:00+00:00"


@pytest.fixture
def tracker(store, now):
    return SessionTracker(store, now=now)


def start(tracker, session_id="s1", variant=Variant.CONTROL, intent=Intent.JOURNALING, mode=Mode.FULL):
    tracker.ensure_session(session_id, variant, intent, mode, STARTED)


class TestEnsureSession:
    def test_creates_in_progress_record(self, tracker):
        start(tracker)
        session = tracker.get_session("s1")
        assert session.status == SessionStatus.IN_PROGRESS
        assert session.started_at == STARTED
        assert session.steps_viewed == []
        assert session.step_durations_ms == {}

    def test_idempotent(self, tracker, store):
        start(tracker)
        tracker.record_step_viewed("s1", StepId.WELCOME, Intent.JOURNALING, Mode.FULL)
        start(tracker, intent=Intent.LEGACY)

        log = load_analytics_log(store)
        assert len(log.sessions) == 1
        assert log.sessions[0].steps_viewed == [StepId.WELCOME]
        assert log.sessions[0].intent == Intent.JOURNALING

    def test_sessions_are_appended(self, tracker, store):
        start(tracker, "a")
        start(tracker, "b")
        assert [s.session_id for s in load_analytics_log(store).sessions] == ["a", "b"]


class TestRecordStepViewed:
    def test_viewed_twice_counts_once(self, tracker):
        start(tracker)
        tracker.record_step_viewed("s1", StepId.PRIVACY, Intent.JOURNALING, Mode.FULL)
        tracker.record_step_viewed("s1", StepId.PRIVACY, Intent.JOURNALING, Mode.FULL)
        assert tracker.get_session("s1").steps_viewed == [StepId.PRIVACY]

    def test_preserves_first_view_order(self, tracker):
        start(tracker)
        for step in (StepId.WELCOME, StepId.INTENT, StepId.WELCOME, StepId.PRIVACY):
            tracker.record_step_viewed("s1", step, Intent.JOURNALING, Mode.FULL)
        assert tracker.get_session("s1").steps_viewed == [StepId.WELCOME, StepId.INTENT, StepId.PRIVACY]

    def test_refreshes_intent_and_mode(self, tracker):
        start(tracker)
        tracker.record_step_viewed("s1", StepId.INTENT, Intent.THERAPY, Mode.QUICK)
        session = tracker.get_session("s1")
        assert session.intent == Intent.THERAPY
        assert session.mode == Mode.QUICK


class TestRecordStepDuration:
    def test_durations_accumulate(self, tracker):
        start(tracker)
        tracker.record_step_duration("s1", StepId.PASSCODE, 1000)
        tracker.record_step_duration("s1", StepId.PASSCODE, 500)
        assert tracker.get_session("s1").step_durations_ms[StepId.PASSCODE] == 1500

    @pytest.mark.parametrize("duration", [0, -50, -0.5, float("nan"), float("inf"), float("-inf")])
    def test_non_positive_durations_ignored(self, tracker, duration):
        start(tracker)
        tracker.record_step_duration("s1", StepId.PASSCODE, 1000)
        tracker.record_step_duration("s1", StepId.PASSCODE, duration)
        assert tracker.get_session("s1").step_durations_ms[StepId.PASSCODE] == 1000

    def test_negative_duration_does_not_create_entry(self, tracker):
        start(tracker)
        tracker.record_step_duration("s1", StepId.WELCOME, -50)
        assert StepId.WELCOME not in tracker.get_session("s1").step_durations_ms


class TestTerminalTransitions:
    def test_complete(self, tracker):
        start(tracker)
        tracker.complete_session("s1", Intent.LEGACY, Mode.QUICK)
        session = tracker.get_session("s1")
        assert session.status == SessionStatus.COMPLETED
        assert session.completed_at is not None
        assert session.skipped_at is None
        assert session.drop_off_step is None
        assert session.intent == Intent.LEGACY
        assert session.mode == Mode.QUICK

    def test_skip(self, tracker):
        start(tracker)
        tracker.skip_session("s1", StepId.PASSCODE, Intent.THERAPY, Mode.FULL)
        session = tracker.get_session("s1")
        assert session.status == SessionStatus.SKIPPED
        assert session.drop_off_step == StepId.PASSCODE
        assert session.skipped_at is not None
        assert session.completed_at is None
        assert session.intent == Intent.THERAPY

    def test_terminal_status_reached_once(self, tracker):
        start(tracker)
        tracker.complete_session("s1", Intent.JOURNALING, Mode.FULL)
        tracker.skip_session("s1", StepId.SUMMARY, Intent.JOURNALING, Mode.FULL)
        session = tracker.get_session("s1")
        assert session.status == SessionStatus.COMPLETED
        assert session.drop_off_step is None

    def test_terminal_session_is_frozen(self, tracker):
        start(tracker)
        tracker.record_step_duration("s1", StepId.WELCOME, 100)
        tracker.skip_session("s1", StepId.WELCOME, Intent.JOURNALING, Mode.FULL)

        tracker.record_step_duration("s1", StepId.WELCOME, 900)
        tracker.record_step_viewed("s1", StepId.SUMMARY, Intent.LEGACY, Mode.QUICK)

        session = tracker.get_session("s1")
        assert session.step_durations_ms[StepId.WELCOME] == 100
        assert StepId.SUMMARY not in session.steps_viewed
        assert session.intent == Intent.JOURNALING


class TestUnknownSession:
    """Mutations on unknown ids are silent no-ops."""

    def test_calls_do_not_raise_or_create(self, tracker, store):
        tracker.record_step_viewed("ghost", StepId.WELCOME, Intent.JOURNALING, Mode.FULL)
        tracker.record_step_duration("ghost", StepId.WELCOME, 100)
        tracker.complete_session("ghost", Intent.JOURNALING, Mode.FULL)
        tracker.skip_session("ghost", StepId.WELCOME, Intent.JOURNALING, Mode.FULL)

        assert tracker.get_session("ghost") is None
        assert load_analytics_log(store).sessions == []

    def test_other_sessions_untouched(self, tracker):
        start(tracker, "real")
        tracker.complete_session("ghost", Intent.JOURNALING, Mode.FULL)
        assert tracker.get_session("real").status == SessionStatus.IN_PROGRESS


class TestLogPersistence:
    def test_document_shape(self, tracker, store):
        start(tracker)
        tracker.record_step_duration("s1", StepId.WELCOME, 250)
        data = json.loads(store.get(ONBOARDING_ANALYTICS_KEY))

        assert set(data) == {"sessions", "updatedAt"}
        row = data["sessions"][0]
        assert row["sessionId"] == "s1"
        assert row["status"] == "in_progress"
        assert row["stepDurationsMs"] == {"welcome": 250}
        assert "completedAt" not in row

    @pytest.mark.parametrize("raw", ["garbage", "[]", '{"sessions": "nope"}', "{}"])
    def test_corrupt_log_reads_empty(self, store, raw):
        store.set(ONBOARDING_ANALYTICS_KEY, raw)
        assert load_analytics_log(store).sessions == []

    def test_deeply_nested_log_reads_empty(self, tracker, store):
        store.set(ONBOARDING_ANALYTICS_KEY, "[" * 100_000)
        assert load_analytics_log(store).sessions == []
        assert AnalyticsAggregator(store).summarize().total_sessions == 0

        start(tracker)
        assert tracker.get_session("s1") is not None

    def test_non_finite_duration_keeps_session(self, tracker):
        start(tracker)
        tracker.record_step_viewed("s1", StepId.WELCOME, Intent.JOURNALING, Mode.FULL)
        tracker.record_step_duration("s1", StepId.WELCOME, 100)
        tracker.record_step_duration("s1", StepId.INTENT, float("nan"))

        session = tracker.get_session("s1")
        assert session is not None
        assert session.steps_viewed == [StepId.WELCOME]
        assert session.step_durations_ms == {StepId.WELCOME: 100}

    def test_invalid_rows_dropped(self, store):
        store.set(ONBOARDING_ANALYTICS_KEY, json.dumps({
            "sessions": [
                {"sessionId": "bad", "variant": "mystery"},
                {
                    "sessionId": "good",
                    "variant": "control",
                    "intent": "legacy",
                    "mode": "full",
                    "status": "completed",
                    "startedAt": STARTED,
                    "stepsViewed": ["welcome"],
                    "stepDurationsMs": {"welcome": 40},
                },
            ],
            "updatedAt": STARTED,
        }))
        log = load_analytics_log(store)
        assert [s.session_id for s in log.sessions] == ["good"]
        assert log.updated_at == STARTED

    def test_tracking_recovers_from_corrupt_log(self, tracker, store):
        store.set(ONBOARDING_ANALYTICS_KEY, "{{{")
        start(tracker)
        assert tracker.get_session("s1") is not None


class TestAnalyticsAggregator:
    """Summary over the full session log."""

    def test_empty_log(self, store):
        summary = AnalyticsAggregator(store).summarize()
        assert summary.total_sessions == 0
        assert summary.completion_rate == 0
        assert summary.avg_step_duration_ms == {}
        assert summary.drop_off_counts == {}

    def test_counts_and_rate(self, tracker, store):
        for session_id in ("a", "b", "c", "d"):
            start(tracker, session_id)
        tracker.complete_session("a", Intent.JOURNALING, Mode.FULL)
        tracker.complete_session("b", Intent.JOURNALING, Mode.FULL)
        tracker.complete_session("c", Intent.JOURNALING, Mode.FULL)
        tracker.skip_session("d", StepId.PRIVACY, Intent.JOURNALING, Mode.FULL)

        summary = AnalyticsAggregator(store).summarize()
        assert summary.total_sessions == 4
        assert summary.completed_sessions == 3
        assert summary.skipped_sessions == 1
        assert summary.completion_rate == pytest.approx(0.75)

    def test_in_progress_sessions_count_toward_total(self, tracker, store):
        start(tracker, "a")
        start(tracker, "b")
        tracker.complete_session("a", Intent.JOURNALING, Mode.FULL)
        summary = AnalyticsAggregator(store).summarize()
        assert summary.total_sessions == 2
        assert summary.completion_rate == pytest.approx(0.5)

    def test_average_dwell_only_over_sessions_with_duration(self, tracker, store):
        start(tracker, "a")
        start(tracker, "b")
        start(tracker, "c")
        tracker.record_step_duration("a", StepId.PASSCODE, 1000)
        tracker.record_step_duration("a", StepId.PASSCODE, 500)
        tracker.record_step_duration("b", StepId.PASSCODE, 2500)
        tracker.record_step_duration("c", StepId.WELCOME, 300)

        summary = AnalyticsAggregator(store).summarize()
        assert summary.avg_step_duration_ms[StepId.PASSCODE] == 2000
        assert summary.avg_step_duration_ms[StepId.WELCOME] == 300
        assert StepId.PRIVACY not in summary.avg_step_duration_ms

    def test_average_rounds_half_up(self, tracker, store):
        start(tracker, "a")
        start(tracker, "b")
        tracker.record_step_duration("a", StepId.INTENT, 1)
        tracker.record_step_duration("b", StepId.INTENT, 2)
        assert AnalyticsAggregator(store).summarize().avg_step_duration_ms[StepId.INTENT] == 2

    def test_drop_off_histogram(self, tracker, store):
        for session_id in ("a", "b", "c"):
            start(tracker, session_id)
        tracker.skip_session("a", StepId.PASSCODE, Intent.JOURNALING, Mode.FULL)
        tracker.skip_session("b", StepId.PASSCODE, Intent.JOURNALING, Mode.FULL)
        tracker.skip_session("c", StepId.WELCOME, Intent.JOURNALING, Mode.FULL)

        summary = AnalyticsAggregator(store).summarize()
        assert summary.drop_off_counts == {StepId.PASSCODE: 2, StepId.WELCOME: 1}

    def test_recomputed_each_call(self, tracker, store):
        aggregator = AnalyticsAggregator(store)
        assert aggregator.summarize().total_sessions == 0
        start(tracker)
        assert aggregator.summarize().total_sessions == 1

    def test_to_dict_uses_wire_names(self, tracker, store):
        start(tracker)
        tracker.record_step_duration("s1", StepId.DATA_RECLAMATION, 120)
        tracker.skip_session("s1", StepId.DATA_RECLAMATION, Intent.JOURNALING, Mode.FULL)

        data = AnalyticsAggregator(store).summarize().to_dict()
        assert data == {
            "totalSessions": 1,
            "completedSessions": 0,
            "skippedSessions": 1,
            "completionRate": 0.0,
            "avgStepDurationMs": {"dataReclamation": 120},
            "dropOffCounts": {"dataReclamation": 1},
        }
