"""
Onboarding State Models.

Enumerations and persisted records for the first-run wizard:
- Draft: resumable in-progress wizard state (one slot per device)
- SessionRecord: one analytics row per onboarding attempt
- AnalyticsLog: the persisted list of SessionRecords
- AnalyticsSummary: derived funnel report, never persisted

Persisted records use camelCase keys on the wire so the stored documents match
what the web client writes for the same slots.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Variant(str, Enum):
    """A/B bucket controlling the flow shape."""
    CONTROL = "control"
    STREAMLINED = "streamlined"


class Intent(str, Enum):
    """User's stated reason for using the product."""
    JOURNALING = "journaling"
    THERAPY = "therapy"
    LEGACY = "legacy"


class Mode(str, Enum):
    """Setup depth."""
    FULL = "full"
    QUICK = "quick"


class StepId(str, Enum):
    """One wizard screen."""
    WELCOME = "welcome"
    INTENT = "intent"
    PRIVACY = "privacy"
    PASSCODE = "passcode"
    DATA_RECLAMATION = "dataReclamation"
    EXTENSION = "extension"
    SUMMARY = "summary"


class StepIcon(str, Enum):
    BRAIN = "brain"
    TARGET = "target"
    SHIELD = "shield"
    LOCK = "lock"
    DATABASE = "database"
    CHROME = "chrome"
    ROCKET = "rocket"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.SKIPPED})


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 text."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class StepDefinition:
    """Static metadata for one step. Rendering is the client's job."""
    id: StepId
    title: str
    subtitle: str
    help_title: str
    help_text: str
    gradient: str  # visual theme key
    icon: StepIcon


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Draft(_WireModel):
    """
    Resumable in-progress wizard state.

    Created on first render, overwritten on every transition, deleted on
    complete/skip. Validation is strict: a draft that is missing a field or
    carries a wrong-typed value is rejected as a whole.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
    )

    session_id: str = Field(min_length=1)
    variant: Variant
    intent: Intent
    intent_chosen: bool
    mode: Mode
    current_step_index: int = Field(ge=0)
    passcode_confirmed: bool
    data_reclamation_enabled: bool
    started_at: str = Field(min_length=1)
    updated_at: str = Field(min_length=1)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, json_str: str) -> "Draft":
        """Parse and validate. Raises pydantic.ValidationError on bad input."""
        return cls.model_validate_json(json_str)


class SessionRecord(_WireModel):
    """Analytics row for one onboarding attempt."""

    session_id: str = Field(min_length=1)
    variant: Variant
    intent: Intent
    mode: Mode
    status: SessionStatus = SessionStatus.IN_PROGRESS
    started_at: str
    completed_at: str | None = None
    skipped_at: str | None = None
    drop_off_step: StepId | None = None
    steps_viewed: list[StepId] = Field(default_factory=list)
    step_durations_ms: dict[StepId, float] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class AnalyticsLog(_WireModel):
    """Persisted analytics document: {sessions: [...], updatedAt}."""

    sessions: list[SessionRecord] = Field(default_factory=list)
    updated_at: str = Field(default_factory=utc_now_iso)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def find(self, session_id: str) -> SessionRecord | None:
        for session in self.sessions:
            if session.session_id == session_id:
                return session
        return None


@dataclass
class AnalyticsSummary:
    """Funnel report computed on demand from the full analytics log."""
    total_sessions: int = 0
    completed_sessions: int = 0
    skipped_sessions: int = 0
    completion_rate: float = 0.0
    avg_step_duration_ms: dict[StepId, int] = field(default_factory=dict)
    drop_off_counts: dict[StepId, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize with camelCase keys and step ids as plain text."""
        return {
            "totalSessions": self.total_sessions,
            "completedSessions": self.completed_sessions,
            "skippedSessions": self.skipped_sessions,
            "completionRate": self.completion_rate,
            "avgStepDurationMs": {k.value: v for k, v in self.avg_step_duration_ms.items()},
            "dropOffCounts": {k.value: v for k, v in self.drop_off_counts.items()},
        }
