"""
LifeContext Onboarding Engine.

Decides which first-run wizard steps exist, in what order, and what is measured
about the user's path through them.

Pieces:
1. Flow - pure step list from (intent, mode, variant), plus the step catalog
2. Storage - completion flag, resumable draft, persisted A/B variant
3. Analytics - per-session funnel tracking and an on-demand summary
4. Controller - Next/Back/Skip state machine tying the above together

Rendering, passcode hashing and backup parsing live elsewhere and reach the
engine through callbacks.
"""

from .analytics import AnalyticsAggregator, SessionTracker
from .controller import WizardController, WizardStatus
from .flow import build_step_definitions, build_steps, resolve_step
from .state import (
    AnalyticsSummary,
    Draft,
    Intent,
    Mode,
    SessionRecord,
    SessionStatus,
    StepDefinition,
    StepId,
    Variant,
)
from .storage import DraftStore, VariantAssigner

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsSummary",
    "Draft",
    "DraftStore",
    "Intent",
    "Mode",
    "SessionRecord",
    "SessionStatus",
    "SessionTracker",
    "StepDefinition",
    "StepId",
    "Variant",
    "VariantAssigner",
    "WizardController",
    "WizardStatus",
    "build_step_definitions",
    "build_steps",
    "resolve_step",
]
