"""
Onboarding Flow - which steps exist and in what order.

The step list is a pure function of (intent, mode, variant): no I/O, no
randomness, safe to call on every render.

    welcome, intent, <middle segment by mode/intent>, summary

Streamlined variant in full mode always gets the extension step right before
the summary.
"""

from .state import Intent, Mode, StepDefinition, StepIcon, StepId, Variant

# =============================================================================
# Step Catalog
# =============================================================================

_WHY = "Why this matters"

STEP_CATALOG: dict[StepId, StepDefinition] = {
    StepId.WELCOME: StepDefinition(
        id=StepId.WELCOME,
        title="Your Brain Is a Terrible Hard Drive",
        subtitle="Let's preserve what matters while you still remember it.",
        help_title=_WHY,
        help_text=(
            "The first step helps us adapt setup to your goals and avoid "
            "collecting unnecessary data."
        ),
        gradient="from-purple-500 to-pink-500",
        icon=StepIcon.BRAIN,
    ),
    StepId.INTENT: StepDefinition(
        id=StepId.INTENT,
        title="What Are You Here For?",
        subtitle="Choose the path that best matches your main reason for using LifeContext.",
        help_title=_WHY,
        help_text=(
            "Intent selection personalizes your onboarding flow so setup focuses "
            "on your highest value use case."
        ),
        gradient="from-indigo-500 to-sky-500",
        icon=StepIcon.TARGET,
    ),
    StepId.PRIVACY: StepDefinition(
        id=StepId.PRIVACY,
        title="Zero-Knowledge by Default",
        subtitle="You own the key, and your data is unreadable without it.",
        help_title=_WHY,
        help_text=(
            "This protects your entries from server-side access and keeps "
            "control on your device."
        ),
        gradient="from-blue-500 to-cyan-500",
        icon=StepIcon.SHIELD,
    ),
    StepId.PASSCODE: StepDefinition(
        id=StepId.PASSCODE,
        title="Confirm Passcode Responsibility",
        subtitle="No resets, no backdoors. Losing your passcode means losing data access.",
        help_title=_WHY,
        help_text=(
            "Acknowledging this now reduces accidental lockouts and makes "
            "recovery planning explicit."
        ),
        gradient="from-red-500 to-orange-500",
        icon=StepIcon.LOCK,
    ),
    StepId.DATA_RECLAMATION: StepDefinition(
        id=StepId.DATA_RECLAMATION,
        title="Data Reclamation Setup",
        subtitle="Choose whether to enable browser and platform data reclamation workflows.",
        help_title=_WHY,
        help_text=(
            "This controls whether external digital traces are included in your "
            "personal life context analysis."
        ),
        gradient="from-green-500 to-emerald-500",
        icon=StepIcon.DATABASE,
    ),
    StepId.EXTENSION: StepDefinition(
        id=StepId.EXTENSION,
        title="Browser Extension",
        subtitle="Connect browsing context import when you are ready.",
        help_title=_WHY,
        help_text=(
            "Extension import can fill timeline gaps and improve pattern detection "
            "without compromising local encryption."
        ),
        gradient="from-amber-500 to-yellow-500",
        icon=StepIcon.CHROME,
    ),
    StepId.SUMMARY: StepDefinition(
        id=StepId.SUMMARY,
        title="Setup Summary",
        subtitle="Review what was configured before you start documenting.",
        help_title=_WHY,
        help_text=(
            "A final summary confirms your choices and makes it clear what is "
            "active from day one."
        ),
        gradient="from-violet-500 to-fuchsia-500",
        icon=StepIcon.ROCKET,
    ),
}


def resolve_step(step_id: StepId) -> StepDefinition:
    """Look up static metadata. KeyError means the catalog is incomplete."""
    return STEP_CATALOG[step_id]


# =============================================================================
# Paths
# =============================================================================

INTRO_STEPS: tuple[StepId, ...] = (StepId.WELCOME, StepId.INTENT)

FULL_PATHS_BY_INTENT: dict[Intent, tuple[StepId, ...]] = {
    Intent.JOURNALING: (StepId.PRIVACY, StepId.PASSCODE, StepId.DATA_RECLAMATION),
    Intent.THERAPY: (StepId.PRIVACY, StepId.DATA_RECLAMATION, StepId.PASSCODE),
    Intent.LEGACY: (StepId.PRIVACY, StepId.PASSCODE, StepId.EXTENSION),
}

QUICK_PATHS_BY_INTENT: dict[Intent, tuple[StepId, ...]] = {
    Intent.JOURNALING: (StepId.PASSCODE,),
    Intent.THERAPY: (StepId.PASSCODE,),
    Intent.LEGACY: (StepId.PASSCODE,),
}


def build_steps(intent: Intent, mode: Mode, variant: Variant) -> list[StepId]:
    """
    Build the ordered step list for a flow.

    Always starts with welcome, intent and ends with summary. Never contains
    a step twice.
    """
    paths = QUICK_PATHS_BY_INTENT if mode == Mode.QUICK else FULL_PATHS_BY_INTENT

    ids = [*INTRO_STEPS, *paths[intent], StepId.SUMMARY]

    if variant == Variant.STREAMLINED and mode == Mode.FULL and StepId.EXTENSION not in ids:
        ids = [*ids[:-1], StepId.EXTENSION, StepId.SUMMARY]

    return ids


def build_step_definitions(intent: Intent, mode: Mode, variant: Variant) -> list[StepDefinition]:
    """build_steps mapped through the catalog."""
    return [resolve_step(step_id) for step_id in build_steps(intent, mode, variant)]


# =============================================================================
# Intent copy
# =============================================================================

INTENT_LABELS: dict[Intent, str] = {
    Intent.JOURNALING: "Journaling & reflection",
    Intent.THERAPY: "Therapy and coaching prep",
    Intent.LEGACY: "Legacy and life archive",
}

SUMMARY_HIGHLIGHTS: dict[Intent, tuple[str, ...]] = {
    Intent.JOURNALING: (
        "Daily journal flow prioritized",
        "Pattern and trend prompts emphasized",
    ),
    Intent.THERAPY: (
        "Therapy-ready context framing enabled",
        "Data reclamation surfaced earlier",
    ),
    Intent.LEGACY: (
        "Long-term archive guidance prioritized",
        "Extension setup highlighted for timeline depth",
    ),
}


def get_intent_label(intent: Intent) -> str:
    return INTENT_LABELS[intent]


def get_summary_highlights(intent: Intent) -> list[str]:
    """Bullets shown on the summary step for the chosen intent."""
    return list(SUMMARY_HIGHLIGHTS[intent])
