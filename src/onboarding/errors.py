"""Onboarding wizard errors."""


class OnboardingError(Exception):
    """Base class for wizard navigation errors."""


class StepGatedError(OnboardingError):
    """NEXT was requested while the current step has an unmet precondition."""

    def __init__(self, step_id, reason: str):
        self.step_id = step_id
        self.reason = reason
        super().__init__(f"Cannot leave step {step_id.value}: {reason}")


class WizardClosedError(OnboardingError):
    """A transition was requested after onboarding completed or was skipped."""


class TransitionInProgressError(OnboardingError):
    """A collaborator call is still pending; only one transition may run at a time."""
