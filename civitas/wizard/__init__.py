"""Guided setup wizard: steps, session context and state machine."""
from __future__ import annotations

from .controller import WizardController, outcome_view
from .session import WizardSession
from .steps import StepId, WizardOutcome
from .views import Choice, Prompter, StepView

__all__ = [
    "Choice",
    "Prompter",
    "StepId",
    "StepView",
    "WizardController",
    "WizardOutcome",
    "WizardSession",
    "outcome_view",
]
