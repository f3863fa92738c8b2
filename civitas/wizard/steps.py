"""Step identifiers, transitions and shared step helpers.

Steps are addressed by ``StepId`` so the back-stack stays plain data. The
registry that maps ids to step objects lives in ``civitas.wizard.registry``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Union

from .views import Action, ActionStyle, Choice, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession


class StepId(str, Enum):
    SELECT_POLITICAL_SYSTEM = "select_political_system"
    PRESIDENTIAL_OPTIONS = "presidential_options"
    PARLIAMENTARY_OPTIONS = "parliamentary_options"
    DD_OPTIONS = "dd_options"
    SENATE_TERMS = "senate_terms"
    SENATE_SEATS = "senate_seats"
    SENATE_THRESHOLDS = "senate_thresholds"
    REFERENDUM_THRESHOLDS = "referendum_thresholds"
    COURT_OPTIONS = "court_options"
    COURT_TERMS = "court_terms"
    LINK_ROLES = "link_roles"
    LINK_CHANNELS = "link_channels"
    EMERGENCY_OPTIONS = "emergency_options"


FRAGMENTS: Dict[str, List[StepId]] = {
    "system": [
        StepId.SELECT_POLITICAL_SYSTEM,
        StepId.PRESIDENTIAL_OPTIONS,
        StepId.PARLIAMENTARY_OPTIONS,
        StepId.DD_OPTIONS,
        StepId.EMERGENCY_OPTIONS,
    ],
    "legislature": [
        StepId.SENATE_TERMS,
        StepId.SENATE_SEATS,
        StepId.SENATE_THRESHOLDS,
        StepId.REFERENDUM_THRESHOLDS,
    ],
    "judicial": [StepId.COURT_OPTIONS, StepId.COURT_TERMS],
    "discord": [StepId.LINK_ROLES, StepId.LINK_CHANNELS],
}


def fragment_of(step_id: StepId) -> str:
    for name, members in FRAGMENTS.items():
        if step_id in members:
            return name
    raise KeyError(step_id)


class WizardOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    ESCAPED = "escaped"
    ALREADY_CONFIGURED = "already_configured"


@dataclass(frozen=True)
class Advance:
    step_id: StepId


@dataclass(frozen=True)
class Retreat:
    pass


@dataclass(frozen=True)
class Stay:
    notice: Optional[str] = None


@dataclass(frozen=True)
class Terminate:
    outcome: WizardOutcome


@dataclass(frozen=True)
class Commit:
    pass


Transition = Union[Advance, Retreat, Stay, Terminate, Commit]

Handler = Callable[["WizardSession", Choice], Transition]

BACK = "back"
CONFIRM = "confirm"
CANCEL = "cancel"
NEXT = "next"
DECREASE = "decrease"
INCREASE = "increase"
DECREASE_TEN = "decrease_ten"
INCREASE_TEN = "increase_ten"
TOGGLE = "toggle"

PERCENT_MIN = 1
PERCENT_MAX = 100


class Step:
    """Base class for wizard steps.

    Subclasses implement ``render`` and expose their action handlers through
    ``handlers``. ``prepare`` runs before every render and must only fill
    draft fields that are still unset.
    """

    step_id: StepId

    def prepare(self, session: "WizardSession") -> None:
        return None

    def render(self, session: "WizardSession") -> StepView:
        raise NotImplementedError

    def handlers(self) -> Dict[str, Handler]:
        raise NotImplementedError

    def handle(self, session: "WizardSession", choice: Choice) -> Transition:
        handler = self.handlers().get(choice.action)
        if handler is None:
            return Terminate(WizardOutcome.ESCAPED)
        return handler(session, choice)


def back_action(disabled: bool = False) -> Action:
    return Action(BACK, "Back", ActionStyle.DANGER, "↩️", disabled=disabled)


def confirm_action(label: str = "Continue") -> Action:
    return Action(CONFIRM, label, ActionStyle.SUCCESS, "✅")


def cancel_action() -> Action:
    return Action(CANCEL, "Cancel", ActionStyle.DANGER, "✖️")


def retreat(session: "WizardSession", choice: Choice) -> Transition:
    return Retreat()


def cancel(session: "WizardSession", choice: Choice) -> Transition:
    return Terminate(WizardOutcome.CANCELLED)


def percent_actions(value: int) -> List[Action]:
    """±1/±10 controls for a percentage, disabled where they would clamp."""

    return [
        Action(DECREASE_TEN, "-10%", emoji="⏪", disabled=value <= 10),
        Action(DECREASE, "-1%", emoji="⬅️", disabled=value <= PERCENT_MIN),
        Action(INCREASE, "+1%", emoji="➡️", disabled=value >= PERCENT_MAX),
        Action(INCREASE_TEN, "+10%", emoji="⏩", disabled=value > 90),
    ]


def adjust_percent(value: int, action: str) -> int:
    if action == DECREASE_TEN:
        return value - 10 if value > 10 else value
    if action == DECREASE:
        return value - 1 if value > PERCENT_MIN else value
    if action == INCREASE:
        return value + 1 if value < PERCENT_MAX else value
    if action == INCREASE_TEN:
        return value + 10 if value <= 90 else value
    raise ValueError(f"Not a percentage action: {action}")


def plural(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def term_limit_label(limit: int) -> str:
    return "No Limits" if limit == 0 else str(limit)


__all__ = [
    "Advance",
    "BACK",
    "CANCEL",
    "CONFIRM",
    "Commit",
    "DECREASE",
    "DECREASE_TEN",
    "FRAGMENTS",
    "INCREASE",
    "INCREASE_TEN",
    "NEXT",
    "Retreat",
    "Stay",
    "Step",
    "StepId",
    "TOGGLE",
    "Terminate",
    "Transition",
    "WizardOutcome",
    "adjust_percent",
    "back_action",
    "cancel",
    "cancel_action",
    "confirm_action",
    "fragment_of",
    "percent_actions",
    "plural",
    "retreat",
    "term_limit_label",
]
