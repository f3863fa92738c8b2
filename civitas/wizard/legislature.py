"""Legislature steps: senate terms, seats and thresholds, and referendums."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from ..draft import TermDraft, ThresholdDraft
from ..models import PoliticalSystemType
from .steps import (
    BACK,
    CONFIRM,
    DECREASE,
    DECREASE_TEN,
    INCREASE,
    INCREASE_TEN,
    NEXT,
    TOGGLE,
    Advance,
    Handler,
    Stay,
    Step,
    StepId,
    Transition,
    adjust_percent,
    back_action,
    confirm_action,
    percent_actions,
    retreat,
)
from .terms import TermOptionsStep
from .views import Action, ActionStyle, Choice, Field, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession

SUPER, SIMPLE = 0, 1


class SenateTermsStep(TermOptionsStep):
    step_id = StepId.SENATE_TERMS
    title = "Configure Senate Term Options (1/3)"
    description = "These options decide how long and how many terms Senators can serve."

    def prepare(self, session: "WizardSession") -> None:
        if session.draft.senate_options is None:
            session.draft.senate_options = session.templates.senate()

    def terms(self, session: "WizardSession") -> TermDraft:
        return session.draft.senate_options.terms

    def next_step(self, session: "WizardSession") -> Transition:
        return Advance(StepId.SENATE_SEATS)


class SenateSeatsStep(Step):
    step_id = StepId.SENATE_SEATS

    def render(self, session: "WizardSession") -> StepView:
        seats = session.draft.senate_options.seats
        return StepView(
            title="Configure Senate Seat Options (2/3)",
            description="These options decide how many seats are available in the Senate.",
            fields=[
                Field(
                    "Method of Allocation",
                    "Scale by Population" if seats.scalable else "Fixed Number",
                ),
                Field(
                    "Citizens Per Seat" if seats.scalable else "Number of Seats",
                    str(seats.value),
                ),
            ],
            actions=[
                back_action(),
                Action(TOGGLE, "Toggle Allocation Method", emoji="🔄"),
                Action(DECREASE, "-1", emoji="⬅️", disabled=seats.value <= 1),
                Action(INCREASE, "+1", emoji="➡️"),
                confirm_action(),
            ],
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            TOGGLE: self._toggle,
            DECREASE: self._decrease,
            INCREASE: self._increase,
            CONFIRM: lambda session, choice: Advance(StepId.SENATE_THRESHOLDS),
        }

    def _toggle(self, session: "WizardSession", choice: Choice) -> Transition:
        seats = session.draft.senate_options.seats
        seats.scalable = not seats.scalable
        return Stay()

    def _decrease(self, session: "WizardSession", choice: Choice) -> Transition:
        seats = session.draft.senate_options.seats
        seats.value = max(1, seats.value - 1)
        return Stay()

    def _increase(self, session: "WizardSession", choice: Choice) -> Transition:
        session.draft.senate_options.seats.value += 1
        return Stay()


class ThresholdStep(Step):
    """Supermajority and simple majority percentages on shared controls."""

    title = ""
    description = ""

    def threshold(self, session: "WizardSession") -> ThresholdDraft:
        raise NotImplementedError

    def next_step(self, session: "WizardSession") -> Transition:
        raise NotImplementedError

    def render(self, session: "WizardSession") -> StepView:
        threshold = self.threshold(session)
        fields = [
            Field("Supermajority Threshold", f"{threshold.super}%"),
            Field("Simple Majority Threshold", f"{threshold.simple}%"),
        ]
        active = fields.pop(threshold.cursor)
        fields.insert(0, Field(active.name, active.value, inline=False))
        value = threshold.super if threshold.cursor == SUPER else threshold.simple
        toggle_label = (
            "Modify Simple Majority" if threshold.cursor == SUPER else "Modify Supermajority"
        )
        return StepView(
            title=self.title,
            description=self.description,
            fields=fields,
            actions=[
                back_action(),
                *percent_actions(value),
                Action(NEXT, toggle_label, ActionStyle.SECONDARY, "🔄"),
                confirm_action(),
            ],
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            DECREASE_TEN: self._adjust,
            DECREASE: self._adjust,
            INCREASE: self._adjust,
            INCREASE_TEN: self._adjust,
            NEXT: self._next,
            CONFIRM: lambda session, choice: self.next_step(session),
        }

    def _adjust(self, session: "WizardSession", choice: Choice) -> Transition:
        threshold = self.threshold(session)
        if threshold.cursor == SUPER:
            threshold.super = adjust_percent(threshold.super, choice.action)
        else:
            threshold.simple = adjust_percent(threshold.simple, choice.action)
        return Stay()

    def _next(self, session: "WizardSession", choice: Choice) -> Transition:
        threshold = self.threshold(session)
        threshold.cursor = 1 - threshold.cursor
        return Stay()


class SenateThresholdsStep(ThresholdStep):
    step_id = StepId.SENATE_THRESHOLDS
    title = "Configure Senate Threshold Options (3/3)"
    description = "These options decide the percentage of votes needed to pass a bill."

    def threshold(self, session: "WizardSession") -> ThresholdDraft:
        return session.draft.senate_options.threshold

    def next_step(self, session: "WizardSession") -> Transition:
        if session.draft.political_system is PoliticalSystemType.PARLIAMENTARY:
            return Advance(StepId.PARLIAMENTARY_OPTIONS)
        return Advance(StepId.COURT_OPTIONS)


class ReferendumThresholdsStep(ThresholdStep):
    step_id = StepId.REFERENDUM_THRESHOLDS
    title = "Configure Referendum Threshold Options (1/1)"
    description = "These options decide the percentage of votes needed to pass a referendum."

    def prepare(self, session: "WizardSession") -> None:
        if session.draft.referendum_thresholds is None:
            session.draft.referendum_thresholds = session.templates.thresholds()

    def threshold(self, session: "WizardSession") -> ThresholdDraft:
        return session.draft.referendum_thresholds

    def next_step(self, session: "WizardSession") -> Transition:
        if session.draft.dd_options.appoint_judges:
            return Advance(StepId.COURT_OPTIONS)
        return Advance(StepId.LINK_ROLES)


__all__ = [
    "ReferendumThresholdsStep",
    "SenateSeatsStep",
    "SenateTermsStep",
    "SenateThresholdsStep",
    "ThresholdStep",
]
