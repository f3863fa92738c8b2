"""Court steps."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from ..draft import TermDraft
from .steps import (
    BACK,
    CONFIRM,
    DECREASE,
    DECREASE_TEN,
    INCREASE,
    INCREASE_TEN,
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
from .views import Action, Choice, Field, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession

REMOVE_JUDGE = "remove_judge"
ADD_JUDGE = "add_judge"


class CourtOptionsStep(Step):
    """Bench size and the verdict threshold."""

    step_id = StepId.COURT_OPTIONS

    def prepare(self, session: "WizardSession") -> None:
        if session.draft.court_options is None:
            session.draft.court_options = session.templates.court()

    def render(self, session: "WizardSession") -> StepView:
        court = session.draft.court_options
        return StepView(
            title="Configure Court Options (1/2)",
            description="These options decide how many judges sit on the court and how verdicts pass.",
            fields=[
                Field("Number of Judges", str(court.seats.value)),
                Field("Verdict Threshold", f"{court.threshold.simple}%"),
            ],
            actions=[
                back_action(),
                Action(REMOVE_JUDGE, "-1 Judge", emoji="⬅️", disabled=court.seats.value <= 1),
                Action(ADD_JUDGE, "+1 Judge", emoji="➡️"),
                *percent_actions(court.threshold.simple),
                confirm_action(),
            ],
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            REMOVE_JUDGE: self._remove_judge,
            ADD_JUDGE: self._add_judge,
            DECREASE_TEN: self._adjust_threshold,
            DECREASE: self._adjust_threshold,
            INCREASE: self._adjust_threshold,
            INCREASE_TEN: self._adjust_threshold,
            CONFIRM: lambda session, choice: Advance(StepId.COURT_TERMS),
        }

    def _remove_judge(self, session: "WizardSession", choice: Choice) -> Transition:
        seats = session.draft.court_options.seats
        seats.value = max(1, seats.value - 1)
        return Stay()

    def _add_judge(self, session: "WizardSession", choice: Choice) -> Transition:
        session.draft.court_options.seats.value += 1
        return Stay()

    def _adjust_threshold(self, session: "WizardSession", choice: Choice) -> Transition:
        threshold = session.draft.court_options.threshold
        threshold.simple = adjust_percent(threshold.simple, choice.action)
        return Stay()


class CourtTermsStep(TermOptionsStep):
    step_id = StepId.COURT_TERMS
    title = "Configure Court Term Options (2/2)"
    description = "These options decide how long and how many terms Judges can serve."

    def terms(self, session: "WizardSession") -> TermDraft:
        return session.draft.court_options.terms

    def next_step(self, session: "WizardSession") -> Transition:
        return Advance(StepId.LINK_ROLES)


__all__ = ["CourtOptionsStep", "CourtTermsStep"]
