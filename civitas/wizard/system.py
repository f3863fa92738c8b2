"""Political system selection and executive option steps."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from ..draft import TermDraft
from ..models import PoliticalSystemType
from .steps import (
    BACK,
    CANCEL,
    CONFIRM,
    DECREASE,
    INCREASE,
    Advance,
    Handler,
    Stay,
    Step,
    StepId,
    Transition,
    back_action,
    cancel,
    cancel_action,
    confirm_action,
    plural,
    retreat,
)
from .terms import TermOptionsStep
from .views import Action, ActionStyle, Choice, Field, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession

_FIRST_STEP = {
    PoliticalSystemType.PRESIDENTIAL: StepId.PRESIDENTIAL_OPTIONS,
    PoliticalSystemType.PARLIAMENTARY: StepId.SENATE_TERMS,
    PoliticalSystemType.DIRECT_DEMOCRACY: StepId.DD_OPTIONS,
}

_SYSTEM_BUTTONS = {
    PoliticalSystemType.PRESIDENTIAL: ("🤵", ActionStyle.PRIMARY),
    PoliticalSystemType.PARLIAMENTARY: ("🏛️", ActionStyle.SECONDARY),
    PoliticalSystemType.DIRECT_DEMOCRACY: ("🗳️", ActionStyle.SUCCESS),
}


class SelectPoliticalSystemStep(Step):
    step_id = StepId.SELECT_POLITICAL_SYSTEM

    def render(self, session: "WizardSession") -> StepView:
        fields = [
            Field(system.label, system.description, inline=False)
            for system in PoliticalSystemType
        ]
        # Nothing precedes this step; Back stays visible but inert.
        actions = [cancel_action(), back_action(disabled=not session.back_stack)]
        for system, (emoji, style) in _SYSTEM_BUTTONS.items():
            actions.append(Action(system.value, system.label, style, emoji))
        return StepView(
            title="Select a Political System",
            description="The political system you select will determine how the server functions!",
            fields=fields,
            actions=actions,
        )

    def handlers(self) -> Dict[str, Handler]:
        handlers: Dict[str, Handler] = {CANCEL: cancel, BACK: retreat}
        for system in PoliticalSystemType:
            handlers[system.value] = self._choose
        return handlers

    def _choose(self, session: "WizardSession", choice: Choice) -> Transition:
        system = PoliticalSystemType(choice.action)
        session.draft.choose_system(system)
        return Advance(_FIRST_STEP[system])


class PresidentialOptionsStep(TermOptionsStep):
    step_id = StepId.PRESIDENTIAL_OPTIONS
    sub_views = 3
    title = "Configure Presidential Options (1/1)"
    description = (
        "These options decide the maximum number of terms the President can "
        "serve and how long for each one."
    )

    def prepare(self, session: "WizardSession") -> None:
        if session.draft.presidential_options is None:
            session.draft.presidential_options = session.templates.presidential_terms()

    def terms(self, session: "WizardSession") -> TermDraft:
        return session.draft.presidential_options

    def next_step(self, session: "WizardSession") -> Transition:
        return Advance(StepId.SENATE_TERMS)


class ParliamentaryOptionsStep(Step):
    """Snap election interval, kept strictly below the senate term length."""

    step_id = StepId.PARLIAMENTARY_OPTIONS

    @staticmethod
    def _ceiling(session: "WizardSession") -> int:
        return max(0, session.draft.senate_options.terms.term_length - 1)

    def prepare(self, session: "WizardSession") -> None:
        draft = session.draft
        term_length = draft.senate_options.terms.term_length
        if draft.parliamentary_options is None:
            draft.parliamentary_options = session.templates.parliamentary(term_length)
        elif draft.parliamentary_options.snap_election > self._ceiling(session):
            # The senate term may have been shortened since this step was shown.
            draft.parliamentary_options.snap_election = self._ceiling(session)

    def render(self, session: "WizardSession") -> StepView:
        snap = session.draft.parliamentary_options.snap_election
        term_length = session.draft.senate_options.terms.term_length
        return StepView(
            title="Configure options for Parliamentary System (1/1)",
            description="These options decide the frequency of snap elections.",
            fields=[
                Field(
                    "Minimum Snap Election Interval",
                    "Snap Elections Disabled" if snap == 0 else plural(snap, "Month"),
                ),
                Field("Configured Senator Term Length", plural(term_length, "Month")),
            ],
            actions=[
                back_action(),
                Action(DECREASE, "-1 Month", emoji="⬅️", disabled=snap <= 0),
                Action(
                    INCREASE,
                    "+1 Month",
                    emoji="➡️",
                    disabled=snap >= self._ceiling(session),
                ),
                confirm_action(),
            ],
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            DECREASE: self._decrease,
            INCREASE: self._increase,
            CONFIRM: lambda session, choice: Advance(StepId.COURT_OPTIONS),
        }

    def _decrease(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.parliamentary_options
        options.snap_election = max(0, options.snap_election - 1)
        return Stay()

    def _increase(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.parliamentary_options
        options.snap_election = min(self._ceiling(session), options.snap_election + 1)
        return Stay()


TOGGLE_MODERATORS = "toggle_moderators"
TOGGLE_JUDGES = "toggle_judges"


class DDOptionsStep(Step):
    step_id = StepId.DD_OPTIONS

    def prepare(self, session: "WizardSession") -> None:
        if session.draft.dd_options is None:
            session.draft.dd_options = session.templates.dd_options()

    def render(self, session: "WizardSession") -> StepView:
        options = session.draft.dd_options
        return StepView(
            title="Configure Direct Democracy Options (1/1)",
            description=(
                "These options decide whether citizens elect moderators and judges, "
                "or take on those duties themselves."
            ),
            fields=[
                Field("Elect Moderators", "Enabled" if options.appoint_moderators else "Disabled"),
                Field("Elect Judges", "Enabled" if options.appoint_judges else "Disabled"),
            ],
            actions=[
                back_action(),
                Action(TOGGLE_MODERATORS, "Toggle Moderators", emoji="🛡️"),
                Action(TOGGLE_JUDGES, "Toggle Judges", emoji="⚖️"),
                confirm_action(),
            ],
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            TOGGLE_MODERATORS: self._toggle_moderators,
            TOGGLE_JUDGES: self._toggle_judges,
            CONFIRM: lambda session, choice: Advance(StepId.REFERENDUM_THRESHOLDS),
        }

    def _toggle_moderators(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.dd_options
        options.appoint_moderators = not options.appoint_moderators
        return Stay()

    def _toggle_judges(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.dd_options
        options.appoint_judges = not options.appoint_judges
        return Stay()


__all__ = [
    "DDOptionsStep",
    "ParliamentaryOptionsStep",
    "PresidentialOptionsStep",
    "SelectPoliticalSystemStep",
]
