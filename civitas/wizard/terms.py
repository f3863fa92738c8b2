"""Shared step for editing term length, term limit and consecutive terms."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from ..draft import TermDraft
from .steps import (
    BACK,
    CONFIRM,
    DECREASE,
    INCREASE,
    NEXT,
    TOGGLE,
    Handler,
    Stay,
    Step,
    Transition,
    back_action,
    confirm_action,
    plural,
    retreat,
    term_limit_label,
)
from .views import Action, ActionStyle, Choice, Field, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession

LENGTH, LIMIT, CONSECUTIVE = 0, 1, 2


class TermOptionsStep(Step):
    """Cursor over the term sub-views.

    Two sub-views (length, limit) by default; steps that also decide whether
    terms may be served back to back set ``sub_views = 3``.
    """

    sub_views = 2
    title = ""
    description = ""

    def terms(self, session: "WizardSession") -> TermDraft:
        raise NotImplementedError

    def next_step(self, session: "WizardSession") -> Transition:
        raise NotImplementedError

    def render(self, session: "WizardSession") -> StepView:
        terms = self.terms(session)
        cursor = terms.cursor
        fields = [
            Field("Term Length", plural(terms.term_length, "Month")),
            Field("Term Limits", term_limit_label(terms.term_limit)),
        ]
        if self.sub_views == 3:
            fields.append(
                Field("Consecutive Terms", "Enabled" if terms.consecutive else "Disabled")
            )
        active = fields.pop(cursor)
        fields.insert(0, Field(active.name, active.value, inline=False))

        actions: List[Action] = [back_action()]
        if cursor == CONSECUTIVE:
            actions.append(Action(TOGGLE, "Toggle Consecutive Terms", emoji="↕️"))
        else:
            unit = "Month" if cursor == LENGTH else "Term"
            at_floor = terms.term_length <= 1 if cursor == LENGTH else terms.term_limit <= 0
            actions.append(Action(DECREASE, f"-1 {unit}", emoji="⬅️", disabled=at_floor))
            actions.append(Action(INCREASE, f"+1 {unit}", emoji="➡️"))
        next_label = {
            LENGTH: "Modify Term Limit",
            LIMIT: "Modify Consecutive Terms" if self.sub_views == 3 else "Modify Term Length",
            CONSECUTIVE: "Modify Term Length",
        }[cursor]
        actions.append(Action(NEXT, next_label, ActionStyle.SECONDARY, "🔄"))
        actions.append(confirm_action())
        return StepView(
            title=self.title, description=self.description, fields=fields, actions=actions
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            DECREASE: self._decrease,
            INCREASE: self._increase,
            TOGGLE: self._toggle,
            NEXT: self._next,
            CONFIRM: lambda session, choice: self.next_step(session),
        }

    def _decrease(self, session: "WizardSession", choice: Choice) -> Transition:
        terms = self.terms(session)
        if terms.cursor == LENGTH:
            terms.term_length = max(1, terms.term_length - 1)
        elif terms.cursor == LIMIT:
            terms.term_limit = max(0, terms.term_limit - 1)
        return Stay()

    def _increase(self, session: "WizardSession", choice: Choice) -> Transition:
        terms = self.terms(session)
        if terms.cursor == LENGTH:
            terms.term_length += 1
        elif terms.cursor == LIMIT:
            terms.term_limit += 1
        return Stay()

    def _toggle(self, session: "WizardSession", choice: Choice) -> Transition:
        terms = self.terms(session)
        terms.consecutive = not terms.consecutive
        return Stay()

    def _next(self, session: "WizardSession", choice: Choice) -> Transition:
        terms = self.terms(session)
        terms.cursor = (terms.cursor + 1) % self.sub_views
        return Stay()


__all__ = ["TermOptionsStep"]
