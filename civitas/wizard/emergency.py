"""Emergency options, the last step before the configuration is committed."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from .steps import (
    BACK,
    CANCEL,
    CONFIRM,
    DECREASE,
    INCREASE,
    NEXT,
    TOGGLE,
    Commit,
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
from .views import Action, ActionStyle, Choice, Field, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession

ADMIN_LENGTH, RESET_CONFIG = 0, 1


class EmergencyOptionsStep(Step):
    step_id = StepId.EMERGENCY_OPTIONS

    def prepare(self, session: "WizardSession") -> None:
        if session.draft.emergency_options is None:
            session.draft.emergency_options = session.templates.emergency(session.user_id)

    def render(self, session: "WizardSession") -> StepView:
        options = session.draft.emergency_options
        fields = [
            Field("Temporary Administrator Length", plural(options.temp_admin_length, "Hour")),
            Field(
                "Allow Configuration Reset",
                "Enabled" if options.allow_reset_config else "Disabled",
            ),
        ]
        active = fields.pop(options.cursor)
        fields.insert(0, Field(active.name, active.value, inline=False))

        actions: List[Action] = [cancel_action(), back_action()]
        if options.cursor == ADMIN_LENGTH:
            actions.append(
                Action(
                    DECREASE,
                    "-1 Hour",
                    emoji="⬅️",
                    disabled=options.temp_admin_length <= 1,
                )
            )
            actions.append(Action(INCREASE, "+1 Hour", emoji="➡️"))
            next_label = "Modify Configuration Reset"
        else:
            actions.append(Action(TOGGLE, "Toggle Configuration Reset", emoji="↕️"))
            next_label = "Modify Administrator Length"
        actions.append(Action(NEXT, next_label, ActionStyle.SECONDARY, "🔄"))
        actions.append(confirm_action("Confirm"))
        return StepView(
            title="Configure Emergency Options",
            description=(
                "These options decide how long a temporary administrator keeps control "
                "during an emergency and whether the configuration may be reset. "
                "Confirming will set up the server."
            ),
            fields=fields,
            actions=actions,
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            CANCEL: cancel,
            BACK: retreat,
            DECREASE: self._decrease,
            INCREASE: self._increase,
            TOGGLE: self._toggle,
            NEXT: self._next,
            CONFIRM: lambda session, choice: Commit(),
        }

    def _decrease(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.emergency_options
        options.temp_admin_length = max(1, options.temp_admin_length - 1)
        return Stay()

    def _increase(self, session: "WizardSession", choice: Choice) -> Transition:
        session.draft.emergency_options.temp_admin_length += 1
        return Stay()

    def _toggle(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.emergency_options
        options.allow_reset_config = not options.allow_reset_config
        return Stay()

    def _next(self, session: "WizardSession", choice: Choice) -> Transition:
        options = session.draft.emergency_options
        options.cursor = 1 - options.cursor
        return Stay()


__all__ = ["EmergencyOptionsStep"]
