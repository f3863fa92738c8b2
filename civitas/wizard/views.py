"""Transport-neutral description of one wizard prompt.

A step renders a ``StepView``; a ``Prompter`` shows it to the user and
returns exactly one ``Choice``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol


class ActionStyle(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"


class SelectorKind(str, Enum):
    ROLE = "role"
    TEXT_CHANNEL = "text_channel"
    CATEGORY = "category"


class ViewTone(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"


@dataclass(frozen=True)
class Action:
    id: str
    label: str
    style: ActionStyle = ActionStyle.PRIMARY
    emoji: Optional[str] = None
    disabled: bool = False


@dataclass(frozen=True)
class Selector:
    """A picker for an external role or channel."""

    id: str
    kind: SelectorKind
    placeholder: str


@dataclass(frozen=True)
class Field:
    name: str
    value: str
    inline: bool = True


@dataclass
class StepView:
    title: str
    description: str
    fields: List[Field] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    selector: Optional[Selector] = None
    footer: str = ""
    tone: ViewTone = ViewTone.NORMAL

    def action(self, action_id: str) -> Optional[Action]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


@dataclass(frozen=True)
class Choice:
    """One user response: an action id, plus the picked id for selectors.

    ``value`` is ``None`` when a selector was cleared.
    """

    action: str
    value: Optional[str] = None


class Prompter(Protocol):
    async def prompt(self, view: StepView, *, timeout: float) -> Choice:
        """Show ``view`` and wait for one choice.

        Raises ``asyncio.TimeoutError`` when nothing arrives in time.
        """

    async def notify(self, message: str) -> None:
        """Send a short private notice without replacing the prompt."""

    async def finish(self, view: StepView) -> None:
        """Replace the prompt with a final message and no controls."""


__all__ = [
    "Action",
    "ActionStyle",
    "Choice",
    "Field",
    "Prompter",
    "Selector",
    "SelectorKind",
    "StepView",
    "ViewTone",
]
