"""Per-session wizard context."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..defaults import Templates, get_templates
from ..draft import GuildConfigData
from .steps import StepId, fragment_of


@dataclass
class WizardSession:
    """Everything one setup conversation owns.

    ``back_stack`` holds the ids of previously shown steps; ``current`` is
    the step to show next, or ``None`` once the session has ended.
    """

    community_id: str
    user_id: str
    draft: GuildConfigData = field(default_factory=GuildConfigData)
    templates: Templates = field(default_factory=get_templates)
    page: int = 1
    back_stack: List[StepId] = field(default_factory=list)
    current: Optional[StepId] = StepId.SELECT_POLITICAL_SYSTEM

    @property
    def fragment(self) -> Optional[str]:
        return fragment_of(self.current) if self.current else None

    def advance(self, step_id: StepId) -> None:
        if self.current is not None:
            self.back_stack.append(self.current)
        self.current = step_id
        self.page += 1

    def retreat(self) -> bool:
        """Return to the previous step; on the first step this does nothing."""

        if not self.back_stack:
            return False
        self.current = self.back_stack.pop()
        self.page = max(1, self.page - 1)
        return True

    def end(self) -> None:
        self.current = None


__all__ = ["WizardSession"]
