"""Wizard state machine.

The controller shows one step at a time, waits for exactly one choice, and
applies the transition the step returns. The draft lives on the session, so
abandoning the wizard never touches the store or the platform.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Mapping, Optional

from .registry import STEP_REGISTRY
from .session import WizardSession
from .steps import (
    Advance,
    Commit,
    Retreat,
    Stay,
    Step,
    StepId,
    Terminate,
    Transition,
    WizardOutcome,
)
from .views import Choice, StepView, ViewTone

logger = logging.getLogger(__name__)

CommitCallback = Callable[[WizardSession], Awaitable[bool]]

_OUTCOME_MESSAGES = {
    WizardOutcome.COMPLETED: (
        "Server Configured",
        "The server has been configured. Enjoy your new political system!",
        ViewTone.NORMAL,
    ),
    WizardOutcome.CANCELLED: (
        "Configuration Cancelled",
        "The server configuration has been cancelled.",
        ViewTone.WARNING,
    ),
    WizardOutcome.TIMED_OUT: (
        "Configuration Timed Out",
        "No response was received within the time limit, cancelling.",
        ViewTone.WARNING,
    ),
    WizardOutcome.ESCAPED: (
        "Configuration Aborted",
        "An unexpected response was received, cancelling.",
        ViewTone.WARNING,
    ),
    WizardOutcome.ALREADY_CONFIGURED: (
        "Already Configured",
        "This server has already been configured.",
        ViewTone.WARNING,
    ),
}


def outcome_view(outcome: WizardOutcome) -> StepView:
    title, description, tone = _OUTCOME_MESSAGES[outcome]
    return StepView(title=title, description=description, tone=tone)


class WizardController:
    """Drives one ``WizardSession`` through the step registry."""

    def __init__(
        self,
        session: WizardSession,
        prompter,
        commit: CommitCallback,
        *,
        timeout: float,
        registry: Mapping[StepId, Step] = STEP_REGISTRY,
    ) -> None:
        self._session = session
        self._prompter = prompter
        self._commit = commit
        self._timeout = timeout
        self._registry = registry
        self._outcome: Optional[WizardOutcome] = None

    @property
    def session(self) -> WizardSession:
        return self._session

    @property
    def outcome(self) -> Optional[WizardOutcome]:
        return self._outcome

    async def run(self) -> WizardOutcome:
        """Run until the session ends and show the closing message.

        Exceptions raised by the commit callback propagate after the
        session is ended.
        """

        while self._outcome is None:
            await self.step()
        await self._prompter.finish(outcome_view(self._outcome))
        return self._outcome

    async def step(self) -> Optional[WizardOutcome]:
        """Show the current step, wait for one choice and apply it."""

        session = self._session
        if session.current is None:
            raise RuntimeError("Wizard session has already ended")
        step = self._registry[session.current]
        step.prepare(session)
        view = step.render(session)
        view.footer = f"Page {session.page}"

        try:
            choice = await self._prompter.prompt(view, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.info(
                "Wizard for community %s timed out on %s",
                session.community_id,
                session.current.value,
            )
            return self._end(WizardOutcome.TIMED_OUT)

        if not self._offered(view, choice):
            logger.warning(
                "Unexpected action %r on step %s", choice.action, session.current.value
            )
            return self._end(WizardOutcome.ESCAPED)
        action = view.action(choice.action)
        if action is not None and action.disabled:
            # Disabled controls only clamp; treat a stray press as a no-op.
            return None

        transition = step.handle(session, choice)
        return await self._apply(transition)

    @staticmethod
    def _offered(view: StepView, choice: Choice) -> bool:
        if view.action(choice.action) is not None:
            return True
        return view.selector is not None and view.selector.id == choice.action

    async def _apply(self, transition: Transition) -> Optional[WizardOutcome]:
        session = self._session
        if isinstance(transition, Advance):
            session.advance(transition.step_id)
            return None
        if isinstance(transition, Retreat):
            session.retreat()
            return None
        if isinstance(transition, Stay):
            if transition.notice:
                await self._prompter.notify(transition.notice)
            return None
        if isinstance(transition, Terminate):
            return self._end(transition.outcome)
        if isinstance(transition, Commit):
            session.draft.validate()
            try:
                created = await self._commit(session)
            finally:
                session.end()
            if created:
                logger.info("Community %s configured", session.community_id)
                return self._end(WizardOutcome.COMPLETED)
            return self._end(WizardOutcome.ALREADY_CONFIGURED)
        raise TypeError(f"Unknown transition {transition!r}")

    def _end(self, outcome: WizardOutcome) -> WizardOutcome:
        self._session.end()
        self._outcome = outcome
        return outcome


__all__ = ["CommitCallback", "WizardController", "outcome_view"]
