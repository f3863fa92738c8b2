"""Role and channel linkage steps.

These steps bind template role slots, categories and channels to existing
external roles and channels. Unbound entries are created during
provisioning.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from ..draft import ChannelDraft, FilteredCategory, RoleSlotDraft
from .steps import (
    BACK,
    CONFIRM,
    NEXT,
    TOGGLE,
    Advance,
    Handler,
    Stay,
    Step,
    StepId,
    Transition,
    back_action,
    confirm_action,
    retreat,
)
from .views import Action, ActionStyle, Choice, Field, Selector, SelectorKind, StepView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import WizardSession


PREVIOUS = "previous"
SELECT = "select"

ROLE_ALREADY_LINKED = "This Discord Role is already linked to another Political Role!"
CATEGORY_ALREADY_LINKED = "This Discord Channel is already linked to another Category!"
CHANNEL_ALREADY_LINKED = "This Discord Channel is already linked to another Channel!"


def _ensure_linkage(session: "WizardSession") -> None:
    if session.draft.discord_options is None:
        session.draft.discord_options = session.templates.discord_options(
            session.community_id
        )


def _linked(value: Optional[str]) -> str:
    return f"<@&{value}>" if value else "Not linked, will be created"


class LinkRolesStep(Step):
    """Page through the role slots in use and bind each to a platform role.

    The final slot is the community's @everyone role and cannot be rebound.
    """

    step_id = StepId.LINK_ROLES

    def prepare(self, session: "WizardSession") -> None:
        _ensure_linkage(session)
        role_draft = session.draft.discord_options.roles
        if role_draft.cursor >= self._span(session):
            role_draft.cursor = 0

    @staticmethod
    def _span(session: "WizardSession") -> int:
        return max(1, len(session.draft.filtered_roles()) - 1)

    def render(self, session: "WizardSession") -> StepView:
        roles = session.draft.filtered_roles()
        cursor = session.draft.discord_options.roles.cursor
        fields = [
            Field(
                slot.name + (" (Selected)" if index == cursor else ""),
                _linked(slot.id),
                inline=False,
            )
            for index, slot in enumerate(roles[:-1])
        ]
        return StepView(
            title="Link Discord Roles (1/2)",
            description=(
                "Link existing Discord roles to each political role, or leave them "
                "unlinked to have new roles created."
            ),
            fields=fields,
            actions=[
                back_action(),
                Action(PREVIOUS, "Previous Role", emoji="⬆️"),
                Action(NEXT, "Next Role", emoji="⬇️"),
                confirm_action(),
            ],
            selector=Selector(SELECT, SelectorKind.ROLE, "Select a Role"),
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            PREVIOUS: self._previous,
            NEXT: self._next,
            SELECT: self._select,
            CONFIRM: lambda session, choice: Advance(StepId.LINK_CHANNELS),
        }

    def _previous(self, session: "WizardSession", choice: Choice) -> Transition:
        role_draft = session.draft.discord_options.roles
        role_draft.cursor = (role_draft.cursor - 1) % self._span(session)
        return Stay()

    def _next(self, session: "WizardSession", choice: Choice) -> Transition:
        role_draft = session.draft.discord_options.roles
        role_draft.cursor = (role_draft.cursor + 1) % self._span(session)
        return Stay()

    def _select(self, session: "WizardSession", choice: Choice) -> Transition:
        role_draft = session.draft.discord_options.roles
        selected: RoleSlotDraft = session.draft.filtered_roles()[role_draft.cursor]
        # Hidden slots keep their bindings and can reappear when a toggle flips.
        if choice.value is not None and any(
            slot.id == choice.value for slot in role_draft.roles if slot is not selected
        ):
            return Stay(notice=ROLE_ALREADY_LINKED)
        selected.id = choice.value
        return Stay()


class LinkChannelsStep(Step):
    """Page through categories, or the channels of one category, and bind them."""

    step_id = StepId.LINK_CHANNELS

    def prepare(self, session: "WizardSession") -> None:
        _ensure_linkage(session)
        channel_draft = session.draft.discord_options.channels
        categories = session.draft.filtered_categories()
        if channel_draft.cursor >= len(categories):
            channel_draft.cursor = 0
        for entry in categories:
            if entry.category.cursor >= len(entry.channels):
                entry.category.cursor = 0

    def _selected(self, session: "WizardSession") -> FilteredCategory:
        categories = session.draft.filtered_categories()
        return categories[session.draft.discord_options.channels.cursor]

    def render(self, session: "WizardSession") -> StepView:
        channel_draft = session.draft.discord_options.channels
        on_category = channel_draft.on_category
        fields: List[Field] = []
        for index, entry in enumerate(session.draft.filtered_categories()):
            if index:
                fields.append(Field("\u200b", "\u200b", inline=False))
            category_selected = on_category and channel_draft.cursor == index
            fields.append(
                Field(
                    _marked(entry.category.name, category_selected),
                    _linked_channel(entry.category.id),
                    inline=False,
                )
            )
            for channel_index, channel in enumerate(entry.channels):
                channel_selected = (
                    not on_category
                    and channel_draft.cursor == index
                    and entry.category.cursor == channel_index
                )
                fields.append(
                    Field(_marked(channel.name, channel_selected), _linked_channel(channel.id))
                )
        noun = "Category" if on_category else "Channel"
        return StepView(
            title="Link Discord Channels (2/2)",
            description=(
                "Link existing Discord categories and channels, or leave them unlinked "
                "to have new ones created."
            ),
            fields=fields,
            actions=[
                back_action(),
                Action(PREVIOUS, f"Previous {noun}", emoji="⬆️"),
                Action(NEXT, f"Next {noun}", emoji="⬇️"),
                Action(
                    TOGGLE,
                    "Modifying Categories" if on_category else "Modifying Channels",
                    ActionStyle.SECONDARY,
                    "🔄",
                ),
                confirm_action(),
            ],
            selector=Selector(
                SELECT,
                SelectorKind.CATEGORY if on_category else SelectorKind.TEXT_CHANNEL,
                "Select a Category" if on_category else "Select a Channel",
            ),
        )

    def handlers(self) -> Dict[str, Handler]:
        return {
            BACK: retreat,
            PREVIOUS: self._previous,
            NEXT: self._next,
            TOGGLE: self._toggle,
            SELECT: self._select,
            CONFIRM: lambda session, choice: Advance(StepId.EMERGENCY_OPTIONS),
        }

    def _move(self, session: "WizardSession", delta: int) -> Transition:
        channel_draft = session.draft.discord_options.channels
        if channel_draft.on_category:
            count = len(session.draft.filtered_categories())
            channel_draft.cursor = (channel_draft.cursor + delta) % count
        else:
            entry = self._selected(session)
            entry.category.cursor = (entry.category.cursor + delta) % len(entry.channels)
        return Stay()

    def _previous(self, session: "WizardSession", choice: Choice) -> Transition:
        return self._move(session, -1)

    def _next(self, session: "WizardSession", choice: Choice) -> Transition:
        return self._move(session, 1)

    def _toggle(self, session: "WizardSession", choice: Choice) -> Transition:
        channel_draft = session.draft.discord_options.channels
        channel_draft.on_category = not channel_draft.on_category
        return Stay()

    def _select(self, session: "WizardSession", choice: Choice) -> Transition:
        entry = self._selected(session)
        categories = session.draft.discord_options.channels.categories
        if session.draft.discord_options.channels.on_category:
            if choice.value is not None and any(
                category.id == choice.value
                for category in categories
                if category is not entry.category
            ):
                return Stay(notice=CATEGORY_ALREADY_LINKED)
            entry.category.id = choice.value
            return Stay()

        selected: ChannelDraft = entry.channels[entry.category.cursor]
        if choice.value is not None and any(
            channel.id == choice.value
            for category in categories
            for channel in category.channels
            if channel is not selected
        ):
            return Stay(notice=CHANNEL_ALREADY_LINKED)
        selected.id = choice.value
        return Stay()


def _marked(name: str, selected: bool) -> str:
    return f"➡️ {name} ⬅️" if selected else name


def _linked_channel(value: Optional[str]) -> str:
    return f"<#{value}>" if value else "Not linked, will be created"


__all__ = [
    "CATEGORY_ALREADY_LINKED",
    "CHANNEL_ALREADY_LINKED",
    "LinkChannelsStep",
    "LinkRolesStep",
    "ROLE_ALREADY_LINKED",
]
