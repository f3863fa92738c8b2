"""Discord views that collect wizard and deletion responses."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import discord

from ...wizard.views import ActionStyle, Choice, SelectorKind, StepView
from .builders import build_step_embed

logger = logging.getLogger(__name__)

_BUTTON_STYLES = {
    ActionStyle.PRIMARY: discord.ButtonStyle.primary,
    ActionStyle.SECONDARY: discord.ButtonStyle.secondary,
    ActionStyle.SUCCESS: discord.ButtonStyle.success,
    ActionStyle.DANGER: discord.ButtonStyle.danger,
}

_CHANNEL_TYPES = {
    SelectorKind.TEXT_CHANNEL: [discord.ChannelType.text],
    SelectorKind.CATEGORY: [discord.ChannelType.category],
}


class _OwnedView(discord.ui.View):
    """A view only the user who opened it may press."""

    def __init__(self, user_id: int, *, timeout: float) -> None:
        super().__init__(timeout=timeout)
        self.user_id = user_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id == self.user_id:
            return True
        await interaction.response.send_message(
            "You can't use this menu.", ephemeral=True
        )
        return False


class StepPromptView(_OwnedView):
    """Buttons and an optional picker for one wizard step."""

    def __init__(self, view: StepView, user_id: int, *, timeout: float) -> None:
        super().__init__(user_id, timeout=timeout)
        self.choice: Optional[Choice] = None
        for action in view.actions:
            button = discord.ui.Button(
                label=action.label,
                style=_BUTTON_STYLES[action.style],
                emoji=action.emoji,
                disabled=action.disabled,
                custom_id=action.id,
            )
            button.callback = self._on_button(action.id)
            self.add_item(button)
        if view.selector is not None:
            selector = view.selector
            if selector.kind is SelectorKind.ROLE:
                select: discord.ui.Item = discord.ui.RoleSelect(
                    placeholder=selector.placeholder,
                    custom_id=selector.id,
                    min_values=0,
                    max_values=1,
                )
            else:
                select = discord.ui.ChannelSelect(
                    placeholder=selector.placeholder,
                    custom_id=selector.id,
                    channel_types=_CHANNEL_TYPES[selector.kind],
                    min_values=0,
                    max_values=1,
                )
            select.callback = self._on_select(selector.id)
            self.add_item(select)

    def _on_button(self, action_id: str):
        async def callback(interaction: discord.Interaction) -> None:
            await self._resolve(interaction, Choice(action_id))

        return callback

    def _on_select(self, selector_id: str):
        async def callback(interaction: discord.Interaction) -> None:
            values = (interaction.data or {}).get("values", [])
            await self._resolve(
                interaction, Choice(selector_id, str(values[0]) if values else None)
            )

        return callback

    async def _resolve(self, interaction: discord.Interaction, choice: Choice) -> None:
        if self.choice is not None:
            return
        self.choice = choice
        await interaction.response.defer()
        self.stop()


class DiscordPrompter:
    """Shows wizard steps as one ephemeral message edited in place."""

    def __init__(self, interaction: discord.Interaction) -> None:
        self._interaction = interaction
        self._user_id = interaction.user.id

    async def _show(self, embed: discord.Embed, view: Optional[discord.ui.View]) -> None:
        if self._interaction.response.is_done():
            await self._interaction.edit_original_response(embed=embed, view=view)
        else:
            await self._interaction.response.send_message(
                embed=embed, view=view, ephemeral=True
            )

    async def prompt(self, view: StepView, *, timeout: float) -> Choice:
        prompt = StepPromptView(view, self._user_id, timeout=timeout)
        await self._show(build_step_embed(view), prompt)
        timed_out = await prompt.wait()
        if timed_out or prompt.choice is None:
            raise asyncio.TimeoutError
        return prompt.choice

    async def notify(self, message: str) -> None:
        try:
            await self._interaction.followup.send(message, ephemeral=True)
        except discord.HTTPException:  # pragma: no cover - defensive logging
            logger.exception("Failed to send wizard notice")

    async def finish(self, view: StepView) -> None:
        await self._show(build_step_embed(view), None)


class DeleteConfirmView(_OwnedView):
    """Yes/No confirmation for removing a configuration.

    ``confirmed`` stays ``None`` when the view times out.
    """

    def __init__(self, user_id: int, *, timeout: float) -> None:
        super().__init__(user_id, timeout=timeout)
        self.confirmed: Optional[bool] = None

    @discord.ui.button(label="Yes", style=discord.ButtonStyle.danger)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.confirmed = True
        await interaction.response.defer()
        self.stop()

    @discord.ui.button(label="No", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.confirmed = False
        await interaction.response.defer()
        self.stop()


__all__ = ["DeleteConfirmView", "DiscordPrompter", "StepPromptView"]
