"""Discord embed builders.

Pure construction helpers: wizard views and the deletion dialog are
described in transport-neutral terms elsewhere and rendered here.
"""

from __future__ import annotations

import discord

from ...wizard.views import StepView, ViewTone

DELETE_TITLE = "Server Configuration Deletion"
DELETE_FOOTER = "This action is irreversible!"
DELETE_PROCESSING = "Processing your request..."
DELETE_SUCCESS = "Server configuration has been successfully deleted."
DELETE_CANCELLED = "Server configuration deletion has been cancelled."
DELETE_TIMED_OUT = "Server configuration deletion has timed out."


def _colour(tone: ViewTone) -> discord.Colour:
    if tone is ViewTone.WARNING:
        return discord.Colour.yellow()
    return discord.Colour.blurple()


def build_step_embed(view: StepView) -> discord.Embed:
    """Render one wizard prompt or closing message."""

    embed = discord.Embed(
        title=view.title,
        description=view.description,
        colour=_colour(view.tone),
    )
    for field in view.fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)
    if view.footer:
        embed.set_footer(text=view.footer)
    return embed


def build_delete_confirmation_embed(remove_objects: bool) -> discord.Embed:
    if remove_objects:
        detail = "Existing roles and channels will be deleted."
    else:
        detail = "Existing roles and channels will not be deleted."
    embed = discord.Embed(
        title=DELETE_TITLE,
        description=(
            "Are you sure you want to delete the server configuration? " + detail
        ),
        colour=discord.Colour.red(),
    )
    embed.set_footer(text=DELETE_FOOTER)
    return embed


def build_delete_status_embed(message: str, *, warning: bool = False) -> discord.Embed:
    return discord.Embed(
        title=DELETE_TITLE,
        description=message,
        colour=discord.Colour.yellow() if warning else discord.Colour.blurple(),
    )


__all__ = [
    "DELETE_CANCELLED",
    "DELETE_PROCESSING",
    "DELETE_SUCCESS",
    "DELETE_TIMED_OUT",
    "build_delete_confirmation_embed",
    "build_delete_status_embed",
    "build_step_embed",
]
