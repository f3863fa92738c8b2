"""Discord bot entry point for Civitas."""
from __future__ import annotations

import asyncio
import atexit
import dataclasses
import logging
import os
from pathlib import Path
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from .adapters.discord import DeleteConfirmView, DiscordPlatform, DiscordPrompter
from .adapters.discord.builders import (
    DELETE_CANCELLED,
    DELETE_PROCESSING,
    DELETE_SUCCESS,
    DELETE_TIMED_OUT,
    build_delete_confirmation_embed,
    build_delete_status_embed,
)
from .config import Settings, get_settings
from .events import EventScheduler, PoliticalEvent
from .policy import Community, Requester, can_configure
from .provisioning import Provisioner
from .store import CHANNELS, GUILDS, DocumentStore, SQLiteDocumentStore
from .teardown import Teardown
from .telemetry_decorator import track_command
from .wizard import WizardController, WizardSession

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "An error occurred while attempting to update the server configuration."
NOT_IN_SERVER = "This command must be run in a server."
ALREADY_CONFIGURED = "This server has already been configured."
NOT_CONFIGURED = "This server does not have a proper configuration."
MISSING_PERMISSIONS = "You do not have the necessary permissions to configure this server."
MISSING_DELETE_PERMISSIONS = (
    "You do not have the necessary permissions to delete the server configuration."
)
BOT_MISSING_PERMISSIONS = "I do not have the necessary permissions to configure this server."
TEARDOWN_REASON = "Server Configuration Deleted"
DISPATCH_TIMEOUT_SECONDS = 30.0


def _parse_id(env_key: str) -> Optional[int]:
    value = os.environ.get(env_key)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid id %s for %s", value, env_key)
        return None


def _server_log_channel(store: DocumentStore, guild_id: str) -> Optional[int]:
    """Platform id of the community's server log channel, if configured."""

    guild = store.find_one(GUILDS, {"guild_id": guild_id})
    if guild is None:
        return None
    channel = store.find_one(CHANNELS, {"_id": guild["log_channels"]["server_logs"]})
    if channel is None or not channel.get("channel_id"):
        return None
    return int(channel["channel_id"])


async def _announce_event(
    bot: commands.Bot, store: DocumentStore, event: PoliticalEvent
) -> None:
    channel_id = _server_log_channel(store, event.guild_id)
    if channel_id is None:
        logger.warning("No server log channel for community %s", event.guild_id)
        return
    channel = bot.get_channel(channel_id)
    if channel is None:
        logger.warning("Failed to locate server log channel %s", channel_id)
        return
    await channel.send(f"A scheduled {event.kind.value} is now due.")


def _dispatch_event(
    bot: commands.Bot,
    store: DocumentStore,
    event: PoliticalEvent,
    timeout: float = DISPATCH_TIMEOUT_SECONDS,
) -> None:
    """Run the announcement on the bot loop and wait for it from the scheduler thread.

    Errors raised by the announcement surface here so the scheduler marks the
    event failed.
    """

    future = asyncio.run_coroutine_threadsafe(_announce_event(bot, store, event), bot.loop)
    future.result(timeout=timeout)


async def _reply(interaction: discord.Interaction, message: str, *, ephemeral: bool) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=ephemeral)
    else:
        await interaction.response.send_message(message, ephemeral=ephemeral)


def build_bot(
    db_path: Optional[Path] = None,
    intents: Optional[discord.Intents] = None,
    settings: Optional[Settings] = None,
) -> commands.Bot:
    settings = settings or get_settings()
    intents = intents or discord.Intents.default()
    bot = commands.Bot(command_prefix="/", intents=intents)
    store = SQLiteDocumentStore(db_path or Path(settings.database_path))
    setattr(bot, "document_store", store)
    scheduler: Optional[EventScheduler] = None

    def _shutdown_scheduler() -> None:  # pragma: no cover - process shutdown hook
        if scheduler is not None:
            scheduler.shutdown()

    atexit.register(_shutdown_scheduler)

    @bot.event
    async def on_ready() -> None:
        nonlocal scheduler
        logger.info("Civitas bot connected as %s", bot.user)
        try:
            synced = await bot.tree.sync()
            logger.info("Synced %d commands", len(synced))
        except Exception as exc:  # pragma: no cover - logging only
            logger.exception("Failed to sync commands: %s", exc)
        if scheduler is None:
            scheduler = EventScheduler(
                store,
                lambda event: _dispatch_event(bot, store, event),
                poll_seconds=settings.event_poll_seconds,
            )
            scheduler.start()
            setattr(bot, "event_scheduler", scheduler)

    def _may_configure(interaction: discord.Interaction, platform: DiscordPlatform) -> bool:
        permissions = getattr(interaction.user, "guild_permissions", None)
        requester = Requester(
            user_id=interaction.user.id,
            is_administrator=bool(permissions and permissions.administrator),
        )
        return can_configure(
            requester,
            Community.from_platform(platform),
            bot_owner_id=settings.bot_owner_id,
            max_member_free_config_count=settings.max_member_free_config_count,
        )

    async def _gate(
        interaction: discord.Interaction, *, configured: bool, denied_message: str
    ) -> Optional[discord.Guild]:
        """Return the guild when the command may proceed; otherwise reply and return None."""

        guild = interaction.guild
        if guild is None:
            await _reply(interaction, NOT_IN_SERVER, ephemeral=False)
            return None
        exists = store.find_one(GUILDS, {"guild_id": str(guild.id)}) is not None
        if exists and not configured:
            await _reply(interaction, ALREADY_CONFIGURED, ephemeral=False)
            return None
        if configured and not exists:
            await _reply(interaction, NOT_CONFIGURED, ephemeral=False)
            return None
        if not _may_configure(interaction, DiscordPlatform(guild)):
            await _reply(interaction, denied_message, ephemeral=True)
            return None
        if not guild.me.guild_permissions.administrator:
            await _reply(interaction, BOT_MISSING_PERMISSIONS, ephemeral=False)
            return None
        return guild

    config = app_commands.Group(
        name="config", description="Configure the political system of this server"
    )

    @config.command(name="init", description="Set up a political system for this server")
    @track_command
    async def config_init(interaction: discord.Interaction) -> None:
        guild = await _gate(interaction, configured=False, denied_message=MISSING_PERMISSIONS)
        if guild is None:
            return
        platform = DiscordPlatform(guild)
        provisioner = Provisioner(
            store,
            platform,
            reason=settings.audit_reason,
            link_attempts=settings.link_attempts,
        )
        is_bot_owner = settings.bot_owner_id == interaction.user.id

        async def commit(session: WizardSession) -> bool:
            record = await provisioner.provision(session.draft, is_bot_owner=is_bot_owner)
            return record is not None

        session = WizardSession(community_id=str(guild.id), user_id=str(interaction.user.id))
        controller = WizardController(
            session,
            DiscordPrompter(interaction),
            commit,
            timeout=settings.interaction_timeout_seconds,
        )
        outcome = await controller.run()
        logger.info("Configuration wizard for %s ended: %s", guild.id, outcome.value)

    @config.command(name="delete", description="Delete the server configuration")
    @track_command
    @app_commands.describe(
        remove_objects="Also delete the roles and channels linked to the configuration"
    )
    async def config_delete(
        interaction: discord.Interaction, remove_objects: bool = False
    ) -> None:
        guild = await _gate(
            interaction, configured=True, denied_message=MISSING_DELETE_PERMISSIONS
        )
        if guild is None:
            return
        view = DeleteConfirmView(
            interaction.user.id, timeout=settings.delete_confirm_timeout_seconds
        )
        await interaction.response.send_message(
            embed=build_delete_confirmation_embed(remove_objects), view=view
        )
        timed_out = await view.wait()
        if timed_out or view.confirmed is None:
            await interaction.edit_original_response(
                embed=build_delete_status_embed(DELETE_TIMED_OUT, warning=True), view=None
            )
            return
        if not view.confirmed:
            await interaction.edit_original_response(
                embed=build_delete_status_embed(DELETE_CANCELLED, warning=True), view=None
            )
            return
        await interaction.edit_original_response(
            embed=build_delete_status_embed(DELETE_PROCESSING), view=None
        )
        teardown = Teardown(store, DiscordPlatform(guild), reason=TEARDOWN_REASON)
        await teardown.teardown(str(guild.id), remove_objects)
        try:
            await interaction.edit_original_response(
                embed=build_delete_status_embed(DELETE_SUCCESS), view=None
            )
        except discord.NotFound:
            # The channel holding the prompt may have been removed with the configuration.
            await _post_success(guild)

    async def _post_success(guild: discord.Guild) -> None:
        channel = guild.system_channel
        if channel is None:
            return
        try:
            await channel.send(DELETE_SUCCESS)
        except Exception:  # pragma: no cover - defensive logging
            logger.exception("Failed to announce configuration deletion for %s", guild.id)

    @bot.tree.error
    async def on_app_command_error(
        interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        logger.error(
            "Command %s failed",
            interaction.command.qualified_name if interaction.command else "unknown",
            exc_info=(type(error), error, error.__traceback__),
        )
        try:
            await _reply(interaction, FAILURE_MESSAGE, ephemeral=True)
        except discord.HTTPException:  # pragma: no cover - defensive logging
            logger.exception("Failed to send failure message")

    bot.tree.add_command(config)
    return bot


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    token = os.environ.get("DISCORD_TOKEN")
    if not token:
        raise RuntimeError("DISCORD_TOKEN environment variable must be set")
    settings = get_settings()
    owner_id = _parse_id("CIVITAS_BOT_OWNER_ID")
    if owner_id is not None:
        settings = dataclasses.replace(settings, bot_owner_id=owner_id)
    db_path = Path(os.environ.get("CIVITAS_DB_PATH", settings.database_path))
    bot = build_bot(db_path, settings=settings)
    bot.run(token)


__all__ = ["build_bot", "main"]
