"""``ChatPlatform`` on top of a ``discord.Guild``."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence

import discord

from ...platform import (
    PermissionOverwrite,
    PlatformChannel,
    PlatformChannelType,
    PlatformError,
    PlatformRole,
)

logger = logging.getLogger(__name__)


@contextmanager
def _platform_errors(action: str) -> Iterator[None]:
    try:
        yield
    except discord.HTTPException as exc:
        raise PlatformError(f"Discord rejected {action}: {exc}") from exc


def _permissions(names: FrozenSet[str]) -> discord.Permissions:
    known = {name for name in names if name in discord.Permissions.VALID_FLAGS}
    unknown = set(names) - known
    if unknown:
        logger.debug("Ignoring capabilities unknown to discord.py: %s", sorted(unknown))
    return discord.Permissions(**{name: True for name in known})


def _overwrite(entry: PermissionOverwrite) -> discord.PermissionOverwrite:
    values: Dict[str, Optional[bool]] = {}
    for name in entry.allow:
        if name in discord.Permissions.VALID_FLAGS:
            values[name] = True
    for name in entry.deny:
        if name in discord.Permissions.VALID_FLAGS:
            values[name] = False
    return discord.PermissionOverwrite(**values)


def _channel(channel: discord.abc.GuildChannel) -> PlatformChannel:
    if isinstance(channel, discord.CategoryChannel):
        kind = PlatformChannelType.CATEGORY
    elif isinstance(channel, discord.TextChannel):
        kind = PlatformChannelType.TEXT
    else:
        kind = PlatformChannelType.OTHER
    parent = getattr(channel, "category_id", None)
    return PlatformChannel(
        id=str(channel.id),
        name=channel.name,
        type=kind,
        parent_id=str(parent) if parent else None,
    )


class DiscordPlatform:
    """Adapts one Discord guild to the engine's platform boundary."""

    def __init__(self, guild: discord.Guild) -> None:
        self._guild = guild

    @property
    def community_id(self) -> str:
        return str(self._guild.id)

    @property
    def owner_id(self) -> str:
        return str(self._guild.owner_id)

    @property
    def member_count(self) -> int:
        return self._guild.member_count or 0

    async def fetch_roles(self) -> List[PlatformRole]:
        with _platform_errors("role listing"):
            roles = await self._guild.fetch_roles()
        return [PlatformRole(id=str(role.id), name=role.name) for role in roles]

    async def fetch_role(self, role_id: str) -> Optional[PlatformRole]:
        for role in await self.fetch_roles():
            if role.id == role_id:
                return role
        return None

    async def create_role(
        self,
        *,
        name: str,
        permissions: FrozenSet[str],
        color: str,
        hoist: bool,
        reason: Optional[str] = None,
    ) -> PlatformRole:
        with _platform_errors(f"creating role {name}"):
            role = await self._guild.create_role(
                name=name,
                permissions=_permissions(permissions),
                colour=discord.Colour.from_str(color),
                hoist=hoist,
                reason=reason,
            )
        return PlatformRole(id=str(role.id), name=role.name)

    async def delete_role(self, role_id: str, *, reason: Optional[str] = None) -> None:
        role = self._guild.get_role(int(role_id))
        if role is None:
            return
        try:
            await role.delete(reason=reason)
        except discord.NotFound:
            return
        except discord.HTTPException as exc:
            raise PlatformError(f"Discord rejected deleting role {role_id}: {exc}") from exc

    async def add_role_to_bot(self, role_id: str, *, reason: Optional[str] = None) -> None:
        with _platform_errors(f"assigning role {role_id} to the bot"):
            await self._guild.me.add_roles(discord.Object(id=int(role_id)), reason=reason)

    async def _get_channel(self, channel_id: str) -> Optional[discord.abc.GuildChannel]:
        channel = self._guild.get_channel(int(channel_id))
        if channel is not None:
            return channel
        try:
            return await self._guild.fetch_channel(int(channel_id))
        except (discord.NotFound, discord.InvalidData):
            return None
        except discord.HTTPException as exc:
            raise PlatformError(f"Discord rejected fetching channel {channel_id}: {exc}") from exc

    async def fetch_channel(self, channel_id: str) -> Optional[PlatformChannel]:
        channel = await self._get_channel(channel_id)
        return _channel(channel) if channel is not None else None

    async def _category(self, parent_id: Optional[str]) -> Optional[discord.CategoryChannel]:
        if parent_id is None:
            return None
        category = await self._get_channel(parent_id)
        if not isinstance(category, discord.CategoryChannel):
            raise PlatformError(f"Channel {parent_id} is not a category")
        return category

    def _overwrites(
        self, overwrites: Sequence[PermissionOverwrite]
    ) -> Dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
        mapped: Dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {}
        for entry in overwrites:
            target = self._guild.get_role(int(entry.target_id))
            if target is None:
                target = discord.Object(id=int(entry.target_id), type=discord.Role)
            mapped[target] = _overwrite(entry)
        return mapped

    async def create_category(
        self, *, name: str, reason: Optional[str] = None
    ) -> PlatformChannel:
        with _platform_errors(f"creating category {name}"):
            category = await self._guild.create_category(name, reason=reason)
        return _channel(category)

    async def create_text_channel(
        self,
        *,
        name: str,
        parent_id: Optional[str],
        topic: str,
        overwrites: Sequence[PermissionOverwrite],
        reason: Optional[str] = None,
    ) -> PlatformChannel:
        category = await self._category(parent_id)
        with _platform_errors(f"creating channel {name}"):
            channel = await self._guild.create_text_channel(
                name,
                category=category,
                topic=topic,
                overwrites=self._overwrites(overwrites),
                reason=reason,
            )
        return _channel(channel)

    async def edit_text_channel(
        self,
        channel_id: str,
        *,
        parent_id: Optional[str],
        topic: str,
        overwrites: Sequence[PermissionOverwrite],
        reason: Optional[str] = None,
    ) -> PlatformChannel:
        channel = await self._get_channel(channel_id)
        if not isinstance(channel, discord.TextChannel):
            raise PlatformError(f"Channel {channel_id} is not a text channel")
        category = await self._category(parent_id)
        with _platform_errors(f"editing channel {channel_id}"):
            edited = await channel.edit(
                category=category,
                topic=topic,
                overwrites=self._overwrites(overwrites),
                reason=reason,
            )
        return _channel(edited or channel)

    async def delete_channel(self, channel_id: str, *, reason: Optional[str] = None) -> None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return
        try:
            await channel.delete(reason=reason)
        except discord.NotFound:
            return
        except discord.HTTPException as exc:
            raise PlatformError(f"Discord rejected deleting channel {channel_id}: {exc}") from exc


__all__ = ["DiscordPlatform"]
