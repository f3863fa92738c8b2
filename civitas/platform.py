"""Chat-platform boundary consumed by provisioning and teardown.

The core only depends on the ``ChatPlatform`` protocol; the Discord adapter
in ``civitas.adapters.discord`` implements it on top of ``discord.Guild``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Protocol, Sequence

from .models import CivitasError


class PlatformError(CivitasError):
    """Raised when the chat platform rejects or fails an operation."""


class PlatformChannelType(str, Enum):
    TEXT = "text"
    CATEGORY = "category"
    OTHER = "other"


@dataclass(frozen=True)
class PlatformRole:
    id: str
    name: str


@dataclass(frozen=True)
class PlatformChannel:
    id: str
    name: str
    type: PlatformChannelType
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class PermissionOverwrite:
    """Capabilities explicitly allowed or denied for one role on a channel."""

    target_id: str
    allow: FrozenSet[str] = field(default_factory=frozenset)
    deny: FrozenSet[str] = field(default_factory=frozenset)


class ChatPlatform(Protocol):
    """Operations the engine needs from a community on the chat platform.

    Deleting something that no longer exists is not an error.
    """

    @property
    def community_id(self) -> str: ...

    @property
    def owner_id(self) -> str: ...

    @property
    def member_count(self) -> int: ...

    async def fetch_roles(self) -> List[PlatformRole]: ...

    async def fetch_role(self, role_id: str) -> Optional[PlatformRole]: ...

    async def create_role(
        self,
        *,
        name: str,
        permissions: FrozenSet[str],
        color: str,
        hoist: bool,
        reason: Optional[str] = None,
    ) -> PlatformRole: ...

    async def delete_role(self, role_id: str, *, reason: Optional[str] = None) -> None: ...

    async def add_role_to_bot(self, role_id: str, *, reason: Optional[str] = None) -> None: ...

    async def fetch_channel(self, channel_id: str) -> Optional[PlatformChannel]: ...

    async def create_category(
        self, *, name: str, reason: Optional[str] = None
    ) -> PlatformChannel: ...

    async def create_text_channel(
        self,
        *,
        name: str,
        parent_id: Optional[str],
        topic: str,
        overwrites: Sequence[PermissionOverwrite],
        reason: Optional[str] = None,
    ) -> PlatformChannel: ...

    async def edit_text_channel(
        self,
        channel_id: str,
        *,
        parent_id: Optional[str],
        topic: str,
        overwrites: Sequence[PermissionOverwrite],
        reason: Optional[str] = None,
    ) -> PlatformChannel: ...

    async def delete_channel(self, channel_id: str, *, reason: Optional[str] = None) -> None: ...


__all__ = [
    "ChatPlatform",
    "PermissionOverwrite",
    "PlatformChannel",
    "PlatformChannelType",
    "PlatformError",
    "PlatformRole",
]
