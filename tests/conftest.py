"""Shared fakes for the chat platform and the wizard prompter."""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from civitas.defaults import get_templates
from civitas.draft import DDDraft, GuildConfigData
from civitas.models import PoliticalSystemType
from civitas.platform import (
    PermissionOverwrite,
    PlatformChannel,
    PlatformChannelType,
    PlatformError,
    PlatformRole,
)
from civitas.store import SQLiteDocumentStore
from civitas.wizard.views import Choice, StepView

COMMUNITY_ID = "1000"
OWNER_ID = "1"


class FakePlatform:
    """In-memory community that records every call made against it."""

    def __init__(self, community_id: str = COMMUNITY_ID, member_count: int = 10) -> None:
        self._community_id = community_id
        self._member_count = member_count
        self.roles: Dict[str, PlatformRole] = {
            community_id: PlatformRole(community_id, "@everyone")
        }
        self.channels: Dict[str, PlatformChannel] = {}
        self.topics: Dict[str, str] = {}
        self.overwrites: Dict[str, List[PermissionOverwrite]] = {}
        self.role_permissions: Dict[str, frozenset] = {}
        self.created_roles: List[str] = []
        self.created_channels: List[str] = []
        self.edited_channels: List[str] = []
        self.deleted_roles: List[str] = []
        self.deleted_channels: List[str] = []
        self.bot_roles: List[str] = []
        self.failures: Dict[str, int] = {}
        self.rejected_channel_names: set = set()
        self._next_id = 5000

    @property
    def community_id(self) -> str:
        return self._community_id

    @property
    def owner_id(self) -> str:
        return OWNER_ID

    @property
    def member_count(self) -> int:
        return self._member_count

    def _id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def _maybe_fail(self, operation: str) -> None:
        remaining = self.failures.get(operation, 0)
        if remaining:
            self.failures[operation] = remaining - 1
            raise PlatformError(f"{operation} failed")

    def add_role(self, name: str) -> str:
        role_id = self._id()
        self.roles[role_id] = PlatformRole(role_id, name)
        return role_id

    def add_channel(
        self, name: str, kind: PlatformChannelType = PlatformChannelType.TEXT
    ) -> str:
        channel_id = self._id()
        self.channels[channel_id] = PlatformChannel(channel_id, name, kind)
        return channel_id

    async def fetch_roles(self) -> List[PlatformRole]:
        return list(self.roles.values())

    async def fetch_role(self, role_id: str) -> Optional[PlatformRole]:
        return self.roles.get(role_id)

    async def create_role(self, *, name, permissions, color, hoist, reason=None) -> PlatformRole:
        self._maybe_fail("create_role")
        role_id = self.add_role(name)
        self.role_permissions[role_id] = frozenset(permissions)
        self.created_roles.append(role_id)
        return self.roles[role_id]

    async def delete_role(self, role_id: str, *, reason=None) -> None:
        self._maybe_fail("delete_role")
        self.deleted_roles.append(role_id)
        self.roles.pop(role_id, None)

    async def add_role_to_bot(self, role_id: str, *, reason=None) -> None:
        self._maybe_fail("add_role_to_bot")
        self.bot_roles.append(role_id)

    async def fetch_channel(self, channel_id: str) -> Optional[PlatformChannel]:
        return self.channels.get(channel_id)

    async def create_category(self, *, name, reason=None) -> PlatformChannel:
        self._maybe_fail("create_category")
        channel_id = self.add_channel(name, PlatformChannelType.CATEGORY)
        self.created_channels.append(channel_id)
        return self.channels[channel_id]

    async def create_text_channel(
        self,
        *,
        name: str,
        parent_id: Optional[str],
        topic: str,
        overwrites: Sequence[PermissionOverwrite],
        reason=None,
    ) -> PlatformChannel:
        self._maybe_fail("create_text_channel")
        if name in self.rejected_channel_names:
            raise PlatformError(f"channel {name} rejected")
        channel_id = self._id()
        self.channels[channel_id] = PlatformChannel(
            channel_id, name, PlatformChannelType.TEXT, parent_id
        )
        self.topics[channel_id] = topic
        self.overwrites[channel_id] = list(overwrites)
        self.created_channels.append(channel_id)
        return self.channels[channel_id]

    async def edit_text_channel(
        self,
        channel_id: str,
        *,
        parent_id: Optional[str],
        topic: str,
        overwrites: Sequence[PermissionOverwrite],
        reason=None,
    ) -> PlatformChannel:
        self._maybe_fail("edit_text_channel")
        current = self.channels[channel_id]
        self.channels[channel_id] = PlatformChannel(
            channel_id, current.name, current.type, parent_id
        )
        self.topics[channel_id] = topic
        self.overwrites[channel_id] = list(overwrites)
        self.edited_channels.append(channel_id)
        return self.channels[channel_id]

    async def delete_channel(self, channel_id: str, *, reason=None) -> None:
        self._maybe_fail("delete_channel")
        self.deleted_channels.append(channel_id)
        self.channels.pop(channel_id, None)


class ScriptedPrompter:
    """Answers prompts from a script of action ids, choices or exceptions.

    Running out of script behaves like the user walking away.
    """

    def __init__(self, script=()) -> None:
        self.script = list(script)
        self.views: List[StepView] = []
        self.notices: List[str] = []
        self.finished: Optional[StepView] = None

    async def prompt(self, view: StepView, *, timeout: float) -> Choice:
        self.views.append(view)
        if not self.script:
            raise asyncio.TimeoutError
        entry = self.script.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, str):
            return Choice(entry)
        return entry

    async def notify(self, message: str) -> None:
        self.notices.append(message)

    async def finish(self, view: StepView) -> None:
        self.finished = view


@pytest.fixture
def templates():
    return get_templates()


@pytest.fixture
def store(tmp_path):
    return SQLiteDocumentStore(tmp_path / "civitas.db")


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def make_draft(templates):
    """Build a committed-ready draft without walking the wizard."""

    def factory(
        system: PoliticalSystemType,
        *,
        appoint_moderators: bool = False,
        appoint_judges: bool = False,
        community_id: str = COMMUNITY_ID,
    ) -> GuildConfigData:
        draft = GuildConfigData()
        draft.choose_system(system)
        if system is PoliticalSystemType.DIRECT_DEMOCRACY:
            draft.dd_options = DDDraft(
                appoint_moderators=appoint_moderators, appoint_judges=appoint_judges
            )
            draft.referendum_thresholds = templates.thresholds()
        else:
            draft.senate_options = templates.senate()
        if system is PoliticalSystemType.PRESIDENTIAL:
            draft.presidential_options = templates.presidential_terms()
        if system is PoliticalSystemType.PARLIAMENTARY:
            draft.parliamentary_options = templates.parliamentary(
                draft.senate_options.terms.term_length
            )
        if draft.appoint_judges:
            draft.court_options = templates.court()
        draft.emergency_options = templates.emergency(OWNER_ID)
        draft.discord_options = templates.discord_options(community_id)
        return draft

    return factory
