"""Turn a completed wizard draft into persisted records and platform objects.

Records are created in dependency order: roles, the role holder, categories
and channels, chambers, the political system, and finally the root guild
record. Every document and every platform object created along the way is
written to a ``ProvisioningLedger``; if any stage fails the ledger is rolled
back before the error propagates, and whatever could not be removed is
recorded in the ``orphans`` collection for manual cleanup.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar

from .draft import CategoryDraft, ChannelDraft, GuildConfigData, RoleSlotDraft
from .models import (
    CHANNEL_LEVELS,
    Chamber,
    ChamberBranch,
    ChannelPermissions,
    CivitasError,
    CourtChamber,
    DirectDemocracySystem,
    GuildCategory,
    LogChannel,
    LogChannelHolder,
    LogChannelType,
    ParliamentarySystem,
    PermissionLevel,
    PoliticalChannel,
    PoliticalGuild,
    PoliticalRole,
    PoliticalRoleHierarchy,
    PoliticalSystem,
    PoliticalSystemType,
    PresidentialSystem,
    ReferendumChamber,
    RoleHolder,
    SeatOptions,
    SenateChamber,
    ThresholdOptions,
    chamber_to_document,
    channel_to_document,
    system_to_document,
)
from .permissions import build_overwrites, capabilities_for, resolve_role_slots
from .platform import ChatPlatform, PermissionOverwrite, PlatformChannelType, PlatformError
from .store import (
    CATEGORIES,
    CHAMBERS,
    CHANNELS,
    GUILDS,
    ORPHANS,
    POLITICAL_SYSTEMS,
    ROLE_HOLDERS,
    ROLES,
    DocumentStore,
    DuplicateDocumentError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProvisioningError(CivitasError):
    """Raised when the configuration graph cannot be built."""


class StaleReferenceError(CivitasError):
    """Raised when a linked platform id no longer resolves."""


@dataclass
class ProvisioningLedger:
    """Everything one provisioning run has created so far."""

    documents: List[Tuple[str, str]] = field(default_factory=list)
    roles: List[str] = field(default_factory=list)
    channels: List[str] = field(default_factory=list)

    def record(self, collection: str, document: Dict[str, Any]) -> str:
        self.documents.append((collection, document["_id"]))
        return document["_id"]

    def documents_by_collection(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = defaultdict(list)
        for collection, doc_id in self.documents:
            grouped[collection].append(doc_id)
        return dict(grouped)

    @property
    def empty(self) -> bool:
        return not (self.documents or self.roles or self.channels)


@dataclass(frozen=True)
class ProvisionedRole:
    hierarchy: PoliticalRoleHierarchy
    document_id: str
    role_id: str


@dataclass
class _ChannelIndex:
    chambers: Dict[ChamberBranch, str] = field(default_factory=dict)
    logs: Dict[LogChannelType, str] = field(default_factory=dict)


class Provisioner:
    """Builds the configuration graph for the community behind ``platform``."""

    def __init__(
        self,
        store: DocumentStore,
        platform: ChatPlatform,
        *,
        reason: str = "Server Initialization",
        link_attempts: int = 2,
    ) -> None:
        self._store = store
        self._platform = platform
        self._reason = reason
        self._link_attempts = max(1, link_attempts)

    async def provision(
        self, draft: GuildConfigData, *, is_bot_owner: bool = False
    ) -> Optional[PoliticalGuild]:
        """Create the configuration graph.

        Returns ``None`` when the community is already configured; nothing is
        created in that case.
        """

        community_id = self._platform.community_id
        if self._store.find_one(GUILDS, {"guild_id": community_id}) is not None:
            logger.info("Community %s is already configured", community_id)
            return None
        draft.validate()

        ledger = ProvisioningLedger()
        try:
            guild, roles = await self._build(draft, ledger, is_bot_owner)
        except DuplicateDocumentError:
            logger.warning(
                "Community %s was configured concurrently; rolling back", community_id
            )
            await self._compensate(ledger)
            return None
        except Exception:
            logger.error(
                "Provisioning failed for community %s; rolling back %d documents, "
                "%d roles and %d channels",
                community_id,
                len(ledger.documents),
                len(ledger.roles),
                len(ledger.channels),
            )
            await self._compensate(ledger)
            raise

        await self._adopt_system_role(roles[PoliticalRoleHierarchy.VOX_POPULI])
        logger.info(
            "Provisioned %s configuration for community %s",
            draft.political_system.value,
            community_id,
        )
        return guild

    async def _build(
        self, draft: GuildConfigData, ledger: ProvisioningLedger, is_bot_owner: bool
    ) -> Tuple[PoliticalGuild, Dict[PoliticalRoleHierarchy, ProvisionedRole]]:
        community_id = self._platform.community_id

        roles = await self._provision_roles(draft, ledger)
        holder = RoleHolder(slots={slot: role.document_id for slot, role in roles.items()})
        holder_id = ledger.record(ROLE_HOLDERS, self._store.create(ROLE_HOLDERS, holder.to_document()))
        logger.info("Linked %d roles for community %s", len(roles), community_id)

        category_ids, index = await self._provision_categories(draft, roles, ledger)
        logger.info("Linked %d categories for community %s", len(category_ids), community_id)

        legislature, court = self._chambers(draft)
        legislature_id = ledger.record(
            CHAMBERS, self._store.create(CHAMBERS, chamber_to_document(legislature))
        )
        court_id = ledger.record(CHAMBERS, self._store.create(CHAMBERS, chamber_to_document(court)))
        for branch, chamber_id in (
            (ChamberBranch.LEGISLATIVE, legislature_id),
            (ChamberBranch.JUDICIAL, court_id),
        ):
            channel_id = index.chambers.get(branch)
            if channel_id is None:
                raise ProvisioningError(f"No {branch.value} chamber channel was provisioned")
            self._store.find_one_and_update(CHAMBERS, {"_id": chamber_id}, {"channel": channel_id})

        system = self._political_system(draft, legislature_id, court_id, roles)
        system_id = ledger.record(
            POLITICAL_SYSTEMS, self._store.create(POLITICAL_SYSTEMS, system_to_document(system))
        )

        missing = [kind.value for kind in LogChannelType if kind not in index.logs]
        if missing:
            raise ProvisioningError(f"No log channels found for: {', '.join(missing)}")
        log_channels = LogChannelHolder(
            server_logs=index.logs[LogChannelType.SERVER],
            chat_logs=index.logs[LogChannelType.CHAT],
        )

        guild = PoliticalGuild(
            guild_id=community_id,
            is_bot_owner=is_bot_owner,
            political_system=system_id,
            emergency_options=draft.emergency_options.options(),
            categories=category_ids,
            roles=holder_id,
            log_channels=log_channels,
            created_at=datetime.now(timezone.utc),
        )
        guild.id = ledger.record(GUILDS, self._store.create(GUILDS, guild.to_document()))
        return guild, roles

    # --- roles ------------------------------------------------------------
    async def _provision_roles(
        self, draft: GuildConfigData, ledger: ProvisioningLedger
    ) -> Dict[PoliticalRoleHierarchy, ProvisionedRole]:
        provisioned: Dict[PoliticalRoleHierarchy, ProvisionedRole] = {}
        slots = draft.filtered_roles()
        # External roles already backing a slot; lookup by name must not reuse them.
        claimed: Set[str] = {slot.id for slot in slots if slot.id}
        for slot in slots:
            role_id = await self._bounded(
                f"link role {slot.name}", self._role_linker(slot, ledger, claimed)
            )
            slot.id = role_id
            claimed.add(role_id)
            record = PoliticalRole(
                name=slot.name,
                hierarchy=slot.hierarchy,
                color=slot.color,
                permissions=sorted(capabilities_for(slot.permission_start, slot.permission_end)),
                role_id=role_id,
            )
            doc_id = ledger.record(ROLES, self._store.create(ROLES, record.to_document()))
            provisioned[slot.hierarchy] = ProvisionedRole(slot.hierarchy, doc_id, role_id)
        return provisioned

    def _role_linker(
        self, slot: RoleSlotDraft, ledger: ProvisioningLedger, claimed: Set[str]
    ) -> Callable[[], Awaitable[str]]:
        linked_id = slot.id

        async def attempt() -> str:
            nonlocal linked_id
            if linked_id:
                existing = await self._platform.fetch_role(linked_id)
                if existing is None:
                    stale, linked_id = linked_id, None
                    raise StaleReferenceError(f"role {stale} no longer exists")
                return existing.id
            for role in await self._platform.fetch_roles():
                if role.name == slot.name and role.id not in claimed:
                    return role.id
            created = await self._platform.create_role(
                name=slot.name,
                permissions=capabilities_for(slot.permission_start, slot.permission_end),
                color=slot.color,
                hoist=True,
                reason=self._reason,
            )
            ledger.roles.append(created.id)
            return created.id

        return attempt

    # --- categories and channels ----------------------------------------------
    async def _provision_categories(
        self,
        draft: GuildConfigData,
        roles: Dict[PoliticalRoleHierarchy, ProvisionedRole],
        ledger: ProvisioningLedger,
    ) -> Tuple[List[str], _ChannelIndex]:
        index = _ChannelIndex()
        category_ids: List[str] = []
        for entry in draft.filtered_categories():
            category_id = await self._bounded(
                f"link category {entry.category.name}",
                self._category_linker(entry.category, ledger),
            )
            entry.category.id = category_id
            channel_ids = []
            for channel in entry.channels:
                channel_ids.append(
                    await self._provision_channel(draft, channel, category_id, roles, ledger, index)
                )
            category = GuildCategory(
                name=entry.category.name, category_id=category_id, channels=channel_ids
            )
            category_ids.append(
                ledger.record(CATEGORIES, self._store.create(CATEGORIES, category.to_document()))
            )
        return category_ids, index

    def _category_linker(
        self, category: CategoryDraft, ledger: ProvisioningLedger
    ) -> Callable[[], Awaitable[str]]:
        linked_id = category.id

        async def attempt() -> str:
            nonlocal linked_id
            if linked_id:
                existing = await self._platform.fetch_channel(linked_id)
                if existing is None or existing.type is not PlatformChannelType.CATEGORY:
                    stale, linked_id = linked_id, None
                    raise StaleReferenceError(f"category {stale} no longer exists")
                return existing.id
            created = await self._platform.create_category(name=category.name, reason=self._reason)
            ledger.channels.append(created.id)
            return created.id

        return attempt

    async def _provision_channel(
        self,
        draft: GuildConfigData,
        channel: ChannelDraft,
        parent_id: str,
        roles: Dict[PoliticalRoleHierarchy, ProvisionedRole],
        ledger: ProvisioningLedger,
        index: _ChannelIndex,
    ) -> str:
        levels = self._channel_levels(draft, channel, roles)
        overwrites = build_overwrites(
            levels,
            {slot: role.role_id for slot, role in roles.items()},
            everyone_id=self._platform.community_id,
        )
        external_id = await self._bounded(
            f"link channel {channel.name}",
            self._channel_linker(channel, parent_id, overwrites, ledger),
        )
        channel.id = external_id

        permissions = ChannelPermissions(
            **{
                level.value: [roles[slot].document_id for slot in slots]
                for level, slots in levels.items()
            }
        )
        if channel.log_channel is not None:
            record = LogChannel(
                name=channel.name,
                description=channel.description,
                channel_id=external_id,
                permissions=permissions,
                log_type=channel.log_channel,
            )
        else:
            record = PoliticalChannel(
                name=channel.name,
                description=channel.description,
                channel_id=external_id,
                permissions=permissions,
                chamber=channel.chamber,
            )
        doc_id = ledger.record(CHANNELS, self._store.create(CHANNELS, channel_to_document(record)))
        if channel.chamber is not None:
            index.chambers[channel.chamber] = doc_id
        if channel.log_channel is not None:
            index.logs[channel.log_channel] = doc_id
        return doc_id

    @staticmethod
    def _channel_levels(
        draft: GuildConfigData,
        channel: ChannelDraft,
        roles: Dict[PoliticalRoleHierarchy, ProvisionedRole],
    ) -> Dict[PermissionLevel, List[PoliticalRoleHierarchy]]:
        levels = {}
        for level in CHANNEL_LEVELS:
            resolved = resolve_role_slots(
                channel.permissions.get(level, []),
                draft.political_system,
                appoint_judges=draft.appoint_judges,
                appoint_moderators=draft.appoint_moderators,
            )
            levels[level] = [slot for slot in resolved if slot in roles]
        return levels

    def _channel_linker(
        self,
        channel: ChannelDraft,
        parent_id: str,
        overwrites: Sequence[PermissionOverwrite],
        ledger: ProvisioningLedger,
    ) -> Callable[[], Awaitable[str]]:
        linked_id = channel.id

        async def attempt() -> str:
            nonlocal linked_id
            if linked_id:
                existing = await self._platform.fetch_channel(linked_id)
                if existing is None or existing.type is not PlatformChannelType.TEXT:
                    stale, linked_id = linked_id, None
                    raise StaleReferenceError(f"channel {stale} no longer exists")
                await self._platform.edit_text_channel(
                    existing.id,
                    parent_id=parent_id,
                    topic=channel.description,
                    overwrites=overwrites,
                    reason=self._reason,
                )
                return existing.id
            created = await self._platform.create_text_channel(
                name=channel.name,
                parent_id=parent_id,
                topic=channel.description,
                overwrites=overwrites,
                reason=self._reason,
            )
            ledger.channels.append(created.id)
            return created.id

        return attempt

    # --- chambers and system ------------------------------------------------
    @staticmethod
    def _chambers(draft: GuildConfigData) -> Tuple[Chamber, CourtChamber]:
        if draft.is_dd:
            legislature = ReferendumChamber(thresholds=draft.referendum_thresholds.options())
        else:
            senate = draft.senate_options
            legislature = SenateChamber(
                term_options=senate.terms.options(),
                seat_options=SeatOptions(scalable=senate.seats.scalable, value=senate.seats.value),
                thresholds=senate.threshold.options(),
            )

        if draft.appoint_judges:
            court_draft = draft.court_options
            court = CourtChamber(
                seat_options=SeatOptions(scalable=False, value=court_draft.seats.value),
                thresholds=ThresholdOptions(
                    simple=court_draft.threshold.simple, super=court_draft.threshold.super
                ),
                term_options=court_draft.terms.options(),
            )
        else:
            # Citizens judge cases directly, so verdicts follow referendum rules.
            court = CourtChamber(
                seat_options=SeatOptions(scalable=False, value=0),
                thresholds=draft.referendum_thresholds.options(),
            )
        return legislature, court

    @staticmethod
    def _political_system(
        draft: GuildConfigData,
        legislature_id: str,
        court_id: str,
        roles: Dict[PoliticalRoleHierarchy, ProvisionedRole],
    ) -> PoliticalSystem:
        system = draft.political_system
        if system is PoliticalSystemType.PRESIDENTIAL:
            return PresidentialSystem(
                legislature=legislature_id,
                court=court_id,
                term_options=draft.presidential_options.options(),
                head_of_state=roles[PoliticalRoleHierarchy.PRESIDENT].document_id,
            )
        if system is PoliticalSystemType.PARLIAMENTARY:
            return ParliamentarySystem(
                legislature=legislature_id,
                court=court_id,
                snap_election=draft.parliamentary_options.snap_election,
                head_of_state=roles[PoliticalRoleHierarchy.PRIME_MINISTER].document_id,
            )
        return DirectDemocracySystem(
            legislature=legislature_id,
            court=court_id,
            appoint_moderators=draft.dd_options.appoint_moderators,
            appoint_judges=draft.dd_options.appoint_judges,
        )

    # --- helpers ------------------------------------------------------------
    async def _bounded(self, description: str, attempt: Callable[[], Awaitable[T]]) -> T:
        """Run ``attempt`` at most ``link_attempts`` times."""

        for number in range(1, self._link_attempts + 1):
            try:
                return await attempt()
            except (PlatformError, StaleReferenceError) as exc:
                if number >= self._link_attempts:
                    raise ProvisioningError(f"Could not {description}: {exc}") from exc
                logger.warning(
                    "Attempt %d to %s failed (%s); retrying", number, description, exc
                )
        raise AssertionError("unreachable")  # pragma: no cover

    async def _adopt_system_role(self, role: ProvisionedRole) -> None:
        try:
            await self._platform.add_role_to_bot(role.role_id, reason=self._reason)
        except PlatformError:
            logger.warning(
                "Could not assign the %s role to the bot in community %s",
                role.hierarchy.value,
                self._platform.community_id,
                exc_info=True,
            )

    async def _compensate(self, ledger: ProvisioningLedger) -> None:
        if ledger.empty:
            return
        leftovers: List[Dict[str, Any]] = []

        for collection, ids in ledger.documents_by_collection().items():
            try:
                self._store.delete_many(collection, ids)
            except Exception as exc:  # pragma: no cover - defensive logging
                logger.exception("Failed to roll back %s documents", collection)
                leftovers.extend(
                    {"kind": "document", "collection": collection, "id": doc_id, "error": str(exc)}
                    for doc_id in ids
                )

        targets = [("role", role_id) for role_id in ledger.roles]
        targets += [("channel", channel_id) for channel_id in reversed(ledger.channels)]
        results = await asyncio.gather(
            *(self._delete_external(kind, external_id) for kind, external_id in targets),
            return_exceptions=True,
        )
        for (kind, external_id), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.error("Failed to roll back %s %s: %s", kind, external_id, result)
                leftovers.append({"kind": kind, "id": external_id, "error": str(result)})

        if leftovers:
            self._record_orphans(leftovers)

    async def _delete_external(self, kind: str, external_id: str) -> None:
        if kind == "role":
            await self._platform.delete_role(external_id, reason=self._reason)
        else:
            await self._platform.delete_channel(external_id, reason=self._reason)

    def _record_orphans(self, leftovers: List[Dict[str, Any]]) -> None:
        try:
            self._store.create(
                ORPHANS,
                {
                    "guild_id": self._platform.community_id,
                    "recorded_at": datetime.now(timezone.utc).isoformat(),
                    "entries": leftovers,
                },
            )
        except Exception:  # pragma: no cover - defensive logging
            logger.exception("Failed to record %d orphaned entities", len(leftovers))
        else:
            logger.error(
                "Recorded %d orphaned entities for community %s",
                len(leftovers),
                self._platform.community_id,
            )


__all__ = [
    "ProvisionedRole",
    "Provisioner",
    "ProvisioningError",
    "ProvisioningLedger",
    "StaleReferenceError",
]
