"""Draft configuration accumulated while the setup wizard runs.

Every sub-draft starts as ``None`` and is filled from the default templates
the first time its step is shown. Sub-drafts that multiplex several fields
on shared controls carry a ``cursor`` naming the active field.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import (
    ChamberBranch,
    EmergencyOptions,
    LogChannelType,
    PermissionLevel,
    PoliticalRoleHierarchy,
    PoliticalSystemType,
    SeatOptions,
    TermOptions,
    ThresholdOptions,
)


@dataclass
class TermDraft(TermOptions):
    cursor: int = 0

    def options(self) -> TermOptions:
        return TermOptions(self.term_length, self.term_limit, self.consecutive)


@dataclass
class ThresholdDraft(ThresholdOptions):
    cursor: int = 0

    def options(self) -> ThresholdOptions:
        return ThresholdOptions(simple=self.simple, super=self.super)


@dataclass
class EmergencyDraft(EmergencyOptions):
    cursor: int = 0

    def options(self) -> EmergencyOptions:
        return EmergencyOptions(
            temp_admin_length=self.temp_admin_length,
            allow_reset_config=self.allow_reset_config,
            creator_id=self.creator_id,
        )


@dataclass
class ParliamentaryDraft:
    snap_election: int


@dataclass
class DDDraft:
    appoint_moderators: bool
    appoint_judges: bool


@dataclass
class SenateDraft:
    terms: TermDraft
    seats: SeatOptions
    threshold: ThresholdDraft


@dataclass
class CourtDraft:
    terms: TermDraft
    seats: SeatOptions
    threshold: ThresholdOptions


@dataclass
class ChannelDisable:
    """Conditions under which a template channel is left out.

    A channel is dropped when ``is_dd`` matches the chosen system and every
    appoint flag that is set matches the Direct Democracy toggles.
    """

    is_dd: bool
    appoint_judges: Optional[bool] = None
    appoint_moderators: Optional[bool] = None


@dataclass
class RoleSlotDraft:
    hierarchy: PoliticalRoleHierarchy
    name: str
    color: str
    permission_start: Optional[PermissionLevel] = None
    permission_end: Optional[PermissionLevel] = None
    id: Optional[str] = None


@dataclass
class ChannelDraft:
    name: str
    description: str
    permissions: Dict[PermissionLevel, List[PoliticalRoleHierarchy]] = field(
        default_factory=dict
    )
    disable: Optional[ChannelDisable] = None
    chamber: Optional[ChamberBranch] = None
    log_channel: Optional[LogChannelType] = None
    id: Optional[str] = None


@dataclass
class CategoryDraft:
    name: str
    channels: List[ChannelDraft]
    id: Optional[str] = None
    cursor: int = 0


@dataclass
class RoleLinkDraft:
    roles: List[RoleSlotDraft]
    cursor: int = 0


@dataclass
class ChannelLinkDraft:
    categories: List[CategoryDraft]
    cursor: int = 0
    on_category: bool = True


@dataclass
class DiscordOptionsDraft:
    roles: RoleLinkDraft
    channels: ChannelLinkDraft


@dataclass
class FilteredCategory:
    """A category paired with the channels that survive filtering."""

    category: CategoryDraft
    channels: List[ChannelDraft]


class DraftIncompleteError(ValueError):
    """Raised when a draft is committed before its branch is complete."""


class DuplicateLinkError(ValueError):
    """Raised when one external role or channel backs two kept entries."""


@dataclass
class GuildConfigData:
    political_system: Optional[PoliticalSystemType] = None
    presidential_options: Optional[TermDraft] = None
    parliamentary_options: Optional[ParliamentaryDraft] = None
    dd_options: Optional[DDDraft] = None
    senate_options: Optional[SenateDraft] = None
    referendum_thresholds: Optional[ThresholdDraft] = None
    court_options: Optional[CourtDraft] = None
    emergency_options: Optional[EmergencyDraft] = None
    discord_options: Optional[DiscordOptionsDraft] = None

    @property
    def is_dd(self) -> bool:
        return self.political_system is PoliticalSystemType.DIRECT_DEMOCRACY

    @property
    def appoint_judges(self) -> bool:
        return not self.is_dd or bool(self.dd_options and self.dd_options.appoint_judges)

    @property
    def appoint_moderators(self) -> bool:
        return not self.is_dd or bool(
            self.dd_options and self.dd_options.appoint_moderators
        )

    def choose_system(self, system: PoliticalSystemType) -> None:
        """Record the political system and drop sub-drafts it cannot use."""

        self.political_system = system
        if system is not PoliticalSystemType.PRESIDENTIAL:
            self.presidential_options = None
        if system is not PoliticalSystemType.PARLIAMENTARY:
            self.parliamentary_options = None
        if system is PoliticalSystemType.DIRECT_DEMOCRACY:
            self.senate_options = None
        else:
            self.dd_options = None
            self.referendum_thresholds = None

    def required_roles(self) -> List[PoliticalRoleHierarchy]:
        """Role slots this configuration provisions, in hierarchy order."""

        system = self.political_system
        required = []
        for slot in PoliticalRoleHierarchy:
            if slot is PoliticalRoleHierarchy.PRESIDENT:
                if system is not PoliticalSystemType.PRESIDENTIAL:
                    continue
            elif slot is PoliticalRoleHierarchy.PRIME_MINISTER:
                if system is not PoliticalSystemType.PARLIAMENTARY:
                    continue
            elif slot in (
                PoliticalRoleHierarchy.HEAD_MODERATOR,
                PoliticalRoleHierarchy.MODERATOR,
            ):
                if not self.appoint_moderators:
                    continue
            elif slot is PoliticalRoleHierarchy.SENATOR:
                if self.is_dd:
                    continue
            elif slot is PoliticalRoleHierarchy.JUDGE:
                if not self.appoint_judges:
                    continue
            required.append(slot)
        return required

    def channel_disabled(self, channel: ChannelDraft) -> bool:
        rule = channel.disable
        if rule is None or rule.is_dd != self.is_dd:
            return False
        dd = self.dd_options
        if rule.appoint_judges is not None:
            if dd is None or dd.appoint_judges != rule.appoint_judges:
                return False
        if rule.appoint_moderators is not None:
            if dd is None or dd.appoint_moderators != rule.appoint_moderators:
                return False
        return True

    def filtered_roles(self) -> List[RoleSlotDraft]:
        """Role slot drafts kept for this configuration.

        The returned slots are the draft's own objects, so bindings made
        through them persist.
        """

        if self.discord_options is None:
            return []
        required = set(self.required_roles())
        return [
            slot for slot in self.discord_options.roles.roles if slot.hierarchy in required
        ]

    def filtered_categories(self) -> List[FilteredCategory]:
        """Categories and channels kept for this configuration.

        Categories left without channels are omitted. The template lists are
        never modified.
        """

        if self.discord_options is None:
            return []
        kept = []
        for category in self.discord_options.channels.categories:
            channels = [c for c in category.channels if not self.channel_disabled(c)]
            if channels:
                kept.append(FilteredCategory(category=category, channels=channels))
        return kept

    def validate(self) -> None:
        """Check branch invariants before the draft is committed."""

        system = self.political_system
        if system is None:
            raise DraftIncompleteError("No political system selected")
        branch_drafts = {
            PoliticalSystemType.PRESIDENTIAL: self.presidential_options,
            PoliticalSystemType.PARLIAMENTARY: self.parliamentary_options,
            PoliticalSystemType.DIRECT_DEMOCRACY: self.dd_options,
        }
        for candidate, draft in branch_drafts.items():
            if (draft is not None) != (candidate is system):
                raise DraftIncompleteError(
                    f"System options inconsistent with {system.value} for {candidate.value}"
                )
        if self.is_dd:
            if self.referendum_thresholds is None:
                raise DraftIncompleteError("Referendum thresholds missing")
        elif self.senate_options is None:
            raise DraftIncompleteError("Senate options missing")
        if self.appoint_judges and self.court_options is None:
            raise DraftIncompleteError("Court options missing")
        if self.emergency_options is None:
            raise DraftIncompleteError("Emergency options missing")
        if self.discord_options is None:
            raise DraftIncompleteError("Role and channel linkage missing")
        self._check_unique_links()

    def _check_unique_links(self) -> None:
        roles: Dict[str, str] = {}
        for slot in self.filtered_roles():
            if slot.id is None:
                continue
            if slot.id in roles:
                raise DuplicateLinkError(
                    f"Role {slot.id} is linked to both {roles[slot.id]} and {slot.name}"
                )
            roles[slot.id] = slot.name

        # Categories and text channels share one id space on the platform.
        channels: Dict[str, str] = {}
        for entry in self.filtered_categories():
            for name, channel_id in [
                (entry.category.name, entry.category.id),
                *((channel.name, channel.id) for channel in entry.channels),
            ]:
                if channel_id is None:
                    continue
                if channel_id in channels:
                    raise DuplicateLinkError(
                        f"Channel {channel_id} is linked to both {channels[channel_id]} "
                        f"and {name}"
                    )
                channels[channel_id] = name


__all__ = [
    "CategoryDraft",
    "ChannelDisable",
    "ChannelDraft",
    "ChannelLinkDraft",
    "CourtDraft",
    "DDDraft",
    "DiscordOptionsDraft",
    "DraftIncompleteError",
    "DuplicateLinkError",
    "EmergencyDraft",
    "FilteredCategory",
    "GuildConfigData",
    "ParliamentaryDraft",
    "RoleLinkDraft",
    "RoleSlotDraft",
    "SenateDraft",
    "TermDraft",
    "ThresholdDraft",
]
