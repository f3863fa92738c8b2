"""Default templates used to lazily initialise wizard drafts.

Templates are loaded once per process and treated as read-only blueprints.
Every factory below builds fresh objects so sessions never share state.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .draft import (
    CategoryDraft,
    ChannelDisable,
    ChannelDraft,
    ChannelLinkDraft,
    CourtDraft,
    DDDraft,
    DiscordOptionsDraft,
    EmergencyDraft,
    ParliamentaryDraft,
    RoleLinkDraft,
    RoleSlotDraft,
    SenateDraft,
    TermDraft,
    ThresholdDraft,
)
from .models import (
    CHANNEL_LEVELS,
    ChamberBranch,
    LogChannelType,
    PermissionLevel,
    PoliticalRoleHierarchy,
    SeatOptions,
    ThresholdOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "data" / "defaults"


@dataclass(frozen=True)
class Templates:
    wizard: Dict[str, Any]
    roles: List[Dict[str, Any]]
    categories: List[Dict[str, Any]]

    # --- wizard numbers -------------------------------------------------
    def thresholds(self) -> ThresholdDraft:
        preset = self.wizard["thresholds"]
        return ThresholdDraft(simple=int(preset["simple"]), super=int(preset["super"]))

    def presidential_terms(self) -> TermDraft:
        data = self.wizard["executive"]["presidential"]
        return TermDraft(
            term_length=int(data["term_length"]),
            term_limit=int(data["term_limit"]),
            consecutive=bool(data.get("consecutive", True)),
        )

    def snap_election(self) -> int:
        return int(self.wizard["executive"]["parliamentary"]["snap_election"])

    def parliamentary(self, senate_term_length: int) -> ParliamentaryDraft:
        # A snap election must fall strictly inside a senate term.
        return ParliamentaryDraft(
            snap_election=max(0, min(self.snap_election(), senate_term_length - 1))
        )

    def dd_options(self) -> DDDraft:
        data = self.wizard["direct_democracy"]
        return DDDraft(
            appoint_moderators=bool(data["appoint_moderators"]),
            appoint_judges=bool(data["appoint_judges"]),
        )

    def senate(self) -> SenateDraft:
        data = self.wizard["legislature"]["senate"]
        return SenateDraft(
            terms=TermDraft(
                term_length=int(data["terms"]["term_length"]),
                term_limit=int(data["terms"]["term_limit"]),
                consecutive=True,
            ),
            seats=SeatOptions(
                scalable=bool(data["seats"]["scalable"]),
                value=int(data["seats"]["value"]),
            ),
            threshold=self.thresholds(),
        )

    def court(self) -> CourtDraft:
        data = self.wizard["judicial"]
        preset = self.wizard["thresholds"]
        return CourtDraft(
            terms=TermDraft(
                term_length=int(data["terms"]["term_length"]),
                term_limit=int(data["terms"]["term_limit"]),
                consecutive=True,
            ),
            seats=SeatOptions(scalable=False, value=int(data["seats"])),
            threshold=ThresholdOptions(
                simple=int(preset["simple"]), super=int(preset["unanimous"])
            ),
        )

    def emergency(self, creator_id: str) -> EmergencyDraft:
        data = self.wizard["emergency"]
        return EmergencyDraft(
            temp_admin_length=int(data["temp_admin_length"]),
            allow_reset_config=bool(data["allow_reset_config"]),
            creator_id=str(creator_id),
        )

    # --- linkage --------------------------------------------------------
    def discord_options(self, everyone_id: str) -> DiscordOptionsDraft:
        roles = [_role_slot(copy.deepcopy(entry)) for entry in self.roles]
        # The lowest slot is the community's @everyone role.
        roles[-1].id = str(everyone_id)
        categories = [_category(copy.deepcopy(entry)) for entry in self.categories]
        return DiscordOptionsDraft(
            roles=RoleLinkDraft(roles=roles),
            channels=ChannelLinkDraft(categories=categories),
        )


def _level(value: Optional[str]) -> Optional[PermissionLevel]:
    return PermissionLevel(value) if value else None


def _role_slot(entry: Dict[str, Any]) -> RoleSlotDraft:
    permissions = entry.get("permissions") or {}
    return RoleSlotDraft(
        hierarchy=PoliticalRoleHierarchy(entry["hierarchy"]),
        name=entry["name"],
        color=entry["color"],
        permission_start=_level(permissions.get("start")),
        permission_end=_level(permissions.get("end")),
    )


def _channel(entry: Dict[str, Any]) -> ChannelDraft:
    raw_permissions = entry.get("permissions") or {}
    unknown = set(raw_permissions) - {level.value for level in CHANNEL_LEVELS}
    if unknown:
        raise ValueError(
            f"Channel {entry['name']!r} uses unknown permission levels: {sorted(unknown)}"
        )
    permissions = {
        level: [PoliticalRoleHierarchy(name) for name in raw_permissions.get(level.value, [])]
        for level in CHANNEL_LEVELS
    }
    disable = entry.get("disable")
    chamber = entry.get("chamber")
    log_channel = entry.get("log_channel")
    return ChannelDraft(
        name=entry["name"],
        description=entry.get("description", ""),
        permissions=permissions,
        disable=ChannelDisable(**disable) if disable else None,
        chamber=ChamberBranch(chamber) if chamber else None,
        log_channel=LogChannelType(log_channel) if log_channel else None,
    )


def _category(entry: Dict[str, Any]) -> CategoryDraft:
    return CategoryDraft(
        name=entry["name"],
        channels=[_channel(channel) for channel in entry.get("channels", [])],
    )


class TemplateLoader:
    """Loads and caches the YAML default templates."""

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory or DEFAULT_TEMPLATE_DIR
        self._cache: Templates | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def _read(self, name: str) -> Dict[str, Any]:
        path = self._directory / name
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Template {path} must contain a mapping")
        return data

    def load(self, force: bool = False) -> Templates:
        if self._cache is not None and not force:
            return self._cache
        roles = self._read("roles.yaml").get("roles", [])
        if not roles or roles[-1].get("hierarchy") != PoliticalRoleHierarchy.UNDOCUMENTED.value:
            raise ValueError("roles.yaml must end with the Undocumented slot")
        self._cache = Templates(
            wizard=self._read("wizard.yaml"),
            roles=roles,
            categories=self._read("channels.yaml").get("categories", []),
        )
        logger.debug(
            "Loaded %d role and %d category templates from %s",
            len(roles),
            len(self._cache.categories),
            self._directory,
        )
        return self._cache


_default_loader = TemplateLoader()


def get_templates() -> Templates:
    """Convenience accessor for the packaged templates."""

    return _default_loader.load()


__all__ = ["Templates", "TemplateLoader", "get_templates", "DEFAULT_TEMPLATE_DIR"]
