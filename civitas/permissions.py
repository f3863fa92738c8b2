"""Capability levels and channel overwrite computation.

Capabilities are opaque names; the Discord adapter maps them onto
``discord.Permissions`` flags of the same name.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from .models import (
    CHANNEL_LEVELS,
    PermissionLevel,
    PoliticalRoleHierarchy,
    PoliticalSystemType,
)
from .platform import PermissionOverwrite


@dataclass(frozen=True)
class CapabilitySet:
    """Capabilities granted by one level.

    ``static`` capabilities only make sense community-wide; ``overwrites``
    can also be granted or denied per channel.
    """

    static: FrozenSet[str]
    overwrites: FrozenSet[str]


LEVELS: Dict[PermissionLevel, CapabilitySet] = {
    PermissionLevel.EMERGENCY: CapabilitySet(
        static=frozenset({"administrator"}),
        overwrites=frozenset(),
    ),
    PermissionLevel.MANAGE: CapabilitySet(
        static=frozenset(
            {
                "manage_guild",
                "manage_expressions",
                "manage_events",
                "view_creator_monetization_analytics",
                "create_expressions",
                "create_events",
            }
        ),
        overwrites=frozenset(
            {
                "manage_channels",
                "send_tts_messages",
                "mention_everyone",
                "manage_roles",
                "manage_webhooks",
            }
        ),
    ),
    PermissionLevel.MODERATE: CapabilitySet(
        static=frozenset(
            {"kick_members", "ban_members", "manage_nicknames", "moderate_members"}
        ),
        overwrites=frozenset(
            {
                "manage_messages",
                "manage_threads",
                "mute_members",
                "deafen_members",
                "move_members",
                "priority_speaker",
            }
        ),
    ),
    PermissionLevel.INTERACT: CapabilitySet(
        static=frozenset(),
        overwrites=frozenset(
            {
                "add_reactions",
                "stream",
                "embed_links",
                "attach_files",
                "use_external_emojis",
                "use_voice_activation",
                "use_application_commands",
                "request_to_speak",
                "create_public_threads",
                "create_private_threads",
                "use_external_stickers",
                "send_messages_in_threads",
                "use_embedded_activities",
                "use_soundboard",
                "use_external_sounds",
                "send_voice_messages",
                "send_polls",
            }
        ),
    ),
    PermissionLevel.SEND: CapabilitySet(
        static=frozenset(),
        overwrites=frozenset({"send_messages", "speak"}),
    ),
    PermissionLevel.VIEW: CapabilitySet(
        static=frozenset(
            {
                "create_instant_invite",
                "view_audit_log",
                "view_guild_insights",
                "change_nickname",
            }
        ),
        overwrites=frozenset({"view_channel", "read_message_history", "connect"}),
    ),
}


def capabilities_for(
    start: Optional[PermissionLevel], end: Optional[PermissionLevel] = None
) -> FrozenSet[str]:
    """Union every level from ``start`` down to ``end``, inclusive."""

    if start is None:
        return frozenset()
    end = end or start
    if end.rank < start.rank:
        raise ValueError(f"Permission range {start.value}..{end.value} is inverted")
    granted: set[str] = set()
    for level in PermissionLevel:
        if start.rank <= level.rank <= end.rank:
            granted |= LEVELS[level].static | LEVELS[level].overwrites
    return frozenset(granted)


def resolve_role_slots(
    names: Iterable[PoliticalRoleHierarchy],
    system: PoliticalSystemType,
    *,
    appoint_judges: bool = True,
    appoint_moderators: bool = True,
) -> List[PoliticalRoleHierarchy]:
    """Map template slots onto the slots that exist for ``system``.

    In a Direct Democracy citizens stand in for senators, and for judges or
    moderators when those are not appointed.
    """

    is_dd = system is PoliticalSystemType.DIRECT_DEMOCRACY
    resolved: List[PoliticalRoleHierarchy] = []
    for slot in names:
        if is_dd:
            if slot is PoliticalRoleHierarchy.SENATOR:
                slot = PoliticalRoleHierarchy.CITIZEN
            elif slot is PoliticalRoleHierarchy.JUDGE and not appoint_judges:
                slot = PoliticalRoleHierarchy.CITIZEN
            elif (
                slot
                in (PoliticalRoleHierarchy.HEAD_MODERATOR, PoliticalRoleHierarchy.MODERATOR)
                and not appoint_moderators
            ):
                slot = PoliticalRoleHierarchy.CITIZEN
        if slot in resolved:
            continue
        resolved.append(slot)
    return resolved


def build_overwrites(
    permissions: Mapping[PermissionLevel, Sequence[PoliticalRoleHierarchy]],
    role_ids: Mapping[PoliticalRoleHierarchy, str],
    everyone_id: str,
) -> List[PermissionOverwrite]:
    """Translate per-level role lists into platform overwrites.

    For each level:

    * an empty list leaves the platform defaults untouched;
    * ``[VoxPopuli]`` denies the level to everyone (only the bot keeps it);
    * a list containing ``Undocumented`` allows the roles before it and
      denies the roles after it, leaving everyone neutral;
    * any other list allows the listed roles and denies everyone.

    Slots without a bound external role are skipped.
    """

    allow: Dict[str, set[str]] = {}
    deny: Dict[str, set[str]] = {}

    def grant(target: Dict[str, set[str]], role_id: str, level: PermissionLevel) -> None:
        target.setdefault(role_id, set()).update(LEVELS[level].overwrites)

    for level in CHANNEL_LEVELS:
        slots = list(permissions.get(level, ()))
        if not slots:
            continue
        if slots == [PoliticalRoleHierarchy.VOX_POPULI]:
            grant(deny, everyone_id, level)
            continue
        if PoliticalRoleHierarchy.UNDOCUMENTED in slots:
            split = slots.index(PoliticalRoleHierarchy.UNDOCUMENTED)
            for slot in slots[:split]:
                if slot in role_ids:
                    grant(allow, role_ids[slot], level)
            for slot in slots[split + 1 :]:
                if slot in role_ids:
                    grant(deny, role_ids[slot], level)
            continue
        for slot in slots:
            if slot in role_ids:
                grant(allow, role_ids[slot], level)
        grant(deny, everyone_id, level)

    targets = list(dict.fromkeys([*allow, *deny]))
    return [
        PermissionOverwrite(
            target_id=target,
            allow=frozenset(allow.get(target, ())),
            deny=frozenset(deny.get(target, ())),
        )
        for target in targets
    ]


__all__ = [
    "CapabilitySet",
    "LEVELS",
    "build_overwrites",
    "capabilities_for",
    "resolve_role_slots",
]
