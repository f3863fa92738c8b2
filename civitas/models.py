"""Domain models for Civitas.

Persisted records are plain dataclasses that convert to and from JSON-ready
documents. Records with several shapes (chambers, channels and political
systems) are closed tagged variants: each variant carries a ``kind``
discriminant and documents are decoded through a lookup table keyed on it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class CivitasError(RuntimeError):
    """Base class for Civitas domain failures."""


class PoliticalSystemType(str, Enum):
    """Governance variants a community can choose."""

    PRESIDENTIAL = "presidential"
    PARLIAMENTARY = "parliamentary"
    DIRECT_DEMOCRACY = "direct_democracy"

    @property
    def label(self) -> str:
        return _SYSTEM_LABELS[self]

    @property
    def description(self) -> str:
        return _SYSTEM_DESCRIPTIONS[self]


_SYSTEM_LABELS = {
    PoliticalSystemType.PRESIDENTIAL: "Presidential",
    PoliticalSystemType.PARLIAMENTARY: "Parliamentary",
    PoliticalSystemType.DIRECT_DEMOCRACY: "Direct Democracy",
}

_SYSTEM_DESCRIPTIONS = {
    PoliticalSystemType.PRESIDENTIAL: (
        "A system of government where the executive branch exists separately "
        "from a legislature."
    ),
    PoliticalSystemType.PARLIAMENTARY: (
        "A system of government where the executive branch derives its "
        "democratic legitimacy from, and is held accountable to, the legislature."
    ),
    PoliticalSystemType.DIRECT_DEMOCRACY: (
        "A form of democracy in which people decide on policy initiatives directly."
    ),
}


class PoliticalRoleHierarchy(str, Enum):
    """Role slots, declared from the top of the hierarchy down."""

    VOX_POPULI = "VoxPopuli"
    PRESIDENT = "President"
    PRIME_MINISTER = "PrimeMinister"
    HEAD_MODERATOR = "HeadModerator"
    MODERATOR = "Moderator"
    SENATOR = "Senator"
    JUDGE = "Judge"
    CITIZEN = "Citizen"
    UNDOCUMENTED = "Undocumented"

    @property
    def rank(self) -> int:
        return list(PoliticalRoleHierarchy).index(self)


class PermissionLevel(str, Enum):
    """Capability levels ordered from most to least powerful."""

    EMERGENCY = "emergency"
    MANAGE = "manage"
    MODERATE = "moderate"
    INTERACT = "interact"
    SEND = "send"
    VIEW = "view"

    @property
    def rank(self) -> int:
        return list(PermissionLevel).index(self)


# Levels that can be expressed as per-channel overwrites.
CHANNEL_LEVELS = (
    PermissionLevel.VIEW,
    PermissionLevel.SEND,
    PermissionLevel.INTERACT,
    PermissionLevel.MODERATE,
    PermissionLevel.MANAGE,
)


class ChamberKind(str, Enum):
    SENATE = "senate"
    REFERENDUM = "referendum"
    COURT = "court"


class ChamberBranch(str, Enum):
    LEGISLATIVE = "legislative"
    JUDICIAL = "judicial"


class ChannelKind(str, Enum):
    POLITICAL = "political"
    LOG = "log"


class LogChannelType(str, Enum):
    SERVER = "server"
    CHAT = "chat"


@dataclass
class TermOptions:
    term_length: int
    term_limit: int
    consecutive: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term_length": self.term_length,
            "term_limit": self.term_limit,
            "consecutive": self.consecutive,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TermOptions":
        return cls(
            term_length=int(data["term_length"]),
            term_limit=int(data["term_limit"]),
            consecutive=bool(data.get("consecutive", True)),
        )


@dataclass
class SeatOptions:
    scalable: bool
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"scalable": self.scalable, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeatOptions":
        return cls(scalable=bool(data["scalable"]), value=int(data["value"]))


@dataclass
class ThresholdOptions:
    """Percentages required to pass a vote."""

    simple: int
    super: int

    def to_dict(self) -> Dict[str, Any]:
        return {"simple": self.simple, "super": self.super}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThresholdOptions":
        return cls(simple=int(data["simple"]), super=int(data["super"]))


@dataclass
class EmergencyOptions:
    temp_admin_length: int
    allow_reset_config: bool
    creator_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temp_admin_length": self.temp_admin_length,
            "allow_reset_config": self.allow_reset_config,
            "creator_id": self.creator_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmergencyOptions":
        return cls(
            temp_admin_length=int(data["temp_admin_length"]),
            allow_reset_config=bool(data["allow_reset_config"]),
            creator_id=str(data["creator_id"]),
        )


def _optional(factory, data: Optional[Dict[str, Any]]):
    return factory(data) if data is not None else None


@dataclass
class PoliticalRole:
    """A role slot bound to an external platform role."""

    name: str
    hierarchy: PoliticalRoleHierarchy
    color: str
    permissions: List[str] = field(default_factory=list)
    role_id: Optional[str] = None
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "hierarchy": self.hierarchy.value,
            "color": self.color,
            "permissions": list(self.permissions),
            "role_id": self.role_id,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PoliticalRole":
        return cls(
            name=doc["name"],
            hierarchy=PoliticalRoleHierarchy(doc["hierarchy"]),
            color=doc["color"],
            permissions=list(doc.get("permissions", [])),
            role_id=doc.get("role_id"),
            id=doc.get("_id"),
        )


@dataclass
class RoleHolder:
    """Maps populated hierarchy slots to role document ids."""

    slots: Dict[PoliticalRoleHierarchy, str] = field(default_factory=dict)
    id: Optional[str] = None

    def get(self, hierarchy: PoliticalRoleHierarchy) -> Optional[str]:
        return self.slots.get(hierarchy)

    def to_document(self) -> Dict[str, Any]:
        return {"slots": {slot.value: ref for slot, ref in self.slots.items()}}

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "RoleHolder":
        slots = {
            PoliticalRoleHierarchy(name): ref
            for name, ref in (doc.get("slots") or {}).items()
        }
        return cls(slots=slots, id=doc.get("_id"))


@dataclass
class ChannelPermissions:
    """Role document ids allowed at each channel level."""

    view: List[str] = field(default_factory=list)
    send: List[str] = field(default_factory=list)
    interact: List[str] = field(default_factory=list)
    moderate: List[str] = field(default_factory=list)
    manage: List[str] = field(default_factory=list)

    def for_level(self, level: PermissionLevel) -> List[str]:
        return getattr(self, level.value)

    def to_dict(self) -> Dict[str, Any]:
        return {level.value: list(self.for_level(level)) for level in CHANNEL_LEVELS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelPermissions":
        return cls(**{level.value: list(data.get(level.value, [])) for level in CHANNEL_LEVELS})


@dataclass
class PoliticalChannel:
    kind = ChannelKind.POLITICAL

    name: str
    description: str
    channel_id: Optional[str]
    permissions: ChannelPermissions
    chamber: Optional[ChamberBranch] = None
    id: Optional[str] = None


@dataclass
class LogChannel:
    kind = ChannelKind.LOG

    name: str
    description: str
    channel_id: Optional[str]
    permissions: ChannelPermissions
    log_type: LogChannelType = LogChannelType.SERVER
    id: Optional[str] = None


GuildChannel = Union[PoliticalChannel, LogChannel]


def channel_to_document(channel: GuildChannel) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "kind": channel.kind.value,
        "name": channel.name,
        "description": channel.description,
        "channel_id": channel.channel_id,
        "permissions": channel.permissions.to_dict(),
    }
    if isinstance(channel, LogChannel):
        doc["log_type"] = channel.log_type.value
    else:
        doc["chamber"] = channel.chamber.value if channel.chamber else None
    return doc


def _political_channel(doc: Dict[str, Any]) -> PoliticalChannel:
    chamber = doc.get("chamber")
    return PoliticalChannel(
        name=doc["name"],
        description=doc.get("description", ""),
        channel_id=doc.get("channel_id"),
        permissions=ChannelPermissions.from_dict(doc.get("permissions", {})),
        chamber=ChamberBranch(chamber) if chamber else None,
        id=doc.get("_id"),
    )


def _log_channel(doc: Dict[str, Any]) -> LogChannel:
    return LogChannel(
        name=doc["name"],
        description=doc.get("description", ""),
        channel_id=doc.get("channel_id"),
        permissions=ChannelPermissions.from_dict(doc.get("permissions", {})),
        log_type=LogChannelType(doc["log_type"]),
        id=doc.get("_id"),
    )


_CHANNEL_DECODERS = {
    ChannelKind.POLITICAL: _political_channel,
    ChannelKind.LOG: _log_channel,
}


def channel_from_document(doc: Dict[str, Any]) -> GuildChannel:
    return _CHANNEL_DECODERS[ChannelKind(doc["kind"])](doc)


@dataclass
class GuildCategory:
    name: str
    category_id: Optional[str]
    channels: List[str] = field(default_factory=list)
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category_id": self.category_id,
            "channels": list(self.channels),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "GuildCategory":
        return cls(
            name=doc["name"],
            category_id=doc.get("category_id"),
            channels=list(doc.get("channels", [])),
            id=doc.get("_id"),
        )


@dataclass
class SenateChamber:
    kind = ChamberKind.SENATE

    term_options: TermOptions
    seat_options: SeatOptions
    thresholds: ThresholdOptions
    channel: Optional[str] = None
    id: Optional[str] = None


@dataclass
class ReferendumChamber:
    kind = ChamberKind.REFERENDUM

    thresholds: ThresholdOptions
    channel: Optional[str] = None
    id: Optional[str] = None


@dataclass
class CourtChamber:
    kind = ChamberKind.COURT

    seat_options: SeatOptions
    thresholds: ThresholdOptions
    term_options: Optional[TermOptions] = None
    channel: Optional[str] = None
    id: Optional[str] = None


Chamber = Union[SenateChamber, ReferendumChamber, CourtChamber]


def chamber_branch(chamber: Chamber) -> ChamberBranch:
    if chamber.kind is ChamberKind.COURT:
        return ChamberBranch.JUDICIAL
    return ChamberBranch.LEGISLATIVE


def chamber_to_document(chamber: Chamber) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "kind": chamber.kind.value,
        "thresholds": chamber.thresholds.to_dict(),
        "channel": chamber.channel,
    }
    if isinstance(chamber, SenateChamber):
        doc["term_options"] = chamber.term_options.to_dict()
        doc["seat_options"] = chamber.seat_options.to_dict()
    elif isinstance(chamber, CourtChamber):
        doc["seat_options"] = chamber.seat_options.to_dict()
        doc["term_options"] = (
            chamber.term_options.to_dict() if chamber.term_options else None
        )
    return doc


_CHAMBER_DECODERS = {
    ChamberKind.SENATE: lambda doc: SenateChamber(
        term_options=TermOptions.from_dict(doc["term_options"]),
        seat_options=SeatOptions.from_dict(doc["seat_options"]),
        thresholds=ThresholdOptions.from_dict(doc["thresholds"]),
        channel=doc.get("channel"),
        id=doc.get("_id"),
    ),
    ChamberKind.REFERENDUM: lambda doc: ReferendumChamber(
        thresholds=ThresholdOptions.from_dict(doc["thresholds"]),
        channel=doc.get("channel"),
        id=doc.get("_id"),
    ),
    ChamberKind.COURT: lambda doc: CourtChamber(
        seat_options=SeatOptions.from_dict(doc["seat_options"]),
        thresholds=ThresholdOptions.from_dict(doc["thresholds"]),
        term_options=_optional(TermOptions.from_dict, doc.get("term_options")),
        channel=doc.get("channel"),
        id=doc.get("_id"),
    ),
}


def chamber_from_document(doc: Dict[str, Any]) -> Chamber:
    return _CHAMBER_DECODERS[ChamberKind(doc["kind"])](doc)


@dataclass
class PresidentialSystem:
    kind = PoliticalSystemType.PRESIDENTIAL

    legislature: str
    court: str
    term_options: TermOptions
    head_of_state: Optional[str] = None
    id: Optional[str] = None


@dataclass
class ParliamentarySystem:
    kind = PoliticalSystemType.PARLIAMENTARY

    legislature: str
    court: str
    snap_election: int
    head_of_state: Optional[str] = None
    id: Optional[str] = None


@dataclass
class DirectDemocracySystem:
    kind = PoliticalSystemType.DIRECT_DEMOCRACY

    legislature: str
    court: str
    appoint_moderators: bool
    appoint_judges: bool
    head_of_state: Optional[str] = None
    id: Optional[str] = None


PoliticalSystem = Union[PresidentialSystem, ParliamentarySystem, DirectDemocracySystem]


def system_to_document(system: PoliticalSystem) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "kind": system.kind.value,
        "legislature": system.legislature,
        "court": system.court,
        "head_of_state": system.head_of_state,
    }
    if isinstance(system, PresidentialSystem):
        doc["term_options"] = system.term_options.to_dict()
    elif isinstance(system, ParliamentarySystem):
        doc["snap_election"] = system.snap_election
    else:
        doc["appoint_moderators"] = system.appoint_moderators
        doc["appoint_judges"] = system.appoint_judges
    return doc


_SYSTEM_DECODERS = {
    PoliticalSystemType.PRESIDENTIAL: lambda doc: PresidentialSystem(
        legislature=doc["legislature"],
        court=doc["court"],
        term_options=TermOptions.from_dict(doc["term_options"]),
        head_of_state=doc.get("head_of_state"),
        id=doc.get("_id"),
    ),
    PoliticalSystemType.PARLIAMENTARY: lambda doc: ParliamentarySystem(
        legislature=doc["legislature"],
        court=doc["court"],
        snap_election=int(doc["snap_election"]),
        head_of_state=doc.get("head_of_state"),
        id=doc.get("_id"),
    ),
    PoliticalSystemType.DIRECT_DEMOCRACY: lambda doc: DirectDemocracySystem(
        legislature=doc["legislature"],
        court=doc["court"],
        appoint_moderators=bool(doc["appoint_moderators"]),
        appoint_judges=bool(doc["appoint_judges"]),
        head_of_state=doc.get("head_of_state"),
        id=doc.get("_id"),
    ),
}


def system_from_document(doc: Dict[str, Any]) -> PoliticalSystem:
    return _SYSTEM_DECODERS[PoliticalSystemType(doc["kind"])](doc)


@dataclass
class LogChannelHolder:
    """Channel document ids of the two log channels."""

    server_logs: str
    chat_logs: str

    def to_dict(self) -> Dict[str, Any]:
        return {"server_logs": self.server_logs, "chat_logs": self.chat_logs}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogChannelHolder":
        return cls(server_logs=data["server_logs"], chat_logs=data["chat_logs"])


@dataclass
class PoliticalGuild:
    """Root record owning a community's whole configuration graph."""

    guild_id: str
    is_bot_owner: bool
    political_system: str
    emergency_options: EmergencyOptions
    categories: List[str]
    roles: str
    log_channels: LogChannelHolder
    events: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "is_bot_owner": self.is_bot_owner,
            "political_system": self.political_system,
            "emergency_options": self.emergency_options.to_dict(),
            "categories": list(self.categories),
            "roles": self.roles,
            "log_channels": self.log_channels.to_dict(),
            "events": list(self.events),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PoliticalGuild":
        created = doc.get("created_at")
        return cls(
            guild_id=doc["guild_id"],
            is_bot_owner=bool(doc.get("is_bot_owner", False)),
            political_system=doc["political_system"],
            emergency_options=EmergencyOptions.from_dict(doc["emergency_options"]),
            categories=list(doc.get("categories", [])),
            roles=doc["roles"],
            log_channels=LogChannelHolder.from_dict(doc["log_channels"]),
            events=list(doc.get("events", [])),
            created_at=datetime.fromisoformat(created) if created else None,
            id=doc.get("_id"),
        )


__all__ = [
    "CHANNEL_LEVELS",
    "Chamber",
    "ChamberBranch",
    "ChamberKind",
    "ChannelKind",
    "ChannelPermissions",
    "CivitasError",
    "CourtChamber",
    "DirectDemocracySystem",
    "EmergencyOptions",
    "GuildCategory",
    "GuildChannel",
    "LogChannel",
    "LogChannelHolder",
    "LogChannelType",
    "ParliamentarySystem",
    "PermissionLevel",
    "PoliticalChannel",
    "PoliticalGuild",
    "PoliticalRole",
    "PoliticalRoleHierarchy",
    "PoliticalSystem",
    "PoliticalSystemType",
    "PresidentialSystem",
    "ReferendumChamber",
    "RoleHolder",
    "SeatOptions",
    "SenateChamber",
    "TermOptions",
    "ThresholdOptions",
    "chamber_branch",
    "chamber_from_document",
    "chamber_to_document",
    "channel_from_document",
    "channel_to_document",
    "system_from_document",
    "system_to_document",
]
