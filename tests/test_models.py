"""Tagged-variant document encoding tests."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from civitas.models import (
    ChamberBranch,
    ChannelPermissions,
    CourtChamber,
    DirectDemocracySystem,
    EmergencyOptions,
    LogChannel,
    LogChannelHolder,
    LogChannelType,
    PoliticalChannel,
    PoliticalGuild,
    PoliticalRoleHierarchy,
    PresidentialSystem,
    ReferendumChamber,
    RoleHolder,
    SeatOptions,
    TermOptions,
    ThresholdOptions,
    chamber_branch,
    chamber_from_document,
    chamber_to_document,
    channel_from_document,
    channel_to_document,
    system_from_document,
    system_to_document,
)


def test_hierarchy_and_levels_are_ordered():
    assert PoliticalRoleHierarchy.VOX_POPULI.rank == 0
    assert PoliticalRoleHierarchy.UNDOCUMENTED.rank == len(PoliticalRoleHierarchy) - 1
    assert PoliticalRoleHierarchy.SENATOR.rank < PoliticalRoleHierarchy.CITIZEN.rank


def test_presidential_document_has_no_snap_election():
    system = PresidentialSystem(
        legislature="leg",
        court="court",
        term_options=TermOptions(term_length=4, term_limit=2, consecutive=False),
        head_of_state="president-doc",
    )
    doc = system_to_document(system)
    assert doc["kind"] == "presidential"
    assert "snap_election" not in doc
    decoded = system_from_document({**doc, "_id": "abc"})
    assert isinstance(decoded, PresidentialSystem)
    assert decoded.term_options.consecutive is False
    assert decoded.id == "abc"


def test_direct_democracy_document_carries_appoint_flags():
    doc = system_to_document(
        DirectDemocracySystem(
            legislature="leg", court="court", appoint_moderators=False, appoint_judges=True
        )
    )
    assert doc["appoint_judges"] is True
    assert "term_options" not in doc
    decoded = system_from_document(doc)
    assert isinstance(decoded, DirectDemocracySystem)
    assert decoded.head_of_state is None


def test_chamber_variants_dispatch_on_kind():
    referendum = chamber_from_document(
        chamber_to_document(ReferendumChamber(thresholds=ThresholdOptions(50, 67)))
    )
    assert isinstance(referendum, ReferendumChamber)
    assert chamber_branch(referendum) is ChamberBranch.LEGISLATIVE

    court_doc = chamber_to_document(
        CourtChamber(seat_options=SeatOptions(False, 0), thresholds=ThresholdOptions(50, 67))
    )
    assert court_doc["term_options"] is None
    court = chamber_from_document(court_doc)
    assert isinstance(court, CourtChamber)
    assert court.term_options is None
    assert chamber_branch(court) is ChamberBranch.JUDICIAL


def test_unknown_chamber_kind_rejected():
    with pytest.raises(ValueError):
        chamber_from_document({"kind": "assembly", "thresholds": {"simple": 1, "super": 1}})


def test_channel_variants_dispatch_on_kind():
    permissions = ChannelPermissions(view=["a"], send=["b"])
    log_doc = channel_to_document(
        LogChannel(
            name="chat-logs",
            description="",
            channel_id="55",
            permissions=permissions,
            log_type=LogChannelType.CHAT,
        )
    )
    assert "chamber" not in log_doc
    log = channel_from_document(log_doc)
    assert isinstance(log, LogChannel)
    assert log.log_type is LogChannelType.CHAT
    assert log.permissions.send == ["b"]

    political = channel_from_document(
        channel_to_document(
            PoliticalChannel(
                name="courtroom",
                description="",
                channel_id="56",
                permissions=ChannelPermissions(),
                chamber=ChamberBranch.JUDICIAL,
            )
        )
    )
    assert isinstance(political, PoliticalChannel)
    assert political.chamber is ChamberBranch.JUDICIAL


def test_role_holder_and_guild_documents():
    holder = RoleHolder(slots={PoliticalRoleHierarchy.CITIZEN: "citizen-doc"})
    decoded = RoleHolder.from_document({**holder.to_document(), "_id": "h"})
    assert decoded.get(PoliticalRoleHierarchy.CITIZEN) == "citizen-doc"
    assert decoded.get(PoliticalRoleHierarchy.JUDGE) is None

    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    guild = PoliticalGuild(
        guild_id="1000",
        is_bot_owner=False,
        political_system="sys",
        emergency_options=EmergencyOptions(24, True, "1"),
        categories=["cat"],
        roles="h",
        log_channels=LogChannelHolder(server_logs="s", chat_logs="c"),
        created_at=created,
    )
    restored = PoliticalGuild.from_document(guild.to_document())
    assert restored.created_at == created
    assert restored.log_channels.chat_logs == "c"
    assert restored.events == []
