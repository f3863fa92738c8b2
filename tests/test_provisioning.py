"""Provisioning saga tests against the in-memory platform."""
from __future__ import annotations

import logging

import pytest

from civitas.draft import DuplicateLinkError
from civitas.models import (
    CourtChamber,
    PoliticalRoleHierarchy as H,
    PoliticalSystemType,
    chamber_from_document,
)
from civitas.provisioning import Provisioner, ProvisioningError
from civitas.store import (
    CATEGORIES,
    CHAMBERS,
    CHANNELS,
    GUILDS,
    ORPHANS,
    POLITICAL_SYSTEMS,
    ROLE_HOLDERS,
    ROLES,
    SQLiteDocumentStore,
)

from conftest import COMMUNITY_ID

GRAPH = (GUILDS, ROLES, ROLE_HOLDERS, CATEGORIES, CHANNELS, CHAMBERS, POLITICAL_SYSTEMS)


def _total(store):
    return sum(store.count(collection) for collection in GRAPH)


def _channels_by_category(store):
    result = {}
    for category in store.find(CATEGORIES):
        populated = store.populate(category, "channels", CHANNELS)
        result[category["name"]] = [channel["name"] for channel in populated["channels"]]
    return result


@pytest.mark.asyncio
async def test_direct_democracy_with_judges_scenario(store, platform, make_draft):
    draft = make_draft(
        PoliticalSystemType.DIRECT_DEMOCRACY, appoint_moderators=False, appoint_judges=True
    )
    draft.court_options.seats.value = 5
    draft.court_options.threshold.simple = 70
    draft.referendum_thresholds.simple = 55

    guild = await Provisioner(store, platform).provision(draft)

    assert guild is not None
    hierarchies = {doc["hierarchy"] for doc in store.find(ROLES)}
    assert H.HEAD_MODERATOR.value not in hierarchies
    assert H.MODERATOR.value not in hierarchies
    assert H.JUDGE.value in hierarchies
    assert H.SENATOR.value not in hierarchies

    system = store.find_one(POLITICAL_SYSTEMS, {"_id": guild.political_system})
    assert system["kind"] == "direct_democracy"
    assert system["appoint_judges"] is True
    court = chamber_from_document(store.find_one(CHAMBERS, {"_id": system["court"]}))
    assert isinstance(court, CourtChamber)
    assert court.seat_options.value == 5
    assert court.thresholds.simple == 70
    assert court.term_options is not None
    legislature = store.find_one(CHAMBERS, {"_id": system["legislature"]})
    assert legislature["kind"] == "referendum"
    assert legislature["thresholds"]["simple"] == 55

    channels = _channels_by_category(store)
    assert "moderator-lounge" not in channels["Executive"]
    assert "referendum-hall" in channels["Legislative"]
    assert "senate-floor" not in channels["Legislative"]


@pytest.mark.asyncio
async def test_presidential_system_has_no_snap_election(store, platform, make_draft):
    guild = await Provisioner(store, platform).provision(
        make_draft(PoliticalSystemType.PRESIDENTIAL)
    )
    system = store.find_one(POLITICAL_SYSTEMS, {"_id": guild.political_system})
    assert system["kind"] == "presidential"
    assert "snap_election" not in system
    assert system["term_options"] == {"term_length": 4, "term_limit": 2, "consecutive": False}
    president = store.find_one(ROLES, {"_id": system["head_of_state"]})
    assert president["hierarchy"] == "President"


@pytest.mark.asyncio
async def test_direct_democracy_without_judges_uses_referendum_rules(
    store, platform, make_draft
):
    draft = make_draft(PoliticalSystemType.DIRECT_DEMOCRACY)
    guild = await Provisioner(store, platform).provision(draft)
    system = store.find_one(POLITICAL_SYSTEMS, {"_id": guild.political_system})
    court = store.find_one(CHAMBERS, {"_id": system["court"]})
    assert court["seat_options"]["value"] == 0
    assert court["thresholds"] == draft.referendum_thresholds.options().to_dict()
    assert court["term_options"] is None


@pytest.mark.asyncio
async def test_graph_links_chambers_logs_and_roles(store, platform, make_draft):
    guild = await Provisioner(store, platform).provision(
        make_draft(PoliticalSystemType.PARLIAMENTARY)
    )
    for chamber in store.find(CHAMBERS):
        channel = store.find_one(CHANNELS, {"_id": chamber["channel"]})
        assert channel["chamber"] in ("legislative", "judicial")

    server_logs = store.find_one(CHANNELS, {"_id": guild.log_channels.server_logs})
    assert server_logs["kind"] == "log"
    assert server_logs["log_type"] == "server"

    holder = store.find_one(ROLE_HOLDERS, {"_id": guild.roles})
    everyone = store.find_one(ROLES, {"_id": holder["slots"]["Undocumented"]})
    assert everyone["role_id"] == COMMUNITY_ID
    vox = store.find_one(ROLES, {"_id": holder["slots"]["VoxPopuli"]})
    assert platform.bot_roles == [vox["role_id"]]
    assert "administrator" in platform.role_permissions[vox["role_id"]]


@pytest.mark.asyncio
async def test_channel_overwrites_follow_template(store, platform, make_draft):
    await Provisioner(store, platform).provision(make_draft(PoliticalSystemType.PRESIDENTIAL))
    role_ids = {doc["hierarchy"]: doc["role_id"] for doc in store.find(ROLES)}
    announcements = next(
        cid for cid, channel in platform.channels.items() if channel.name == "announcements"
    )
    overwrites = {entry.target_id: entry for entry in platform.overwrites[announcements]}
    assert "send_messages" in overwrites[role_ids["President"]].allow
    assert "send_messages" in overwrites[COMMUNITY_ID].deny
    assert "add_reactions" in overwrites[role_ids["Citizen"]].allow
    assert "add_reactions" not in overwrites[COMMUNITY_ID].deny
    assert platform.channels[announcements].parent_id is not None


@pytest.mark.asyncio
async def test_second_provision_reports_already_configured(store, platform, make_draft):
    provisioner = Provisioner(store, platform)
    assert await provisioner.provision(make_draft(PoliticalSystemType.PRESIDENTIAL))
    documents = _total(store)
    created = len(platform.created_roles) + len(platform.created_channels)

    assert await provisioner.provision(make_draft(PoliticalSystemType.PARLIAMENTARY)) is None
    assert _total(store) == documents
    assert len(platform.created_roles) + len(platform.created_channels) == created


@pytest.mark.asyncio
async def test_existing_roles_and_channels_are_reused(store, platform, make_draft):
    citizen_id = platform.add_role("Citizen")
    linked_channel = platform.add_channel("old-announcements")
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    draft.discord_options.channels.categories[0].channels[0].id = linked_channel

    await Provisioner(store, platform).provision(draft)

    assert store.find_one(ROLES, {"hierarchy": "Citizen"})["role_id"] == citizen_id
    assert citizen_id not in platform.created_roles
    assert platform.edited_channels == [linked_channel]
    assert platform.topics[linked_channel] == "Official announcements from the executive."
    assert store.find_one(CHANNELS, {"name": "announcements"})["channel_id"] == linked_channel


@pytest.mark.asyncio
async def test_stale_links_are_retried_once(store, platform, make_draft, caplog):
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    draft.discord_options.roles.roles[1].id = "404"
    draft.discord_options.channels.categories[0].id = "405"

    with caplog.at_level(logging.WARNING, logger="civitas.provisioning"):
        guild = await Provisioner(store, platform).provision(draft)

    assert guild is not None
    president = store.find_one(ROLES, {"hierarchy": "President"})
    assert president["role_id"] in platform.created_roles
    assert store.find_one(CATEGORIES, {"name": "Executive"})["category_id"] != "405"
    assert sum("retrying" in record.getMessage() for record in caplog.records) == 2


@pytest.mark.asyncio
async def test_stale_link_with_single_attempt_fails(store, platform, make_draft):
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    draft.discord_options.roles.roles[1].id = "404"
    with pytest.raises(ProvisioningError):
        await Provisioner(store, platform, link_attempts=1).provision(draft)
    assert _total(store) == 0


@pytest.mark.asyncio
async def test_failure_rolls_back_everything(store, platform, make_draft):
    platform.rejected_channel_names.add("courtroom")

    with pytest.raises(ProvisioningError):
        await Provisioner(store, platform).provision(make_draft(PoliticalSystemType.PRESIDENTIAL))

    assert _total(store) == 0
    assert store.count(ORPHANS) == 0
    assert sorted(platform.deleted_roles) == sorted(platform.created_roles)
    assert sorted(platform.deleted_channels) == sorted(platform.created_channels)
    assert set(platform.roles) == {COMMUNITY_ID}
    assert platform.channels == {}


@pytest.mark.asyncio
async def test_failed_rollback_records_orphans(store, platform, make_draft):
    platform.rejected_channel_names.add("elections")
    platform.failures["delete_role"] = 100

    with pytest.raises(ProvisioningError):
        await Provisioner(store, platform).provision(make_draft(PoliticalSystemType.PARLIAMENTARY))

    (orphans,) = store.find(ORPHANS)
    assert orphans["guild_id"] == COMMUNITY_ID
    orphaned_roles = [entry["id"] for entry in orphans["entries"] if entry["kind"] == "role"]
    assert sorted(orphaned_roles) == sorted(platform.created_roles)
    assert not [entry for entry in orphans["entries"] if entry["kind"] == "channel"]


@pytest.mark.asyncio
async def test_concurrent_configuration_is_rolled_back(tmp_path, platform, make_draft):
    class RacingStore(SQLiteDocumentStore):
        """Misses the root record on the first lookup, as if another run won."""

        raced = False

        def find_one(self, collection, query):
            if collection == GUILDS and not self.raced:
                self.raced = True
                self.create(GUILDS, {"guild_id": COMMUNITY_ID})
                return None
            return super().find_one(collection, query)

    store = RacingStore(tmp_path / "civitas.db")
    result = await Provisioner(store, platform).provision(
        make_draft(PoliticalSystemType.PRESIDENTIAL)
    )
    assert result is None
    assert _total(store) == 1
    assert sorted(platform.deleted_channels) == sorted(platform.created_channels)


@pytest.mark.asyncio
async def test_bot_role_assignment_failure_is_not_fatal(store, platform, make_draft, caplog):
    platform.failures["add_role_to_bot"] = 1
    with caplog.at_level(logging.WARNING, logger="civitas.provisioning"):
        guild = await Provisioner(store, platform).provision(
            make_draft(PoliticalSystemType.DIRECT_DEMOCRACY)
        )
    assert guild is not None
    assert store.count(GUILDS) == 1
    assert any("Could not assign" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_incomplete_draft_is_rejected_before_side_effects(store, platform, make_draft):
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    draft.emergency_options = None
    with pytest.raises(ValueError):
        await Provisioner(store, platform).provision(draft)
    assert platform.created_roles == []
    assert _total(store) == 0


@pytest.mark.asyncio
async def test_role_bound_to_another_slot_is_not_reused_by_name(store, platform, make_draft):
    existing = platform.add_role("Citizen")
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    judge = next(slot for slot in draft.filtered_roles() if slot.hierarchy is H.JUDGE)
    judge.id = existing

    await Provisioner(store, platform).provision(draft)

    judge_id = store.find_one(ROLES, {"hierarchy": "Judge"})["role_id"]
    citizen_id = store.find_one(ROLES, {"hierarchy": "Citizen"})["role_id"]
    assert judge_id == existing
    assert citizen_id != existing
    assert citizen_id in platform.created_roles
    assert [doc["hierarchy"] for doc in store.find(ROLES) if doc["role_id"] == existing] == [
        "Judge"
    ]


@pytest.mark.asyncio
async def test_duplicate_links_are_rejected_before_side_effects(store, platform, make_draft):
    existing = platform.add_role("Moderators")
    draft = make_draft(PoliticalSystemType.DIRECT_DEMOCRACY, appoint_moderators=True)
    for slot in draft.filtered_roles():
        if slot.hierarchy in (H.HEAD_MODERATOR, H.CITIZEN):
            slot.id = existing
    with pytest.raises(DuplicateLinkError):
        await Provisioner(store, platform).provision(draft)
    assert platform.created_roles == []
    assert _total(store) == 0
