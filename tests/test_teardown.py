from __future__ import annotations

from datetime import datetime, timezone

import pytest

from civitas.events import EventKind, EventScheduler
from civitas.models import PoliticalSystemType
from civitas.provisioning import Provisioner
from civitas.store import (
    CATEGORIES,
    CHAMBERS,
    CHANNELS,
    EVENTS,
    GUILDS,
    POLITICAL_SYSTEMS,
    ROLE_HOLDERS,
    ROLES,
)
from civitas.teardown import Teardown, TeardownError

from conftest import COMMUNITY_ID

GRAPH = (GUILDS, ROLES, ROLE_HOLDERS, CATEGORIES, CHANNELS, CHAMBERS, POLITICAL_SYSTEMS, EVENTS)


async def _provision(store, platform, make_draft, system=PoliticalSystemType.PRESIDENTIAL):
    guild = await Provisioner(store, platform).provision(make_draft(system))
    assert guild is not None
    return guild


@pytest.mark.asyncio
@pytest.mark.parametrize("system", list(PoliticalSystemType))
async def test_round_trip_removes_everything(store, platform, make_draft, system):
    await _provision(store, platform, make_draft, system)
    EventScheduler(store).schedule(
        COMMUNITY_ID, EventKind.ELECTION, datetime(2030, 1, 1, tzinfo=timezone.utc)
    )

    assert await Teardown(store, platform).teardown(COMMUNITY_ID, True) is True

    assert all(store.count(collection) == 0 for collection in GRAPH)
    assert sorted(platform.deleted_roles) == sorted(platform.created_roles)
    assert sorted(platform.deleted_channels) == sorted(platform.created_channels)
    assert COMMUNITY_ID not in platform.deleted_roles
    assert COMMUNITY_ID in platform.roles


@pytest.mark.asyncio
async def test_external_objects_are_kept_without_flag(store, platform, make_draft):
    await _provision(store, platform, make_draft)

    assert await Teardown(store, platform).teardown(COMMUNITY_ID, False) is True

    assert all(store.count(collection) == 0 for collection in GRAPH)
    assert platform.deleted_roles == []
    assert platform.deleted_channels == []
    assert len(platform.channels) == len(platform.created_channels)


@pytest.mark.asyncio
async def test_unconfigured_community_returns_false(store, platform):
    assert await Teardown(store, platform).teardown(COMMUNITY_ID, True) is False
    assert platform.deleted_roles == []


@pytest.mark.asyncio
async def test_missing_records_are_tolerated(store, platform, make_draft):
    guild = await _provision(store, platform, make_draft)
    store.find_one_and_delete(CATEGORIES, {"_id": guild.categories[0]})
    store.find_one_and_delete(ROLE_HOLDERS, {"_id": guild.roles})
    store.find_one_and_delete(POLITICAL_SYSTEMS, {"_id": guild.political_system})

    assert await Teardown(store, platform).teardown(COMMUNITY_ID, True) is True
    assert store.count(GUILDS) == 0
    assert store.count(CATEGORIES) == 0
    assert platform.deleted_roles == []


@pytest.mark.asyncio
async def test_branch_failure_is_reported_after_all_branches_run(store, platform, make_draft):
    await _provision(store, platform, make_draft)
    platform.failures["delete_channel"] = 1

    with pytest.raises(TeardownError) as excinfo:
        await Teardown(store, platform).teardown(COMMUNITY_ID, True)

    assert len(excinfo.value.failures) == 1
    assert store.count(GUILDS) == 0
    assert store.count(ROLES) == 0
    assert store.count(CHANNELS) == 0
    assert sorted(platform.deleted_roles) == sorted(platform.created_roles)
    assert len(platform.deleted_channels) == len(platform.created_channels) - 1


@pytest.mark.asyncio
async def test_second_teardown_finds_nothing(store, platform, make_draft):
    await _provision(store, platform, make_draft)
    teardown = Teardown(store, platform)
    assert await teardown.teardown(COMMUNITY_ID, False) is True
    assert await teardown.teardown(COMMUNITY_ID, False) is False
