from __future__ import annotations

import pytest

from civitas.policy import Community, Requester, can_configure

from conftest import FakePlatform, OWNER_ID

LARGE = Community(owner_id=1, member_count=500)


@pytest.mark.parametrize(
    "requester",
    [
        Requester(user_id=1, is_administrator=False),
        Requester(user_id=7, is_administrator=True),
        Requester(user_id=99, is_administrator=False),
    ],
    ids=["owner", "administrator", "bot-owner"],
)
def test_privileged_requesters_may_configure(requester):
    assert can_configure(requester, LARGE, bot_owner_id=99, max_member_free_config_count=10)


def test_regular_member_of_large_community_is_refused():
    requester = Requester(user_id=7, is_administrator=False)
    assert not can_configure(requester, LARGE, bot_owner_id=None, max_member_free_config_count=10)


@pytest.mark.parametrize("member_count,allowed", [(9, True), (10, True), (11, False)])
def test_small_communities_are_open(member_count, allowed):
    requester = Requester(user_id=7, is_administrator=False)
    community = Community(owner_id=1, member_count=member_count)
    assert (
        can_configure(requester, community, bot_owner_id=None, max_member_free_config_count=10)
        is allowed
    )


def test_community_is_read_from_platform():
    community = Community.from_platform(FakePlatform(member_count=3))
    assert community == Community(owner_id=int(OWNER_ID), member_count=3)

    owner = Requester(user_id=int(OWNER_ID), is_administrator=False)
    large = Community.from_platform(FakePlatform(member_count=500))
    assert can_configure(owner, large, bot_owner_id=None, max_member_free_config_count=10)
    stranger = Requester(user_id=7, is_administrator=False)
    assert not can_configure(stranger, large, bot_owner_id=None, max_member_free_config_count=10)
