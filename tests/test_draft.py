"""Draft filtering and validation tests."""
from __future__ import annotations

import pytest

from civitas.draft import DDDraft, DraftIncompleteError, DuplicateLinkError, GuildConfigData
from civitas.models import PoliticalRoleHierarchy as H
from civitas.models import PoliticalSystemType


def _channel_names(draft):
    return {
        category.category.name: [channel.name for channel in category.channels]
        for category in draft.filtered_categories()
    }


def test_choose_system_drops_incompatible_drafts(make_draft, templates):
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    draft.choose_system(PoliticalSystemType.DIRECT_DEMOCRACY)
    assert draft.presidential_options is None
    assert draft.senate_options is None

    draft = make_draft(PoliticalSystemType.DIRECT_DEMOCRACY)
    draft.choose_system(PoliticalSystemType.PARLIAMENTARY)
    assert draft.dd_options is None
    assert draft.referendum_thresholds is None


def test_required_roles_per_system(make_draft):
    presidential = make_draft(PoliticalSystemType.PRESIDENTIAL).required_roles()
    assert H.PRESIDENT in presidential
    assert H.PRIME_MINISTER not in presidential
    assert H.SENATOR in presidential and H.JUDGE in presidential

    dd = make_draft(
        PoliticalSystemType.DIRECT_DEMOCRACY, appoint_moderators=False, appoint_judges=True
    ).required_roles()
    assert dd == [H.VOX_POPULI, H.JUDGE, H.CITIZEN, H.UNDOCUMENTED]


def test_filtered_roles_share_draft_objects(make_draft):
    draft = make_draft(PoliticalSystemType.PARLIAMENTARY)
    slots = draft.filtered_roles()
    slots[0].id = "bound"
    assert draft.discord_options.roles.roles[0].id == "bound"
    assert slots[-1].hierarchy is H.UNDOCUMENTED


def test_filtered_categories_respect_disable_rules(make_draft):
    presidential = _channel_names(make_draft(PoliticalSystemType.PRESIDENTIAL))
    assert "senate-floor" in presidential["Legislative"]
    assert "referendum-hall" not in presidential["Legislative"]
    assert "moderator-lounge" in presidential["Executive"]

    dd = _channel_names(make_draft(PoliticalSystemType.DIRECT_DEMOCRACY))
    assert "senate-floor" not in dd["Legislative"]
    assert "referendum-hall" in dd["Legislative"]
    assert "moderator-lounge" not in dd["Executive"]

    moderated = _channel_names(
        make_draft(PoliticalSystemType.DIRECT_DEMOCRACY, appoint_moderators=True)
    )
    assert "moderator-lounge" in moderated["Executive"]


def test_filtering_never_mutates_templates(make_draft):
    draft = make_draft(PoliticalSystemType.DIRECT_DEMOCRACY)
    before = [len(c.channels) for c in draft.discord_options.channels.categories]
    draft.filtered_categories()
    after = [len(c.channels) for c in draft.discord_options.channels.categories]
    assert before == after


def test_validate_accepts_complete_drafts(make_draft):
    for system in PoliticalSystemType:
        make_draft(system).validate()


def test_validate_rejects_mixed_branches(make_draft, templates):
    draft = make_draft(PoliticalSystemType.PARLIAMENTARY)
    draft.presidential_options = templates.presidential_terms()
    with pytest.raises(DraftIncompleteError):
        draft.validate()


def test_validate_requires_court_when_judges_appointed(make_draft):
    draft = make_draft(PoliticalSystemType.DIRECT_DEMOCRACY)
    draft.dd_options.appoint_judges = True
    with pytest.raises(DraftIncompleteError):
        draft.validate()


def test_validate_requires_system():
    with pytest.raises(DraftIncompleteError):
        GuildConfigData().validate()


def test_non_dd_systems_appoint_everyone():
    draft = GuildConfigData()
    draft.choose_system(PoliticalSystemType.PRESIDENTIAL)
    assert draft.appoint_judges and draft.appoint_moderators
    draft.choose_system(PoliticalSystemType.DIRECT_DEMOCRACY)
    draft.dd_options = DDDraft(appoint_moderators=True, appoint_judges=False)
    assert draft.appoint_moderators and not draft.appoint_judges


def _slot(draft, hierarchy):
    return next(slot for slot in draft.discord_options.roles.roles if slot.hierarchy is hierarchy)


def test_validate_rejects_roles_sharing_an_id(make_draft):
    draft = make_draft(PoliticalSystemType.DIRECT_DEMOCRACY, appoint_moderators=True)
    _slot(draft, H.HEAD_MODERATOR).id = "5001"
    _slot(draft, H.CITIZEN).id = "5001"
    with pytest.raises(DuplicateLinkError):
        draft.validate()

    # Only slots in use count; a hidden slot may keep a stale binding.
    draft.dd_options.appoint_moderators = False
    draft.validate()


def test_validate_rejects_channels_sharing_an_id(make_draft):
    draft = make_draft(PoliticalSystemType.PRESIDENTIAL)
    executive, legislative = draft.filtered_categories()[:2]
    executive.category.id = "300"
    legislative.channels[0].id = "300"
    with pytest.raises(DuplicateLinkError):
        draft.validate()

    legislative.channels[0].id = "301"
    executive.channels[1].id = "301"
    with pytest.raises(DuplicateLinkError):
        draft.validate()
