"""Discord adapter tests using mocked guilds and interactions."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import discord
import pytest

from civitas.adapters.discord.builders import (
    DELETE_FOOTER,
    build_delete_confirmation_embed,
    build_delete_status_embed,
    build_step_embed,
)
from civitas.adapters.discord.platform import (
    DiscordPlatform,
    _channel,
    _overwrite,
    _permissions,
)
from civitas.adapters.discord.prompter import DiscordPrompter, StepPromptView
from civitas.platform import PermissionOverwrite, PlatformChannelType, PlatformError
from civitas.wizard.views import (
    Action,
    ActionStyle,
    Choice,
    Field,
    Selector,
    SelectorKind,
    StepView,
    ViewTone,
)


def _http_error(cls, status):
    return cls(Mock(status=status, reason="error"), "rejected")


def _step_view(selector=None, tone=ViewTone.NORMAL):
    return StepView(
        title="Senate Terms",
        description="Choose how long senators serve.",
        fields=[Field("Term Length", "6")],
        actions=[
            Action("confirm", "Confirm", ActionStyle.SUCCESS),
            Action("back", "Back", ActionStyle.DANGER, disabled=True),
        ],
        selector=selector,
        footer="Page 2",
        tone=tone,
    )


def test_permissions_ignore_unknown_capabilities():
    permissions = _permissions(frozenset({"send_messages", "not_a_real_flag"}))
    assert permissions.send_messages
    assert not permissions.administrator


def test_overwrite_maps_allow_and_deny():
    overwrite = _overwrite(
        PermissionOverwrite("1", allow=frozenset({"send_messages"}), deny=frozenset({"view_channel"}))
    )
    assert overwrite.send_messages is True
    assert overwrite.view_channel is False
    assert overwrite.add_reactions is None


def test_channel_kind_detection():
    category = Mock(spec=discord.CategoryChannel, id=10, category_id=None)
    category.name = "Executive"
    text = Mock(spec=discord.TextChannel, id=11, category_id=10)
    text.name = "announcements"

    assert _channel(category).type is PlatformChannelType.CATEGORY
    converted = _channel(text)
    assert converted.type is PlatformChannelType.TEXT
    assert converted.parent_id == "10"


@pytest.mark.asyncio
async def test_create_role_translates_arguments():
    guild = Mock()
    guild.create_role = AsyncMock(return_value=SimpleNamespace(id=55, name="Citizen"))
    role = await DiscordPlatform(guild).create_role(
        name="Citizen",
        permissions=frozenset({"add_reactions"}),
        color="#2ECC71",
        hoist=True,
        reason="Server Initialization",
    )

    assert role.id == "55"
    kwargs = guild.create_role.await_args.kwargs
    assert kwargs["colour"] == discord.Colour(0x2ECC71)
    assert kwargs["permissions"].add_reactions
    assert kwargs["hoist"] is True


@pytest.mark.asyncio
async def test_rejected_requests_become_platform_errors():
    guild = Mock()
    guild.create_category = AsyncMock(side_effect=_http_error(discord.Forbidden, 403))
    with pytest.raises(PlatformError):
        await DiscordPlatform(guild).create_category(name="Executive")


@pytest.mark.asyncio
async def test_deleting_missing_objects_is_quiet():
    role = SimpleNamespace(delete=AsyncMock(side_effect=_http_error(discord.NotFound, 404)))
    guild = Mock()
    guild.get_role = Mock(side_effect=[None, role])
    platform = DiscordPlatform(guild)

    await platform.delete_role("1")
    await platform.delete_role("2")
    role.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_channel_resolves_to_none():
    guild = Mock()
    guild.get_channel = Mock(return_value=None)
    guild.fetch_channel = AsyncMock(side_effect=_http_error(discord.NotFound, 404))
    assert await DiscordPlatform(guild).fetch_channel("42") is None


def test_step_embed_rendering():
    embed = build_step_embed(_step_view())
    assert embed.title == "Senate Terms"
    assert embed.fields[0].name == "Term Length"
    assert embed.footer.text == "Page 2"
    assert embed.colour == discord.Colour.blurple()
    assert build_step_embed(_step_view(tone=ViewTone.WARNING)).colour == discord.Colour.yellow()


def test_delete_embeds():
    embed = build_delete_confirmation_embed(True)
    assert "will be deleted" in embed.description
    assert embed.footer.text == DELETE_FOOTER
    assert "will not be deleted" in build_delete_confirmation_embed(False).description
    assert build_delete_status_embed("done", warning=True).colour == discord.Colour.yellow()


@pytest.mark.asyncio
async def test_prompt_view_builds_buttons_and_picker():
    view = StepPromptView(
        _step_view(Selector("select", SelectorKind.CATEGORY, "Pick a category")),
        user_id=1,
        timeout=5,
    )
    buttons = [item for item in view.children if isinstance(item, discord.ui.Button)]
    assert [button.custom_id for button in buttons] == ["confirm", "back"]
    assert buttons[1].disabled
    (picker,) = [item for item in view.children if isinstance(item, discord.ui.ChannelSelect)]
    assert picker.channel_types == [discord.ChannelType.category]


@pytest.mark.asyncio
async def test_prompt_view_keeps_first_choice():
    view = StepPromptView(_step_view(), user_id=1, timeout=5)
    interaction = SimpleNamespace(response=SimpleNamespace(defer=AsyncMock()))

    await view._resolve(interaction, Choice("confirm"))
    await view._resolve(interaction, Choice("back"))

    assert view.choice == Choice("confirm")
    assert view.is_finished()
    interaction.response.defer.assert_awaited_once()


@pytest.mark.asyncio
async def test_prompter_edits_message_in_place():
    interaction = SimpleNamespace(
        user=SimpleNamespace(id=1),
        response=SimpleNamespace(is_done=Mock(return_value=True), send_message=AsyncMock()),
        edit_original_response=AsyncMock(),
        followup=SimpleNamespace(send=AsyncMock()),
    )
    prompter = DiscordPrompter(interaction)

    await prompter.finish(_step_view())
    await prompter.notify("Role already linked")

    kwargs = interaction.edit_original_response.await_args.kwargs
    assert kwargs["view"] is None
    assert kwargs["embed"].title == "Senate Terms"
    interaction.response.send_message.assert_not_called()
    interaction.followup.send.assert_awaited_once_with("Role already linked", ephemeral=True)
