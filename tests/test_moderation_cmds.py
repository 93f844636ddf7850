from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from warden.bot.cogs import moderation_cmds
from warden.configuration.app_configuration import ModerationSettings
from warden.datatypes.action_datatypes import ActionResult, ActionStage, CaseRemovalRequest, MuteRequest
from warden.datatypes.case_datatypes import Case, CaseType

MODS_CHANNEL_ID = "500000000000000002"


class User:
    def __init__(self, user_id=300000000000000001, name="target"):
        self.id = user_id
        self.bot = False
        self.name = name
        self.display_avatar = SimpleNamespace(url="https://cdn.example/avatar.png")

    def __str__(self):
        return self.name


class Ctx:
    def __init__(self, channel_id=1):
        self.author = User(200000000000000001, "moderator")
        self.guild = SimpleNamespace(id=100000000000000001, name="Test Guild", owner_id=200000000000000009)
        self.channel_id = channel_id
        self.command = "test"
        self.interaction = SimpleNamespace(delete_original_response=AsyncMock())
        self.defer = AsyncMock()
        self.send_followup = AsyncMock()


def make_cog(**handlers):
    orchestrator = SimpleNamespace(**{name: AsyncMock(return_value=result) for name, result in handlers.items()})
    settings = ModerationSettings(mods_channel_id=MODS_CHANNEL_ID)
    return moderation_cmds.ModerationCommandsCog(SimpleNamespace(), orchestrator, settings), orchestrator


def test_setup_registers_cog():
    captured = {}

    fake_bot = SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog))
    moderation_cmds.setup(fake_bot, SimpleNamespace(), ModerationSettings())
    assert isinstance(captured["cog"], moderation_cmds.ModerationCommandsCog)


def test_command_groups():
    cog_cls = moderation_cmds.ModerationCommandsCog
    assert cog_cls.warning.name == "warning"
    assert cog_cls.note.name == "note"
    for name in ("ban", "unban", "mute", "unmute"):
        assert getattr(cog_cls, name).name == name


def test_request_fields_without_member_snapshot():
    fields = moderation_cmds.ModerationCommandsCog.request_fields(Ctx())
    assert fields["guild"].name == "Test Guild"
    assert fields["guild"].owner_id == "200000000000000009"
    assert fields["moderator"].tag == "moderator"
    assert fields["moderator_member"] is None


async def test_public_success_reply():
    cog, orchestrator = make_cog(ban=ActionResult("Banned target for: spam"))
    ctx = Ctx()

    await moderation_cmds.ModerationCommandsCog.ban.callback(cog, ctx, User(), reason="spam")

    ctx.defer.assert_awaited_once_with()
    ctx.interaction.delete_original_response.assert_not_called()
    kwargs = ctx.send_followup.await_args.kwargs
    assert kwargs["content"] == "Banned target for: spam"
    assert kwargs["ephemeral"] is False
    request = orchestrator.ban.await_args.args[0]
    assert request.target.tag == "target"
    assert request.reason == "spam"


async def test_failure_replaces_public_placeholder():
    cog, _ = make_cog(
        unban=ActionResult("Please provide a valid user ID.", ephemeral=True, stage=ActionStage.FAILED)
    )
    ctx = Ctx()

    await moderation_cmds.ModerationCommandsCog.unban.callback(cog, ctx, "abc", reason="appeal")

    ctx.interaction.delete_original_response.assert_awaited_once()
    assert ctx.send_followup.await_args.kwargs["ephemeral"] is True


async def test_mute_passes_duration():
    cog, orchestrator = make_cog(mute=ActionResult("Muted target for 30 minute(s) for: spam"))
    await moderation_cmds.ModerationCommandsCog.mute.callback(cog, Ctx(), User(), reason="spam", duration=30)

    request = orchestrator.mute.await_args.args[0]
    assert isinstance(request, MuteRequest)
    assert request.duration_minutes == 30


async def test_warning_remove_passes_id():
    cog, orchestrator = make_cog(remove_warning=ActionResult("Warning ID 4 removed."))
    await moderation_cmds.ModerationCommandsCog.warning_remove.callback(cog, Ctx(), id=4, reason="mistake")

    request = orchestrator.remove_warning.await_args.args[0]
    assert isinstance(request, CaseRemovalRequest)
    assert request.case_id == 4


@pytest.mark.parametrize("channel_id, public", [(int(MODS_CHANNEL_ID), True), (1, False)])
async def test_note_visibility_follows_channel(channel_id, public):
    cog, _ = make_cog(add_note=ActionResult("Note added for target (ID: 1) for: watch"))
    ctx = Ctx(channel_id)

    await moderation_cmds.ModerationCommandsCog.note_add.callback(cog, ctx, User(), content="watch")

    ctx.defer.assert_awaited_once_with(ephemeral=not public)
    assert ctx.send_followup.await_args.kwargs["ephemeral"] is (not public)
    ctx.interaction.delete_original_response.assert_not_called()


async def test_empty_listing_is_plain_reply():
    cog, _ = make_cog(view_warnings=ActionResult("target has no warnings in this server.", ephemeral=True))
    ctx = Ctx()

    await moderation_cmds.ModerationCommandsCog.warning_view.callback(cog, ctx, User())

    assert ctx.send_followup.await_args.kwargs["content"] == "target has no warnings in this server."


async def test_listing_uses_paginator(monkeypatch):
    case = Case(
        id=1,
        case_type=CaseType.WARNING,
        guild_id="100000000000000001",
        user_id="300000000000000001",
        created_by="200000000000000001",
        body="spam",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    paginator = MagicMock()
    paginator.respond = AsyncMock()
    factory = MagicMock(return_value=paginator)
    monkeypatch.setattr(moderation_cmds.pages, "Paginator", factory)

    cog, _ = make_cog(view_warnings=ActionResult("Warnings for target (1)", cases=[case]))
    ctx = Ctx()
    await moderation_cmds.ModerationCommandsCog.warning_view.callback(cog, ctx, User())

    embeds = factory.call_args.kwargs["pages"]
    assert len(embeds) == 1
    assert embeds[0].title == "Warnings for target (1)"
    paginator.respond.assert_awaited_once_with(ctx.interaction, ephemeral=False)
