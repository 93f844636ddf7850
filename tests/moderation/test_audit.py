from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from fakes import GUILD_ID, MODERATOR_ID, OTHER_GUILD_ID, TARGET_ID
from warden.datatypes.action_datatypes import AuditEvent, ModLogType
from warden.moderation.audit import ChannelAuditEmitter
from warden.ui.audit_embed import FIELD_VALUE_LIMIT, REMOVAL_COLOR, audit_color, build_audit_embed

WHEN = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_event(action_type=ModLogType.WARN, **overrides):
    fields = dict(
        guild_id=GUILD_ID,
        action_type=action_type,
        target_id=TARGET_ID,
        target_display="target",
        moderator_id=MODERATOR_ID,
        moderator_display="moderator",
        reason="spamming links",
        timestamp=WHEN,
    )
    fields.update(overrides)
    return AuditEvent(**fields)


def fields_by_name(embed):
    return {field.name: field.value for field in embed.fields}


class TestAuditEmbed:
    def test_warn_embed_fields(self):
        embed = build_audit_embed(make_event(case_id=12))
        fields = fields_by_name(embed)

        assert embed.title == "⚠️ Warn"
        assert fields["User"] == f"<@{TARGET_ID}> (target)"
        assert fields["Moderator"] == f"<@{MODERATOR_ID}> (moderator)"
        assert fields["Reason"] == "spamming links"
        assert fields["Timestamp"] == f"<t:{int(WHEN.timestamp())}:f>"
        assert fields["Case ID"] == "`12`"
        assert "Duration" not in fields

    def test_missing_case_id(self):
        assert fields_by_name(build_audit_embed(make_event(ModLogType.BAN)))["Case ID"] == "`N/A`"

    def test_mute_duration_in_field_and_footer(self):
        embed = build_audit_embed(make_event(ModLogType.MUTE, duration="60 minute(s)"))
        assert fields_by_name(embed)["Duration"] == "60 minute(s)"
        assert embed.footer.text == "Duration: 60 minute(s)"

    def test_removal_extra_field(self):
        embed = build_audit_embed(make_event(ModLogType.UNWARN, extra="Original: spam"))
        assert fields_by_name(embed)["Extra"] == "Original: spam"

    @pytest.mark.parametrize(
        "action_type", [ModLogType.UNBAN, ModLogType.UNMUTE, ModLogType.UNWARN, ModLogType.NOTE_REMOVED]
    )
    def test_removals_are_green(self, action_type):
        assert action_type.is_removal
        assert audit_color(action_type) == REMOVAL_COLOR

    @pytest.mark.parametrize("action_type", [ModLogType.BAN, ModLogType.MUTE, ModLogType.WARN, ModLogType.NOTE])
    def test_additions_are_not_green(self, action_type):
        assert not action_type.is_removal
        assert audit_color(action_type) != REMOVAL_COLOR

    def test_long_reason_fits_a_field(self):
        embed = build_audit_embed(make_event(reason="r" * 3000))
        assert len(fields_by_name(embed)["Reason"]) == FIELD_VALUE_LIMIT

    def test_avatars(self):
        embed = build_audit_embed(
            make_event(), target_avatar_url="https://cdn.example/t.png", moderator_avatar_url="https://cdn.example/m.png"
        )
        assert embed.thumbnail.url == "https://cdn.example/t.png"
        assert embed.author.name == "Moderator: moderator"


def text_channel(guild_id=GUILD_ID):
    channel = MagicMock(spec=discord.TextChannel)
    channel.guild = MagicMock()
    channel.guild.id = int(guild_id)
    channel.send = AsyncMock()
    return channel


class TestChannelAuditEmitter:
    def _bot(self, channel=None):
        bot = MagicMock()
        bot.get_channel.return_value = channel
        bot.fetch_channel = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Channel"))
        bot.get_user.return_value = None
        return bot

    async def test_posts_embed_to_text_channel(self):
        channel = text_channel()
        bot = self._bot(channel)

        await ChannelAuditEmitter(bot, "500000000000000001").emit(make_event())

        bot.get_channel.assert_called_once_with(500000000000000001)
        embed = channel.send.await_args.kwargs["embed"]
        assert embed.title == "⚠️ Warn"

    async def test_falls_back_to_fetch(self):
        channel = text_channel()
        bot = self._bot(None)
        bot.fetch_channel = AsyncMock(return_value=channel)

        await ChannelAuditEmitter(bot, "500000000000000001").emit(make_event())
        channel.send.assert_awaited_once()

    async def test_unconfigured_channel_is_skipped(self):
        bot = self._bot()
        await ChannelAuditEmitter(bot, None).emit(make_event())
        bot.get_channel.assert_not_called()

    async def test_missing_channel_is_skipped(self):
        bot = self._bot(None)
        await ChannelAuditEmitter(bot, "500000000000000001").emit(make_event())
        bot.fetch_channel.assert_awaited_once()

    async def test_non_text_channel_is_skipped(self):
        voice = MagicMock(spec=discord.VoiceChannel)
        voice.send = AsyncMock()
        await ChannelAuditEmitter(self._bot(voice), "500000000000000001").emit(make_event())
        voice.send.assert_not_called()

    async def test_channel_in_another_guild_is_skipped(self):
        channel = text_channel(OTHER_GUILD_ID)
        await ChannelAuditEmitter(self._bot(channel), "500000000000000001").emit(make_event())
        channel.send.assert_not_called()
