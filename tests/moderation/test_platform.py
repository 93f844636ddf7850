from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from fakes import GUILD_ID, TARGET_ID
from warden.datatypes.discord_datatypes import GuildID, UserID
from warden.moderation.errors import PlatformError
from warden.moderation.platform import DiscordPlatform, snapshot_guild, snapshot_member

GUILD = GuildID(GUILD_ID)
TARGET = UserID(TARGET_ID)


def http_error(kind=discord.HTTPException, message="failure"):
    return kind(MagicMock(), message)


def make_discord_member(position=3):
    member = MagicMock(spec=discord.Member)
    member.id = int(TARGET_ID)
    member.bot = False
    member.__str__.return_value = "target"
    member.roles = [MagicMock(id=1), MagicMock(id=2)]
    member.top_role = MagicMock(position=position)
    member.timeout_for = AsyncMock()
    member.remove_timeout = AsyncMock()
    return member


@pytest.fixture
def guild():
    guild = MagicMock(spec=discord.Guild)
    guild.get_member.return_value = None
    guild.fetch_member = AsyncMock(side_effect=http_error(discord.NotFound, "Unknown Member"))
    guild.fetch_ban = AsyncMock()
    guild.ban = AsyncMock()
    guild.unban = AsyncMock()
    return guild


@pytest.fixture
def bot(guild):
    bot = MagicMock()
    bot.get_guild.return_value = guild
    bot.get_user.return_value = None
    bot.fetch_user = AsyncMock()
    return bot


@pytest.fixture
def platform(bot):
    return DiscordPlatform(bot)


def test_snapshot_member_and_guild():
    snapshot = snapshot_member(make_discord_member(position=7))
    assert snapshot.id == TARGET_ID
    assert snapshot.user.tag == "target"
    assert snapshot.role_ids == frozenset({"1", "2"})
    assert snapshot.top_role_position == 7

    guild = MagicMock(id=int(GUILD_ID), owner_id=42)
    guild.name = "Test Guild"
    assert snapshot_guild(guild).owner_id == "42"


class TestLookups:
    async def test_member_from_cache(self, platform, guild):
        guild.get_member.return_value = make_discord_member()
        snapshot = await platform.fetch_member(GUILD, TARGET)
        assert snapshot.user.tag == "target"
        guild.fetch_member.assert_not_called()

    async def test_missing_member_is_none(self, platform):
        assert await platform.fetch_member(GUILD, TARGET) is None

    async def test_member_lookup_failure_raises(self, platform, guild):
        guild.fetch_member.side_effect = http_error()
        with pytest.raises(PlatformError):
            await platform.fetch_member(GUILD, TARGET)

    async def test_missing_ban_is_none(self, platform, guild):
        guild.fetch_ban.side_effect = http_error(discord.NotFound, "Unknown Ban")
        assert await platform.fetch_ban(GUILD, TARGET) is None

    async def test_ban_entry(self, platform, guild):
        user = MagicMock(id=int(TARGET_ID), bot=False)
        user.__str__.return_value = "target"
        guild.fetch_ban.return_value = MagicMock(user=user, reason="raid")
        ban = await platform.fetch_ban(GUILD, TARGET)
        assert ban.user.tag == "target"
        assert ban.reason == "raid"

    async def test_missing_user_is_none(self, platform, bot):
        bot.fetch_user.side_effect = http_error(discord.NotFound, "Unknown User")
        assert await platform.fetch_user(TARGET) is None


class TestEffects:
    async def test_ban_passes_reason(self, platform, guild):
        await platform.ban_member(GUILD, TARGET, "raid")
        banned, = guild.ban.await_args.args
        assert banned.id == int(TARGET_ID)
        assert guild.ban.await_args.kwargs["reason"] == "raid"

    async def test_ban_failure_is_platform_error(self, platform, guild):
        guild.ban.side_effect = http_error(discord.Forbidden, "Missing Permissions")
        with pytest.raises(PlatformError):
            await platform.ban_member(GUILD, TARGET, "raid")

    async def test_timeout_applies_and_clears(self, platform, guild):
        member = make_discord_member()
        guild.get_member.return_value = member

        await platform.timeout_member(GUILD, TARGET, timedelta(minutes=5), "spam")
        member.timeout_for.assert_awaited_once_with(timedelta(minutes=5), reason="spam")

        await platform.timeout_member(GUILD, TARGET, None, "served")
        member.remove_timeout.assert_awaited_once_with(reason="served")

    async def test_timeout_on_departed_member(self, platform):
        with pytest.raises(PlatformError):
            await platform.timeout_member(GUILD, TARGET, timedelta(minutes=5), "spam")


class TestDirectMessages:
    async def test_delivered(self, platform, bot):
        user = MagicMock()
        user.send = AsyncMock()
        bot.fetch_user.return_value = user

        result = await platform.send_direct_message(TARGET, "hello")
        assert result.delivered
        user.send.assert_awaited_once_with("hello")

    @pytest.mark.parametrize("kind", [discord.Forbidden, discord.NotFound, discord.HTTPException])
    async def test_undeliverable_never_raises(self, platform, bot, kind):
        user = MagicMock()
        user.send = AsyncMock(side_effect=http_error(kind, "Cannot send messages to this user"))
        bot.get_user.return_value = user

        result = await platform.send_direct_message(TARGET, "hello")
        assert result.delivered is False
        assert result.detail
