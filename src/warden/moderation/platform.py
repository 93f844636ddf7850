"""
Platform interface for moderation side effects.

The orchestrator never touches py-cord objects. It talks to a
``ModerationPlatform``, which works in snapshots and ids:

- lookups return ``None`` when the platform reports the entity as absent,
- mutating calls raise ``PlatformError`` on any other API failure,
- ``send_direct_message`` never raises for delivery problems; it returns an
  undeliverable ``DirectMessageResult`` instead.

``DiscordPlatform`` is the py-cord implementation. The ``snapshot_*`` helpers
convert live py-cord objects for the command layer.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Protocol

import discord

from warden.datatypes.action_datatypes import (
    BanSnapshot,
    DirectMessageResult,
    GuildSnapshot,
    MemberSnapshot,
    UserSnapshot,
)
from warden.datatypes.discord_datatypes import GuildID, UserID
from warden.moderation.errors import PlatformError
from warden.util.logger import get_logger

logger = get_logger("platform")


class ModerationPlatform(Protocol):
    async def fetch_member(self, guild_id: GuildID, user_id: UserID) -> MemberSnapshot | None:
        ...

    async def fetch_user(self, user_id: UserID) -> UserSnapshot | None:
        ...

    async def fetch_ban(self, guild_id: GuildID, user_id: UserID) -> BanSnapshot | None:
        ...

    async def ban_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        ...

    async def unban_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        ...

    async def timeout_member(
        self, guild_id: GuildID, user_id: UserID, duration: timedelta | None, reason: str
    ) -> None:
        """Apply a timeout of ``duration``, or clear the current one when it is None."""
        ...

    async def send_direct_message(self, user_id: UserID, content: str) -> DirectMessageResult:
        ...


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

def snapshot_user(user: discord.abc.User) -> UserSnapshot:
    return UserSnapshot(id=UserID(user.id), tag=str(user), is_bot=bool(user.bot))


def snapshot_member(member: discord.Member) -> MemberSnapshot:
    """Capture a member's roles and the position of their highest role."""
    return MemberSnapshot(
        user=snapshot_user(member),
        role_ids=frozenset(str(role.id) for role in member.roles),
        top_role_position=member.top_role.position if member.top_role is not None else 0,
    )


def snapshot_guild(guild: discord.Guild) -> GuildSnapshot:
    owner_id = UserID(guild.owner_id) if guild.owner_id is not None else None
    return GuildSnapshot(id=GuildID(guild.id), name=guild.name, owner_id=owner_id)


@contextmanager
def _platform_call(operation: str) -> Iterator[None]:
    try:
        yield
    except discord.HTTPException as exc:
        logger.error("[PLATFORM] %s failed: %s (status %s)", operation, exc, getattr(exc, "status", "?"))
        raise PlatformError(detail=f"{operation}: {exc}") from exc


class DiscordPlatform:
    """``ModerationPlatform`` backed by a py-cord client."""

    def __init__(self, bot: discord.Client) -> None:
        self._bot = bot

    async def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self._bot.get_guild(int(guild_id))
        if guild is not None:
            return guild
        with _platform_call(f"fetch guild {guild_id}"):
            return await self._bot.fetch_guild(int(guild_id))

    async def _member(self, guild_id: GuildID, user_id: UserID) -> discord.Member | None:
        guild = await self._guild(guild_id)
        member = guild.get_member(int(user_id))
        if member is not None:
            return member
        try:
            with _platform_call(f"fetch member {user_id}"):
                return await guild.fetch_member(int(user_id))
        except PlatformError as exc:
            if isinstance(exc.__cause__, discord.NotFound):
                return None
            raise

    async def fetch_member(self, guild_id: GuildID, user_id: UserID) -> MemberSnapshot | None:
        member = await self._member(guild_id, user_id)
        return None if member is None else snapshot_member(member)

    async def fetch_user(self, user_id: UserID) -> UserSnapshot | None:
        user = self._bot.get_user(int(user_id))
        if user is None:
            try:
                user = await self._bot.fetch_user(int(user_id))
            except discord.NotFound:
                return None
            except discord.HTTPException as exc:
                raise PlatformError(detail=f"fetch user {user_id}: {exc}") from exc
        return snapshot_user(user)

    async def fetch_ban(self, guild_id: GuildID, user_id: UserID) -> BanSnapshot | None:
        guild = await self._guild(guild_id)
        try:
            entry = await guild.fetch_ban(discord.Object(id=int(user_id)))
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            raise PlatformError(detail=f"fetch ban {user_id}: {exc}") from exc
        user = snapshot_user(entry.user) if entry.user is not None else None
        return BanSnapshot(user=user, reason=entry.reason)

    async def ban_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        guild = await self._guild(guild_id)
        with _platform_call(f"ban {user_id}"):
            await guild.ban(discord.Object(id=int(user_id)), reason=reason)
        logger.info("[PLATFORM] Banned user %s in guild %s", user_id, guild_id)

    async def unban_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        guild = await self._guild(guild_id)
        with _platform_call(f"unban {user_id}"):
            await guild.unban(discord.Object(id=int(user_id)), reason=reason)
        logger.info("[PLATFORM] Unbanned user %s in guild %s", user_id, guild_id)

    async def timeout_member(
        self, guild_id: GuildID, user_id: UserID, duration: timedelta | None, reason: str
    ) -> None:
        member = await self._member(guild_id, user_id)
        if member is None:
            raise PlatformError(detail=f"member {user_id} left guild {guild_id} before the timeout")

        with _platform_call(f"timeout {user_id}"):
            if duration is None:
                await member.remove_timeout(reason=reason)
            else:
                await member.timeout_for(duration, reason=reason)
        logger.info(
            "[PLATFORM] %s timeout for user %s in guild %s",
            "Cleared" if duration is None else f"Applied {duration}", user_id, guild_id,
        )

    async def send_direct_message(self, user_id: UserID, content: str) -> DirectMessageResult:
        try:
            user = self._bot.get_user(int(user_id)) or await self._bot.fetch_user(int(user_id))
            await user.send(content)
        except discord.Forbidden:
            return DirectMessageResult.undeliverable("DMs disabled")
        except discord.NotFound:
            return DirectMessageResult.undeliverable("user not found")
        except discord.HTTPException as exc:
            return DirectMessageResult.undeliverable(str(exc))
        return DirectMessageResult.sent()
