"""
Audit trail publishing.

The orchestrator hands every completed action to an ``AuditEmitter``. The
production emitter renders the event with ``build_audit_embed`` and posts it
to the configured audit channel, but only when that channel belongs to the
guild the action happened in. A missing or foreign channel is a configuration
problem, logged as a warning; it never fails the action.
"""

from __future__ import annotations

from typing import Protocol

import discord

from warden.datatypes.action_datatypes import AuditEvent
from warden.ui.audit_embed import build_audit_embed
from warden.util.logger import get_logger

logger = get_logger("audit")


class AuditEmitter(Protocol):
    async def emit(self, event: AuditEvent) -> None:
        ...


class ChannelAuditEmitter:
    """Posts audit embeds to a single text channel.

    Args:
        bot: The running py-cord client.
        channel_id: Audit channel id, or None when unconfigured.
    """

    def __init__(self, bot: discord.Client, channel_id: str | None) -> None:
        self._bot = bot
        self._channel_id = channel_id

    async def _resolve_channel(self) -> discord.abc.Messageable | None:
        if not self._channel_id:
            logger.warning("[AUDIT] BOT_LOGGING_CHANNEL_ID is not set, skipping audit log")
            return None

        channel_id = int(self._channel_id)
        channel = self._bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden):
                channel = None

        if not isinstance(channel, discord.TextChannel):
            logger.warning("[AUDIT] Audit channel %s not found or not a text channel", self._channel_id)
            return None
        return channel

    def _avatar_url(self, user_id) -> str | None:
        user = self._bot.get_user(int(user_id))
        return None if user is None else user.display_avatar.url

    async def emit(self, event: AuditEvent) -> None:
        channel = await self._resolve_channel()
        if channel is None:
            return
        if str(channel.guild.id) != str(event.guild_id):
            logger.warning(
                "[AUDIT] Audit channel %s is not in guild %s, skipping audit log", self._channel_id, event.guild_id
            )
            return

        embed = build_audit_embed(
            event,
            target_avatar_url=self._avatar_url(event.target_id),
            moderator_avatar_url=self._avatar_url(event.moderator_id),
        )
        await channel.send(embed=embed)
        logger.debug("[AUDIT] Posted %s for user %s in guild %s", event.action_type, event.target_id, event.guild_id)
