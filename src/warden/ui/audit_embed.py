"""
Embed creation for the audit channel.

Every moderation action is rendered as one embed: the action type as title,
the target and moderator side by side, then reason, duration, timestamp and
case id.
"""

from __future__ import annotations

import discord

from warden.datatypes.action_datatypes import AuditEvent, ModLogType

REMOVAL_COLOR = 0x57F287
DEFAULT_COLOR = 0x5865F2
DEFAULT_EMOJI = "🔷"

AUDIT_COLORS = {
    ModLogType.BAN: 0xED4245,
    ModLogType.WARN: 0xFAA81A,
    ModLogType.MUTE: 0x747F8D,
    ModLogType.NOTE: 0xFEE75C,
    ModLogType.NOTE_REMOVED: REMOVAL_COLOR,
    ModLogType.UNBAN: REMOVAL_COLOR,
    ModLogType.UNWARN: REMOVAL_COLOR,
    ModLogType.UNMUTE: REMOVAL_COLOR,
}

AUDIT_EMOJIS = {
    ModLogType.WARN: "⚠️",
    ModLogType.UNWARN: "⚠️",
    ModLogType.MUTE: "🔇",
    ModLogType.UNMUTE: "🔇",
    ModLogType.BAN: "🔨",
    ModLogType.UNBAN: "🔨",
    ModLogType.NOTE: "📝",
    ModLogType.NOTE_REMOVED: "📝",
}

# Discord rejects field values longer than this
FIELD_VALUE_LIMIT = 1024


def audit_color(action_type: ModLogType) -> int:
    """Colour for ``action_type``; every removal is green regardless of the table."""
    if action_type.is_removal:
        return REMOVAL_COLOR
    return AUDIT_COLORS.get(action_type, DEFAULT_COLOR)


def _field_value(value: str) -> str:
    if len(value) <= FIELD_VALUE_LIMIT:
        return value
    return value[: FIELD_VALUE_LIMIT - 3] + "..."


def build_audit_embed(
    event: AuditEvent,
    target_avatar_url: str | None = None,
    moderator_avatar_url: str | None = None,
) -> discord.Embed:
    """
    Create the audit channel embed for a moderation event.

    Args:
        event: The event to render. Display strings are expected to be sanitized.
        target_avatar_url: Optional thumbnail for the target.
        moderator_avatar_url: Optional icon for the moderator author line.

    Returns:
        discord.Embed: The embed to post.
    """
    emoji = AUDIT_EMOJIS.get(event.action_type, DEFAULT_EMOJI)
    embed = discord.Embed(
        title=f"{emoji} {event.action_type}",
        color=audit_color(event.action_type),
        timestamp=event.timestamp,
    )

    embed.add_field(name="User", value=f"<@{event.target_id}> ({event.target_display})", inline=True)
    embed.add_field(name="Moderator", value=f"<@{event.moderator_id}> ({event.moderator_display})", inline=True)
    if event.reason:
        embed.add_field(name="Reason", value=_field_value(event.reason), inline=False)
    if event.duration:
        embed.add_field(name="Duration", value=event.duration, inline=False)
    if event.extra:
        embed.add_field(name="Extra", value=_field_value(event.extra), inline=False)

    unix = int(event.timestamp.timestamp())
    embed.add_field(name="Timestamp", value=f"<t:{unix}:f>", inline=True)
    case_id = event.case_id if event.case_id is not None else "N/A"
    embed.add_field(name="Case ID", value=f"`{case_id}`", inline=True)

    if event.duration:
        embed.set_footer(text=f"Duration: {event.duration}")
    if target_avatar_url:
        embed.set_thumbnail(url=target_avatar_url)
    if moderator_avatar_url:
        embed.set_author(name=f"Moderator: {event.moderator_display}", icon_url=moderator_avatar_url)

    return embed
