"""
Repository for the ``guilds`` and ``members`` tables.

Both tables are upsert-on-write: the first write creates the row, later
writes leave it untouched (first write wins for the guild name).
"""

from __future__ import annotations

import aiosqlite

from warden.datatypes.discord_datatypes import GuildID, UserID

class MemberRepo:
    """Low-level writes and lookups for guild and member rows."""

    @staticmethod
    async def upsert_guild(conn: aiosqlite.Connection, guild_id: GuildID, name: str, now: int) -> bool:
        """Insert the guild unless it exists. Returns True when a row was created."""
        cursor = await conn.execute(
            "INSERT INTO guilds (id, name, created_at) VALUES (?, ?, ?) ON CONFLICT(id) DO NOTHING",
            (str(guild_id), name or "", now),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def upsert_member(conn: aiosqlite.Connection, user_id: UserID, guild_id: GuildID, now: int) -> bool:
        """Insert the (user, guild) member row unless it exists."""
        cursor = await conn.execute(
            "INSERT INTO members (user_id, guild_id, created_at) VALUES (?, ?, ?) "
            "ON CONFLICT(user_id, guild_id) DO NOTHING",
            (str(user_id), str(guild_id), now),
        )
        return cursor.rowcount > 0

