"""
Persistent storage for moderation cases.

Timestamps are stored as INTEGER unix seconds so expiry arithmetic is plain
integer addition and there is no string parsing or timezone conversion.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from warden.datatypes.case_datatypes import Case, CaseType, from_unix
from warden.datatypes.discord_datatypes import GuildID, UserID

_DELETABLE_TYPES = tuple(case_type.value for case_type in CaseType if case_type.deletable)

_CASE_COLUMNS = (
    "id, case_type, guild_id, user_id, created_by, body, created_at, "
    "duration_seconds, expires_at, active"
)


def row_to_case(row: aiosqlite.Row) -> Case:
    """Build a ``Case`` from a ``cases`` row."""
    expires_at = row["expires_at"]
    active = row["active"]
    return Case(
        id=row["id"],
        case_type=CaseType(row["case_type"]),
        guild_id=GuildID(row["guild_id"]),
        user_id=UserID(row["user_id"]),
        created_by=UserID(row["created_by"]),
        body=row["body"],
        created_at=from_unix(row["created_at"]),
        duration_seconds=row["duration_seconds"],
        expires_at=None if expires_at is None else from_unix(expires_at),
        active=None if active is None else bool(active),
    )


class CaseRepo:
    """Low-level CRUD for the ``cases`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        case_type: CaseType,
        guild_id: GuildID,
        user_id: UserID,
        created_by: UserID,
        body: str,
        created_at: int,
        duration_seconds: int | None = None,
        expires_at: int | None = None,
        active: bool | None = None,
    ) -> int:
        """Insert a case row and return its assigned id."""
        cursor = await conn.execute(
            """
            INSERT INTO cases (
                case_type, guild_id, user_id, created_by, body, created_at,
                duration_seconds, expires_at, active
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                case_type.value,
                str(guild_id),
                str(user_id),
                str(created_by),
                body,
                created_at,
                duration_seconds,
                expires_at,
                None if active is None else int(active),
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def delete_deletable(conn: aiosqlite.Connection, case_id: int) -> int:
        """Hard-delete a note or warning. Returns the number of rows removed."""
        placeholders = ", ".join("?" for _ in _DELETABLE_TYPES)
        cursor = await conn.execute(
            f"DELETE FROM cases WHERE id = ? AND case_type IN ({placeholders})",
            (case_id, *_DELETABLE_TYPES),
        )
        return cursor.rowcount

    @staticmethod
    async def deactivate_active_mutes(conn: aiosqlite.Connection, user_id: UserID, guild_id: GuildID) -> int:
        """Set ``active = 0`` on every active mute of the pair. Returns rows changed."""
        cursor = await conn.execute(
            "UPDATE cases SET active = 0 "
            "WHERE user_id = ? AND guild_id = ? AND case_type = ? AND active = 1",
            (str(user_id), str(guild_id), CaseType.MUTE.value),
        )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get_by_id(conn: aiosqlite.Connection, case_id: int) -> Case | None:
        async with conn.execute(f"SELECT {_CASE_COLUMNS} FROM cases WHERE id = ?", (case_id,)) as cursor:
            row = await cursor.fetchone()
        return None if row is None else row_to_case(row)

    @staticmethod
    async def list_for_user(
        conn: aiosqlite.Connection,
        user_id: UserID,
        guild_id: GuildID,
        case_type: CaseType,
    ) -> List[Case]:
        """Return every case of ``case_type`` for the pair, newest first."""
        async with conn.execute(
            f"SELECT {_CASE_COLUMNS} FROM cases "
            "WHERE user_id = ? AND guild_id = ? AND case_type = ? "
            "ORDER BY created_at DESC, id DESC",
            (str(user_id), str(guild_id), case_type.value),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_case(row) for row in rows]

    @staticmethod
    async def list_active_mutes(conn: aiosqlite.Connection, user_id: UserID, guild_id: GuildID) -> List[Case]:
        async with conn.execute(
            f"SELECT {_CASE_COLUMNS} FROM cases "
            "WHERE user_id = ? AND guild_id = ? AND case_type = ? AND active = 1 "
            "ORDER BY created_at DESC, id DESC",
            (str(user_id), str(guild_id), CaseType.MUTE.value),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_case(row) for row in rows]
