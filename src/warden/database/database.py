"""
Case store for the moderation engine.

The ``Database`` class owns one ``ConnectionManager`` and is the only writer
of guild, member and case rows. Every public method is a single atomic
operation; writes go through ``ConnectionManager.transaction()`` so they are
serialized and rolled back on error.

Driver failures never leave this module raw: they are translated into the
``StoreError`` family from ``warden.moderation.errors`` so the orchestrator can
choose a user-facing message without seeing SQLite text.

Guild ownership of a case is *not* checked here; that is the orchestrator's
job, since only it knows which guild a command came from.
"""

from __future__ import annotations

import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List

from warden.configuration.app_configuration import DEFAULT_DATABASE_PATH
from warden.database.db_connection import ConnectionManager
from warden.database.db_schema import SchemaManager
from warden.datatypes.case_datatypes import Case, CaseType, from_unix, to_unix
from warden.datatypes.discord_datatypes import GuildID, UserID
from warden.moderation.errors import IdTooLargeError, RecordNotFoundError, classify_store_error
from warden.repositories.case_repo import CaseRepo
from warden.repositories.member_repo import MemberRepo
from warden.util.logger import get_logger
from warden.util.sanitizer import MAX_ID

logger = get_logger("database")


def _check_case_id(case_id: int) -> int:
    if isinstance(case_id, bool) or not isinstance(case_id, int) or not 1 <= case_id <= MAX_ID:
        raise IdTooLargeError(detail=f"case id {case_id!r} outside 1..{MAX_ID}")
    return case_id


class Database:
    """
    Async case store backed by SQLite.

    Lifecycle:
        1. ``await initialize()`` at startup
        2. use the upsert / create / find / list / delete methods
        3. ``await shutdown()`` at exit
    """

    def __init__(self, db_path: Path = DEFAULT_DATABASE_PATH) -> None:
        self.db_path = db_path
        self._connection = ConnectionManager()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self._connection.open(self.db_path)
            await SchemaManager.initialize_schema(self._connection.connection)
        except (sqlite3.Error, OSError) as exc:
            logger.error("[DATABASE] Database initialization failed: %s", exc)
            await self._connection.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        await self._connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (sqlite3.Error, OverflowError, ValueError) as exc:
            error = classify_store_error(exc)
            logger.error("[DATABASE] %s failed (%s): %s", operation, type(error).__name__, exc)
            raise error from exc

    # ------------------------------------------------------------------
    # Guilds and members
    # ------------------------------------------------------------------

    async def upsert_guild(self, guild_id: GuildID, name: str | None) -> None:
        """Create the guild row if absent; an existing row keeps its original name."""
        async with self._translate_errors("upsert_guild"):
            async with self._connection.transaction() as conn:
                created = await MemberRepo.upsert_guild(conn, GuildID(guild_id), name or "", to_unix(_utcnow()))
        if created:
            logger.debug("[DATABASE] Registered guild %s", guild_id)

    async def upsert_member(self, user_id: UserID, guild_id: GuildID) -> None:
        """Create the member row if absent. The guild row must already exist."""
        async with self._translate_errors("upsert_member"):
            async with self._connection.transaction() as conn:
                await MemberRepo.upsert_member(conn, UserID(user_id), GuildID(guild_id), to_unix(_utcnow()))

    # ------------------------------------------------------------------
    # Case creation
    # ------------------------------------------------------------------

    async def _create_case(
        self,
        case_type: CaseType,
        guild_id: GuildID,
        user_id: UserID,
        created_by: UserID,
        body: str,
        created_at: datetime | None,
        duration_seconds: int | None = None,
    ) -> Case:
        created_unix = to_unix(created_at or _utcnow())
        expires_unix = None if duration_seconds is None else created_unix + duration_seconds
        active = True if case_type is CaseType.MUTE else None

        async with self._translate_errors(f"create_{case_type}"):
            async with self._connection.transaction() as conn:
                case_id = await CaseRepo.insert(
                    conn,
                    case_type,
                    GuildID(guild_id),
                    UserID(user_id),
                    UserID(created_by),
                    body,
                    created_unix,
                    duration_seconds=duration_seconds,
                    expires_at=expires_unix,
                    active=active,
                )

        logger.debug("[DATABASE] Created %s case %d for user %s in guild %s", case_type, case_id, user_id, guild_id)
        return Case(
            id=case_id,
            case_type=case_type,
            guild_id=GuildID(guild_id),
            user_id=UserID(user_id),
            created_by=UserID(created_by),
            body=body,
            created_at=from_unix(created_unix),
            duration_seconds=duration_seconds,
            expires_at=None if expires_unix is None else from_unix(expires_unix),
            active=active,
        )

    async def create_note(
        self, guild_id: GuildID, user_id: UserID, created_by: UserID, body: str, created_at: datetime | None = None
    ) -> Case:
        return await self._create_case(CaseType.NOTE, guild_id, user_id, created_by, body, created_at)

    async def create_warning(
        self, guild_id: GuildID, user_id: UserID, created_by: UserID, reason: str, created_at: datetime | None = None
    ) -> Case:
        return await self._create_case(CaseType.WARNING, guild_id, user_id, created_by, reason, created_at)

    async def create_mute(
        self,
        guild_id: GuildID,
        user_id: UserID,
        created_by: UserID,
        reason: str,
        duration_seconds: int,
        created_at: datetime | None = None,
    ) -> Case:
        """Record a mute; it starts active and expires ``duration_seconds`` after ``created_at``."""
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        return await self._create_case(
            CaseType.MUTE, guild_id, user_id, created_by, reason, created_at, duration_seconds=duration_seconds
        )

    # ------------------------------------------------------------------
    # Lookup and removal
    # ------------------------------------------------------------------

    async def find_case(self, case_id: int) -> Case | None:
        _check_case_id(case_id)
        async with self._translate_errors("find_case"):
            async with self._connection.read() as conn:
                return await CaseRepo.get_by_id(conn, case_id)

    async def delete_case(self, case_id: int) -> None:
        """Hard-delete a note or warning.

        Raises:
            IdTooLargeError: ``case_id`` is outside the valid id range.
            RecordNotFoundError: no note or warning with that id exists, including
                when a concurrent removal got there first.
        """
        _check_case_id(case_id)
        async with self._translate_errors("delete_case"):
            async with self._connection.transaction() as conn:
                removed = await CaseRepo.delete_deletable(conn, case_id)
        if removed == 0:
            raise RecordNotFoundError(detail=f"case {case_id} does not exist")
        logger.debug("[DATABASE] Deleted case %d", case_id)

    async def list_cases_for_user(self, user_id: UserID, guild_id: GuildID, case_type: CaseType) -> List[Case]:
        async with self._translate_errors("list_cases_for_user"):
            async with self._connection.read() as conn:
                return await CaseRepo.list_for_user(conn, UserID(user_id), GuildID(guild_id), case_type)

    async def list_active_mutes(self, user_id: UserID, guild_id: GuildID) -> List[Case]:
        async with self._translate_errors("list_active_mutes"):
            async with self._connection.read() as conn:
                return await CaseRepo.list_active_mutes(conn, UserID(user_id), GuildID(guild_id))

    async def deactivate_active_mutes(self, user_id: UserID, guild_id: GuildID) -> int:
        """Mark every active mute of the pair inactive and return how many changed."""
        async with self._translate_errors("deactivate_active_mutes"):
            async with self._connection.transaction() as conn:
                changed = await CaseRepo.deactivate_active_mutes(conn, UserID(user_id), GuildID(guild_id))
        logger.debug("[DATABASE] Deactivated %d active mute(s) for user %s in guild %s", changed, user_id, guild_id)
        return changed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
