"""
Database schema initialization.

Creates the guild, member and case tables, their indexes, and records the
schema version.
"""

import aiosqlite
from warden.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates and versions the case store schema."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guilds (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL DEFAULT '',
                created_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS members (
                user_id TEXT NOT NULL,
                guild_id TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                PRIMARY KEY (user_id, guild_id),
                FOREIGN KEY (guild_id) REFERENCES guilds(id)
            )
        """)

        # Notes and warnings leave the mute columns NULL
        await db.execute("""
            CREATE TABLE IF NOT EXISTS cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                case_type TEXT NOT NULL CHECK (case_type IN ('note', 'warning', 'mute')),
                guild_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                created_by TEXT NOT NULL,
                body TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                duration_seconds INTEGER,
                expires_at INTEGER,
                active INTEGER,
                FOREIGN KEY (user_id, guild_id) REFERENCES members(user_id, guild_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_members_guild ON members(guild_id)")
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_cases_lookup ON cases(guild_id, user_id, case_type, created_at DESC)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_cases_active_mutes ON cases(guild_id, user_id) "
            "WHERE case_type = 'mute' AND active = 1"
        )

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
