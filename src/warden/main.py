"""
Warden Moderation Bot
=====================

Entry point: loads configuration, opens the case store, wires the moderation
orchestrator to py-cord and runs the bot until it is stopped.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. WARDEN_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("WARDEN_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()

import asyncio
import discord
from dotenv import load_dotenv

from warden.configuration.app_configuration import AppConfig, ModerationSettings
from warden.database.database import Database
from warden.moderation.audit import ChannelAuditEmitter
from warden.moderation.orchestrator import ModerationContext, ModerationOrchestrator
from warden.moderation.platform import DiscordPlatform
from warden.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents Warden needs.

    Member intents are required to resolve role positions for the hierarchy
    check and to apply timeouts.
    """
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def create_bot(database: Database, settings: ModerationSettings) -> discord.Bot:
    """Instantiate the Discord bot, build the orchestrator and register the cogs."""
    from warden.bot.cogs import debug, moderation_cmds

    bot = discord.Bot(intents=build_intents())
    context = ModerationContext(
        store=database,
        platform=DiscordPlatform(bot),
        audit=ChannelAuditEmitter(bot, settings.audit_channel_id),
        settings=settings,
    )
    moderation_cmds.setup(bot, ModerationOrchestrator(context), settings)
    debug.setup(bot)
    logger.info("All cogs loaded successfully.")
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, database: Database) -> None:
    """Close the Discord connection and the case store."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except discord.HTTPException as exc:
            logger.error("Error while closing the Discord client: %s", exc)

    await database.shutdown()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap configuration, database and bot, returning an exit code."""
    token = load_environment()
    config = AppConfig(BASE_DIR / "config" / "app_config.yml")
    settings = config.moderation_settings()

    if not settings.staff_roles.owner_ids:
        logger.warning("No bot owners configured (BOT_OWNER_IDS); owner-only commands are unreachable.")
    if settings.audit_channel_id is None:
        logger.warning("No audit channel configured (BOT_LOGGING_CHANNEL_ID); actions will not be logged to Discord.")

    database = Database(settings.database_path)
    logger.info("Initializing database at %s...", settings.database_path)
    if not await database.initialize():
        logger.critical("Failed to initialize database.")
        return 1

    bot = None
    exit_code = 0
    try:
        bot = create_bot(database, settings)
        await start_bot(bot, token)
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc, exc_info=True)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, database)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Warden moderation bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1


if __name__ == "__main__":
    sys.exit(main())
