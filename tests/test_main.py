from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from warden import main as warden_main


def test_resolve_base_dir_prefers_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("WARDEN_HOME", str(tmp_path))
    assert warden_main.resolve_base_dir() == tmp_path.resolve()


def test_intents_include_members():
    intents = warden_main.build_intents()
    assert intents.members
    assert intents.guilds


def test_missing_token_exits(monkeypatch):
    monkeypatch.setattr(warden_main, "load_dotenv", lambda **_: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)
    with pytest.raises(SystemExit):
        warden_main.load_environment()


def test_token_is_returned(monkeypatch):
    monkeypatch.setattr(warden_main, "load_dotenv", lambda **_: None)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")
    assert warden_main.load_environment() == "abc"


async def test_shutdown_closes_bot_and_store():
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()
    database = MagicMock()
    database.shutdown = AsyncMock()

    await warden_main.shutdown_runtime(bot, database)

    bot.close.assert_awaited_once()
    database.shutdown.assert_awaited_once()


async def test_shutdown_without_bot(store):
    await warden_main.shutdown_runtime(None, store)
    assert not store.initialized


async def test_create_bot_registers_moderation_cog(store, settings):
    bot = warden_main.create_bot(store, settings)
    assert bot.get_cog("ModerationCommandsCog") is not None

async def test_create_bot_registers_debug_cog(store, settings):
    bot = warden_main.create_bot(store, settings)
    assert bot.get_cog("DebugCog") is not None
