from pathlib import Path

import pytest
import yaml

from warden.configuration.app_configuration import (
    DEFAULT_APPEAL_CONTACT,
    DEFAULT_DATABASE_PATH,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PLATFORM_TIMEOUT_SECONDS,
    AppConfig,
    parse_id_list,
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def write_config(path: Path, payload) -> None:
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    write_config(config_path, {
        "staff": {
            "owner_ids": [1111],
            "administrator_role_ids": ["2222"],
            "moderator_role_ids": [3333, 3334],
            "trial_moderator_role_ids": [],
        },
        "channels": {"audit_channel_id": 5555, "mods_channel_id": "6666"},
        "database": {"path": str(tmp_path / "cases.db")},
        "moderation": {"platform_timeout_seconds": 4, "appeal_contact": "appeals@example.com", "page_size": 8},
    })

    settings = AppConfig(config_path, environ={}).moderation_settings()

    assert settings.staff_roles.owner_ids == frozenset({"1111"})
    assert settings.staff_roles.administrator_role_ids == frozenset({"2222"})
    assert settings.staff_roles.moderator_role_ids == frozenset({"3333", "3334"})
    assert settings.staff_roles.trial_moderator_role_ids == frozenset()
    assert settings.audit_channel_id == "5555"
    assert settings.is_mods_channel(6666)
    assert settings.database_path == (tmp_path / "cases.db").resolve()
    assert settings.platform_timeout_seconds == pytest.approx(4.0)
    assert settings.appeal_contact == "appeals@example.com"
    assert settings.page_size == 8


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml", environ={})

    assert config.data == {}
    settings = config.moderation_settings()
    assert settings.audit_channel_id is None
    assert settings.mods_channel_id is None
    assert settings.staff_roles.owner_ids == frozenset()
    assert settings.platform_timeout_seconds == DEFAULT_PLATFORM_TIMEOUT_SECONDS
    assert settings.appeal_contact == DEFAULT_APPEAL_CONTACT
    assert settings.page_size == DEFAULT_PAGE_SIZE
    assert settings.database_path == DEFAULT_DATABASE_PATH


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    assert AppConfig(config_path, environ={}).data == {}


def test_app_config_invalid_yaml_is_ignored(config_path: Path) -> None:
    config_path.write_text("staff: [unclosed", encoding="utf-8")
    assert AppConfig(config_path, environ={}).data == {}


def test_environment_overrides_yaml(config_path: Path) -> None:
    write_config(config_path, {
        "staff": {"moderator_role_ids": [3333]},
        "channels": {"audit_channel_id": 5555},
    })
    environ = {
        "MODERATOR_ROLE_IDS": "7777, 8888,",
        "BOT_OWNER_IDS": "9999",
        "BOT_LOGGING_CHANNEL_ID": "4444",
        "MODS_CHANNEL_ID": "   ",
    }

    config = AppConfig(config_path, environ=environ)

    assert config.staff_roles.moderator_role_ids == frozenset({"7777", "8888"})
    assert config.staff_roles.owner_ids == frozenset({"9999"})
    assert config.audit_channel_id == "4444"
    assert config.mods_channel_id is None


@pytest.mark.parametrize(
    "moderation, timeout, page_size",
    [
        ({"platform_timeout_seconds": "soon", "page_size": "many"}, DEFAULT_PLATFORM_TIMEOUT_SECONDS, DEFAULT_PAGE_SIZE),
        ({"platform_timeout_seconds": -1, "page_size": 0}, DEFAULT_PLATFORM_TIMEOUT_SECONDS, DEFAULT_PAGE_SIZE),
    ],
)
def test_bad_numbers_fall_back(config_path: Path, moderation, timeout, page_size) -> None:
    write_config(config_path, {"moderation": moderation})
    config = AppConfig(config_path, environ={})
    assert config.platform_timeout_seconds == timeout
    assert config.page_size == page_size


def test_reload_picks_up_changes(config_path: Path) -> None:
    write_config(config_path, {"channels": {"mods_channel_id": 1}})
    config = AppConfig(config_path, environ={})
    write_config(config_path, {"channels": {"mods_channel_id": 2}})

    config.reload()

    assert config.mods_channel_id == "2"
    assert config.get("channels") == {"mods_channel_id": 2}


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, []),
        ("1, 2,,3 ", ["1", "2", "3"]),
        ([1, " 2 ", ""], ["1", "2"]),
        (42, ["42"]),
    ],
)
def test_parse_id_list(value, expected) -> None:
    assert parse_id_list(value) == expected
