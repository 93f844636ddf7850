from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import fcntl
import os
from typing import Any, Dict, List, Mapping
import yaml

from warden.moderation.permissions import StaffRoles
from warden.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()
DEFAULT_DATABASE_PATH = Path("./data/warden.db").resolve()

DEFAULT_PLATFORM_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_REASON_LENGTH = 1024
DEFAULT_PAGE_SIZE = 5
DEFAULT_APPEAL_CONTACT = "bans@tryhackme.com"

# Environment variables that override the YAML file. List values are comma separated.
ENV_OWNER_IDS = "BOT_OWNER_IDS"
ENV_ADMINISTRATOR_ROLE_IDS = "ADMINISTRATOR_ROLE_IDS"
ENV_MODERATOR_ROLE_IDS = "MODERATOR_ROLE_IDS"
ENV_TRIAL_MODERATOR_ROLE_IDS = "TRIAL_MODERATOR_ROLE_IDS"
ENV_AUDIT_CHANNEL_ID = "BOT_LOGGING_CHANNEL_ID"
ENV_MODS_CHANNEL_ID = "MODS_CHANNEL_ID"
ENV_DATABASE_PATH = "WARDEN_DATABASE_PATH"


def parse_id_list(value: Any) -> List[str]:
    """Normalize a comma separated string or a YAML list into a list of id strings.

    Blank entries are dropped; ``None`` yields an empty list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [str(item) for item in value]
    else:
        items = str(value).split(",")
    return [item.strip() for item in items if item and item.strip()]


def _optional_id(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True, frozen=True)
class ModerationSettings:
    """Immutable settings injected into the moderation orchestrator.

    Attributes:
        staff_roles: Owner ids and role ids for each permission tier.
        audit_channel_id: Channel the audit embeds are posted to.
        mods_channel_id: Channel where note replies are shown publicly.
        platform_timeout_seconds: Upper bound for each Discord API call.
        appeal_contact: Address quoted in ban DMs.
        max_reason_length: Truncation length for stored and displayed text.
        page_size: Cases per page in warning and note listings.
        database_path: SQLite file backing the case store.
    """

    staff_roles: StaffRoles = field(default_factory=StaffRoles)
    audit_channel_id: str | None = None
    mods_channel_id: str | None = None
    platform_timeout_seconds: float = DEFAULT_PLATFORM_TIMEOUT_SECONDS
    appeal_contact: str = DEFAULT_APPEAL_CONTACT
    max_reason_length: int = DEFAULT_MAX_REASON_LENGTH
    page_size: int = DEFAULT_PAGE_SIZE
    database_path: Path = DEFAULT_DATABASE_PATH

    def is_mods_channel(self, channel_id: Any) -> bool:
        return self.mods_channel_id is not None and str(channel_id) == self.mods_channel_id


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml``, exposes dictionary-like
    access helpers and resolves moderation settings, letting environment
    variables override staff ids and channel ids for deployments.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path, environ: Mapping[str, str] | None = None) -> None:
        self.config_path = config_path
        self._environ = environ
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Acquire a shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)

                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping, ignoring it.", self.config_path)
            return {}
        return data

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    def _env_or(self, env_key: str, fallback: Any) -> Any:
        value = self.environ.get(env_key)
        if value is not None and value.strip():
            return value
        return fallback

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache (shallow reference). Callers
        should not mutate it; use get(...) or the provided properties instead.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def staff_roles(self) -> StaffRoles:
        """Return owner ids and tier role ids, environment first, then YAML."""
        staff = self._section("staff")
        return StaffRoles.from_iterables(
            owner_ids=parse_id_list(self._env_or(ENV_OWNER_IDS, staff.get("owner_ids"))),
            administrator_role_ids=parse_id_list(
                self._env_or(ENV_ADMINISTRATOR_ROLE_IDS, staff.get("administrator_role_ids"))
            ),
            moderator_role_ids=parse_id_list(
                self._env_or(ENV_MODERATOR_ROLE_IDS, staff.get("moderator_role_ids"))
            ),
            trial_moderator_role_ids=parse_id_list(
                self._env_or(ENV_TRIAL_MODERATOR_ROLE_IDS, staff.get("trial_moderator_role_ids"))
            ),
        )

    @property
    def audit_channel_id(self) -> str | None:
        channels = self._section("channels")
        return _optional_id(self._env_or(ENV_AUDIT_CHANNEL_ID, channels.get("audit_channel_id")))

    @property
    def mods_channel_id(self) -> str | None:
        channels = self._section("channels")
        return _optional_id(self._env_or(ENV_MODS_CHANNEL_ID, channels.get("mods_channel_id")))

    @property
    def database_path(self) -> Path:
        database = self._section("database")
        value = self._env_or(ENV_DATABASE_PATH, database.get("path"))
        return Path(value).resolve() if value else DEFAULT_DATABASE_PATH

    @property
    def platform_timeout_seconds(self) -> float:
        """Return the timeout applied to every Discord API call. Default is 10 seconds."""
        moderation = self._section("moderation")
        try:
            value = float(moderation.get("platform_timeout_seconds", DEFAULT_PLATFORM_TIMEOUT_SECONDS))
        except (TypeError, ValueError):
            return DEFAULT_PLATFORM_TIMEOUT_SECONDS
        return value if value > 0 else DEFAULT_PLATFORM_TIMEOUT_SECONDS

    @property
    def appeal_contact(self) -> str:
        moderation = self._section("moderation")
        return str(moderation.get("appeal_contact") or DEFAULT_APPEAL_CONTACT)

    @property
    def max_reason_length(self) -> int:
        moderation = self._section("moderation")
        try:
            value = int(moderation.get("max_reason_length", DEFAULT_MAX_REASON_LENGTH))
        except (TypeError, ValueError):
            return DEFAULT_MAX_REASON_LENGTH
        return value if value > len("...") else DEFAULT_MAX_REASON_LENGTH

    @property
    def page_size(self) -> int:
        moderation = self._section("moderation")
        try:
            value = int(moderation.get("page_size", DEFAULT_PAGE_SIZE))
        except (TypeError, ValueError):
            return DEFAULT_PAGE_SIZE
        return value if value > 0 else DEFAULT_PAGE_SIZE

    def moderation_settings(self) -> ModerationSettings:
        """Snapshot the current configuration into a ``ModerationSettings`` value."""
        return ModerationSettings(
            staff_roles=self.staff_roles,
            audit_channel_id=self.audit_channel_id,
            mods_channel_id=self.mods_channel_id,
            platform_timeout_seconds=self.platform_timeout_seconds,
            appeal_contact=self.appeal_contact,
            max_reason_length=self.max_reason_length,
            page_size=self.page_size,
            database_path=self.database_path,
        )
