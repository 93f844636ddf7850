"""
Case records persisted by the case store.

A case is a single moderation record attached to a (user, guild) pair. Notes
and warnings carry only a body; mutes also carry their duration, computed
expiry and an ``active`` flag that only an unmute clears.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from warden.datatypes.discord_datatypes import GuildID, UserID


class CaseType(Enum):
    """Kinds of case stored in the ``cases`` table."""

    NOTE = "note"
    WARNING = "warning"
    MUTE = "mute"

    def __str__(self) -> str:
        return self.value

    @property
    def deletable(self) -> bool:
        """Notes and warnings can be hard-deleted; mutes are kept as history."""
        return self is not CaseType.MUTE


def to_unix(value: datetime) -> int:
    """Convert a datetime to whole unix seconds, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_unix(value: int) -> datetime:
    """Convert unix seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value, tz=timezone.utc)


@dataclass(slots=True, frozen=True)
class Case:
    """A persisted moderation case.

    Attributes:
        id: Store-assigned id, unique across every guild and never reused.
        case_type: Note, warning or mute.
        guild_id: Guild the case belongs to.
        user_id: Member the case is about.
        created_by: Moderator who created the case.
        body: Note content or warning/mute reason (storage-sanitized).
        created_at: Creation time (UTC, second precision).
        duration_seconds: Mute length; ``None`` for notes and warnings.
        expires_at: ``created_at + duration_seconds`` for mutes.
        active: Whether the mute is still considered in force.
    """

    id: int
    case_type: CaseType
    guild_id: GuildID
    user_id: UserID
    created_by: UserID
    body: str
    created_at: datetime
    duration_seconds: int | None = None
    expires_at: datetime | None = None
    active: bool | None = None

    def belongs_to(self, guild_id: GuildID | str | int) -> bool:
        """Return True when this case was recorded in ``guild_id``."""
        return self.guild_id == GuildID(guild_id)
