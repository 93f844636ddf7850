"""
Action types and data structures for moderation actions.

This module defines the requests the orchestrator accepts, the platform
snapshots it works with, the audit event it emits and the result it returns.
Snapshots are plain values so the orchestrator never touches py-cord objects
directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, List

from warden.datatypes.case_datatypes import Case
from warden.datatypes.discord_datatypes import GuildID, UserID


class ModLogType(Enum):
    """Audit log entry types, rendered as the embed title."""

    WARN = "Warn"
    UNWARN = "Unwarn"
    MUTE = "Mute"
    UNMUTE = "Unmute"
    BAN = "Ban"
    UNBAN = "Unban"
    NOTE = "Note"
    NOTE_REMOVED = "Note Removed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_removal(self) -> bool:
        lowered = self.value.lower()
        return lowered.startswith("un") or "remove" in lowered


class ActionStage(Enum):
    """Pipeline stages every moderation action moves through."""

    VALIDATING = "validating"
    SANITIZING = "sanitizing"
    APPLYING_PLATFORM_EFFECT = "applying_platform_effect"
    PERSISTING = "persisting"
    LOGGING = "logging"
    REPLYING = "replying"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Platform snapshots
# ---------------------------------------------------------------------------

@dataclass(slots=True, frozen=True)
class UserSnapshot:
    """A Discord user as seen at the time of the request."""

    id: UserID
    tag: str | None
    is_bot: bool = False


@dataclass(slots=True, frozen=True)
class MemberSnapshot:
    """A guild member: the user plus the role data the checks need."""

    user: UserSnapshot
    role_ids: FrozenSet[str] = frozenset()
    top_role_position: int = 0

    @property
    def id(self) -> UserID:
        return self.user.id


@dataclass(slots=True, frozen=True)
class GuildSnapshot:
    id: GuildID
    name: str | None
    owner_id: UserID | None = None


@dataclass(slots=True, frozen=True)
class BanSnapshot:
    """An existing ban; ``user`` is None when the platform did not return one."""

    user: UserSnapshot | None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(slots=True, kw_only=True)
class ActionRequest:
    """Fields shared by every moderation request.

    Attributes:
        guild: Guild the command was issued in, ``None`` outside a guild.
        moderator: The acting user.
        moderator_member: The acting user as a guild member, when resolvable.
    """

    guild: GuildSnapshot | None
    moderator: UserSnapshot
    moderator_member: MemberSnapshot | None = None


@dataclass(slots=True, kw_only=True)
class TargetedRequest(ActionRequest):
    """A request aimed at a user with a free-text reason (ban, unmute, warn, note add)."""

    target: UserSnapshot
    reason: str


@dataclass(slots=True, kw_only=True)
class MuteRequest(TargetedRequest):
    duration_minutes: int


@dataclass(slots=True, kw_only=True)
class UnbanRequest(ActionRequest):
    user_id: str
    reason: str


@dataclass(slots=True, kw_only=True)
class CaseRemovalRequest(ActionRequest):
    case_id: int | float
    reason: str


@dataclass(slots=True, kw_only=True)
class CaseViewRequest(ActionRequest):
    target: UserSnapshot


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class AuditEvent:
    """Structured record of a moderation action for the audit channel."""

    guild_id: GuildID
    action_type: ModLogType
    target_id: UserID
    target_display: str
    moderator_id: UserID
    moderator_display: str
    reason: str | None = None
    duration: str | None = None
    case_id: int | None = None
    extra: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class DirectMessageResult:
    """Outcome of a best-effort DM. Undeliverable is never fatal."""

    delivered: bool
    detail: str | None = None

    @classmethod
    def sent(cls) -> "DirectMessageResult":
        return cls(True)

    @classmethod
    def undeliverable(cls, detail: str) -> "DirectMessageResult":
        return cls(False, detail)


@dataclass(slots=True)
class ActionResult:
    """What the command layer needs to answer the moderator.

    Attributes:
        content: Reply text.
        ephemeral: Whether only the moderator should see the reply.
        stage: ``REPLYING`` on success or a terminal reply, ``FAILED`` otherwise.
        case: The case created or removed, if any.
        cases: Full newest-first listing for view commands.
        audit_event: The event handed to the audit emitter, if any.
        direct_message: Outcome of the DM to the target, if one was attempted.
    """

    content: str
    ephemeral: bool = False
    stage: ActionStage = ActionStage.REPLYING
    case: Case | None = None
    cases: List[Case] = field(default_factory=list)
    audit_event: AuditEvent | None = None
    direct_message: DirectMessageResult | None = None

    @property
    def succeeded(self) -> bool:
        return self.stage is not ActionStage.FAILED
