"""
Error taxonomy for the moderation pipeline.

Every failure the orchestrator can meet is a ``ModerationError`` carrying the
message the moderator should see. Store errors are classified from the SQLite
driver's error text so callers can tell a missing record from a constraint
violation without ever showing the raw driver message to a user.
"""

from __future__ import annotations

import sqlite3


class ModerationError(Exception):
    """Base class for failures that end a moderation action.

    Attributes:
        user_message: Text safe to show to the acting moderator.
    """

    default_message = "An unexpected error occurred."

    def __init__(self, user_message: str | None = None, *, detail: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(detail or self.user_message)


class ContextError(ModerationError):
    """The command was used outside a guild."""

    default_message = "This command can only be used in a server."


class PrivilegeError(ModerationError):
    """The actor does not hold the tier the command requires."""


class TargetError(ModerationError):
    """The target is the actor, a bot, or ranks at or above the actor."""


class ValidationError(ModerationError):
    """Malformed or out-of-range input (ids, durations)."""


class NotFoundError(ModerationError):
    """A case or ban that the action needs does not exist."""


class OwnershipError(ModerationError):
    """The case belongs to a different guild."""


class PlatformError(ModerationError):
    """A Discord API call failed or timed out."""


class StoreError(ModerationError):
    """Persistence failure that does not fit a narrower category."""


class IdTooLargeError(StoreError):
    default_message = "Invalid ID. The ID number is too large."


class RecordNotFoundError(StoreError):
    default_message = "Record not found."


class UniqueConflictError(StoreError):
    default_message = "This record already exists."


class ForeignKeyConflictError(StoreError):
    default_message = "Referenced record does not exist."


def classify_store_error(exc: BaseException) -> StoreError:
    """Map a driver exception to the matching ``StoreError`` subclass.

    The category is read from the exception text, the only place SQLite
    reports which constraint failed.
    """
    if isinstance(exc, StoreError):
        return exc

    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, OverflowError) or "too large" in lowered or "unable to fit integer" in lowered:
        return IdTooLargeError(detail=message)
    if "unique constraint" in lowered:
        return UniqueConflictError(detail=message)
    if "foreign key constraint" in lowered:
        return ForeignKeyConflictError(detail=message)
    if "does not exist" in lowered or "not found" in lowered:
        return RecordNotFoundError(detail=message)
    if isinstance(exc, (sqlite3.Error, ValueError)):
        return StoreError(detail=message)
    return StoreError(detail=f"{type(exc).__name__}: {message}")


def describe_store_error(error: StoreError, doing: str, kind: str | None = None, record_id: int | None = None) -> str:
    """Return the user-facing message for a store failure.

    Args:
        error: Classified store error.
        doing: Gerund phrase for the generic fallback, e.g. ``"removing the note"``.
        kind: Record kind used in the not-found message, e.g. ``"note"``.
        record_id: Id used in the not-found message.
    """
    if isinstance(error, RecordNotFoundError) and kind is not None:
        return f"No {kind} found with ID {record_id}."
    if isinstance(error, (IdTooLargeError, RecordNotFoundError, UniqueConflictError, ForeignKeyConflictError)):
        return error.user_message
    return f"An unexpected error occurred while {doing}."
