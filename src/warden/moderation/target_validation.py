"""
Shared target checks for disciplinary commands.

Ban, mute and unmute run all three checks; warnings skip the role hierarchy
check; notes run none of them.
"""

from __future__ import annotations

from dataclasses import dataclass

from warden.datatypes.action_datatypes import MemberSnapshot
from warden.datatypes.discord_datatypes import UserID
from warden.util.logger import get_logger

logger = get_logger("target_validation")


@dataclass(slots=True, frozen=True)
class ValidationResult:
    """Result of a validation check."""
    is_valid: bool
    error_message: str | None = None


VALID = ValidationResult(True)


def validate_self_action(target_id: UserID, actor_id: UserID, verb: str) -> ValidationResult:
    if target_id == actor_id:
        logger.info("[TARGET] %s blocked: self-action by %s", verb.upper(), actor_id)
        return ValidationResult(False, f"You cannot {verb} yourself.")
    return VALID


def validate_target_not_bot(target_id: UserID, target_is_bot: bool, verb: str) -> ValidationResult:
    if target_is_bot:
        logger.info("[TARGET] %s blocked: target %s is a bot", verb.upper(), target_id)
        return ValidationResult(False, f"You cannot {verb} a bot.")
    return VALID


def validate_role_hierarchy(
    target_member: MemberSnapshot | None,
    actor_member: MemberSnapshot | None,
    verb: str,
) -> ValidationResult:
    """Reject when the target's highest role is at or above the actor's.

    Skipped when either side is not a guild member, e.g. banning someone who
    already left.
    """
    if target_member is None or actor_member is None:
        return VALID
    if target_member.top_role_position >= actor_member.top_role_position:
        logger.info(
            "[TARGET] %s blocked: target %s (position %d) >= moderator %s (position %d)",
            verb.upper(), target_member.id, target_member.top_role_position,
            actor_member.id, actor_member.top_role_position,
        )
        return ValidationResult(False, f"You cannot {verb} someone with a higher or equal role to yourself.")
    return VALID


def validate_target(
    target_id: UserID,
    actor_id: UserID,
    target_is_bot: bool,
    target_member: MemberSnapshot | None,
    actor_member: MemberSnapshot | None,
    verb: str,
    check_hierarchy: bool = True,
) -> ValidationResult:
    """Run the self, bot and (optionally) hierarchy checks in order.

    Args:
        target_id: User being acted on.
        actor_id: Moderator issuing the action.
        target_is_bot: Whether the target account is a bot.
        target_member: Target as a guild member, if they are one.
        actor_member: Moderator as a guild member, if resolvable.
        verb: Action verb used in messages, e.g. ``"ban"``.
        check_hierarchy: False for warnings, which skip the role comparison.

    Returns:
        The first failing result, or a valid one.
    """
    for result in (
        validate_self_action(target_id, actor_id, verb),
        validate_target_not_bot(target_id, target_is_bot, verb),
    ):
        if not result.is_valid:
            return result
    if check_hierarchy:
        return validate_role_hierarchy(target_member, actor_member, verb)
    return VALID
