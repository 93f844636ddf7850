"""
Staff permission tiers.

Four static tiers, each a superset of the one below it:
``OWNER > ADMINISTRATOR > MODERATOR > TRIAL_MODERATOR``. Tier membership is
derived from configured role ids passed in as a ``StaffRoles`` value; nothing
here reads global state, so the resolver is a pure function.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import FrozenSet, Iterable

from warden.datatypes.action_datatypes import GuildSnapshot, MemberSnapshot
from warden.util.logger import get_logger

logger = get_logger("permissions")

SERVER_ONLY_MESSAGE = "This command can only be used in a server."


class Tier(IntEnum):
    """Staff tiers ordered by privilege."""

    TRIAL_MODERATOR = 1
    MODERATOR = 2
    ADMINISTRATOR = 3
    OWNER = 4

    @property
    def denial_message(self) -> str:
        return DENIAL_MESSAGES[self]


DENIAL_MESSAGES = {
    Tier.OWNER: "Only the bot owner(s) can use this command.",
    Tier.ADMINISTRATOR: "Only administrators, bot owners, or the server owner can use this command.",
    Tier.MODERATOR: "Only moderators, administrators, bot owners, or the server owner can use this command.",
    Tier.TRIAL_MODERATOR: (
        "Only trial moderators, moderators, administrators, bot owners, "
        "or the server owner can use this command."
    ),
}


def _id_set(values: Iterable[object]) -> FrozenSet[str]:
    return frozenset(str(v).strip() for v in values if str(v).strip())


@dataclass(slots=True, frozen=True)
class StaffRoles:
    """Configured identities for each tier.

    Attributes:
        owner_ids: Bot owner user ids (the allowlist).
        administrator_role_ids: Role ids granting the administrator tier.
        moderator_role_ids: Role ids granting the moderator tier.
        trial_moderator_role_ids: Role ids granting the trial moderator tier.
    """

    owner_ids: FrozenSet[str] = frozenset()
    administrator_role_ids: FrozenSet[str] = frozenset()
    moderator_role_ids: FrozenSet[str] = frozenset()
    trial_moderator_role_ids: FrozenSet[str] = frozenset()

    @classmethod
    def from_iterables(
        cls,
        owner_ids: Iterable[object] = (),
        administrator_role_ids: Iterable[object] = (),
        moderator_role_ids: Iterable[object] = (),
        trial_moderator_role_ids: Iterable[object] = (),
    ) -> "StaffRoles":
        return cls(
            owner_ids=_id_set(owner_ids),
            administrator_role_ids=_id_set(administrator_role_ids),
            moderator_role_ids=_id_set(moderator_role_ids),
            trial_moderator_role_ids=_id_set(trial_moderator_role_ids),
        )

    def is_configured_owner(self, user_id: object) -> bool:
        return str(user_id) in self.owner_ids


def resolve_tier(
    actor_role_ids: Iterable[object],
    actor_is_guild_owner: bool,
    actor_is_configured_owner: bool,
    roles: StaffRoles,
) -> Tier | None:
    """Return the highest tier the actor holds, or None for regular members.

    The guild owner resolves to ``ADMINISTRATOR``: they pass every guild-scoped
    check but not commands reserved for the bot owners.
    """
    if actor_is_configured_owner:
        return Tier.OWNER
    if actor_is_guild_owner:
        return Tier.ADMINISTRATOR

    held = _id_set(actor_role_ids)
    if held & roles.administrator_role_ids:
        return Tier.ADMINISTRATOR
    if held & roles.moderator_role_ids:
        return Tier.MODERATOR
    if held & roles.trial_moderator_role_ids:
        return Tier.TRIAL_MODERATOR
    return None


@dataclass(slots=True, frozen=True)
class PermissionResult:
    authorized: bool
    tier: Tier | None = None
    message: str | None = None
    server_only: bool = False


def check_permission(
    actor: MemberSnapshot | None,
    guild: GuildSnapshot | None,
    required: Tier,
    roles: StaffRoles,
) -> PermissionResult:
    """Decide whether ``actor`` may run a command that requires ``required``.

    Returns a denial with the server-only message when the actor cannot be
    resolved as a guild member, and the tier-specific message when they rank
    too low.
    """
    if actor is None or guild is None:
        return PermissionResult(False, message=SERVER_ONLY_MESSAGE, server_only=True)

    tier = resolve_tier(
        actor.role_ids,
        actor_is_guild_owner=guild.owner_id is not None and guild.owner_id == actor.id,
        actor_is_configured_owner=roles.is_configured_owner(actor.id),
        roles=roles,
    )
    if tier is not None and tier >= required:
        return PermissionResult(True, tier=tier)

    logger.debug(
        "[PERMISSIONS] Denied user %s in guild %s: holds %s, needs %s",
        actor.id, guild.id, tier.name if tier else "no tier", required.name,
    )
    return PermissionResult(False, tier=tier, message=required.denial_message)
