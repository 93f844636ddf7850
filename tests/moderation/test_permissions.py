import pytest

from fakes import (
    ADMIN_ROLE_ID,
    GUILD_OWNER_ID,
    MODERATOR_ROLE_ID,
    OWNER_ID,
    TRIAL_MODERATOR_ROLE_ID,
    make_guild,
    make_member,
    make_user,
)
from warden.moderation.permissions import (
    DENIAL_MESSAGES,
    SERVER_ONLY_MESSAGE,
    StaffRoles,
    Tier,
    check_permission,
    resolve_tier,
)


def test_tiers_are_ordered():
    assert Tier.TRIAL_MODERATOR < Tier.MODERATOR < Tier.ADMINISTRATOR < Tier.OWNER


class TestResolveTier:
    def test_configured_owner_wins_over_everything(self, staff_roles):
        assert resolve_tier([], False, True, staff_roles) is Tier.OWNER

    def test_guild_owner_is_administrator(self, staff_roles):
        assert resolve_tier([], True, False, staff_roles) is Tier.ADMINISTRATOR

    @pytest.mark.parametrize(
        "roles, expected",
        [
            ([ADMIN_ROLE_ID], Tier.ADMINISTRATOR),
            ([MODERATOR_ROLE_ID], Tier.MODERATOR),
            ([TRIAL_MODERATOR_ROLE_ID], Tier.TRIAL_MODERATOR),
            ([TRIAL_MODERATOR_ROLE_ID, ADMIN_ROLE_ID], Tier.ADMINISTRATOR),
            ([int(MODERATOR_ROLE_ID)], Tier.MODERATOR),
        ],
    )
    def test_highest_role_decides(self, staff_roles, roles, expected):
        assert resolve_tier(roles, False, False, staff_roles) is expected

    def test_regular_member_has_no_tier(self, staff_roles):
        assert resolve_tier(["999999999999999999"], False, False, staff_roles) is None

    def test_empty_configuration_grants_nothing(self):
        assert resolve_tier([MODERATOR_ROLE_ID], False, False, StaffRoles()) is None


class TestCheckPermission:
    def test_missing_member_is_a_context_denial(self, staff_roles):
        result = check_permission(None, make_guild(), Tier.TRIAL_MODERATOR, staff_roles)
        assert not result.authorized
        assert result.server_only
        assert result.message == SERVER_ONLY_MESSAGE

    def test_missing_guild_is_a_context_denial(self, staff_roles):
        member = make_member(make_user(), [ADMIN_ROLE_ID])
        result = check_permission(member, None, Tier.TRIAL_MODERATOR, staff_roles)
        assert result.server_only

    def test_trial_moderator_cannot_ban(self, staff_roles):
        member = make_member(make_user(), [TRIAL_MODERATOR_ROLE_ID])
        result = check_permission(member, make_guild(), Tier.MODERATOR, staff_roles)
        assert not result.authorized
        assert not result.server_only
        assert result.tier is Tier.TRIAL_MODERATOR
        assert result.message == (
            "Only moderators, administrators, bot owners, or the server owner can use this command."
        )

    def test_higher_tier_passes_lower_requirement(self, staff_roles):
        member = make_member(make_user(), [ADMIN_ROLE_ID])
        result = check_permission(member, make_guild(), Tier.TRIAL_MODERATOR, staff_roles)
        assert result.authorized
        assert result.tier is Tier.ADMINISTRATOR

    def test_guild_owner_passes_guild_tiers_but_not_owner_tier(self, staff_roles):
        member = make_member(make_user(GUILD_OWNER_ID))
        guild = make_guild()
        assert check_permission(member, guild, Tier.ADMINISTRATOR, staff_roles).authorized
        denied = check_permission(member, guild, Tier.OWNER, staff_roles)
        assert not denied.authorized
        assert denied.message == "Only the bot owner(s) can use this command."

    def test_configured_owner_passes_owner_tier(self, staff_roles):
        member = make_member(make_user(OWNER_ID))
        assert check_permission(member, make_guild(), Tier.OWNER, staff_roles).authorized

    def test_every_tier_has_a_denial_message(self):
        assert set(DENIAL_MESSAGES) == set(Tier)
        assert Tier.TRIAL_MODERATOR.denial_message.startswith("Only trial moderators")
