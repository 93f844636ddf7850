from fakes import MODERATOR_ID, TARGET_ID, make_member, make_user
from warden.datatypes.discord_datatypes import UserID
from warden.moderation.target_validation import validate_target


def _validate(target_id=TARGET_ID, is_bot=False, target_pos=None, actor_pos=None, verb="ban", check_hierarchy=True):
    target = make_member(make_user(target_id), top_role_position=target_pos) if target_pos is not None else None
    actor = make_member(make_user(MODERATOR_ID), top_role_position=actor_pos) if actor_pos is not None else None
    return validate_target(
        UserID(target_id), UserID(MODERATOR_ID), is_bot, target, actor, verb, check_hierarchy=check_hierarchy
    )


def test_valid_target():
    result = _validate(target_pos=1, actor_pos=5)
    assert result.is_valid
    assert result.error_message is None


def test_self_target_rejected():
    result = _validate(target_id=MODERATOR_ID, verb="mute")
    assert not result.is_valid
    assert result.error_message == "You cannot mute yourself."


def test_bot_target_rejected():
    result = _validate(is_bot=True, verb="warn")
    assert result.error_message == "You cannot warn a bot."


def test_self_check_runs_before_bot_check():
    result = _validate(target_id=MODERATOR_ID, is_bot=True)
    assert result.error_message == "You cannot ban yourself."


def test_equal_role_rejected():
    result = _validate(target_pos=5, actor_pos=5)
    assert result.error_message == "You cannot ban someone with a higher or equal role to yourself."


def test_higher_role_rejected():
    assert not _validate(target_pos=9, actor_pos=5).is_valid


def test_hierarchy_skipped_when_target_not_a_member():
    assert _validate(target_pos=None, actor_pos=5).is_valid


def test_hierarchy_skipped_when_disabled():
    assert _validate(target_pos=9, actor_pos=1, check_hierarchy=False).is_valid
