import pytest

from warden.datatypes.discord_datatypes import GuildID, UserID, is_snowflake


def test_user_id_compares_with_str_and_int():
    uid = UserID(123456789012345678)
    assert uid == "123456789012345678"
    assert uid == 123456789012345678
    assert uid == UserID("123456789012345678")
    assert uid.to_int() == 123456789012345678
    assert str(uid) == "123456789012345678"


def test_wrappers_of_different_kinds_are_not_equal():
    assert UserID(1) != GuildID(1)


def test_hash_allows_set_membership():
    assert len({UserID(5), UserID("5"), UserID(" 5 ")}) == 1


def test_copy_from_wrapper():
    assert GuildID(GuildID(99)) == 99


@pytest.mark.parametrize("value", [-1, "abc", "12a", "", None, 1.5, True])
def test_invalid_values_raise(value):
    with pytest.raises(ValueError):
        UserID(value)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123456789012345678", True),
        ("123456789012345", True),
        ("123456789012345678901", True),
        ("12345678901234", False),
        ("1234567890123456789012", False),
        ("12345678901234567a", False),
        (" 123456789012345678", False),
        (123456789012345678, False),
    ],
)
def test_is_snowflake(value, expected):
    assert is_snowflake(value) is expected
