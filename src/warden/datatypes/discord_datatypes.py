"""
Type-safe wrapper classes for Discord identifiers.

This module provides wrappers for Discord snowflake IDs so that user and guild
identifiers are handled consistently (stored as strings, compared with raw
ints or strings) throughout the case store and moderation pipeline.
"""

from __future__ import annotations

import re
from typing import Union

# Discord snowflakes are 64-bit integers; real ones are 15 to 21 digits long.
SNOWFLAKE_PATTERN = re.compile(r"^[0-9]{15,21}$")


def is_snowflake(value: str) -> bool:
    """Return True when ``value`` looks like a Discord snowflake (15-21 digits)."""
    return isinstance(value, str) and bool(SNOWFLAKE_PATTERN.match(value))


class Snowflake:
    """
    Base wrapper for Discord snowflake IDs.

    Snowflakes are 64-bit integers but are stored as strings in the database
    and compared as strings, so ``UserID(123) == "123" == 123``.

    Attributes:
        _value (str): The snowflake ID stored as a string.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Initialize from a string, int, or another wrapper of the same family.

        Raises:
            ValueError: If the value cannot be converted to a non-negative integer id.
        """
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            if value < 0:
                raise ValueError(f"{type(self).__name__} must be non-negative: {value}")
            self._value = str(value)
        elif isinstance(value, str):
            stripped = value.strip()
            if not stripped.isdigit():
                raise ValueError(f"Cannot create {type(self).__name__} from {value!r}")
            self._value = str(int(stripped))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """
    Type-safe wrapper for Discord user snowflake IDs.

    Example:
        >>> uid = UserID(123456789012345678)
        >>> uid.to_int()
        123456789012345678
        >>> str(uid)
        '123456789012345678'
    """

    __slots__ = ()


class GuildID(Snowflake):
    """
    Type-safe wrapper for Discord guild snowflake IDs.
    """

    __slots__ = ()
