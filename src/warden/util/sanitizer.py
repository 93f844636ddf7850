"""
sanitizer.py
============

Sanitization contracts for moderator supplied text.

Free text crosses three trust boundaries and each has its own function:

- ``sanitize_for_storage``: what goes into the case store. Mentions are
  neutralized and custom emoji collapsed, URLs are kept verbatim.
- ``sanitize_for_display``: what is echoed back to Discord (replies, DMs,
  audit embeds). Adds markdown escaping and defuses non-Discord links.
- ``sanitize_for_logging``: what is written to the log file. Only markdown is
  escaped; mentions and URLs stay readable for staff.

Escaping only ever adds a single backslash in front of a character that sits
behind an even run of backslashes (zero included). An odd run means the
character is already escaped, so running a sanitizer over its own output
changes nothing, while a doubled backslash no longer shields an ``@``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

DEFAULT_MAX_LENGTH = 1024
DEFAULT_LOG_MAX_LENGTH = 500
ELLIPSIS = "..."
MAX_ID = 2**31 - 1

UNKNOWN_USER = "Unknown User"
UNKNOWN_SERVER = "Unknown Server"

EMOJI_PLACEHOLDER = "[emoji]"

_MENTION_RE = re.compile(r"(?<!\\)((?:\\\\)*)@")
_CUSTOM_EMOJI_RE = re.compile(r"<a?:\w+:\d+>")
_URL_RE = re.compile(r"https?://\S+")
_URL_META_RE = re.compile(r"(?<!\\)((?:\\\\)*)([.*+?^${}()|\[\]])")
_MARKDOWN_INLINE_RE = re.compile(r"(?<!\\)((?:\\\\)*)([*_~`|])")
_MARKDOWN_LINE_START_RE = re.compile(r"^([ \t]*)([>#])", re.MULTILINE)

PLATFORM_LINK_MARKERS = (
    "discord.com/channels/",
    "discord.gg/",
    "cdn.discordapp.com/",
)


def truncate(text: str, max_length: int) -> str:
    """Cut ``text`` to exactly ``max_length`` characters, ending in ``...``, when it is longer."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def neutralize_mentions(text: str) -> str:
    """Prefix every ``@`` with a backslash so Discord never turns it into a ping."""
    return _MENTION_RE.sub(r"\1\\@", text)


def strip_custom_emoji(text: str) -> str:
    return _CUSTOM_EMOJI_RE.sub(EMOJI_PLACEHOLDER, text)


def escape_markdown(text: str) -> str:
    """Escape Discord markdown control characters that are not escaped yet.

    ``* _ ~ ` |`` are escaped anywhere; ``>`` (quotes) and ``#`` (headers)
    only at the start of a line, where Discord treats them as markup.
    """
    text = _MARKDOWN_INLINE_RE.sub(r"\1\\\2", text)
    return _MARKDOWN_LINE_START_RE.sub(r"\1\\\2", text)


def is_platform_link(url: str) -> bool:
    return any(marker in url for marker in PLATFORM_LINK_MARKERS)


def escape_external_urls(text: str) -> str:
    """Escape metacharacters inside non-Discord URLs so they do not render as links."""

    def _escape(match: re.Match) -> str:
        url = match.group(0)
        if is_platform_link(url):
            return url
        return _URL_META_RE.sub(r"\1\\\2", url)

    return _URL_RE.sub(_escape, text)


def sanitize_for_storage(text: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Sanitize text before it is written to the case store.

    Args:
        text: Raw moderator input.
        max_length: Maximum length of the returned string.

    Returns:
        str: Text with mentions neutralized and custom emoji replaced, URLs
        untouched, trimmed and truncated. Empty for missing input.
    """
    if not text or not isinstance(text, str):
        return ""

    sanitized = neutralize_mentions(text)
    sanitized = strip_custom_emoji(sanitized)
    return truncate(sanitized.strip(), max_length)


def sanitize_for_display(text: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Sanitize text before it is shown in Discord.

    Args:
        text: Raw moderator input or a stored case body.
        max_length: Maximum length of the returned string.

    Returns:
        str: Text with mentions neutralized, custom emoji replaced, external
        links defused and markdown escaped, trimmed and truncated.
    """
    if not text or not isinstance(text, str):
        return ""

    sanitized = neutralize_mentions(text)
    sanitized = strip_custom_emoji(sanitized)
    sanitized = escape_external_urls(sanitized)
    sanitized = escape_markdown(sanitized)
    return truncate(sanitized.strip(), max_length)


def sanitize_for_logging(text: str | None, max_length: int = DEFAULT_LOG_MAX_LENGTH) -> str:
    """Sanitize text for log lines: markdown escaped, everything else preserved."""
    if not text or not isinstance(text, str):
        return ""

    return truncate(escape_markdown(text).strip(), max_length)


def sanitize_user_tag(tag: str | None) -> str:
    """Escape markdown in a user tag, falling back to ``Unknown User``."""
    if not tag or not isinstance(tag, str):
        return UNKNOWN_USER
    return escape_markdown(tag)


def sanitize_guild_name(name: str | None) -> str:
    """Escape markdown in a guild name, falling back to ``Unknown Server``."""
    if not name or not isinstance(name, str):
        return UNKNOWN_SERVER
    return escape_markdown(name)


@dataclass(slots=True, frozen=True)
class IdValidation:
    is_valid: bool
    sanitized_id: int | None = None


def validate_id(value: object) -> IdValidation:
    """Validate a case id supplied by a moderator.

    A value is valid when it is a real number (not a bool), not NaN, and lies
    in ``(0, 2**31 - 1]``. The floored value is returned; a value that floors
    to zero (e.g. ``0.5``) is rejected since no case can have that id.

    Examples:
        >>> validate_id(7.9)
        IdValidation(is_valid=True, sanitized_id=7)
        >>> validate_id(2147483648).is_valid
        False
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return IdValidation(False)
    if isinstance(value, float) and math.isnan(value):
        return IdValidation(False)
    if value <= 0 or value > MAX_ID:
        return IdValidation(False)

    floored = math.floor(value)
    if floored < 1:
        return IdValidation(False)
    return IdValidation(True, floored)
