"""
Paged embeds for warning and note listings.

The orchestrator returns the complete newest-first list; this module only
batches it into fixed-size pages for ``discord.ext.pages.Paginator``.
"""

from __future__ import annotations

from typing import List, Sequence

import discord

from warden.configuration.app_configuration import DEFAULT_PAGE_SIZE
from warden.datatypes.case_datatypes import Case, CaseType, to_unix
from warden.util.sanitizer import sanitize_for_display

CASE_COLORS = {
    CaseType.WARNING: 0xFAA81A,
    CaseType.NOTE: 0xFEE75C,
    CaseType.MUTE: 0x747F8D,
}

BODY_LABELS = {
    CaseType.WARNING: "Reason",
    CaseType.NOTE: "Content",
    CaseType.MUTE: "Reason",
}

FIELD_VALUE_LIMIT = 1024


def chunk_cases(cases: Sequence[Case], page_size: int = DEFAULT_PAGE_SIZE) -> List[List[Case]]:
    """Split ``cases`` into consecutive pages of at most ``page_size``, keeping order."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return [list(cases[i:i + page_size]) for i in range(0, len(cases), page_size)]


def format_case_field(case: Case) -> tuple[str, str]:
    """Return the (name, value) pair for one case in a listing."""
    prefix = f"**Date:** <t:{to_unix(case.created_at)}:f>\n**{BODY_LABELS[case.case_type]}:** "
    body = sanitize_for_display(case.body, FIELD_VALUE_LIMIT - len(prefix)) or "-"
    return f"{str(case.case_type).capitalize()} #{case.id}", prefix + body


def build_case_pages(
    title: str,
    cases: Sequence[Case],
    case_type: CaseType,
    page_size: int = DEFAULT_PAGE_SIZE,
    thumbnail_url: str | None = None,
) -> List[discord.Embed]:
    """
    Build one embed per page of cases.

    Args:
        title: Embed title shared by every page.
        cases: Newest-first cases to display.
        case_type: Kind of case, used for colour and labels.
        page_size: Cases per page.
        thumbnail_url: Optional avatar of the member the cases are about.

    Returns:
        List[discord.Embed]: Pages in display order; empty when there are no cases.
    """
    embeds: List[discord.Embed] = []
    chunks = chunk_cases(cases, page_size)
    for index, chunk in enumerate(chunks, start=1):
        embed = discord.Embed(title=title, color=CASE_COLORS.get(case_type, 0x5865F2))
        for case in chunk:
            name, value = format_case_field(case)
            embed.add_field(name=name, value=value, inline=False)
        embed.set_footer(text=f"Total {case_type}s: {len(cases)} | Page {index}/{len(chunks)}")
        if thumbnail_url:
            embed.set_thumbnail(url=thumbnail_url)
        embeds.append(embed)
    return embeds
