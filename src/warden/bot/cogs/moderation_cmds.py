"""
Moderation cog: slash commands for disciplinary actions and case records.

Every command converts the interaction into a request dataclass, hands it to
the ``ModerationOrchestrator`` and renders the ``ActionResult``. The cog
itself makes no moderation decisions: permission tiers, target checks,
sanitization, persistence and the audit trail all live behind the
orchestrator.

Visibility rules
- Successful ban, unban, mute, unmute and warning replies are public.
- Note replies are public in the configured mods channel and ephemeral
  everywhere else.
- Rejections and failures are always ephemeral.

Quick usage example
    from warden.bot.cogs import moderation_cmds
    moderation_cmds.setup(bot, orchestrator, settings)
"""

from __future__ import annotations

import discord
from discord import Option
from discord.ext import commands, pages

from warden.configuration.app_configuration import ModerationSettings
from warden.datatypes.action_datatypes import (
    ActionResult,
    CaseRemovalRequest,
    CaseViewRequest,
    MuteRequest,
    TargetedRequest,
    UnbanRequest,
)
from warden.datatypes.case_datatypes import CaseType
from warden.moderation.orchestrator import MAX_MUTE_MINUTES, MIN_MUTE_MINUTES, ModerationOrchestrator
from warden.moderation.platform import snapshot_guild, snapshot_member, snapshot_user
from warden.ui.case_pages import build_case_pages
from warden.util.logger import get_logger
from warden.util.sanitizer import DEFAULT_MAX_LENGTH

logger = get_logger("moderation_cog")


class ModerationCommandsCog(commands.Cog):
    """Cog containing the moderation slash commands.

    Parameters
    ----------
    discord_bot_instance:
        Active :class:`discord.Bot` the cog is registered on.
    orchestrator:
        Runs every command's pipeline.
    settings:
        Moderation settings; only the mods channel and page size are read here.
    """

    warning = discord.SlashCommandGroup("warning", "Manage user warnings")
    note = discord.SlashCommandGroup("note", "Manage moderator notes on users")

    def __init__(
        self,
        discord_bot_instance: discord.Bot,
        orchestrator: ModerationOrchestrator,
        settings: ModerationSettings,
    ) -> None:
        self.discord_bot_instance = discord_bot_instance
        self.orchestrator = orchestrator
        self.settings = settings
        logger.info("Moderation cog loaded")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def request_fields(ctx: discord.ApplicationContext) -> dict:
        """Snapshot the guild and acting moderator shared by every request."""
        author = ctx.author
        return {
            "guild": snapshot_guild(ctx.guild) if ctx.guild is not None else None,
            "moderator": snapshot_user(author),
            "moderator_member": snapshot_member(author) if isinstance(author, discord.Member) else None,
        }

    def is_public_note_channel(self, ctx: discord.ApplicationContext) -> bool:
        return self.settings.is_mods_channel(ctx.channel_id)

    async def send_result(self, ctx: discord.ApplicationContext, result: ActionResult, public: bool = True) -> None:
        """Send the orchestrator's reply as a followup to a deferred interaction.

        When the interaction was deferred publicly but the result must be
        ephemeral, the public placeholder is removed first.
        """
        ephemeral = result.ephemeral or not public
        if ephemeral and public:
            try:
                await ctx.interaction.delete_original_response()
            except discord.HTTPException:
                logger.debug("Deferred response already gone for %s", ctx.command)
        await ctx.send_followup(
            content=result.content,
            ephemeral=ephemeral,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    async def send_case_list(
        self,
        ctx: discord.ApplicationContext,
        result: ActionResult,
        case_type: CaseType,
        target: discord.User,
        public: bool = True,
    ) -> None:
        if not result.succeeded or not result.cases:
            await self.send_result(ctx, result, public=public)
            return

        embeds = build_case_pages(
            result.content,
            result.cases,
            case_type,
            page_size=self.settings.page_size,
            thumbnail_url=target.display_avatar.url,
        )
        paginator = pages.Paginator(pages=embeds, show_disabled=False, author_check=True)
        await paginator.respond(ctx.interaction, ephemeral=not public)

    # ------------------------------------------------------------------
    # Ban / unban
    # ------------------------------------------------------------------

    @commands.slash_command(name="ban", description="Ban a user from the server.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to ban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.ban(
            TargetedRequest(**self.request_fields(ctx), target=snapshot_user(user), reason=reason)
        )
        await self.send_result(ctx, result)

    @commands.slash_command(name="unban", description="Unban a user from the server.")
    async def unban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "The ID of the user to unban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the unban.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.unban(
            UnbanRequest(**self.request_fields(ctx), user_id=user_id, reason=reason)
        )
        await self.send_result(ctx, result)

    # ------------------------------------------------------------------
    # Mute / unmute
    # ------------------------------------------------------------------

    @commands.slash_command(name="mute", description="Mute (timeout) a user in the server.")
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to mute.", required=True),  # type: ignore
        reason: Option(str, "Reason for the mute.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
        duration: Option(
            int,
            f"Duration in minutes ({MIN_MUTE_MINUTES}-{MAX_MUTE_MINUTES}).",
            required=True,
            min_value=MIN_MUTE_MINUTES,
            max_value=MAX_MUTE_MINUTES,
        ),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.mute(
            MuteRequest(
                **self.request_fields(ctx),
                target=snapshot_user(user),
                reason=reason,
                duration_minutes=duration,
            )
        )
        await self.send_result(ctx, result)

    @commands.slash_command(name="unmute", description="Remove a user's timeout.")
    async def unmute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to unmute.", required=True),  # type: ignore
        reason: Option(str, "Reason for the unmute.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.unmute(
            TargetedRequest(**self.request_fields(ctx), target=snapshot_user(user), reason=reason)
        )
        await self.send_result(ctx, result)

    # ------------------------------------------------------------------
    # Warnings
    # ------------------------------------------------------------------

    @warning.command(name="add", description="Add a warning to a user.")
    async def warning_add(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to warn.", required=True),  # type: ignore
        reason: Option(str, "Reason for the warning.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.add_warning(
            TargetedRequest(**self.request_fields(ctx), target=snapshot_user(user), reason=reason)
        )
        await self.send_result(ctx, result)

    @warning.command(name="remove", description="Remove a warning by its ID.")
    async def warning_remove(
        self,
        ctx: discord.ApplicationContext,
        id: Option(int, "The warning ID to remove.", required=True),  # type: ignore
        reason: Option(str, "Reason for removing the warning.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.remove_warning(
            CaseRemovalRequest(**self.request_fields(ctx), case_id=id, reason=reason)
        )
        await self.send_result(ctx, result)

    @warning.command(name="view", description="View all warnings for a user.")
    async def warning_view(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to view warnings for.", required=True),  # type: ignore
    ) -> None:
        await ctx.defer()
        result = await self.orchestrator.view_warnings(
            CaseViewRequest(**self.request_fields(ctx), target=snapshot_user(user))
        )
        await self.send_case_list(ctx, result, CaseType.WARNING, user)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    @note.command(name="add", description="Add a note to a user.")
    async def note_add(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to add a note to.", required=True),  # type: ignore
        content: Option(str, "The note content.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        public = self.is_public_note_channel(ctx)
        await ctx.defer(ephemeral=not public)
        result = await self.orchestrator.add_note(
            TargetedRequest(**self.request_fields(ctx), target=snapshot_user(user), reason=content)
        )
        await self.send_result(ctx, result, public=public)

    @note.command(name="remove", description="Remove a note by its ID.")
    async def note_remove(
        self,
        ctx: discord.ApplicationContext,
        id: Option(int, "The note ID to remove.", required=True),  # type: ignore
        reason: Option(str, "Reason for removing the note.", required=True, max_length=DEFAULT_MAX_LENGTH),  # type: ignore
    ) -> None:
        public = self.is_public_note_channel(ctx)
        await ctx.defer(ephemeral=not public)
        result = await self.orchestrator.remove_note(
            CaseRemovalRequest(**self.request_fields(ctx), case_id=id, reason=reason)
        )
        await self.send_result(ctx, result, public=public)

    @note.command(name="view", description="View all notes for a user.")
    async def note_view(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to view notes for.", required=True),  # type: ignore
    ) -> None:
        public = self.is_public_note_channel(ctx)
        await ctx.defer(ephemeral=not public)
        result = await self.orchestrator.view_notes(
            CaseViewRequest(**self.request_fields(ctx), target=snapshot_user(user))
        )
        await self.send_case_list(ctx, result, CaseType.NOTE, user, public=public)


def setup(discord_bot_instance, orchestrator: ModerationOrchestrator, settings: ModerationSettings):
    """Cog setup entry point.

    Registers the moderation commands on the running bot instance.
    """
    discord_bot_instance.add_cog(ModerationCommandsCog(discord_bot_instance, orchestrator, settings))
