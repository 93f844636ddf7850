"""
Moderation action orchestrator.

Each public coroutine runs one command as a fixed pipeline:

    VALIDATING -> SANITIZING -> APPLYING_PLATFORM_EFFECT -> PERSISTING -> LOGGING -> REPLYING

with ``FAILED`` as the exit for any rejection or error. Every run starts with
the guild context and permission checks. Whatever happens, the caller gets an
``ActionResult``; no exception escapes this module.

Direct messages are best effort: a closed DM channel is logged and the action
carries on. Platform calls are bounded by ``platform_timeout_seconds`` and a
failure or timeout ends the action with a generic reply. Audit delivery
problems are logged and never reach the moderator.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, TypeVar

from warden.configuration.app_configuration import ModerationSettings
from warden.database.database import Database
from warden.datatypes.action_datatypes import (
    ActionRequest,
    ActionResult,
    ActionStage,
    AuditEvent,
    CaseRemovalRequest,
    CaseViewRequest,
    DirectMessageResult,
    MemberSnapshot,
    ModLogType,
    MuteRequest,
    TargetedRequest,
    UnbanRequest,
)
from warden.datatypes.case_datatypes import Case, CaseType, to_unix
from warden.datatypes.discord_datatypes import GuildID, UserID, is_snowflake
from warden.moderation.audit import AuditEmitter
from warden.moderation.errors import (
    ContextError,
    ModerationError,
    NotFoundError,
    OwnershipError,
    PlatformError,
    PrivilegeError,
    StoreError,
    TargetError,
    ValidationError,
    describe_store_error,
)
from warden.moderation.permissions import Tier, check_permission
from warden.moderation.platform import ModerationPlatform
from warden.moderation.target_validation import validate_target
from warden.util.logger import get_logger
from warden.util.sanitizer import (
    UNKNOWN_USER,
    sanitize_for_display,
    sanitize_for_logging,
    sanitize_for_storage,
    sanitize_guild_name,
    sanitize_user_tag,
    validate_id,
)

T = TypeVar("T")

MIN_MUTE_MINUTES = 1
MAX_MUTE_MINUTES = 10080

COMPLAINT_FOOTER = (
    "If you think this was a mistake, or would like to complain about a community moderator, "
    "please contact the community manager."
)


@dataclass(slots=True)
class ModerationContext:
    """Everything a moderation action may touch, passed in explicitly."""

    store: Database
    platform: ModerationPlatform
    audit: AuditEmitter
    settings: ModerationSettings
    logger: logging.Logger = field(default_factory=lambda: get_logger("moderation"))


@dataclass(slots=True)
class ActionRun:
    """Tracks the stage of a single action for failure reporting.

    Attributes:
        action: Command name used in log lines.
        doing: Gerund phrase for the generic failure reply.
        kind: Record kind for not-found replies on removals.
        record_id: Case id for not-found replies on removals.
    """

    action: str
    doing: str
    kind: str | None = None
    record_id: int | None = None
    stage: ActionStage = ActionStage.VALIDATING

    def advance(self, stage: ActionStage) -> None:
        self.stage = stage


def _minutes_label(minutes: int) -> str:
    return f"{minutes} minute(s)"


class ModerationOrchestrator:
    """Runs ban, unban, mute, unmute, warning and note commands end to end."""

    def __init__(self, context: ModerationContext) -> None:
        self.context = context
        self.logger = context.logger

    @property
    def settings(self) -> ModerationSettings:
        return self.context.settings

    # ------------------------------------------------------------------
    # Pipeline plumbing
    # ------------------------------------------------------------------

    async def _execute(
        self,
        run: ActionRun,
        pipeline: Callable[[ActionRun], Awaitable[ActionResult]],
    ) -> ActionResult:
        try:
            result = await pipeline(run)
        except PlatformError as exc:
            self.logger.error(
                "[ORCHESTRATOR] %s failed at %s: platform error: %s", run.action, run.stage, exc.detail or exc
            )
            message = f"An unexpected error occurred while {run.doing}."
        except StoreError as exc:
            self.logger.error(
                "[ORCHESTRATOR] %s failed at %s: %s: %s", run.action, run.stage, type(exc).__name__, exc.detail or exc
            )
            message = describe_store_error(exc, run.doing, kind=run.kind, record_id=run.record_id)
        except ModerationError as exc:
            self.logger.info(
                "[ORCHESTRATOR] %s rejected at %s (%s): %s", run.action, run.stage, type(exc).__name__, exc.user_message
            )
            message = exc.user_message
        except Exception:
            self.logger.exception("[ORCHESTRATOR] %s failed at %s with an unexpected error", run.action, run.stage)
            message = f"An unexpected error occurred while {run.doing}."
        else:
            run.advance(ActionStage.REPLYING)
            result.stage = ActionStage.REPLYING
            return result

        run.advance(ActionStage.FAILED)
        return ActionResult(content=message, ephemeral=True, stage=ActionStage.FAILED)

    async def _platform(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a platform call, turning a timeout into ``PlatformError``."""
        timeout = self.settings.platform_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise PlatformError(detail=f"{operation} timed out after {timeout}s") from exc

    def _authorize(self, request: ActionRequest, required: Tier) -> GuildID:
        if request.guild is None:
            raise ContextError()
        permission = check_permission(request.moderator_member, request.guild, required, self.settings.staff_roles)
        if permission.server_only:
            raise ContextError(permission.message)
        if not permission.authorized:
            raise PrivilegeError(permission.message)
        return request.guild.id

    async def _lookup_member(self, guild_id: GuildID, user_id: UserID) -> MemberSnapshot | None:
        """Resolve a guild member for checks; lookup failures count as not a member."""
        try:
            return await self._platform(f"fetch member {user_id}", self.context.platform.fetch_member(guild_id, user_id))
        except PlatformError as exc:
            self.logger.warning("[ORCHESTRATOR] Could not resolve member %s in guild %s: %s", user_id, guild_id, exc.detail)
            return None

    async def _check_target(
        self,
        request: TargetedRequest,
        guild_id: GuildID,
        verb: str,
        check_hierarchy: bool = True,
    ) -> MemberSnapshot | None:
        target_member = None
        if check_hierarchy and request.target.id != request.moderator.id and not request.target.is_bot:
            target_member = await self._lookup_member(guild_id, request.target.id)

        result = validate_target(
            request.target.id,
            request.moderator.id,
            request.target.is_bot,
            target_member,
            request.moderator_member,
            verb,
            check_hierarchy=check_hierarchy,
        )
        if not result.is_valid:
            raise TargetError(result.error_message)
        return target_member

    def _reason_text(self, reason: str) -> tuple[str, str]:
        """Return the (storage, display) renditions of moderator supplied text."""
        limit = self.settings.max_reason_length
        return sanitize_for_storage(reason, limit), sanitize_for_display(reason, limit)

    async def _send_dm(self, user_id: UserID, content: str, action: str) -> DirectMessageResult:
        try:
            result = await self._platform(
                f"DM {user_id}", self.context.platform.send_direct_message(user_id, content)
            )
        except PlatformError as exc:
            result = DirectMessageResult.undeliverable(exc.detail or "platform error")
        if not result.delivered:
            self.logger.warning("[ORCHESTRATOR] Failed to DM user %s about %s: %s", user_id, action, result.detail)
        return result

    async def _emit(self, run: ActionRun, event: AuditEvent) -> AuditEvent:
        run.advance(ActionStage.LOGGING)
        try:
            await asyncio.wait_for(self.context.audit.emit(event), timeout=self.settings.platform_timeout_seconds)
        except Exception as exc:
            self.logger.warning(
                "[ORCHESTRATOR] Audit log for %s on user %s was not delivered: %s", event.action_type, event.target_id, exc
            )
        return event

    def _audit_event(
        self,
        request: ActionRequest,
        action_type: ModLogType,
        target_id: UserID,
        target_display: str,
        reason: str | None = None,
        duration: str | None = None,
        case_id: int | None = None,
        extra: str | None = None,
    ) -> AuditEvent:
        return AuditEvent(
            guild_id=request.guild.id,
            action_type=action_type,
            target_id=target_id,
            target_display=target_display,
            moderator_id=request.moderator.id,
            moderator_display=sanitize_user_tag(request.moderator.tag),
            reason=reason,
            duration=duration,
            case_id=case_id,
            extra=extra,
        )

    async def _register_member(self, request: ActionRequest, user_id: UserID) -> None:
        await self.context.store.upsert_guild(request.guild.id, sanitize_guild_name(request.guild.name))
        await self.context.store.upsert_member(user_id, request.guild.id)

    # ------------------------------------------------------------------
    # Ban / unban
    # ------------------------------------------------------------------

    async def ban(self, request: TargetedRequest) -> ActionResult:
        return await self._execute(ActionRun("ban", "banning the user"), lambda run: self._ban(run, request))

    async def _ban(self, run: ActionRun, request: TargetedRequest) -> ActionResult:
        guild_id = self._authorize(request, Tier.MODERATOR)
        await self._check_target(request, guild_id, "ban")

        run.advance(ActionStage.SANITIZING)
        stored_reason, display_reason = self._reason_text(request.reason)
        target_tag = sanitize_user_tag(request.target.tag)
        guild_name = sanitize_guild_name(request.guild.name)

        dm = await self._send_dm(
            request.target.id,
            f"You have been banned from **{guild_name}** for: {display_reason}\n\n"
            f"If you believe this was a mistake or wish to appeal, please email {self.settings.appeal_contact}.",
            "ban",
        )

        run.advance(ActionStage.APPLYING_PLATFORM_EFFECT)
        await self._platform(
            f"ban {request.target.id}",
            self.context.platform.ban_member(guild_id, request.target.id, stored_reason),
        )

        event = await self._emit(
            run, self._audit_event(request, ModLogType.BAN, request.target.id, target_tag, reason=display_reason)
        )
        self.logger.info(
            "[ORCHESTRATOR] User banned: %s (%s) in guild %s by %s (%s). Reason: %s",
            target_tag, request.target.id, guild_id, request.moderator.tag, request.moderator.id,
            sanitize_for_logging(request.reason),
        )
        return ActionResult(f"Banned {target_tag} for: {display_reason}", audit_event=event, direct_message=dm)

    async def unban(self, request: UnbanRequest) -> ActionResult:
        return await self._execute(ActionRun("unban", "unbanning the user"), lambda run: self._unban(run, request))

    async def _unban(self, run: ActionRun, request: UnbanRequest) -> ActionResult:
        guild_id = self._authorize(request, Tier.MODERATOR)
        raw_id = (request.user_id or "").strip()
        if not is_snowflake(raw_id):
            raise ValidationError("Please provide a valid user ID.")
        user_id = UserID(raw_id)

        ban = await self._platform(f"fetch ban {user_id}", self.context.platform.fetch_ban(guild_id, user_id))
        if ban is None:
            self.logger.info("[ORCHESTRATOR] Unban skipped: user %s is not banned in guild %s", user_id, guild_id)
            return ActionResult(f"User ID {raw_id} is not banned.", ephemeral=True)

        run.advance(ActionStage.SANITIZING)
        stored_reason, display_reason = self._reason_text(request.reason)
        target_display = sanitize_user_tag(ban.user.tag) if ban.user is not None and ban.user.tag else raw_id

        run.advance(ActionStage.APPLYING_PLATFORM_EFFECT)
        await self._platform(f"unban {user_id}", self.context.platform.unban_member(guild_id, user_id, stored_reason))

        event = await self._emit(
            run, self._audit_event(request, ModLogType.UNBAN, user_id, target_display, reason=display_reason)
        )
        self.logger.info(
            "[ORCHESTRATOR] User unbanned: %s (%s) in guild %s by %s (%s). Reason: %s",
            target_display, user_id, guild_id, request.moderator.tag, request.moderator.id,
            sanitize_for_logging(request.reason),
        )
        return ActionResult(f"Unbanned {target_display} for: {display_reason}", audit_event=event)

    # ------------------------------------------------------------------
    # Mute / unmute
    # ------------------------------------------------------------------

    async def mute(self, request: MuteRequest) -> ActionResult:
        return await self._execute(ActionRun("mute", "muting the user"), lambda run: self._mute(run, request))

    async def _mute(self, run: ActionRun, request: MuteRequest) -> ActionResult:
        guild_id = self._authorize(request, Tier.TRIAL_MODERATOR)
        target_member = await self._check_target(request, guild_id, "mute")
        minutes = request.duration_minutes
        if isinstance(minutes, bool) or not isinstance(minutes, int) or not MIN_MUTE_MINUTES <= minutes <= MAX_MUTE_MINUTES:
            raise ValidationError(
                f"Duration must be between {MIN_MUTE_MINUTES} and {MAX_MUTE_MINUTES} minutes."
            )

        run.advance(ActionStage.SANITIZING)
        stored_reason, display_reason = self._reason_text(request.reason)
        target_tag = sanitize_user_tag(request.target.tag)
        guild_name = sanitize_guild_name(request.guild.name)
        duration = timedelta(minutes=minutes)
        created_at = datetime.now(timezone.utc).replace(microsecond=0)
        expires_unix = to_unix(created_at + duration)

        dm = await self._send_dm(
            request.target.id,
            f"You have been muted in **{guild_name}** for {_minutes_label(minutes)} for: {display_reason}\n\n"
            f"You will be able to chat again at <t:{expires_unix}:F>.\n\n{COMPLAINT_FOOTER}",
            "mute",
        )

        if target_member is None:
            raise NotFoundError("Could not find that user in this server.")

        run.advance(ActionStage.APPLYING_PLATFORM_EFFECT)
        await self._platform(
            f"timeout {request.target.id}",
            self.context.platform.timeout_member(guild_id, request.target.id, duration, stored_reason),
        )

        run.advance(ActionStage.PERSISTING)
        await self._register_member(request, request.target.id)
        case = await self.context.store.create_mute(
            guild_id,
            request.target.id,
            request.moderator.id,
            stored_reason,
            int(duration.total_seconds()),
            created_at=created_at,
        )

        event = await self._emit(
            run,
            self._audit_event(
                request, ModLogType.MUTE, request.target.id, target_tag,
                reason=display_reason, duration=_minutes_label(minutes), case_id=case.id,
            ),
        )
        self.logger.info(
            "[ORCHESTRATOR] User muted: [ID: %d] %s (%s) in guild %s by %s (%s). Reason: %s Duration: %dm",
            case.id, target_tag, request.target.id, guild_id, request.moderator.tag, request.moderator.id,
            sanitize_for_logging(request.reason), minutes,
        )
        return ActionResult(
            f"Muted {target_tag} for {_minutes_label(minutes)} for: {display_reason}",
            case=case,
            audit_event=event,
            direct_message=dm,
        )

    async def unmute(self, request: TargetedRequest) -> ActionResult:
        return await self._execute(ActionRun("unmute", "unmuting the user"), lambda run: self._unmute(run, request))

    async def _unmute(self, run: ActionRun, request: TargetedRequest) -> ActionResult:
        guild_id = self._authorize(request, Tier.TRIAL_MODERATOR)
        target_member = await self._check_target(request, guild_id, "unmute")

        run.advance(ActionStage.SANITIZING)
        stored_reason, display_reason = self._reason_text(request.reason)
        target_tag = sanitize_user_tag(request.target.tag)
        guild_name = sanitize_guild_name(request.guild.name)

        dm = await self._send_dm(
            request.target.id,
            f"You have been unmuted in **{guild_name}**. Reason: {display_reason}",
            "unmute",
        )

        if target_member is None:
            raise NotFoundError("Could not find that user in this server.")

        run.advance(ActionStage.APPLYING_PLATFORM_EFFECT)
        await self._platform(
            f"clear timeout {request.target.id}",
            self.context.platform.timeout_member(guild_id, request.target.id, None, stored_reason),
        )

        run.advance(ActionStage.PERSISTING)
        changed = await self.context.store.deactivate_active_mutes(request.target.id, guild_id)

        event = await self._emit(
            run, self._audit_event(request, ModLogType.UNMUTE, request.target.id, target_tag, reason=display_reason)
        )
        self.logger.info(
            "[ORCHESTRATOR] User unmuted: %s (%s) in guild %s by %s (%s), %d mute(s) closed. Reason: %s",
            target_tag, request.target.id, guild_id, request.moderator.tag, request.moderator.id, changed,
            sanitize_for_logging(request.reason),
        )
        return ActionResult(f"Unmuted {target_tag} for: {display_reason}", audit_event=event, direct_message=dm)

    # ------------------------------------------------------------------
    # Warnings and notes
    # ------------------------------------------------------------------

    async def add_warning(self, request: TargetedRequest) -> ActionResult:
        return await self._execute(
            ActionRun("warning add", "adding the warning"), lambda run: self._add_warning(run, request)
        )

    async def _add_warning(self, run: ActionRun, request: TargetedRequest) -> ActionResult:
        guild_id = self._authorize(request, Tier.TRIAL_MODERATOR)
        await self._check_target(request, guild_id, "warn", check_hierarchy=False)

        run.advance(ActionStage.SANITIZING)
        stored_reason, display_reason = self._reason_text(request.reason)
        target_tag = sanitize_user_tag(request.target.tag)
        guild_name = sanitize_guild_name(request.guild.name)

        run.advance(ActionStage.PERSISTING)
        await self._register_member(request, request.target.id)
        case = await self.context.store.create_warning(guild_id, request.target.id, request.moderator.id, stored_reason)

        dm = await self._send_dm(
            request.target.id,
            f"You have been warned in **{guild_name}** for: {display_reason}\n\n{COMPLAINT_FOOTER}",
            "warning",
        )

        event = await self._emit(
            run,
            self._audit_event(request, ModLogType.WARN, request.target.id, target_tag, reason=display_reason, case_id=case.id),
        )
        self.logger.info(
            "[ORCHESTRATOR] Warning added: [ID: %d] %s (%s) in guild %s by %s (%s). Reason: %s",
            case.id, target_tag, request.target.id, guild_id, request.moderator.tag, request.moderator.id,
            sanitize_for_logging(request.reason),
        )
        return ActionResult(
            f"Warning added for {target_tag} (ID: {case.id}) for: {display_reason}",
            case=case,
            audit_event=event,
            direct_message=dm,
        )

    async def add_note(self, request: TargetedRequest) -> ActionResult:
        return await self._execute(ActionRun("note add", "adding the note"), lambda run: self._add_note(run, request))

    async def _add_note(self, run: ActionRun, request: TargetedRequest) -> ActionResult:
        guild_id = self._authorize(request, Tier.TRIAL_MODERATOR)

        run.advance(ActionStage.SANITIZING)
        stored_content, display_content = self._reason_text(request.reason)
        target_tag = sanitize_user_tag(request.target.tag)

        run.advance(ActionStage.PERSISTING)
        await self._register_member(request, request.target.id)
        case = await self.context.store.create_note(guild_id, request.target.id, request.moderator.id, stored_content)

        event = await self._emit(
            run,
            self._audit_event(request, ModLogType.NOTE, request.target.id, target_tag, reason=display_content, case_id=case.id),
        )
        self.logger.info(
            "[ORCHESTRATOR] Note added: [ID: %d] %s (%s) in guild %s by %s (%s). Content: %s",
            case.id, target_tag, request.target.id, guild_id, request.moderator.tag, request.moderator.id,
            sanitize_for_logging(request.reason),
        )
        return ActionResult(
            f"Note added for {target_tag} (ID: {case.id}) for: {display_content}",
            case=case,
            audit_event=event,
        )

    async def remove_warning(self, request: CaseRemovalRequest) -> ActionResult:
        return await self._execute(
            ActionRun("warning remove", "removing the warning", kind="warning"),
            lambda run: self._remove_case(run, request, CaseType.WARNING),
        )

    async def remove_note(self, request: CaseRemovalRequest) -> ActionResult:
        return await self._execute(
            ActionRun("note remove", "removing the note", kind="note"),
            lambda run: self._remove_case(run, request, CaseType.NOTE),
        )

    async def _resolve_removable_case(self, run: ActionRun, request: CaseRemovalRequest, case_type: CaseType) -> Case:
        kind = str(case_type)
        id_check = validate_id(request.case_id)
        if not id_check.is_valid:
            raise ValidationError(f"Invalid {kind} ID. Please provide a valid positive number.")
        run.record_id = id_check.sanitized_id

        case = await self.context.store.find_case(id_check.sanitized_id)
        if case is None or case.case_type is not case_type:
            raise NotFoundError(f"No {kind} found with ID {id_check.sanitized_id}.")
        if not case.belongs_to(request.guild.id):
            self.logger.warning(
                "[ORCHESTRATOR] %s %d belongs to guild %s, removal attempted from guild %s",
                kind, case.id, case.guild_id, request.guild.id,
            )
            raise OwnershipError(f"This {kind} does not belong to this server.")
        return case

    async def _fresh_user_tag(self, user_id: UserID) -> str:
        try:
            user = await self._platform(f"fetch user {user_id}", self.context.platform.fetch_user(user_id))
        except PlatformError as exc:
            self.logger.warning("[ORCHESTRATOR] Could not fetch user %s for the audit log: %s", user_id, exc.detail)
            return UNKNOWN_USER
        return sanitize_user_tag(user.tag if user is not None else None)

    async def _remove_case(self, run: ActionRun, request: CaseRemovalRequest, case_type: CaseType) -> ActionResult:
        self._authorize(request, Tier.TRIAL_MODERATOR)
        case = await self._resolve_removable_case(run, request, case_type)

        run.advance(ActionStage.SANITIZING)
        display_reason = sanitize_for_display(request.reason, self.settings.max_reason_length)
        original_display = sanitize_for_display(case.body, self.settings.max_reason_length)

        dm = None
        if case_type is CaseType.WARNING:
            guild_name = sanitize_guild_name(request.guild.name)
            dm = await self._send_dm(
                case.user_id,
                f"A warning (ID: {case.id}) was removed in **{guild_name}**. Reason was: {original_display}\n\n"
                f"Removal reason: {display_reason}\n\n{COMPLAINT_FOOTER}",
                "warning removal",
            )

        run.advance(ActionStage.PERSISTING)
        await self.context.store.delete_case(case.id)

        target_tag = await self._fresh_user_tag(case.user_id)
        log_type = ModLogType.UNWARN if case_type is CaseType.WARNING else ModLogType.NOTE_REMOVED
        event = await self._emit(
            run,
            self._audit_event(
                request, log_type, case.user_id, target_tag,
                reason=display_reason, case_id=case.id, extra=f"Original: {original_display}",
            ),
        )
        self.logger.info(
            "[ORCHESTRATOR] %s removed: [ID: %d] %s (%s) in guild %s by %s (%s). Reason: %s",
            str(case_type).capitalize(), case.id, target_tag, case.user_id, request.guild.id,
            request.moderator.tag, request.moderator.id, sanitize_for_logging(request.reason),
        )
        return ActionResult(
            f"{str(case_type).capitalize()} ID {case.id} removed.",
            case=case,
            audit_event=event,
            direct_message=dm,
        )

    async def view_warnings(self, request: CaseViewRequest) -> ActionResult:
        return await self._execute(
            ActionRun("warning view", "viewing warnings"), lambda run: self._view_cases(run, request, CaseType.WARNING)
        )

    async def view_notes(self, request: CaseViewRequest) -> ActionResult:
        return await self._execute(
            ActionRun("note view", "viewing notes"), lambda run: self._view_cases(run, request, CaseType.NOTE)
        )

    async def _view_cases(self, run: ActionRun, request: CaseViewRequest, case_type: CaseType) -> ActionResult:
        guild_id = self._authorize(request, Tier.TRIAL_MODERATOR)
        target_tag = sanitize_user_tag(request.target.tag)
        plural = f"{case_type}s"

        cases = await self.context.store.list_cases_for_user(request.target.id, guild_id, case_type)
        if not cases:
            self.logger.info("[ORCHESTRATOR] No %s found for user %s in guild %s", plural, request.target.id, guild_id)
            return ActionResult(f"{target_tag} has no {plural} in this server.", ephemeral=True)

        self.logger.info(
            "[ORCHESTRATOR] Viewed %d %s for user %s in guild %s", len(cases), plural, request.target.id, guild_id
        )
        return ActionResult(f"{plural.capitalize()} for {target_tag} ({len(cases)})", cases=cases)
