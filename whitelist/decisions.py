"""Staff decisions on submitted applications.

Approve is applied immediately. Reject and Adjust need a reviewer note: the
first action only asks for it, and nothing is persisted until the note
arrives. Every action re-reads the record and the status write is guarded on
SUBMITTED, so two reviewers acting on the same card cannot both win.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple

from config.community import CommunityConfig
from config.settings import settings
from observability import log_event
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore

from . import messages
from .engine import Clock, utcnow
from .errors import NotificationFailed, RoleUpdateFailed, WhitelistError
from .models import ACTION_STATUS, Application, ApplicationStatus, DecisionAction, Reviewer
from .ports import ConversationSurfaces, Notifier, RoleManager, StaffMessenger
from .review import ReviewDispatcher

logger = logging.getLogger(__name__)

DecisionKind = Literal["decided", "needs_note", "already_decided", "not_reviewable", "not_found", "note_required"]


@dataclass
class DecisionResult:
    kind: DecisionKind
    application: Optional[Application] = None
    notified: bool = False
    role_errors: List[str] = field(default_factory=list)


def role_changes(status: ApplicationStatus, cfg: CommunityConfig) -> Tuple[List[str], List[str]]:
    """Return ``(grant, revoke)`` role ids for a decision status."""

    grant: List[str] = []
    revoke: List[str] = []
    if cfg.pending_role_id:
        revoke.append(cfg.pending_role_id)
    if status == ApplicationStatus.APPROVED:
        if cfg.approved_role_id:
            grant.append(cfg.approved_role_id)
        if cfg.rejected_role_id:
            revoke.append(cfg.rejected_role_id)
    elif status == ApplicationStatus.REJECTED:
        if cfg.rejected_role_id:
            grant.append(cfg.rejected_role_id)
    return grant, revoke


class DecisionWorkflow:
    def __init__(
        self,
        store: ApplicationStore,
        config_store: CommunityConfigStore,
        dispatcher: ReviewDispatcher,
        messenger: StaffMessenger,
        roles: RoleManager,
        notifier: Notifier,
        *,
        surfaces: Optional[ConversationSurfaces] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._config = config_store
        self._dispatcher = dispatcher
        self._messenger = messenger
        self._roles = roles
        self._notifier = notifier
        self._surfaces = surfaces
        self._clock = clock

    def _guard(self, application_id: str) -> Tuple[Optional[Application], Optional[DecisionResult]]:
        app = self._store.get(application_id)
        if app is None:
            return None, DecisionResult(kind="not_found")
        if app.is_decided:
            return app, DecisionResult(kind="already_decided", application=app)
        if app.status != ApplicationStatus.SUBMITTED:
            return app, DecisionResult(kind="not_reviewable", application=app)
        return app, None

    async def act(self, action: DecisionAction, application_id: str, reviewer: Reviewer) -> DecisionResult:
        """Handle a decision control press."""

        action = DecisionAction(action)
        app, blocked = self._guard(application_id)
        if blocked is not None:
            log_event("decision_blocked", application_id, action=action.value, outcome=blocked.kind)
            return blocked
        assert app is not None
        if action == DecisionAction.APPROVE:
            return await self._finalize(app, action, reviewer, None)
        return DecisionResult(kind="needs_note", application=app)

    async def submit_note(
        self, action: DecisionAction, application_id: str, reviewer: Reviewer, note: Optional[str]
    ) -> DecisionResult:
        """Apply a Reject/Adjust decision once the reviewer's note arrives."""

        action = DecisionAction(action)
        if action == DecisionAction.APPROVE:
            raise ValueError("Approve does not take a note")
        cleaned = (note or "").strip()[: settings.NOTE_MAX_LENGTH]
        if not cleaned:
            return DecisionResult(kind="note_required")
        app, blocked = self._guard(application_id)
        if blocked is not None:
            log_event("decision_blocked", application_id, action=action.value, outcome=blocked.kind)
            return blocked
        assert app is not None
        return await self._finalize(app, action, reviewer, cleaned)

    async def _finalize(
        self, app: Application, action: DecisionAction, reviewer: Reviewer, note: Optional[str]
    ) -> DecisionResult:
        status = ACTION_STATUS[action]
        if not self._store.decide(app.id, status=status, reviewer=reviewer, note=note, now=self._clock()):
            current = self._store.get(app.id)
            kind: DecisionKind = "already_decided" if current and current.is_decided else "not_reviewable"
            log_event("decision_blocked", app.id, action=action.value, outcome=kind)
            return DecisionResult(kind=kind, application=current)

        decided = self._store.get(app.id) or app
        log_event(
            "application_decided",
            app.id,
            community=app.community_id,
            applicant=app.applicant_id,
            status=status.value,
            reviewer=reviewer.id,
        )
        cfg = self._config.get(app.community_id)
        role_errors = await self._apply_roles(decided, cfg)
        await self._dispatcher.refresh(decided)
        notified = await self._notify(decided)
        if decided.conversation_ref is not None and self._surfaces is not None:
            await self._surfaces.close(decided.conversation_ref, f"whitelist {status.value.lower()}")
        if status == ApplicationStatus.REJECTED and cfg.reject_log_channel_id:
            await self._post_reject_log(decided, cfg.reject_log_channel_id)
        return DecisionResult(kind="decided", application=decided, notified=notified, role_errors=role_errors)

    async def _apply_roles(self, app: Application, cfg: CommunityConfig) -> List[str]:
        grant, revoke = role_changes(app.status, cfg)
        errors: List[str] = []
        for role_id in grant:
            try:
                await self._roles.grant(app.community_id, app.applicant_id, role_id)
            except RoleUpdateFailed as exc:
                logger.warning("grant %s to %s failed: %s", role_id, app.applicant_id, exc)
                errors.append(role_id)
        for role_id in revoke:
            try:
                await self._roles.revoke(app.community_id, app.applicant_id, role_id)
            except RoleUpdateFailed as exc:
                logger.warning("revoke %s from %s failed: %s", role_id, app.applicant_id, exc)
                errors.append(role_id)
        return errors

    async def _notify(self, app: Application) -> bool:
        try:
            await self._notifier.notify(app.applicant_id, messages.decision_notice(app.status, app.decision_note))
        except NotificationFailed as exc:
            log_event("notification_failed", app.id, applicant=app.applicant_id, reason=str(exc))
            return False
        return True

    async def _post_reject_log(self, app: Application, channel_id: str) -> None:
        try:
            await self._messenger.post_text(
                channel_id,
                messages.reject_log_line(app.applicant_id, app.applicant_display_name, app.decision_note),
            )
        except WhitelistError as exc:
            logger.warning("reject log for %s not posted: %s", app.id, exc)


__all__ = ["DecisionResult", "DecisionWorkflow", "role_changes"]
