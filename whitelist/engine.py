"""Interview engine: one question at a time, persisted after every step.

All progress lives in the application store. Each handler re-reads the
record before acting and every write is guarded by the status/step it was
checked against, so duplicate or concurrent deliveries resolve in the store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Literal, Optional

from config.settings import settings
from observability import log_event
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore

from . import messages
from .catalog import DEFAULT_CATALOG, Catalog, Question
from .errors import ConfigurationError, RoleUpdateFailed, SurfaceUnavailable
from .models import Application, ApplicationStatus, ConversationRef
from .ports import ConversationSurfaces, RoleManager
from .review import ReviewDispatcher

logger = logging.getLogger(__name__)

IDLE_NOTE = "expired after inactivity"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StartResult:
    application: Application
    conversation: Optional[ConversationRef] = None
    instruction: Optional[str] = None
    superseded: List[Application] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.instruction is None


@dataclass
class AnswerOutcome:
    kind: Literal["advance", "rejected", "completed", "ignored", "expired"]
    application: Optional[Application] = None
    next_question: Optional[Question] = None
    reason: Optional[str] = None
    dispatch_error: Optional[str] = None


@dataclass
class InboundMessage:
    """Raw answer text; ``community_id`` is ``None`` for direct messages."""

    applicant_id: str
    conversation_id: str
    text: str
    community_id: Optional[str] = None


class InterviewEngine:
    def __init__(
        self,
        store: ApplicationStore,
        surfaces: ConversationSurfaces,
        dispatcher: ReviewDispatcher,
        *,
        config_store: Optional[CommunityConfigStore] = None,
        roles: Optional[RoleManager] = None,
        catalog: Catalog = DEFAULT_CATALOG,
        clock: Clock = utcnow,
        ttl: Optional[timedelta] = None,
    ) -> None:
        self._store = store
        self._surfaces = surfaces
        self._dispatcher = dispatcher
        self._config = config_store
        self._roles = roles
        self._catalog = catalog
        self._clock = clock
        self._ttl = ttl

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def ttl(self) -> timedelta:
        return self._ttl or timedelta(hours=settings.APPLICATION_TTL_HOURS)

    def is_idle(self, app: Application, now: Optional[datetime] = None) -> bool:
        return app.status == ApplicationStatus.IN_PROGRESS and (now or self._clock()) - app.updated_at > self.ttl

    # ------------------------------------------------------------------
    # Start / resume
    # ------------------------------------------------------------------
    async def start(self, community_id: str, applicant_id: str, display_name: str) -> StartResult:
        """Supersede any live attempt, create a fresh one and ask question 1."""

        app, superseded = self._store.supersede_and_create(
            community_id=community_id,
            applicant_id=applicant_id,
            display_name=display_name,
            catalog_version=self._catalog.version,
            now=self._clock(),
        )
        log_event("application_started", app.id, community=community_id, applicant=applicant_id)
        for old in superseded:
            log_event("application_superseded", old.id, community=community_id, applicant=applicant_id)
            if old.conversation_ref is not None:
                await self._surfaces.close(old.conversation_ref, "superseded")
        result = await self._open_and_ask(app, intro=messages.INTRO)
        result.superseded = superseded
        return result

    async def resume(self, community_id: str, applicant_id: str) -> Optional[StartResult]:
        """Re-present the current question of the applicant's in-progress attempt.

        Returns ``None`` when there is nothing to resume.
        """

        app = self._store.find_in_progress(applicant_id, community_id=community_id)
        if app is None:
            return None
        if self.is_idle(app):
            self._expire_idle(app)
            return None
        if app.conversation_ref is not None:
            try:
                await self._surfaces.send(app.conversation_ref, self._with_question(messages.RESUMED, app.current_step))
                return StartResult(application=app, conversation=app.conversation_ref)
            except SurfaceUnavailable:
                logger.info("conversation for %s unreachable, reopening", app.id)
        return await self._open_and_ask(app, intro=messages.RESUMED)

    async def _open_and_ask(self, app: Application, *, intro: str) -> StartResult:
        try:
            ref = await self._surfaces.open(app.community_id, app.applicant_id, app.id)
        except SurfaceUnavailable as exc:
            log_event("surface_unavailable", app.id, applicant=app.applicant_id, reason=str(exc))
            return StartResult(application=app, instruction=exc.instruction)

        if ref.kind == "dm":
            # A DM channel carries one interview; answers there route by conversation only.
            holder = self._store.find_in_progress(app.applicant_id, conversation_id=ref.channel_id)
            if holder is not None and holder.id != app.id and holder.community_id != app.community_id:
                log_event("dm_busy", app.id, community=app.community_id, applicant=app.applicant_id, reason=holder.community_id)
                return StartResult(application=app, instruction=messages.DM_BUSY)

        if not self._store.bind_conversation(app.id, ref, self._clock()):
            # Another start won the race while the surface was being opened.
            await self._surfaces.close(ref, "superseded")
            current = self._store.get(app.id) or app
            return StartResult(application=current, instruction=messages.SUPERSEDED)

        try:
            await self._surfaces.send(ref, self._with_question(intro, app.current_step))
        except SurfaceUnavailable as exc:
            log_event("surface_unavailable", app.id, applicant=app.applicant_id, reason=str(exc))
            return StartResult(application=self._store.get(app.id) or app, conversation=ref, instruction=exc.instruction)

        log_event("conversation_opened", app.id, applicant=app.applicant_id, outcome=ref.kind)
        return StartResult(application=self._store.get(app.id) or app, conversation=ref)

    def _with_question(self, intro: str, step: int) -> str:
        question = self._catalog.at(step)
        if question is None:
            return intro
        return f"{intro}\n\n{messages.question_prompt(step, len(self._catalog), question)}"

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    async def submit_answer(self, application_id: str, raw_text: Optional[str]) -> AnswerOutcome:
        """Validate and store the answer for the current step.

        On the final answer the record becomes SUBMITTED and is handed to the
        review dispatcher. Only the delivery whose write advanced the record
        triggers the hand-off.
        """

        app = self._store.get(application_id)
        if app is None or app.status != ApplicationStatus.IN_PROGRESS:
            return AnswerOutcome(kind="ignored", application=app)
        step = app.current_step
        question = self._catalog.at(step)
        if question is None:
            return AnswerOutcome(kind="ignored", application=app)

        answer, reason = question.check(raw_text)
        if reason is not None:
            log_event("answer_rejected", app.id, step=step, reason=reason)
            return AnswerOutcome(kind="rejected", application=app, next_question=question, reason=reason)

        completes = step + 1 >= len(self._catalog)
        advanced = self._store.record_answer(
            app.id,
            expected_step=step,
            key=question.key,
            answer=answer,
            identifier=answer if question.identifier else None,
            completes=completes,
            now=self._clock(),
        )
        if not advanced:
            log_event("answer_stale", app.id, step=step)
            return AnswerOutcome(kind="ignored", application=self._store.get(app.id))

        log_event("answer_accepted", app.id, step=step + 1)
        if not completes:
            return AnswerOutcome(
                kind="advance",
                application=self._store.get(app.id),
                next_question=self._catalog.at(step + 1),
            )

        submitted = self._store.get(app.id) or app
        log_event("application_submitted", app.id, community=app.community_id, applicant=app.applicant_id)
        dispatch_error = await self._hand_off(submitted)
        return AnswerOutcome(
            kind="completed",
            application=self._store.get(app.id),
            dispatch_error=dispatch_error,
        )

    async def _hand_off(self, app: Application) -> Optional[str]:
        await self._grant_pending_role(app)
        try:
            await self._dispatcher.dispatch(app.id)
        except ConfigurationError as exc:
            logger.error("submitted application %s not dispatched: %s", app.id, exc)
            return messages.review_queue_missing(app.id)
        return None

    async def _grant_pending_role(self, app: Application) -> None:
        if self._roles is None or self._config is None:
            return
        role_id = self._config.get(app.community_id).pending_role_id
        if not role_id:
            return
        try:
            await self._roles.grant(app.community_id, app.applicant_id, role_id)
        except RoleUpdateFailed as exc:
            logger.warning("pending role not granted for %s: %s", app.id, exc)

    async def handle_message(self, message: InboundMessage) -> Optional[AnswerOutcome]:
        """Apply a message to the attempt bound to its conversation.

        Messages outside the applicant's active conversation are ignored and
        return ``None``.
        """

        app = self._store.find_in_progress(
            message.applicant_id,
            community_id=message.community_id,
            conversation_id=message.conversation_id,
        )
        if app is None or app.conversation_ref is None:
            return None
        ref = app.conversation_ref

        if self.is_idle(app):
            self._expire_idle(app)
            await self._reply(ref, messages.EXPIRED)
            await self._surfaces.close(ref, IDLE_NOTE)
            return AnswerOutcome(kind="expired", application=self._store.get(app.id))

        outcome = await self.submit_answer(app.id, message.text)
        if outcome.kind == "rejected" and outcome.reason:
            await self._reply(ref, messages.rejected_answer(outcome.reason))
        elif outcome.kind == "advance" and outcome.next_question is not None and outcome.application is not None:
            await self._reply(
                ref,
                messages.question_prompt(outcome.application.current_step, len(self._catalog), outcome.next_question),
            )
        elif outcome.kind == "completed":
            await self._reply(ref, outcome.dispatch_error or messages.COMPLETED)
        return outcome

    async def _reply(self, ref: ConversationRef, text: str) -> None:
        try:
            await self._surfaces.send(ref, text)
        except SurfaceUnavailable as exc:
            logger.warning("reply to %s failed: %s", ref.channel_id, exc)

    def _expire_idle(self, app: Application) -> None:
        if self._store.expire(app.id, note=IDLE_NOTE, now=self._clock()):
            log_event("application_expired", app.id, applicant=app.applicant_id, reason=IDLE_NOTE)


__all__ = ["AnswerOutcome", "IDLE_NOTE", "InboundMessage", "InterviewEngine", "StartResult", "utcnow"]
