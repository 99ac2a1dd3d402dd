"""Staff review cards: rendering and posting to the community's queue."""
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from config.settings import settings
from observability import log_event
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore

from .catalog import DEFAULT_CATALOG, Catalog
from .errors import ApplicationNotFound, ReviewQueueNotConfigured, WhitelistError
from .models import Application, ApplicationStatus, DecisionAction, MessageRef
from .ports import StaffMessenger

logger = logging.getLogger(__name__)

EMPTY_VALUE = "—"

CONTROL_LABELS = {
    DecisionAction.APPROVE: "Approve",
    DecisionAction.REJECT: "Reject",
    DecisionAction.ADJUST: "Adjust",
}


class CardField(BaseModel):
    name: str
    value: str
    inline: bool = False


class DecisionControl(BaseModel):
    action: DecisionAction
    label: str
    disabled: bool = False


class ReviewCard(BaseModel):  # Platform-neutral staff card
    application_id: str
    title: str
    status: ApplicationStatus
    fields: List[CardField] = Field(default_factory=list)
    footer: str = ""
    controls: List[DecisionControl] = Field(default_factory=list)


def truncate(value: Optional[str], limit: int) -> str:
    text = (value or "").strip()
    if not text:
        return EMPTY_VALUE
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"


def render_card(app: Application, catalog: Catalog = DEFAULT_CATALOG, *, value_limit: Optional[int] = None) -> ReviewCard:
    """Render every catalog answer plus applicant identity as a review card."""

    limit = value_limit or settings.CARD_VALUE_LIMIT
    fields = [
        CardField(name="Applicant", value=truncate(f"{app.applicant_display_name} ({app.applicant_id})", limit)),
        CardField(name="Status", value=app.status.value, inline=True),
    ]
    for question in catalog:
        if question.identifier:
            fields.append(CardField(name=question.label, value=truncate(app.extracted_identifier, limit), inline=True))
    for question in catalog:
        if question.identifier:
            continue
        fields.append(CardField(name=question.label, value=truncate(app.answers.get(question.key), limit)))
    if app.decision_note:
        fields.append(CardField(name="Decision note", value=truncate(app.decision_note, limit)))

    if app.decided_by and app.decided_at:
        footer = f"{app.status.value} • {app.decided_by.display_name} • {app.decided_at.isoformat(timespec='minutes')}"
    else:
        footer = f"Started: {app.created_at.isoformat(timespec='minutes')}"

    live = app.status == ApplicationStatus.SUBMITTED
    controls = [
        DecisionControl(action=action, label=label, disabled=not live)
        for action, label in CONTROL_LABELS.items()
    ]
    return ReviewCard(
        application_id=app.id,
        title="Whitelist application",
        status=app.status,
        fields=fields,
        footer=footer,
        controls=controls,
    )


class ReviewDispatcher:
    """Posts submitted applications to the staff queue with decision controls."""

    def __init__(
        self,
        store: ApplicationStore,
        config_store: CommunityConfigStore,
        messenger: StaffMessenger,
        catalog: Catalog = DEFAULT_CATALOG,
    ) -> None:
        self._store = store
        self._config = config_store
        self._messenger = messenger
        self._catalog = catalog

    async def dispatch(self, application_id: str) -> MessageRef:
        """Post the card for a submitted application.

        Raises:
            ApplicationNotFound: Unknown id.
            ReviewQueueNotConfigured: No reachable staff queue for the community.
        """

        app = self._store.get(application_id)
        if app is None:
            raise ApplicationNotFound(application_id)
        if app.status != ApplicationStatus.SUBMITTED:
            raise WhitelistError(f"Application {application_id} is {app.status.value}, not SUBMITTED")
        channel_id = self._config.get(app.community_id).staff_queue_channel_id
        if not channel_id:
            log_event("review_queue_missing", app.id, community=app.community_id)
            raise ReviewQueueNotConfigured(app.community_id)

        ref = await self._messenger.post_card(channel_id, render_card(app, self._catalog))
        self._store.set_review_card(app.id, ref)
        log_event("review_dispatched", app.id, community=app.community_id, applicant=app.applicant_id)
        return ref

    async def refresh(self, app: Application) -> bool:
        """Edit the posted card in place to reflect ``app``; best-effort."""

        if app.review_card_ref is None:
            return False
        try:
            await self._messenger.update_card(app.review_card_ref, render_card(app, self._catalog))
        except WhitelistError as exc:
            logger.warning("review card %s not updated: %s", app.id, exc)
            return False
        return True


__all__ = [
    "CardField",
    "DecisionControl",
    "ReviewCard",
    "ReviewDispatcher",
    "render_card",
    "truncate",
]
