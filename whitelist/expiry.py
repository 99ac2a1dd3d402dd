"""Idle-expiry helpers for in-progress applications."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from config.settings import settings
from observability import log_event
from storage.applications import ApplicationStore

from .engine import IDLE_NOTE, utcnow
from .models import Application
from .ports import ConversationSurfaces


def expire_idle(
    store: ApplicationStore, now: Optional[datetime] = None, ttl_hours: Optional[int] = None
) -> List[Application]:
    """Expire in-progress applications idle longer than the TTL."""

    current = now or utcnow()
    ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.APPLICATION_TTL_HOURS)
    expired = store.expire_idle(cutoff=current - ttl, note=IDLE_NOTE, now=current)
    for app in expired:
        log_event("application_expired", app.id, applicant=app.applicant_id, reason=IDLE_NOTE)
    return expired


async def sweep_idle(
    store: ApplicationStore,
    surfaces: Optional[ConversationSurfaces] = None,
    now: Optional[datetime] = None,
    ttl_hours: Optional[int] = None,
) -> List[Application]:
    """Expire idle applications and close their conversation surfaces."""

    expired = expire_idle(store, now=now, ttl_hours=ttl_hours)
    if surfaces is not None:
        for app in expired:
            if app.conversation_ref is not None:
                await surfaces.close(app.conversation_ref, IDLE_NOTE)
    return expired


__all__ = ["expire_idle", "sweep_idle"]
