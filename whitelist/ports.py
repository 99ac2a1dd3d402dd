"""Collaborator protocols the whitelist flow talks to.

Concrete implementations live in ``bot.adapters``; tests use in-memory fakes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .models import ConversationRef, MessageRef

if TYPE_CHECKING:  # pragma: no cover
    from .review import ReviewCard


class ConversationSurfaces(Protocol):
    async def open(self, community_id: str, applicant_id: str, application_id: str) -> ConversationRef:
        """Create a private thread, falling back to a direct message.

        Raises:
            SurfaceUnavailable: If neither option is possible.
        """
        ...

    async def send(self, ref: ConversationRef, text: str) -> None:
        """Raises ``SurfaceUnavailable`` when the surface cannot be written to."""
        ...

    async def close(self, ref: ConversationRef, reason: str) -> None:
        """Best-effort lock/archive. Never raises."""
        ...


class StaffMessenger(Protocol):
    async def post_card(self, channel_id: str, card: "ReviewCard") -> MessageRef: ...

    async def update_card(self, ref: MessageRef, card: "ReviewCard") -> None: ...

    async def post_text(self, channel_id: str, text: str) -> None: ...


class RoleManager(Protocol):
    async def grant(self, community_id: str, member_id: str, role_id: str) -> None: ...

    async def revoke(self, community_id: str, member_id: str, role_id: str) -> None: ...


class Notifier(Protocol):
    async def notify(self, applicant_id: str, text: str) -> None:
        """Raises ``NotificationFailed`` when the applicant cannot be reached."""
        ...


__all__ = ["ConversationSurfaces", "Notifier", "RoleManager", "StaffMessenger"]
