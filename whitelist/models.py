"""Domain models for whitelist applications."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class ApplicationStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ADJUST = "ADJUST"
    EXPIRED = "EXPIRED"


LIVE_STATUSES = (ApplicationStatus.IN_PROGRESS, ApplicationStatus.SUBMITTED)
TERMINAL_STATUSES = (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)
DECIDED_STATUSES = TERMINAL_STATUSES + (ApplicationStatus.ADJUST,)


class ConversationRef(BaseModel):
    """Where an interview is taking place: a private thread or a direct message."""

    kind: Literal["thread", "dm"]
    channel_id: str
    parent_id: Optional[str] = None


class MessageRef(BaseModel):
    channel_id: str
    message_id: str


class Reviewer(BaseModel):
    id: str
    display_name: str


class Application(BaseModel):
    """One attempt by one applicant to complete the interview."""

    id: str
    community_id: str
    applicant_id: str
    applicant_display_name: str
    status: ApplicationStatus = ApplicationStatus.IN_PROGRESS
    current_step: int = Field(default=0, ge=0)
    answers: Dict[str, str] = Field(default_factory=dict)
    extracted_identifier: Optional[str] = None
    conversation_ref: Optional[ConversationRef] = None
    review_card_ref: Optional[MessageRef] = None
    catalog_version: str
    created_at: datetime
    updated_at: datetime
    submitted_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    decided_by: Optional[Reviewer] = None
    decision_note: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def is_decided(self) -> bool:
        return self.status in DECIDED_STATUSES


class DecisionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ADJUST = "adjust"


ACTION_STATUS = {
    DecisionAction.APPROVE: ApplicationStatus.APPROVED,
    DecisionAction.REJECT: ApplicationStatus.REJECTED,
    DecisionAction.ADJUST: ApplicationStatus.ADJUST,
}


__all__ = [
    "ACTION_STATUS",
    "Application",
    "ApplicationStatus",
    "ConversationRef",
    "DECIDED_STATUSES",
    "DecisionAction",
    "LIVE_STATUSES",
    "MessageRef",
    "Reviewer",
    "TERMINAL_STATUSES",
]
