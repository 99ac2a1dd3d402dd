"""Pydantic schemas for the whitelist admin API."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from whitelist.models import Application, ApplicationStatus


class ReviewerOut(BaseModel):
    id: str
    display_name: str


class ApplicationOut(BaseModel):
    id: str
    community_id: str
    applicant_id: str
    applicant_display_name: str
    status: ApplicationStatus
    current_step: int
    answers: Dict[str, str] = Field(default_factory=dict)
    extracted_identifier: Optional[str] = None
    conversation_kind: Optional[str] = None
    conversation_id: Optional[str] = None
    review_message_id: Optional[str] = None
    catalog_version: str
    created_at: datetime
    updated_at: datetime
    submitted_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    decided_by: Optional[ReviewerOut] = None
    decision_note: Optional[str] = None

    @classmethod
    def from_application(cls, app: Application) -> "ApplicationOut":
        ref = app.conversation_ref
        return cls(
            id=app.id,
            community_id=app.community_id,
            applicant_id=app.applicant_id,
            applicant_display_name=app.applicant_display_name,
            status=app.status,
            current_step=app.current_step,
            answers=dict(app.answers),
            extracted_identifier=app.extracted_identifier,
            conversation_kind=ref.kind if ref else None,
            conversation_id=ref.channel_id if ref else None,
            review_message_id=app.review_card_ref.message_id if app.review_card_ref else None,
            catalog_version=app.catalog_version,
            created_at=app.created_at,
            updated_at=app.updated_at,
            submitted_at=app.submitted_at,
            decided_at=app.decided_at,
            decided_by=(
                ReviewerOut(id=app.decided_by.id, display_name=app.decided_by.display_name)
                if app.decided_by
                else None
            ),
            decision_note=app.decision_note,
        )


class ApplicationList(BaseModel):
    items: List[ApplicationOut] = Field(default_factory=list)
    count: int = 0


class QuestionOut(BaseModel):
    step: int
    key: str
    label: str
    prompt: str
    max_length: int
    identifier: bool = False


class CatalogOut(BaseModel):
    version: str
    questions: List[QuestionOut] = Field(default_factory=list)


class ConfigValueReq(BaseModel):
    value: Optional[str] = None


class ExpireReq(BaseModel):
    ttl_hours: Optional[int] = Field(default=None, ge=0)


class ExpireResp(BaseModel):
    expired: List[str] = Field(default_factory=list)
    count: int = 0
