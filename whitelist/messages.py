"""Applicant- and staff-facing message templates."""
from __future__ import annotations

from typing import Optional

from .catalog import Question
from .models import ApplicationStatus

INTRO = (
    "**Whitelist interview**\n"
    "Answer **one question at a time**. If you make a mistake, press **Start whitelist** again to redo it."
)
RESUMED = "**Whitelist interview resumed.** Continue where you left off."
COMPLETED = "**Whitelist complete!** Your application was sent to staff for review."
EXPIRED = "This application expired after inactivity. Press **Start whitelist** to begin a new one."
SUPERSEDED = "A newer whitelist attempt was started; this one is closed."
NOTHING_TO_RESUME = "You have no whitelist interview in progress. Press **Start whitelist** to begin."
DM_BUSY = (
    "You already have a whitelist interview for another server open in your direct messages. "
    "Finish it first, or enable thread creation here and press **Continue whitelist**."
)
GENERIC_ERROR = "Something went wrong while processing that. Please try again in a moment."


def question_prompt(step: int, total: int, question: Question) -> str:
    return f"**Question {step + 1}/{total}**\n{question.prompt}"


def rejected_answer(reason: str) -> str:
    return f"{reason} Please try again."


def review_queue_missing(application_id: str) -> str:
    return (
        "Your answers were saved, but this server has no staff review channel configured. "
        f"Please contact staff and give them this reference: `{application_id}`."
    )


def started(location: str) -> str:
    return f"Whitelist started in {location}."


def decision_notice(status: ApplicationStatus, note: Optional[str]) -> str:
    label = {
        ApplicationStatus.APPROVED: "APPROVED",
        ApplicationStatus.REJECTED: "REJECTED",
        ApplicationStatus.ADJUST: "ADJUSTMENT REQUESTED",
    }.get(status, status.value)
    text = f"Your whitelist application was marked **{label}**."
    if status == ApplicationStatus.ADJUST:
        text += " You may press **Start whitelist** to submit a new one."
    if note:
        text += f"\n\nNote: {note}"
    return text


def reject_log_line(applicant_id: str, display_name: str, note: Optional[str]) -> str:
    return f"Whitelist rejected: {display_name} ({applicant_id})\nReason: {note or '—'}"
