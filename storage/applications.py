"""Persistence for whitelist applications.

Every mutation is a single guarded statement or an immediate transaction, so
the database row (never process memory) decides which of two racing handlers
wins.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from config.settings import settings
from whitelist.models import (
    DECIDED_STATUSES,
    Application,
    ApplicationStatus,
    ConversationRef,
    MessageRef,
    Reviewer,
)

from .sqlite import get_conn, transaction

SUPERSEDED_NOTE = "superseded by new attempt"

_LIVE = (ApplicationStatus.IN_PROGRESS.value, ApplicationStatus.SUBMITTED.value)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def _row_to_application(conn: sqlite3.Connection, row: sqlite3.Row) -> Application:
    answers = conn.execute(
        "SELECT question_key, answer FROM application_answers WHERE application_id = ? ORDER BY sequence",
        (row["id"],),
    ).fetchall()
    conversation = None
    if row["conversation_id"]:
        conversation = ConversationRef(
            kind=row["conversation_kind"],
            channel_id=row["conversation_id"],
            parent_id=row["conversation_parent_id"],
        )
    card = None
    if row["review_message_id"]:
        card = MessageRef(channel_id=row["review_channel_id"], message_id=row["review_message_id"])
    decided_by = None
    if row["decided_by_id"]:
        decided_by = Reviewer(id=row["decided_by_id"], display_name=row["decided_by_name"] or "")
    return Application(
        id=row["id"],
        community_id=row["community_id"],
        applicant_id=row["applicant_id"],
        applicant_display_name=row["applicant_display_name"],
        status=row["status"],
        current_step=row["current_step"],
        answers={item["question_key"]: item["answer"] for item in answers},
        extracted_identifier=row["extracted_identifier"],
        conversation_ref=conversation,
        review_card_ref=card,
        catalog_version=row["catalog_version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        submitted_at=row["submitted_at"],
        decided_at=row["decided_at"],
        decided_by=decided_by,
        decision_note=row["decision_note"],
    )


class ApplicationStore:  # SQLite-backed application records
    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    @property
    def path(self) -> str:
        return self._db_path or settings.DB_PATH

    def _load(self, conn: sqlite3.Connection, application_id: str) -> Optional[Application]:
        row = conn.execute("SELECT * FROM applications WHERE id = ?", (application_id,)).fetchone()
        return _row_to_application(conn, row) if row else None

    def _load_many(self, conn: sqlite3.Connection, sql: str, params: Sequence[object]) -> List[Application]:
        return [_row_to_application(conn, row) for row in conn.execute(sql, tuple(params)).fetchall()]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, application_id: str) -> Optional[Application]:
        with get_conn(self.path) as conn:
            return self._load(conn, application_id)

    def find_live(self, community_id: str, applicant_id: str) -> Optional[Application]:
        with get_conn(self.path) as conn:
            row = conn.execute(
                """
                SELECT * FROM applications
                WHERE community_id = ? AND applicant_id = ? AND status IN (?, ?)
                ORDER BY created_at DESC, rowid DESC LIMIT 1
                """,
                (community_id, applicant_id, *_LIVE),
            ).fetchone()
            return _row_to_application(conn, row) if row else None

    def find_in_progress(
        self,
        applicant_id: str,
        *,
        community_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> Optional[Application]:
        """Return the applicant's active attempt, scoped by community or conversation."""

        clauses = ["applicant_id = ?", "status = ?"]
        params: List[object] = [applicant_id, ApplicationStatus.IN_PROGRESS.value]
        if community_id is not None:
            clauses.append("community_id = ?")
            params.append(community_id)
        if conversation_id is not None:
            clauses.append("conversation_id = ?")
            params.append(conversation_id)
        sql = (
            "SELECT * FROM applications WHERE "
            + " AND ".join(clauses)
            + " ORDER BY created_at DESC, rowid DESC LIMIT 1"
        )
        with get_conn(self.path) as conn:
            row = conn.execute(sql, tuple(params)).fetchone()
            return _row_to_application(conn, row) if row else None

    def list_for_applicant(self, community_id: str, applicant_id: str) -> List[Application]:
        with get_conn(self.path) as conn:
            return self._load_many(
                conn,
                """
                SELECT * FROM applications
                WHERE community_id = ? AND applicant_id = ?
                ORDER BY created_at, rowid
                """,
                (community_id, applicant_id),
            )

    def list_for_community(
        self, community_id: str, status: Optional[ApplicationStatus] = None
    ) -> List[Application]:
        sql = "SELECT * FROM applications WHERE community_id = ?"
        params: List[object] = [community_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(ApplicationStatus(status).value)
        sql += " ORDER BY created_at DESC, rowid DESC"
        with get_conn(self.path) as conn:
            return self._load_many(conn, sql, params)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def supersede_and_create(
        self,
        *,
        community_id: str,
        applicant_id: str,
        display_name: str,
        catalog_version: str,
        now: datetime,
    ) -> Tuple[Application, List[Application]]:
        """Expire any live attempt and insert a fresh one in a single transaction.

        Returns the new application and the attempts it superseded.
        """

        stamp = _iso(now)
        application_id = uuid4().hex
        with transaction(self.path) as conn:
            previous = [
                row["id"]
                for row in conn.execute(
                    "SELECT id FROM applications WHERE community_id = ? AND applicant_id = ? AND status IN (?, ?)",
                    (community_id, applicant_id, *_LIVE),
                ).fetchall()
            ]
            conn.execute(
                """
                UPDATE applications
                SET status = ?, decided_at = ?, updated_at = ?, decision_note = ?
                WHERE community_id = ? AND applicant_id = ? AND status IN (?, ?)
                """,
                (
                    ApplicationStatus.EXPIRED.value,
                    stamp,
                    stamp,
                    SUPERSEDED_NOTE,
                    community_id,
                    applicant_id,
                    *_LIVE,
                ),
            )
            conn.execute(
                """
                INSERT INTO applications (
                    id, community_id, applicant_id, applicant_display_name, status,
                    current_step, catalog_version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
                """,
                (
                    application_id,
                    community_id,
                    applicant_id,
                    display_name,
                    ApplicationStatus.IN_PROGRESS.value,
                    catalog_version,
                    stamp,
                    stamp,
                ),
            )
            created = self._load(conn, application_id)
            superseded = [app for app in (self._load(conn, pid) for pid in previous) if app]
        assert created is not None
        return created, superseded

    def bind_conversation(self, application_id: str, ref: ConversationRef, now: datetime) -> bool:
        """Attach a conversation surface; only an in-progress attempt accepts one."""

        with get_conn(self.path) as conn:
            cur = conn.execute(
                """
                UPDATE applications
                SET conversation_kind = ?, conversation_id = ?, conversation_parent_id = ?, updated_at = ?
                WHERE id = ? AND status = ?
                """,
                (
                    ref.kind,
                    ref.channel_id,
                    ref.parent_id,
                    _iso(now),
                    application_id,
                    ApplicationStatus.IN_PROGRESS.value,
                ),
            )
            return cur.rowcount == 1

    def record_answer(
        self,
        application_id: str,
        *,
        expected_step: int,
        key: str,
        answer: str,
        identifier: Optional[str],
        completes: bool,
        now: datetime,
    ) -> bool:
        """Store one answer and advance the step if the record is still at ``expected_step``.

        Returns ``False`` when another delivery already advanced the record or
        the attempt is no longer in progress.
        """

        stamp = _iso(now)
        status = ApplicationStatus.SUBMITTED if completes else ApplicationStatus.IN_PROGRESS
        with transaction(self.path) as conn:
            cur = conn.execute(
                """
                UPDATE applications
                SET current_step = current_step + 1,
                    status = ?,
                    extracted_identifier = COALESCE(?, extracted_identifier),
                    submitted_at = COALESCE(?, submitted_at),
                    updated_at = ?
                WHERE id = ? AND status = ? AND current_step = ?
                """,
                (
                    status.value,
                    identifier,
                    stamp if completes else None,
                    stamp,
                    application_id,
                    ApplicationStatus.IN_PROGRESS.value,
                    expected_step,
                ),
            )
            if cur.rowcount != 1:
                return False
            conn.execute(
                """
                INSERT INTO application_answers (application_id, sequence, question_key, answer, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (application_id, expected_step, key, answer, stamp),
            )
        return True

    def set_review_card(self, application_id: str, ref: MessageRef) -> bool:
        with get_conn(self.path) as conn:
            cur = conn.execute(
                "UPDATE applications SET review_channel_id = ?, review_message_id = ? WHERE id = ?",
                (ref.channel_id, ref.message_id, application_id),
            )
            return cur.rowcount == 1

    def decide(
        self,
        application_id: str,
        *,
        status: ApplicationStatus,
        reviewer: Reviewer,
        note: Optional[str],
        now: datetime,
    ) -> bool:
        """Move a submitted application to a decided status exactly once."""

        status = ApplicationStatus(status)
        if status not in DECIDED_STATUSES:
            raise ValueError(f"Not a decision status: {status.value}")
        stamp = _iso(now)
        with get_conn(self.path) as conn:
            cur = conn.execute(
                """
                UPDATE applications
                SET status = ?, decided_at = ?, decided_by_id = ?, decided_by_name = ?,
                    decision_note = ?, updated_at = ?
                WHERE id = ? AND status = ?
                """,
                (
                    status.value,
                    stamp,
                    reviewer.id,
                    reviewer.display_name,
                    note,
                    stamp,
                    application_id,
                    ApplicationStatus.SUBMITTED.value,
                ),
            )
            return cur.rowcount == 1

    def expire(self, application_id: str, *, note: str, now: datetime) -> bool:
        """Expire one in-progress attempt."""

        stamp = _iso(now)
        with get_conn(self.path) as conn:
            cur = conn.execute(
                """
                UPDATE applications
                SET status = ?, decided_at = ?, updated_at = ?, decision_note = ?
                WHERE id = ? AND status = ?
                """,
                (
                    ApplicationStatus.EXPIRED.value,
                    stamp,
                    stamp,
                    note,
                    application_id,
                    ApplicationStatus.IN_PROGRESS.value,
                ),
            )
            return cur.rowcount == 1

    def expire_idle(self, *, cutoff: datetime, note: str, now: datetime) -> List[Application]:
        """Expire every in-progress attempt not touched since ``cutoff``."""

        stamp = _iso(now)
        with transaction(self.path) as conn:
            ids = [
                row["id"]
                for row in conn.execute(
                    "SELECT id FROM applications WHERE status = ? AND updated_at < ?",
                    (ApplicationStatus.IN_PROGRESS.value, _iso(cutoff)),
                ).fetchall()
            ]
            for application_id in ids:
                conn.execute(
                    """
                    UPDATE applications
                    SET status = ?, decided_at = ?, updated_at = ?, decision_note = ?
                    WHERE id = ? AND status = ?
                    """,
                    (
                        ApplicationStatus.EXPIRED.value,
                        stamp,
                        stamp,
                        note,
                        application_id,
                        ApplicationStatus.IN_PROGRESS.value,
                    ),
                )
            return [app for app in (self._load(conn, application_id) for application_id in ids) if app]


__all__ = ["ApplicationStore", "SUPERSEDED_NOTE"]
