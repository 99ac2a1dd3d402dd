"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

from config.settings import settings

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS applications (
  id TEXT PRIMARY KEY,
  community_id TEXT NOT NULL,
  applicant_id TEXT NOT NULL,
  applicant_display_name TEXT NOT NULL,
  status TEXT NOT NULL,
  current_step INTEGER NOT NULL DEFAULT 0,
  extracted_identifier TEXT,
  conversation_kind TEXT,
  conversation_id TEXT,
  conversation_parent_id TEXT,
  review_channel_id TEXT,
  review_message_id TEXT,
  catalog_version TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  submitted_at TEXT,
  decided_at TEXT,
  decided_by_id TEXT,
  decided_by_name TEXT,
  decision_note TEXT
);
""",
    """
CREATE UNIQUE INDEX IF NOT EXISTS ux_applications_live
  ON applications (community_id, applicant_id)
  WHERE status IN ('IN_PROGRESS', 'SUBMITTED');
""",
    """
CREATE INDEX IF NOT EXISTS ix_applications_applicant
  ON applications (community_id, applicant_id, created_at);
""",
    """
CREATE INDEX IF NOT EXISTS ix_applications_conversation
  ON applications (applicant_id, conversation_id);
""",
    """
CREATE TABLE IF NOT EXISTS application_answers (
  application_id TEXT NOT NULL,
  sequence INTEGER NOT NULL,
  question_key TEXT NOT NULL,
  answer TEXT NOT NULL,
  created_at TEXT NOT NULL,
  PRIMARY KEY (application_id, question_key),
  FOREIGN KEY (application_id) REFERENCES applications(id)
);
""",
    """
CREATE TABLE IF NOT EXISTS community_config (
  community_id TEXT PRIMARY KEY,
  parent_channel_id TEXT,
  staff_queue_channel_id TEXT,
  reject_log_channel_id TEXT,
  pending_role_id TEXT,
  approved_role_id TEXT,
  rejected_role_id TEXT,
  staff_role_id TEXT,
  updated_at TEXT NOT NULL
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    db_path = db_path or settings.DB_PATH
    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
