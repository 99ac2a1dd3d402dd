"""Persistence for per-community channel and role bindings."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from config.community import CommunityConfig, ConfigField, apply_field
from config.settings import settings

from .sqlite import get_conn, transaction

_SELECT = """
SELECT community_id, parent_channel_id, staff_queue_channel_id, reject_log_channel_id,
       pending_role_id, approved_role_id, rejected_role_id, staff_role_id
FROM community_config WHERE community_id = ?
"""

_UPSERT = """
INSERT INTO community_config (
    community_id, parent_channel_id, staff_queue_channel_id, reject_log_channel_id,
    pending_role_id, approved_role_id, rejected_role_id, staff_role_id, updated_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(community_id) DO UPDATE SET
    parent_channel_id = excluded.parent_channel_id,
    staff_queue_channel_id = excluded.staff_queue_channel_id,
    reject_log_channel_id = excluded.reject_log_channel_id,
    pending_role_id = excluded.pending_role_id,
    approved_role_id = excluded.approved_role_id,
    rejected_role_id = excluded.rejected_role_id,
    staff_role_id = excluded.staff_role_id,
    updated_at = excluded.updated_at
"""


def _load(conn: sqlite3.Connection, community_id: str) -> CommunityConfig:
    row = conn.execute(_SELECT, (community_id,)).fetchone()
    if row is None:
        return CommunityConfig(community_id=community_id)
    return CommunityConfig(**dict(row))


def _upsert(conn: sqlite3.Connection, cfg: CommunityConfig) -> None:
    conn.execute(
        _UPSERT,
        (
            cfg.community_id,
            cfg.parent_channel_id,
            cfg.staff_queue_channel_id,
            cfg.reject_log_channel_id,
            cfg.pending_role_id,
            cfg.approved_role_id,
            cfg.rejected_role_id,
            cfg.staff_role_id,
            datetime.now(timezone.utc).isoformat(timespec="seconds"),
        ),
    )


class CommunityConfigStore:  # SQLite-backed community bindings
    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    @property
    def path(self) -> str:
        return self._db_path or settings.DB_PATH

    def get(self, community_id: str) -> CommunityConfig:
        """Return stored bindings, or an empty config when nothing is bound yet."""

        with get_conn(self.path) as conn:
            return _load(conn, community_id)

    def save(self, cfg: CommunityConfig) -> CommunityConfig:
        with get_conn(self.path) as conn:
            _upsert(conn, cfg)
        return cfg

    def set_field(self, community_id: str, field: ConfigField, value: Optional[str]) -> CommunityConfig:
        """Update one binding through the typed setter table.

        The read and the write share one immediate transaction, so concurrent
        updates to different fields of the same community all survive.

        Raises:
            ValueError: If ``value`` is not a valid identifier.
        """

        with transaction(self.path) as conn:
            updated = apply_field(_load(conn, community_id), field, value)
            _upsert(conn, updated)
        return updated


__all__ = ["CommunityConfigStore"]
