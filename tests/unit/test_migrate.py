"""Tests for the SQLite migration."""
from __future__ import annotations

import os
import sqlite3
import tempfile

import pytest

from config.settings import settings
from storage.migrate import migrate


@pytest.fixture()
def temp_db(monkeypatch: pytest.MonkeyPatch):
    """Provide a temporary database path for each test."""

    with tempfile.TemporaryDirectory() as td:
        db_path = os.path.join(td, "nested", "test.db")
        monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
        yield db_path


def test_migrate_creates_tables_and_is_idempotent(temp_db: str):
    migrate(temp_db)
    migrate(temp_db)
    assert os.path.exists(temp_db)
    conn = sqlite3.connect(temp_db)
    try:
        names = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type IN ('table', 'index')")
        }
    finally:
        conn.close()
    assert {"applications", "application_answers", "community_config", "ux_applications_live"} <= names
