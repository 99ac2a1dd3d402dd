"""Lightweight CLI helpers for inspecting applications and binding community config."""
from __future__ import annotations

import argparse
import sqlite3
from typing import List, Optional

from config.community import ConfigField
from config.settings import settings
from storage.community_config import CommunityConfigStore


def tail_applications(limit: int = 20, status: Optional[str] = None) -> List[str]:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        sql = """
            SELECT updated_at, id, community_id, applicant_id, status, current_step, decided_by_name, decision_note
            FROM applications
        """
        params: list = []
        if status:
            sql += " WHERE status = ?"
            params.append(status.upper())
        sql += " ORDER BY updated_at DESC, rowid DESC LIMIT ?"
        params.append(limit)
        cursor.execute(sql, params)
        lines = []
        for row in cursor.fetchall():
            ts, app_id, community_id, applicant_id, state, step, reviewer, note = row
            line = f"[{ts}] {community_id}/{applicant_id} {app_id} {state} step={step}"
            if reviewer:
                line += f" by={reviewer}"
            if note:
                line += f" note={note!r}"
            lines.append(line)
            print(line)
        return lines
    finally:
        conn.close()


def show_config(community_id: str) -> None:
    cfg = CommunityConfigStore().get(community_id)
    for key, value in cfg.model_dump().items():
        print(f"{key}: {value or '-'}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail", type=int, help="Show the latest applications")
    parser.add_argument("--status", help="Filter --tail by status")
    parser.add_argument("--show-config", metavar="COMMUNITY", help="Print a community's bindings")
    parser.add_argument(
        "--set-config",
        nargs=3,
        metavar=("COMMUNITY", "FIELD", "VALUE"),
        help="Bind a channel or role; VALUE '-' clears it",
    )
    args = parser.parse_args(argv)

    if args.tail:
        tail_applications(args.tail, args.status)
    if args.set_config:
        community_id, field, value = args.set_config
        try:
            CommunityConfigStore().set_field(community_id, ConfigField(field), None if value == "-" else value)
        except ValueError as exc:
            parser.error(str(exc))
        show_config(community_id)
    if args.show_config:
        show_config(args.show_config)


if __name__ == "__main__":
    main()
