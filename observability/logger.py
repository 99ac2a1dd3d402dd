"""Structured logging utilities for the whitelist flow.

Events go to the ``whitelist.events`` logger as one human line each; with
``ENABLE_FILE_LOGS`` on they are also written as JSON lines to ``LOG_FILE``
and as human lines to a ``-human.log`` sibling.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "0") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/whitelist.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Keys printed after the event kind, in this order, when present.
HUMAN_KEYS = ("community", "applicant", "status", "step", "action", "reviewer", "outcome", "reason")

_logger = logging.getLogger("whitelist.events")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False


def _human_formatter() -> logging.Formatter:
    return logging.Formatter(HUMAN_FORMAT, datefmt=DATE_FORMAT)


def _rotating(path: str) -> logging.handlers.RotatingFileHandler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(LOG_LEVEL)
    return handler


def _human_file_name() -> str:
    name = LOG_FILE if LOG_FILE.endswith(".log") else f"{LOG_FILE}.log"
    return name[: -len(".log")] + "-human.log"


def _ensure_handlers() -> None:
    if _logger.handlers:
        return

    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(LOG_LEVEL)
    console.setFormatter(_human_formatter())
    console.addFilter(lambda record: getattr(record, "is_json", False) is not True)
    _logger.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return

    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    json_file = _rotating(LOG_FILE)
    json_file.setFormatter(logging.Formatter("%(message)s"))
    json_file.addFilter(lambda record: getattr(record, "is_json", False) is True)
    _logger.addHandler(json_file)

    human_file = _rotating(_human_file_name())
    human_file.setFormatter(_human_formatter())
    human_file.addFilter(lambda record: getattr(record, "is_json", False) is not True)
    _logger.addHandler(human_file)


def configure_logging(level: str | None = None) -> None:
    """Route module loggers (``logging.getLogger(__name__)``) to stdout."""

    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=HUMAN_FORMAT, datefmt=DATE_FORMAT)
    # discord.py is chatty at INFO.
    logging.getLogger("discord").setLevel(logging.WARNING)


def _format_human(evt: dict[str, Any]) -> str:
    parts = [f"application={evt.get('application_id') or '-'}", f"kind={evt.get('kind')}"]
    parts.extend(f"{key}={evt[key]}" for key in HUMAN_KEYS if evt.get(key) is not None)
    return " ".join(parts)


def _emit(msg: str, *, is_json: bool) -> None:
    record = _logger.makeRecord(
        name=_logger.name,
        level=logging.INFO,
        fn="",
        lno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.is_json = is_json  # type: ignore[attr-defined]
    _logger.handle(record)


def log_event(kind: str, application_id: str | None, **fields: Any) -> None:
    """Record one flow event.

    ``application_id`` is ``None`` for events not tied to an application,
    such as configuration changes.
    """

    _ensure_handlers()

    payload: dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "application_id": application_id,
    }
    payload.update(fields)

    _emit(_format_human(payload), is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(json.dumps(payload, ensure_ascii=False, default=str), is_json=True)


__all__ = ["configure_logging", "log_event"]
