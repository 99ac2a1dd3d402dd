"""Per-community bindings for channels and roles used by the whitelist flow."""
from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Dict, Optional

from pydantic import BaseModel

_SNOWFLAKE = re.compile(r"^\d{1,20}$", re.ASCII)


class ConfigField(str, Enum):
    PARENT_CHANNEL = "parent_channel"
    STAFF_QUEUE_CHANNEL = "staff_queue_channel"
    REJECT_LOG_CHANNEL = "reject_log_channel"
    PENDING_ROLE = "pending_role"
    APPROVED_ROLE = "approved_role"
    REJECTED_ROLE = "rejected_role"
    STAFF_ROLE = "staff_role"


class CommunityConfig(BaseModel):
    """Channel and role identifiers bound by an administrator."""

    community_id: str
    parent_channel_id: Optional[str] = None
    staff_queue_channel_id: Optional[str] = None
    reject_log_channel_id: Optional[str] = None
    pending_role_id: Optional[str] = None
    approved_role_id: Optional[str] = None
    rejected_role_id: Optional[str] = None
    staff_role_id: Optional[str] = None


def _set_parent_channel(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.parent_channel_id = value


def _set_staff_queue_channel(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.staff_queue_channel_id = value


def _set_reject_log_channel(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.reject_log_channel_id = value


def _set_pending_role(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.pending_role_id = value


def _set_approved_role(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.approved_role_id = value


def _set_rejected_role(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.rejected_role_id = value


def _set_staff_role(cfg: CommunityConfig, value: Optional[str]) -> None:
    cfg.staff_role_id = value


SETTERS: Dict[ConfigField, Callable[[CommunityConfig, Optional[str]], None]] = {
    ConfigField.PARENT_CHANNEL: _set_parent_channel,
    ConfigField.STAFF_QUEUE_CHANNEL: _set_staff_queue_channel,
    ConfigField.REJECT_LOG_CHANNEL: _set_reject_log_channel,
    ConfigField.PENDING_ROLE: _set_pending_role,
    ConfigField.APPROVED_ROLE: _set_approved_role,
    ConfigField.REJECTED_ROLE: _set_rejected_role,
    ConfigField.STAFF_ROLE: _set_staff_role,
}


def normalize_snowflake(value: Optional[str]) -> Optional[str]:
    """Return a cleaned platform identifier, ``None`` to clear.

    Raises:
        ValueError: If ``value`` is not a numeric identifier.
    """

    if value is None:
        return None
    cleaned = str(value).strip()
    if not cleaned:
        return None
    if not _SNOWFLAKE.match(cleaned):
        raise ValueError(f"Not a valid identifier: {value!r}")
    return cleaned


def apply_field(cfg: CommunityConfig, field: ConfigField, value: Optional[str]) -> CommunityConfig:
    """Return a copy of ``cfg`` with ``field`` set through its typed setter."""

    updated = cfg.model_copy()
    SETTERS[ConfigField(field)](updated, normalize_snowflake(value))
    return updated


__all__ = ["CommunityConfig", "ConfigField", "SETTERS", "apply_field", "normalize_snowflake"]
