"""Exception types raised across the whitelist flow."""
from __future__ import annotations


class WhitelistError(RuntimeError):  # Base error for the whitelist flow
    pass


class ApplicationNotFound(WhitelistError):
    def __init__(self, application_id: str) -> None:
        super().__init__(f"Application '{application_id}' not found")
        self.application_id = application_id


class SurfaceUnavailable(WhitelistError):
    """Neither a private thread nor a direct message could reach the applicant."""

    def __init__(self, message: str, instruction: str) -> None:
        super().__init__(message)
        self.instruction = instruction


class ConfigurationError(WhitelistError):  # Requires operator attention
    pass


class ReviewQueueNotConfigured(ConfigurationError):
    def __init__(self, community_id: str, detail: str = "no staff queue channel bound") -> None:
        super().__init__(f"Review queue unavailable for community {community_id}: {detail}")
        self.community_id = community_id


class NotificationFailed(WhitelistError):
    pass


class RoleUpdateFailed(WhitelistError):
    pass


__all__ = [
    "ApplicationNotFound",
    "ConfigurationError",
    "NotificationFailed",
    "ReviewQueueNotConfigured",
    "RoleUpdateFailed",
    "SurfaceUnavailable",
    "WhitelistError",
]
