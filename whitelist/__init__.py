"""Whitelist interview and review flow."""
from .catalog import CATALOG_VERSION, DEFAULT_CATALOG, Catalog, Question
from .errors import (
    ApplicationNotFound,
    ConfigurationError,
    NotificationFailed,
    ReviewQueueNotConfigured,
    RoleUpdateFailed,
    SurfaceUnavailable,
    WhitelistError,
)
from .models import (
    Application,
    ApplicationStatus,
    ConversationRef,
    DecisionAction,
    MessageRef,
    Reviewer,
)

__all__ = [
    "Application",
    "ApplicationNotFound",
    "ApplicationStatus",
    "CATALOG_VERSION",
    "Catalog",
    "ConfigurationError",
    "ConversationRef",
    "DEFAULT_CATALOG",
    "DecisionAction",
    "MessageRef",
    "NotificationFailed",
    "Question",
    "ReviewQueueNotConfigured",
    "Reviewer",
    "RoleUpdateFailed",
    "SurfaceUnavailable",
    "WhitelistError",
]
