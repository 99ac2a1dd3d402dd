"""SQLite persistence for applications and community bindings."""
from .applications import SUPERSEDED_NOTE, ApplicationStore
from .community_config import CommunityConfigStore
from .migrate import migrate

__all__ = ["ApplicationStore", "CommunityConfigStore", "SUPERSEDED_NOTE", "migrate"]
