"""Database helpers for ragdesk."""

from .connection import get_engine, resolve_database_url, session_scope
from .repository import WorkspaceRepository

__all__ = [
    "WorkspaceRepository",
    "get_engine",
    "resolve_database_url",
    "session_scope",
]
