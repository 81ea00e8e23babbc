"""Workspace-scoped document indexing and retrieval for chat assistants."""

from .config import Settings, get_settings, load_settings
from .container import ServiceContainer, build_container
from .identifiers import WorkspaceIdentifiers, resolve

__version__ = "0.1.0"

__all__ = [
    "ServiceContainer",
    "Settings",
    "WorkspaceIdentifiers",
    "build_container",
    "get_settings",
    "load_settings",
    "resolve",
]
