"""Deterministic workspace naming shared by storage, indexing and retrieval.

Every identifier is a pure function of ``(workspace_id, workspace_name)``.
The same pair must map to the same folder, index and semantic configuration
wherever it is computed; that mapping is what keeps tenants apart.

A workspace renamed after its index was created keeps the identifiers derived
from the name used at creation time. Nothing here migrates an index.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

WORKSPACE_PARENT_FOLDER = "workspace/"
LEGACY_CONTAINER_PREFIX = "workspace-"
SHORT_ID_LENGTH = 7
INDEX_SUFFIX = "index"
SEMANTIC_CONFIG_PREFIX = "search"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9-]")


@dataclass(frozen=True)
class WorkspaceIdentifiers:
    folder_fragment: str
    folder_path: str
    index_name: str
    semantic_config_name: str

    def blob_path(self, stored_name: str) -> str:
        return f"{self.folder_path}{stored_name}"


def sanitize_name(workspace_name: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9-]`` with ``-`` and lowercase."""

    return _UNSAFE_CHARS.sub("-", workspace_name or "").lower()


def short_id(workspace_id: str) -> str:
    return (workspace_id or "")[:SHORT_ID_LENGTH]


def folder_fragment(workspace_id: str, workspace_name: str) -> str:
    return f"{sanitize_name(workspace_name)}-{short_id(workspace_id)}"


def semantic_config_name(index_name: str) -> str:
    return f"{SEMANTIC_CONFIG_PREFIX}{index_name}"


def resolve(workspace_id: str, workspace_name: str) -> WorkspaceIdentifiers:
    """Derive the folder path, index name and semantic configuration name."""

    fragment = folder_fragment(workspace_id, workspace_name)
    index_name = f"{fragment}{INDEX_SUFFIX}"
    return WorkspaceIdentifiers(
        folder_fragment=fragment,
        folder_path=f"{WORKSPACE_PARENT_FOLDER}{fragment}/",
        index_name=index_name,
        semantic_config_name=semantic_config_name(index_name),
    )


def folder_from_container(container: str) -> Optional[str]:
    """Rebuild the workspace folder path from a ``workspace-{name}-{id}`` container.

    Older uploads referenced a per-workspace container instead of a folder in
    the main container. Returns ``None`` when the reference cannot be split
    into prefix, name and id.
    """

    parts = (container or "").split("-")
    if len(parts) < 3:
        return None
    workspace_id = parts[-1]
    workspace_name = "-".join(parts[1:-1])
    return f"{WORKSPACE_PARENT_FOLDER}{folder_fragment(workspace_id, workspace_name)}/"


__all__ = [
    "LEGACY_CONTAINER_PREFIX",
    "WORKSPACE_PARENT_FOLDER",
    "WorkspaceIdentifiers",
    "folder_fragment",
    "folder_from_container",
    "resolve",
    "sanitize_name",
    "semantic_config_name",
    "short_id",
]
