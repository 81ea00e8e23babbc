"""Prefect flows wrapping the workspace job entrypoints.

Flow parameters stay serializable (ids and an optional config path) so the
flows can be deployed and scheduled; each run builds its own container from
settings and closes it afterwards.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from prefect import flow

from ..config import load_settings
from ..container import build_container
from .entrypoints import index_workspace_file, reconcile_workspace


@flow(name="ragdesk-reconcile-workspace")
def reconcile_workspace_flow(workspace_id: str, config_path: Optional[str] = None) -> Dict[str, Any]:
    """Re-index every file of a workspace."""

    container = build_container(load_settings(config_path))
    try:
        return reconcile_workspace(workspace_id, container)
    finally:
        container.close()


@flow(name="ragdesk-index-workspace-file")
def index_workspace_file_flow(
    workspace_id: str, file_id: str, config_path: Optional[str] = None
) -> Dict[str, Any]:
    """Index one stored file; failures raise so Prefect marks the run failed."""

    container = build_container(load_settings(config_path))
    try:
        return index_workspace_file(workspace_id, file_id, container)
    finally:
        container.close()


__all__ = ["index_workspace_file_flow", "reconcile_workspace_flow"]
