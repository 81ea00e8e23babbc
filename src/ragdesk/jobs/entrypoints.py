"""Job entrypoints for workspace reconciliation and upload indexing.

Each entrypoint builds its services through the container, does one unit of
work and reports the outcome as a plain dict. ``schedule_*`` helpers push the
same work onto the container's ``IndexingQueue`` so it is retried on failure,
and ``jobs.flows`` wraps both as Prefect flows.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from ..container import ServiceContainer, build_container
from ..errors import RagdeskError, WorkspaceNotFoundError
from .queue import IndexingJob

LOGGER = logging.getLogger(__name__)


def reconcile_workspace(
    workspace_id: str, container: Optional[ServiceContainer] = None
) -> Dict[str, Any]:
    """Re-index every file of ``workspace_id`` and return the run counters."""

    services = container or build_container()
    report = services.reconciliation.run(workspace_id)
    LOGGER.info(
        "Reconciliation of %s finished: %s documents in %s batches (%s failed)",
        workspace_id,
        report.documents_prepared,
        report.batches_total,
        report.batches_failed,
    )
    payload = asdict(report)
    payload["succeeded"] = report.succeeded
    return payload


def index_workspace_file(
    workspace_id: str, file_id: str, container: Optional[ServiceContainer] = None
) -> Dict[str, Any]:
    """Index one stored file; raises so a queue can retry the attempt."""

    services = container or build_container()
    repository = services.repository
    workspace = repository.get_workspace(workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    workspace_file = repository.get_file(file_id)
    if workspace_file is None or workspace_file.workspace_id != workspace_id:
        raise LookupError(f"File '{file_id}' not found in workspace '{workspace_id}'")
    if not services.ingestor.ingest(workspace, workspace_file):
        raise RagdeskError(f"Indexing of file '{file_id}' failed")
    LOGGER.info("Indexed file %s for workspace %s", file_id, workspace_id)
    return {"workspace_id": workspace_id, "file_id": file_id, "indexed": True}


def schedule_reconciliation(container: ServiceContainer, workspace_id: str) -> IndexingJob:
    def _run() -> bool:
        return bool(reconcile_workspace(workspace_id, container)["succeeded"])

    return container.queue.submit(f"reconcile:{workspace_id}", _run)


def schedule_file_indexing(
    container: ServiceContainer, workspace_id: str, file_id: str
) -> IndexingJob:
    return container.queue.submit(
        f"index:{file_id}", index_workspace_file, workspace_id, file_id, container
    )


__all__ = [
    "index_workspace_file",
    "reconcile_workspace",
    "schedule_file_indexing",
    "schedule_reconciliation",
]
