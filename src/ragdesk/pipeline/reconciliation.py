"""Rebuild a workspace index from the files recorded for that workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from ..identifiers import resolve
from ..models import IndexDocument, Workspace, WorkspaceFile
from .ingestion import FileIngestor

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


class WorkspaceSource(Protocol):
    def get_workspace(self, workspace_id: str) -> Optional[Workspace]: ...

    def list_files(self, workspace_id: str) -> List[WorkspaceFile]: ...


@dataclass
class ReconciliationReport:
    workspace_id: str
    index_name: str = ""
    workspace_found: bool = False
    index_ready: bool = False
    files_total: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    documents_prepared: int = 0
    batches_total: int = 0
    batches_failed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.workspace_found and (self.files_total == 0 or self.index_ready)


class ReconciliationJob:
    """Re-extract, re-summarize and re-index every file of a workspace.

    There is no "already indexed" check: each run refreshes every document,
    overwriting by file id. Per-file and per-batch failures are logged and the
    run carries on.
    """

    def __init__(
        self,
        repository: WorkspaceSource,
        ingestor: FileIngestor,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._repository = repository
        self._ingestor = ingestor
        self._batch_size = max(1, batch_size)

    def reconcile(self, workspace_id: str) -> bool:
        return self.run(workspace_id).succeeded

    def run(self, workspace_id: str) -> ReconciliationReport:
        report = ReconciliationReport(workspace_id=workspace_id)
        workspace = self._repository.get_workspace(workspace_id)
        if workspace is None:
            LOGGER.error("Workspace %s not found", workspace_id)
            return report
        report.workspace_found = True

        files = self._repository.list_files(workspace_id)
        report.files_total = len(files)
        LOGGER.info("Found %s files in workspace %s (%s)", len(files), workspace.name, workspace.id)
        if not files:
            return report

        identifiers = resolve(workspace.id, workspace.name)
        report.index_name = identifiers.index_name
        if not self._ingestor.index_manager.ensure(identifiers.index_name):
            LOGGER.error("Failed to create search index %s", identifiers.index_name)
            return report
        report.index_ready = True

        documents: List[IndexDocument] = []
        for workspace_file in files:
            try:
                document = self._ingestor.prepare(
                    workspace, workspace_file, identifiers, skip_unavailable=True
                )
            except Exception:
                report.files_failed += 1
                LOGGER.exception(
                    "Error processing file %s", workspace_file.original_name,
                    extra={"file_id": workspace_file.id},
                )
                continue
            if document is None:
                report.files_skipped += 1
                continue
            documents.append(document)
        report.documents_prepared = len(documents)

        batches = [
            documents[start : start + self._batch_size]
            for start in range(0, len(documents), self._batch_size)
        ]
        report.batches_total = len(batches)
        for number, batch in enumerate(batches, start=1):
            LOGGER.info(
                "Indexing batch %s of %s (%s documents) into %s",
                number,
                len(batches),
                len(batch),
                identifiers.index_name,
            )
            if not self._ingestor.indexer.index_batch(identifiers.index_name, batch):
                report.batches_failed += 1
                LOGGER.warning("Failed to index batch %s of %s", number, len(batches))

        LOGGER.info(
            "Reconciled workspace %s: %s documents, %s skipped, %s failed files, %s failed batches",
            workspace_id,
            report.documents_prepared,
            report.files_skipped,
            report.files_failed,
            report.batches_failed,
        )
        return report


__all__ = ["ReconciliationJob", "ReconciliationReport", "WorkspaceSource"]
