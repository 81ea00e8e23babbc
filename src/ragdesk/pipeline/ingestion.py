"""Extract, summarize and index a single workspace file."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..identifiers import WorkspaceIdentifiers, resolve
from ..models import IndexDocument, Workspace, WorkspaceFile
from .extraction import ContentExtractor, is_unavailable
from .index_manager import IndexManager
from .indexer import Indexer
from .summarization import Summarizer, summary_or_fallback

LOGGER = logging.getLogger(__name__)


class FileIngestor:
    """Shared ingest half of the pipeline used by uploads and reconciliation."""

    def __init__(
        self,
        extractor: ContentExtractor,
        summarizer: Summarizer,
        index_manager: IndexManager,
        indexer: Indexer,
        *,
        settle_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.extractor = extractor
        self.summarizer = summarizer
        self.index_manager = index_manager
        self.indexer = indexer
        self._settle_seconds = settle_seconds
        self._sleep = sleep

    def prepare(
        self,
        workspace: Workspace,
        workspace_file: WorkspaceFile,
        identifiers: WorkspaceIdentifiers,
        *,
        skip_unavailable: bool = False,
    ) -> Optional[IndexDocument]:
        """Build the index document for ``workspace_file``.

        Returns ``None`` only when ``skip_unavailable`` is set and the blob
        could not be read.
        """

        blob_path = identifiers.blob_path(workspace_file.stored_name)
        extraction = self.extractor.extract(blob_path, workspace_file.original_name)
        if skip_unavailable and is_unavailable(extraction):
            LOGGER.warning(
                "Skipping file %s: content not available",
                workspace_file.original_name,
                extra={"file_id": workspace_file.id, "blob_path": blob_path},
            )
            return None
        analysis = summary_or_fallback(
            self.summarizer, extraction.content, workspace_file.original_name
        )
        return IndexDocument.from_file(
            workspace_file,
            workspace,
            content=extraction.content,
            analysis=analysis,
        )

    def ingest(self, workspace: Workspace, workspace_file: WorkspaceFile) -> bool:
        """Index a freshly uploaded file; failures are logged, never raised."""

        identifiers = resolve(workspace.id, workspace.name)
        try:
            if not self.index_manager.ensure(identifiers.index_name):
                LOGGER.warning("Search index %s is unavailable", identifiers.index_name)
                return False
            document = self.prepare(workspace, workspace_file, identifiers)
            if document is None:
                return False
            indexed = self.indexer.index_one(identifiers.index_name, document)
        except Exception:
            LOGGER.exception("Failed to index document %s", workspace_file.id)
            return False
        if not indexed:
            LOGGER.warning(
                "Failed to index document %s in index %s", workspace_file.id, identifiers.index_name
            )
            return False
        LOGGER.info(
            "Successfully indexed document %s in index %s", workspace_file.id, identifiers.index_name
        )
        if self._settle_seconds > 0:
            self._sleep(self._settle_seconds)
        return True


__all__ = ["FileIngestor"]
