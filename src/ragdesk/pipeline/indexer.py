"""Upload and retract documents in a workspace index."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Sequence, Union

from ..gateways.search import SearchGateway
from ..models import IndexDocument

LOGGER = logging.getLogger(__name__)

DocumentLike = Union[IndexDocument, Mapping[str, Any]]


def _payload(document: DocumentLike) -> Dict[str, Any]:
    if isinstance(document, IndexDocument):
        return document.to_payload()
    return dict(document)


class Indexer:
    """Single upload attempt per call; failures are logged and reported as ``False``."""

    def __init__(self, search: SearchGateway) -> None:
        self._search = search

    def index_one(self, index_name: str, document: DocumentLike) -> bool:
        payload = _payload(document)
        try:
            results = self._search.upload_documents(index_name, [payload])
        except Exception as exc:
            LOGGER.error("Failed to index document in index %s: %s", index_name, exc)
            return False
        if results and results[0].succeeded:
            LOGGER.info("Indexed document %s in index %s", payload.get("id"), index_name)
            return True
        message = results[0].error_message if results else "no result returned"
        LOGGER.warning(
            "Failed to index document %s in index %s: %s",
            payload.get("id"),
            index_name,
            message,
        )
        return False

    def index_batch(self, index_name: str, documents: Sequence[DocumentLike]) -> bool:
        """Upload ``documents`` in one call; ``True`` when at least one succeeded."""

        if not documents:
            return False
        payloads = [_payload(document) for document in documents]
        try:
            results = self._search.upload_documents(index_name, payloads)
        except Exception as exc:
            LOGGER.error("Failed to index documents in index %s: %s", index_name, exc)
            return False

        success_count = 0
        failure_count = 0
        for result in results:
            if result.succeeded:
                success_count += 1
                continue
            failure_count += 1
            LOGGER.warning(
                "Failed to index document %s: %s",
                result.key,
                result.error_message,
                extra={"index_name": index_name, "status_code": result.status_code},
            )
        LOGGER.info(
            "Indexed documents in index %s: %s succeeded, %s failed",
            index_name,
            success_count,
            failure_count,
        )
        return success_count > 0

    def remove(self, index_name: str, document_ids: Sequence[str]) -> bool:
        """Retract documents whose files were deleted from the workspace."""

        if not document_ids:
            return True
        try:
            results = self._search.delete_documents(index_name, list(document_ids))
        except Exception as exc:
            LOGGER.error("Failed to remove documents from index %s: %s", index_name, exc)
            return False
        failed = [result for result in results if not result.succeeded]
        for result in failed:
            LOGGER.warning("Failed to remove document %s: %s", result.key, result.error_message)
        LOGGER.info(
            "Removed %s of %s documents from index %s",
            len(results) - len(failed),
            len(document_ids),
            index_name,
        )
        return not failed


__all__ = ["Indexer"]
