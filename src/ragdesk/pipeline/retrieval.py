"""Semantic queries against a workspace index."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..gateways.search import SearchGateway
from ..identifiers import semantic_config_name
from ..models import RankedDocument
from .index_manager import IndexManager

LOGGER = logging.getLogger(__name__)

DEFAULT_TOP = 10
QUERY_LANGUAGE = "en-US"


def build_query(index_name: str, query_text: str, filter: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "search": query_text,
        "top": DEFAULT_TOP,
        "queryType": "semantic",
        "semanticConfiguration": semantic_config_name(index_name),
        "queryLanguage": QUERY_LANGUAGE,
    }
    if filter:
        body["filter"] = filter
    return body


class Retriever:
    def __init__(self, search: SearchGateway, index_manager: IndexManager) -> None:
        self._search = search
        self._index_manager = index_manager

    def search(
        self,
        index_name: str,
        query_text: str,
        filter: Optional[str] = None,
    ) -> List[RankedDocument]:
        """Return ranked hits in service order; an empty list on any failure."""

        if not self._index_manager.exists(index_name):
            LOGGER.info("Search index %s does not exist, no documents to retrieve", index_name)
            return []
        try:
            hits = self._search.search(index_name, build_query(index_name, query_text, filter))
            documents = [RankedDocument.from_hit(hit) for hit in hits]
        except Exception as exc:
            LOGGER.error("Failed to search documents in index %s: %s", index_name, exc)
            return []
        LOGGER.info("Found %s relevant documents in index %s", len(documents), index_name)
        return documents


__all__ = ["Retriever", "build_query"]
