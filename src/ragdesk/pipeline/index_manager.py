"""Create, check and drop per-workspace search indexes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from ..errors import SearchServiceError
from ..gateways.search import SearchGateway
from ..identifiers import semantic_config_name

LOGGER = logging.getLogger(__name__)

# name, type, key, searchable, filterable, sortable, facetable
INDEX_FIELDS: Tuple[Tuple[str, str, bool, bool, bool, bool, bool], ...] = (
    ("id", "Edm.String", True, False, True, True, False),
    ("content", "Edm.String", False, True, False, False, False),
    ("fileName", "Edm.String", False, True, True, True, False),
    ("fileType", "Edm.String", False, True, True, True, True),
    ("workspaceId", "Edm.String", False, False, True, False, False),
    ("workspaceName", "Edm.String", False, True, True, True, False),
    ("uploadedBy", "Edm.String", False, True, True, True, True),
    ("uploadedAt", "Edm.DateTimeOffset", False, False, True, True, False),
    ("summary", "Edm.String", False, True, False, False, False),
    ("keyPoints", "Collection(Edm.String)", False, True, False, False, False),
)

TITLE_FIELD = "fileName"
CONTENT_FIELDS = ("content", "summary")
KEYWORD_FIELDS = ("fileName", "workspaceName", "fileType", "keyPoints")


def field_definitions() -> List[Dict[str, Any]]:
    definitions = []
    for name, type_, key, searchable, filterable, sortable, facetable in INDEX_FIELDS:
        entry: Dict[str, Any] = {
            "name": name,
            "type": type_,
            "searchable": searchable,
            "filterable": filterable,
            "sortable": sortable,
            "facetable": facetable,
        }
        if key:
            entry["key"] = True
        definitions.append(entry)
    return definitions


def index_definition(index_name: str) -> Dict[str, Any]:
    """Full create payload: the fixed field schema plus one semantic configuration."""

    return {
        "name": index_name,
        "fields": field_definitions(),
        "semantic": {
            "configurations": [
                {
                    "name": semantic_config_name(index_name),
                    "prioritizedFields": {
                        "titleField": {"fieldName": TITLE_FIELD},
                        "prioritizedContentFields": [
                            {"fieldName": name} for name in CONTENT_FIELDS
                        ],
                        "prioritizedKeywordsFields": [
                            {"fieldName": name} for name in KEYWORD_FIELDS
                        ],
                    },
                }
            ]
        },
    }


class IndexManager:
    """Boolean-returning index lifecycle operations; service errors never escape."""

    def __init__(self, search: SearchGateway) -> None:
        self._search = search

    def exists(self, index_name: str) -> bool:
        try:
            return index_name in self._search.list_index_names()
        except Exception as exc:
            LOGGER.error("Failed to check if search index %s exists: %s", index_name, exc)
            return False

    def create(self, index_name: str) -> bool:
        LOGGER.info("Creating search index with semantic configuration: %s", index_name)
        try:
            self._search.create_index(index_definition(index_name))
        except SearchServiceError as exc:
            if exc.status_code == 409:
                LOGGER.info("Search index %s already exists", index_name)
                return True
            LOGGER.error(
                "Failed to create search index %s: %s",
                index_name,
                exc,
                extra={"status_code": exc.status_code},
            )
            return False
        except Exception as exc:
            LOGGER.error("Failed to create search index %s: %s", index_name, exc)
            return False
        LOGGER.info("Created search index %s", index_name)
        return True

    def delete(self, index_name: str) -> bool:
        try:
            self._search.delete_index(index_name)
        except SearchServiceError as exc:
            if exc.status_code == 404:
                LOGGER.info("Search index %s was already absent", index_name)
                return True
            LOGGER.error("Failed to delete search index %s: %s", index_name, exc)
            return False
        except Exception as exc:
            LOGGER.error("Failed to delete search index %s: %s", index_name, exc)
            return False
        LOGGER.info("Deleted search index %s", index_name)
        return True

    def ensure(self, index_name: str) -> bool:
        if self.exists(index_name):
            return True
        return self.create(index_name)


__all__ = ["INDEX_FIELDS", "IndexManager", "field_definitions", "index_definition"]
