"""Search service gateways: Azure AI Search over REST and an in-memory stand-in."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Protocol, Sequence

import httpx

from ..errors import SearchServiceError
from .registry import GatewayConfig

LOGGER = logging.getLogger(__name__)

_KEY_FIELD = "id"
_ACTION_KEY = "@search.action"
_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
_FILTER_CLAUSE = re.compile(r"^\s*(\w+)\s+eq\s+'((?:[^']|'')*)'\s*$")


@dataclass(frozen=True)
class IndexingResult:
    """Per-document outcome reported by the search service."""

    key: str
    succeeded: bool
    status_code: int
    error_message: Optional[str] = None


class SearchGateway(Protocol):
    def list_index_names(self) -> List[str]: ...

    def create_index(self, definition: Mapping[str, Any]) -> None: ...

    def delete_index(self, index_name: str) -> None: ...

    def upload_documents(
        self, index_name: str, documents: Sequence[Mapping[str, Any]]
    ) -> List[IndexingResult]: ...

    def delete_documents(self, index_name: str, keys: Sequence[str]) -> List[IndexingResult]: ...

    def search(self, index_name: str, body: Mapping[str, Any]) -> List[Dict[str, Any]]: ...


def _parse_results(payload: Mapping[str, Any]) -> List[IndexingResult]:
    results: List[IndexingResult] = []
    for item in payload.get("value") or []:
        if not isinstance(item, Mapping):
            continue
        results.append(
            IndexingResult(
                key=str(item.get("key") or ""),
                succeeded=bool(item.get("status")),
                status_code=int(item.get("statusCode") or 0),
                error_message=item.get("errorMessage"),
            )
        )
    return results


class AzureSearchClient:
    """REST client for an Azure AI Search service."""

    def __init__(self, gateway: GatewayConfig) -> None:
        self._gateway = gateway
        self._api_version = str(gateway.config.get("api_version") or "2023-07-01-Preview")
        self._headers = {"Content-Type": "application/json"}
        self._headers.update({str(key): str(value) for key, value in gateway.headers.items()})

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        query = {"api-version": self._api_version}
        if params:
            query.update(params)
        try:
            with httpx.Client(
                base_url=self._gateway.endpoint,
                timeout=self._gateway.timeout_seconds,
            ) as client:
                response = client.request(
                    method,
                    path,
                    json=dict(json) if json is not None else None,
                    headers=self._headers,
                    params=query,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text
            raise SearchServiceError(
                f"Search service {method} {path} failed with {exc.response.status_code}: {detail}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise SearchServiceError(f"Search service {method} {path} failed: {exc}") from exc

        if response.status_code == 204 or not response.content:
            return None
        data = response.json()
        if not isinstance(data, Mapping):
            raise SearchServiceError(f"Search service returned non-object response: {data!r}")
        return dict(data)

    def list_index_names(self) -> List[str]:
        data = self._request("GET", "/indexes", params={"$select": "name"}) or {}
        return [str(item.get("name")) for item in data.get("value") or [] if isinstance(item, Mapping)]

    def create_index(self, definition: Mapping[str, Any]) -> None:
        self._request("POST", "/indexes", json=definition)

    def delete_index(self, index_name: str) -> None:
        self._request("DELETE", f"/indexes/{index_name}")

    def upload_documents(
        self, index_name: str, documents: Sequence[Mapping[str, Any]]
    ) -> List[IndexingResult]:
        body = {"value": [{_ACTION_KEY: "upload", **dict(document)} for document in documents]}
        data = self._request("POST", f"/indexes/{index_name}/docs/index", json=body) or {}
        return _parse_results(data)

    def delete_documents(self, index_name: str, keys: Sequence[str]) -> List[IndexingResult]:
        body = {"value": [{_ACTION_KEY: "delete", _KEY_FIELD: key} for key in keys]}
        data = self._request("POST", f"/indexes/{index_name}/docs/index", json=body) or {}
        return _parse_results(data)

    def search(self, index_name: str, body: Mapping[str, Any]) -> List[Dict[str, Any]]:
        data = self._request("POST", f"/indexes/{index_name}/docs/search", json=body) or {}
        self._gateway.validate_response(data)
        return [dict(item) for item in data.get("value") or [] if isinstance(item, Mapping)]


def _tokens(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        tokens: List[str] = []
        for item in value:
            tokens.extend(_tokens(item))
        return tokens
    return _TOKEN_PATTERN.findall(str(value).lower())


def _parse_filter(expression: str) -> List[tuple[str, str]]:
    clauses: List[tuple[str, str]] = []
    for part in re.split(r"\s+and\s+", expression.strip()):
        match = _FILTER_CLAUSE.match(part)
        if not match:
            raise SearchServiceError(f"Unsupported filter expression: {expression}", status_code=400)
        clauses.append((match.group(1), match.group(2).replace("''", "'")))
    return clauses


class InMemorySearchService:
    """Process-local search service with term-overlap scoring.

    Mirrors the behaviours the pipeline relies on: named indexes with a field
    schema, per-document upload results, last-write-wins by key, semantic
    configuration checks and ``field eq 'value'`` filters.
    """

    def __init__(self) -> None:
        self._indexes: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def list_index_names(self) -> List[str]:
        with self._lock:
            return list(self._indexes)

    def create_index(self, definition: Mapping[str, Any]) -> None:
        name = str(definition.get("name") or "")
        if not name:
            raise SearchServiceError("Index definition requires a name", status_code=400)
        with self._lock:
            if name in self._indexes:
                raise SearchServiceError(f"Index '{name}' already exists", status_code=409)
            self._indexes[name] = {"definition": dict(definition), "documents": {}}

    def delete_index(self, index_name: str) -> None:
        with self._lock:
            if self._indexes.pop(index_name, None) is None:
                raise SearchServiceError(f"Index '{index_name}' not found", status_code=404)

    def _require(self, index_name: str) -> Dict[str, Any]:
        index = self._indexes.get(index_name)
        if index is None:
            raise SearchServiceError(f"Index '{index_name}' not found", status_code=404)
        return index

    def documents(self, index_name: str) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {key: dict(doc) for key, doc in self._require(index_name)["documents"].items()}

    def upload_documents(
        self, index_name: str, documents: Sequence[Mapping[str, Any]]
    ) -> List[IndexingResult]:
        with self._lock:
            index = self._require(index_name)
            field_names = {field["name"] for field in index["definition"].get("fields", [])}
            stored: MutableMapping[str, Dict[str, Any]] = index["documents"]
            results: List[IndexingResult] = []
            for document in documents:
                key = document.get(_KEY_FIELD)
                if not isinstance(key, str) or not key:
                    results.append(
                        IndexingResult(
                            key=str(key or ""),
                            succeeded=False,
                            status_code=400,
                            error_message="Document key cannot be missing or empty.",
                        )
                    )
                    continue
                unknown = sorted(set(document) - field_names) if field_names else []
                if unknown:
                    results.append(
                        IndexingResult(
                            key=key,
                            succeeded=False,
                            status_code=400,
                            error_message=f"The property '{unknown[0]}' does not exist on the index.",
                        )
                    )
                    continue
                stored[key] = dict(document)
                results.append(IndexingResult(key=key, succeeded=True, status_code=201))
            return results

    def delete_documents(self, index_name: str, keys: Sequence[str]) -> List[IndexingResult]:
        with self._lock:
            stored = self._require(index_name)["documents"]
            results = []
            for key in keys:
                stored.pop(key, None)
                results.append(IndexingResult(key=key, succeeded=True, status_code=200))
            return results

    def search(self, index_name: str, body: Mapping[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            index = self._require(index_name)
            definition = index["definition"]
            config_name = body.get("semanticConfiguration")
            if body.get("queryType") == "semantic":
                configured = {
                    item.get("name")
                    for item in (definition.get("semantic") or {}).get("configurations", [])
                }
                if config_name not in configured:
                    raise SearchServiceError(
                        f"Unknown semantic configuration '{config_name}'", status_code=400
                    )
            searchable = [
                field["name"] for field in definition.get("fields", []) if field.get("searchable")
            ]
            documents = list(index["documents"].values())

        filter_expression = body.get("filter")
        if filter_expression:
            clauses = _parse_filter(str(filter_expression))
            documents = [
                doc for doc in documents if all(str(doc.get(name)) == value for name, value in clauses)
            ]

        query_terms = set(_tokens(body.get("search")))
        hits: List[Dict[str, Any]] = []
        for document in documents:
            doc_terms: List[str] = []
            for name in searchable:
                doc_terms.extend(_tokens(document.get(name)))
            score = float(sum(1 for term in doc_terms if term in query_terms))
            if query_terms and score <= 0:
                continue
            hit = dict(document)
            hit["@search.score"] = score
            hit["@search.rerankerScore"] = min(4.0, score / 2.0) if query_terms else None
            hits.append(hit)

        hits.sort(key=lambda item: item["@search.score"], reverse=True)
        top = int(body.get("top") or 50)
        return hits[:top]


__all__ = [
    "AzureSearchClient",
    "InMemorySearchService",
    "IndexingResult",
    "SearchGateway",
]
