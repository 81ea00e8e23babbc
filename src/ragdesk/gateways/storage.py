"""Object storage readers for workspace files."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple
from urllib.parse import quote

import httpx

from ..errors import StorageError
from .registry import GatewayConfig

LOGGER = logging.getLogger(__name__)


class ObjectStore(Protocol):
    default_container: str

    def get_bytes(self, path: str, container: Optional[str] = None) -> bytes: ...


class BlobObjectStore:
    """Read blobs from Azure Blob Storage with a SAS token."""

    def __init__(self, gateway: GatewayConfig) -> None:
        self._gateway = gateway
        self.default_container = str(gateway.config.get("container") or "")
        self._sas_token = str(gateway.config.get("sas_token") or "")

    def blob_url(self, path: str, container: Optional[str] = None) -> str:
        target = container or self.default_container
        base = self._gateway.endpoint.rstrip("/")
        url = f"{base}/{quote(target)}/{quote(path.lstrip('/'))}"
        if self._sas_token:
            url = f"{url}?{self._sas_token}"
        return url

    def get_bytes(self, path: str, container: Optional[str] = None) -> bytes:
        target = container or self.default_container
        url = self.blob_url(path, target)
        try:
            with httpx.Client(timeout=self._gateway.timeout_seconds) as client:
                response = client.get(url, headers={"x-ms-version": "2021-08-06"})
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404:
                message = f"Blob '{path}' not found in container '{target}'"
            else:
                message = f"Blob download failed with status {status}"
            raise StorageError(message, status_code=status) from exc
        except httpx.HTTPError as exc:
            raise StorageError(f"Blob download failed: {exc}") from exc
        LOGGER.debug("Downloaded %s bytes from %s/%s", len(response.content), target, path)
        return response.content


class LocalObjectStore:
    """Serve blobs from ``<root>/<container>/<path>`` on the local filesystem."""

    def __init__(self, root: str | Path, default_container: str) -> None:
        self.root = Path(root)
        self.default_container = default_container

    def _resolve(self, path: str, container: Optional[str]) -> Path:
        base = (self.root / (container or self.default_container)).resolve()
        target = (base / path.lstrip("/")).resolve()
        if base != target and base not in target.parents:
            raise StorageError(f"Path '{path}' escapes the storage root")
        return target

    def get_bytes(self, path: str, container: Optional[str] = None) -> bytes:
        target = self._resolve(path, container)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Blob '{path}' not found", status_code=404) from exc
        except OSError as exc:
            raise StorageError(f"Unable to read '{path}': {exc}") from exc

    def put_bytes(self, path: str, data: bytes, container: Optional[str] = None) -> Path:
        target = self._resolve(path, container)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target


class InMemoryObjectStore:
    def __init__(self, default_container: str = "aiva-files") -> None:
        self.default_container = default_container
        self._blobs: Dict[Tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def put_bytes(self, path: str, data: bytes, container: Optional[str] = None) -> None:
        with self._lock:
            self._blobs[(container or self.default_container, path)] = bytes(data)

    def get_bytes(self, path: str, container: Optional[str] = None) -> bytes:
        key = (container or self.default_container, path)
        with self._lock:
            if key not in self._blobs:
                raise StorageError(f"Blob '{path}' not found in container '{key[0]}'", status_code=404)
            return self._blobs[key]


__all__ = [
    "BlobObjectStore",
    "InMemoryObjectStore",
    "LocalObjectStore",
    "ObjectStore",
]
