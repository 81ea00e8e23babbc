"""Runtime settings for ragdesk, resolved once per process."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

import yaml

from .errors import ConfigurationError

CONFIG_PATH_ENV = "RAGDESK_CONFIG"

_ENV_NAMES: Dict[str, tuple[str, ...]] = {
    "search_endpoint": ("RAGDESK_SEARCH_ENDPOINT", "AZURE_AI_SEARCH_ENDPOINT"),
    "search_api_key": ("RAGDESK_SEARCH_API_KEY", "AZURE_AI_SEARCH_API_KEY"),
    "search_api_version": ("RAGDESK_SEARCH_API_VERSION",),
    "openai_endpoint": ("RAGDESK_OPENAI_ENDPOINT", "AZURE_OPENAI_ENDPOINT"),
    "openai_api_key": ("RAGDESK_OPENAI_API_KEY", "AZURE_OPENAI_API_KEY"),
    "openai_deployment": ("RAGDESK_OPENAI_DEPLOYMENT", "AZURE_OPENAI_DEPLOYMENT_NAME"),
    "openai_api_version": ("RAGDESK_OPENAI_API_VERSION",),
    "storage_account_url": ("RAGDESK_STORAGE_ACCOUNT_URL",),
    "storage_sas_token": ("RAGDESK_STORAGE_SAS_TOKEN",),
    "storage_container": ("RAGDESK_STORAGE_CONTAINER", "AZURE_STORAGE_CONTAINER_NAME"),
    "storage_root": ("RAGDESK_STORAGE_ROOT",),
    "database_url": ("RAGDESK_DATABASE_URL", "DATABASE_URL"),
    "search_backend": ("RAGDESK_SEARCH_BACKEND",),
    "llm_backend": ("RAGDESK_LLM_BACKEND",),
    "storage_backend": ("RAGDESK_STORAGE_BACKEND",),
    "llm_timeout_seconds": ("RAGDESK_LLM_TIMEOUT_SECONDS",),
    "http_timeout_seconds": ("RAGDESK_HTTP_TIMEOUT_SECONDS",),
    "settle_seconds": ("RAGDESK_SETTLE_SECONDS",),
    "batch_size": ("RAGDESK_BATCH_SIZE",),
    "queue_workers": ("RAGDESK_QUEUE_WORKERS",),
    "queue_max_attempts": ("RAGDESK_QUEUE_MAX_ATTEMPTS",),
}

_BACKENDS = {
    "search_backend": {"azure", "memory"},
    "llm_backend": {"azure", "mock"},
    "storage_backend": {"azure", "local", "memory"},
}


def clean_openai_endpoint(endpoint: str) -> str:
    """Normalise pasted Azure OpenAI URLs down to the resource base URL."""

    cleaned = (endpoint or "").strip()
    if cleaned.endswith("/models"):
        cleaned = cleaned[: -len("/models")]
    if "/openai/deployments/" in cleaned:
        parts = urlsplit(cleaned)
        if parts.scheme and parts.netloc:
            cleaned = f"{parts.scheme}://{parts.netloc}"
    return cleaned.rstrip("/")


@dataclass(frozen=True)
class Settings:
    search_endpoint: str = ""
    search_api_key: str = ""
    search_api_version: str = "2023-07-01-Preview"
    openai_endpoint: str = ""
    openai_api_key: str = ""
    openai_deployment: str = "gpt-4"
    openai_api_version: str = "2024-02-01"
    storage_account_url: str = ""
    storage_sas_token: str = ""
    storage_container: str = "aiva-files"
    storage_root: str = "data/storage"
    database_url: str = ""
    search_backend: str = "azure"
    llm_backend: str = "azure"
    storage_backend: str = "azure"
    llm_timeout_seconds: float = 30.0
    http_timeout_seconds: float = 30.0
    settle_seconds: float = 1.0
    batch_size: int = 5
    queue_workers: int = 2
    queue_max_attempts: int = 3

    def __post_init__(self) -> None:
        for name, allowed in _BACKENDS.items():
            value = getattr(self, name)
            if value not in allowed:
                raise ConfigurationError(
                    f"{name} must be one of {sorted(allowed)}, got '{value}'"
                )
        if self.batch_size <= 0:
            raise ConfigurationError("batch_size must be positive")
        if self.queue_max_attempts <= 0:
            raise ConfigurationError("queue_max_attempts must be positive")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Settings":
        """Build settings from a flat mapping, coercing to the declared field types."""

        kwargs: Dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in values or values[item.name] is None:
                continue
            raw = values[item.name]
            default = item.default
            try:
                if isinstance(default, bool):
                    kwargs[item.name] = str(raw).lower() in {"1", "true", "yes", "on"}
                elif isinstance(default, int):
                    kwargs[item.name] = int(raw)
                elif isinstance(default, float):
                    kwargs[item.name] = float(raw)
                else:
                    kwargs[item.name] = str(raw)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid value for {item.name}: {raw!r}") from exc
        if "openai_endpoint" in kwargs:
            kwargs["openai_endpoint"] = clean_openai_endpoint(kwargs["openai_endpoint"])
        if "search_endpoint" in kwargs:
            kwargs["search_endpoint"] = kwargs["search_endpoint"].rstrip("/")
        return cls(**kwargs)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return dict(data)


def _read_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, names in _ENV_NAMES.items():
        for env_name in names:
            value = environ.get(env_name)
            if value:
                values[key] = value
                break
    return values


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Merge the optional YAML file with environment variables (env wins)."""

    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    path = config_path or env.get(CONFIG_PATH_ENV)
    if path:
        values.update(_read_yaml(Path(path)))
    values.update(_read_env(env))
    return Settings.from_mapping(values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the memoized process settings."""

    return load_settings()


__all__ = [
    "CONFIG_PATH_ENV",
    "Settings",
    "clean_openai_endpoint",
    "get_settings",
    "load_settings",
]
