"""Resolve gateway definitions for the external services ragdesk talks to."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Sequence

from ..config import Settings
from ..errors import ConfigurationError

SEARCH_GATEWAY = "search"
OPENAI_GATEWAY = "openai"
STORAGE_GATEWAY = "storage"


@dataclass(frozen=True)
class GatewaySchema:
    """Lightweight schema metadata for validating gateway payloads."""

    request_required: Sequence[str] = field(default_factory=tuple)
    response_required: Sequence[str] = field(default_factory=tuple)

    @staticmethod
    def from_mapping(mapping: Mapping[str, Any] | None) -> "GatewaySchema":
        if not mapping:
            return GatewaySchema()
        request = mapping.get("request") if isinstance(mapping, Mapping) else None
        response = mapping.get("response") if isinstance(mapping, Mapping) else None
        request_required: Sequence[str] = tuple(
            request.get("required", []) if isinstance(request, Mapping) else []
        )
        response_required: Sequence[str] = tuple(
            response.get("required", []) if isinstance(response, Mapping) else []
        )
        return GatewaySchema(
            request_required=request_required,
            response_required=response_required,
        )


@dataclass(frozen=True)
class GatewayConfig:
    """Endpoint, credentials and limits for one external service."""

    alias: str
    endpoint: str
    timeout_seconds: float
    headers: Mapping[str, str] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)
    schema: GatewaySchema = field(default_factory=GatewaySchema)

    def validate_request(self, payload: Mapping[str, Any]) -> None:
        missing = [key for key in self.schema.request_required if key not in payload]
        if missing:
            raise ValueError(
                f"Gateway '{self.alias}' payload missing required keys: {', '.join(missing)}"
            )

    def validate_response(self, payload: Mapping[str, Any]) -> None:
        missing = [key for key in self.schema.response_required if key not in payload]
        if missing:
            raise ValueError(
                f"Gateway '{self.alias}' response missing required keys: {', '.join(missing)}"
            )


def _require(value: str, name: str, alias: str) -> str:
    if not value:
        raise ConfigurationError(f"Gateway '{alias}' requires {name} to be configured")
    return value


def load_gateway(alias: str, settings: Settings) -> GatewayConfig:
    """Build the gateway configuration for ``alias`` from process settings."""

    if alias == SEARCH_GATEWAY:
        return GatewayConfig(
            alias=alias,
            endpoint=_require(settings.search_endpoint, "search_endpoint", alias),
            timeout_seconds=settings.http_timeout_seconds,
            headers={"api-key": _require(settings.search_api_key, "search_api_key", alias)},
            config={"api_version": settings.search_api_version},
            schema=GatewaySchema.from_mapping({"response": {"required": ["value"]}}),
        )
    if alias == OPENAI_GATEWAY:
        return GatewayConfig(
            alias=alias,
            endpoint=_require(settings.openai_endpoint, "openai_endpoint", alias),
            timeout_seconds=settings.llm_timeout_seconds,
            headers={"api-key": _require(settings.openai_api_key, "openai_api_key", alias)},
            config={
                "deployment": settings.openai_deployment,
                "api_version": settings.openai_api_version,
            },
            schema=GatewaySchema.from_mapping(
                {
                    "request": {"required": ["messages"]},
                    "response": {"required": ["choices"]},
                }
            ),
        )
    if alias == STORAGE_GATEWAY:
        config: Dict[str, Any] = {"container": settings.storage_container}
        if settings.storage_sas_token:
            config["sas_token"] = settings.storage_sas_token.lstrip("?")
        return GatewayConfig(
            alias=alias,
            endpoint=_require(settings.storage_account_url, "storage_account_url", alias),
            timeout_seconds=settings.http_timeout_seconds,
            config=config,
        )
    raise LookupError(f"No gateway registered with alias '{alias}'")


__all__ = [
    "GatewayConfig",
    "GatewaySchema",
    "OPENAI_GATEWAY",
    "SEARCH_GATEWAY",
    "STORAGE_GATEWAY",
    "load_gateway",
]
