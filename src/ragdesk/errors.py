"""Exception hierarchy shared by ragdesk gateways and pipeline components."""

from __future__ import annotations

from typing import Optional


class RagdeskError(RuntimeError):
    """Base class for every error raised by ragdesk."""


class ConfigurationError(RagdeskError):
    """Raised when settings are missing or inconsistent."""


class WorkspaceNotFoundError(RagdeskError):
    """Raised when a workspace id does not resolve to a stored workspace."""

    def __init__(self, workspace_id: str) -> None:
        super().__init__(f"Workspace '{workspace_id}' not found")
        self.workspace_id = workspace_id


class GatewayError(RagdeskError):
    """Raised when an external service call fails."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchServiceError(GatewayError):
    """Search service rejected a request or could not be reached."""


class StorageError(GatewayError):
    """Object storage read failed."""


class LLMGatewayError(GatewayError):
    """Chat completion failed. ``str(exc)`` is safe to show to end users."""


class LLMTimeoutError(LLMGatewayError):
    pass


class LLMRateLimitError(LLMGatewayError):
    pass


class LLMAuthenticationError(LLMGatewayError):
    pass


class LLMDeploymentNotFoundError(LLMGatewayError):
    pass


__all__ = [
    "ConfigurationError",
    "GatewayError",
    "LLMAuthenticationError",
    "LLMDeploymentNotFoundError",
    "LLMGatewayError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "RagdeskError",
    "SearchServiceError",
    "StorageError",
    "WorkspaceNotFoundError",
]
