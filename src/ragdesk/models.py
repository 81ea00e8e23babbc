"""Value objects passed between the ragdesk pipeline stages."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

_SCORE_KEY = "@search.score"
_RERANKER_SCORE_KEY = "@search.rerankerScore"


def _isoformat(value: dt.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Workspace:
    """Tenant container; only ``id`` and ``name`` matter to indexing."""

    id: str
    name: str


@dataclass(frozen=True)
class WorkspaceFile:
    """A file accepted into a workspace and stored in object storage."""

    id: str
    original_name: str
    stored_name: str
    mime_type: str
    size: int
    workspace_id: str
    uploaded_by: str
    uploaded_at: dt.datetime


@dataclass(frozen=True)
class ExtractionResult:
    file_name: str
    original_name: str
    content: str
    size: int


@dataclass(frozen=True)
class DocumentAnalysis:
    """Summary and key points derived from a document's text."""

    summary: str
    key_points: List[str] = field(default_factory=list)
    sentiment: str = "neutral"
    language: str = "English"
    tokens_used: int = 0


@dataclass(frozen=True)
class IndexDocument:
    """The searchable unit stored in a workspace index, keyed by file id."""

    id: str
    content: str
    file_name: str
    file_type: str
    workspace_id: str
    workspace_name: str
    uploaded_by: str
    uploaded_at: str
    summary: str = ""
    key_points: List[str] = field(default_factory=list)

    @classmethod
    def from_file(
        cls,
        workspace_file: WorkspaceFile,
        workspace: Workspace,
        *,
        content: str,
        analysis: DocumentAnalysis,
    ) -> "IndexDocument":
        return cls(
            id=workspace_file.id,
            content=content,
            file_name=workspace_file.original_name,
            file_type=workspace_file.mime_type,
            workspace_id=workspace.id,
            workspace_name=workspace.name,
            uploaded_by=workspace_file.uploaded_by,
            uploaded_at=_isoformat(workspace_file.uploaded_at),
            summary=analysis.summary,
            key_points=list(analysis.key_points),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize using the search index field names."""

        return {
            "id": self.id,
            "content": self.content,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "workspaceId": self.workspace_id,
            "workspaceName": self.workspace_name,
            "uploadedBy": self.uploaded_by,
            "uploadedAt": self.uploaded_at,
            "summary": self.summary,
            "keyPoints": list(self.key_points),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "IndexDocument":
        key_points = payload.get("keyPoints") or []
        return cls(
            id=str(payload.get("id") or ""),
            content=str(payload.get("content") or ""),
            file_name=str(payload.get("fileName") or ""),
            file_type=str(payload.get("fileType") or ""),
            workspace_id=str(payload.get("workspaceId") or ""),
            workspace_name=str(payload.get("workspaceName") or ""),
            uploaded_by=str(payload.get("uploadedBy") or ""),
            uploaded_at=str(payload.get("uploadedAt") or ""),
            summary=str(payload.get("summary") or ""),
            key_points=[str(point) for point in key_points],
        )


@dataclass(frozen=True)
class RankedDocument:
    """A search hit: the stored document plus the service's relevance scores."""

    document: IndexDocument
    score: float
    reranker_score: Optional[float] = None

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> "RankedDocument":
        reranker = hit.get(_RERANKER_SCORE_KEY)
        return cls(
            document=IndexDocument.from_payload(hit),
            score=float(hit.get(_SCORE_KEY) or 0.0),
            reranker_score=float(reranker) if reranker is not None else None,
        )

    @property
    def id(self) -> str:
        return self.document.id

    @property
    def file_name(self) -> str:
        return self.document.file_name

    @property
    def file_type(self) -> str:
        return self.document.file_type

    @property
    def summary(self) -> str:
        return self.document.summary

    @property
    def content(self) -> str:
        return self.document.content


__all__ = [
    "DocumentAnalysis",
    "ExtractionResult",
    "IndexDocument",
    "RankedDocument",
    "Workspace",
    "WorkspaceFile",
]
