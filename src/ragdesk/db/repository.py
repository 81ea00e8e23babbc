"""Read access to the workspace and workspace-file tables owned by the host app."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..models import Workspace, WorkspaceFile
from .connection import get_engine, session_scope

LOGGER = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS workspaces (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(255) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS workspace_files (
        id VARCHAR(64) PRIMARY KEY,
        original_name VARCHAR(512) NOT NULL,
        stored_name VARCHAR(512) NOT NULL,
        mime_type VARCHAR(255) NOT NULL,
        size BIGINT NOT NULL DEFAULT 0,
        workspace_id VARCHAR(64) NOT NULL REFERENCES workspaces(id),
        uploaded_by VARCHAR(255) NOT NULL,
        uploaded_at TIMESTAMP NOT NULL
    )
    """,
)

_FILE_COLUMNS = (
    "id, original_name, stored_name, mime_type, size, workspace_id, uploaded_by, uploaded_at"
)


def _coerce_timestamp(value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, str):
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def _row_to_file(row: Mapping[str, Any]) -> WorkspaceFile:
    return WorkspaceFile(
        id=str(row["id"]),
        original_name=str(row["original_name"]),
        stored_name=str(row["stored_name"]),
        mime_type=str(row["mime_type"]),
        size=int(row["size"] or 0),
        workspace_id=str(row["workspace_id"]),
        uploaded_by=str(row["uploaded_by"]),
        uploaded_at=_coerce_timestamp(row["uploaded_at"]),
    )


class WorkspaceRepository:
    """Fetch workspaces and their files through plain SQL."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    @property
    def engine(self) -> Engine:
        return self._engine

    def ensure_schema(self) -> None:
        """Create the two tables when missing (local development and tests)."""

        with self._engine.begin() as connection:
            for statement in SCHEMA_STATEMENTS:
                connection.exec_driver_sql(statement)

    def get_workspace(self, workspace_id: str) -> Optional[Workspace]:
        with session_scope(self._engine) as session:
            row = session.execute(
                text("SELECT id, name FROM workspaces WHERE id = :id"),
                {"id": workspace_id},
            ).mappings().first()
        if row is None:
            return None
        return Workspace(id=str(row["id"]), name=str(row["name"]))

    def list_files(self, workspace_id: str) -> List[WorkspaceFile]:
        """Return every file of the workspace, newest upload first."""

        with session_scope(self._engine) as session:
            rows = session.execute(
                text(
                    f"SELECT {_FILE_COLUMNS} FROM workspace_files "
                    "WHERE workspace_id = :workspace_id ORDER BY uploaded_at DESC"
                ),
                {"workspace_id": workspace_id},
            ).mappings().all()
        return [_row_to_file(row) for row in rows]

    def get_file(self, file_id: str) -> Optional[WorkspaceFile]:
        with session_scope(self._engine) as session:
            row = session.execute(
                text(f"SELECT {_FILE_COLUMNS} FROM workspace_files WHERE id = :id"),
                {"id": file_id},
            ).mappings().first()
        return _row_to_file(row) if row is not None else None


__all__ = ["SCHEMA_STATEMENTS", "WorkspaceRepository"]
