"""Test fixtures and configuration for ragdesk tests."""

from __future__ import annotations

import datetime as dt
import struct
import sys
from pathlib import Path
from typing import Callable, Iterator, Sequence

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

_SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from ragdesk.config import Settings  # noqa: E402
from ragdesk.db.repository import WorkspaceRepository  # noqa: E402
from ragdesk.models import WorkspaceFile  # noqa: E402


def make_pdf(text_value: str) -> bytes:
    """Build a one-page PDF whose only content is ``text_value`` in Helvetica."""

    escaped = text_value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode("ascii") + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    output = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
    xref_offset = len(output)
    output += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("ascii")
    output += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n".encode("ascii")
    output += f"startxref\n{xref_offset}\n%%EOF\n".encode("ascii")
    return bytes(output)


def _biff_record(code: int, data: bytes = b"") -> bytes:
    return struct.pack("<HH", code, len(data)) + data


def _biff_label(rowx: int, colx: int, value: str) -> bytes:
    encoded = value.encode("latin-1")
    return _biff_record(0x0204, struct.pack("<HHHHB", rowx, colx, 0, len(encoded), 0) + encoded)


def make_xls(sheet_name: str, rows: Sequence[Sequence[str]]) -> bytes:
    """Build a raw BIFF8 workbook stream with one sheet of text cells."""

    encoded_name = sheet_name.encode("latin-1")

    def globals_stream(sheet_offset: int) -> bytes:
        return b"".join(
            [
                _biff_record(0x0809, struct.pack("<HHHH", 0x0600, 0x0005, 0x0DBB, 0x07CC)),
                _biff_record(0x0042, struct.pack("<H", 1200)),
                _biff_record(
                    0x0085,
                    struct.pack("<iBBBB", sheet_offset, 0, 0, len(encoded_name), 0) + encoded_name,
                ),
                _biff_record(0x000A),
            ]
        )

    sheet = [_biff_record(0x0809, struct.pack("<HHHH", 0x0600, 0x0010, 0x0DBB, 0x07CC))]
    for rowx, row in enumerate(rows):
        for colx, value in enumerate(row):
            sheet.append(_biff_label(rowx, colx, value))
    sheet.append(_biff_record(0x000A))
    offset = len(globals_stream(0))
    return globals_stream(offset) + b"".join(sheet)


@pytest.fixture
def memory_settings() -> Settings:
    return Settings(
        search_backend="memory",
        llm_backend="mock",
        storage_backend="memory",
        settle_seconds=0.0,
    )


@pytest.fixture
def repository() -> Iterator[WorkspaceRepository]:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    repo = WorkspaceRepository(engine)
    repo.ensure_schema()
    yield repo
    engine.dispose()


@pytest.fixture
def add_workspace(repository: WorkspaceRepository) -> Callable[[str, str], None]:
    def _add(workspace_id: str, name: str) -> None:
        with repository.engine.begin() as connection:
            connection.execute(
                text("INSERT INTO workspaces (id, name) VALUES (:id, :name)"),
                {"id": workspace_id, "name": name},
            )

    return _add


@pytest.fixture
def add_file(repository: WorkspaceRepository) -> Callable[..., WorkspaceFile]:
    def _add(
        file_id: str,
        workspace_id: str,
        original_name: str,
        *,
        mime_type: str = "text/plain",
        uploaded_at: dt.datetime | None = None,
        uploaded_by: str = "user-1",
    ) -> WorkspaceFile:
        workspace_file = WorkspaceFile(
            id=file_id,
            original_name=original_name,
            stored_name=f"{file_id}-{original_name}",
            mime_type=mime_type,
            size=0,
            workspace_id=workspace_id,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at or dt.datetime(2024, 5, 1, 12, 0, 0),
        )
        with repository.engine.begin() as connection:
            connection.execute(
                text(
                    "INSERT INTO workspace_files (id, original_name, stored_name, mime_type, size, "
                    "workspace_id, uploaded_by, uploaded_at) VALUES (:id, :original_name, "
                    ":stored_name, :mime_type, :size, :workspace_id, :uploaded_by, :uploaded_at)"
                ),
                {
                    "id": workspace_file.id,
                    "original_name": workspace_file.original_name,
                    "stored_name": workspace_file.stored_name,
                    "mime_type": workspace_file.mime_type,
                    "size": workspace_file.size,
                    "workspace_id": workspace_file.workspace_id,
                    "uploaded_by": workspace_file.uploaded_by,
                    "uploaded_at": workspace_file.uploaded_at.isoformat(sep=" "),
                },
            )
        return workspace_file

    return _add
