"""Turn stored workspace files into searchable text.

``ContentExtractor.extract`` never raises: unreadable blobs and unsupported
formats come back as bracketed placeholder strings so callers can index or
skip them without special error handling.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

import xlrd
from bs4 import BeautifulSoup
from docx import Document
from openpyxl import load_workbook
from pypdf import PdfReader

from ..gateways.storage import ObjectStore
from ..identifiers import LEGACY_CONTAINER_PREFIX, WORKSPACE_PARENT_FOLDER, folder_from_container
from ..models import ExtractionResult

LOGGER = logging.getLogger(__name__)

MAX_CONTENT_TOKENS = 10_000
CHARS_PER_TOKEN = 4
MAX_CONTENT_CHARS = MAX_CONTENT_TOKENS * CHARS_PER_TOKEN

UNAVAILABLE_PREFIX = "[Content not available"
PDF_FAILURE = "[Failed to extract text from PDF file]"
DOCX_FAILURE = "[Failed to extract text from DOCX file]"
EXCEL_FAILURE = "[Failed to extract content from Excel file]"
DOC_UNSUPPORTED = (
    "[Content extraction not supported for .doc files. Please convert to .docx format.]"
)

_WHITESPACE = re.compile(r"\s+")


def truncate_for_tokens(content: str, max_tokens: int = MAX_CONTENT_TOKENS) -> str:
    """Cut ``content`` to roughly ``max_tokens`` tokens at four characters per token."""

    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(content) <= max_chars:
        return content
    LOGGER.warning("Content truncated from %s to %s characters", len(content), max_chars)
    return content[:max_chars]


def extract_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    except Exception:
        LOGGER.exception("PDF extraction error")
        return PDF_FAILURE


def extract_docx(data: bytes) -> str:
    try:
        document = Document(io.BytesIO(data))
        chunks = [paragraph.text for paragraph in document.paragraphs if paragraph.text]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                row_text = "\t".join(cells).strip()
                if row_text:
                    chunks.append(row_text)
        return "\n".join(chunks)
    except Exception:
        LOGGER.exception("DOCX extraction error")
        return DOCX_FAILURE


def _csv_section(title: str, rows: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return f"\n\nSheet: {title}\n{buffer.getvalue()}"


def extract_workbook(data: bytes) -> str:
    """Render every sheet as comma-delimited rows under a ``Sheet: <name>`` header."""

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        sections = [
            _csv_section(sheet.title, sheet.iter_rows(values_only=True))
            for sheet in workbook.worksheets
        ]
        workbook.close()
        return "".join(sections)
    except Exception:
        LOGGER.exception("Excel extraction error")
        return EXCEL_FAILURE


def _legacy_cell(value: Any) -> Any:
    # BIFF stores every number as a double
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def extract_legacy_workbook(data: bytes) -> str:
    """Same layout as ``extract_workbook`` for BIFF ``.xls`` files, read with xlrd."""

    try:
        if xlrd.inspect_format(content=data) == "xlsx":
            return extract_workbook(data)
        book = xlrd.open_workbook(file_contents=data)
        sections = []
        for sheet in book.sheets():
            rows = (
                [_legacy_cell(value) for value in sheet.row_values(rowx)]
                for rowx in range(sheet.nrows)
            )
            sections.append(_csv_section(sheet.name, rows))
        book.release_resources()
        return "".join(sections)
    except Exception:
        LOGGER.exception("Excel extraction error")
        return EXCEL_FAILURE


def extract_json(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except ValueError:
        return text


def extract_markup(data: bytes) -> str:
    soup = BeautifulSoup(data.decode("utf-8", errors="replace"), "html.parser")
    return _WHITESPACE.sub(" ", soup.get_text(" ")).strip()


def extract_plain_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


_EXTRACTORS: Dict[str, Callable[[bytes], str]] = {
    "pdf": extract_pdf,
    "docx": extract_docx,
    "doc": lambda data: DOC_UNSUPPORTED,
    "xlsx": extract_workbook,
    "xls": extract_legacy_workbook,
    "txt": extract_plain_text,
    "md": extract_plain_text,
    "csv": extract_plain_text,
    "json": extract_json,
    "html": extract_markup,
    "htm": extract_markup,
    "xml": extract_markup,
}


def file_extension(original_name: str) -> str:
    return (original_name or "").rsplit(".", 1)[-1].lower()


def extract_text(data: bytes, original_name: str) -> str:
    """Dispatch on the lowercase extension of ``original_name``."""

    extension = file_extension(original_name)
    extractor = _EXTRACTORS.get(extension)
    if extractor is not None:
        return extractor(data)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        LOGGER.warning("Failed to read .%s file as text, returning placeholder", extension)
        return f"[Content extraction not supported for .{extension} files]"


class ContentExtractor:
    """Read a workspace file from object storage and extract its text."""

    def __init__(self, store: ObjectStore, main_container: Optional[str] = None) -> None:
        self._store = store
        self._main_container = main_container or store.default_container

    def _read(self, path: str, container: Optional[str]) -> bytes:
        if path.startswith(WORKSPACE_PARENT_FOLDER):
            LOGGER.info("Using workspace file path: %s", path)
            return self._store.get_bytes(path, self._main_container)
        if container and container.startswith(LEGACY_CONTAINER_PREFIX):
            folder_path = folder_from_container(container)
            if folder_path is not None:
                LOGGER.info("Using workspace folder %s for container %s", folder_path, container)
                return self._store.get_bytes(f"{folder_path}{path}", self._main_container)
            return self._store.get_bytes(path, container)
        return self._store.get_bytes(path, container or self._main_container)

    def extract(
        self,
        path: str,
        original_name: str,
        container: Optional[str] = None,
    ) -> ExtractionResult:
        LOGGER.info("Extracting content from file: %s", path)
        try:
            data = self._read(path, container)
            content = extract_text(data, original_name)
            if not content or not content.strip():
                content = f"[File content is empty or could not be extracted from {original_name}]"
            return ExtractionResult(
                file_name=path,
                original_name=original_name,
                content=truncate_for_tokens(content),
                size=len(data),
            )
        except Exception as exc:
            LOGGER.error("Failed to extract content from file %s: %s", path, exc)
            return ExtractionResult(
                file_name=path,
                original_name=original_name,
                content=f"{UNAVAILABLE_PREFIX} for file: {original_name}. Error: {exc}]",
                size=0,
            )


def is_unavailable(result: ExtractionResult) -> bool:
    return result.content.startswith(UNAVAILABLE_PREFIX)


__all__ = [
    "ContentExtractor",
    "MAX_CONTENT_CHARS",
    "extract_text",
    "file_extension",
    "is_unavailable",
    "truncate_for_tokens",
]
