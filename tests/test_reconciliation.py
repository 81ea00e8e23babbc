"""Tests for workspace reconciliation."""

from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Callable

import pytest

from ragdesk.config import Settings
from ragdesk.container import ServiceContainer
from ragdesk.db.repository import WorkspaceRepository
from ragdesk.gateways.openai import MockChatClient
from ragdesk.gateways.search import InMemorySearchService
from ragdesk.gateways.storage import InMemoryObjectStore
from ragdesk.identifiers import resolve

WORKSPACE_ID = "abc1234xyz"
INDEX = "finance-abc1234index"

ANALYSIS_REPLY = json.dumps(
    {
        "summary": "A finance document.",
        "keyPoints": ["numbers"],
        "sentiment": "neutral",
        "language": "English",
    }
)


class CountingSearch(InMemorySearchService):
    def __init__(self) -> None:
        super().__init__()
        self.batch_sizes: list[int] = []

    def upload_documents(self, index_name: str, documents: Any) -> Any:
        self.batch_sizes.append(len(documents))
        return super().upload_documents(index_name, documents)


@pytest.fixture
def search() -> CountingSearch:
    return CountingSearch()


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore("aiva-files")


@pytest.fixture
def container(
    memory_settings: Settings,
    repository: WorkspaceRepository,
    search: CountingSearch,
    store: InMemoryObjectStore,
) -> ServiceContainer:
    return ServiceContainer(
        memory_settings,
        search=search,
        store=store,
        chat=MockChatClient(ANALYSIS_REPLY),
        repository=repository,
    )


def _seed_files(
    count: int,
    add_file: Callable[..., Any],
    store: InMemoryObjectStore,
) -> list:
    folder = resolve(WORKSPACE_ID, "Finance").folder_path
    base = dt.datetime(2024, 5, 1, 9, 0, 0)
    files = []
    for number in range(count):
        workspace_file = add_file(
            f"f{number}",
            WORKSPACE_ID,
            f"note{number}.txt",
            uploaded_at=base + dt.timedelta(minutes=number),
        )
        store.put_bytes(f"{folder}{workspace_file.stored_name}", f"note {number} revenue".encode())
        files.append(workspace_file)
    return files


def test_unknown_workspace_returns_false(container: ServiceContainer) -> None:
    job = container.reconciliation
    assert job.reconcile("missing") is False
    assert job.run("missing").workspace_found is False


def test_workspace_without_files_succeeds_without_index(
    container: ServiceContainer, add_workspace: Callable[[str, str], None], search: CountingSearch
) -> None:
    add_workspace(WORKSPACE_ID, "Finance")

    assert container.reconciliation.reconcile(WORKSPACE_ID) is True
    assert search.list_index_names() == []


def test_reconcile_indexes_every_file_in_batches_of_five(
    container: ServiceContainer,
    add_workspace: Callable[[str, str], None],
    add_file: Callable[..., Any],
    store: InMemoryObjectStore,
    search: CountingSearch,
) -> None:
    add_workspace(WORKSPACE_ID, "Finance")
    _seed_files(7, add_file, store)

    report = container.reconciliation.run(WORKSPACE_ID)

    assert report.succeeded is True
    assert report.index_name == INDEX
    assert report.files_total == 7
    assert report.documents_prepared == 7
    assert report.batches_total == 2
    assert search.batch_sizes == [5, 2]
    documents = search.documents(INDEX)
    assert sorted(documents) == [f"f{number}" for number in range(7)]
    assert documents["f3"]["summary"] == "A finance document."
    assert documents["f3"]["keyPoints"] == ["numbers"]
    assert documents["f3"]["workspaceId"] == WORKSPACE_ID
    assert documents["f3"]["uploadedAt"] == "2024-05-01T09:03:00Z"


def test_reconcile_is_idempotent(
    container: ServiceContainer,
    add_workspace: Callable[[str, str], None],
    add_file: Callable[..., Any],
    store: InMemoryObjectStore,
    search: CountingSearch,
) -> None:
    add_workspace(WORKSPACE_ID, "Finance")
    _seed_files(3, add_file, store)

    assert container.reconciliation.reconcile(WORKSPACE_ID) is True
    assert container.reconciliation.reconcile(WORKSPACE_ID) is True

    assert len(search.documents(INDEX)) == 3


def test_unreadable_files_are_skipped(
    container: ServiceContainer,
    add_workspace: Callable[[str, str], None],
    add_file: Callable[..., Any],
    store: InMemoryObjectStore,
    search: CountingSearch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    add_workspace(WORKSPACE_ID, "Finance")
    _seed_files(2, add_file, store)
    add_file("ghost", WORKSPACE_ID, "ghost.txt")

    with caplog.at_level(logging.WARNING):
        report = container.reconciliation.run(WORKSPACE_ID)

    assert report.succeeded is True
    assert report.files_skipped == 1
    assert "ghost" not in search.documents(INDEX)
    assert "Skipping file ghost.txt" in caplog.text


def test_summary_failures_fall_back_to_content(
    memory_settings: Settings,
    repository: WorkspaceRepository,
    add_workspace: Callable[[str, str], None],
    add_file: Callable[..., Any],
    store: InMemoryObjectStore,
    search: CountingSearch,
) -> None:
    def failing_reply(messages: Any) -> str:
        raise RuntimeError("model offline")

    container = ServiceContainer(
        memory_settings,
        search=search,
        store=store,
        chat=MockChatClient(failing_reply),
        repository=repository,
    )
    add_workspace(WORKSPACE_ID, "Finance")
    _seed_files(1, add_file, store)

    assert container.reconciliation.reconcile(WORKSPACE_ID) is True
    document = search.documents(INDEX)["f0"]
    assert document["summary"] == "note 0 revenue"
    assert document["keyPoints"] == []


def test_index_creation_failure_returns_false(
    container: ServiceContainer,
    add_workspace: Callable[[str, str], None],
    add_file: Callable[..., Any],
    store: InMemoryObjectStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    add_workspace(WORKSPACE_ID, "Finance")
    _seed_files(1, add_file, store)
    monkeypatch.setattr(container.index_manager, "ensure", lambda index_name: False)

    assert container.reconciliation.reconcile(WORKSPACE_ID) is False
