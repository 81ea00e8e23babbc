"""Tests for the Prefect flow wrappers and shared container lifecycle."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, List

import pytest

from ragdesk import container as container_module
from ragdesk.config import Settings
from ragdesk.container import ServiceContainer
from ragdesk.db.repository import WorkspaceRepository
from ragdesk.errors import WorkspaceNotFoundError
from ragdesk.jobs import flows
from ragdesk.jobs.queue import IndexingQueue


@pytest.fixture
def container(memory_settings: Settings, repository: WorkspaceRepository) -> ServiceContainer:
    return ServiceContainer(memory_settings, repository=repository, sleep=lambda seconds: None)


@pytest.fixture
def flow_container(
    monkeypatch: pytest.MonkeyPatch, memory_settings: Settings, container: ServiceContainer
) -> ServiceContainer:
    monkeypatch.setattr(flows, "load_settings", lambda path=None: memory_settings)
    monkeypatch.setattr(flows, "build_container", lambda settings=None, **kwargs: container)
    return container


def test_flows_are_registered_under_stable_names() -> None:
    assert flows.reconcile_workspace_flow.name == "ragdesk-reconcile-workspace"
    assert flows.index_workspace_file_flow.name == "ragdesk-index-workspace-file"


def test_reconcile_flow_returns_report(
    flow_container: ServiceContainer,
    add_workspace: Callable[[str, str], None],
    add_file: Callable[..., Any],
) -> None:
    add_workspace("abc1234xyz", "Finance")
    stored = add_file("f1", "abc1234xyz", "plan.txt")
    flow_container.store.put_bytes(f"workspace/finance-abc1234/{stored.stored_name}", b"hiring plan")

    payload = flows.reconcile_workspace_flow.fn("abc1234xyz")

    assert payload["succeeded"] is True
    assert payload["documents_prepared"] == 1
    assert "f1" in flow_container.search.documents("finance-abc1234index")


def test_index_flow_raises_for_unknown_workspace(flow_container: ServiceContainer) -> None:
    with pytest.raises(WorkspaceNotFoundError):
        flows.index_workspace_file_flow.fn("missing", "f1")


def test_concurrent_first_use_builds_one_queue(
    monkeypatch: pytest.MonkeyPatch, container: ServiceContainer
) -> None:
    def slow_queue(**kwargs: Any) -> IndexingQueue:
        time.sleep(0.05)
        return IndexingQueue(**kwargs)

    monkeypatch.setattr(container_module, "IndexingQueue", slow_queue)
    barrier = threading.Barrier(4)
    seen: List[IndexingQueue] = []
    lock = threading.Lock()

    def first_use() -> None:
        barrier.wait()
        queue = container.queue
        with lock:
            seen.append(queue)

    threads = [threading.Thread(target=first_use) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    try:
        assert len(seen) == 4
        assert len({id(queue) for queue in seen}) == 1
    finally:
        container.close()
