"""Service container: builds every ragdesk service once and wires them together."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .config import Settings, get_settings
from .db.connection import get_engine
from .db.repository import WorkspaceRepository
from .gateways.openai import ChatGateway, MockChatClient, OpenAIGatewayClient
from .gateways.registry import OPENAI_GATEWAY, SEARCH_GATEWAY, STORAGE_GATEWAY, load_gateway
from .gateways.search import AzureSearchClient, InMemorySearchService, SearchGateway
from .gateways.storage import BlobObjectStore, InMemoryObjectStore, LocalObjectStore, ObjectStore
from .jobs.queue import IndexingJob, IndexingQueue
from .models import Workspace, WorkspaceFile
from .pipeline.context import RagContextService
from .pipeline.extraction import ContentExtractor
from .pipeline.index_manager import IndexManager
from .pipeline.indexer import Indexer
from .pipeline.ingestion import FileIngestor
from .pipeline.reconciliation import ReconciliationJob
from .pipeline.retrieval import Retriever
from .pipeline.summarization import Summarizer

LOGGER = logging.getLogger(__name__)


def build_search_gateway(settings: Settings) -> SearchGateway:
    if settings.search_backend == "memory":
        return InMemorySearchService()
    return AzureSearchClient(load_gateway(SEARCH_GATEWAY, settings))


def build_chat_gateway(settings: Settings) -> ChatGateway:
    if settings.llm_backend == "mock":
        return MockChatClient()
    return OpenAIGatewayClient(load_gateway(OPENAI_GATEWAY, settings))


def build_object_store(settings: Settings) -> ObjectStore:
    if settings.storage_backend == "memory":
        return InMemoryObjectStore(settings.storage_container)
    if settings.storage_backend == "local":
        return LocalObjectStore(settings.storage_root, settings.storage_container)
    return BlobObjectStore(load_gateway(STORAGE_GATEWAY, settings))


class ServiceContainer:
    """Holds one instance of each service for the process lifetime.

    Gateways may be injected to override the configured backends. The
    repository and the job queue are created on first use so commands that
    never touch the database or background work do not need them.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        search: Optional[SearchGateway] = None,
        chat: Optional[ChatGateway] = None,
        store: Optional[ObjectStore] = None,
        repository: Optional[WorkspaceRepository] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.search = search if search is not None else build_search_gateway(settings)
        self.chat = chat if chat is not None else build_chat_gateway(settings)
        self.store = store if store is not None else build_object_store(settings)
        self._repository = repository
        self._queue: Optional[IndexingQueue] = None
        self._queue_lock = threading.Lock()
        self._sleep = sleep

        self.extractor = ContentExtractor(self.store, settings.storage_container)
        self.summarizer = Summarizer(self.chat)
        self.index_manager = IndexManager(self.search)
        self.indexer = Indexer(self.search)
        self.retriever = Retriever(self.search, self.index_manager)
        self.rag = RagContextService(self.retriever)
        self.ingestor = FileIngestor(
            self.extractor,
            self.summarizer,
            self.index_manager,
            self.indexer,
            settle_seconds=settings.settle_seconds,
            sleep=sleep,
        )

    @property
    def repository(self) -> WorkspaceRepository:
        if self._repository is None:
            self._repository = WorkspaceRepository(get_engine(self.settings.database_url))
        return self._repository

    @property
    def reconciliation(self) -> ReconciliationJob:
        return ReconciliationJob(
            self.repository, self.ingestor, batch_size=self.settings.batch_size
        )

    @property
    def queue(self) -> IndexingQueue:
        with self._queue_lock:
            if self._queue is None:
                self._queue = IndexingQueue(
                    workers=self.settings.queue_workers,
                    max_attempts=self.settings.queue_max_attempts,
                    sleep=self._sleep,
                )
            return self._queue

    def submit_upload(self, workspace: Workspace, workspace_file: WorkspaceFile) -> IndexingJob:
        """Queue indexing of a freshly uploaded file and return its job handle."""

        LOGGER.info(
            "Queueing indexing for file %s in workspace %s", workspace_file.id, workspace.id
        )
        return self.queue.submit(
            f"index:{workspace_file.id}", self.ingestor.ingest, workspace, workspace_file
        )

    def close(self) -> None:
        with self._queue_lock:
            queue, self._queue = self._queue, None
        if queue is not None:
            queue.shutdown(wait=True)


def build_container(settings: Optional[Settings] = None, **overrides) -> ServiceContainer:
    return ServiceContainer(settings or get_settings(), **overrides)


__all__ = [
    "ServiceContainer",
    "build_chat_gateway",
    "build_container",
    "build_object_store",
    "build_search_gateway",
]
