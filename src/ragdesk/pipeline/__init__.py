"""Ragdesk indexing and retrieval pipeline."""

from .context import RagContextService, build_system_prompt, format_documents_context
from .extraction import ContentExtractor, extract_text, truncate_for_tokens
from .index_manager import IndexManager, index_definition
from .indexer import Indexer
from .ingestion import FileIngestor
from .reconciliation import ReconciliationJob, ReconciliationReport
from .retrieval import Retriever
from .summarization import Summarizer, summary_or_fallback

__all__ = [
    "ContentExtractor",
    "FileIngestor",
    "IndexManager",
    "Indexer",
    "RagContextService",
    "ReconciliationJob",
    "ReconciliationReport",
    "Retriever",
    "Summarizer",
    "build_system_prompt",
    "extract_text",
    "format_documents_context",
    "index_definition",
    "summary_or_fallback",
    "truncate_for_tokens",
]
