"""Assemble retrieved workspace documents into chat prompt context."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..identifiers import resolve
from ..models import IndexDocument, RankedDocument
from .retrieval import Retriever

LOGGER = logging.getLogger(__name__)

CONTEXT_HEADER = "Relevant documents from the workspace:\n\n"

BASE_SYSTEM_PROMPT = """You are a helpful AI assistant designed to help with business analytics, data insights, and decision-making.

Key guidelines:
- Provide accurate, helpful, and professional responses
- Focus on business intelligence and data analysis when relevant
- Be concise but thorough in your explanations
- If you're unsure about something, acknowledge it
- Maintain a professional yet friendly tone
- Respect user privacy and data security

Current date: {today}"""

WORKSPACE_MODE_PROMPT = """

You have access to documents from a specific workspace. When answering questions, prioritize information from these documents.
If a question cannot be answered using the provided documents, clearly state that the information is not available in the workspace documents
and provide a general response based on your knowledge."""

GENERAL_MODE_PROMPT = """

You are operating in general mode without access to specific workspace documents. Provide general assistance and knowledge like a standard AI assistant."""

ContextDocument = Union[RankedDocument, IndexDocument, Mapping[str, Any]]


def _fields(document: ContextDocument) -> Dict[str, str]:
    if isinstance(document, Mapping):
        return {
            "file_name": str(document.get("fileName") or ""),
            "file_type": str(document.get("fileType") or ""),
            "summary": str(document.get("summary") or ""),
            "content": str(document.get("content") or ""),
        }
    return {
        "file_name": document.file_name,
        "file_type": document.file_type,
        "summary": document.summary,
        "content": document.content,
    }


def format_documents_context(documents: Optional[Sequence[ContextDocument]]) -> str:
    """Render documents in retrieval order; empty input yields ``''``."""

    if not documents:
        return ""
    parts = [CONTEXT_HEADER]
    for position, document in enumerate(documents, start=1):
        fields = _fields(document)
        parts.append(f"Document {position}:\n")
        parts.append(f"File Name: {fields['file_name'] or 'Unknown'}\n")
        parts.append(f"File Type: {fields['file_type'] or 'Unknown'}\n")
        if fields["summary"]:
            parts.append(f"Summary: {fields['summary']}\n")
        parts.append(f"Content:\n{fields['content'] or 'No content available'}\n\n")
    return "".join(parts)


def build_system_prompt(workspace_id: Optional[str], today: Optional[dt.date] = None) -> str:
    prompt = BASE_SYSTEM_PROMPT.format(today=(today or dt.date.today()).isoformat())
    if workspace_id:
        return prompt + WORKSPACE_MODE_PROMPT
    return prompt + GENERAL_MODE_PROMPT


class RagContextService:
    """Query-side entry point used by chat handlers."""

    def __init__(self, retriever: Retriever) -> None:
        self._retriever = retriever

    def get_relevant_documents(
        self,
        query: str,
        workspace_id: Optional[str],
        workspace_name: Optional[str] = None,
    ) -> List[RankedDocument]:
        if not workspace_id:
            LOGGER.info("No workspace selected, using general mode")
            return []
        try:
            index_name = resolve(workspace_id, workspace_name or "").index_name
            documents = self._retriever.search(index_name, query)
        except Exception:
            LOGGER.exception("Error retrieving relevant documents")
            return []
        LOGGER.info("Found %s relevant documents for query: %s", len(documents), query)
        return documents

    def format_documents_context(self, documents: Optional[Sequence[ContextDocument]]) -> str:
        return format_documents_context(documents)

    def build_chat_messages(
        self,
        question: str,
        workspace_id: Optional[str],
        workspace_name: Optional[str] = None,
        history: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """System prompt, prior turns, then the question with any workspace context."""

        documents = self.get_relevant_documents(question, workspace_id, workspace_name)
        context = format_documents_context(documents)
        user_content = question
        if context:
            user_content = f"Context from workspace documents:\n{context}\n\nQuestion: {question}"
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": build_system_prompt(workspace_id)}
        ]
        for turn in history or []:
            messages.append({"role": str(turn.get("role")), "content": turn.get("content", "")})
        messages.append({"role": "user", "content": user_content})
        return messages


__all__ = [
    "CONTEXT_HEADER",
    "RagContextService",
    "build_system_prompt",
    "format_documents_context",
]
