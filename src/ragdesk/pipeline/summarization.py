"""LLM-backed document summaries with deterministic fallbacks."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from ..gateways.openai import ChatGateway
from ..models import DocumentAnalysis
from .extraction import truncate_for_tokens

LOGGER = logging.getLogger(__name__)

SUMMARY_MAX_TOKENS = 800
SUMMARY_TEMPERATURE = 0.5
REPLY_FALLBACK_CHARS = 200
CONTENT_FALLBACK_CHARS = 500

ANALYSIS_SYSTEM_PROMPT = """You are an expert document analyzer. Analyze the provided document and provide:
1. A concise summary (2-3 sentences)
2. 3-5 key points from the document
3. Overall sentiment (positive, negative, or neutral)
4. Detected language

Format your response as JSON:
{
  "summary": "Concise summary here",
  "keyPoints": ["Point 1", "Point 2", "Point 3"],
  "sentiment": "positive|negative|neutral",
  "language": "English"
}"""


def _user_prompt(text: str, file_name: str) -> str:
    return (
        f"Document: {file_name}\n\n"
        f"Content:\n{text}\n\n"
        "Please analyze this document and respond in the specified JSON format."
    )


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def parse_analysis(reply: str, tokens_used: int = 0) -> DocumentAnalysis:
    """Decode the model's JSON reply, falling back to the head of the raw text."""

    try:
        data = json.loads(reply)
    except (TypeError, ValueError):
        data = None
    if not isinstance(data, Mapping) or not isinstance(data.get("summary"), str):
        LOGGER.warning("Summary reply was not valid JSON; using raw text")
        return DocumentAnalysis(
            summary=f"{reply[:REPLY_FALLBACK_CHARS]}...",
            key_points=[],
            tokens_used=tokens_used,
        )
    return DocumentAnalysis(
        summary=data["summary"],
        key_points=_string_list(data.get("keyPoints")),
        sentiment=str(data.get("sentiment") or "neutral"),
        language=str(data.get("language") or "English"),
        tokens_used=tokens_used,
    )


def content_fallback(content: str) -> DocumentAnalysis:
    summary = content[:CONTENT_FALLBACK_CHARS]
    if len(content) > CONTENT_FALLBACK_CHARS:
        summary += "..."
    return DocumentAnalysis(summary=summary, key_points=[])


class Summarizer:
    def __init__(self, chat: ChatGateway) -> None:
        self._chat = chat

    def build_messages(self, text: str, file_name: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": _user_prompt(truncate_for_tokens(text), file_name)},
        ]

    def summarize(self, text: str, file_name: str) -> DocumentAnalysis:
        """Run one chat completion; gateway errors propagate to the caller."""

        completion = self._chat.complete(
            self.build_messages(text, file_name),
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
        )
        return parse_analysis(completion.content, completion.tokens_used)


def summary_or_fallback(summarizer: Summarizer, content: str, file_name: str) -> DocumentAnalysis:
    """Summarize ``content``; on any failure use its first 500 characters instead."""

    try:
        return summarizer.summarize(content, file_name)
    except Exception as exc:
        LOGGER.warning("Failed to generate summary for %s: %s", file_name, exc)
        return content_fallback(content)


__all__ = [
    "Summarizer",
    "content_fallback",
    "parse_analysis",
    "summary_or_fallback",
]
