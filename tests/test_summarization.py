"""Tests for document summaries and their fallbacks."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Sequence

import pytest

from ragdesk.errors import LLMTimeoutError
from ragdesk.gateways.openai import ChatCompletion, MockChatClient
from ragdesk.pipeline.extraction import MAX_CONTENT_CHARS
from ragdesk.pipeline.summarization import Summarizer, parse_analysis, summary_or_fallback


class RecordingChat:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.requests: List[Dict[str, Any]] = []

    def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ChatCompletion:
        self.requests.append(
            {"messages": list(messages), "max_tokens": max_tokens, "temperature": temperature}
        )
        return ChatCompletion(content=self.reply, tokens_used=42)


class FailingChat:
    def complete(self, messages, *, max_tokens=1000, temperature=0.7):  # type: ignore[no-untyped-def]
        raise LLMTimeoutError("The AI service is taking too long to respond. Please try again.")


def test_summarize_parses_json_reply() -> None:
    reply = json.dumps(
        {
            "summary": "Revenue grew in Q3.",
            "keyPoints": ["Q3 revenue up", "Costs flat"],
            "sentiment": "positive",
            "language": "English",
        }
    )
    chat = RecordingChat(reply)

    analysis = Summarizer(chat).summarize("Q3 revenue grew 12 percent", "report.pdf")

    assert analysis.summary == "Revenue grew in Q3."
    assert analysis.key_points == ["Q3 revenue up", "Costs flat"]
    assert analysis.sentiment == "positive"
    assert analysis.tokens_used == 42
    request = chat.requests[0]
    assert request["max_tokens"] == 800
    assert request["temperature"] == 0.5
    assert request["messages"][0]["role"] == "system"
    assert "JSON" in request["messages"][0]["content"]
    assert request["messages"][1]["content"].startswith("Document: report.pdf\n\nContent:\n")


def test_non_json_reply_uses_head_of_reply() -> None:
    reply = "The document discusses " + "x" * 300
    analysis = parse_analysis(reply)

    assert analysis.summary == reply[:200] + "..."
    assert analysis.key_points == []
    assert analysis.sentiment == "neutral"
    assert analysis.language == "English"


def test_input_text_is_truncated_before_the_call() -> None:
    chat = RecordingChat(json.dumps({"summary": "ok", "keyPoints": []}))
    Summarizer(chat).summarize("q" * (MAX_CONTENT_CHARS + 10), "big.txt")

    user_prompt = chat.requests[0]["messages"][1]["content"]
    assert user_prompt.count("q") == MAX_CONTENT_CHARS


def test_call_failure_propagates_from_summarize() -> None:
    with pytest.raises(LLMTimeoutError):
        Summarizer(FailingChat()).summarize("text", "a.txt")


def test_fallback_uses_first_500_characters_of_content() -> None:
    content = "z" * 700
    analysis = summary_or_fallback(Summarizer(FailingChat()), content, "a.txt")

    assert analysis.summary == "z" * 500 + "..."
    assert analysis.key_points == []


def test_fallback_keeps_short_content_whole() -> None:
    analysis = summary_or_fallback(Summarizer(FailingChat()), "short text", "a.txt")
    assert analysis.summary == "short text"


def test_mock_client_reply_feeds_the_fallback_parser() -> None:
    chat = MockChatClient()
    analysis = Summarizer(chat).summarize("content", "a.txt")

    assert analysis.summary.startswith("This is a mock response")
    assert analysis.summary.endswith("...")
    assert len(chat.calls) == 1
