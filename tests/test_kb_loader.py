"""Tests for loading the knowledge base from files, URLs and defaults."""

from __future__ import annotations

import json
from typing import Any, Dict, List

import pandas as pd
import pytest
import requests

from faq_chatbot.core import kb_loader
from faq_chatbot.core.kb_loader import (
    fetch_knowledge_base_records,
    load_knowledge_base,
    load_knowledge_base_file,
)
from faq_chatbot.core.knowledge_base import KnowledgeBaseError


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: str = "") -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = text or (json.dumps(payload) if payload is not None else "")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response: FakeResponse | None = None, exc: Exception | None = None) -> None:
        self.response = response
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, timeout: int) -> FakeResponse:
        self.calls.append({"url": url, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture(autouse=True)
def _clear_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(kb_loader, "_KB_CACHE", None)
    monkeypatch.setattr(kb_loader, "FAQ_KNOWLEDGE_BASE_URL", "")
    monkeypatch.setattr(kb_loader, "FAQ_KNOWLEDGE_BASE_PATH", "")


def _use_session(monkeypatch: pytest.MonkeyPatch, session: FakeSession) -> None:
    monkeypatch.setattr(kb_loader, "_get_session", lambda: session)


# =========================================================================
# Local files
# =========================================================================


class TestLoadKnowledgeBaseFile:
    """Tests for CSV / JSON file loading."""

    def test_csv_preserves_row_order(self, tmp_path) -> None:
        """CSV rows become entries in file order."""
        path = tmp_path / "faq.csv"
        pd.DataFrame(
            {
                "Keywords": ["refund, return", "hello,hi"],
                "Answer": ["Returns answer", "Greeting answer"],
            }
        ).to_csv(path, index=False)

        kb = load_knowledge_base_file(path)
        assert [e.keywords for e in kb.entries()] == [("refund", "return"), ("hello", "hi")]
        assert kb.entries()[1].answer == "Greeting answer"

    def test_json_records(self, tmp_path) -> None:
        """JSON files with keyword lists load directly."""
        path = tmp_path / "faq.json"
        path.write_text(
            json.dumps([{"keywords": ["Shipping", "delivery"], "answer": "Track it."}]),
            encoding="utf-8",
        )
        kb = load_knowledge_base_file(path)
        assert kb.entries()[0].keywords == ("shipping", "delivery")

    def test_missing_columns(self, tmp_path) -> None:
        """Files without keywords/answer columns are rejected."""
        path = tmp_path / "faq.csv"
        pd.DataFrame({"question": ["q"], "reply": ["r"]}).to_csv(path, index=False)
        with pytest.raises(KnowledgeBaseError, match="expected columns"):
            load_knowledge_base_file(path)

    def test_empty_answer_row(self, tmp_path) -> None:
        """A row with no answer violates the entry schema."""
        path = tmp_path / "faq.csv"
        pd.DataFrame({"keywords": ["hello"], "answer": [""]}).to_csv(path, index=False)
        with pytest.raises(KnowledgeBaseError):
            load_knowledge_base_file(path)

    def test_json_record_without_answer(self, tmp_path) -> None:
        """A JSON record missing 'answer' is rejected, not loaded as 'nan'."""
        path = tmp_path / "faq.json"
        path.write_text(
            json.dumps([{"keywords": ["hi"], "answer": "Hello"}, {"keywords": ["price"]}]),
            encoding="utf-8",
        )
        with pytest.raises(KnowledgeBaseError, match="Record 1"):
            load_knowledge_base_file(path)

    def test_json_wrapped_payload(self, tmp_path) -> None:
        """JSON files accept the same {'faqs': [...]} wrapper as the URL source."""
        path = tmp_path / "faq.json"
        path.write_text(
            json.dumps({"faqs": [{"keywords": ["refund"], "answer": "Returns."}]}),
            encoding="utf-8",
        )
        kb = load_knowledge_base_file(path)
        assert kb.entries()[0].keywords == ("refund",)
        assert kb.entries()[0].answer == "Returns."

    def test_json_unexpected_shape(self, tmp_path) -> None:
        """A JSON object without 'faqs' is rejected."""
        path = tmp_path / "faq.json"
        path.write_text(json.dumps({"items": []}), encoding="utf-8")
        with pytest.raises(KnowledgeBaseError, match="Unexpected"):
            load_knowledge_base_file(path)

    def test_invalid_json(self, tmp_path) -> None:
        """Malformed JSON is reported as a knowledge base error."""
        path = tmp_path / "faq.json"
        path.write_text("[{not json", encoding="utf-8")
        with pytest.raises(KnowledgeBaseError, match="Could not read"):
            load_knowledge_base_file(path)

    def test_unsupported_suffix(self, tmp_path) -> None:
        """Only CSV, Excel and JSON are understood."""
        path = tmp_path / "faq.txt"
        path.write_text("hello", encoding="utf-8")
        with pytest.raises(KnowledgeBaseError, match="Unsupported"):
            load_knowledge_base_file(path)

    def test_missing_file(self, tmp_path) -> None:
        """Nonexistent paths raise KnowledgeBaseError."""
        with pytest.raises(KnowledgeBaseError, match="not found"):
            load_knowledge_base_file(tmp_path / "nope.csv")


# =========================================================================
# Remote endpoint
# =========================================================================


class TestFetchKnowledgeBaseRecords:
    """Tests for the JSON endpoint fetch."""

    def test_list_payload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A bare list of records is returned as-is."""
        records = [{"keywords": ["a"], "answer": "A"}]
        session = FakeSession(FakeResponse(records))
        _use_session(monkeypatch, session)

        assert fetch_knowledge_base_records("https://example.test/faq", timeout_seconds=5) == records
        assert session.calls == [{"url": "https://example.test/faq", "timeout": 5}]

    def test_wrapped_payload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """{'faqs': [...]} payloads are unwrapped."""
        records = [{"keywords": ["a"], "answer": "A"}]
        _use_session(monkeypatch, FakeSession(FakeResponse({"faqs": records})))
        assert fetch_knowledge_base_records("https://example.test/faq") == records

    def test_http_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Transport failures are wrapped with the cause chained."""
        _use_session(monkeypatch, FakeSession(exc=requests.ConnectionError("down")))
        with pytest.raises(KnowledgeBaseError) as excinfo:
            fetch_knowledge_base_records("https://example.test/faq")
        assert isinstance(excinfo.value.__cause__, requests.ConnectionError)

    def test_bad_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Non-200 responses are rejected."""
        _use_session(monkeypatch, FakeSession(FakeResponse(status_code=503, text="busy")))
        with pytest.raises(KnowledgeBaseError, match="status=503"):
            fetch_knowledge_base_records("https://example.test/faq")

    def test_non_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """HTML or other non-JSON bodies are rejected."""
        _use_session(monkeypatch, FakeSession(FakeResponse(text="<html>")))
        with pytest.raises(KnowledgeBaseError, match="Non-JSON"):
            fetch_knowledge_base_records("https://example.test/faq")

    def test_unexpected_shape(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Payloads that are not a list of records are rejected."""
        _use_session(monkeypatch, FakeSession(FakeResponse({"items": []})))
        with pytest.raises(KnowledgeBaseError, match="Unexpected"):
            fetch_knowledge_base_records("https://example.test/faq")


# =========================================================================
# Startup entry point
# =========================================================================


class TestLoadKnowledgeBase:
    """Tests for source precedence and caching."""

    def test_defaults_when_unconfigured(self) -> None:
        """With no URL or path the built-in FAQ is used."""
        kb = load_knowledge_base()
        assert len(kb) == 10

    def test_url_takes_precedence_over_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        """A configured URL wins over a configured path."""
        _use_session(monkeypatch, FakeSession(FakeResponse([{"keywords": ["remote"], "answer": "R"}])))
        path = tmp_path / "faq.csv"
        pd.DataFrame({"keywords": ["local"], "answer": ["L"]}).to_csv(path, index=False)

        kb = load_knowledge_base(url="https://example.test/faq", path=path)
        assert kb.entries()[0].answer == "R"

    def test_path_from_config(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        """FAQ_KNOWLEDGE_BASE_PATH is honoured when no argument is given."""
        path = tmp_path / "faq.csv"
        pd.DataFrame({"keywords": ["local"], "answer": ["L"]}).to_csv(path, index=False)
        monkeypatch.setattr(kb_loader, "FAQ_KNOWLEDGE_BASE_PATH", str(path))

        kb = load_knowledge_base()
        assert kb.entries()[0].answer == "L"

    def test_cached_until_refresh(self, tmp_path) -> None:
        """The first load is cached; refresh=True reloads."""
        first = load_knowledge_base()
        assert load_knowledge_base() is first

        path = tmp_path / "faq.csv"
        pd.DataFrame({"keywords": ["local"], "answer": ["L"]}).to_csv(path, index=False)
        assert load_knowledge_base(path=path) is first

        reloaded = load_knowledge_base(path=path, refresh=True)
        assert reloaded is not first
        assert len(reloaded) == 1
