"""
Tests for mnemos.log and the default text processor in mnemos.types.
"""

from __future__ import annotations

import mnemos.log as mnemos_log
from mnemos.types import TextProcessor, WhitespaceTextProcessor


class TestTruncation:
    def test_long_content_is_clipped(self):
        event = {"event": "memory_store.recalled", "query": "x" * 500, "hits": 3}
        result = mnemos_log._truncate_content_fields(None, "info", event)
        assert result["query"] == "x" * 200 + "... [truncated]"
        assert result["hits"] == 3

    def test_short_and_non_string_values_untouched(self):
        event = {"event": "e", "content": "short", "conclusion": None}
        result = mnemos_log._truncate_content_fields(None, "info", dict(event))
        assert result == event


class TestConfigureLogging:
    def test_second_call_is_a_no_op(self, monkeypatch):
        calls = []
        monkeypatch.setattr(mnemos_log, "_logging_configured", False)
        monkeypatch.setattr(mnemos_log.structlog, "configure", lambda **kw: calls.append(kw))

        mnemos_log.configure_logging()
        mnemos_log.configure_logging()

        assert len(calls) == 1
        assert mnemos_log._truncate_content_fields in calls[0]["processors"]


class TestWhitespaceTextProcessor:
    def test_satisfies_protocol(self):
        assert isinstance(WhitespaceTextProcessor(), TextProcessor)

    def test_tokenize(self):
        assert WhitespaceTextProcessor().tokenize("Hello  World") == ["hello", "world"]
        assert WhitespaceTextProcessor().tokenize(None) == []

    def test_detect_language(self):
        processor = WhitespaceTextProcessor()
        assert processor.detect_language("Xin chào, tôi là AI") == "vi"
        assert processor.detect_language("hello there") == "en"
