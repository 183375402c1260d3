"""
Tests for mnemos.memory.relevance and mnemos.memory.heuristics.
"""

from __future__ import annotations

import pytest

from mnemos.memory import heuristics, relevance


class TestRelevanceScore:
    def test_full_overlap(self):
        assert relevance.score("python programming", "Python is a programming language") == 1.0

    def test_partial_overlap(self):
        assert relevance.score("AI machine learning", "AI là trí tuệ nhân tạo") == pytest.approx(1 / 3)

    def test_substring_tokens_match_both_ways(self):
        assert relevance.score("learn", "learning rust") == 1.0
        assert relevance.score("learning", "learn rust") == 1.0

    def test_boost_is_capped(self):
        assert relevance.score("cat", "a cat") == 1.0

    def test_case_insensitive(self):
        assert relevance.score("PYTHON", "python") == relevance.score("python", "PYTHON")

    def test_no_overlap(self):
        assert relevance.score("zebra", "quantum physics") == 0.0

    @pytest.mark.parametrize("query,content", [
        (None, "text"),
        ("text", None),
        (42, "text"),
        ("text", {"type": "conversation"}),
    ])
    def test_non_strings_score_zero(self, query, content):
        assert relevance.score(query, content) == 0.0

    def test_blank_query_scores_zero(self):
        assert relevance.score("   ", "anything at all") == 0.0
        assert relevance.score("", "anything at all") == 0.0


class TestImportance:
    def test_base(self):
        assert heuristics.calculate_importance("plain note") == 0.5

    def test_keyword(self):
        assert heuristics.calculate_importance("this is important") == pytest.approx(0.8)
        assert heuristics.calculate_importance("Điều này quan trọng") == pytest.approx(0.8)

    def test_long_content(self):
        assert heuristics.calculate_importance("x" * 101) == pytest.approx(0.6)

    def test_strong_emotion(self):
        assert heuristics.calculate_importance("I hate mondays") == pytest.approx(0.7)

    def test_capped_at_one(self):
        text = "remember that I love this " + "x" * 100
        assert heuristics.calculate_importance(text) == 1.0

    def test_non_string(self):
        assert heuristics.calculate_importance({"type": "conversation"}) == 0.5


class TestEmotionsAndTopics:
    def test_emotions(self):
        tags = heuristics.analyze_emotions("Tôi rất buồn và tức giận")
        assert tags["sad"] == 1
        assert tags["angry"] == 1
        assert tags["happy"] == 0

    def test_emotions_non_string(self):
        assert set(heuristics.analyze_emotions(None).values()) == {0}

    def test_topics(self):
        topics = heuristics.detect_active_topics(["I watched a movie", "then went to school"])
        assert topics == ["education", "entertainment"]

    def test_topics_ignore_non_strings(self):
        assert heuristics.detect_active_topics([None, {"a": 1}]) == []
