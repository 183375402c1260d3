"""
Tests for mnemos.reasoning.trace — conclusion merging and confidence.
"""

from __future__ import annotations

import pytest

from mnemos.reasoning.trace import ReasoningStep, ReasoningTrace


class TestMerge:
    def test_confidence_is_maximum_of_contributions(self):
        trace = ReasoningTrace(query="q")
        trace.add_step("a", 0.4, conclusion="x")
        trace.add_step("b", 0.9, conclusion="y")
        trace.add_step("c", 0.2, conclusion="z")

        assert trace.conclusions == ["x", "y", "z"]
        assert trace.confidence == pytest.approx(0.9)

    def test_weak_evidence_does_not_add_up(self):
        trace = ReasoningTrace(query="q")
        for i in range(5):
            trace.add_step("hint", 0.3, conclusion=f"c{i}")
        assert trace.confidence == pytest.approx(0.3)

    def test_duplicate_conclusion_is_ignored(self):
        trace = ReasoningTrace(query="q")
        trace.add_step("a", 0.5, conclusion="x")
        step = trace.add_step("b", 0.95, conclusion="x")

        assert trace.conclusions == ["x"]
        assert trace.confidence == pytest.approx(0.5)
        assert step.contributed is False
        assert len(trace.steps) == 2

    def test_step_without_conclusion_leaves_confidence(self):
        trace = ReasoningTrace(query="q")
        trace.add_step("memory_recall", 0.8, importance=0.8)
        assert trace.confidence == 0.0
        assert trace.steps[0].payload == {"importance": 0.8}

    def test_best_conclusion(self):
        trace = ReasoningTrace(query="q")
        assert trace.best_conclusion is None
        trace.add_step("a", 0.1, conclusion="first")
        trace.add_step("b", 0.9, conclusion="second")
        assert trace.best_conclusion == "first"


class TestTiming:
    def test_duration_zero_until_finished(self):
        trace = ReasoningTrace(query="q")
        assert trace.duration_ms == 0.0
        trace.finish()
        assert trace.end_time is not None
        assert trace.duration_ms >= 0.0

    def test_duration_in_milliseconds(self):
        trace = ReasoningTrace(query="q", start_time=10.0, end_time=10.25)
        assert trace.duration_ms == pytest.approx(250.0)


class TestSerialization:
    def test_from_dict_tolerates_junk_steps(self):
        trace = ReasoningTrace.from_dict(
            {"query": "q", "steps": [{"kind": "a", "payload": "bad"}, "junk"], "conclusions": ["x"]}
        )
        assert len(trace.steps) == 1
        assert trace.steps[0].payload == {}
        assert trace.end_time is None

    def test_step_requires_kind(self):
        with pytest.raises(KeyError):
            ReasoningStep.from_dict({"confidence": 0.5})
