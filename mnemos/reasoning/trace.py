"""
Reasoning traces — the record of how one query was answered.

Every source of evidence (facts, memories, rules, handlers, analogies) appends
a step. A step may also offer a conclusion; new conclusions are appended in
order and the trace's confidence becomes the maximum of its own and the
step's. Confidence is never summed or averaged: three weak hints do not make
a strong answer.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ReasoningStep:
    """One piece of evidence considered while answering a query."""
    kind: str                   # "direct_fact", "memory_recall", "rule_application", ...
    confidence: float = 0.0
    payload: dict[str, Any] = field(default_factory=dict)
    # Whether this step added a new conclusion to the trace
    contributed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "confidence": self.confidence,
            "payload": dict(self.payload),
            "contributed": self.contributed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReasoningStep:
        payload = data.get("payload", {})
        return cls(
            kind=str(data["kind"]),
            confidence=float(data.get("confidence", 0.0)),
            payload=dict(payload) if isinstance(payload, dict) else {},
            contributed=bool(data.get("contributed", False)),
        )


@dataclass
class ReasoningTrace:
    """Steps, distinct conclusions and aggregate confidence for one query."""
    query: str
    steps: list[ReasoningStep] = field(default_factory=list)
    conclusions: list[str] = field(default_factory=list)
    confidence: float = 0.0
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def add_step(
        self,
        kind: str,
        confidence: float,
        conclusion: Optional[str] = None,
        **payload: Any,
    ) -> ReasoningStep:
        """Record a step; merge its conclusion if one is given and new."""
        step = ReasoningStep(kind=kind, confidence=confidence, payload=payload)
        if conclusion is not None and conclusion not in self.conclusions:
            self.conclusions.append(conclusion)
            self.confidence = max(self.confidence, confidence)
            step.contributed = True
        self.steps.append(step)
        return step

    def finish(self) -> None:
        self.end_time = time.time()

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000.0

    @property
    def best_conclusion(self) -> Optional[str]:
        return self.conclusions[0] if self.conclusions else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "steps": [step.to_dict() for step in self.steps],
            "conclusions": list(self.conclusions),
            "confidence": self.confidence,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReasoningTrace:
        end_time = data.get("end_time")
        return cls(
            query=str(data["query"]),
            steps=[
                ReasoningStep.from_dict(s) for s in data.get("steps", []) if isinstance(s, dict)
            ],
            conclusions=[str(c) for c in data.get("conclusions", [])],
            confidence=float(data.get("confidence", 0.0)),
            start_time=float(data.get("start_time", time.time())),
            end_time=float(end_time) if end_time is not None else None,
        )
