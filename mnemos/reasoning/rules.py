"""
Rule Engine — facts, template rules, and bounded forward chaining.

A rule is a list of templates plus a conclusion template:

    modus_ponens: ["if {A} then {B}", "{A}"]  =>  "{B}"

Applying a rule to a piece of text takes two passes. The cheap pre-filter asks
whether ANY of the rule's templates loosely matches the text. If so, the
variables are extracted from the FIRST template with an exact match and
substituted into the conclusion. Rules whose first template has no
placeholders can never produce a conclusion.

Forward chaining feeds each derived conclusion back in as new text, one level
deeper, until the depth bound is reached. There is no cycle detection: a rule
that matches its own output simply fires once per level, so the depth bound
is the termination guarantee. An optional step budget caps the total number
of rule applications in one chaining call.

This is heuristic substitution over strings, not unification. Conclusions are
only as sound as the templates that produced them.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from mnemos.memory._utils import clamp01
from mnemos.reasoning.templates import (
    TemplateError,
    exact_matcher,
    loose_matcher,
    substitute,
)
from mnemos.reasoning.trace import ReasoningTrace

logger = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 1

# (name, templates, conclusion, confidence)
DEFAULT_RULES: tuple[tuple[str, list[str], str, float], ...] = (
    ("modus_ponens", ["if {A} then {B}", "{A}"], "{B}", 0.9),
    ("modus_tollens", ["if {A} then {B}", "not {B}"], "not {A}", 0.85),
    ("causal_chain", ["{A} causes {B}", "{B} causes {C}"], "{A} may cause {C}", 0.7),
    ("analogy", ["{A} is like {B}", "{A} has property {P}"], "{B} may have property {P}", 0.6),
    ("temporal_sequence", ["{A} happens before {B}", "{B} is happening"], "{A} has happened", 0.8),
)


@dataclass(frozen=True)
class Fact:
    """
    An asserted statement.

    Equality covers all four fields, timestamp included, so asserting the
    same content twice at different moments yields two distinct facts.
    """
    content: str
    confidence: float = 1.0
    timestamp: float = field(default_factory=time.time)
    source: str = "user_input"

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Fact:
        return cls(
            content=str(data["content"]),
            confidence=float(data.get("confidence", 1.0)),
            timestamp=float(data.get("timestamp", time.time())),
            source=str(data.get("source", "user_input")),
        )


def _as_templates(raw: Any) -> list[Any]:
    """Normalize a rule pattern to a list of templates.

    A bare template becomes a one-element list. Elements are kept as given;
    malformed ones fail when matched.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [raw]


@dataclass
class Rule:
    """A named template rule. ``usage_count`` grows with each successful application."""
    name: str
    pattern: list[Any]
    conclusion: Any
    confidence: float = 0.5
    usage_count: int = 0
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pattern": list(self.pattern),
            "conclusion": self.conclusion,
            "confidence": self.confidence,
            "usage_count": self.usage_count,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> Rule:
        return cls(
            name=str(data.get("name", name)),
            pattern=_as_templates(data.get("pattern", [])),
            conclusion=data.get("conclusion", ""),
            confidence=clamp01(data.get("confidence", 0.5)),
            usage_count=max(0, int(data.get("usage_count", data.get("usageCount", 0)))),
            created_at=float(data.get("created_at", data.get("createdAt", time.time()))),
        )


@dataclass
class Inference:
    """A conclusion derived by one rule application."""
    content: str
    confidence: float
    rule: str


class _StepBudget:
    """Shared counter for one forward-chaining call tree (0 => unlimited)."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    @property
    def exhausted(self) -> bool:
        return self.limit > 0 and self.used >= self.limit


class RuleEngine:
    """
    Owns rules, facts, cached inferences, and the reasoning-trace history.

    Independent of memory: the orchestrator is what combines the two.
    """

    def __init__(
        self,
        load_default_rules: bool = True,
        history_limit: int = 100,
        saved_history_limit: int = 50,
        step_budget: int = 0,
    ):
        self._rules: dict[str, Rule] = {}
        self._facts: set[Fact] = set()
        self._inferences: dict[str, Any] = {}
        self._history: list[ReasoningTrace] = []
        self._history_limit = max(1, int(history_limit))
        self._saved_history_limit = max(0, int(saved_history_limit))
        self._step_budget = max(0, int(step_budget))
        self._lock = threading.RLock()

        if load_default_rules:
            for name, pattern, conclusion, confidence in DEFAULT_RULES:
                self.add_rule(name, pattern, conclusion, confidence)

        logger.info("rule_engine.initialized", rules=len(self._rules))

    @classmethod
    def from_config(cls, config) -> RuleEngine:
        """Build an engine from a ``ReasoningConfig``."""
        return cls(
            load_default_rules=config.load_default_rules,
            history_limit=config.history_limit,
            saved_history_limit=config.saved_history_limit,
            step_budget=config.step_budget,
        )

    # -------------------------------------------------------------------------
    # Rules and facts
    # -------------------------------------------------------------------------

    def add_rule(
        self,
        name: str,
        pattern: list[str] | str,
        conclusion: str,
        confidence: float = 0.5,
    ) -> Rule:
        """Register (or replace) a rule with a fresh usage counter.

        A single template string is accepted as a one-template pattern.
        """
        with self._lock:
            rule = Rule(
                name=name,
                pattern=_as_templates(pattern),
                conclusion=conclusion,
                confidence=clamp01(confidence),
            )
            self._rules[name] = rule
            logger.debug("rule_engine.rule_added", rule=name, templates=len(rule.pattern))
            return rule

    def get_rule(self, name: str) -> Optional[Rule]:
        return self._rules.get(name)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    def add_fact(
        self,
        content: str,
        confidence: float = 1.0,
        source: str = "user_input",
    ) -> Fact:
        """Assert a fact. Structurally identical facts are stored once.

        Non-string content is stored as its string form.
        """
        if not isinstance(content, str):
            logger.warning("rule_engine.fact_coerced", content_type=type(content).__name__)
            content = str(content)
        with self._lock:
            fact = Fact(
                content=content,
                confidence=clamp01(confidence, default=1.0),
                source=str(source),
            )
            self._facts.add(fact)
            return fact

    @property
    def facts(self) -> list[Fact]:
        """All facts, oldest first."""
        return sorted(self._facts, key=lambda f: f.timestamp)

    def find_facts(self, query: str) -> list[Fact]:
        """Facts whose content contains, or is contained in, the query."""
        if not isinstance(query, str) or not query.strip():
            return []
        q = query.lower()
        with self._lock:
            relevant = [
                fact
                for fact in self._facts
                if isinstance(fact.content, str)
                and fact.content
                and (q in fact.content.lower() or fact.content.lower() in q)
            ]
        relevant.sort(key=lambda f: f.confidence, reverse=True)
        return relevant

    @property
    def inferences(self) -> dict[str, Any]:
        return dict(self._inferences)

    # -------------------------------------------------------------------------
    # Matching and application
    # -------------------------------------------------------------------------

    def matches_rule(self, text: str, rule: Rule) -> bool:
        """Cheap pre-filter: does any of the rule's templates loosely match?"""
        with self._lock:
            try:
                return any(loose_matcher(template).matches(text) for template in rule.pattern)
            except TemplateError as e:
                logger.warning("rule_engine.rule_failed", rule=rule.name, error=str(e))
                return False

    def apply_rule(self, text: str, rule: Rule) -> Optional[Inference]:
        """
        Extract variables from the rule's first template and fill in its conclusion.

        Returns None when nothing is captured or the templates are malformed.
        """
        with self._lock:
            if not rule.pattern:
                return None
            try:
                variables = exact_matcher(rule.pattern[0]).extract(text)
                if not variables:
                    return None
                content = substitute(rule.conclusion, variables)
            except TemplateError as e:
                logger.warning("rule_engine.rule_failed", rule=rule.name, error=str(e))
                return None

            rule.usage_count += 1
            return Inference(content=content, confidence=rule.confidence, rule=rule.name)

    def apply_rules(
        self,
        query: str,
        trace: ReasoningTrace,
        depth: int = 0,
        max_depth: int = 3,
    ) -> None:
        """
        Forward-chain from ``query``, recording every application in ``trace``.

        Each derived conclusion is chained on at ``depth + 1``; nothing fires
        once ``depth >= max_depth``.
        """
        with self._lock:
            budget = _StepBudget(self._step_budget)
            self._chain(query, trace, depth, max_depth, budget)
            if budget.exhausted:
                logger.warning(
                    "rule_engine.step_budget_exhausted",
                    query=query,
                    budget=budget.limit,
                )

    def _chain(
        self,
        text: str,
        trace: ReasoningTrace,
        depth: int,
        max_depth: int,
        budget: _StepBudget,
    ) -> None:
        # Explicit stack of (text, depth, remaining rules). A frame's iterator
        # resumes after its child frame is popped, giving depth-first order.
        if depth >= max_depth:
            return
        rules = list(self._rules.items())
        stack = [(text, depth, iter(rules))]

        while stack:
            current, level, pending = stack[-1]
            for name, rule in pending:
                if budget.exhausted:
                    return
                if not self.matches_rule(current, rule):
                    continue
                inference = self.apply_rule(current, rule)
                if inference is None:
                    continue

                budget.used += 1
                trace.add_step(
                    "rule_application",
                    inference.confidence,
                    conclusion=inference.content,
                    rule=name,
                    depth=level,
                )
                if level + 1 < max_depth:
                    stack.append((inference.content, level + 1, iter(rules)))
                break
            else:
                stack.pop()

    # -------------------------------------------------------------------------
    # History and stats
    # -------------------------------------------------------------------------

    def record_trace(self, trace: ReasoningTrace) -> None:
        """Keep a finished trace for diagnostics, dropping the oldest past the limit."""
        with self._lock:
            self._history.append(trace)
            if len(self._history) > self._history_limit:
                self._history = self._history[-self._history_limit:]

    @property
    def history(self) -> list[ReasoningTrace]:
        return list(self._history)

    def average_reasoning_ms(self) -> float:
        if not self._history:
            return 0.0
        return sum(t.duration_ms for t in self._history) / len(self._history)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            most_used = sorted(self._rules.values(), key=lambda r: r.usage_count, reverse=True)
            return {
                "total_rules": len(self._rules),
                "total_facts": len(self._facts),
                "total_inferences": len(self._inferences),
                "history_length": len(self._history),
                "most_used_rules": [
                    {"name": r.name, "usage_count": r.usage_count} for r in most_used[:5]
                ],
                "average_reasoning_ms": round(self.average_reasoning_ms(), 2),
            }

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> dict[str, Any]:
        """Serialize rules, facts, inferences and the recent trace history."""
        with self._lock:
            saved_history = (
                self._history[-self._saved_history_limit:] if self._saved_history_limit else []
            )
            return {
                "version": SNAPSHOT_VERSION,
                "rules": [[name, rule.to_dict()] for name, rule in self._rules.items()],
                "facts": [fact.to_dict() for fact in self.facts],
                "inferences": [[key, value] for key, value in self._inferences.items()],
                "reasoningHistory": [trace.to_dict() for trace in saved_history],
                "timestamp": time.time(),
            }

    def load(self, data: dict[str, Any]) -> None:
        """
        Restore from a snapshot. Missing fields keep their current values.

        Templates are not validated here; a malformed one is reported when a
        query first reaches it.
        """
        if not isinstance(data, dict):
            logger.warning("rule_engine.load_ignored", reason="snapshot is not a dict")
            return

        with self._lock:
            if data.get("rules") is not None:
                self._rules = self._load_rules(data["rules"])

            if data.get("facts") is not None:
                self._facts = self._load_facts(data["facts"])

            raw_inferences = data.get("inferences")
            if isinstance(raw_inferences, dict):
                self._inferences = dict(raw_inferences)
            elif isinstance(raw_inferences, list):
                self._inferences = {
                    str(entry[0]): entry[1]
                    for entry in raw_inferences
                    if isinstance(entry, (list, tuple)) and len(entry) == 2
                }

            raw_history = data.get("reasoningHistory")
            if isinstance(raw_history, list):
                history = []
                for raw in raw_history:
                    if not isinstance(raw, dict):
                        continue
                    try:
                        history.append(ReasoningTrace.from_dict(raw))
                    except (KeyError, TypeError, ValueError):
                        logger.warning("rule_engine.load_record_skipped", field="reasoningHistory")
                self._history = history[-self._history_limit:]

            logger.info(
                "rule_engine.loaded",
                version=data.get("version"),
                rules=len(self._rules),
                facts=len(self._facts),
                history=len(self._history),
            )

    @staticmethod
    def _load_rules(raw: Any) -> dict[str, Rule]:
        if isinstance(raw, dict):
            entries = list(raw.items())
        elif isinstance(raw, list):
            entries = [
                (entry[0], entry[1])
                for entry in raw
                if isinstance(entry, (list, tuple)) and len(entry) == 2
            ]
        else:
            logger.warning("rule_engine.load_field_malformed", field="rules")
            return {}

        rules: dict[str, Rule] = {}
        for name, record in entries:
            if not isinstance(record, dict):
                continue
            try:
                rule = Rule.from_dict(str(name), record)
            except (TypeError, ValueError):
                logger.warning("rule_engine.load_record_skipped", field="rules", rule=name)
                continue
            rules[str(name)] = rule
        return rules

    @staticmethod
    def _load_facts(raw: Any) -> set[Fact]:
        if not isinstance(raw, list):
            logger.warning("rule_engine.load_field_malformed", field="facts")
            return set()
        facts: set[Fact] = set()
        for record in raw:
            # Older snapshots stored each fact as a JSON string.
            if isinstance(record, str):
                try:
                    record = json.loads(record)
                except json.JSONDecodeError:
                    logger.warning("rule_engine.load_record_skipped", field="facts")
                    continue
            if not isinstance(record, dict):
                continue
            try:
                facts.add(Fact.from_dict(record))
            except (KeyError, TypeError, ValueError):
                logger.warning("rule_engine.load_record_skipped", field="facts")
        return facts
