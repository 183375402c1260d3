"""
Reasoning Orchestrator — one query in, one ranked trace out.

The orchestrator is the only place where memory and rules meet. For each
query it gathers evidence from five sources, in order:

  1. Direct facts asserted in the rule engine
  2. The best memory recalled for the query
  3. Forward chaining over the rule set
  4. One canned question handler (what / how / why / when)
  5. Analogies against remembered episodes

Every source appends steps to the same trace. Conclusions are deduplicated and
the trace's confidence is the strongest single piece of evidence, never a sum.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from mnemos.memory.items import TIER_EPISODIC
from mnemos.memory.store import MemoryStore
from mnemos.reasoning.rules import RuleEngine
from mnemos.reasoning.trace import ReasoningTrace
from mnemos.types import TextProcessor, WhitespaceTextProcessor

logger = structlog.get_logger(__name__)

# Tokens this short are too common to count as shared meaning
_MIN_ANALOGY_TOKEN_LEN = 4


@dataclass(frozen=True)
class QuestionHandler:
    """
    A canned question shape.

    ``sub_query`` builds the recall query from the captured subject;
    ``answer`` turns the best recalled content into a conclusion;
    ``fallback`` is what gets said when memory has nothing.
    """
    name: str
    pattern: re.Pattern
    sub_query: Callable[[str], str]
    answer: Callable[[str, str], str]
    fallback: Callable[[str], str]
    fallback_confidence: float


QUESTION_HANDLERS: tuple[QuestionHandler, ...] = (
    QuestionHandler(
        name="explain_concept",
        pattern=re.compile(r"what is (.+)", re.IGNORECASE),
        sub_query=lambda subject: subject,
        answer=lambda subject, content: f"{subject} is {content}",
        fallback=lambda subject: f"I need more information to explain {subject}",
        fallback_confidence=0.3,
    ),
    QuestionHandler(
        name="provide_instructions",
        pattern=re.compile(r"how to (.+)", re.IGNORECASE),
        sub_query=lambda subject: f"how to {subject}",
        answer=lambda subject, content: content,
        fallback=lambda subject: f"To {subject}, you might need to break it down into smaller steps",
        fallback_confidence=0.4,
    ),
    QuestionHandler(
        name="explain_reason",
        pattern=re.compile(r"why (.+)", re.IGNORECASE),
        sub_query=lambda subject: f"because {subject}",
        answer=lambda subject, content: content,
        fallback=lambda subject: f"The reason for {subject} might be related to cause and effect",
        fallback_confidence=0.3,
    ),
    QuestionHandler(
        name="provide_time_info",
        pattern=re.compile(r"when (.+)", re.IGNORECASE),
        sub_query=lambda subject: f"when {subject}",
        answer=lambda subject, content: content,
        fallback=lambda subject: f"I don't have specific timing information about {subject}",
        fallback_confidence=0.2,
    ),
)


class ReasoningOrchestrator:
    """Combines a MemoryStore and a RuleEngine into per-query reasoning traces."""

    def __init__(
        self,
        memory: MemoryStore,
        rules: RuleEngine,
        text_processor: Optional[TextProcessor] = None,
        default_max_depth: int = 3,
        analogy_top_k: int = 3,
        analogy_min_relevance: float = 0.5,
        analogy_discount: float = 0.7,
    ):
        self._memory = memory
        self._rules = rules
        self._text = text_processor or WhitespaceTextProcessor()
        self._default_max_depth = max(0, int(default_max_depth))
        self._analogy_top_k = max(0, int(analogy_top_k))
        self._analogy_min_relevance = analogy_min_relevance
        self._analogy_discount = analogy_discount

    @classmethod
    def from_config(
        cls,
        memory: MemoryStore,
        rules: RuleEngine,
        config,
        text_processor: Optional[TextProcessor] = None,
    ) -> ReasoningOrchestrator:
        """Build an orchestrator from a ``ReasoningConfig``."""
        return cls(
            memory,
            rules,
            text_processor=text_processor,
            default_max_depth=config.max_depth,
            analogy_top_k=config.analogy_top_k,
            analogy_min_relevance=config.analogy_min_relevance,
            analogy_discount=config.analogy_discount,
        )

    @property
    def memory(self) -> MemoryStore:
        return self._memory

    @property
    def rules(self) -> RuleEngine:
        return self._rules

    def reason(self, query: str, max_depth: Optional[int] = None) -> ReasoningTrace:
        """Answer ``query`` and record the finished trace in the rule engine's history."""
        depth_bound = self._default_max_depth if max_depth is None else max(0, int(max_depth))
        trace = ReasoningTrace(query=query)

        logger.debug(
            "orchestrator.reasoning_started",
            query=query,
            language=self._text.detect_language(query),
            max_depth=depth_bound,
        )

        self._direct_facts(query, trace)
        self._memory_recall(query, trace)
        self._rules.apply_rules(query, trace, depth=0, max_depth=depth_bound)
        self._question_handlers(query, trace)
        self._analogies(query, trace)

        trace.finish()
        self._rules.record_trace(trace)

        logger.info(
            "orchestrator.reasoning_finished",
            query=query,
            steps=len(trace.steps),
            conclusions=len(trace.conclusions),
            confidence=round(trace.confidence, 3),
            duration_ms=round(trace.duration_ms, 2),
        )
        return trace

    # -------------------------------------------------------------------------
    # Evidence sources
    # -------------------------------------------------------------------------

    def _direct_facts(self, query: str, trace: ReasoningTrace) -> None:
        facts = self._rules.find_facts(query)
        if not facts:
            return
        best = facts[0]
        trace.add_step(
            "direct_fact",
            best.confidence,
            conclusion=best.content,
            source=best.source,
        )

    def _memory_recall(self, query: str, trace: ReasoningTrace) -> None:
        results = self._memory.recall(query)
        if not results:
            return
        best = results[0]
        # A recalled memory only answers the query when nothing else has yet.
        conclusion = best.content if not trace.conclusions else None
        trace.add_step(
            "memory_recall",
            best.relevance * best.importance,
            conclusion=conclusion,
            tier=best.tier,
            item_id=best.item_id,
            relevance=best.relevance,
            importance=best.importance,
        )

    def _question_handlers(self, query: str, trace: ReasoningTrace) -> None:
        if not isinstance(query, str):
            return
        for handler in QUESTION_HANDLERS:
            match = handler.pattern.search(query)
            if match is None:
                continue

            subject = match.group(1)
            results = self._memory.recall(handler.sub_query(subject))
            if results:
                conclusion = handler.answer(subject, results[0].content)
                confidence = results[0].relevance
            else:
                conclusion = handler.fallback(subject)
                confidence = handler.fallback_confidence

            trace.add_step(
                "pattern_matching",
                confidence,
                conclusion=conclusion,
                handler=handler.name,
                pattern=handler.pattern.pattern,
            )
            # Only the first matching question shape is answered.
            return

    def _analogies(self, query: str, trace: ReasoningTrace) -> None:
        candidates = [
            result
            for result in self._memory.recall(query, tier=TIER_EPISODIC)
            if result.relevance > self._analogy_min_relevance
        ][: self._analogy_top_k]

        query_tokens = self._text.tokenize(query)
        for candidate in candidates:
            candidate_tokens = self._text.tokenize(candidate.content)
            shared = [
                token
                for token in query_tokens
                if token in candidate_tokens and len(token) >= _MIN_ANALOGY_TOKEN_LEN
            ]
            if not shared:
                continue

            similarity = len(shared) / max(len(query_tokens), len(candidate_tokens))
            trace.add_step(
                "analogical_reasoning",
                similarity * self._analogy_discount,
                conclusion=f"Similar to: {candidate.content}",
                source=candidate.item_id,
                shared_tokens=shared,
            )
