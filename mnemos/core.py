"""
MnemosCore — the composition root.

Each subsystem is useful on its own: the MemoryStore remembers, the
RuleEngine derives, the orchestrator answers. This class builds one of each
from a MnemosConfig and exposes the handful of operations a host agent needs:

  1. seed_knowledge() once at startup
  2. reason() for every incoming query
  3. learn_from_interaction() after every completed exchange
  4. apply_decay() on whatever schedule the host runs
  5. save() / load() around restarts

Nothing here is global. Two cores in one process share no state.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import structlog

from mnemos.config import MnemosConfig
from mnemos.memory._utils import new_id
from mnemos.memory.items import TIER_ALL, RecallResult
from mnemos.memory.store import MemoryStore
from mnemos.reasoning.orchestrator import ReasoningOrchestrator
from mnemos.reasoning.rules import RuleEngine
from mnemos.reasoning.trace import ReasoningTrace
from mnemos.types import TextProcessor

logger = structlog.get_logger(__name__)

SEED_IMPORTANCE = 0.8
SUCCESSFUL_PATTERN_IMPORTANCE = 0.7
# Interactions with a more confident intent than this become rules
LEARNED_RULE_INTENT_THRESHOLD = 0.8
LEARNED_RULE_CONFIDENCE_FACTOR = 0.6


class MnemosCore:
    """One memory store, one rule engine and one orchestrator, wired together."""

    def __init__(
        self,
        config: Optional[MnemosConfig] = None,
        text_processor: Optional[TextProcessor] = None,
    ):
        self._config = config if config is not None else MnemosConfig()
        self.memory = MemoryStore.from_config(self._config.memory)
        self.rules = RuleEngine.from_config(self._config.reasoning)
        self.orchestrator = ReasoningOrchestrator.from_config(
            self.memory,
            self.rules,
            self._config.reasoning,
            text_processor=text_processor,
        )
        logger.info("mnemos_core.initialized", config=repr(self._config))

    @property
    def config(self) -> MnemosConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Knowledge and learning
    # -------------------------------------------------------------------------

    def seed_knowledge(
        self,
        texts: Iterable[str],
        importance: float = SEED_IMPORTANCE,
    ) -> list[str]:
        """Store background knowledge in long-term memory. Returns the keys used."""
        keys = []
        for text in texts:
            keys.append(self.memory.add_to_long_term(f"knowledge_{new_id()}", text, importance))
        logger.info("mnemos_core.knowledge_seeded", count=len(keys))
        return keys

    def learn_from_interaction(
        self,
        user_message: str,
        response: str,
        *,
        sentiment: Optional[str] = None,
        intent_confidence: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Fold one completed exchange back into memory and rules.

        ``sentiment`` and ``intent_confidence`` come from the host's text
        processing. A positive exchange is remembered as a successful pattern;
        every exchange is logged as an episode; a confidently classified one
        also becomes a low-confidence rule.

        Returns what was created, keyed by kind.
        """
        created: dict[str, Any] = {}

        if isinstance(sentiment, str) and sentiment.lower() == "positive":
            key = self.memory.add_to_long_term(
                f"successful_pattern_{new_id()}",
                f'User said: "{user_message}" -> AI responded: "{response}" -> Positive feedback',
                SUCCESSFUL_PATTERN_IMPORTANCE,
            )
            created["successful_pattern"] = key

        created["episode"] = self.memory.add_episodic_memory(
            {
                "type": "conversation",
                "user_message": user_message,
                "response": response,
                "sentiment": sentiment,
                "intent_confidence": intent_confidence,
                "outcome": "completed",
            }
        )

        if intent_confidence is not None and intent_confidence > LEARNED_RULE_INTENT_THRESHOLD:
            rule = self.rules.add_rule(
                f"learned_{new_id()}",
                [user_message],
                response,
                intent_confidence * LEARNED_RULE_CONFIDENCE_FACTOR,
            )
            created["rule"] = rule.name

        logger.debug("mnemos_core.interaction_learned", created=sorted(created))
        return created

    # -------------------------------------------------------------------------
    # Delegation
    # -------------------------------------------------------------------------

    def remember(self, content: Any) -> str:
        """Put a conversational turn into short-term memory."""
        return self.memory.add_to_short_term(content)

    def recall(self, query: str, tier: str = TIER_ALL) -> list[RecallResult]:
        return self.memory.recall(query, tier)

    def reason(self, query: str, max_depth: Optional[int] = None) -> ReasoningTrace:
        return self.orchestrator.reason(query, max_depth)

    def apply_decay(self) -> list[str]:
        return self.memory.apply_decay()

    # -------------------------------------------------------------------------
    # Persistence and stats
    # -------------------------------------------------------------------------

    def save(self) -> dict[str, Any]:
        return {"memory": self.memory.save(), "reasoning": self.rules.save()}

    def load(self, data: dict[str, Any]) -> None:
        """Restore both halves; a missing half keeps its current state."""
        if not isinstance(data, dict):
            logger.warning("mnemos_core.load_ignored", reason="snapshot is not a dict")
            return
        if data.get("memory") is not None:
            self.memory.load(data["memory"])
        if data.get("reasoning") is not None:
            self.rules.load(data["reasoning"])

    def stats(self) -> dict[str, Any]:
        return {"memory": self.memory.stats(), "reasoning": self.rules.stats()}
