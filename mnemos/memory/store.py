"""
Memory Store — the three tiers and the policies that move things between them.

Short-term is a small FIFO buffer of whatever just happened. Long-term is a
bounded key/value store of things worth keeping. Episodic is a bounded log of
events, each stamped with a snapshot of the short-term context it formed in.

Policies:
- PROMOTION: when the short-term buffer overflows, the oldest item falls out.
  If its importance is above the promotion threshold, a copy is consolidated
  into long-term storage and marked so decay can never purge it.
- EVICTION: when long-term storage overflows, entries are ranked with a
  weighted pairwise comparator (importance, access count, recency) and the
  lowest-ranked ones are dropped until the store is back at capacity.
- DECAY: long-term items untouched for longer than the horizon lose
  importance exponentially; unconsolidated items that sink below the purge
  threshold are forgotten.
- RECALL: every candidate in the selected tiers is scored lexically, weak
  matches are dropped, and each returned item has its access bookkeeping
  updated. Frequently recalled items slowly gain importance.

Every capacity bound holds after every public operation returns. Public
operations take the store's lock, so a threaded host sees each one atomically.
"""

from __future__ import annotations

import copy
import functools
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from mnemos.memory import heuristics, relevance
from mnemos.memory._utils import clamp01
from mnemos.memory.items import (
    TIER_ALL,
    TIER_EPISODIC,
    TIER_LONG_TERM,
    TIER_SHORT_TERM,
    Episode,
    EpisodeContext,
    MemoryItem,
    RecallResult,
)

logger = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 1

_VALID_TIERS = {TIER_ALL, TIER_SHORT_TERM, TIER_LONG_TERM, TIER_EPISODIC}

# How many short-term items an episode's context snapshot keeps, and how many
# feed active-topic detection.
_CONTEXT_RECENT_ITEMS = 3
_TOPIC_WINDOW = 5


@dataclass(frozen=True)
class EvictionPolicy:
    """
    Weighted pairwise comparator used to rank long-term eviction candidates.

    compare(a, b) = Δimportance * w_i + Δaccess_count * w_a + Δlast_access * w_r

    with Δlast_access measured in ``recency_unit_seconds`` (milliseconds by
    default). This is a heuristic ordering, not a lexicographic one: a large
    recency gap can outweigh a small importance gap.
    """
    version: int = 1
    importance_weight: float = 1.0
    access_weight: float = 0.1
    recency_weight: float = 0.001
    recency_unit_seconds: float = 0.001

    def compare(self, a: MemoryItem, b: MemoryItem) -> float:
        recency_delta = (a.last_access_at - b.last_access_at) / self.recency_unit_seconds
        return (
            (a.importance - b.importance) * self.importance_weight
            + (a.access_count - b.access_count) * self.access_weight
            + recency_delta * self.recency_weight
        )


DEFAULT_EVICTION_POLICY = EvictionPolicy()


def _pairs(value: Any) -> list[tuple[str, Any]]:
    """Accept either ``[[key, value], ...]`` or ``{key: value}``."""
    if isinstance(value, dict):
        return [(str(k), v) for k, v in value.items()]
    pairs = []
    if isinstance(value, list):
        for entry in value:
            if isinstance(entry, (list, tuple)) and len(entry) == 2:
                pairs.append((str(entry[0]), entry[1]))
    return pairs


class MemoryStore:
    """
    Owns the short-term buffer, the long-term store and the episodic log.

    Usage pattern:
        1. add_to_short_term() for every conversational turn
        2. add_to_long_term() for knowledge worth keeping
        3. add_episodic_memory() for completed interactions
        4. recall() to retrieve, apply_decay() periodically to forget
    """

    def __init__(
        self,
        short_term_capacity: int = 10,
        long_term_capacity: int = 1000,
        episodic_capacity: int = 500,
        decay_rate: float = 0.1,
        consolidation_threshold: int = 5,
        promotion_threshold: float = 0.7,
        relevance_floor: float = 0.1,
        decay_horizon_seconds: float = 24 * 60 * 60,
        purge_threshold: float = 0.1,
        eviction_policy: Optional[EvictionPolicy] = None,
    ):
        self._short_term_capacity = max(0, int(short_term_capacity))
        self._long_term_capacity = max(0, int(long_term_capacity))
        self._episodic_capacity = max(0, int(episodic_capacity))
        self._decay_rate = max(0.0, float(decay_rate))
        self._consolidation_threshold = max(0, int(consolidation_threshold))
        self._promotion_threshold = promotion_threshold
        self._relevance_floor = relevance_floor
        self._decay_horizon = max(1.0, float(decay_horizon_seconds))
        self._purge_threshold = purge_threshold
        self._eviction_policy = eviction_policy or DEFAULT_EVICTION_POLICY

        self._short_term: list[MemoryItem] = []
        self._long_term: dict[str, MemoryItem] = {}
        self._episodic: list[Episode] = []
        # key -> importance, mirrors self._long_term[key].importance
        self._weights: dict[str, float] = {}

        self._lock = threading.RLock()

        logger.info(
            "memory_store.initialized",
            short_term_capacity=self._short_term_capacity,
            long_term_capacity=self._long_term_capacity,
            episodic_capacity=self._episodic_capacity,
        )

    @classmethod
    def from_config(cls, config) -> MemoryStore:
        """Build a store from a ``MemoryConfig``."""
        return cls(
            short_term_capacity=config.short_term_capacity,
            long_term_capacity=config.long_term_capacity,
            episodic_capacity=config.episodic_capacity,
            decay_rate=config.decay_rate,
            consolidation_threshold=config.consolidation_threshold,
            promotion_threshold=config.promotion_threshold,
            relevance_floor=config.relevance_floor,
            decay_horizon_seconds=config.decay_horizon_seconds,
            purge_threshold=config.purge_threshold,
            eviction_policy=EvictionPolicy(
                importance_weight=config.eviction_importance_weight,
                access_weight=config.eviction_access_weight,
                recency_weight=config.eviction_recency_weight,
            ),
        )

    # -------------------------------------------------------------------------
    # Short-term
    # -------------------------------------------------------------------------

    def add_to_short_term(self, content: Any) -> str:
        """
        Append content to the short-term buffer and return its id.

        Overflow pushes out the oldest item; a sufficiently important one is
        consolidated into long-term storage on its way out.
        """
        with self._lock:
            item = MemoryItem(
                content=content,
                importance=heuristics.calculate_importance(content),
            )
            self._short_term.append(item)

            while len(self._short_term) > self._short_term_capacity:
                removed = self._short_term.pop(0)
                if removed.importance > self._promotion_threshold:
                    self._consolidate_to_long_term(removed)

            logger.debug(
                "memory_store.short_term_added",
                item_id=item.item_id,
                importance=item.importance,
                count=len(self._short_term),
            )
            return item.item_id

    def _consolidate_to_long_term(self, item: MemoryItem) -> str:
        key = f"consolidated_{item.item_id}"
        self._long_term[key] = MemoryItem(
            content=copy.deepcopy(item.content),
            importance=item.importance,
            consolidated=True,
        )
        self._weights[key] = item.importance
        logger.info("memory_store.promoted", item_id=item.item_id, key=key, importance=item.importance)
        self._manage_long_term_capacity()
        return key

    # -------------------------------------------------------------------------
    # Long-term
    # -------------------------------------------------------------------------

    def add_to_long_term(self, key: str, value: Any, importance: float = 0.5) -> str:
        """Insert or overwrite a long-term entry. Returns the key."""
        with self._lock:
            importance = clamp01(importance)
            self._long_term[key] = MemoryItem(content=value, importance=importance)
            self._weights[key] = importance
            self._manage_long_term_capacity()
            logger.debug("memory_store.long_term_added", key=key, importance=importance)
            return key

    def _manage_long_term_capacity(self) -> list[str]:
        """Evict lowest-ranked entries until the store fits. Returns evicted keys."""
        overflow = len(self._long_term) - self._long_term_capacity
        if overflow <= 0:
            return []

        self._ensure_weight_index()
        compare = self._eviction_policy.compare
        ranked = sorted(
            self._long_term.items(),
            key=functools.cmp_to_key(lambda a, b: compare(a[1], b[1])),
        )
        evicted = [key for key, _ in ranked[:overflow]]
        for key in evicted:
            del self._long_term[key]
            self._weights.pop(key, None)

        logger.info(
            "memory_store.evicted",
            count=len(evicted),
            keys=evicted,
            policy_version=self._eviction_policy.version,
        )
        return evicted

    def _ensure_weight_index(self) -> None:
        """Rebuild the weight index if it drifted from the items it mirrors."""
        drifted = self._weights.keys() != self._long_term.keys() or any(
            self._weights[key] != item.importance for key, item in self._long_term.items()
        )
        if drifted:
            logger.warning(
                "memory_store.weight_index_rebuilt",
                index_size=len(self._weights),
                store_size=len(self._long_term),
            )
            self._weights = {key: item.importance for key, item in self._long_term.items()}

    def get_long_term(self, key: str) -> Optional[MemoryItem]:
        """Return a long-term item by key without touching its bookkeeping."""
        return self._long_term.get(key)

    def weight(self, key: str) -> Optional[float]:
        """Return the indexed importance weight for a long-term key."""
        return self._weights.get(key)

    # -------------------------------------------------------------------------
    # Episodic
    # -------------------------------------------------------------------------

    def add_episodic_memory(self, event: Any) -> str:
        """Log an event with its context snapshot and emotional tags."""
        with self._lock:
            now = time.time()
            episode = Episode(
                event=event,
                timestamp=now,
                context=EpisodeContext(
                    recent_memories=[
                        copy.deepcopy(m) for m in self._short_term[-_CONTEXT_RECENT_ITEMS:]
                    ],
                    active_topics=self._active_topics(),
                    timestamp=now,
                ),
                emotional_tags=heuristics.analyze_emotions(event),
                importance=heuristics.calculate_importance(event),
                last_access_at=now,
            )
            self._episodic.append(episode)

            while len(self._episodic) > self._episodic_capacity:
                self._episodic.pop(0)

            logger.debug(
                "memory_store.episode_added",
                episode_id=episode.episode_id,
                importance=episode.importance,
                topics=episode.context.active_topics,
            )
            return episode.episode_id

    def _active_topics(self) -> list[str]:
        return heuristics.detect_active_topics(
            item.content for item in self._short_term[-_TOPIC_WINDOW:]
        )

    # -------------------------------------------------------------------------
    # Recall
    # -------------------------------------------------------------------------

    def recall(self, query: str, tier: str = TIER_ALL) -> list[RecallResult]:
        """
        Retrieve items relevant to ``query``, most relevant first.

        ``tier`` is one of "shortterm", "longterm", "episodic" or "all".
        Results scoring at or below the relevance floor are dropped. Every
        returned item is marked as accessed; past the consolidation threshold
        each access also raises its importance by 0.1.
        """
        with self._lock:
            if tier not in _VALID_TIERS:
                logger.warning("memory_store.invalid_tier", tier=tier)
                return []

            results: list[RecallResult] = []

            if tier in (TIER_ALL, TIER_SHORT_TERM):
                for item in self._short_term:
                    self._collect(results, query, item.item_id, TIER_SHORT_TERM, item.content, item)

            if tier in (TIER_ALL, TIER_LONG_TERM):
                for key, item in self._long_term.items():
                    self._collect(results, query, key, TIER_LONG_TERM, item.content, item)

            if tier in (TIER_ALL, TIER_EPISODIC):
                for episode in self._episodic:
                    self._collect(
                        results, query, episode.episode_id, TIER_EPISODIC, episode.event, episode
                    )

            results.sort(key=lambda r: r.relevance, reverse=True)

            now = time.time()
            for result in results:
                result.item.touch(now, self._consolidation_threshold)
                if result.tier == TIER_LONG_TERM:
                    self._weights[result.item_id] = result.item.importance

            logger.debug("memory_store.recalled", query=query, tier=tier, hits=len(results))
            return results

    def _collect(
        self,
        results: list[RecallResult],
        query: str,
        item_id: str,
        tier: str,
        content: Any,
        item: MemoryItem | Episode,
    ) -> None:
        score = relevance.score(query, content)
        if score > self._relevance_floor:
            results.append(
                RecallResult(
                    item_id=item_id,
                    tier=tier,
                    content=content,
                    relevance=score,
                    importance=item.importance,
                    item=item,
                )
            )

    # -------------------------------------------------------------------------
    # Decay
    # -------------------------------------------------------------------------

    def apply_decay(self) -> list[str]:
        """
        Fade long-term items not accessed within the decay horizon.

        Returns the keys purged because their importance fell below the
        purge threshold (consolidated items are never purged).
        """
        with self._lock:
            now = time.time()
            decayed = 0
            purged: list[str] = []

            for key, item in list(self._long_term.items()):
                elapsed = now - item.last_access_at
                if elapsed <= self._decay_horizon:
                    continue
                item.importance *= math.exp(-self._decay_rate * (elapsed / self._decay_horizon))
                self._weights[key] = item.importance
                decayed += 1

                if item.importance < self._purge_threshold and not item.consolidated:
                    del self._long_term[key]
                    self._weights.pop(key, None)
                    purged.append(key)

            if decayed:
                logger.info("memory_store.decayed", decayed=decayed, purged=len(purged))
            return purged

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def short_term_items(self) -> list[MemoryItem]:
        return list(self._short_term)

    @property
    def episodes(self) -> list[Episode]:
        return list(self._episodic)

    @property
    def long_term_keys(self) -> list[str]:
        return list(self._long_term)

    @property
    def short_term_count(self) -> int:
        return len(self._short_term)

    @property
    def long_term_count(self) -> int:
        return len(self._long_term)

    @property
    def episodic_count(self) -> int:
        return len(self._episodic)

    @property
    def short_term_capacity(self) -> int:
        return self._short_term_capacity

    @property
    def long_term_capacity(self) -> int:
        return self._long_term_capacity

    @property
    def episodic_capacity(self) -> int:
        return self._episodic_capacity

    def clear(self) -> None:
        """Drop every tier. Configuration is kept."""
        with self._lock:
            self._short_term.clear()
            self._long_term.clear()
            self._episodic.clear()
            self._weights.clear()
            logger.info("memory_store.cleared")

    def most_accessed(self, limit: int = 5) -> list[dict[str, Any]]:
        """Long-term entries with the highest access counts."""
        with self._lock:
            ranked = sorted(
                self._long_term.items(), key=lambda kv: kv[1].access_count, reverse=True
            )
            return [
                {
                    "key": key,
                    "access_count": item.access_count,
                    "last_access_at": item.last_access_at,
                    "content": item.content,
                }
                for key, item in ranked[:limit]
            ]

    def stats(self) -> dict[str, Any]:
        """Per-tier usage plus the most accessed memories."""

        def _tier(count: int, capacity: int) -> dict[str, Any]:
            usage = round(count / capacity * 100, 1) if capacity > 0 else 0.0
            return {"count": count, "capacity": capacity, "usage": usage}

        with self._lock:
            return {
                "short_term": _tier(len(self._short_term), self._short_term_capacity),
                "long_term": _tier(len(self._long_term), self._long_term_capacity),
                "episodic": _tier(len(self._episodic), self._episodic_capacity),
                "total_memories": (
                    len(self._short_term) + len(self._long_term) + len(self._episodic)
                ),
                "most_accessed": self.most_accessed(5),
                "active_topics": self._active_topics(),
            }

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> dict[str, Any]:
        """Serialize every tier and the configuration into a snapshot dict."""
        with self._lock:
            self._ensure_weight_index()
            return {
                "version": SNAPSHOT_VERSION,
                "shortTerm": [item.to_dict() for item in self._short_term],
                "longTerm": [[key, item.to_dict()] for key, item in self._long_term.items()],
                "episodic": [episode.to_dict() for episode in self._episodic],
                "memoryWeights": [[key, weight] for key, weight in self._weights.items()],
                "accessCount": [
                    [key, item.access_count] for key, item in self._long_term.items()
                ],
                "lastAccess": [
                    [key, item.last_access_at] for key, item in self._long_term.items()
                ],
                "config": {
                    "shortTermCapacity": self._short_term_capacity,
                    "longTermCapacity": self._long_term_capacity,
                    "episodicCapacity": self._episodic_capacity,
                    "decayRate": self._decay_rate,
                    "consolidationThreshold": self._consolidation_threshold,
                },
                "timestamp": time.time(),
            }

    def load(self, data: dict[str, Any]) -> None:
        """
        Restore state from a snapshot produced by ``save()``.

        Partial snapshots are legal: any missing field keeps its current
        value. Malformed records are skipped.
        """
        if not isinstance(data, dict):
            logger.warning("memory_store.load_ignored", reason="snapshot is not a dict")
            return

        with self._lock:
            self._load_config(data.get("config"))

            if data.get("shortTerm") is not None:
                self._short_term = self._parse_records(
                    data["shortTerm"], MemoryItem.from_dict, "shortTerm"
                )

            if data.get("longTerm") is not None:
                self._long_term = self._parse_long_term(data)

            if data.get("episodic") is not None:
                self._episodic = self._parse_records(
                    data["episodic"], Episode.from_dict, "episodic"
                )

            self._weights = {key: item.importance for key, item in self._long_term.items()}
            self._enforce_capacities_after_load()

            logger.info(
                "memory_store.loaded",
                version=data.get("version"),
                short_term=len(self._short_term),
                long_term=len(self._long_term),
                episodic=len(self._episodic),
            )

    def _load_config(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            return
        try:
            if "shortTermCapacity" in raw:
                self._short_term_capacity = max(0, int(raw["shortTermCapacity"]))
            if "longTermCapacity" in raw:
                self._long_term_capacity = max(0, int(raw["longTermCapacity"]))
            if "episodicCapacity" in raw:
                self._episodic_capacity = max(0, int(raw["episodicCapacity"]))
            if "decayRate" in raw:
                self._decay_rate = max(0.0, float(raw["decayRate"]))
            if "consolidationThreshold" in raw:
                self._consolidation_threshold = max(0, int(raw["consolidationThreshold"]))
        except (TypeError, ValueError):
            logger.warning("memory_store.load_config_malformed", config=raw)

    @staticmethod
    def _parse_records(raw: Any, parse, field_name: str) -> list:
        if not isinstance(raw, list):
            logger.warning("memory_store.load_field_malformed", field=field_name)
            return []
        parsed = []
        for record in raw:
            if not isinstance(record, dict):
                continue
            try:
                parsed.append(parse(record))
            except (KeyError, TypeError, ValueError):
                logger.warning("memory_store.load_record_skipped", field=field_name)
        return parsed

    def _parse_long_term(self, data: dict[str, Any]) -> dict[str, MemoryItem]:
        # Mirrors only fill fields an item record does not carry itself.
        weights = dict(_pairs(data.get("memoryWeights")))
        access_counts = dict(_pairs(data.get("accessCount")))
        last_access = dict(_pairs(data.get("lastAccess")))

        restored: dict[str, MemoryItem] = {}
        for key, record in _pairs(data["longTerm"]):
            if not isinstance(record, dict):
                continue
            record = dict(record)
            if "importance" not in record and key in weights:
                record["importance"] = weights[key]
            if "access_count" not in record and key in access_counts:
                record["access_count"] = access_counts[key]
            if "last_access_at" not in record and key in last_access:
                record["last_access_at"] = last_access[key]
            try:
                restored[key] = MemoryItem.from_dict(record)
            except (KeyError, TypeError, ValueError):
                logger.warning("memory_store.load_record_skipped", field="longTerm", key=key)
        return restored

    def _enforce_capacities_after_load(self) -> None:
        if len(self._short_term) > self._short_term_capacity:
            logger.warning(
                "memory_store.load_trimmed",
                tier=TIER_SHORT_TERM,
                dropped=len(self._short_term) - self._short_term_capacity,
            )
            del self._short_term[: len(self._short_term) - self._short_term_capacity]
        if len(self._episodic) > self._episodic_capacity:
            logger.warning(
                "memory_store.load_trimmed",
                tier=TIER_EPISODIC,
                dropped=len(self._episodic) - self._episodic_capacity,
            )
            del self._episodic[: len(self._episodic) - self._episodic_capacity]
        self._manage_long_term_capacity()
