"""
Memory records — what each tier actually holds.

A MemoryItem lives in the short-term buffer or the long-term store. An Episode
lives in the episodic log and carries a snapshot of what was in short-term
memory when it was formed. Items are owned by exactly one tier: promotion
builds a fresh record from a deep copy of the payload, it never shares one.
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Any

from mnemos.memory._utils import clamp01, new_id

# Tier names accepted by MemoryStore.recall()
TIER_SHORT_TERM = "shortterm"
TIER_LONG_TERM = "longterm"
TIER_EPISODIC = "episodic"
TIER_ALL = "all"


@dataclass
class MemoryItem:
    """
    A single remembered item in the short-term buffer or long-term store.

    ``content`` is opaque: usually a string, sometimes a structured event dict.
    Only string content participates in relevance scoring.
    """
    item_id: str = field(default_factory=new_id)

    # The remembered payload
    content: Any = ""

    # 0.0 (forgettable) to 1.0 (must keep)
    importance: float = 0.5

    created_at: float = field(default_factory=time.time)

    # Recall bookkeeping
    access_count: int = 0
    last_access_at: float = field(default_factory=time.time)

    # True when this item was promoted from short-term; consolidated items
    # survive decay purges
    consolidated: bool = False

    def touch(self, now: float, threshold: int, boost: float = 0.1) -> None:
        """Record one recall; past the threshold each recall raises importance."""
        self.access_count += 1
        self.last_access_at = now
        if self.access_count > threshold:
            self.importance = min(1.0, self.importance + boost)

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "content": copy.deepcopy(self.content),
            "importance": self.importance,
            "created_at": self.created_at,
            "access_count": self.access_count,
            "last_access_at": self.last_access_at,
            "consolidated": self.consolidated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryItem:
        created_at = float(data.get("created_at", data.get("timestamp", time.time())))
        return cls(
            item_id=str(data.get("item_id") or data.get("id") or new_id()),
            content=copy.deepcopy(data["content"]),
            importance=clamp01(data.get("importance", 0.5)),
            created_at=created_at,
            access_count=max(0, int(data.get("access_count", 0))),
            last_access_at=float(data.get("last_access_at", created_at)),
            consolidated=bool(data.get("consolidated", False)),
        )


@dataclass
class EpisodeContext:
    """What was going on when an episode formed."""
    recent_memories: list[MemoryItem] = field(default_factory=list)
    active_topics: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "recent_memories": [m.to_dict() for m in self.recent_memories],
            "active_topics": list(self.active_topics),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EpisodeContext:
        return cls(
            recent_memories=[
                MemoryItem.from_dict(m)
                for m in data.get("recent_memories", [])
                if isinstance(m, dict)
            ],
            active_topics=[str(t) for t in data.get("active_topics", [])],
            timestamp=float(data.get("timestamp", time.time())),
        )


@dataclass
class Episode:
    """
    A record of something that happened.

    Episodes are never promoted anywhere; when the log is full the oldest one
    is simply dropped.
    """
    episode_id: str = field(default_factory=new_id)

    # Opaque event payload: a sentence, or a dict describing a conversation turn
    event: Any = ""

    timestamp: float = field(default_factory=time.time)
    context: EpisodeContext = field(default_factory=EpisodeContext)

    # emotion name -> 0|1
    emotional_tags: dict[str, int] = field(default_factory=dict)

    importance: float = 0.5

    access_count: int = 0
    last_access_at: float = field(default_factory=time.time)

    def touch(self, now: float, threshold: int, boost: float = 0.1) -> None:
        self.access_count += 1
        self.last_access_at = now
        if self.access_count > threshold:
            self.importance = min(1.0, self.importance + boost)

    def to_dict(self) -> dict[str, Any]:
        return {
            "episode_id": self.episode_id,
            "event": copy.deepcopy(self.event),
            "timestamp": self.timestamp,
            "context": self.context.to_dict(),
            "emotional_tags": dict(self.emotional_tags),
            "importance": self.importance,
            "access_count": self.access_count,
            "last_access_at": self.last_access_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Episode:
        timestamp = float(data.get("timestamp", time.time()))
        raw_context = data.get("context")
        raw_tags = data.get("emotional_tags", data.get("emotions", {}))
        return cls(
            episode_id=str(data.get("episode_id") or data.get("id") or new_id()),
            event=copy.deepcopy(data["event"]),
            timestamp=timestamp,
            context=(
                EpisodeContext.from_dict(raw_context)
                if isinstance(raw_context, dict)
                else EpisodeContext(timestamp=timestamp)
            ),
            emotional_tags=(
                {str(k): 1 if v else 0 for k, v in raw_tags.items()}
                if isinstance(raw_tags, dict)
                else {}
            ),
            importance=clamp01(data.get("importance", 0.5)),
            access_count=max(0, int(data.get("access_count", 0))),
            last_access_at=float(data.get("last_access_at", timestamp)),
        )


@dataclass
class RecallResult:
    """One hit returned by MemoryStore.recall()."""
    item_id: str
    tier: str
    content: Any
    relevance: float
    importance: float
    # The live record, for callers that need the bookkeeping fields
    item: MemoryItem | Episode
