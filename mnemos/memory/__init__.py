"""Memory architecture — short-term buffer, long-term store, episodic log."""
from mnemos.memory.items import Episode, EpisodeContext, MemoryItem, RecallResult
from mnemos.memory.store import DEFAULT_EVICTION_POLICY, EvictionPolicy, MemoryStore

__all__ = [
    "MemoryItem",
    "Episode",
    "EpisodeContext",
    "RecallResult",
    "MemoryStore",
    "EvictionPolicy",
    "DEFAULT_EVICTION_POLICY",
]
