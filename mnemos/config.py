# mnemos/config.py
"""
Configuration for Mnemos.

All tunables flow through this module. Values are loaded from environment
variables (optionally via a .env file) and validated with Pydantic. Every
subsystem can also be constructed directly with keyword arguments; these
settings classes are what the composition root uses.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Resolve .env relative to the project root (one level above mnemos/ package),
# so the config works regardless of the user's current working directory.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class MemoryConfig(BaseSettings):
    """Configuration for the three memory tiers and their policies."""

    short_term_capacity: int = Field(10, alias="MNEMOS_SHORT_TERM_CAPACITY")
    long_term_capacity: int = Field(1000, alias="MNEMOS_LONG_TERM_CAPACITY")
    episodic_capacity: int = Field(500, alias="MNEMOS_EPISODIC_CAPACITY")

    # Forgetting: importance *= exp(-decay_rate * elapsed / horizon)
    decay_rate: float = Field(0.1, alias="MNEMOS_DECAY_RATE")
    decay_horizon_seconds: float = Field(24 * 60 * 60, alias="MNEMOS_DECAY_HORIZON_SECONDS")
    purge_threshold: float = Field(0.1, alias="MNEMOS_PURGE_THRESHOLD")

    # Access count above which each recall nudges importance up
    consolidation_threshold: int = Field(5, alias="MNEMOS_CONSOLIDATION_THRESHOLD")
    # Evicted short-term items above this importance are promoted to long-term
    promotion_threshold: float = Field(0.7, alias="MNEMOS_PROMOTION_THRESHOLD")
    # Recall drops anything scoring at or below this
    relevance_floor: float = Field(0.1, alias="MNEMOS_RELEVANCE_FLOOR")

    # Long-term eviction comparator weights (importance, access count, recency)
    eviction_importance_weight: float = Field(1.0, alias="MNEMOS_EVICTION_IMPORTANCE_WEIGHT")
    eviction_access_weight: float = Field(0.1, alias="MNEMOS_EVICTION_ACCESS_WEIGHT")
    eviction_recency_weight: float = Field(0.001, alias="MNEMOS_EVICTION_RECENCY_WEIGHT")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "MemoryConfig":
        self.short_term_capacity = max(0, int(self.short_term_capacity))
        self.long_term_capacity = max(0, int(self.long_term_capacity))
        self.episodic_capacity = max(0, int(self.episodic_capacity))
        self.decay_rate = max(0.0, float(self.decay_rate))
        self.decay_horizon_seconds = max(1.0, float(self.decay_horizon_seconds))
        self.purge_threshold = max(0.0, min(1.0, float(self.purge_threshold)))
        self.consolidation_threshold = max(0, int(self.consolidation_threshold))
        self.promotion_threshold = max(0.0, min(1.0, float(self.promotion_threshold)))
        self.relevance_floor = max(0.0, min(1.0, float(self.relevance_floor)))
        return self


class ReasoningConfig(BaseSettings):
    """Configuration for the rule engine and the reasoning orchestrator."""

    max_depth: int = Field(3, alias="MNEMOS_MAX_DEPTH")
    # Total rule applications allowed per apply_rules call tree (0 => unlimited)
    step_budget: int = Field(0, alias="MNEMOS_STEP_BUDGET")
    load_default_rules: bool = Field(True, alias="MNEMOS_LOAD_DEFAULT_RULES")

    history_limit: int = Field(100, alias="MNEMOS_HISTORY_LIMIT")
    saved_history_limit: int = Field(50, alias="MNEMOS_SAVED_HISTORY_LIMIT")

    analogy_top_k: int = Field(3, alias="MNEMOS_ANALOGY_TOP_K")
    analogy_min_relevance: float = Field(0.5, alias="MNEMOS_ANALOGY_MIN_RELEVANCE")
    analogy_discount: float = Field(0.7, alias="MNEMOS_ANALOGY_DISCOUNT")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "ReasoningConfig":
        self.max_depth = max(0, int(self.max_depth))
        self.step_budget = max(0, int(self.step_budget))
        self.history_limit = max(1, int(self.history_limit))
        self.saved_history_limit = max(0, min(self.history_limit, int(self.saved_history_limit)))
        self.analogy_top_k = max(0, int(self.analogy_top_k))
        self.analogy_min_relevance = max(0.0, min(1.0, float(self.analogy_min_relevance)))
        self.analogy_discount = max(0.0, min(1.0, float(self.analogy_discount)))
        return self


class MnemosConfig:
    """
    Master configuration that composes the subsystem configs.

    Every component receives its settings from here. No global state.
    """

    def __init__(
        self,
        memory: MemoryConfig | None = None,
        reasoning: ReasoningConfig | None = None,
    ):
        self.memory = memory if memory is not None else MemoryConfig()
        self.reasoning = reasoning if reasoning is not None else ReasoningConfig()

    def __repr__(self) -> str:
        return (
            f"MnemosConfig(short_term={self.memory.short_term_capacity}, "
            f"long_term={self.memory.long_term_capacity}, "
            f"episodic={self.memory.episodic_capacity}, "
            f"max_depth={self.reasoning.max_depth})"
        )
