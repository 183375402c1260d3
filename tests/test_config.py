"""
Tests for mnemos.config — settings loading and normalization.
"""

from __future__ import annotations

import pytest

from mnemos.config import MemoryConfig, MnemosConfig, ReasoningConfig
from mnemos.memory.store import MemoryStore


class TestMemoryConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MNEMOS_SHORT_TERM_CAPACITY", raising=False)
        monkeypatch.delenv("MNEMOS_DECAY_RATE", raising=False)
        cfg = MemoryConfig(_env_file=None)
        assert cfg.short_term_capacity == 10
        assert cfg.long_term_capacity == 1000
        assert cfg.episodic_capacity == 500
        assert cfg.decay_rate == pytest.approx(0.1)
        assert cfg.eviction_recency_weight == pytest.approx(0.001)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MNEMOS_SHORT_TERM_CAPACITY", "4")
        monkeypatch.setenv("MNEMOS_DECAY_RATE", "0.5")
        cfg = MemoryConfig(_env_file=None)
        assert cfg.short_term_capacity == 4
        assert cfg.decay_rate == pytest.approx(0.5)

    def test_negative_values_are_clamped(self):
        cfg = MemoryConfig(
            _env_file=None,
            MNEMOS_LONG_TERM_CAPACITY=-3,
            MNEMOS_PROMOTION_THRESHOLD=1.7,
            MNEMOS_DECAY_HORIZON_SECONDS=0,
        )
        assert cfg.long_term_capacity == 0
        assert cfg.promotion_threshold == 1.0
        assert cfg.decay_horizon_seconds == 1.0

    def test_store_from_config(self):
        cfg = MemoryConfig(
            _env_file=None,
            MNEMOS_SHORT_TERM_CAPACITY=2,
            MNEMOS_EVICTION_ACCESS_WEIGHT=0.5,
        )
        store = MemoryStore.from_config(cfg)
        assert store.short_term_capacity == 2
        assert store._eviction_policy.access_weight == pytest.approx(0.5)


class TestReasoningConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MNEMOS_MAX_DEPTH", raising=False)
        monkeypatch.delenv("MNEMOS_STEP_BUDGET", raising=False)
        cfg = ReasoningConfig(_env_file=None)
        assert cfg.max_depth == 3
        assert cfg.step_budget == 0
        assert cfg.load_default_rules is True
        assert cfg.analogy_discount == pytest.approx(0.7)

    def test_saved_history_never_exceeds_history(self):
        cfg = ReasoningConfig(
            _env_file=None,
            MNEMOS_HISTORY_LIMIT=10,
            MNEMOS_SAVED_HISTORY_LIMIT=50,
        )
        assert cfg.saved_history_limit == 10

    def test_large_max_depth_is_kept(self, monkeypatch):
        monkeypatch.setenv("MNEMOS_MAX_DEPTH", "2000")
        cfg = ReasoningConfig(_env_file=None)
        assert cfg.max_depth == 2000


class TestMnemosConfig:
    def test_composes_defaults(self):
        cfg = MnemosConfig(
            memory=MemoryConfig(_env_file=None, MNEMOS_SHORT_TERM_CAPACITY=7),
            reasoning=ReasoningConfig(_env_file=None, MNEMOS_MAX_DEPTH=5),
        )
        assert "short_term=7" in repr(cfg)
        assert "max_depth=5" in repr(cfg)
