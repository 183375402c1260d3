"""
Shared fixtures for the Mnemos test suite.

Provides small-capacity stores, rule engines with and without the default
rules, and a fully wired orchestrator so individual test modules can focus on
behavior rather than setup.
"""

from __future__ import annotations

import pytest

from mnemos.config import MemoryConfig, MnemosConfig, ReasoningConfig
from mnemos.core import MnemosCore
from mnemos.memory.store import MemoryStore
from mnemos.reasoning.orchestrator import ReasoningOrchestrator
from mnemos.reasoning.rules import RuleEngine


# ---------------------------------------------------------------------------
# Memory fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def memory_store() -> MemoryStore:
    """A store with default policies and small tiers."""
    return MemoryStore(short_term_capacity=3, long_term_capacity=5, episodic_capacity=4)


@pytest.fixture()
def knowledge_store() -> MemoryStore:
    """A store seeded with a few long-term facts in Vietnamese and English."""
    store = MemoryStore()
    store.add_to_long_term("ai", "AI là trí tuệ nhân tạo", 0.8)
    store.add_to_long_term("python", "Python is a programming language", 0.8)
    store.add_to_long_term("vietnam", "Việt Nam là một đất nước xinh đẹp ở Đông Nam Á", 0.8)
    return store


# ---------------------------------------------------------------------------
# Reasoning fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def rule_engine() -> RuleEngine:
    """An engine with the default rule set loaded."""
    return RuleEngine()


@pytest.fixture()
def empty_engine() -> RuleEngine:
    """An engine with no rules at all."""
    return RuleEngine(load_default_rules=False)


@pytest.fixture()
def orchestrator(memory_store, rule_engine) -> ReasoningOrchestrator:
    return ReasoningOrchestrator(memory_store, rule_engine)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def mnemos_config() -> MnemosConfig:
    """Config that ignores any .env file on the developer's machine.

    Note: pydantic-settings fields with aliases are set here using the alias
    name (the env-var name) rather than the Python field name.
    """
    return MnemosConfig(
        memory=MemoryConfig(
            _env_file=None,
            MNEMOS_SHORT_TERM_CAPACITY=3,
            MNEMOS_LONG_TERM_CAPACITY=20,
            MNEMOS_EPISODIC_CAPACITY=10,
        ),
        reasoning=ReasoningConfig(_env_file=None),
    )


@pytest.fixture()
def core(mnemos_config) -> MnemosCore:
    return MnemosCore(mnemos_config)
