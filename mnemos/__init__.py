"""
Mnemos — tiered memory and forward-chaining inference for conversational agents.

This package holds the part of an agent that remembers and reasons. Text
processing, numeric prediction, transport and disk persistence live outside;
the core receives strings (or structured events) and hands back ranked recall
results, reasoning traces, and plain-dict snapshots.

Layers (bottom to top):
    1. Relevance scoring and content heuristics
    2. MemoryStore (short-term buffer, long-term store, episodic log)
    3. RuleEngine (facts, rules, bounded-depth forward chaining)
    4. ReasoningOrchestrator (one ranked trace per query)
    5. MnemosCore (composition root built from configuration)
"""

__version__ = "0.1.0"
