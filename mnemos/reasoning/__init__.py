"""Reasoning layer — template rules, forward chaining, and per-query traces."""
from mnemos.reasoning.orchestrator import QUESTION_HANDLERS, QuestionHandler, ReasoningOrchestrator
from mnemos.reasoning.rules import DEFAULT_RULES, Fact, Inference, Rule, RuleEngine
from mnemos.reasoning.templates import TemplateError
from mnemos.reasoning.trace import ReasoningStep, ReasoningTrace

__all__ = [
    "ReasoningOrchestrator",
    "QuestionHandler",
    "QUESTION_HANDLERS",
    "RuleEngine",
    "Rule",
    "Fact",
    "Inference",
    "DEFAULT_RULES",
    "TemplateError",
    "ReasoningStep",
    "ReasoningTrace",
]
