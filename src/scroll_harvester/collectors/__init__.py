"""Collector contracts and the convergence controller."""

from .accumulator import DeduplicatingAccumulator
from .base import CollectionResult, CollectionStats, Collector
from .controller import ConvergenceController, StepBudget, plan_budget
from .fallback import ActionProposer, capture_snapshot
from .llm_proposer import LiteLLMActionProposer, parse_proposed_action

__all__ = [
    "ActionProposer",
    "CollectionResult",
    "CollectionStats",
    "Collector",
    "ConvergenceController",
    "DeduplicatingAccumulator",
    "LiteLLMActionProposer",
    "StepBudget",
    "capture_snapshot",
    "parse_proposed_action",
    "plan_budget",
]
