"""Orchestration: the agent/tool loop and the memory-backed turn engine."""

from aguwai.orchestration.engine import AssistantEngine, TurnPersistenceError, TurnResult
from aguwai.orchestration.graph import AssistantGraph, LoopState, Status

__all__ = [
    "AssistantEngine",
    "AssistantGraph",
    "LoopState",
    "Status",
    "TurnPersistenceError",
    "TurnResult",
]
