"""Assistant memory: persistence, context assembly and retention."""

from aguwai.memory.cleanup import MemoryJanitor
from aguwai.memory.models import (
    Checkpoint,
    CleanupReport,
    EventType,
    MemoryEvent,
    TaskResult,
    ThreadMemory,
    ThreadMessage,
    UserProfile,
)
from aguwai.memory.store import MemoryStore, MemoryStoreError, ThreadConflictError

__all__ = [
    "Checkpoint",
    "CleanupReport",
    "EventType",
    "MemoryEvent",
    "MemoryJanitor",
    "MemoryStore",
    "MemoryStoreError",
    "TaskResult",
    "ThreadConflictError",
    "ThreadMemory",
    "ThreadMessage",
    "UserProfile",
]
