"""Data models for thread memory, user profiles, and memory events."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ThreadMessage(BaseModel):
    """A single conversation message stored with a thread."""

    role: Literal["user", "assistant", "system"]
    content: str
    name: str | None = None


class ThreadMemory(BaseModel):
    """Short-term memory for one conversation thread."""

    thread_id: str
    user_id: str | None = None
    messages: list[ThreadMessage] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    last_agent: str | None = None
    version: int = 0
    updated_at: str = ""
    expires_at: str = ""


class ResumeAnalysisEntry(BaseModel):
    timestamp: str
    analysis: dict[str, Any]


class SearchEntry(BaseModel):
    timestamp: str
    query: dict[str, Any]
    result_refs: list[Any] = Field(default_factory=list)


class InterviewEntry(BaseModel):
    timestamp: str
    prep: dict[str, Any]


class UserProfile(BaseModel):
    """Long-term memory for one user.

    The three history lists are kept in insertion order, oldest first.
    """

    user_id: str
    preferences: dict[str, Any] = Field(default_factory=dict)
    resume_analyses: list[ResumeAnalysisEntry] = Field(default_factory=list)
    search_history: list[SearchEntry] = Field(default_factory=list)
    interview_history: list[InterviewEntry] = Field(default_factory=list)
    last_active: str = ""


class EventType(StrEnum):
    RESUME_ANALYSIS = "resume_analysis"
    JOB_SEARCH = "job_search"
    INTERVIEW_PREP = "interview_prep"


class MemoryEvent(BaseModel):
    """An importance-scored record of something that happened for a user."""

    id: int
    user_id: str
    event_type: EventType
    event_data: dict[str, Any] = Field(default_factory=dict)
    importance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    access_count: int = 0
    last_accessed: str = ""
    created_at: str = ""


class Checkpoint(BaseModel):
    """Recovery snapshot of an in-progress orchestration run."""

    thread_id: str
    agent_name: str
    step_number: int
    data: dict[str, Any]
    created_at: str = ""


class TaskResult(BaseModel):
    """Audit record of one tool's output. Written, never read back by the loop."""

    agent_name: str
    task: str
    result: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class MemoryStats(BaseModel):
    active_threads: int = 0
    user_profiles: int = 0
    memory_events: int = 0
    avg_importance: float | None = None
    checkpoints: int = 0


class CleanupReport(BaseModel):
    """Row counts removed by one retention pass."""

    threads: int = 0
    sessions: int = 0
    events: int = 0
    checkpoints: int = 0

    @property
    def total(self) -> int:
        return self.threads + self.sessions + self.events + self.checkpoints
