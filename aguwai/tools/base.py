"""Base types for the assistant's tools."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from aguwai.llm.client import LLMProvider
    from aguwai.memory.store import MemoryStore
    from aguwai.repositories.documents import DocumentRepository
    from aguwai.repositories.jobs import JobRepository

NO_ANSWER = "I don't have an answer at this time."
GENERIC_APOLOGY = "Sorry, something went wrong while working on that. Please try again."


@dataclass
class ToolResult:
    """Result of a tool execution.

    ``observation`` is always user-presentable text; it is what the agent
    sees on its next step. ``error`` holds the internal failure (for logs
    and the audit trail) and is never shown to the user.
    """

    observation: str
    error: str | None = None
    data: dict[str, Any] | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Field names are snake_case in Python and camelCase on the wire
    (``jobType``, ``documentContent``) to match the decision format the
    model is prompted with. Either spelling is accepted.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


@dataclass
class ToolContext:
    """Per-turn collaborators injected into handlers that accept ``ctx``."""

    user_id: str | None = None
    thread_id: str | None = None
    jobs: JobRepository | None = None
    documents: DocumentRepository | None = None
    llm: LLMProvider | None = None
    store: MemoryStore | None = None
