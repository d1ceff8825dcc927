"""AssistantEngine — one conversational turn, from utterance to remembered answer.

Wraps the AssistantGraph with memory: loads the thread, personalizes the
prompt from the user's long-term profile, runs the loop, and persists the
extended thread. Turns on the same thread are serialized in-process, and
the thread write is version-checked so concurrent writers in other
processes cannot silently overwrite each other.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aguwai.config import settings
from aguwai.llm.prompt import describe_tool_input
from aguwai.memory.models import TaskResult, ThreadMessage
from aguwai.memory.store import MemoryStoreError, make_thread_id
from aguwai.orchestration.graph import AssistantGraph, LoopState
from aguwai.tools.base import ToolContext

if TYPE_CHECKING:
    from aguwai.llm.client import LLMProvider
    from aguwai.memory.models import CleanupReport
    from aguwai.memory.store import MemoryStore
    from aguwai.repositories.documents import DocumentRepository
    from aguwai.repositories.jobs import JobRepository
    from aguwai.tools.base import ToolResult
    from aguwai.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    answer: str
    thread_id: str


class TurnPersistenceError(MemoryStoreError):
    """The turn produced an answer but the thread could not be saved.

    The answer can still be shown to the user; the conversation is not
    remembered until the save is retried.
    """

    def __init__(self, answer: str, thread_id: str) -> None:
        super().__init__(f"Could not save thread {thread_id}")
        self.answer = answer
        self.thread_id = thread_id


class AssistantEngine:
    """Entry point for running assistant turns.

    Args:
        store: Memory store for threads, profiles, checkpoints and audit records.
        llm: Provider for agent decisions.
        jobs: Job repository handed to the search tool.
        documents: Document repository handed to the analysis tool.
        tool_llm: Provider the tools use (defaults to *llm*).
        registry: Tool registry (defaults to the global registry).
        max_hops: Override for ``settings.max_tool_hops``.
        checkpoints_enabled: Override for ``settings.checkpoints_enabled``.
    """

    def __init__(
        self,
        store: MemoryStore,
        llm: LLMProvider,
        jobs: JobRepository | None = None,
        documents: DocumentRepository | None = None,
        *,
        tool_llm: LLMProvider | None = None,
        registry: ToolRegistry | None = None,
        max_hops: int | None = None,
        checkpoints_enabled: bool | None = None,
    ) -> None:
        self._store = store
        self._jobs = jobs
        self._documents = documents
        self._tool_llm = tool_llm or llm
        self._graph = AssistantGraph(llm, registry, max_hops=max_hops)
        self._checkpoints_enabled = (
            settings.checkpoints_enabled if checkpoints_enabled is None else checkpoints_enabled
        )
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    # -- Public API ------------------------------------------------------------

    async def process_message(
        self,
        thread_id: str | None,
        utterance: str,
        user_id: str | None = None,
        *,
        session_id: str | None = None,
    ) -> TurnResult:
        """Run one turn and persist it.

        The thread gains exactly one user and one assistant message per
        call, however many tools ran in between. Without a *thread_id*, the
        thread bound to *session_id* is used (or a new one is started).

        Raises:
            TurnPersistenceError: the answer was produced but not saved.
            MemoryStoreError: the thread could not be loaded.
        """
        if thread_id is None:
            if session_id is not None:
                thread_id = await self._store.resolve_session_thread(session_id, user_id)
            else:
                thread_id = make_thread_id()

        async with self._lock_for(thread_id):
            memory = await self._store.get_thread_memory(thread_id)
            history = list(memory.messages) if memory else []
            base_version = memory.version if memory else 0
            if user_id is None and memory is not None:
                user_id = memory.user_id

            state = LoopState(
                messages=[*history, ThreadMessage(role="user", content=utterance)],
                step_number=await self._last_step(thread_id),
            )
            state = await self._run(state, thread_id, user_id, base_version)

            metadata: dict[str, Any] = dict(memory.metadata) if memory else {}
            metadata["last_turn"] = {"tools": state.tools_used, "hops": state.hops}
            await self._save_thread(
                thread_id, user_id, state, metadata, expected_version=base_version
            )

        return TurnResult(answer=state.answer or "", thread_id=thread_id)

    async def resume_thread(self, thread_id: str) -> TurnResult | None:
        """Finish a run that was interrupted mid-loop, from its latest checkpoint.

        Returns None when the thread has no checkpoint, its last run
        already completed, or the thread was saved after the run began.
        """
        async with self._lock_for(thread_id):
            checkpoint = await self._store.get_latest_checkpoint(thread_id)
            if checkpoint is None:
                return None

            state = LoopState.from_checkpoint(checkpoint.data)
            if not state.should_continue:
                return None

            user_id = checkpoint.data.get("user_id")
            base_version = checkpoint.data.get("base_version", 0)
            memory = await self._store.get_thread_memory(thread_id)
            live_version = memory.version if memory else 0
            if live_version != base_version:
                logger.info(
                    "Not resuming thread %s: saved at version %d since step %d",
                    thread_id,
                    live_version,
                    checkpoint.step_number,
                )
                return None

            logger.info(
                "Resuming thread %s from step %d (%s)",
                thread_id,
                checkpoint.step_number,
                checkpoint.agent_name,
            )
            state = await self._run(state, thread_id, user_id, base_version)

            metadata: dict[str, Any] = dict(memory.metadata) if memory else {}
            metadata["last_turn"] = {"tools": state.tools_used, "hops": state.hops, "resumed": True}
            await self._save_thread(
                thread_id, user_id, state, metadata, expected_version=base_version
            )

        return TurnResult(answer=state.answer or "", thread_id=thread_id)

    async def get_user_context(self, user_id: str) -> str:
        """Personalization summary for callers that do not need a full turn."""
        return await self._store.get_user_context(user_id)

    async def run_cleanup(self) -> CleanupReport:
        return await self._store.run_cleanup()

    # -- Internal --------------------------------------------------------------

    def _lock_for(self, thread_id: str) -> asyncio.Lock:
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[thread_id] = lock
        return lock

    async def _last_step(self, thread_id: str) -> int:
        """Step number of the thread's latest checkpoint (0 if none)."""
        if not self._checkpoints_enabled:
            return 0
        checkpoint = await self._store.get_latest_checkpoint(thread_id)
        return checkpoint.step_number if checkpoint else 0

    async def _run(
        self, state: LoopState, thread_id: str, user_id: str | None, base_version: int
    ) -> LoopState:
        ctx = ToolContext(
            user_id=user_id,
            thread_id=thread_id,
            jobs=self._jobs,
            documents=self._documents,
            llm=self._tool_llm,
            store=self._store,
        )
        user_context = await self._user_context(user_id)

        async def on_step(current: LoopState) -> None:
            await self._checkpoint(thread_id, user_id, base_version, current)

        async def on_tool_result(
            current: LoopState, tool_name: str, tool_input: dict[str, Any], result: ToolResult
        ) -> None:
            await self._audit(thread_id, user_id, current, tool_name, tool_input, result)

        return await self._graph.run(
            state,
            ctx,
            user_context=user_context,
            on_step=on_step,
            on_tool_result=on_tool_result,
        )

    async def _user_context(self, user_id: str | None) -> str:
        if user_id is None:
            return ""
        try:
            return await self._store.get_user_context(user_id)
        except MemoryStoreError:
            logger.exception("User context unavailable for %s; continuing without it", user_id)
            return ""

    async def _save_thread(
        self,
        thread_id: str,
        user_id: str | None,
        state: LoopState,
        metadata: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> None:
        try:
            await self._store.save_thread_memory(
                thread_id,
                user_id,
                state.messages,
                metadata,
                state.last_agent,
                expected_version=expected_version,
            )
        except MemoryStoreError as exc:
            logger.error("Turn on thread %s was answered but not saved: %s", thread_id, exc)
            raise TurnPersistenceError(state.answer or "", thread_id) from exc

    async def _checkpoint(
        self, thread_id: str, user_id: str | None, base_version: int, state: LoopState
    ) -> None:
        if not self._checkpoints_enabled:
            return
        data = {**state.to_checkpoint(), "user_id": user_id, "base_version": base_version}
        try:
            await self._store.save_checkpoint(
                thread_id, state.last_agent, data, state.step_number
            )
        except MemoryStoreError:
            logger.warning("Checkpoint %d for thread %s not saved", state.step_number, thread_id)

    async def _audit(
        self,
        thread_id: str,
        user_id: str | None,
        state: LoopState,
        tool_name: str,
        tool_input: dict[str, Any],
        result: ToolResult,
    ) -> None:
        task_result = TaskResult(
            agent_name=tool_name,
            task=describe_tool_input(tool_input),
            result=result.observation,
            confidence=1.0 if result.success else 0.0,
            metadata={"hop": state.hops, "error": result.error},
        )
        try:
            await self._store.save_task_result(task_result, user_id=user_id, thread_id=thread_id)
        except MemoryStoreError:
            logger.warning("Task result for %s on thread %s not saved", tool_name, thread_id)
