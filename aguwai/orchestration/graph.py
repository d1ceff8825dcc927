"""AssistantGraph — the agent/tool state machine.

One run alternates between an *agent* step (ask the model for its next
decision) and a *tool* step (execute the chosen tool, producing an
observation for the next agent step) until a *final* step appends the
answer to the conversation::

    AGENT --tool decision--> TOOL --observation--> AGENT
    AGENT --final_answer / unparseable / provider failure / hop limit--> FINAL

Every failure folds into a usable answer; a run never raises for provider
or tool problems.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, assert_never

from aguwai.config import settings
from aguwai.llm.prompt import build_agent_messages, build_system_prompt
from aguwai.memory.models import ThreadMessage
from aguwai.orchestration.actions import FinalAnswerAction, ToolAction, parse_decision
from aguwai.tools import registry as default_registry
from aguwai.tools.base import NO_ANSWER

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aguwai.llm.client import LLMProvider
    from aguwai.tools.base import ToolContext, ToolResult
    from aguwai.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

PROVIDER_FAILURE = (
    "I'm having trouble reaching my language service right now. Please try again in a moment."
)
MISSING_TOOL_INPUT = "Sorry, I couldn't work out how to help with that. Could you rephrase?"
OUT_OF_STEPS = (
    "I couldn't complete that request within the steps I'm allowed. "
    "Could you narrow it down or ask in smaller parts?"
)


class Status(StrEnum):
    AGENT = "agent"
    TOOL = "tool"
    FINAL = "final"


@dataclass
class LoopState:
    """Everything one orchestration run carries between steps."""

    messages: list[ThreadMessage]
    status: Status = Status.AGENT
    pending_tool: str | None = None
    pending_input: dict[str, Any] | None = None
    observation: str | None = None
    answer: str | None = None
    hops: int = 0
    step_number: int = 0
    last_agent: str = "agent"
    tools_used: list[str] = field(default_factory=list)
    should_continue: bool = True

    def finish(self, answer: str | None) -> None:
        """Transition to FINAL carrying *answer*."""
        self.status = Status.FINAL
        self.answer = answer if answer and answer.strip() else NO_ANSWER
        self.pending_tool = None
        self.pending_input = None

    # -- Serialization ---------------------------------------------------------

    def to_checkpoint(self) -> dict[str, Any]:
        return {
            "messages": [m.model_dump(exclude_none=True) for m in self.messages],
            "status": str(self.status),
            "pending_tool": self.pending_tool,
            "pending_input": self.pending_input,
            "observation": self.observation,
            "answer": self.answer,
            "hops": self.hops,
            "step_number": self.step_number,
            "last_agent": self.last_agent,
            "tools_used": list(self.tools_used),
            "should_continue": self.should_continue,
        }

    @classmethod
    def from_checkpoint(cls, data: dict[str, Any]) -> LoopState:
        return cls(
            messages=[ThreadMessage.model_validate(m) for m in data.get("messages", [])],
            status=Status(data.get("status", Status.AGENT)),
            pending_tool=data.get("pending_tool"),
            pending_input=data.get("pending_input"),
            observation=data.get("observation"),
            answer=data.get("answer"),
            hops=data.get("hops", 0),
            step_number=data.get("step_number", 0),
            last_agent=data.get("last_agent", "agent"),
            tools_used=list(data.get("tools_used", [])),
            should_continue=data.get("should_continue", True),
        )


class AssistantGraph:
    """Runs the agent/tool loop for one turn.

    Args:
        llm: Provider used for agent decisions.
        registry: Tools available to the agent (default: the global registry).
        max_hops: Tool executions allowed per run before a forced final answer.
        llm_timeout: Seconds to wait for one agent decision.
    """

    def __init__(
        self,
        llm: LLMProvider,
        registry: ToolRegistry | None = None,
        *,
        max_hops: int | None = None,
        llm_timeout: float | None = None,
    ) -> None:
        self._llm = llm
        self._registry = registry or default_registry
        self._max_hops = max_hops if max_hops is not None else settings.max_tool_hops
        self._llm_timeout = llm_timeout or settings.llm_timeout_seconds

    @property
    def max_hops(self) -> int:
        return self._max_hops

    async def run(
        self,
        state: LoopState,
        ctx: ToolContext,
        *,
        user_context: str = "",
        on_step: Callable[[LoopState], Awaitable[None]] | None = None,
        on_tool_result: Callable[[LoopState, str, dict[str, Any], ToolResult], Awaitable[None]]
        | None = None,
    ) -> LoopState:
        """Drive *state* until it halts. Also resumes a partially run state."""
        system_prompt = build_system_prompt(self._registry.get_schemas(), user_context)

        while state.should_continue:
            if state.status is Status.AGENT:
                await self._agent_step(state, system_prompt, ctx)
            elif state.status is Status.TOOL:
                tool_name, tool_input = state.pending_tool, state.pending_input or {}
                result = await self._tool_step(state, ctx)
                if on_tool_result is not None:
                    await on_tool_result(state, tool_name, tool_input, result)
            else:
                self._final_step(state)

            state.step_number += 1
            if on_step is not None:
                await on_step(state)

        logger.info(
            "Run finished after %d step(s), %d hop(s), tools=%s",
            state.step_number,
            state.hops,
            state.tools_used or "none",
        )
        return state

    # -- Steps -----------------------------------------------------------------

    async def _agent_step(self, state: LoopState, system_prompt: str, ctx: ToolContext) -> None:
        prompt = build_agent_messages(state.messages, state.observation)
        try:
            raw = await asyncio.wait_for(
                self._llm.complete(prompt, system=system_prompt), self._llm_timeout
            )
        except Exception as exc:
            logger.warning("Agent decision failed (%s): %s", type(exc).__name__, exc)
            state.finish(PROVIDER_FAILURE)
            return

        state.last_agent = "agent"
        decision = parse_decision(raw)
        if decision is None or self._registry.get(decision.tool) is None:
            state.finish(raw)
            return

        if isinstance(decision, FinalAnswerAction):
            result = await self._registry.execute(decision.tool, decision.tool_input or {}, ctx)
            state.finish(result.observation if result.success else None)
        elif isinstance(decision, ToolAction):
            if decision.tool_input is None:
                logger.warning("Agent chose %s without toolInput", decision.tool)
                state.finish(MISSING_TOOL_INPUT)
            elif state.hops >= self._max_hops:
                logger.warning("Hit max tool hops (%d)", self._max_hops)
                state.finish(OUT_OF_STEPS)
            else:
                state.status = Status.TOOL
                state.pending_tool = decision.tool
                state.pending_input = decision.tool_input
        else:
            assert_never(decision)

    async def _tool_step(self, state: LoopState, ctx: ToolContext) -> ToolResult:
        name = state.pending_tool or ""
        result = await self._registry.execute(name, state.pending_input or {}, ctx)

        state.observation = result.observation
        state.hops += 1
        state.tools_used.append(name)
        state.last_agent = name
        state.pending_tool = None
        state.pending_input = None
        state.status = Status.AGENT
        return result

    @staticmethod
    def _final_step(state: LoopState) -> None:
        state.messages.append(ThreadMessage(role="assistant", content=state.answer or NO_ANSWER))
        state.should_continue = False
