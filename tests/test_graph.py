"""Tests for the agent/tool state machine."""

import asyncio
import json

import pytest

from aguwai.memory.models import ThreadMessage
from aguwai.orchestration.graph import (
    MISSING_TOOL_INPUT,
    NO_ANSWER,
    OUT_OF_STEPS,
    PROVIDER_FAILURE,
    AssistantGraph,
    LoopState,
    Status,
)
from aguwai.tools.base import ToolContext, ToolResult
from aguwai.tools.job_tools import NO_JOBS_FOUND
from aguwai.tools.registry import ToolRegistry


def _decide(tool: str, tool_input: dict | None = None) -> str:
    payload: dict = {"tool": tool}
    if tool_input is not None:
        payload["toolInput"] = tool_input
    return json.dumps(payload)


def _answer(text: str) -> str:
    return _decide("final_answer", {"answer": text})


@pytest.fixture
def state() -> LoopState:
    return LoopState(messages=[ThreadMessage(role="user", content="Any maths jobs in Guwahati?")])


# -- Happy paths -------------------------------------------------------------


async def test_direct_final_answer(make_llm, state: LoopState) -> None:
    llm = make_llm(_answer("Namaskar! How can I help?"))

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == "Namaskar! How can I help?"
    assert result.status is Status.FINAL
    assert not result.should_continue
    assert result.messages[-1] == ThreadMessage(role="assistant", content=result.answer)
    assert result.step_number == 2
    assert result.hops == 0


async def test_tool_observation_feeds_next_decision(make_llm, jobs, state: LoopState) -> None:
    llm = make_llm(
        _decide("search_jobs", {"location": "Guwahati", "subject": "math"}),
        _answer("Cotton Collegiate is hiring a Mathematics Teacher."),
    )

    result = await AssistantGraph(llm).run(state, ToolContext(jobs=jobs))

    assert result.tools_used == ["search_jobs"]
    assert result.hops == 1
    second_prompt = llm.calls[1]["messages"][0]["content"]
    assert "Observation: Position: Mathematics Teacher" in second_prompt
    assert "English Teacher" not in second_prompt
    assert result.answer == "Cotton Collegiate is hiring a Mathematics Teacher."


async def test_system_prompt_carries_user_context(make_llm, state: LoopState) -> None:
    llm = make_llm(_answer("ok"))

    await AssistantGraph(llm).run(state, ToolContext(), user_context="User context:\n- hello")

    assert llm.calls[0]["system"].endswith("User context:\n- hello")


async def test_callbacks_see_every_step(make_llm, jobs, state: LoopState) -> None:
    llm = make_llm(_decide("search_jobs", {"location": "Tezpur"}), _answer("None, sorry."))
    steps: list[tuple[int, Status]] = []
    tool_results = []

    async def on_step(current: LoopState) -> None:
        steps.append((current.step_number, current.status))

    async def on_tool_result(current, name, tool_input, result) -> None:
        tool_results.append((name, tool_input, result.observation))

    await AssistantGraph(llm).run(
        state, ToolContext(jobs=jobs), on_step=on_step, on_tool_result=on_tool_result
    )

    assert steps == [
        (1, Status.TOOL),
        (2, Status.AGENT),
        (3, Status.FINAL),
        (4, Status.FINAL),
    ]
    assert tool_results == [("search_jobs", {"location": "Tezpur"}, NO_JOBS_FOUND)]


# -- Termination -------------------------------------------------------------


async def test_hop_limit_forces_final_answer(make_llm, jobs, state: LoopState) -> None:
    llm = make_llm(*[_decide("search_jobs", {"location": "Guwahati"})] * 10)

    result = await AssistantGraph(llm, max_hops=3).run(state, ToolContext(jobs=jobs))

    assert result.answer == OUT_OF_STEPS
    assert result.hops == 3
    assert len(jobs.queries) == 3
    assert len(llm.calls) == 4
    assert not result.should_continue


async def test_plain_text_reply_is_the_answer(make_llm, state: LoopState) -> None:
    llm = make_llm("Guwahati has many schools; try searching by subject.")

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == "Guwahati has many schools; try searching by subject."


async def test_unknown_tool_reply_is_returned_verbatim(make_llm, state: LoopState) -> None:
    raw = _decide("book_train", {"to": "Jorhat"})
    llm = make_llm(raw)

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == raw


async def test_unregistered_tool_reply_is_returned_verbatim(make_llm, state: LoopState) -> None:
    raw = _decide("search_jobs", {"location": "Guwahati"})
    llm = make_llm(raw)

    result = await AssistantGraph(llm, ToolRegistry()).run(state, ToolContext())

    assert result.answer == raw
    assert result.hops == 0


async def test_missing_tool_input(make_llm, jobs, state: LoopState) -> None:
    llm = make_llm(_decide("search_jobs"))

    result = await AssistantGraph(llm).run(state, ToolContext(jobs=jobs))

    assert result.answer == MISSING_TOOL_INPUT
    assert jobs.queries == []


async def test_empty_final_answer(make_llm, state: LoopState) -> None:
    llm = make_llm(_answer(""))

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == NO_ANSWER


async def test_provider_failure(make_llm, state: LoopState) -> None:
    llm = make_llm(ConnectionError("network unreachable"))

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == PROVIDER_FAILURE
    assert result.messages[-1].content == PROVIDER_FAILURE


async def test_provider_timeout(state: LoopState) -> None:
    class SlowLLM:
        async def complete(self, messages, *, system=None) -> str:
            await asyncio.sleep(1)
            return _answer("too late")

    result = await AssistantGraph(SlowLLM(), llm_timeout=0.01).run(state, ToolContext())

    assert result.answer == PROVIDER_FAILURE


async def test_tool_failure_becomes_observation(make_llm, state: LoopState) -> None:
    llm = make_llm(_decide("search_jobs", {"location": "Guwahati"}), _answer("Sorry."))

    result = await AssistantGraph(llm).run(state, ToolContext(jobs=None))

    assert "error searching for jobs" in llm.calls[1]["messages"][0]["content"]
    assert result.answer == "Sorry."


async def test_json_without_tool_is_returned_verbatim(make_llm, state: LoopState) -> None:
    llm = make_llm('{"answer": "Try Dibrugarh too."}')

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == '{"answer": "Try Dibrugarh too."}'


async def test_final_answer_runs_registered_handler(make_llm, state: LoopState) -> None:
    reg = ToolRegistry()
    received: list[str] = []

    @reg.tool(name="final_answer", description="Reply")
    async def final_answer(answer: str) -> ToolResult:
        received.append(answer)
        return ToolResult(observation=answer.upper())

    llm = make_llm(_answer("namaskar"))

    result = await AssistantGraph(llm, reg).run(state, ToolContext())

    assert received == ["namaskar"]
    assert result.answer == "NAMASKAR"


async def test_final_answer_without_answer_field(make_llm, state: LoopState) -> None:
    llm = make_llm(_decide("final_answer", {"reply": "hi"}))

    result = await AssistantGraph(llm).run(state, ToolContext())

    assert result.answer == NO_ANSWER


# -- Checkpoint serialization ------------------------------------------------


def test_checkpoint_round_trip(state: LoopState) -> None:
    state.status = Status.TOOL
    state.pending_tool = "search_jobs"
    state.pending_input = {"location": "Tezpur"}
    state.hops = 2
    state.step_number = 5
    state.tools_used = ["search_jobs", "search_jobs"]

    restored = LoopState.from_checkpoint(json.loads(json.dumps(state.to_checkpoint())))

    assert restored == state
