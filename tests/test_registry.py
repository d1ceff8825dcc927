"""Tests for the tool registry."""

import asyncio

import pytest
from pydantic import Field

from aguwai.config import settings
from aguwai.tools import registry as global_registry
from aguwai.tools.base import GENERIC_APOLOGY, ToolContext, ToolParams, ToolResult
from aguwai.tools.registry import ToolRegistry

# -- Fixtures ----------------------------------------------------------------


@pytest.fixture
def reg() -> ToolRegistry:
    """Fresh registry for each test."""
    return ToolRegistry()


# -- Decorator registration --------------------------------------------------


def test_register_via_decorator(reg: ToolRegistry) -> None:
    @reg.tool(name="ping", description="Ping")
    async def ping() -> ToolResult:
        return ToolResult(observation="pong")

    assert "ping" in reg.tool_names
    assert reg.get("ping").description == "Ping"


def test_decorator_rejects_sync_function(reg: ToolRegistry) -> None:
    with pytest.raises(TypeError, match="must be an async function"):

        @reg.tool(name="bad", description="Bad")
        def bad() -> ToolResult:
            return ToolResult(observation="")


def test_global_registry_has_assistant_tools() -> None:
    assert set(global_registry.tool_names) == {
        "analyze_document",
        "final_answer",
        "generate_interview_questions",
        "search_jobs",
    }


# -- Schemas -----------------------------------------------------------------


def test_schema_uses_camel_case_names(reg: ToolRegistry) -> None:
    class Params(ToolParams):
        job_type: str | None = Field(default=None, description="Job type")
        position: str = Field(description="Position")

    @reg.tool(name="search", description="Search things", params_model=Params)
    async def search(position: str, job_type: str | None = None) -> ToolResult:
        return ToolResult(observation="")

    schema = reg.get_schemas()[0]
    props = schema["input_schema"]["properties"]
    assert schema["name"] == "search"
    assert set(props) == {"jobType", "position"}
    assert schema["input_schema"]["required"] == ["position"]


def test_schema_without_params_model(reg: ToolRegistry) -> None:
    @reg.tool(name="noop", description="No-op")
    async def noop() -> ToolResult:
        return ToolResult(observation="")

    assert reg.get_schemas()[0]["input_schema"] == {"type": "object", "properties": {}}


# -- Execution ---------------------------------------------------------------


async def test_execute_with_params(reg: ToolRegistry) -> None:
    class AddParams(ToolParams):
        first_number: int = Field(description="First number")
        second_number: int = Field(description="Second number")

    @reg.tool(name="add", description="Add", params_model=AddParams)
    async def add(first_number: int, second_number: int) -> ToolResult:
        return ToolResult(observation=str(first_number + second_number))

    result = await reg.execute("add", {"firstNumber": 3, "second_number": 7})
    assert result.success
    assert result.observation == "10"


async def test_execute_injects_context(reg: ToolRegistry) -> None:
    @reg.tool(name="whoami", description="Who am I")
    async def whoami(ctx: ToolContext) -> ToolResult:
        return ToolResult(observation=ctx.user_id or "anonymous")

    assert (await reg.execute("whoami", {}, ToolContext(user_id="u1"))).observation == "u1"
    assert (await reg.execute("whoami", {})).observation == "anonymous"


async def test_execute_unknown_tool(reg: ToolRegistry) -> None:
    result = await reg.execute("nonexistent", {})
    assert not result.success
    assert result.observation == GENERIC_APOLOGY
    assert "Unknown tool" in result.error


async def test_execute_with_invalid_params(reg: ToolRegistry) -> None:
    class Params(ToolParams):
        count: int = Field(description="A number")

    @reg.tool(name="count_things", description="Strict", params_model=Params)
    async def count_things(count: int) -> ToolResult:
        return ToolResult(observation=str(count))

    result = await reg.execute("count_things", {"count": "not_a_number"})
    assert not result.success
    assert result.observation.startswith("I couldn't run count things")


async def test_execute_handler_exception(reg: ToolRegistry) -> None:
    @reg.tool(name="boom", description="Boom")
    async def boom() -> ToolResult:
        msg = "kaboom"
        raise RuntimeError(msg)

    result = await reg.execute("boom", {})
    assert not result.success
    assert result.observation == GENERIC_APOLOGY
    assert "kaboom" in result.error


async def test_execute_timeout(reg: ToolRegistry, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "tool_timeout_seconds", 0.01)

    @reg.tool(name="slow", description="Slow")
    async def slow() -> ToolResult:
        await asyncio.sleep(1)
        return ToolResult(observation="finally")

    result = await reg.execute("slow", {})
    assert not result.success
    assert "too long" in result.observation
