"""Final answer tool: the agent's reply to the user, which ends the turn."""

from pydantic import Field

from aguwai.tools.base import NO_ANSWER, ToolParams, ToolResult
from aguwai.tools.registry import registry


class FinalAnswerParams(ToolParams):
    answer: str = Field(description="The complete reply to show the user")


@registry.tool(
    name="final_answer",
    description="Reply to the user. Use this once you have everything you need.",
    params_model=FinalAnswerParams,
)
async def final_answer(answer: str) -> ToolResult:
    if not answer.strip():
        return ToolResult(observation=NO_ANSWER, error="Empty answer")
    return ToolResult(observation=answer.strip())
