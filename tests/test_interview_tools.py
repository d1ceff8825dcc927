"""Tests for the interview preparation tool."""

from aguwai.memory.store import MemoryStore
from aguwai.tools import registry
from aguwai.tools.base import ToolContext
from aguwai.tools.interview_tools import (
    GENERATION_FAILED,
    build_interview_prompt,
    generate_interview_questions,
)

QUESTIONS = "1. How would you teach fractions to Class VI?\n2. How do you handle a mixed-language class?"


def test_prompt_mentions_optional_details() -> None:
    prompt = build_interview_prompt("Science Teacher", "government", "5 years")

    assert "Science Teacher position at a government school" in prompt
    assert "with 5 years experience" in prompt


def test_prompt_without_optional_details() -> None:
    prompt = build_interview_prompt("Science Teacher")
    assert "school" not in prompt.split(".\n")[0]


async def test_questions_are_generated_and_remembered(store: MemoryStore, make_llm) -> None:
    ctx = ToolContext(user_id="u1", llm=make_llm(QUESTIONS + "\n"), store=store)

    result = await generate_interview_questions(ctx, "Math Teacher", school_type="private")

    assert result.observation == QUESTIONS
    profile = await store.get_user_profile("u1")
    assert profile.interview_history[0].prep == {
        "position": "Math Teacher",
        "schoolType": "private",
        "experienceLevel": None,
        "questions": QUESTIONS,
    }


async def test_generation_failure(make_llm) -> None:
    result = await generate_interview_questions(
        ToolContext(llm=make_llm(TimeoutError())), "Math Teacher"
    )
    assert result.observation == GENERATION_FAILED


async def test_position_is_required(make_llm) -> None:
    result = await registry.execute(
        "generate_interview_questions", {"position": ""}, ToolContext(llm=make_llm())
    )
    assert not result.success
