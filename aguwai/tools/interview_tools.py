"""Interview preparation tool."""

from __future__ import annotations

import logging

import anthropic
from pydantic import Field

from aguwai.memory.store import MemoryStoreError
from aguwai.tools.base import ToolContext, ToolParams, ToolResult
from aguwai.tools.registry import registry

logger = logging.getLogger(__name__)

GENERATION_FAILED = "There was an error generating interview questions. Please try again."


class InterviewQuestionsParams(ToolParams):
    position: str = Field(min_length=1, description="Position applied for, e.g. 'Math Teacher'")
    school_type: str | None = Field(default=None, description="'government' or 'private'")
    experience_level: str | None = Field(default=None, description="e.g. 'entry', '5 years'")


def build_interview_prompt(
    position: str,
    school_type: str | None = None,
    experience_level: str | None = None,
) -> str:
    parts = [f"You are an expert on teacher interviews in Assam, India. "
             f"Generate 5-7 realistic interview questions for a {position} position"]
    if school_type:
        parts.append(f" at a {school_type} school")
    if experience_level:
        parts.append(f" for candidates with {experience_level} experience")
    parts.append(
        ".\nCover teaching methodology, classroom management, subject expertise, "
        "the local Assam education context, and cultural and language considerations."
    )
    return "".join(parts)


@registry.tool(
    name="generate_interview_questions",
    description=(
        "Generate likely interview questions for a teaching position. "
        "Requires position; schoolType and experienceLevel are optional."
    ),
    params_model=InterviewQuestionsParams,
)
async def generate_interview_questions(
    ctx: ToolContext,
    position: str,
    school_type: str | None = None,
    experience_level: str | None = None,
) -> ToolResult:
    if ctx.llm is None:
        return ToolResult(observation=GENERATION_FAILED, error="No LLM provider configured")

    try:
        questions = await ctx.llm.complete(
            [{"role": "user", "content": f"Generate interview questions for a {position} position in Assam."}],
            system=build_interview_prompt(position, school_type, experience_level),
        )
    except (anthropic.APIError, TimeoutError) as exc:
        logger.warning("Interview question generation failed: %s", exc)
        return ToolResult(observation=GENERATION_FAILED, error=f"{type(exc).__name__}: {exc}")

    prep = {
        "position": position,
        "schoolType": school_type,
        "experienceLevel": experience_level,
        "questions": questions.strip(),
    }
    if ctx.store is not None and ctx.user_id is not None:
        try:
            await ctx.store.save_interview_prep(ctx.user_id, prep)
        except MemoryStoreError:
            logger.exception("Could not record interview prep for user %s", ctx.user_id)

    return ToolResult(observation=questions.strip(), data=prep)
