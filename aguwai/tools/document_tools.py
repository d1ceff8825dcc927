"""Resume and cover letter review tool."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal

import anthropic
import httpx
from pydantic import Field, model_validator

from aguwai.config import settings
from aguwai.llm.parsing import extract_json_object
from aguwai.memory.store import MemoryStoreError
from aguwai.repositories.documents import DocumentNotFoundError
from aguwai.tools.base import ToolContext, ToolParams, ToolResult
from aguwai.tools.registry import registry

logger = logging.getLogger(__name__)

RESUME_PROMPT = """You are an expert resume reviewer for teaching positions in Assam, India.
Review the resume and give specific, actionable feedback on:
1. Overall structure and presentation
2. How well the qualifications (B.Ed, M.Ed, TET, CTET) match teaching requirements in Assam
3. What to improve to get more interviews
4. How to better highlight teaching skills and certifications

Respond with JSON only: {"score": <integer 0-100>, "feedback": "<your review>"}"""

COVER_LETTER_PROMPT = """You are an expert cover letter reviewer for teaching positions in Assam, India.
Review the cover letter and give specific, actionable feedback on:
1. Overall tone and persuasiveness
2. How well it addresses the needs of schools in Assam
3. Cultural considerations that would improve it
4. How to better show a passion for teaching"""

_LABELS = {"resume": "resume", "coverLetter": "cover letter"}


class AnalyzeDocumentParams(ToolParams):
    document_type: Literal["resume", "coverLetter"] = Field(
        description="Which kind of document to review"
    )
    document_content: str | None = Field(default=None, description="Full document text")
    document_id: str | None = Field(default=None, description="ID of an uploaded document")

    @model_validator(mode="after")
    def _needs_content_or_id(self) -> AnalyzeDocumentParams:
        if not (self.document_content and self.document_content.strip()) and not self.document_id:
            msg = "documentContent or documentId is required"
            raise ValueError(msg)
        return self


def parse_resume_review(text: str) -> dict[str, Any]:
    """Turn the model's review into an analysis dict.

    Falls back to treating the whole text as feedback (with no score)
    when the model did not answer in JSON.
    """
    data = extract_json_object(text)
    if data is None or not data.get("feedback"):
        return {"documentType": "resume", "feedback": text.strip()}

    analysis: dict[str, Any] = {"documentType": "resume", "feedback": str(data["feedback"])}
    score = data.get("score")
    if isinstance(score, int | float) and not isinstance(score, bool):
        analysis["score"] = score
    return analysis


def _render_resume_review(analysis: dict[str, Any]) -> str:
    if "score" in analysis:
        return f"Resume score: {analysis['score']}/100\n\n{analysis['feedback']}"
    return analysis["feedback"]


@registry.tool(
    name="analyze_document",
    description=(
        "Review a resume or cover letter for teaching jobs. Pass documentType "
        "('resume' or 'coverLetter') and either documentContent or documentId."
    ),
    params_model=AnalyzeDocumentParams,
)
async def analyze_document(
    ctx: ToolContext,
    document_type: str,
    document_content: str | None = None,
    document_id: str | None = None,
) -> ToolResult:
    label = _LABELS.get(document_type, "document")
    failed = f"There was an error analyzing your {label}. Please try again."

    if ctx.llm is None:
        return ToolResult(observation=failed, error="No LLM provider configured")

    try:
        if not document_content:
            if ctx.documents is None:
                return ToolResult(observation=failed, error="No document repository configured")
            document_content = await asyncio.wait_for(
                ctx.documents.get_text(document_id), settings.repository_timeout_seconds
            )
        if not document_content.strip():
            return ToolResult(
                observation=f"Your {label} appears to be empty, so there is nothing to review yet.",
                error="Empty document",
            )

        system = RESUME_PROMPT if document_type == "resume" else COVER_LETTER_PROMPT
        review = await ctx.llm.complete(
            [{"role": "user", "content": document_content}], system=system
        )
    except DocumentNotFoundError:
        return ToolResult(
            observation=f"I couldn't find that {label}. Could you upload it again?",
            error=f"Document not found: {document_id}",
        )
    except (anthropic.APIError, httpx.HTTPError, TimeoutError) as exc:
        logger.warning("Analyzing %s failed: %s", label, exc)
        return ToolResult(observation=failed, error=f"{type(exc).__name__}: {exc}")

    if document_type != "resume":
        return ToolResult(observation=review.strip())

    analysis = parse_resume_review(review)
    if ctx.store is not None and ctx.user_id is not None:
        try:
            await ctx.store.save_resume_analysis(ctx.user_id, analysis)
        except MemoryStoreError:
            logger.exception("Could not record resume analysis for user %s", ctx.user_id)

    return ToolResult(observation=_render_resume_review(analysis), data=analysis)
