"""Agent decisions as a closed tagged union.

The model picks its next move by naming a tool. Each tool the loop knows
about is one variant here, discriminated on ``tool``; anything outside the
union (unknown tool, missing ``tool``, non-JSON text) fails to parse.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from aguwai.llm.parsing import extract_json_object

logger = logging.getLogger(__name__)


class _Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_input: dict[str, Any] | None = Field(default=None, alias="toolInput")


class SearchJobsAction(_Action):
    tool: Literal["search_jobs"]


class AnalyzeDocumentAction(_Action):
    tool: Literal["analyze_document"]


class InterviewQuestionsAction(_Action):
    tool: Literal["generate_interview_questions"]


class FinalAnswerAction(_Action):
    tool: Literal["final_answer"]


ToolAction = SearchJobsAction | AnalyzeDocumentAction | InterviewQuestionsAction

Decision = Annotated[
    SearchJobsAction | AnalyzeDocumentAction | InterviewQuestionsAction | FinalAnswerAction,
    Field(discriminator="tool"),
]

_decision_adapter: TypeAdapter[Decision] = TypeAdapter(Decision)


def parse_decision(text: str) -> Decision | None:
    """Parse a model response into a decision, or None if it is not one."""
    data = extract_json_object(text)
    if data is None:
        logger.warning("Agent response was not JSON: %.200s", text)
        return None
    try:
        return _decision_adapter.validate_python(data)
    except ValidationError as exc:
        logger.warning("Agent response was not a known decision: %s", exc.errors(include_url=False))
        return None
