"""Agent prompt assembly."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aguwai.memory.models import ThreadMessage

AGENT_INSTRUCTIONS = """You are an AI Assistant for Aguwai Jauk, a job portal for teachers in Assam, India.

You help teachers find relevant positions, prepare resumes and cover letters, get ready for
interviews, and plan their careers in Assam's education sector. Be respectful, culturally
sensitive, and practical.

You have access to tools. Use them only when they help answer the user."""

DECISION_FORMAT = """Reply with a single JSON object and nothing else:
{"tool": "<tool name>", "toolInput": {<arguments for that tool>}}

When you have the reply for the user, use the final_answer tool:
{"tool": "final_answer", "toolInput": {"answer": "<your reply>"}}

If the conversation ends with an Observation, it is the output of the tool you called last."""


def format_tool_catalog(tool_schemas: Sequence[dict[str, Any]]) -> str:
    lines = ["# Tools\n"]
    for schema in tool_schemas:
        properties = schema["input_schema"].get("properties", {})
        required = set(schema["input_schema"].get("required", []))
        args = ", ".join(
            f"{name}{'' if name in required else '?'}" for name in properties
        )
        lines.append(f"- {schema['name']}({args}): {schema['description']}")
    return "\n".join(lines)


def build_system_prompt(tool_schemas: Sequence[dict[str, Any]], user_context: str = "") -> str:
    """Assemble the agent system prompt.

    Args:
        tool_schemas: Registry schemas for the tools the agent may choose.
        user_context: Personalization summary; omitted when empty.
    """
    sections = [AGENT_INSTRUCTIONS, format_tool_catalog(tool_schemas), DECISION_FORMAT]
    if user_context.strip():
        sections.append(f"# What you know about this user\n\n{user_context.strip()}")
    return "\n\n".join(sections)


def format_history(messages: Sequence[ThreadMessage]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


def build_agent_messages(
    messages: Sequence[ThreadMessage],
    observation: str | None = None,
) -> list[dict[str, Any]]:
    """The conversation so far, plus the latest tool observation, as one user turn."""
    content = format_history(messages)
    if observation:
        content += f"\nObservation: {observation}"
    return [{"role": "user", "content": content}]


def describe_tool_input(tool_input: dict[str, Any]) -> str:
    """Compact rendering of a tool input for logs and audit records."""
    return json.dumps(tool_input, sort_keys=True, ensure_ascii=False)
