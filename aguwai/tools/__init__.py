"""Tool framework. Import tool modules here to register them."""

# Import tool modules so their @registry.tool() decorators execute.
from aguwai.tools import (  # noqa: F401
    document_tools,
    final_answer,
    interview_tools,
    job_tools,
)
from aguwai.tools.base import ToolContext, ToolResult
from aguwai.tools.registry import registry

__all__ = ["ToolContext", "ToolResult", "registry"]
