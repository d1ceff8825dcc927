"""Tool registry — central catalog for all tools."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from aguwai.config import settings
from aguwai.tools.base import GENERIC_APOLOGY, ToolContext, ToolParams, ToolResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class ToolDef:
    """Internal representation of a registered tool."""

    name: str
    description: str
    handler: Callable[..., Awaitable[ToolResult]]
    params_model: type[ToolParams] | None = None


class ToolRegistry:
    """Central registry for all tools.

    Register an async function with the decorator::

        @registry.tool(
            name="my_tool",
            description="Does a thing",
            params_model=MyToolParams,
        )
        async def my_tool(query: str, ctx: ToolContext) -> ToolResult:
            return ToolResult(observation="done")
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        params_model: type[ToolParams] | None = None,
    ) -> Callable:
        """Decorator to register an async function as a tool."""

        def decorator(fn: Callable[..., Awaitable[ToolResult]]) -> Callable:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{name}' must be an async function"
                raise TypeError(msg)

            self._tools[name] = ToolDef(
                name=name,
                description=description,
                handler=fn,
                params_model=params_model,
            )
            return fn

        return decorator

    def get(self, name: str) -> ToolDef | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        """All registered tool names."""
        return list(self._tools.keys())

    def get_schemas(self) -> list[dict[str, Any]]:
        """Describe every registered tool for the agent prompt."""
        return [self._tool_schema(t) for t in self._tools.values()]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        ctx: ToolContext | None = None,
    ) -> ToolResult:
        """Execute a tool by name with the given arguments.

        Validates arguments against the params_model if one is defined.
        If the handler accepts a ``ctx`` parameter, the tool context is
        injected. Never raises: unknown tools, invalid input, timeouts and
        handler exceptions all become an apology observation.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            return ToolResult(observation=GENERIC_APOLOGY, error=f"Unknown tool: {name}")

        logger.info("Tool '%s' called with %s", name, arguments)
        t0 = time.monotonic()

        try:
            if tool_def.params_model is not None:
                params = tool_def.params_model.model_validate(arguments)
                kwargs = params.model_dump()
            else:
                kwargs = dict(arguments)
        except ValidationError as exc:
            logger.warning("Tool '%s' rejected input: %s", name, exc.errors(include_url=False))
            return ToolResult(
                observation=(
                    f"I couldn't run {name.replace('_', ' ')} because some required "
                    "details were missing or invalid."
                ),
                error=str(exc),
            )

        if _accepts_param(tool_def.handler, "ctx"):
            kwargs["ctx"] = ctx or ToolContext()

        try:
            result = await asyncio.wait_for(
                tool_def.handler(**kwargs), settings.tool_timeout_seconds
            )
        except TimeoutError:
            elapsed = time.monotonic() - t0
            logger.warning("Tool '%s' timed out after %.2fs", name, elapsed)
            return ToolResult(
                observation="That took too long to complete. Please try again in a moment.",
                error=f"Tool '{name}' timed out",
            )
        except Exception as exc:
            elapsed = time.monotonic() - t0
            logger.exception("Tool '%s' failed in %.2fs", name, elapsed)
            return ToolResult(observation=GENERIC_APOLOGY, error=f"{type(exc).__name__}: {exc}")

        elapsed = time.monotonic() - t0
        if result.success:
            logger.info("Tool '%s' succeeded in %.2fs", name, elapsed)
        else:
            logger.warning("Tool '%s' returned error in %.2fs: %s", name, elapsed, result.error)
        return result

    @staticmethod
    def _tool_schema(tool_def: ToolDef) -> dict[str, Any]:
        if tool_def.params_model is not None:
            input_schema = tool_def.params_model.model_json_schema(by_alias=True)
        else:
            input_schema = {"type": "object", "properties": {}}

        return {
            "name": tool_def.name,
            "description": tool_def.description,
            "input_schema": input_schema,
        }


def _accepts_param(fn: Callable[..., Any], param_name: str) -> bool:
    """Check whether a callable accepts a given parameter name."""
    return param_name in inspect.signature(fn).parameters


# Global registry: import this from anywhere to register or look up tools.
registry = ToolRegistry()
