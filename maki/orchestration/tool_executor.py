"""Tool-call execution against a tool registry."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..llm.protocols import ToolCall
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Result of a tool execution."""

    success: bool
    result: Any
    error: str | None = None
    arguments: dict[str, Any] = field(default_factory=dict)
    elapsed_ms: int = 0

    def to_content(self) -> str:
        """Serialize for the ``content`` of the answering tool message."""
        if not self.success:
            return json.dumps({"error": self.error})
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, indent=2, default=str)


def parse_arguments(raw: str | None) -> dict[str, Any]:
    """
    Parse a tool call's serialized arguments.

    Raises:
        ValueError: If the payload is not valid JSON or not an object
    """
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed arguments (not valid JSON): {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"Malformed arguments: expected an object, got {type(parsed).__name__}")
    return parsed


class ToolExecutor:
    """
    Executes tool calls requested by the model.

    Every failure (malformed arguments, unknown tool, bad signature, timeout,
    exception in the tool) comes back as an error ToolResult; ``execute``
    never raises.
    """

    def __init__(self, registry: ToolRegistry):
        """
        Initialize the tool executor.

        Args:
            registry: Tools this executor may dispatch to
        """
        self.registry = registry

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        """
        Execute a tool call.

        Args:
            tool_call: Tool call to execute

        Returns:
            ToolResult with success status and result/error
        """
        started = time.perf_counter()

        def elapsed() -> int:
            return int((time.perf_counter() - started) * 1000)

        try:
            arguments = parse_arguments(tool_call.arguments)
        except ValueError as e:
            logger.warning(f"Tool {tool_call.name}: {e}")
            return ToolResult(success=False, result=None, error=str(e))

        tool = self.registry.get(tool_call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {tool_call.name}")
            return ToolResult(
                success=False,
                result=None,
                error=f"Tool not found: {tool_call.name}",
                arguments=arguments,
            )

        try:
            inspect.signature(tool.handler).bind(**arguments)
        except TypeError as e:
            return ToolResult(
                success=False,
                result=None,
                error=f"Invalid arguments for tool '{tool.name}': {e}",
                arguments=arguments,
            )

        try:
            logger.debug(f"Executing tool {tool.name} with args={arguments}")
            call = tool.handler(**arguments)
            if tool.timeout is not None:
                result = await asyncio.wait_for(call, timeout=tool.timeout)
            else:
                result = await call
            return ToolResult(
                success=True, result=result, arguments=arguments, elapsed_ms=elapsed()
            )

        except asyncio.TimeoutError as e:
            # wait_for raises without a message; a tool's own timeout carries one
            error = str(e) or f"Tool '{tool.name}' timed out after {tool.timeout} seconds"
            logger.warning(error)
            return ToolResult(
                success=False,
                result=None,
                error=error,
                arguments=arguments,
                elapsed_ms=elapsed(),
            )

        except Exception as e:
            logger.warning(f"Tool {tool.name} failed: {e}")
            return ToolResult(
                success=False,
                result=None,
                error=str(e) or type(e).__name__,
                arguments=arguments,
                elapsed_ms=elapsed(),
            )
