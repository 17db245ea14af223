"""Planning-only tools: free-form thinking and the bulk-operation signal."""

from __future__ import annotations

from typing import Any

from .registry import ToolDefinition

THINK_TOOL_NAME = "think"
SIGNAL_TOOL_NAME = "signalBulkOperation"


async def think(thought: str) -> dict:
    """Acknowledge a thought. The payload only matters for logging."""
    return {"success": True, "message": "Thought recorded."}


async def signal_bulk_operation(items: list[Any] | None = None, reason: str = "") -> dict:
    items = list(items or [])
    return {
        "success": True,
        "itemCount": len(items),
        "message": (
            f"Bulk operation signalled for {len(items)} items. "
            "Finish your answer; each item will be processed by its own agent."
        ),
    }


def think_tool() -> ToolDefinition:
    return ToolDefinition(
        name=THINK_TOOL_NAME,
        description=(
            "Use this tool to think through a problem step by step before acting. "
            "It does not change anything and returns an acknowledgement."
        ),
        parameters={
            "thought": {
                "type": "string",
                "description": "Your reasoning, plan or analysis",
            },
        },
        required_params=["thought"],
        handler=think,
    )


def signal_tool(name: str = SIGNAL_TOOL_NAME) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=(
            "Call this when you discover more items than you should handle one by one "
            "(for example many files or links). List every discovered item; each will be "
            "processed by a separate parallel agent."
        ),
        parameters={
            "items": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Every discovered item (file path, URL, ...) that needs processing",
            },
            "reason": {
                "type": "string",
                "description": "Why this should be processed in parallel",
            },
        },
        required_params=["items"],
        handler=signal_bulk_operation,
    )
