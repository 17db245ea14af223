"""Tools the agents can call, and the registry that maps names to them."""

from .registry import ToolDefinition, ToolHandler, ToolRegistry
from .think import (
    SIGNAL_TOOL_NAME,
    THINK_TOOL_NAME,
    signal_bulk_operation,
    signal_tool,
    think,
    think_tool,
)
from .file_tools import Workspace, register_file_tools
from .csv_tools import CSVTools, register_csv_tools
from .web_tools import WebTools, is_safe_url, register_web_tools


def build_default_registry(
    workspace_dir: str,
    web_timeout: float = 15.0,
    fetch_max_length: int = 10000,
    signal_tool_name: str = SIGNAL_TOOL_NAME,
) -> ToolRegistry:
    """Build a registry holding every bundled tool."""
    registry = ToolRegistry()
    registry.register(think_tool())
    registry.register(signal_tool(signal_tool_name))

    workspace = Workspace(workspace_dir)
    workspace.ensure()
    register_file_tools(registry, workspace)
    register_csv_tools(registry, CSVTools(workspace))
    register_web_tools(
        registry, WebTools(timeout=web_timeout, default_max_length=fetch_max_length)
    )
    return registry


__all__ = [
    # Registry
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistry",
    "build_default_registry",
    # Tools
    "THINK_TOOL_NAME",
    "SIGNAL_TOOL_NAME",
    "think",
    "think_tool",
    "signal_bulk_operation",
    "signal_tool",
    "Workspace",
    "register_file_tools",
    "CSVTools",
    "register_csv_tools",
    "WebTools",
    "is_safe_url",
    "register_web_tools",
]
