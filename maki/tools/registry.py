"""Tool definitions and the name-to-implementation registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

ToolHandler = Callable[..., Awaitable[Any]]


@dataclass
class ToolDefinition:
    """Definition of a tool the model may call.

    Attributes:
        name: Name the model uses to request the tool
        description: What the tool does, shown to the model
        parameters: JSON-schema properties for the tool arguments
        required_params: Names of mandatory arguments
        handler: Async callable receiving the parsed arguments as keywords
        timeout: Optional per-call bound in seconds
    """

    name: str
    description: str
    parameters: dict[str, dict]
    required_params: list[str]
    handler: ToolHandler
    timeout: float | None = None

    def to_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": self.parameters,
                    "required": self.required_params,
                },
            },
        }


@dataclass
class ToolRegistry:
    """Static mapping from tool name to its definition."""

    tools: dict[str, ToolDefinition] = field(default_factory=dict)

    def register(self, tool: ToolDefinition) -> ToolDefinition:
        if tool.name in self.tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self.tools[tool.name] = tool
        return tool

    def get(self, name: str) -> ToolDefinition | None:
        return self.tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)

    @property
    def names(self) -> list[str]:
        return list(self.tools)

    def subset(self, names: Iterable[str]) -> ToolRegistry:
        """Restrict the registry to the given tool names.

        Unknown names are ignored so a configured tool set may name tools
        that a particular deployment does not ship.
        """
        return ToolRegistry({n: self.tools[n] for n in names if n in self.tools})

    def schemas(self) -> list[dict]:
        """
        Get OpenAI-style function schema for all tools.

        Returns:
            List of tool schemas for LLM function calling
        """
        return [tool.to_schema() for tool in self.tools.values()]

    def describe(self) -> str:
        """
        Get human-readable tool descriptions.

        Returns:
            Formatted string describing all available tools
        """
        lines = ["Available tools:\n"]

        for name, tool in self.tools.items():
            lines.append(f"- {name}: {tool.description}")
            if tool.required_params:
                lines.append(f"  Required: {', '.join(tool.required_params)}")

        return "\n".join(lines)
