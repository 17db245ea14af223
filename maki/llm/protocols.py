"""Protocol definitions for model clients and the conversation message types."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, model_validator


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """One model-requested tool invocation.

    ``arguments`` is the raw serialized payload exactly as the model produced
    it; parsing happens in the tool executor.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class Message(BaseModel):
    """A message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> Message:
        if self.tool_calls and self.role != MessageRole.ASSISTANT:
            raise ValueError("Only assistant messages may carry tool_calls")
        if self.role == MessageRole.TOOL and not self.tool_call_id:
            raise ValueError("Tool messages must reference a tool_call_id")
        return self

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(
        cls,
        content: str | None,
        tool_calls: list[ToolCall] | None = None,
    ) -> Message:
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tool_calls or None,
        )

    @classmethod
    def tool(cls, tool_call_id: str, name: str, content: str) -> Message:
        return cls(
            role=MessageRole.TOOL,
            content=content,
            tool_call_id=tool_call_id,
            name=name,
        )

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_openai(self) -> dict[str, Any]:
        """Serialize to the OpenAI chat-completions wire shape."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.role == MessageRole.TOOL:
            data["tool_call_id"] = self.tool_call_id
            if self.name:
                data["name"] = self.name
        return data

    def to_record(self) -> dict[str, Any]:
        """Serialize for persistence (drops empty fields)."""
        return self.model_dump(mode="json", exclude_none=True)


class ModelClientError(RuntimeError):
    """Raised when the model endpoint fails or returns an unusable response."""


@runtime_checkable
class ModelClient(Protocol):
    """Protocol for language-model clients.

    Implement this protocol to add support for new LLM APIs. A client returns
    exactly one assistant turn per call and performs no retries of its own.
    """

    async def complete_with_tools(
        self,
        messages: list[Message],
        tools: list[dict],
    ) -> Message:
        """
        Generate one assistant turn for a conversation.

        Args:
            messages: Ordered conversation so far
            tools: OpenAI-style function schemas the model may call

        Returns:
            An assistant Message carrying text and/or tool calls

        Raises:
            ModelClientError: On transport errors or malformed responses
        """
        ...

    async def __aenter__(self) -> ModelClient:
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        ...
