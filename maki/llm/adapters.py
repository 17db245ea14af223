"""Adapter implementations for LLM providers."""

from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from ..settings import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_DEFAULT_MODEL,
    OPENROUTER_API_KEY,
    OPENROUTER_APP_TITLE,
    OPENROUTER_APP_URL,
    OPENROUTER_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
)
from .protocols import Message, MessageRole, ModelClientError, ToolCall

logger = logging.getLogger(__name__)


class OpenRouterAdapter:
    """
    Adapter for OpenRouter API.

    OpenRouter provides access to many LLMs through an OpenAI-compatible API.

    Usage:
        async with OpenRouterAdapter() as llm:
            reply = await llm.complete_with_tools(messages, tools)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.1,
        timeout: float = 60.0,
    ):
        """
        Initialize the OpenRouter adapter.

        Args:
            api_key: Optional API key. If not provided, uses OPENROUTER_API_KEY env var.
            model: Model to use. Defaults to OPENROUTER_DEFAULT_MODEL.
            base_url: API base URL. Defaults to OPENROUTER_BASE_URL.
            temperature: Sampling temperature for every turn.
            timeout: Transport timeout in seconds.
        """
        self.api_key = api_key or OPENROUTER_API_KEY
        self.model = model or OPENROUTER_DEFAULT_MODEL
        self.base_url = base_url or OPENROUTER_BASE_URL
        self.temperature = temperature
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

        if not self.api_key:
            raise ValueError(
                "OpenRouter API key required. Set OPENROUTER_API_KEY in .env"
            )

        logger.info(f"OpenRouter adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "OpenRouterAdapter":
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            max_retries=0,  # retry policy belongs to the caller
            timeout=self.timeout,
            default_headers={
                "HTTP-Referer": OPENROUTER_APP_URL,
                "X-Title": OPENROUTER_APP_TITLE,
            },
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def complete_with_tools(
        self,
        messages: list[Message],
        tools: list[dict],
    ) -> Message:
        """Generate one assistant turn, optionally requesting tool calls."""
        request: dict[str, Any] = {
            "model": self.model,
            "messages": [msg.to_openai() for msg in messages],
            "temperature": self.temperature,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        logger.debug(
            f"Requesting turn from {self.model} ({len(messages)} messages, {len(tools)} tools)"
        )

        try:
            response = await self.client.chat.completions.create(**request)
        except OpenAIError as e:
            raise ModelClientError(f"OpenRouter API error: {e}") from e

        if not response.choices:
            raise ModelClientError(
                "API returned an invalid response format. No choices found."
            )

        reply = response.choices[0].message
        if reply is None:
            raise ModelClientError("API response did not contain a valid message")

        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (reply.tool_calls or [])
        ]

        logger.debug(f"Usage: {response.usage}")
        return Message.assistant(reply.content, tool_calls or None)


class AnthropicAdapter:
    """
    Adapter for Anthropic API (direct).

    Uses the Anthropic Python SDK directly for Claude models and translates
    the OpenAI-shaped conversation into Anthropic content blocks.

    Usage:
        async with AnthropicAdapter() as llm:
            reply = await llm.complete_with_tools(messages, tools)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.1,
        timeout: float = 60.0,
        max_tokens: int = 4096,
    ):
        """
        Initialize the Anthropic adapter.

        Args:
            api_key: Optional API key. If not provided, uses ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to ANTHROPIC_DEFAULT_MODEL.
            temperature: Sampling temperature for every turn.
            timeout: Transport timeout in seconds.
            max_tokens: Upper bound on generated tokens per turn.
        """
        self.api_key = api_key or ANTHROPIC_API_KEY
        self.model = model or ANTHROPIC_DEFAULT_MODEL
        self.temperature = temperature
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._client = None

        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY in .env"
            )

        logger.info(f"Anthropic adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "AnthropicAdapter":
        import anthropic

        self._client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            max_retries=0,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self):
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def complete_with_tools(
        self,
        messages: list[Message],
        tools: list[dict],
    ) -> Message:
        """Generate one assistant turn with tool use support."""
        import anthropic

        system_prompt, formatted_messages = to_anthropic_messages(messages)
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": formatted_messages,
            "temperature": self.temperature,
        }
        if tools:
            request["tools"] = [to_anthropic_tool(schema) for schema in tools]

        try:
            response = await self.client.messages.create(**request)
        except anthropic.AnthropicError as e:
            raise ModelClientError(f"Anthropic API error: {e}") from e

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=json.dumps(block.input),
                    )
                )

        logger.debug(
            f"Turn received: {len(tool_calls)} tool calls, stop_reason={response.stop_reason}"
        )
        return Message.assistant("".join(text_parts) or None, tool_calls or None)


def to_anthropic_tool(schema: dict) -> dict:
    """Convert an OpenAI-style function schema to an Anthropic tool definition."""
    function = schema.get("function", schema)
    return {
        "name": function["name"],
        "description": function.get("description", ""),
        "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
    }


def to_anthropic_messages(messages: list[Message]) -> tuple[str, list[dict]]:
    """Split out the system prompt and convert the rest to Anthropic blocks.

    Consecutive tool messages are merged into a single user turn, since
    Anthropic expects all results for one assistant turn together.
    """
    system_parts: list[str] = []
    formatted: list[dict] = []

    for msg in messages:
        if msg.role == MessageRole.SYSTEM:
            system_parts.append(msg.content or "")
        elif msg.role == MessageRole.TOOL:
            block = {
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content or "",
            }
            previous = formatted[-1] if formatted else None
            if (
                previous is not None
                and previous["role"] == "user"
                and isinstance(previous["content"], list)
                and previous["content"]
                and previous["content"][0].get("type") == "tool_result"
            ):
                previous["content"].append(block)
            else:
                formatted.append({"role": "user", "content": [block]})
        elif msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            content: list[dict] = []
            if msg.content:
                content.append({"type": "text", "text": msg.content})
            for call in msg.tool_calls:
                try:
                    tool_input = json.loads(call.arguments or "{}")
                except json.JSONDecodeError:
                    tool_input = {}
                if not isinstance(tool_input, dict):
                    tool_input = {"value": tool_input}
                content.append({
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": tool_input,
                })
            formatted.append({"role": "assistant", "content": content})
        else:
            formatted.append({"role": msg.role.value, "content": msg.content or ""})

    return "\n\n".join(system_parts), formatted
