"""LLM provider integrations with protocol-based adapter pattern."""

from .protocols import (
    Message,
    MessageRole,
    ModelClient,
    ModelClientError,
    ToolCall,
)
from .adapters import AnthropicAdapter, OpenRouterAdapter

__all__ = [
    # Protocols
    "ModelClient",
    "ModelClientError",
    "Message",
    "MessageRole",
    "ToolCall",
    # Adapters
    "OpenRouterAdapter",
    "AnthropicAdapter",
]
