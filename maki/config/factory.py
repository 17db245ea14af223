"""Factory functions to create runtime objects from configuration."""

from __future__ import annotations

import asyncio
import inspect
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Sequence

from ..llm.protocols import Message

if TYPE_CHECKING:
    from ..llm.protocols import ModelClient
    from ..orchestration.agent_system import AgentSystem
    from ..orchestration.session import ChatSession
    from ..storage.thread_store import ThreadStore
    from ..tools.registry import ToolRegistry
    from .loader import ModelConfig, ProfileConfig, StorageConfig

Responder = Callable[[list[Message], list[dict]], Any]


class MockModelClient:
    """Mock model client for testing.

    Replies come from ``responder(messages, tools)`` when given, otherwise
    from the scripted ``responses`` in order, otherwise a fixed text.
    A reply may be a Message, a plain string (assistant text) or an
    exception instance, which is raised.
    """

    def __init__(
        self,
        responses: Sequence[Message | str | Exception] | None = None,
        responder: Responder | None = None,
        delay: float = 0.0,
    ):
        self.responses = list(responses or [])
        self.responder = responder
        self.delay = delay
        self.calls: list[tuple[list[Message], list[dict]]] = []

    async def complete_with_tools(
        self,
        messages: list[Message],
        tools: list[dict],
    ) -> Message:
        """Return the next mock turn."""
        self.calls.append((list(messages), list(tools)))
        if self.delay:
            await asyncio.sleep(self.delay)

        if self.responder is not None:
            reply = self.responder(list(messages), list(tools))
            if inspect.isawaitable(reply):
                reply = await reply
        elif self.responses:
            reply = self.responses.pop(0)
        else:
            reply = "[Mock response]"

        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return Message.assistant(reply)
        return reply

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


def create_model_client(config: ModelConfig) -> ModelClient:
    """Create a model client from configuration.

    Args:
        config: Model configuration

    Returns:
        ModelClient instance (OpenRouterAdapter, AnthropicAdapter, or Mock)

    Raises:
        ValueError: If backend type is not supported or the API key is missing
    """
    if config.backend == "openrouter":
        from ..llm import OpenRouterAdapter

        return OpenRouterAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            timeout=config.timeout,
        )

    elif config.backend == "anthropic":
        from ..llm import AnthropicAdapter

        return AnthropicAdapter(
            api_key=config.api_key,
            model=config.model,
            temperature=config.temperature,
            timeout=config.timeout,
        )

    elif config.backend == "mock":
        return MockModelClient()

    else:
        raise ValueError(f"Unsupported model backend: {config.backend}")


def create_tool_registry(profile: ProfileConfig) -> ToolRegistry:
    """Create the registry of bundled tools for a profile."""
    from ..tools import build_default_registry

    return build_default_registry(
        workspace_dir=profile.tools.workspace_dir,
        web_timeout=profile.tools.web_timeout,
        fetch_max_length=profile.tools.fetch_max_length,
        signal_tool_name=profile.dynamic_switch.signal_tool,
    )


def create_thread_store(config: StorageConfig) -> ThreadStore | None:
    """Create the thread store, or None when storage is disabled."""
    if not config.enabled:
        return None

    from ..storage import ThreadStore

    return ThreadStore(
        persist_path=Path(config.threads_path),
        auto_persist=config.auto_persist,
    )


def create_agent_system(
    client: ModelClient,
    profile: ProfileConfig,
    registry: ToolRegistry | None = None,
    on_message=None,
) -> AgentSystem:
    """Create the coordinator-driven AgentSystem.

    Args:
        client: Entered model client
        profile: Profile configuration
        registry: Tool registry; built from the profile when omitted
        on_message: Optional listener for appended messages

    Returns:
        AgentSystem instance
    """
    from ..orchestration.agent_system import AgentSystem

    return AgentSystem(
        client,
        registry if registry is not None else create_tool_registry(profile),
        config=profile,
        on_message=on_message,
    )


def create_chat_session(
    client: ModelClient,
    profile: ProfileConfig,
    registry: ToolRegistry | None = None,
    thread_store: ThreadStore | None = None,
    thread_id: str | None = None,
    delegate: bool = False,
) -> ChatSession:
    """Create a chat session, resuming ``thread_id`` when given.

    Raises:
        KeyError: If thread_id does not exist in the store
    """
    from ..orchestration.session import ChatSession

    registry = registry if registry is not None else create_tool_registry(profile)
    agent_system = create_agent_system(client, profile, registry)

    if thread_id is not None and thread_store is not None:
        return ChatSession.from_thread(
            thread_store,
            thread_id,
            client,
            registry,
            config=profile,
            agent_system=agent_system,
            delegate=delegate,
        )

    return ChatSession(
        client,
        registry,
        config=profile,
        agent_system=agent_system,
        thread_store=thread_store,
        delegate=delegate,
    )
