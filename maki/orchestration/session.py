"""Chat session: one long-lived conversation across user turns."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from ..llm.protocols import Message, MessageRole, ModelClient
from ..storage.thread_store import ThreadStore, title_from_message
from ..tools.registry import ToolRegistry
from .agent_loop import AgentLoop
from .agent_system import AgentSystem
from .conversation import Conversation
from .progress import ProgressCallback, ProgressReporter
from .prompts import CHAT_PROMPT

if TYPE_CHECKING:
    from ..config.loader import ProfileConfig

logger = logging.getLogger(__name__)


class ChatSession:
    """
    Interactive session over a persistent conversation.

    Direct mode runs the chat agent loop on the conversation itself.
    Delegated mode sends every turn through the AgentSystem with the recent
    history folded in, and appends the combined answer.
    """

    def __init__(
        self,
        client: ModelClient,
        registry: ToolRegistry,
        config: ProfileConfig | None = None,
        agent_system: AgentSystem | None = None,
        thread_store: ThreadStore | None = None,
        thread_id: str | None = None,
        delegate: bool = False,
        messages: Sequence[Message] | None = None,
    ):
        if config is None:
            from ..config.loader import ModelConfig, ProfileConfig
            config = ProfileConfig(model=ModelConfig(backend="mock"))

        self.client = client
        self.registry = registry
        self.config = config
        self.delegate = delegate
        self.agent_system = agent_system or AgentSystem(client, registry, config)
        self.thread_store = thread_store
        self.thread_id = thread_id
        self.conversation = Conversation(
            CHAT_PROMPT,
            max_length=config.conversation.max_conversation_length,
            error_marker=config.conversation.error_marker,
            messages=messages,
        )

        if self.thread_store is not None and self.thread_id is None:
            self.thread_id = self.thread_store.create_thread().id

    @classmethod
    def from_thread(
        cls,
        thread_store: ThreadStore,
        thread_id: str,
        client: ModelClient,
        registry: ToolRegistry,
        config: ProfileConfig | None = None,
        **kwargs,
    ) -> ChatSession:
        """Rebuild a session from a stored thread.

        Raises:
            KeyError: If the thread does not exist
        """
        if thread_store.get_thread(thread_id) is None:
            raise KeyError(f"Thread '{thread_id}' not found")

        return cls(
            client,
            registry,
            config=config,
            thread_store=thread_store,
            thread_id=thread_id,
            messages=thread_store.get_messages(thread_id),
            **kwargs,
        )

    @property
    def messages(self) -> list[Message]:
        return self.conversation.messages

    def reset(self) -> None:
        """Drop the history back to the system message."""
        self.conversation.reset()
        logger.info("Conversation reset")

    async def send(
        self,
        user_input: str,
        progress_callback: ProgressCallback | None = None,
    ) -> str:
        """
        Process one user turn.

        Returns:
            The assistant's answer for this turn
        """
        history = self.conversation.start_turn(user_input)
        self._title_thread(user_input)
        self._record(history[-1])

        if self.delegate:
            result = await self.agent_system.execute(
                user_input,
                history=history[:-1],
                progress_callback=progress_callback,
            )
            reply = Message.assistant(result.output)
            self.conversation.extend([reply])
            self._record(reply)
            return result.output

        loop = AgentLoop(
            self.client,
            self.registry,
            max_iterations=self.config.agent_loop.chat,
            progress=ProgressReporter(progress_callback, agent="assistant"),
            on_message=self._record,
        )
        result = await loop.run(history)
        self.conversation.replace(result.messages)
        return result.output

    def _title_thread(self, user_input: str) -> None:
        if self.thread_store is None or self.thread_id is None:
            return
        thread = self.thread_store.get_thread(self.thread_id)
        if thread is not None and not any(
            record.get("role") == MessageRole.USER.value for record in thread.messages
        ):
            self.thread_store.update_title(self.thread_id, title_from_message(user_input))

    def _record(self, message: Message) -> None:
        if self.thread_store is not None and self.thread_id is not None:
            self.thread_store.add_message(self.thread_id, message)
