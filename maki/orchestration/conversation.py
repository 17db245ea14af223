"""Conversation state: tool-call pairing checks and reset policy."""

from __future__ import annotations

import logging
from typing import Sequence

from ..llm.protocols import Message, MessageRole

logger = logging.getLogger(__name__)


def find_unanswered_tool_calls(messages: Sequence[Message]) -> set[str]:
    """Ids of tool calls issued by assistant turns that no tool turn answers."""
    issued: set[str] = set()
    answered: set[str] = set()

    for msg in messages:
        if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            issued.update(call.id for call in msg.tool_calls)
        elif msg.role == MessageRole.TOOL and msg.tool_call_id:
            answered.add(msg.tool_call_id)

    return issued - answered


def validate_conversation(messages: Sequence[Message]) -> list[Message]:
    """
    Drop the tail of a conversation that contains an unanswered tool call.

    The cut is made just before the earliest assistant turn holding an
    unanswered call, and also before the user turn that precedes it, so the
    result never ends on an orphaned prompt. Cutting repeats until no
    unanswered call is left, which makes the function idempotent. A
    conversation without unanswered calls is returned unchanged.

    Args:
        messages: Conversation to check

    Returns:
        A new list with the offending suffix removed
    """
    kept = list(messages)
    unanswered = find_unanswered_tool_calls(kept)

    while unanswered:
        cut = next(
            index
            for index, msg in enumerate(kept)
            if msg.role == MessageRole.ASSISTANT
            and msg.tool_calls
            and any(call.id in unanswered for call in msg.tool_calls)
        )
        if cut > 0 and kept[cut - 1].role == MessageRole.USER:
            cut -= 1

        logger.warning(
            f"Dropping {len(kept) - cut} messages after unanswered tool calls: {sorted(unanswered)}"
        )
        kept = kept[:cut]
        unanswered = find_unanswered_tool_calls(kept)

    return kept


def needs_reset(
    messages: Sequence[Message],
    max_length: int,
    error_marker: str = "Error",
) -> bool:
    """Check whether a conversation has drifted into a state worth discarding."""
    last_assistant = next(
        (msg for msg in reversed(messages) if msg.role == MessageRole.ASSISTANT),
        None,
    )
    if last_assistant and last_assistant.content and error_marker in last_assistant.content:
        return True
    if find_unanswered_tool_calls(messages):
        return True
    return len(messages) > max_length


class Conversation:
    """
    The ordered message log of one chat session.

    Messages are only ever appended; the log is either kept whole or
    replaced atomically by a reset or a validation pass.
    """

    def __init__(
        self,
        system_prompt: str,
        max_length: int = 20,
        error_marker: str = "Error",
        messages: Sequence[Message] | None = None,
    ):
        self.system_message = Message.system(system_prompt)
        self.max_length = max_length
        self.error_marker = error_marker

        self._messages: list[Message] = [self.system_message]
        if messages:
            restored = list(messages)
            if restored[0].role != MessageRole.SYSTEM:
                restored.insert(0, self.system_message)
            self.system_message = restored[0]
            self._messages = restored

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def reset(self) -> None:
        """Drop everything except the system message."""
        self._messages = [self.system_message]

    def extend(self, messages: Sequence[Message]) -> None:
        self._messages.extend(messages)

    def replace(self, messages: Sequence[Message]) -> None:
        self._messages = list(messages)

    def start_turn(self, user_input: str) -> list[Message]:
        """
        Apply the reset policy, append the user message, then validate.

        Returns:
            The conversation the next loop run should start from
        """
        if needs_reset(self._messages, self.max_length, self.error_marker):
            logger.info(f"Resetting conversation ({len(self._messages)} messages)")
            self.reset()

        self._messages = validate_conversation([*self._messages, Message.user(user_input)])
        return self.messages
