"""
Single-agent loop: model turn, tool calls, repeat until the model is done.

The loop is an explicit state machine:

    AWAITING_MODEL --(no tool calls)--> DONE
    AWAITING_MODEL --(tool calls)-----> PROCESSING_TOOLS
    PROCESSING_TOOLS ------------------> AWAITING_MODEL

Tool calls of one assistant turn run one after another in emission order,
since later calls may depend on side effects of earlier ones. A model
failure ends the loop with an error message; the iteration cap ends it
with a notice.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Sequence

from ..llm.protocols import Message, MessageRole, ModelClient
from ..tools.registry import ToolRegistry
from ..tools.think import THINK_TOOL_NAME
from .models import LoopResult, LoopState, LoopStopReason, ToolCallRecord
from .progress import NULL_PROGRESS, ProgressReporter
from .tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

MessageListener = Callable[[Message], "Awaitable[Any] | None"]

TOOL_SEQUENCE_ERROR_MESSAGE = (
    "There was an issue processing your request. Please try again with a new command."
)


def model_error_message(error: Exception) -> str:
    """User-visible text for a failed model call."""
    detail = str(error) or type(error).__name__
    if "tool_call_id" in detail or "tool_calls" in detail:
        return TOOL_SEQUENCE_ERROR_MESSAGE
    return f"Error: {detail}. Please try again."


def max_iterations_message(max_iterations: int) -> str:
    return f"Agent stopped due to max iterations ({max_iterations})."


class AgentLoop:
    """
    Drives one model/tool conversation to completion.

    A loop instance can be run many times; every run works on its own copy
    of the conversation it is given.
    """

    def __init__(
        self,
        client: ModelClient,
        registry: ToolRegistry,
        max_iterations: int = 15,
        progress: ProgressReporter = NULL_PROGRESS,
        on_message: MessageListener | None = None,
    ):
        """
        Initialize the loop.

        Args:
            client: Model client, already entered
            registry: Tools offered to the model
            max_iterations: Cap on model/tool round trips
            progress: Receives tool start/finish notifications
            on_message: Optional listener for every appended assistant or tool
                message. Awaitable results run in the background.
        """
        self.client = client
        self.registry = registry
        self.executor = ToolExecutor(registry)
        self.max_iterations = max_iterations
        self.progress = progress
        self.on_message = on_message
        self._pending: set[asyncio.Task] = set()

    async def run(self, messages: Sequence[Message]) -> LoopResult:
        """
        Run the loop until the model stops requesting tools.

        Args:
            messages: Starting conversation (system + user at least)

        Returns:
            LoopResult with the full conversation and the final output
        """
        conversation = list(messages)
        tool_schemas = self.registry.schemas()
        records: list[ToolCallRecord] = []
        iterations = 0
        state = LoopState.AWAITING_MODEL
        stop_reason = LoopStopReason.COMPLETED
        pending_turn: Message | None = None

        try:
            while state != LoopState.DONE:
                if state == LoopState.AWAITING_MODEL:
                    if iterations >= self.max_iterations:
                        logger.warning(f"{self.progress.agent}: reached max iterations ({self.max_iterations})")
                        self._append(conversation, Message.assistant(max_iterations_message(self.max_iterations)))
                        stop_reason = LoopStopReason.MAX_ITERATIONS
                        state = LoopState.DONE
                        continue

                    try:
                        reply = await self.client.complete_with_tools(conversation, tool_schemas)
                    except Exception as e:
                        logger.error(f"{self.progress.agent}: model call failed: {e}")
                        self._append(conversation, Message.assistant(model_error_message(e)))
                        stop_reason = LoopStopReason.MODEL_ERROR
                        state = LoopState.DONE
                        continue

                    self._append(conversation, reply)
                    if reply.has_tool_calls:
                        pending_turn = reply
                        state = LoopState.PROCESSING_TOOLS
                    else:
                        state = LoopState.DONE

                elif state == LoopState.PROCESSING_TOOLS:
                    for call in pending_turn.tool_calls:
                        result = await self.executor.execute(call)
                        content = result.to_content()

                        if call.name == THINK_TOOL_NAME and result.success:
                            thought = result.arguments.get("thought", "")
                            logger.debug(f"Agent thinking: {thought}")
                            self.progress.report(f"Thinking: {thought}")
                        else:
                            self.progress.tool_started(call.name, result.arguments)
                            if result.success:
                                self.progress.tool_finished(call.name, result.elapsed_ms)
                            else:
                                self.progress.tool_failed(call.name, result.error)

                        records.append(ToolCallRecord(
                            name=call.name,
                            arguments=result.arguments,
                            output=content,
                            success=result.success,
                        ))
                        self._append(conversation, Message.tool(call.id, call.name, content))

                    iterations += 1
                    pending_turn = None
                    state = LoopState.AWAITING_MODEL
                    logger.debug(f"{self.progress.agent}: finished tool round {iterations}")
        finally:
            await self._drain()

        return LoopResult(
            messages=conversation,
            output=final_text(conversation),
            stop_reason=stop_reason,
            iterations=iterations,
            tool_calls=records,
        )

    def _append(self, conversation: list[Message], message: Message) -> None:
        conversation.append(message)
        if self.on_message is None:
            return

        try:
            outcome = self.on_message(message)
        except Exception as e:
            logger.warning(f"Message listener failed: {e}")
            return

        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._pending.add(task)
            task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Message listener failed: {task.exception()}")

    async def _drain(self) -> None:
        """Wait for background listener work started during this run."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def final_text(conversation: Sequence[Message]) -> str:
    """Text of the last assistant message, or an empty string."""
    for msg in reversed(conversation):
        if msg.role == MessageRole.ASSISTANT:
            return msg.content or ""
    return ""
