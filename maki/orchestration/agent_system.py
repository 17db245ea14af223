"""
Agent System: top-level driver for one delegated request.

Flow:
    request -> coordinator loop -> plan extractor
      complex -> multi-agent executor
      simple  -> smart-agent loop -> dynamic switch
                   Finished -> answer
                   Redirect -> parallel bulk fan-out
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence

from ..llm.protocols import Message, MessageRole, ModelClient
from ..tools.registry import ToolRegistry
from .agent_loop import AgentLoop, MessageListener
from .dynamic_switch import DynamicSwitchController
from .models import ExecutionPlan, Finished, SystemResult
from .multi_agent import MultiAgentExecutor, SubAgentRunner, TaskRunner
from .plan_extractor import extract_plan
from .progress import ProgressCallback, ProgressReporter
from .prompts import coordinator_prompt, smart_agent_prompt

if TYPE_CHECKING:
    from ..config.loader import ProfileConfig

logger = logging.getLogger(__name__)

SYSTEM_ERROR_MESSAGE = "I encountered an error while processing your request. Please try again."
BULK_RESULT_HEADER = "Parallel bulk processing completed!"


def fold_history(request: str, history: Sequence[Message] | None, limit: int = 6) -> str:
    """Prefix a request with the recent non-system conversation, if any."""
    if not history or len(history) <= 1:
        return request

    recent = [msg for msg in history if msg.role != MessageRole.SYSTEM][-limit:]
    if not recent:
        return request

    lines = "\n".join(f"{msg.role.value}: {msg.content or ''}" for msg in recent)
    return f"Recent conversation:\n{lines}\n\nCurrent request: {request}"


def coordinator_input(request: str) -> str:
    return f"User request: {request}\n\nAnalyze this request and respond with your delegation plan."


class AgentSystem:
    """
    Coordinator-driven delegation over single-agent loops.

    Each call to ``execute`` is independent: progress reporting and all
    conversations are created per request.
    """

    def __init__(
        self,
        client: ModelClient,
        registry: ToolRegistry,
        config: ProfileConfig | None = None,
        runner: TaskRunner | None = None,
        plan_parser: Callable[[str], ExecutionPlan] = extract_plan,
        on_message: MessageListener | None = None,
    ):
        """
        Initialize the agent system.

        Args:
            client: Model client shared by every agent (already entered)
            registry: Full tool registry
            config: Profile configuration; defaults apply when omitted
            runner: Task runner for sub-agents. Defaults to a SubAgentRunner
                over the same client and registry.
            plan_parser: Turns coordinator text into an ExecutionPlan
            on_message: Optional listener for every message the agents append
        """
        if config is None:
            from ..config.loader import ModelConfig, ProfileConfig
            config = ProfileConfig(model=ModelConfig(backend="mock"))

        self.client = client
        self.registry = registry
        self.config = config
        self.plan_parser = plan_parser
        self.on_message = on_message
        self.runner = runner or SubAgentRunner(
            client,
            registry,
            max_iterations=config.agent_loop.sub_agent,
            on_message=on_message,
        )

        switch = config.dynamic_switch
        self.switch = DynamicSwitchController(
            markers=switch.markers,
            bulk_threshold=switch.bulk_threshold,
            discovery_tools=switch.discovery_tools,
            signal_tool=switch.signal_tool,
            enabled=switch.enabled,
        )

    async def execute(
        self,
        request: str,
        history: Sequence[Message] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> SystemResult:
        """
        Handle one request end to end.

        Args:
            request: The user's request
            history: Prior chat conversation, folded into the request
            progress_callback: Optional (agent, message) listener

        Returns:
            SystemResult; failures come back as an error result, never raised
        """
        progress = ProgressReporter(progress_callback)
        contextual = fold_history(
            request, history, self.config.conversation.recent_history_messages
        )

        try:
            plan = await self._coordinate(contextual, progress.for_agent("coordinator"))

            if plan.complex:
                executor = self._executor(progress)
                output = await executor.run(plan, contextual)
                return SystemResult(
                    output=output,
                    agents_used=["coordinator", "multi_executor"],
                    task_type="complex",
                    plan=plan,
                )

            return await self._run_smart_agent(contextual, plan, progress)

        except Exception as e:
            logger.exception(f"Agent system failed: {e}")
            return SystemResult(output=SYSTEM_ERROR_MESSAGE, agents_used=[], task_type="error")

    async def _coordinate(self, request: str, progress: ProgressReporter) -> ExecutionPlan:
        loop = AgentLoop(
            self.client,
            self.registry.subset(self.config.coordinator.tools),
            max_iterations=self.config.agent_loop.coordinator,
            progress=progress,
            on_message=self.on_message,
        )
        result = await loop.run([
            Message.system(coordinator_prompt(self.registry.describe())),
            Message.user(coordinator_input(request)),
        ])
        plan = self.plan_parser(result.output)

        if plan.complex:
            message = f"Delegating with {plan.mode.value} execution ({plan.task_count} agents)"
        else:
            message = "Routing to smart agent"
        logger.info(f"Coordinator: {message}")
        progress.report(message)
        return plan

    async def _run_smart_agent(
        self,
        request: str,
        plan: ExecutionPlan,
        progress: ProgressReporter,
    ) -> SystemResult:
        """Run the general-purpose agent, redirecting bulk work if it asks to."""
        switch = self.config.dynamic_switch
        loop = AgentLoop(
            self.client,
            self.registry,
            max_iterations=self.config.agent_loop.smart_agent,
            progress=progress.for_agent("smart_agent"),
            on_message=self.on_message,
        )
        result = await loop.run([
            Message.system(smart_agent_prompt(switch.bulk_threshold, switch.signal_tool)),
            Message.user(request),
        ])

        decision = self.switch.decide(result)
        if isinstance(decision, Finished):
            return SystemResult(
                output=decision.output,
                agents_used=["coordinator", "smart_agent"],
                task_type="simple",
                plan=plan,
            )

        progress.for_agent("smart_agent").report(
            f"Bulk operation detected, switching {len(decision.tasks)} items to parallel execution"
        )
        executor = self._executor(progress, name="parallel_bulk_executor")
        results = await executor.run_parallel(decision.tasks, request)
        return SystemResult(
            output=f"{BULK_RESULT_HEADER}\n\n" + "\n\n".join(results),
            agents_used=["coordinator", "smart_agent", "parallel_bulk_executor"],
            task_type="dynamic_parallel",
            plan=plan,
        )

    def _executor(self, progress: ProgressReporter, name: str = "multi_executor") -> MultiAgentExecutor:
        return MultiAgentExecutor(
            self.runner,
            max_parallel_agents=self.config.multi_agent.max_parallel_agents,
            progress=progress,
            name=name,
        )
