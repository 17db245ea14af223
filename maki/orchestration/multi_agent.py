"""
Multi-agent executor: runs the tasks of a plan with independent sub-agents.

- SEQUENTIAL: one task at a time; every task sees all earlier results.
- PARALLEL: all tasks at once (bounded by a semaphore); tasks only see the
  original request and their own instructions.
- HYBRID: phases run in order, each PARALLEL or SEQUENTIAL internally; a
  phase starts only after every task of the previous phase has finished.

A failing task never aborts the others; its error text becomes its result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence

from ..llm.protocols import Message, ModelClient
from ..tools.registry import ToolRegistry
from .agent_loop import AgentLoop, MessageListener
from .models import AgentTask, ExecutionMode, ExecutionPlan
from .progress import NULL_PROGRESS, ProgressReporter
from .prompts import sub_agent_prompt

logger = logging.getLogger(__name__)


class TaskRunner(Protocol):
    """Runs one delegated task and returns the sub-agent's final output."""

    async def __call__(
        self,
        task: AgentTask,
        task_input: str,
        progress: ProgressReporter,
    ) -> str:
        ...


class SubAgentRunner:
    """Runs each task in a fresh single-agent loop with its own conversation."""

    def __init__(
        self,
        client: ModelClient,
        registry: ToolRegistry,
        max_iterations: int = 7,
        on_message: MessageListener | None = None,
    ):
        self.client = client
        self.registry = registry
        self.max_iterations = max_iterations
        self.on_message = on_message

    async def __call__(
        self,
        task: AgentTask,
        task_input: str,
        progress: ProgressReporter,
    ) -> str:
        loop = AgentLoop(
            self.client,
            self.registry,
            max_iterations=self.max_iterations,
            progress=progress,
            on_message=self.on_message,
        )
        result = await loop.run([
            Message.system(sub_agent_prompt(task.role, task.instructions)),
            Message.user(task_input),
        ])
        return result.output


def build_task_input(
    original_request: str,
    task: AgentTask,
    previous: Sequence[str] = (),
    previous_label: str = "Previous results",
) -> str:
    """Input text for one sub-agent."""
    text = f"Original request: {original_request}\n\nYour specific task: {task.instructions}"
    if previous:
        text += f"\n\n{previous_label}: " + "\n\n".join(previous)
    return text


class MultiAgentExecutor:
    """Executes structured plans by dispatching tasks to sub-agents."""

    def __init__(
        self,
        runner: TaskRunner,
        max_parallel_agents: int = 0,
        progress: ProgressReporter = NULL_PROGRESS,
        name: str = "multi_executor",
    ):
        """
        Initialize the executor.

        Args:
            runner: Runs one task; the default is a SubAgentRunner
            max_parallel_agents: Bound on concurrently running sub-agents,
                0 for no bound
            progress: Progress reporter for executor-level notifications
            name: Agent label used in progress notifications
        """
        self.runner = runner
        self.max_parallel_agents = max_parallel_agents
        self.progress = progress.for_agent(name)

    async def run(self, plan: ExecutionPlan, original_request: str) -> str:
        """
        Execute a complex plan and combine the task results.

        Args:
            plan: Plan to execute
            original_request: Request the plan was made for

        Returns:
            One combined text with every task result in plan order
        """
        if not plan.complex:
            raise ValueError("Only complex plans can be executed by sub-agents")

        logger.info(f"Executing {plan.task_count} tasks with {plan.mode.value} execution")

        if plan.mode == ExecutionMode.HYBRID:
            results = await self._run_hybrid(plan, original_request)
        elif plan.mode == ExecutionMode.PARALLEL:
            self.progress.report("Executing sub-agents in PARALLEL")
            results = await self.run_parallel(plan.tasks, original_request)
        else:
            self.progress.report("Executing sub-agents in SEQUENCE")
            results = await self.run_sequential(plan.tasks, original_request)

        return (
            f"Multi-agent task completed with {plan.mode.value} execution!\n\n"
            + "\n\n".join(results)
        )

    async def _run_hybrid(self, plan: ExecutionPlan, original_request: str) -> list[str]:
        self.progress.report(f"Executing {len(plan.phases)} phases in hybrid mode")
        results: list[str] = []

        for index, phase in enumerate(plan.phases, start=1):
            message = f"Phase {index}: {phase.mode.value} execution with {len(phase.tasks)} agents"
            logger.info(message)
            self.progress.report(message)

            if phase.mode == ExecutionMode.PARALLEL:
                phase_results = await self.run_parallel(
                    phase.tasks,
                    original_request,
                    previous=results,
                    previous_label="Previous phase results",
                )
            else:
                phase_results = await self.run_sequential(
                    phase.tasks, original_request, previous=results
                )
            results.extend(phase_results)

        return results

    async def run_sequential(
        self,
        tasks: Sequence[AgentTask],
        original_request: str,
        previous: Sequence[str] = (),
    ) -> list[str]:
        """Run tasks one by one, feeding each the results so far."""
        accumulated = list(previous)
        results: list[str] = []

        for index, task in enumerate(tasks, start=1):
            logger.info(f"Executing sequential agent {index}: {task.role}")
            task_input = build_task_input(original_request, task, accumulated)
            result = await self._run_task(task, task_input)
            accumulated.append(result)
            results.append(result)

        return results

    async def run_parallel(
        self,
        tasks: Sequence[AgentTask],
        original_request: str,
        previous: Sequence[str] = (),
        previous_label: str = "Previous results",
    ) -> list[str]:
        """Run tasks concurrently; results come back in task order."""
        # Snapshot so siblings in this phase never see each other's results
        context = tuple(previous)
        semaphore = (
            asyncio.Semaphore(self.max_parallel_agents) if self.max_parallel_agents > 0 else None
        )

        async def process_task(task: AgentTask) -> str:
            task_input = build_task_input(original_request, task, context, previous_label)
            if semaphore is None:
                return await self._run_task(task, task_input)
            async with semaphore:
                return await self._run_task(task, task_input)

        results = await asyncio.gather(*(process_task(task) for task in tasks))
        return list(results)

    async def _run_task(self, task: AgentTask, task_input: str) -> str:
        try:
            output = await self.runner(task, task_input, self.progress.for_agent(task.role))
        except Exception as e:
            logger.warning(f"Sub-agent {task.role} failed: {e}")
            return f"{task.role} failed: {e}"

        logger.debug(f"Sub-agent {task.role} completed")
        return f"{task.role} completed: {output}"
