"""
Multi-Agent Executor Tests

Tests for PARALLEL, SEQUENTIAL and HYBRID dispatch of sub-agent tasks.
"""

import asyncio
import time

import pytest

from maki.config import MockModelClient
from maki.orchestration import (
    AgentTask,
    ExecutionMode,
    ExecutionPhase,
    ExecutionPlan,
    MultiAgentExecutor,
    SubAgentRunner,
    build_task_input,
)
from maki.tools import ToolRegistry


class RecordingRunner:
    """Task runner that sleeps, records its inputs and echoes the role."""

    def __init__(self, delay: float = 0.0, fail_roles=()):
        self.delay = delay
        self.fail_roles = set(fail_roles)
        self.inputs: dict[str, str] = {}
        self.events: list[tuple[str, str]] = []

    async def __call__(self, task, task_input, progress):
        self.inputs[task.role] = task_input
        self.events.append(("start", task.role))
        await asyncio.sleep(self.delay)
        self.events.append(("end", task.role))
        if task.role in self.fail_roles:
            raise RuntimeError("tool crashed")
        return f"output of {task.role}"


def _tasks(*roles: str) -> tuple[AgentTask, ...]:
    return tuple(AgentTask(role=r, instructions=f"do {r}") for r in roles)


def test_build_task_input():
    task = AgentTask(role="Writer", instructions="write it")
    assert build_task_input("req", task) == "Original request: req\n\nYour specific task: write it"

    text = build_task_input("req", task, ["one", "two"], "Previous phase results")
    assert text.endswith("\n\nPrevious phase results: one\n\ntwo")


def test_parallel_runs_concurrently():
    """N tasks of duration T finish in about T, not N*T."""
    print("=" * 60)
    print("TEST: Parallel execution")
    print("=" * 60)

    runner = RecordingRunner(delay=0.2)
    executor = MultiAgentExecutor(runner, max_parallel_agents=0)
    plan = ExecutionPlan(complex=True, mode=ExecutionMode.PARALLEL, tasks=_tasks("A", "B", "C", "D"))

    started = time.perf_counter()
    output = asyncio.run(executor.run(plan, "analyze"))
    elapsed = time.perf_counter() - started

    print(f"\nElapsed: {elapsed:.2f}s")
    assert elapsed < 0.6
    assert output.startswith("Multi-agent task completed with PARALLEL execution!\n\n")
    # Plan order, regardless of completion order
    assert output.index("A completed") < output.index("B completed") < output.index("D completed")
    # Siblings never see each other's results
    assert all("Previous" not in text for text in runner.inputs.values())
    print("[PASS] Parallel tasks overlapped")


def test_parallel_is_unbounded_by_default():
    """A large fan-out with default settings still finishes in about T."""
    runner = RecordingRunner(delay=0.2)
    executor = MultiAgentExecutor(runner)
    roles = [f"Item {i}" for i in range(24)]

    started = time.perf_counter()
    results = asyncio.run(executor.run_parallel(_tasks(*roles), "process everything"))
    elapsed = time.perf_counter() - started

    assert elapsed < 0.4
    assert len(results) == 24


def test_default_profile_does_not_bound_parallelism():
    from maki.config import MultiAgentConfig, load_config

    assert MultiAgentConfig().max_parallel_agents == 0
    assert load_config(profile="dev").multi_agent.max_parallel_agents == 0


def test_parallel_respects_concurrency_bound():
    runner = RecordingRunner(delay=0.05)
    executor = MultiAgentExecutor(runner, max_parallel_agents=2)

    results = asyncio.run(executor.run_parallel(_tasks("A", "B", "C", "D"), "req"))

    running = peak = 0
    for kind, _ in runner.events:
        running += 1 if kind == "start" else -1
        peak = max(peak, running)
    assert peak == 2
    assert results == [f"{r} completed: output of {r}" for r in "ABCD"]


def test_sequential_accumulates_context():
    runner = RecordingRunner()
    executor = MultiAgentExecutor(runner)
    plan = ExecutionPlan(complex=True, mode=ExecutionMode.SEQUENTIAL, tasks=_tasks("A", "B", "C"))

    output = asyncio.run(executor.run(plan, "req"))

    assert "Previous results" not in runner.inputs["A"]
    assert runner.inputs["B"].endswith("Previous results: A completed: output of A")
    assert "A completed: output of A\n\nB completed: output of B" in runner.inputs["C"]
    assert [e for e in runner.events if e[0] == "start"] == [("start", r) for r in "ABC"]
    assert output.startswith("Multi-agent task completed with SEQUENTIAL execution!")


def test_failure_is_isolated():
    runner = RecordingRunner(fail_roles={"B"})
    executor = MultiAgentExecutor(runner)

    results = asyncio.run(executor.run_parallel(_tasks("A", "B", "C"), "req"))

    assert results[1] == "B failed: tool crashed"
    assert results[0] == "A completed: output of A"
    assert results[2] == "C completed: output of C"


def test_sequential_continues_after_failure():
    runner = RecordingRunner(fail_roles={"A"})
    executor = MultiAgentExecutor(runner)

    results = asyncio.run(executor.run_sequential(_tasks("A", "B"), "req"))

    assert results[0] == "A failed: tool crashed"
    assert "A failed: tool crashed" in runner.inputs["B"]


def test_hybrid_phases_are_barriers():
    runner = RecordingRunner(delay=0.02)
    executor = MultiAgentExecutor(runner)
    plan = ExecutionPlan(
        complex=True,
        mode=ExecutionMode.HYBRID,
        phases=(
            ExecutionPhase(ExecutionMode.PARALLEL, _tasks("A1", "A2")),
            ExecutionPhase(ExecutionMode.PARALLEL, _tasks("B1", "B2")),
            ExecutionPhase(ExecutionMode.SEQUENTIAL, _tasks("C1")),
        ),
    )

    output = asyncio.run(executor.run(plan, "req"))

    order = runner.events
    last_a_end = max(i for i, e in enumerate(order) if e in (("end", "A1"), ("end", "A2")))
    first_b_start = min(i for i, e in enumerate(order) if e in (("start", "B1"), ("start", "B2")))
    assert last_a_end < first_b_start

    assert "Previous" not in runner.inputs["A1"]
    assert "Previous phase results: A1 completed" in runner.inputs["B1"]
    assert "B2 completed" not in runner.inputs["B1"]
    assert "Previous results: A1 completed" in runner.inputs["C1"]
    assert "B2 completed: output of B2" in runner.inputs["C1"]
    assert output.startswith("Multi-agent task completed with HYBRID execution!")


def test_simple_plan_is_rejected():
    executor = MultiAgentExecutor(RecordingRunner())
    with pytest.raises(ValueError):
        asyncio.run(executor.run(ExecutionPlan.simple(), "req"))


def test_progress_labels():
    events = []

    from maki.orchestration import ProgressReporter

    executor = MultiAgentExecutor(
        RecordingRunner(),
        progress=ProgressReporter(lambda agent, message: events.append((agent, message))),
    )
    plan = ExecutionPlan(complex=True, mode=ExecutionMode.PARALLEL, tasks=_tasks("A"))
    asyncio.run(executor.run(plan, "req"))

    assert events == [("multi_executor", "Executing sub-agents in PARALLEL")]


def test_sub_agent_runner_uses_fresh_conversation():
    client = MockModelClient(responses=["sub-agent answer"])
    runner = SubAgentRunner(client, ToolRegistry(), max_iterations=3)
    executor = MultiAgentExecutor(runner)

    results = asyncio.run(executor.run_sequential(_tasks("Analyst"), "the request"))

    assert results == ["Analyst completed: sub-agent answer"]
    messages, _ = client.calls[0]
    assert "Analyst" in messages[0].content
    assert messages[1].content == "Original request: the request\n\nYour specific task: do Analyst"
