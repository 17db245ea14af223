"""Data models for the agent orchestration layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ..llm.protocols import Message


class ExecutionMode(Enum):
    """How the tasks of a plan (or phase) are dispatched."""

    PARALLEL = "PARALLEL"
    SEQUENTIAL = "SEQUENTIAL"
    HYBRID = "HYBRID"


@dataclass(frozen=True)
class AgentTask:
    """One unit of delegated work for a sub-agent."""

    role: str  # Descriptive label only
    instructions: str


@dataclass(frozen=True)
class ExecutionPhase:
    """An ordered group of tasks inside a HYBRID plan."""

    mode: ExecutionMode
    tasks: tuple[AgentTask, ...]

    def __post_init__(self):
        if self.mode == ExecutionMode.HYBRID:
            raise ValueError("A phase must be PARALLEL or SEQUENTIAL")


@dataclass(frozen=True)
class ExecutionPlan:
    """Structured plan extracted from a coordinator's response.

    ``tasks`` is used when mode is not HYBRID, ``phases`` when it is.
    A simple plan carries neither and is routed to the general-purpose agent.
    """

    complex: bool
    mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    tasks: tuple[AgentTask, ...] = ()
    phases: tuple[ExecutionPhase, ...] = ()

    def __post_init__(self):
        if not self.complex and (self.tasks or self.phases):
            raise ValueError("A simple plan cannot carry tasks or phases")

    @classmethod
    def simple(cls) -> ExecutionPlan:
        return cls(complex=False)

    @property
    def task_count(self) -> int:
        if self.mode == ExecutionMode.HYBRID:
            return sum(len(phase.tasks) for phase in self.phases)
        return len(self.tasks)


@dataclass(frozen=True)
class ToolCallRecord:
    """A tool call made during a loop run, with its serialized output."""

    name: str
    arguments: dict
    output: str
    success: bool


class LoopState(Enum):
    """States of the single-agent loop."""

    AWAITING_MODEL = "awaiting_model"
    PROCESSING_TOOLS = "processing_tools"
    DONE = "done"


class LoopStopReason(Enum):
    """Why a loop reached DONE."""

    COMPLETED = "completed"  # Model answered without tool calls
    MODEL_ERROR = "model_error"
    MAX_ITERATIONS = "max_iterations"


@dataclass
class LoopResult:
    """Outcome of one single-agent loop run."""

    messages: list[Message]
    output: str
    stop_reason: LoopStopReason
    iterations: int = 0
    tool_calls: list[ToolCallRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.stop_reason == LoopStopReason.COMPLETED


@dataclass(frozen=True)
class Finished:
    """The general-purpose agent finished; ``output`` is the answer."""

    output: str


@dataclass(frozen=True)
class Redirect:
    """The general-purpose agent found bulk work to fan out in parallel."""

    tasks: tuple[AgentTask, ...]
    partial_output: str = ""


SwitchDecision = Union[Finished, Redirect]


@dataclass
class SystemResult:
    """Final result of one top-level request."""

    output: str
    agents_used: list[str]
    task_type: str  # "complex", "simple", "dynamic_parallel" or "error"
    plan: ExecutionPlan | None = None
