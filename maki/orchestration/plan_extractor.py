"""
Plan extraction from a coordinator's free-text response.

Each line of the response is classified into exactly one variant
(complexity marker, execution marker, PHASES header, PHASE header, task
line, or other text), and the plan is assembled from the variants. Anything
that does not classify contributes nothing. When the result would be
incomplete the extractor falls back to the simplest safe plan instead of
returning a partial one:

- complex without any parsed task -> simple plan
- HYBRID without a non-empty phase -> SEQUENTIAL over the flat tasks
  (or simple when there are none)
- phases without tasks are dropped

Expected shape::

    COMPLEXITY: COMPLEX
    EXECUTION: PARALLEL
    - Agent 1: [File Analyst] - inspect the CSV files
    - Agent 2: [Web Researcher] - fetch the reference page

or, for HYBRID::

    EXECUTION: HYBRID
    PHASES:
    PHASE 1 (SEQUENTIAL):
    - Agent 1: [Discoverer] - list every file
    PHASE 2 (PARALLEL):
    - Agent 2: [Processor A] - process the first half
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

from .models import AgentTask, ExecutionMode, ExecutionPhase, ExecutionPlan

logger = logging.getLogger(__name__)

_EMPHASIS = re.compile(r"\*\*|`")
_COMPLEXITY = re.compile(r"COMPLEXITY:\s*(COMPLEX|SIMPLE)\b")
_EXECUTION = re.compile(r"EXECUTION:\s*(PARALLEL|SEQUENTIAL|HYBRID)\b")
_PHASES = re.compile(r"^PHASES:\s*$")
_PHASE = re.compile(r"^PHASE\s+\d+\s*\((PARALLEL|SEQUENTIAL)\)\s*:\s*$")
_TASK = re.compile(
    r"^[-*•]\s*Agent\s+\d+\s*:\s*\[(?P<role>[^\]]+)\]\s*[-–—:]\s*(?P<instructions>.+)$",
    re.IGNORECASE,
)
# Phase blocks may also list tasks as "- Role: instructions"
_LOOSE_TASK = re.compile(r"^[-*•]\s*(?P<role>[^:\[\]]+?)\s*:\s*(?P<instructions>.+)$")

# Most specific mode wins when several execution markers appear
_MODE_PRECEDENCE = (ExecutionMode.HYBRID, ExecutionMode.PARALLEL, ExecutionMode.SEQUENTIAL)


@dataclass(frozen=True)
class ComplexityLine:
    complex: bool
    mode: ExecutionMode | None = None  # Execution marker on the same line


@dataclass(frozen=True)
class ExecutionLine:
    mode: ExecutionMode


@dataclass(frozen=True)
class PhasesHeader:
    pass


@dataclass(frozen=True)
class PhaseHeader:
    mode: ExecutionMode


@dataclass(frozen=True)
class TaskLine:
    task: AgentTask


@dataclass(frozen=True)
class LooseTaskLine:
    task: AgentTask


@dataclass(frozen=True)
class OtherLine:
    text: str


PlanLine = Union[
    ComplexityLine, ExecutionLine, PhasesHeader, PhaseHeader, TaskLine, LooseTaskLine, OtherLine
]


def classify_line(line: str) -> PlanLine:
    """Classify one line of coordinator text."""
    text = _EMPHASIS.sub("", line).strip()

    match = _TASK.match(text)
    if match:
        role = match.group("role").strip()
        instructions = match.group("instructions").strip()
        if role and instructions:
            return TaskLine(AgentTask(role=role, instructions=instructions))
        return OtherLine(text)

    if _PHASES.match(text):
        return PhasesHeader()

    match = _PHASE.match(text)
    if match:
        return PhaseHeader(ExecutionMode(match.group(1)))

    match = _COMPLEXITY.search(text)
    if match:
        execution = _EXECUTION.search(text)
        return ComplexityLine(
            match.group(1) == "COMPLEX",
            ExecutionMode(execution.group(1)) if execution else None,
        )

    match = _EXECUTION.search(text)
    if match:
        return ExecutionLine(ExecutionMode(match.group(1)))

    match = _LOOSE_TASK.match(text)
    if match:
        return LooseTaskLine(
            AgentTask(
                role=match.group("role").strip(),
                instructions=match.group("instructions").strip(),
            )
        )

    return OtherLine(text)


def extract_plan(text: str) -> ExecutionPlan:
    """
    Parse coordinator text into an ExecutionPlan.

    Args:
        text: Final response of the coordinator

    Returns:
        The extracted plan; a simple plan whenever the text is not a
        complete complex plan
    """
    is_complex = False
    modes: set[ExecutionMode] = set()
    tasks: list[AgentTask] = []
    phases: list[tuple[ExecutionMode, list[AgentTask]]] = []
    in_phases = False

    for line in (text or "").splitlines():
        variant = classify_line(line)

        if isinstance(variant, ComplexityLine):
            is_complex = is_complex or variant.complex
            if variant.mode is not None:
                modes.add(variant.mode)
        elif isinstance(variant, ExecutionLine):
            modes.add(variant.mode)
        elif isinstance(variant, PhasesHeader):
            in_phases = True
        elif isinstance(variant, PhaseHeader):
            if in_phases:
                phases.append((variant.mode, []))
        elif isinstance(variant, TaskLine):
            tasks.append(variant.task)
            if in_phases and phases:
                phases[-1][1].append(variant.task)
        elif isinstance(variant, LooseTaskLine):
            if in_phases and phases:
                phases[-1][1].append(variant.task)

    if not is_complex:
        return ExecutionPlan.simple()

    mode = next((m for m in _MODE_PRECEDENCE if m in modes), ExecutionMode.SEQUENTIAL)

    if mode == ExecutionMode.HYBRID:
        kept = tuple(
            ExecutionPhase(mode=phase_mode, tasks=tuple(phase_tasks))
            for phase_mode, phase_tasks in phases
            if phase_tasks
        )
        if kept:
            return ExecutionPlan(complex=True, mode=ExecutionMode.HYBRID, phases=kept)
        logger.warning("HYBRID plan without usable phases, falling back to SEQUENTIAL")
        mode = ExecutionMode.SEQUENTIAL

    if not tasks:
        logger.warning("Complex plan without parsable tasks, routing as simple")
        return ExecutionPlan.simple()

    return ExecutionPlan(complex=True, mode=mode, tasks=tuple(tasks))
