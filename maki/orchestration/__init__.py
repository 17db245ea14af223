"""Orchestration layer for the maki agent.

This module provides the delegation engine:
- Conversation: message log, tool-call pairing checks and reset policy
- ToolExecutor: runs one tool call, never raises
- AgentLoop: model/tool state machine for a single agent
- extract_plan: coordinator text -> ExecutionPlan
- MultiAgentExecutor: PARALLEL, SEQUENTIAL and HYBRID sub-agent dispatch
- DynamicSwitchController: redirects bulk work into a parallel fan-out
- AgentSystem: coordinator-driven top-level driver
- ChatSession: interactive session over a persistent conversation
"""

from .models import (
    ExecutionMode,
    AgentTask,
    ExecutionPhase,
    ExecutionPlan,
    ToolCallRecord,
    LoopState,
    LoopStopReason,
    LoopResult,
    Finished,
    Redirect,
    SwitchDecision,
    SystemResult,
)
from .progress import ProgressReporter, ProgressCallback, NULL_PROGRESS
from .conversation import (
    Conversation,
    find_unanswered_tool_calls,
    validate_conversation,
    needs_reset,
)
from .tool_executor import ToolExecutor, ToolResult, parse_arguments
from .agent_loop import AgentLoop, MessageListener
from .plan_extractor import extract_plan, classify_line
from .multi_agent import MultiAgentExecutor, SubAgentRunner, TaskRunner, build_task_input
from .dynamic_switch import DynamicSwitchController
from .agent_system import AgentSystem, fold_history
from .session import ChatSession

__all__ = [
    # Models
    "ExecutionMode",
    "AgentTask",
    "ExecutionPhase",
    "ExecutionPlan",
    "ToolCallRecord",
    "LoopState",
    "LoopStopReason",
    "LoopResult",
    "Finished",
    "Redirect",
    "SwitchDecision",
    "SystemResult",
    # Progress
    "ProgressReporter",
    "ProgressCallback",
    "NULL_PROGRESS",
    # Conversation state
    "Conversation",
    "find_unanswered_tool_calls",
    "validate_conversation",
    "needs_reset",
    # Execution
    "ToolExecutor",
    "ToolResult",
    "parse_arguments",
    "AgentLoop",
    "MessageListener",
    "extract_plan",
    "classify_line",
    "MultiAgentExecutor",
    "SubAgentRunner",
    "TaskRunner",
    "build_task_input",
    "DynamicSwitchController",
    # Drivers
    "AgentSystem",
    "fold_history",
    "ChatSession",
]
