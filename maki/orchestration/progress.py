"""Progress notifications, passed explicitly to every component."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]

_ARG_PREVIEW_LENGTH = 60


@dataclass(frozen=True)
class ProgressReporter:
    """Sends (agent label, message) notifications to an optional listener.

    A reporter without a callback does nothing. Listener failures are
    logged and never reach the caller.
    """

    callback: ProgressCallback | None = None
    agent: str = "agent"

    def for_agent(self, agent: str) -> ProgressReporter:
        return replace(self, agent=agent)

    def report(self, message: str) -> None:
        if self.callback is None:
            return
        try:
            self.callback(self.agent, message)
        except Exception as e:
            logger.warning(f"Progress listener failed: {e}")

    def tool_started(self, name: str, arguments: dict) -> None:
        self.report(f"{name}({summarize_arguments(arguments)})")

    def tool_finished(self, name: str, elapsed_ms: int) -> None:
        self.report(f"{name} completed ({elapsed_ms}ms)")

    def tool_failed(self, name: str, error: str) -> None:
        self.report(f"{name} failed: {error}")


def summarize_arguments(arguments: dict) -> str:
    """Short single-line rendering of tool arguments for display."""
    parts = []
    for key, value in arguments.items():
        rendered = value if isinstance(value, str) else json.dumps(value, default=str)
        if len(rendered) > _ARG_PREVIEW_LENGTH:
            rendered = rendered[:_ARG_PREVIEW_LENGTH] + "..."
        parts.append(f"{key}={rendered}")
    return ", ".join(parts)


NULL_PROGRESS = ProgressReporter()
