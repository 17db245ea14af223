"""Dynamic switch from a single agent to a parallel fan-out of bulk items."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Sequence

from .models import AgentTask, Finished, LoopResult, Redirect, SwitchDecision, ToolCallRecord

logger = logging.getLogger(__name__)

DEFAULT_MARKERS = ("PARALLEL_EXECUTION_NEEDED", "BULK_OPERATION_DETECTED")
DEFAULT_DISCOVERY_TOOLS = ("glob", "listFiles", "extractLinksFromPage")
LIST_KEYS = ("files", "paths", "links", "items", "folders")


def bulk_task(index: int, item: Any) -> AgentTask:
    return AgentTask(
        role=f"Bulk Processor {index}",
        instructions=f"Process this specific item: {json.dumps(item, default=str)}",
    )


def _listed_items(payload: Any) -> list | None:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    return None


def _dedupe(items: Iterable[Any]) -> list[Any]:
    seen: set[str] = set()
    unique = []
    for item in items:
        key = json.dumps(item, sort_keys=True, default=str)
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


class DynamicSwitchController:
    """
    Decides, once per run, whether the general-purpose agent's work should
    be redirected into one parallel sub-agent per discovered item.

    The signal is either a marker in the agent's final text or a call to
    the structured signal tool. Items come from the signal tool's ``items``
    argument, falling back to large outputs of discovery tools.
    """

    def __init__(
        self,
        markers: Sequence[str] = DEFAULT_MARKERS,
        bulk_threshold: int = 3,
        discovery_tools: Sequence[str] = DEFAULT_DISCOVERY_TOOLS,
        signal_tool: str = "signalBulkOperation",
        enabled: bool = True,
    ):
        self.markers = tuple(markers)
        self.bulk_threshold = bulk_threshold
        self.discovery_tools = set(discovery_tools)
        self.signal_tool = signal_tool
        self.enabled = enabled

    def is_signalled(self, result: LoopResult) -> bool:
        if any(marker in result.output for marker in self.markers):
            return True
        return any(record.name == self.signal_tool for record in result.tool_calls)

    def extract_items(self, records: Sequence[ToolCallRecord]) -> list[Any]:
        """Bulk items recorded during a run, de-duplicated in first-seen order."""
        signalled: list[Any] = []
        for record in records:
            if record.name == self.signal_tool:
                items = record.arguments.get("items")
                if isinstance(items, list):
                    signalled.extend(items)
        if signalled:
            return _dedupe(signalled)

        discovered: list[Any] = []
        for record in records:
            if record.name not in self.discovery_tools or not record.success:
                continue
            try:
                payload = json.loads(record.output)
            except (json.JSONDecodeError, TypeError):
                continue
            items = _listed_items(payload)
            if items is not None and len(items) > self.bulk_threshold:
                discovered.extend(items)
        return _dedupe(discovered)

    def decide(self, result: LoopResult) -> SwitchDecision:
        """
        Evaluate a finished loop run.

        Returns:
            Finished with the run's output, or Redirect with one task per item
        """
        if not self.enabled or not self.is_signalled(result):
            return Finished(result.output)

        items = self.extract_items(result.tool_calls)
        if not items:
            logger.warning("Bulk operation signalled but no items were found")
            return Finished(result.output)

        logger.info(f"Bulk operation detected, redirecting {len(items)} items to parallel agents")
        tasks = tuple(bulk_task(index, item) for index, item in enumerate(items, start=1))
        return Redirect(tasks=tasks, partial_output=result.output)
