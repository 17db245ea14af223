"""CSV tools over workspace files.

Files are read with a header row; rows are dicts keyed by column name.
Failures raise and are turned into error results by the tool executor.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from collections import defaultdict
from typing import Any

from .file_tools import Workspace
from .registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)

FILTER_OPERATORS = ("equals", "contains", "startsWith", "endsWith", "greaterThan", "lessThan")
AGGREGATIONS = ("sum", "count", "average", "min", "max")
PREVIEW_ROWS = 5


def parse_csv_text(content: str) -> tuple[list[str], list[dict[str, str]]]:
    """Parse CSV text with a header row into (headers, rows)."""
    if not content.strip():
        raise ValueError("Invalid CSV format: file is empty")
    reader = csv.DictReader(io.StringIO(content))
    rows = [dict(row) for row in reader]
    return list(reader.fieldnames or []), rows


def format_csv_text(headers: list[str], rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=headers, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def _number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _matches(cell: str, operator: str, value: str) -> bool:
    if operator == "equals":
        return cell == value
    if operator == "contains":
        return value in cell
    if operator == "startsWith":
        return cell.startswith(value)
    if operator == "endsWith":
        return cell.endswith(value)

    left, right = _number(cell), _number(value)
    if left is None or right is None:
        # Non-numeric cells compare as text
        left, right = cell, value
    if operator == "greaterThan":
        return left > right
    return left < right


def _aggregate(values: list[str], operation: str) -> float | int | None:
    if operation == "count":
        return len(values)
    numbers = [n for n in (_number(v) for v in values) if n is not None]
    if not numbers:
        return None
    if operation == "sum":
        return sum(numbers)
    if operation == "average":
        return sum(numbers) / len(numbers)
    if operation == "min":
        return min(numbers)
    return max(numbers)


class CSVTools:
    """CSV manipulation confined to a workspace."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    async def _load(self, path: str) -> tuple[list[str], list[dict[str, str]]]:
        target = self.workspace.resolve(path)
        content = await asyncio.to_thread(target.read_text, encoding="utf-8")
        return parse_csv_text(content)

    async def _save(self, path: str, headers: list[str], rows: list[dict[str, Any]]) -> None:
        target = self.workspace.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, format_csv_text(headers, rows), encoding="utf-8")
        logger.debug(f"Wrote {len(rows)} CSV rows to {path}")

    @staticmethod
    def _column(headers: list[str], column: str) -> str:
        """Column by name, or by zero-based index given as a string."""
        if column in headers:
            return column
        if column.isdigit() and int(column) < len(headers):
            return headers[int(column)]
        raise ValueError(f"Invalid column '{column}'. Available columns: {', '.join(headers)}")

    @staticmethod
    def _check_row(rows: list, index: int) -> None:
        if index < 0 or index >= len(rows):
            raise IndexError(f"Invalid row index {index}. File has {len(rows)} rows.")

    async def parse(self, path: str) -> dict:
        headers, rows = await self._load(path)
        return {
            "success": True,
            "path": path,
            "headers": headers,
            "rowCount": len(rows),
            "columnCount": len(headers),
            "preview": rows[:PREVIEW_ROWS],
            "structure": [
                {"name": h, "sampleValues": [r[h] for r in rows[:3] if r.get(h)]}
                for h in headers
            ],
        }

    async def update_cell(self, path: str, rowIndex: int, column: str, value: str) -> dict:
        headers, rows = await self._load(path)
        self._check_row(rows, rowIndex)
        key = self._column(headers, column)
        rows[rowIndex][key] = value
        await self._save(path, headers, rows)
        return {
            "success": True,
            "message": f"Updated cell at row {rowIndex}, column '{key}' to '{value}'",
            "updatedValue": value,
        }

    async def add_row(self, path: str, rowData: dict) -> dict:
        headers, rows = await self._load(path)
        unknown = [k for k in rowData if k not in headers]
        if unknown:
            raise ValueError(f"Unknown columns: {', '.join(unknown)}")
        rows.append({h: rowData.get(h, "") for h in headers})
        await self._save(path, headers, rows)
        return {"success": True, "message": f"Added new row to {path}", "newRowCount": len(rows)}

    async def remove_row(self, path: str, rowIndex: int) -> dict:
        headers, rows = await self._load(path)
        self._check_row(rows, rowIndex)
        removed = rows.pop(rowIndex)
        await self._save(path, headers, rows)
        return {
            "success": True,
            "message": f"Removed row {rowIndex} from {path}",
            "removedRow": removed,
            "newRowCount": len(rows),
        }

    async def filter(
        self,
        sourcePath: str,
        targetPath: str,
        column: str,
        operator: str,
        value: str,
    ) -> dict:
        if operator not in FILTER_OPERATORS:
            raise ValueError(f"Unknown operator '{operator}'. Use one of: {', '.join(FILTER_OPERATORS)}")
        headers, rows = await self._load(sourcePath)
        key = self._column(headers, column)
        kept = [row for row in rows if _matches(row.get(key) or "", operator, value)]
        await self._save(targetPath, headers, kept)
        return {
            "success": True,
            "message": f"Filtered {len(kept)} of {len(rows)} rows into {targetPath}",
            "matchedRows": len(kept),
        }

    async def sort(self, path: str, sortColumns: list[dict]) -> dict:
        headers, rows = await self._load(path)
        # Stable sorts applied from the least significant key
        for sort_key in reversed(sortColumns):
            key = self._column(headers, sort_key["column"])
            descending = sort_key.get("direction", "asc") == "desc"
            numeric = all(_number(row.get(key)) is not None for row in rows)
            rows.sort(
                key=(lambda r, k=key: _number(r[k])) if numeric else (lambda r, k=key: r.get(k) or ""),
                reverse=descending,
            )
        await self._save(path, headers, rows)
        return {"success": True, "message": f"Sorted {len(rows)} rows in {path}"}

    async def add_column(
        self,
        path: str,
        columnName: str,
        defaultValue: str = "",
        position: int | None = None,
    ) -> dict:
        headers, rows = await self._load(path)
        if columnName in headers:
            raise ValueError(f"Column '{columnName}' already exists")
        index = len(headers) if position is None else max(0, min(position, len(headers)))
        headers.insert(index, columnName)
        for row in rows:
            row[columnName] = defaultValue
        await self._save(path, headers, rows)
        return {"success": True, "message": f"Added column '{columnName}' to {path}", "headers": headers}

    async def remove_column(self, path: str, column: str) -> dict:
        headers, rows = await self._load(path)
        key = self._column(headers, column)
        headers.remove(key)
        await self._save(path, headers, rows)
        return {"success": True, "message": f"Removed column '{key}' from {path}", "headers": headers}

    async def aggregate(
        self,
        sourcePath: str,
        targetPath: str,
        aggregations: list[dict],
        groupByColumns: list[str] | None = None,
    ) -> dict:
        headers, rows = await self._load(sourcePath)
        group_keys = [self._column(headers, c) for c in groupByColumns or []]

        columns = []
        for item in aggregations:
            operation = item["operation"]
            if operation not in AGGREGATIONS:
                raise ValueError(f"Unknown aggregation '{operation}'. Use one of: {', '.join(AGGREGATIONS)}")
            column = self._column(headers, item["column"])
            columns.append((column, operation, item.get("alias") or f"{operation}_{column}"))

        groups: dict[tuple, list[dict]] = defaultdict(list)
        for row in rows:
            groups[tuple(row.get(k) for k in group_keys)].append(row)

        result_headers = group_keys + [alias for _, _, alias in columns]
        result_rows = []
        for group, members in groups.items():
            out: dict[str, Any] = dict(zip(group_keys, group))
            for column, operation, alias in columns:
                out[alias] = _aggregate([m.get(column) or "" for m in members], operation)
            result_rows.append(out)

        await self._save(targetPath, result_headers, result_rows)
        return {
            "success": True,
            "message": f"Aggregated {len(rows)} rows into {len(result_rows)} groups in {targetPath}",
            "groupCount": len(result_rows),
            "preview": result_rows[:PREVIEW_ROWS],
        }


_PATH_PARAM = {"type": "string", "description": "CSV file path relative to the workspace root"}
_ROW_PARAM = {"type": "integer", "description": "Zero-based row index, header excluded"}
_COLUMN_PARAM = {"type": "string", "description": "Column name, or zero-based column index as a string"}


def register_csv_tools(registry: ToolRegistry, tools: CSVTools) -> None:
    """Register the CSV tools on a registry."""
    registry.register(ToolDefinition(
        name="parseCSV",
        description="CSV: Read a CSV file and return its headers, row count, preview rows and sample values.",
        parameters={"path": _PATH_PARAM},
        required_params=["path"],
        handler=tools.parse,
    ))
    registry.register(ToolDefinition(
        name="updateCSVCell",
        description="CSV: Set one cell of a CSV file.",
        parameters={
            "path": _PATH_PARAM,
            "rowIndex": _ROW_PARAM,
            "column": _COLUMN_PARAM,
            "value": {"type": "string", "description": "New cell value"},
        },
        required_params=["path", "rowIndex", "column", "value"],
        handler=tools.update_cell,
    ))
    registry.register(ToolDefinition(
        name="addCSVRow",
        description="CSV: Append a row; missing columns are left empty.",
        parameters={
            "path": _PATH_PARAM,
            "rowData": {"type": "object", "description": "Column name to cell value"},
        },
        required_params=["path", "rowData"],
        handler=tools.add_row,
    ))
    registry.register(ToolDefinition(
        name="removeCSVRow",
        description="CSV: Remove one row by index.",
        parameters={"path": _PATH_PARAM, "rowIndex": _ROW_PARAM},
        required_params=["path", "rowIndex"],
        handler=tools.remove_row,
    ))
    registry.register(ToolDefinition(
        name="filterCSV",
        description="CSV: Write the rows matching a column condition to a new CSV file.",
        parameters={
            "sourcePath": _PATH_PARAM,
            "targetPath": {**_PATH_PARAM, "description": "Where the filtered CSV is written"},
            "column": _COLUMN_PARAM,
            "operator": {"type": "string", "enum": list(FILTER_OPERATORS)},
            "value": {"type": "string", "description": "Value to compare against"},
        },
        required_params=["sourcePath", "targetPath", "column", "operator", "value"],
        handler=tools.filter,
    ))
    registry.register(ToolDefinition(
        name="sortCSV",
        description="CSV: Sort rows in place by one or more columns (numeric when every value is a number).",
        parameters={
            "path": _PATH_PARAM,
            "sortColumns": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "column": {"type": "string"},
                        "direction": {"type": "string", "enum": ["asc", "desc"]},
                    },
                    "required": ["column"],
                },
                "description": "Sort keys, most significant first",
            },
        },
        required_params=["path", "sortColumns"],
        handler=tools.sort,
    ))
    registry.register(ToolDefinition(
        name="addCSVColumn",
        description="CSV: Insert a new column filled with a default value.",
        parameters={
            "path": _PATH_PARAM,
            "columnName": {"type": "string"},
            "defaultValue": {"type": "string"},
            "position": {"type": "integer", "description": "Zero-based position, default is last"},
        },
        required_params=["path", "columnName"],
        handler=tools.add_column,
    ))
    registry.register(ToolDefinition(
        name="removeCSVColumn",
        description="CSV: Remove a column.",
        parameters={"path": _PATH_PARAM, "column": _COLUMN_PARAM},
        required_params=["path", "column"],
        handler=tools.remove_column,
    ))
    registry.register(ToolDefinition(
        name="aggregateCSV",
        description="CSV: Group rows and compute sum, count, average, min or max into a new CSV file.",
        parameters={
            "sourcePath": _PATH_PARAM,
            "targetPath": {**_PATH_PARAM, "description": "Where the aggregated CSV is written"},
            "groupByColumns": {"type": "array", "items": {"type": "string"}},
            "aggregations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "column": {"type": "string"},
                        "operation": {"type": "string", "enum": list(AGGREGATIONS)},
                        "alias": {"type": "string"},
                    },
                    "required": ["column", "operation"],
                },
            },
        },
        required_params=["sourcePath", "targetPath", "aggregations"],
        handler=tools.aggregate,
    ))
