"""Workspace file tools.

Every path argument is interpreted relative to the workspace directory and
rejected if it resolves outside of it. Failures raise; the tool executor
turns exceptions into error results for the model.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from .registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)


class Workspace:
    """A directory that file tools are confined to."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, relative: str | None = None) -> Path:
        """Resolve a workspace-relative path, refusing traversal outside the root."""
        candidate = (self.root / (relative or ".")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise PermissionError(f"Path '{relative}' is outside the workspace")
        return candidate

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix() or "."

    async def glob(self, pattern: str = "*", onlyDirectories: bool = False) -> list[str]:
        def _scan() -> list[str]:
            matches = []
            for path in self.root.glob(pattern):
                if onlyDirectories and not path.is_dir():
                    continue
                if self.root in path.resolve().parents:
                    matches.append(self.relative(path))
            return sorted(matches)

        return await asyncio.to_thread(_scan)

    async def list_files(self, path: str = ".", extension: str | None = None) -> dict:
        directory = self.resolve(path)
        if not directory.is_dir():
            raise NotADirectoryError(f"'{path}' is not a directory")

        files = sorted(entry.name for entry in directory.iterdir() if entry.is_file())
        if extension:
            suffix = extension if extension.startswith(".") else f".{extension}"
            files = [name for name in files if name.endswith(suffix)]

        return {
            "success": True,
            "directory": self.relative(directory),
            "files": files,
            "fileCount": len(files),
        }

    async def read_file(self, path: str) -> dict:
        target = self.resolve(path)
        content = await asyncio.to_thread(target.read_text, encoding="utf-8")
        return {"success": True, "path": path, "content": content}

    async def write_file(self, path: str, content: str) -> dict:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, content, encoding="utf-8")
        logger.debug(f"Wrote {len(content)} chars to {path}")
        return {"success": True, "message": f"File '{path}' written successfully."}

    async def create_folder(self, path: str) -> dict:
        self.resolve(path).mkdir(parents=True, exist_ok=True)
        return {"success": True, "message": f"Folder '{path}' created successfully."}

    async def copy_file(
        self,
        sourcePath: str,
        destinationPath: str,
        overwrite: bool = False,
    ) -> dict:
        source = self.resolve(sourcePath)
        destination = self.resolve(destinationPath)
        if destination.exists() and not overwrite:
            raise FileExistsError(
                f"Destination file '{destinationPath}' already exists. Use overwrite=true to replace."
            )
        destination.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copy2, source, destination)
        return {
            "success": True,
            "message": f"File copied from '{sourcePath}' to '{destinationPath}'.",
        }


_PATH_PARAM = {
    "type": "string",
    "description": "Path relative to the workspace root",
}


def register_file_tools(registry: ToolRegistry, workspace: Workspace) -> None:
    """Register the workspace file tools on a registry."""
    registry.register(ToolDefinition(
        name="glob",
        description=(
            "FILE DISCOVERY: Find files or folders in the workspace matching a glob pattern "
            "(e.g. '*.txt', '**/*.csv'). Returns a JSON list of workspace-relative paths."
        ),
        parameters={
            "pattern": {"type": "string", "description": "Glob pattern, '**' recurses"},
            "onlyDirectories": {
                "type": "boolean",
                "description": "Only return directories",
            },
        },
        required_params=["pattern"],
        handler=workspace.glob,
    ))
    registry.register(ToolDefinition(
        name="listFiles",
        description="FILE DISCOVERY: List the files in one workspace directory (non-recursive).",
        parameters={
            "path": {**_PATH_PARAM, "description": "Directory to list, '.' for the root"},
            "extension": {
                "type": "string",
                "description": "Only list files with this extension (e.g. 'txt')",
            },
        },
        required_params=[],
        handler=workspace.list_files,
    ))
    registry.register(ToolDefinition(
        name="readFile",
        description="CONTENT INSPECTION: Read a text file from the workspace.",
        parameters={"path": _PATH_PARAM},
        required_params=["path"],
        handler=workspace.read_file,
    ))
    registry.register(ToolDefinition(
        name="writeFile",
        description=(
            "CONTENT CREATION: Create a file or replace its content completely. "
            "Parent folders are created as needed."
        ),
        parameters={
            "path": _PATH_PARAM,
            "content": {"type": "string", "description": "Full file content"},
        },
        required_params=["path", "content"],
        handler=workspace.write_file,
    ))
    registry.register(ToolDefinition(
        name="createFolder",
        description="Create a folder (and any missing parents) in the workspace.",
        parameters={"path": _PATH_PARAM},
        required_params=["path"],
        handler=workspace.create_folder,
    ))
    registry.register(ToolDefinition(
        name="copyFile",
        description="Copy a file within the workspace.",
        parameters={
            "sourcePath": _PATH_PARAM,
            "destinationPath": _PATH_PARAM,
            "overwrite": {
                "type": "boolean",
                "description": "Replace the destination if it exists",
            },
        },
        required_params=["sourcePath", "destinationPath"],
        handler=workspace.copy_file,
    ))
