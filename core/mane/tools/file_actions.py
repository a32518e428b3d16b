"""
File action tools for Mane.

These tools never touch the filesystem. Each validates its input and returns
a proposed FileAction in ToolResult.data["action"]; the executor performs it
only after the user confirms the session.
"""

import os
from typing import Optional

from mane.tools.base import (
    FileAction,
    FileActionType,
    RiskLevel,
    Tool,
    ToolParameter,
    ToolResult,
    generate_action_id,
)
from mane.utils.logging import logger


PROPOSAL_NOTE = "Returns an action that will be executed after user confirmation."


def normalize_path(path: str) -> str:
    """Expand ~ and make a path absolute."""
    return os.path.abspath(os.path.expanduser(path))


def resolve_destination(source: str, destination: str) -> str:
    """
    A destination without an extension is a folder: the file keeps its name.
    """
    if os.path.splitext(destination)[1]:
        return destination
    return os.path.join(destination, os.path.basename(source))


def _required_string(params: dict, *names: str) -> Optional[str]:
    """Return an error message if any named parameter is missing or not a string."""
    missing = [n for n in names if not isinstance(params.get(n), str) or not params[n].strip()]
    if not missing:
        return None
    if len(missing) == 1 and len(names) == 1:
        return f"{missing[0]} is required"
    return f"{' and '.join(names)} are required (missing: {', '.join(missing)})"


def _proposal(action: FileAction) -> ToolResult:
    logger.info(f"Created {action.type.value} action: {action.id}")
    return ToolResult(success=True, data={"action": action})


class MoveFileTool(Tool):
    """Propose moving a file."""

    def __init__(self):
        super().__init__(
            name="move_file",
            description=(
                "Move a file from one location to another. The destination can be a folder "
                "path (file keeps its name) or a full path with filename. " + PROPOSAL_NOTE
            ),
            risk_level=RiskLevel.MEDIUM,
            parameters=[
                ToolParameter("source_path", "string", "The full path of the file to move"),
                ToolParameter(
                    "destination_path",
                    "string",
                    "The destination path (folder or full path with new filename)",
                ),
            ],
        )

    async def execute(self, params: dict) -> ToolResult:
        error = _required_string(params, "source_path", "destination_path")
        if error:
            return ToolResult.fail(error)

        source = normalize_path(params["source_path"])
        destination = resolve_destination(source, normalize_path(params["destination_path"]))

        if source == destination:
            return ToolResult.fail("Source and destination are the same path")

        return _proposal(FileAction(
            id=generate_action_id(),
            type=FileActionType.MOVE,
            source_path=source,
            destination_path=destination,
            requires_permission=os.path.dirname(destination),
            description=f'Move "{os.path.basename(source)}" to "{destination}"',
        ))


class CopyFileTool(Tool):
    """Propose copying a file."""

    def __init__(self):
        super().__init__(
            name="copy_file",
            description=(
                "Copy a file to a new location while keeping the original. The destination "
                "can be a folder path (file keeps its name) or a full path with filename. "
                + PROPOSAL_NOTE
            ),
            risk_level=RiskLevel.MEDIUM,
            parameters=[
                ToolParameter("source_path", "string", "The full path of the file to copy"),
                ToolParameter(
                    "destination_path",
                    "string",
                    "The destination path (folder or full path with new filename)",
                ),
            ],
        )

    async def execute(self, params: dict) -> ToolResult:
        error = _required_string(params, "source_path", "destination_path")
        if error:
            return ToolResult.fail(error)

        source = normalize_path(params["source_path"])
        destination = resolve_destination(source, normalize_path(params["destination_path"]))

        if source == destination:
            return ToolResult.fail("Source and destination are the same path")

        return _proposal(FileAction(
            id=generate_action_id(),
            type=FileActionType.COPY,
            source_path=source,
            destination_path=destination,
            requires_permission=os.path.dirname(destination),
            description=f'Copy "{os.path.basename(source)}" to "{destination}"',
        ))


class RenameFileTool(Tool):
    """Propose renaming a file in place."""

    def __init__(self):
        super().__init__(
            name="rename_file",
            description=(
                "Rename a file to a new name (keeping it in the same folder). " + PROPOSAL_NOTE
            ),
            risk_level=RiskLevel.MEDIUM,
            parameters=[
                ToolParameter("file_path", "string", "The full path of the file to rename"),
                ToolParameter("new_name", "string", "The new filename (without path)"),
            ],
        )

    async def execute(self, params: dict) -> ToolResult:
        error = _required_string(params, "file_path", "new_name")
        if error:
            return ToolResult.fail(error)

        new_name = params["new_name"].strip()
        if "/" in new_name or os.sep in new_name:
            return ToolResult.fail("new_name must be a file name, not a path")

        source = normalize_path(params["file_path"])
        directory = os.path.dirname(source)
        destination = os.path.join(directory, new_name)

        if source == destination:
            return ToolResult.fail("The file already has that name")

        return _proposal(FileAction(
            id=generate_action_id(),
            type=FileActionType.RENAME,
            source_path=source,
            destination_path=destination,
            requires_permission=directory,
            description=f'Rename "{os.path.basename(source)}" to "{new_name}"',
        ))


class DeleteFileTool(Tool):
    """Propose deleting a file."""

    def __init__(self):
        super().__init__(
            name="delete_file",
            description="Delete a file permanently. This action cannot be undone. " + PROPOSAL_NOTE,
            risk_level=RiskLevel.HIGH,
            parameters=[
                ToolParameter("file_path", "string", "The full path of the file to delete"),
            ],
        )

    async def execute(self, params: dict) -> ToolResult:
        error = _required_string(params, "file_path")
        if error:
            return ToolResult.fail(error)

        path = normalize_path(params["file_path"])

        return _proposal(FileAction(
            id=generate_action_id(),
            type=FileActionType.DELETE,
            source_path=path,
            requires_permission=os.path.dirname(path),
            description=f'Delete "{os.path.basename(path)}"',
        ))


class CreateFolderTool(Tool):
    """Propose creating a folder."""

    def __init__(self):
        super().__init__(
            name="create_folder",
            description=(
                "Create a new folder at the specified path. Parent directories will be "
                "created if they do not exist. " + PROPOSAL_NOTE
            ),
            risk_level=RiskLevel.LOW,
            parameters=[
                ToolParameter("folder_path", "string", "The full path where the folder should be created"),
            ],
        )

    async def execute(self, params: dict) -> ToolResult:
        error = _required_string(params, "folder_path")
        if error:
            return ToolResult.fail(error)

        path = normalize_path(params["folder_path"])

        return _proposal(FileAction(
            id=generate_action_id(),
            type=FileActionType.CREATE_FOLDER,
            destination_path=path,
            requires_permission=os.path.dirname(path),
            description=f'Create folder "{path}"',
        ))


class DeleteFolderTool(Tool):
    """Propose deleting an empty folder."""

    def __init__(self):
        super().__init__(
            name="delete_folder",
            description=(
                "Delete an empty folder. The folder must be empty for this to succeed. "
                + PROPOSAL_NOTE
            ),
            risk_level=RiskLevel.HIGH,
            parameters=[
                ToolParameter("folder_path", "string", "The full path of the folder to delete"),
            ],
        )

    async def execute(self, params: dict) -> ToolResult:
        error = _required_string(params, "folder_path")
        if error:
            return ToolResult.fail(error)

        path = normalize_path(params["folder_path"])

        return _proposal(FileAction(
            id=generate_action_id(),
            type=FileActionType.DELETE_FOLDER,
            source_path=path,
            requires_permission=os.path.dirname(path),
            description=f'Delete folder "{os.path.basename(path)}"',
        ))


FILE_ACTION_TOOLS = [
    MoveFileTool(),
    CopyFileTool(),
    RenameFileTool(),
    DeleteFileTool(),
    CreateFolderTool(),
    DeleteFolderTool(),
]
