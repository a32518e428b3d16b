"""
Base classes for Mane tools.
Defines the FileAction / ToolResult contract shared by the agent, the
session protocol and the undo engine.
"""

import json
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from mane.utils.logging import logger


class FileActionType(str, Enum):
    """Every file-system mutation the executor knows how to perform."""
    MOVE = "move"
    COPY = "copy"
    RENAME = "rename"
    DELETE = "delete"
    CREATE_FOLDER = "createFolder"
    DELETE_FOLDER = "deleteFolder"


# Which paths each action type needs: (source, destination)
_REQUIRED_PATHS = {
    FileActionType.MOVE: (True, True),
    FileActionType.COPY: (True, True),
    FileActionType.RENAME: (True, True),
    FileActionType.DELETE: (True, False),
    FileActionType.DELETE_FOLDER: (True, False),
    FileActionType.CREATE_FOLDER: (False, True),
}


def generate_action_id(prefix: str = "action") -> str:
    """Generate an opaque, unique action id."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class FileAction:
    """
    A proposed (or historical) file-system mutation.

    Actions are immutable; only their execution result, reported later by
    the executor, changes over time.
    """

    id: str
    type: FileActionType
    description: str
    source_path: Optional[str] = None
    destination_path: Optional[str] = None
    requires_permission: Optional[str] = None

    def __post_init__(self):
        # Accept plain strings such as "createFolder"
        object.__setattr__(self, "type", FileActionType(self.type))

        needs_source, needs_destination = _REQUIRED_PATHS[self.type]
        if needs_source and not self.source_path:
            raise ValueError(f"{self.type.value} action requires a source path")
        if needs_destination and not self.destination_path:
            raise ValueError(f"{self.type.value} action requires a destination path")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
        }
        if self.source_path is not None:
            data["sourcePath"] = self.source_path
        if self.destination_path is not None:
            data["destinationPath"] = self.destination_path
        if self.requires_permission is not None:
            data["requiresPermission"] = self.requires_permission
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FileAction":
        return cls(
            id=data["id"],
            type=data["type"],
            description=data.get("description", ""),
            source_path=data.get("sourcePath"),
            destination_path=data.get("destinationPath"),
            requires_permission=data.get("requiresPermission"),
        )


@dataclass
class ActionResult:
    """Outcome of one FileAction, as reported by the executor."""

    action_id: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"actionId": self.action_id, "success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


def _serialize(value: Any) -> Any:
    if isinstance(value, FileAction):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


@dataclass
class ToolResult:
    """
    Result of a tool execution.

    success: whether the tool accepted its input and ran
    data: structured payload; proposal tools put the candidate FileAction
          under data["action"]
    error: human-readable failure message
    """

    success: bool
    data: Optional[dict] = None
    error: Optional[str] = None

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    @property
    def proposed_action(self) -> Optional[FileAction]:
        """The FileAction proposed by this result, if any."""
        if not self.success or not self.data:
            return None
        action = self.data.get("action")
        return action if isinstance(action, FileAction) else None

    def to_dict(self) -> dict:
        data = {"success": self.success}
        if self.data is not None:
            data["data"] = _serialize(self.data)
        if self.error is not None:
            data["error"] = self.error
        return data

    def to_observation(self) -> str:
        """Format the result as an observation for the model."""
        if self.success:
            return json.dumps(_serialize(self.data or {}), indent=2)
        return f"Error: {self.error}"


class RiskLevel(str, Enum):
    """Risk level of the action a tool proposes."""
    LOW = "low"          # Read-only
    MEDIUM = "medium"    # Reversible mutation
    HIGH = "high"        # Irreversible mutation


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str  # "string", "number", "boolean", "array"
    description: str
    required: bool = True


@dataclass
class Tool(ABC):
    """Base class for all tools."""
    name: str
    description: str
    risk_level: RiskLevel
    parameters: list[ToolParameter] = field(default_factory=list)

    @abstractmethod
    async def execute(self, params: dict) -> ToolResult:
        """Execute the tool with the given input."""
        pass

    def to_schema(self) -> dict:
        """Convert tool to JSON schema."""
        properties = {}
        required = []

        for param in self.parameters:
            properties[param.name] = {
                "type": param.type,
                "description": param.description,
            }
            if param.required:
                required.append(param.name)

        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        }


_TOOL_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ToolRegistry:
    """Registry of available tools."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register_tool(self, tool: Tool):
        """Register a tool, replacing any tool with the same name."""
        if not _TOOL_NAME.match(tool.name):
            raise ValueError(f"Invalid tool name: {tool.name!r}")
        if tool.name in self._tools:
            logger.warning(f"Tool '{tool.name}' is being overwritten")
        self._tools[tool.name] = tool
        logger.info(f"Registered tool: {tool.name}")

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_all(self) -> list[Tool]:
        """List all registered tools, sorted by name."""
        return [self._tools[name] for name in self.get_tool_names()]

    def get_tool_names(self) -> list[str]:
        return sorted(self._tools)

    def get_schemas(self) -> list[dict]:
        return [tool.to_schema() for tool in self.list_all()]

    def generate_tool_descriptions(self) -> str:
        """
        Generate the tool catalog for the system prompt.

        Output is sorted by tool name so the prompt is byte-stable for a
        given set of tools.
        """
        tools = self.list_all()
        if not tools:
            return "No tools available."

        blocks = []
        for tool in tools:
            lines = [f"{tool.name}: {tool.description}", "  Parameters:"]
            for p in tool.parameters:
                req = "(required)" if p.required else "(optional)"
                lines.append(f"    - {p.name}: {p.type} {req} - {p.description}")
            blocks.append("\n".join(lines))

        return "\n\n".join(blocks)

    async def execute_tool(self, name: str, params: Any) -> ToolResult:
        """
        Execute a tool by name.

        Never raises: unknown tools, bad input and tool exceptions all come
        back as a failed ToolResult.
        """
        tool = self._tools.get(name)
        if not tool:
            available = ", ".join(self.get_tool_names())
            return ToolResult.fail(f"Tool \"{name}\" not found. Available tools: {available}")

        if not isinstance(params, dict):
            return ToolResult.fail(f"Invalid input for {name}: expected a JSON object")

        try:
            logger.info(f"Executing tool: {name} with params: {params}")
            result = await tool.execute(params)
            logger.info(f"Tool {name} completed: success={result.success}")
            return result
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return ToolResult.fail(f"Tool execution failed: {e}")
