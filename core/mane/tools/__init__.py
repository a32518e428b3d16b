"""
Mane Tools - proposal-only capabilities the agent can invoke.
"""

from mane.memory.vault import DocumentIndex
from mane.tools.base import (
    ActionResult,
    FileAction,
    FileActionType,
    RiskLevel,
    Tool,
    ToolParameter,
    ToolRegistry,
    ToolResult,
)
from mane.tools.file_actions import FILE_ACTION_TOOLS
from mane.tools.find_files import FindFilesTool


def build_default_registry(index: DocumentIndex) -> ToolRegistry:
    """Registry with the search tool and every file action tool."""
    registry = ToolRegistry()
    registry.register_tool(FindFilesTool(index))
    for tool in FILE_ACTION_TOOLS:
        registry.register_tool(tool)
    return registry


__all__ = [
    "ActionResult",
    "FileAction",
    "FileActionType",
    "RiskLevel",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "build_default_registry",
]
