"""Pydantic models for API request/response schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mane.config import DEFAULT_DUPLICATE_THRESHOLD


class CamelModel(BaseModel):
    """Accepts camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ExecuteRequest(CamelModel):
    """Natural-language command for the agent."""

    command: str
    stream: bool = False


class SessionRequest(CamelModel):
    """Request naming a pending-action session."""

    session_id: str


class ActionResultModel(CamelModel):
    """Outcome of one executed action."""

    action_id: str
    success: bool
    error: Optional[str] = None


class ResultsRequest(CamelModel):
    """Execution results reported by the client for a confirmed session."""

    session_id: str
    results: list[ActionResultModel]


class DuplicatesRequest(CamelModel):
    """Duplicate detection parameters."""

    media_type: str = "all"
    threshold: float = DEFAULT_DUPLICATE_THRESHOLD
    propose_deletes: bool = False


class OrganizeRequest(CamelModel):
    """Clustering-based organisation parameters."""

    target_folder: Optional[str] = None
    preview: bool = False
    max_clusters: int = 10


class UndoRequest(CamelModel):
    """Undo a specific session, or the most recent undoable one."""

    session_id: Optional[str] = None


class DocumentRequest(CamelModel):
    """Pre-extracted content for a file to index."""

    file_path: str
    content: str
    media_type: str = "text"
