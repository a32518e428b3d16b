"""Services module - undo history, duplicate detection and clustering."""

from mane.services.action_history import ActionHistory, HistoryEntry
from mane.services.cluster import (
    ClusterOrganizer,
    ClusterResult,
    generate_organize_actions,
)
from mane.services.dedup import (
    DuplicateDetector,
    DuplicateFile,
    DuplicateGroup,
    FileRef,
    generate_dedup_actions,
)

__all__ = [
    "ActionHistory",
    "HistoryEntry",
    "ClusterOrganizer",
    "ClusterResult",
    "generate_organize_actions",
    "DuplicateDetector",
    "DuplicateFile",
    "DuplicateGroup",
    "FileRef",
    "generate_dedup_actions",
]
