"""
Action history and undo.

Every executed session is recorded together with the results the executor
reported. Undo is computed, not stored: the inverse of each successful
action is derived on demand and returned in reverse execution order.
"""

import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from mane.config import MAX_HISTORY_ENTRIES
from mane.tools.base import (
    ActionResult,
    FileAction,
    FileActionType,
    generate_action_id,
)
from mane.utils.logging import logger


def compute_actual_path(source: str, destination: str) -> str:
    """
    Where a moved/copied file actually ended up.

    A destination naming a folder (the source has an extension and the
    destination does not) receives the file under its own name.
    """
    source_ext = os.path.splitext(source)[1]
    dest_ext = os.path.splitext(destination)[1]
    if source_ext and not dest_ext:
        return os.path.join(destination, os.path.basename(source))
    return destination


def create_reverse_action(action: FileAction) -> Optional[FileAction]:
    """The action that undoes `action`, or None if it cannot be undone."""
    kind = action.type

    if kind == FileActionType.MOVE:
        actual = compute_actual_path(action.source_path, action.destination_path)
        return FileAction(
            id=generate_action_id("undo"),
            type=FileActionType.MOVE,
            source_path=actual,
            destination_path=action.source_path,
            requires_permission=os.path.dirname(action.source_path),
            description=f'Undo: Move "{os.path.basename(actual)}" back to "{action.source_path}"',
        )

    if kind == FileActionType.COPY:
        actual = compute_actual_path(action.source_path, action.destination_path)
        return FileAction(
            id=generate_action_id("undo"),
            type=FileActionType.DELETE,
            source_path=actual,
            requires_permission=os.path.dirname(actual),
            description=f'Undo: Delete copied file "{os.path.basename(actual)}"',
        )

    if kind == FileActionType.RENAME:
        return FileAction(
            id=generate_action_id("undo"),
            type=FileActionType.RENAME,
            source_path=action.destination_path,
            destination_path=action.source_path,
            requires_permission=os.path.dirname(action.source_path),
            description=(
                f'Undo: Rename "{os.path.basename(action.destination_path)}" '
                f'back to "{os.path.basename(action.source_path)}"'
            ),
        )

    if kind == FileActionType.CREATE_FOLDER:
        return FileAction(
            id=generate_action_id("undo"),
            type=FileActionType.DELETE_FOLDER,
            source_path=action.destination_path,
            requires_permission=os.path.dirname(action.destination_path),
            description=f'Undo: Delete folder "{os.path.basename(action.destination_path)}"',
        )

    # delete / deleteFolder: the contents are gone
    logger.warning(f"Cannot undo {kind.value} action {action.id}")
    return None


@dataclass
class HistoryEntry:
    """One executed session."""

    session_id: str
    actions: list[FileAction]
    results: list[ActionResult]
    description: str
    timestamp: datetime = field(default_factory=datetime.now)
    undone: bool = False

    def successful_actions(self) -> list[FileAction]:
        succeeded = {r.action_id for r in self.results if r.success}
        return [a for a in self.actions if a.id in succeeded]

    def undo_actions(self) -> list[FileAction]:
        """Inverses of the successful actions, last executed first."""
        reversed_actions = []
        for action in reversed(self.successful_actions()):
            inverse = create_reverse_action(action)
            if inverse is not None:
                reversed_actions.append(inverse)
        return reversed_actions

    @property
    def can_undo(self) -> bool:
        return not self.undone and bool(self.undo_actions())

    def to_summary(self) -> dict:
        success_count = sum(1 for r in self.results if r.success)
        return {
            "sessionId": self.session_id,
            "description": self.description,
            "actionCount": len(self.actions),
            "successCount": success_count,
            "failureCount": len(self.results) - success_count,
            "timestamp": self.timestamp.isoformat(),
            "undone": self.undone,
            "canUndo": self.can_undo,
        }


class ActionHistory:
    """Bounded, newest-last list of executed sessions."""

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        self.max_entries = max_entries
        self._entries: list[HistoryEntry] = []
        self._lock = threading.Lock()

    def record_actions(
        self,
        session_id: str,
        actions: list[FileAction],
        results: list[ActionResult],
        description: str = "",
    ) -> Optional[HistoryEntry]:
        """
        Record an executed session.

        Nothing is recorded unless at least one action succeeded. Recording
        the same session id again replaces the earlier entry.
        """
        if not any(r.success for r in results):
            logger.info(f"Session {session_id} had no successful actions, not recorded")
            return None

        entry = HistoryEntry(
            session_id=session_id,
            actions=list(actions),
            results=list(results),
            description=description or f"{len(actions)} file operation(s)",
        )

        with self._lock:
            self._entries = [e for e in self._entries if e.session_id != session_id]
            self._entries.append(entry)
            if len(self._entries) > self.max_entries:
                self._entries = self._entries[-self.max_entries:]

        logger.info(f"Recorded session {session_id} in history ({len(actions)} actions)")
        return entry

    def get_entry(self, session_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            for entry in self._entries:
                if entry.session_id == session_id:
                    return entry
        return None

    def get_last_undoable_session(self) -> Optional[HistoryEntry]:
        with self._lock:
            for entry in reversed(self._entries):
                if entry.can_undo:
                    return entry
        return None

    def get_undo_actions(self) -> list[FileAction]:
        """Undo actions for the most recent undoable session."""
        entry = self.get_last_undoable_session()
        return entry.undo_actions() if entry else []

    def get_undo_actions_for_session(self, session_id: str) -> list[FileAction]:
        entry = self.get_entry(session_id)
        if entry is None or entry.undone:
            return []
        return entry.undo_actions()

    def mark_as_undone(self, session_id: str) -> bool:
        """Mark a session as undone. Returns False for unknown sessions."""
        with self._lock:
            for entry in self._entries:
                if entry.session_id == session_id:
                    entry.undone = True
                    logger.info(f"Marked session {session_id} as undone")
                    return True
        return False

    def get_history_summary(self) -> list[dict]:
        """History, newest first."""
        with self._lock:
            entries = list(reversed(self._entries))
        return [e.to_summary() for e in entries]

    def clear_history(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Action history cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
