"""Agent API routes: commands, confirmation, results, undo and housekeeping."""

import json
import traceback

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from mane.api.schemas import (
    DuplicatesRequest,
    ExecuteRequest,
    OrganizeRequest,
    ResultsRequest,
    SessionRequest,
    UndoRequest,
)
from mane.api.services_store import AgentServices, get_services
from mane.memory.vault import MEDIA_TYPES
from mane.services.cluster import generate_organize_actions
from mane.services.dedup import generate_dedup_actions
from mane.tools.base import ActionResult
from mane.utils.logging import logger

router = APIRouter(prefix="/agent", tags=["agent"])


def _internal_error(context: str, e: Exception) -> HTTPException:
    logger.error(f"{context}: {type(e).__name__}: {e}")
    logger.error(traceback.format_exc())
    return HTTPException(status_code=500, detail=f"{context}: {e}")


# ─────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────


@router.post("/execute")
async def execute(request: ExecuteRequest):
    """
    Run a natural-language command.
    Proposed actions come back with a session id to confirm or cancel.
    """
    if not request.command.strip():
        raise HTTPException(status_code=400, detail="command is required")

    logger.info(f"Received command: {request.command[:50]}...")
    services = await get_services()

    if request.stream:
        return StreamingResponse(
            _stream_events(services, request.command),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    try:
        response = await services.orchestrator.execute(request.command)
    except Exception as e:
        raise _internal_error("Agent execution failed", e)

    return response.to_dict()


async def _stream_events(services: AgentServices, command: str):
    """Stream agent steps as SSE."""
    try:
        async for event in services.orchestrator.execute_stream(command):
            yield f"data: {json.dumps(event.to_dict())}\n\n"
    except Exception as e:
        logger.error(f"Agent stream failed: {e}")
        logger.error(traceback.format_exc())
        yield f"data: {json.dumps({'type': 'error', 'content': str(e)})}\n\n"
    yield "data: [DONE]\n\n"


# ─────────────────────────────────────────────────────────
# SESSIONS
# ─────────────────────────────────────────────────────────


@router.post("/confirm")
async def confirm_actions(request: SessionRequest):
    """Confirm a session; the client executes the returned actions."""
    services = await get_services()
    actions = services.sessions.confirm(request.session_id)

    if actions is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")

    return {
        "success": True,
        "actions": [a.to_dict() for a in actions],
        "message": f"{len(actions)} actions ready for execution",
    }


@router.post("/cancel")
async def cancel_actions(request: SessionRequest):
    """Discard a pending session."""
    services = await get_services()
    cancelled = services.sessions.cancel(request.session_id)

    return {
        "success": cancelled,
        "message": "Actions cancelled" if cancelled else "Session not found",
    }


@router.post("/results")
async def report_results(request: ResultsRequest):
    """
    Record execution results for a confirmed session.
    Successful actions become undoable.
    """
    services = await get_services()
    results = [
        ActionResult(action_id=r.action_id, success=r.success, error=r.error)
        for r in request.results
    ]
    succeeded = sum(1 for r in results if r.success)

    entry = None
    if not results:
        # Nothing was executed yet, so the batch stays claimable
        logger.info(f"Empty result report for session {request.session_id}")
    else:
        actions = services.sessions.take_for_results(request.session_id)
        if actions:
            entry = services.history.record_actions(
                request.session_id,
                actions,
                results,
                f"Executed {succeeded} actions",
            )
        else:
            logger.warning(f"Results reported for unknown session {request.session_id}")

    return {
        "success": True,
        "summary": {
            "total": len(results),
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
        },
        "results": [r.to_dict() for r in results],
        "canUndo": entry is not None and entry.can_undo,
    }


@router.get("/pending")
async def get_pending_actions(session_id: str | None = Query(default=None, alias="sessionId")):
    """Get the actions of a pending session."""
    if not session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")

    services = await get_services()
    pending = services.sessions.get(session_id)

    if pending is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")

    return {"success": True, **pending.to_dict()}


# ─────────────────────────────────────────────────────────
# DUPLICATES / ORGANIZE
# ─────────────────────────────────────────────────────────


@router.post("/duplicates")
async def find_duplicates(request: DuplicatesRequest):
    """Find groups of near-identical files."""
    if request.media_type != "all" and request.media_type not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown media type: {request.media_type}")
    if not 0.0 <= request.threshold <= 1.0:
        raise HTTPException(status_code=400, detail="threshold must be between 0 and 1")

    services = await get_services()
    try:
        groups = await services.dedup.find_duplicates(request.media_type, request.threshold)
    except Exception as e:
        raise _internal_error("Failed to find duplicates", e)

    body = {
        "success": True,
        "totalGroups": len(groups),
        "duplicates": [g.to_dict() for g in groups],
    }

    if request.propose_deletes and groups:
        actions = generate_dedup_actions(groups)
        body["sessionId"] = services.sessions.store(actions)
        body["actions"] = [a.to_dict() for a in actions]

    return body


@router.post("/organize")
async def organize_files(request: OrganizeRequest):
    """Cluster indexed files by content and propose a folder layout."""
    if request.max_clusters < 2:
        raise HTTPException(status_code=400, detail="maxClusters must be at least 2")

    services = await get_services()
    try:
        clusters = await services.organizer.organize_files(request.max_clusters)
    except Exception as e:
        raise _internal_error("Failed to organize files", e)

    body = {
        "success": True,
        "preview": request.preview,
        "clusters": [c.to_dict() for c in clusters],
    }
    if request.preview:
        return body

    actions = generate_organize_actions(clusters, request.target_folder)
    body["actions"] = [a.to_dict() for a in actions]
    if actions:
        body["sessionId"] = services.sessions.store(actions)
        body["message"] = f"Generated {len(actions)} organization actions"
    else:
        body["message"] = "No organization actions needed"
    return body


# ─────────────────────────────────────────────────────────
# UNDO / HISTORY
# ─────────────────────────────────────────────────────────


@router.get("/undo")
async def get_undo_actions():
    """Preview the undo actions for the most recent operation."""
    services = await get_services()
    entry = services.history.get_last_undoable_session()

    if entry is None:
        return {
            "success": False,
            "canUndo": False,
            "actions": [],
            "message": "No actions to undo",
        }

    actions = entry.undo_actions()
    return {
        "success": True,
        "canUndo": bool(actions),
        "sessionId": entry.session_id,
        "description": entry.description,
        "actionCount": len(actions),
        "actions": [a.to_dict() for a in actions],
        "message": f"Can undo {len(actions)} action(s)",
    }


@router.post("/undo")
async def execute_undo(request: UndoRequest | None = None):
    """
    Undo a session (the most recent one by default).
    The client executes the returned actions.
    """
    services = await get_services()
    session_id = request.session_id if request else None

    if session_id:
        actions = services.history.get_undo_actions_for_session(session_id)
    else:
        entry = services.history.get_last_undoable_session()
        if entry is None:
            raise HTTPException(status_code=404, detail="No actions to undo")
        session_id = entry.session_id
        actions = entry.undo_actions()

    if not actions:
        raise HTTPException(status_code=404, detail="No undoable actions found")

    services.history.mark_as_undone(session_id)

    return {
        "success": True,
        "sessionId": session_id,
        "actions": [a.to_dict() for a in actions],
        "message": f"Undo {len(actions)} action(s)",
    }


@router.get("/history")
async def get_history():
    """Executed sessions, newest first."""
    services = await get_services()
    entries = services.history.get_history_summary()

    return {
        "success": True,
        "entries": entries,
        "undoableCount": sum(1 for e in entries if e["canUndo"]),
    }


@router.post("/history/clear")
async def clear_history():
    services = await get_services()
    services.history.clear_history()
    return {"success": True, "message": "Action history cleared"}


# ─────────────────────────────────────────────────────────
# STATUS
# ─────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Model availability, tools and undo state."""
    services = await get_services()
    await services.orchestrator.check_health()
    entry = services.history.get_last_undoable_session()

    return {
        **services.orchestrator.get_status(),
        "features": {
            "duplicateDetection": True,
            "autoOrganization": True,
            "undo": True,
        },
        "pendingSessions": len(services.sessions),
        "canUndo": entry is not None,
        "lastUndoDescription": entry.description if entry else None,
    }


@router.get("/tools")
async def get_tools():
    """Registered tools with their parameter schemas."""
    services = await get_services()
    return {"tools": services.registry.get_schemas()}
