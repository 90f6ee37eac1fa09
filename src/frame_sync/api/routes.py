"""Sync API router: status, check, full sync, logs, diagnostics and recovery.

Handlers are plain ``def`` functions, so FastAPI runs them in its worker
thread pool and long git calls never block the event loop. A full sync or
check arriving while another transaction runs gets HTTP 409 with
``syncInProgress: true``.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from frame_sync.core.client import GitCommandError
from frame_sync.sync.service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


class FullSyncRequest(BaseModel):
    trigger: Literal["manual", "auto"] = "manual"


def get_sync_service(request: Request) -> SyncService:
    """Return the SyncService created by the application lifespan."""
    return request.app.state.sync_service


def _respond(body: dict) -> JSONResponse:
    if body.get("syncInProgress"):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body)
    if not body.get("success"):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body
        )
    return JSONResponse(content=body)


def _git_failure(action: str, exc: GitCommandError) -> HTTPException:
    logger.error("Failed to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {exc.stderr or exc}",
    )


@router.get("/status")
def get_status(service: SyncService = Depends(get_sync_service)):
    """
    Preview what a sync would upload and download.

    Fetches from the remote but never commits, pulls or pushes.
    """
    try:
        body = service.status()
    except GitCommandError as e:
        raise _git_failure("get sync status", e)
    body["syncInProgress"] = service.busy
    return body


@router.get("/check")
def check_for_updates(service: SyncService = Depends(get_sync_service)):
    """Pull remote changes when the working tree allows it."""
    return _respond(service.check())


@router.post("/full")
def full_sync(
    payload: FullSyncRequest | None = None,
    service: SyncService = Depends(get_sync_service),
):
    """
    Commit local changes, pull remote changes and push.

    Args:
        payload: Optional ``{"trigger": "manual" | "auto"}``; ``auto`` is
            the post-upload hook.
    """
    trigger = payload.trigger if payload else "manual"
    return _respond(service.full(trigger))


@router.post("/verify")
def verify_configuration(service: SyncService = Depends(get_sync_service)):
    """Check remote, branch and large-asset extension configuration."""
    return _respond(service.verify())


@router.get("/logs")
def get_logs(service: SyncService = Depends(get_sync_service)):
    return service.logs()


@router.delete("/logs")
def clear_logs(service: SyncService = Depends(get_sync_service)):
    return service.clear_logs()


@router.get("/git-status")
def get_git_status(service: SyncService = Depends(get_sync_service)):
    """Raw repository status for diagnostics."""
    try:
        return service.git_status()
    except GitCommandError as e:
        raise _git_failure("get git status", e)


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


@router.get("/conflicts")
def get_conflicts(service: SyncService = Depends(get_sync_service)):
    """Unmerged paths of a stopped rebase or merge."""
    try:
        return service.conflicts()
    except GitCommandError as e:
        raise _git_failure("get conflict details", e)


@router.post("/abort-rebase")
def abort_rebase(service: SyncService = Depends(get_sync_service)):
    return _respond(service.abort_rebase())


@router.post("/abort-merge")
def abort_merge(service: SyncService = Depends(get_sync_service)):
    """Abort a stopped merge, or a stopped rebase when no merge is in progress."""
    return _respond(service.abort_merge())


@router.post("/reset-to-remote")
def reset_to_remote(service: SyncService = Depends(get_sync_service)):
    """
    Discard every local change and unpushed commit and match the remote branch.

    Untracked files are deleted. This cannot be undone.
    """
    return _respond(service.reset_to_remote())
