"""Sync result formatting.

Provides machine-readable response bodies for the HTTP and MCP surfaces and
short human-readable renderings for tool output:

- ``status_to_json`` / ``format_status`` -- projected status.
- ``check_to_json`` / ``full_to_json`` / ``format_transaction`` -- outcomes.
- ``git_status_to_json`` -- raw repository status for diagnostics.
- ``verification_to_json`` -- identity check.
- ``logs_to_json`` -- sync log entries.
- ``recovery_to_json`` / ``conflicts_to_json`` -- manual recovery.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import SyncOutcome

if TYPE_CHECKING:
    from .models import (
        ChangeSummary,
        ConflictDetails,
        IdentityCheck,
        RepositoryStatus,
        StatusProjection,
        SyncAttempt,
        TransactionResult,
    )


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def status_to_json(projection: StatusProjection) -> dict:
    return {"success": True, "status": _dump(projection)}


def _conflict_fields(result: TransactionResult, body: dict) -> None:
    if result.auto_resolved_conflict:
        body["autoResolvedConflict"] = True
        body["lostChangesSummary"] = list(result.lost_changes)
    if result.download is not None and result.pulled:
        body["remoteChangesSummary"] = _dump(result.download)
    if result.outcome == SyncOutcome.FAILED:
        body["error"] = result.error_detail or result.message
        if result.errors:
            body["errors"] = list(result.errors)


def check_to_json(result: TransactionResult) -> dict:
    """Body for the pull-only check.

    ``skipped`` is true only when uncommitted local changes prevented the
    pull; being already up to date is reported as nothing pulled.
    """
    body: dict = {
        "success": result.success,
        "message": result.message,
        "pulledChanges": result.pulled,
        "skipped": result.outcome == SyncOutcome.SKIPPED_UNCOMMITTED_CONFLICT,
    }
    if body["skipped"]:
        body["reason"] = result.message
    if result.pulled:
        body["commitsReceived"] = result.commits_received
    _conflict_fields(result, body)
    return body


def full_to_json(result: TransactionResult) -> dict:
    body: dict = {
        "success": result.success,
        "message": result.message,
        "committed": result.committed,
        "pushed": result.pushed,
    }
    if result.upload is not None:
        body["uploadSummary"] = _dump(result.upload)
    if result.validation_errors:
        body["validationErrors"] = [_dump(v) for v in result.validation_errors]
    _conflict_fields(result, body)
    return body


def busy_to_json() -> dict:
    return {
        "success": False,
        "syncInProgress": True,
        "message": "Sync already in progress, retry shortly",
    }


def git_status_to_json(status: RepositoryStatus) -> dict:
    body = _dump(status)
    if status.last_commit is not None:
        body["lastCommit"]["hash"] = status.last_commit.hash[:7]
    body["hasChanges"] = status.has_local_changes
    return {"success": True, "gitStatus": body}


def verification_to_json(check: IdentityCheck) -> dict:
    return {"success": check.ok, "verification": _dump(check)}


def logs_to_json(entries: list[SyncAttempt]) -> dict:
    return {
        "success": True,
        "logs": [
            e.model_dump(mode="json", by_alias=True, exclude_none=True)
            for e in entries
        ],
    }


def recovery_to_json(attempt: SyncAttempt) -> dict:
    success = attempt.outcome != SyncOutcome.FAILED
    body: dict = {"success": success, "message": attempt.message}
    if not success:
        body["error"] = attempt.error_detail or attempt.message
    return body


def conflicts_to_json(details: ConflictDetails) -> dict:
    return {"success": True, **_dump(details)}


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def _format_summary(title: str, summary: ChangeSummary) -> list[str]:
    if not summary.items:
        return [f"{title}: nothing"]
    lines = [f"{title}: {summary.count_line() or 'metadata updated'}"]
    lines.extend(f"  {item}" for item in summary.items)
    return lines


def format_status(projection: StatusProjection) -> str:
    """Render a projected status as text."""
    lines = [f"Branch: {projection.branch}"]
    if projection.last_commit is not None:
        commit = projection.last_commit
        lines.append(f"Last commit: {commit.hash[:7]} {commit.message}")
    lines.append(
        f"Ahead: {projection.commits_ahead}, behind: {projection.commits_behind}"
    )
    if projection.has_conflicts:
        lines.append("Conflicted: " + ", ".join(projection.conflicted_files))
    lines.append("")
    lines.extend(_format_summary("Upload", projection.upload))
    lines.extend(_format_summary("Download", projection.download))
    return "\n".join(lines)


def format_transaction(result: TransactionResult) -> str:
    """Render a transaction outcome as text.

    Sections are only included when they have content.
    """
    lines = [f"[{result.outcome.value}] {result.message}"]
    if result.upload is not None and result.upload.items:
        lines.extend(_format_summary("Uploaded", result.upload))
    if result.pulled and result.download is not None:
        lines.extend(_format_summary("Downloaded", result.download))
    if result.lost_changes:
        lines.append("Discarded local changes (remote version kept):")
        lines.extend(f"  {item}" for item in result.lost_changes)
    if result.validation_errors:
        lines.append("Not committed:")
        lines.extend(f"  {v.file}: {v.reason}" for v in result.validation_errors)
    if result.errors:
        lines.append("Configuration problems:")
        lines.extend(f"  {e}" for e in result.errors)
    elif result.error_detail:
        lines.append(f"Error: {result.error_detail}")
    return "\n".join(lines)


def format_conflicts(details: ConflictDetails) -> str:
    if not details.has_conflicts:
        if details.operation:
            return f"A {details.operation} is stopped but no paths are conflicted."
        return "No conflicts."
    lines = [f"Conflicted paths ({details.operation or 'no operation in progress'}):"]
    for f in details.conflicted_files:
        sides = []
        if not f.local_present:
            sides.append("deleted locally")
        if not f.remote_present:
            sides.append("deleted on remote")
        suffix = f" ({', '.join(sides)})" if sides else ""
        lines.append(f"  {f.path}{suffix}")
    return "\n".join(lines)
