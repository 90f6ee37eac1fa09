"""MCP tool handlers for the sync engine.

Defines the tools:

- ``sync_status`` -- what a sync would upload and download.
- ``sync_check`` -- fetch and pull remote changes only.
- ``sync_full`` -- commit, pull and push.
- ``sync_logs`` / ``sync_clear_logs`` -- the sync audit trail.
- ``sync_git_status`` -- raw repository status.
- ``sync_verify`` -- remote, branch and large-asset extension checks.
- ``sync_conflicts`` -- unmerged paths of a stopped rebase or merge.
- ``sync_abort_rebase`` / ``sync_abort_merge`` -- abandon a stopped operation.
- ``sync_reset_to_remote`` -- discard local changes and match the remote.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync import reporter
from ...sync.errors import SyncBusyError
from ...sync.models import OperationKind
from ...sync.service import TRIGGERS, SyncService
from .errors import build_error_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_EMPTY_SCHEMA = {"type": "object", "properties": {}, "required": []}


def _result(text: str, structured: dict, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
        isError=is_error,
    )


def _busy() -> types.CallToolResult:
    return build_error_response(
        "busy",
        "Sync already in progress",
        "Wait a few seconds, then retry.",
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_status(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    projection = await run_sync(service.projector.project)
    return _result(
        reporter.format_status(projection), reporter.status_to_json(projection)
    )


async def _handle_check(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    try:
        result = await run_sync(service.run, OperationKind.CHECK)
    except SyncBusyError:
        return _busy()
    return _result(
        reporter.format_transaction(result),
        reporter.check_to_json(result),
        is_error=not result.success,
    )


async def _handle_full(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    trigger = args.get("trigger", "manual")
    operation = TRIGGERS.get(trigger)
    if operation is None:
        raise ValueError(
            f"Unknown trigger '{trigger}'. Valid triggers: {sorted(TRIGGERS)}"
        )
    try:
        result = await run_sync(service.run, operation)
    except SyncBusyError:
        return _busy()
    return _result(
        reporter.format_transaction(result),
        reporter.full_to_json(result),
        is_error=not result.success,
    )


async def _handle_logs(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    limit = args.get("limit", 20)
    if not isinstance(limit, int) or limit < 1:
        raise ValueError("limit must be a positive integer")
    entries = (await run_sync(service.sync_log.entries))[:limit]
    if not entries:
        text = "Sync log is empty."
    else:
        text = "\n".join(
            f"{e.timestamp} {e.operation_kind.value} {e.outcome.value}: {e.message}"
            for e in entries
        )
    return _result(text, reporter.logs_to_json(entries))


async def _handle_clear_logs(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    body = await run_sync(service.clear_logs)
    return _result(body["message"], body)


async def _handle_git_status(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    body = await run_sync(service.git_status)
    status = body["gitStatus"]
    lines = [
        f"Branch: {status['currentBranch']}",
        f"Ahead: {status['commitsAhead']}, behind: {status['commitsBehind']}",
    ]
    if status.get("lastCommit"):
        commit = status["lastCommit"]
        lines.append(f"Last commit: {commit['hash']} {commit['message']} ({commit['author']})")
    for change in status["workingTreeFiles"]:
        lines.append(f"  {change['kind']}: {change['path']}")
    return _result("\n".join(lines), body)


async def _handle_verify(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    body = await run_sync(service.verify)
    errors = body["verification"]["errors"]
    if not errors:
        return _result("Repository configuration OK.", body)
    text = "Repository configuration problems:\n" + "\n".join(f"  {e}" for e in errors)
    return _result(text, body, is_error=True)


async def _handle_conflicts(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
    details = await run_sync(service.recovery.conflicts)
    return _result(reporter.format_conflicts(details), reporter.conflicts_to_json(details))


def _recovery_handler(method_name: str):
    async def _handler(service: SyncService, args: dict[str, Any]) -> types.CallToolResult:
        body = await run_sync(getattr(service, method_name))
        if body.get("syncInProgress"):
            return _busy()
        if not body["success"]:
            text = body["message"]
            if body["error"] != text:
                text = f"{text}: {body['error']}"
            return _result(text, body, is_error=True)
        return _result(body["message"], body)

    return _handler


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


def _tool(
    name: str,
    description: str,
    read_only: bool,
    schema: dict | None = None,
    destructive: bool = False,
) -> types.Tool:
    return types.Tool(
        name=name,
        description=description,
        annotations=types.ToolAnnotations(
            readOnlyHint=read_only,
            destructiveHint=destructive,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema=schema or _EMPTY_SCHEMA,
    )


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=_tool(
            "sync_status",
            "Show what a sync would upload and download, without changing anything.",
            read_only=True,
        ),
        mutating=False,
        handler=_handle_status,
    ),
    ToolSpec(
        tool=_tool(
            "sync_check",
            "Fetch and pull new remote changes. Skipped when uncommitted "
            "local changes exist. Never commits or pushes.",
            read_only=False,
        ),
        mutating=True,
        handler=_handle_check,
    ),
    ToolSpec(
        tool=_tool(
            "sync_full",
            "Commit local changes, pull remote changes and push. Conflicts "
            "keep the remote version and report the discarded local edits.",
            read_only=False,
            schema={
                "type": "object",
                "properties": {
                    "trigger": {
                        "type": "string",
                        "enum": ["manual", "auto"],
                        "default": "manual",
                        "description": "manual for a user sync, auto for the post-upload hook",
                    },
                },
                "required": [],
            },
        ),
        mutating=True,
        handler=_handle_full,
    ),
    ToolSpec(
        tool=_tool(
            "sync_logs",
            "Show recent sync attempts, newest first.",
            read_only=True,
            schema={
                "type": "object",
                "properties": {
                    "limit": {
                        "type": "integer",
                        "default": 20,
                        "minimum": 1,
                        "description": "Maximum number of entries",
                    },
                },
                "required": [],
            },
        ),
        mutating=False,
        handler=_handle_logs,
    ),
    ToolSpec(
        tool=_tool("sync_clear_logs", "Clear the sync log.", read_only=False),
        mutating=True,
        handler=_handle_clear_logs,
    ),
    ToolSpec(
        tool=_tool(
            "sync_git_status",
            "Show branch, ahead/behind counts, last commit and uncommitted files.",
            read_only=True,
        ),
        mutating=False,
        handler=_handle_git_status,
    ),
    ToolSpec(
        tool=_tool(
            "sync_verify",
            "Verify the remote, branch and Git LFS configuration.",
            read_only=True,
        ),
        mutating=False,
        handler=_handle_verify,
    ),
    ToolSpec(
        tool=_tool(
            "sync_conflicts",
            "List the conflicted paths of a stopped rebase or merge and which side deleted each.",
            read_only=True,
        ),
        mutating=False,
        handler=_handle_conflicts,
    ),
    ToolSpec(
        tool=_tool(
            "sync_abort_rebase",
            "Abort a stopped rebase, restoring the branch as it was before the pull.",
            read_only=False,
        ),
        mutating=True,
        handler=_recovery_handler("abort_rebase"),
    ),
    ToolSpec(
        tool=_tool(
            "sync_abort_merge",
            "Abort a stopped merge, or a stopped rebase when no merge is in progress.",
            read_only=False,
        ),
        mutating=True,
        handler=_recovery_handler("abort_merge"),
    ),
    ToolSpec(
        tool=_tool(
            "sync_reset_to_remote",
            "Discard every local change, unpushed commit and untracked file, "
            "then match the remote branch exactly. Cannot be undone.",
            read_only=False,
            destructive=True,
        ),
        mutating=True,
        handler=_recovery_handler("reset_to_remote"),
    ),
]
