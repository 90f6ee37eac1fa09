"""Tests for the sync MCP tool handlers with a stubbed SyncService."""

from unittest.mock import MagicMock

import pytest

from frame_sync.mcp.tools import ALL_SPECS, ToolRegistry
from frame_sync.sync.errors import SyncBusyError
from frame_sync.sync.models import (
    ChangeSummary,
    ConflictDetails,
    ConflictedFile,
    IdentityCheck,
    LastCommit,
    OperationKind,
    StatusProjection,
    SyncAttempt,
    SyncOutcome,
    TransactionResult,
    ValidationFailure,
)


def _result(**overrides):
    values = {
        "operation": OperationKind.MANUAL_SYNC,
        "outcome": SyncOutcome.SUCCESS,
        "message": "Sync complete: committed local changes, pushed to remote",
        "request_id": "abcd1234",
        "committed": True,
        "pushed": True,
        "upload": ChangeSummary(new_assets=1, items=["added: a.jpg"]),
    }
    values.update(overrides)
    return TransactionResult(**values)


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def registry():
    return ToolRegistry(ALL_SPECS)


class TestSyncFull:
    async def test_manual_by_default(self, service, registry):
        service.run.return_value = _result()

        result = await registry.call_tool("sync_full", {}, service)

        service.run.assert_called_once_with(OperationKind.MANUAL_SYNC)
        assert result.isError is False
        assert result.structuredContent["uploadSummary"]["newAssets"] == 1
        assert "added: a.jpg" in result.content[0].text

    async def test_auto_trigger(self, service, registry):
        service.run.return_value = _result(operation=OperationKind.AUTO_PUSH)

        await registry.call_tool("sync_full", {"trigger": "auto"}, service)

        service.run.assert_called_once_with(OperationKind.AUTO_PUSH)

    async def test_invalid_trigger(self, service, registry):
        result = await registry.call_tool("sync_full", {"trigger": "nightly"}, service)

        assert result.isError is True
        assert "validation_error" in result.content[0].text
        service.run.assert_not_called()

    async def test_busy(self, service, registry):
        service.run.side_effect = SyncBusyError()

        result = await registry.call_tool("sync_full", {}, service)

        assert result.isError is True
        assert result.content[0].text.startswith("Error (busy)")

    async def test_validation_errors_listed(self, service, registry):
        service.run.return_value = _result(
            validation_errors=[ValidationFailure(file="empty.jpg", reason="File is empty after upload.")]
        )

        result = await registry.call_tool("sync_full", {}, service)

        assert "empty.jpg: File is empty after upload." in result.content[0].text
        assert result.structuredContent["validationErrors"][0]["file"] == "empty.jpg"

    async def test_failure_is_error(self, service, registry):
        service.run.return_value = _result(
            outcome=SyncOutcome.FAILED,
            message="Sync failed while pushing",
            error_detail="rejected",
            committed=True,
            pushed=False,
        )

        result = await registry.call_tool("sync_full", {}, service)

        assert result.isError is True
        assert result.structuredContent["error"] == "rejected"


class TestSyncCheck:
    async def test_conflict_reported(self, service, registry):
        service.run.return_value = _result(
            operation=OperationKind.CHECK,
            outcome=SyncOutcome.CONFLICT_AUTO_RESOLVED,
            message="Sync complete: pulled 1 commit(s) (conflict auto-resolved, remote version kept)",
            committed=False,
            pushed=False,
            pulled=True,
            commits_received=1,
            upload=None,
            download=ChangeSummary(modified_assets=1, items=["x.jpg: added tag: remote"]),
            auto_resolved_conflict=True,
            conflicted_paths=["metadata.json"],
            lost_changes=["x.jpg: added tag: local"],
        )

        result = await registry.call_tool("sync_check", {}, service)

        service.run.assert_called_once_with(OperationKind.CHECK)
        body = result.structuredContent
        assert body["autoResolvedConflict"] is True
        assert body["lostChangesSummary"] == ["x.jpg: added tag: local"]
        assert body["commitsReceived"] == 1
        assert "Discarded local changes" in result.content[0].text


class TestReadOnlyTools:
    async def test_status(self, service, registry):
        service.projector.project.return_value = StatusProjection(
            has_changes=True,
            upload=ChangeSummary(new_assets=1, items=["added: a.jpg"]),
            download=ChangeSummary(),
            branch="main",
            last_commit=LastCommit(
                hash="0123456789abcdef", message="Sync: 1 new", timestamp="2024-01-01T00:00:00+00:00"
            ),
            commits_ahead=1,
        )

        result = await registry.call_tool("sync_status", {}, service)

        assert result.structuredContent["status"]["hasChanges"] is True
        text = result.content[0].text
        assert "Last commit: 0123456 Sync: 1 new" in text
        assert "Upload: 1 new" in text
        assert "Download: nothing" in text

    async def test_logs_limited(self, service, registry):
        service.sync_log.entries.return_value = [
            SyncAttempt(
                timestamp=f"2024-01-0{i}T00:00:00+00:00",
                operation_kind=OperationKind.AUTO_PUSH,
                outcome=SyncOutcome.SUCCESS,
                message=f"attempt {i}",
            )
            for i in range(1, 4)
        ]

        result = await registry.call_tool("sync_logs", {"limit": 2}, service)

        assert len(result.structuredContent["logs"]) == 2
        assert "autoPush success: attempt 1" in result.content[0].text

    async def test_logs_bad_limit(self, service, registry):
        result = await registry.call_tool("sync_logs", {"limit": 0}, service)
        assert result.isError is True

    async def test_logs_empty(self, service, registry):
        service.sync_log.entries.return_value = []
        result = await registry.call_tool("sync_logs", {}, service)
        assert result.content[0].text == "Sync log is empty."

    async def test_verify_problems(self, service, registry):
        check = IdentityCheck(
            branch_ok=False,
            remote_ok=True,
            large_asset_extension_ok=True,
            errors=["Repository is on branch 'dev', expected 'main'"],
        )
        service.verify.return_value = {"success": False, "verification": check.model_dump(mode="json", by_alias=True)}

        result = await registry.call_tool("sync_verify", {}, service)

        assert result.isError is True
        assert "expected 'main'" in result.content[0].text

    async def test_git_status_text(self, service, registry):
        service.git_status.return_value = {
            "success": True,
            "gitStatus": {
                "currentBranch": "main",
                "commitsAhead": 0,
                "commitsBehind": 2,
                "lastCommit": {"hash": "0123456", "message": "Sync: 1 new", "author": "Ann"},
                "workingTreeFiles": [{"path": "library/a.jpg", "kind": "added"}],
            },
        }

        result = await registry.call_tool("sync_git_status", {}, service)

        text = result.content[0].text
        assert "Ahead: 0, behind: 2" in text
        assert "added: library/a.jpg" in text

    async def test_clear_logs(self, service, registry):
        service.clear_logs.return_value = {"success": True, "message": "Sync logs cleared"}
        result = await registry.call_tool("sync_clear_logs", {}, service)
        assert result.content[0].text == "Sync logs cleared"


class TestRecoveryTools:
    async def test_conflicts(self, service, registry):
        service.recovery.conflicts.return_value = ConflictDetails(
            operation="rebase",
            has_conflicts=True,
            conflicted_files=[
                ConflictedFile(
                    path="library/x.jpg", name="x.jpg", local_present=False, remote_present=True
                )
            ],
        )

        result = await registry.call_tool("sync_conflicts", {}, service)

        assert result.structuredContent["hasConflicts"] is True
        assert result.structuredContent["conflictedFiles"][0]["localPresent"] is False
        assert "library/x.jpg (deleted locally)" in result.content[0].text

    async def test_no_conflicts(self, service, registry):
        service.recovery.conflicts.return_value = ConflictDetails()
        result = await registry.call_tool("sync_conflicts", {}, service)
        assert result.content[0].text == "No conflicts."

    async def test_abort_rebase_nothing_to_abort(self, service, registry):
        service.abort_rebase.return_value = {
            "success": False,
            "message": "No rebase in progress",
            "error": "No rebase in progress",
        }

        result = await registry.call_tool("sync_abort_rebase", {}, service)

        assert result.isError is True
        assert result.content[0].text == "No rebase in progress"

    async def test_abort_merge(self, service, registry):
        service.abort_merge.return_value = {
            "success": True,
            "message": "Successfully aborted merge",
        }
        result = await registry.call_tool("sync_abort_merge", {}, service)
        assert result.isError is False
        assert result.content[0].text == "Successfully aborted merge"

    async def test_reset_busy(self, service, registry):
        service.reset_to_remote.return_value = {
            "success": False,
            "syncInProgress": True,
            "message": "Sync already in progress, retry shortly",
        }

        result = await registry.call_tool("sync_reset_to_remote", {}, service)

        assert result.isError is True
        assert result.content[0].text.startswith("Error (busy)")

    def test_reset_marked_destructive(self):
        tools = {spec.tool.name: spec for spec in ALL_SPECS}
        reset = tools["sync_reset_to_remote"]
        assert reset.mutating is True
        assert reset.tool.annotations.destructiveHint is True
        assert tools["sync_abort_rebase"].mutating is True
        assert tools["sync_conflicts"].mutating is False
