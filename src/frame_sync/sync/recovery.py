"""Manual recovery for a working copy a sync could not bring back to a clean state.

Normally the coordinator aborts a failed pull itself. These operations are
for an operator: inspect a stopped rebase or merge, abort it, or throw away
every local change and match the remote branch. The mutating ones must run
while the :class:`~frame_sync.sync.guard.ConcurrencyGuard` is held, and each
is recorded in the Sync Log like a transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath

from ..config import Config
from ..core.client import GitClient, GitCommandError
from .inspector import Inspector
from .log import SyncLog
from .models import (
    ConflictDetails,
    ConflictedFile,
    OperationKind,
    SyncAttempt,
    SyncOutcome,
)
from .resolver import OURS_STAGE, THEIRS_STAGE

logger = logging.getLogger(__name__)

NO_REBASE = "No rebase in progress"
NO_OPERATION = "No merge or rebase in progress"


class Recovery:
    def __init__(
        self,
        config: Config,
        client: GitClient,
        inspector: Inspector,
        sync_log: SyncLog,
    ) -> None:
        self.config = config
        self.client = client
        self.inspector = inspector
        self.sync_log = sync_log

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    def conflicts(self) -> ConflictDetails:
        """Unmerged paths of a stopped rebase or merge, with which side kept each file."""
        if self.client.rebase_in_progress():
            operation = "rebase"
            # During a rebase the local commit is "theirs"
            local_stage, remote_stage = THEIRS_STAGE, OURS_STAGE
        elif self.client.merge_in_progress():
            operation = "merge"
            local_stage, remote_stage = OURS_STAGE, THEIRS_STAGE
        else:
            operation = None
            local_stage, remote_stage = OURS_STAGE, THEIRS_STAGE

        files = []
        for path in self.client.conflicted_paths():
            stages = self.client.unmerged_stages(path)
            files.append(
                ConflictedFile(
                    path=path,
                    name=PurePosixPath(path).name,
                    local_present=local_stage in stages,
                    remote_present=remote_stage in stages,
                )
            )
        return ConflictDetails(
            operation=operation,
            has_conflicts=bool(files),
            conflicted_files=files,
        )

    # ------------------------------------------------------------------
    # Mutating
    # ------------------------------------------------------------------

    def abort_rebase(self) -> SyncAttempt:
        if not self.client.rebase_in_progress():
            return self._record(OperationKind.ABORT_REBASE, SyncOutcome.FAILED, NO_REBASE)
        return self._attempt(
            OperationKind.ABORT_REBASE,
            self.client.rebase_abort,
            "Successfully aborted rebase",
        )

    def abort_merge(self) -> SyncAttempt:
        """Abort a stopped merge, or a stopped rebase when no merge is in progress."""
        if self.client.merge_in_progress():
            return self._attempt(
                OperationKind.ABORT_MERGE,
                self.client.merge_abort,
                "Successfully aborted merge",
            )
        if self.client.rebase_in_progress():
            return self._attempt(
                OperationKind.ABORT_REBASE,
                self.client.rebase_abort,
                "Successfully aborted rebase",
            )
        return self._record(OperationKind.ABORT_MERGE, SyncOutcome.FAILED, NO_OPERATION)

    def reset_to_remote(self) -> SyncAttempt:
        """Discard every local change and unpushed commit; match the remote branch.

        Untracked files are deleted too. Ignored files are left alone.
        """
        return self._attempt(
            OperationKind.RESET_TO_REMOTE,
            self._reset,
            "Successfully reset to remote state",
        )

    def _reset(self) -> None:
        self.client.fetch()
        if self.inspector.operation_in_progress():
            if self.client.rebase_in_progress():
                self.client.rebase_abort()
            else:
                self.client.merge_abort()
        self.client.reset_hard(self.client.upstream)
        removed = self.client.clean()
        logger.warning(
            "Reset to %s, removed %d untracked path(s)", self.client.upstream, len(removed)
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _attempt(self, operation: OperationKind, action, message: str) -> SyncAttempt:
        try:
            action()
        except GitCommandError as exc:
            logger.error("%s failed: %s", operation.value, exc)
            return self._record(
                operation, SyncOutcome.FAILED, f"{operation.value} failed", str(exc)
            )
        logger.info(message)
        return self._record(operation, SyncOutcome.SUCCESS, message)

    def _record(
        self,
        operation: OperationKind,
        outcome: SyncOutcome,
        message: str,
        error_detail: str | None = None,
    ) -> SyncAttempt:
        attempt = SyncAttempt(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation_kind=operation,
            outcome=outcome,
            message=message,
            request_id=uuid.uuid4().hex[:8],
            error_detail=error_detail,
        )
        try:
            self.sync_log.record(attempt)
        except OSError:
            logger.exception("Could not write sync log")
        return attempt
