"""Sync Transaction Coordinator.

Drives one sync attempt through the states

    idle -> committing -> pulling -> (conflictDetected -> resolving ->)
    pushing -> done

Local changes are committed first, then rebased onto the remote branch (never
merged), then pushed. A conflict during the rebase is resolved by keeping the
remote version, after which the pull is attempted once more. A "check" run
only pulls.

The coordinator mutates the working tree and must only be called while the
:class:`~frame_sync.sync.guard.ConcurrencyGuard` is held.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath

from ..config import Config
from ..core.client import GitClient, GitCommandError
from ..file_handler import MetadataStore
from ..validators import Validator, thumbnail_for, validate_asset
from .errors import ConfigurationError, ResolutionError
from .inspector import Inspector
from .log import SyncLog
from .models import (
    ChangeKind,
    ChangeSet,
    ChangeSummary,
    FileChange,
    OperationKind,
    RepositoryStatus,
    ResolutionResult,
    SyncAttempt,
    SyncOutcome,
    TransactionResult,
    TransactionState,
    ValidationFailure,
)
from .resolver import RemoteWinsResolver
from .summarizer import build_commit_message, summarize_for_download, summarize_for_upload

logger = logging.getLogger(__name__)

UNCOMMITTED_REASON = "Uncommitted local changes detected"


@dataclass
class _Transaction:
    """Mutable progress of one run; frozen into a TransactionResult at the end."""

    operation: OperationKind
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: TransactionState = TransactionState.IDLE
    committed: bool = False
    pulled: bool = False
    pushed: bool = False
    commits_received: int = 0
    upload: ChangeSummary | None = None
    download: ChangeSummary | None = None
    resolution: ResolutionResult | None = None
    validation_errors: list[ValidationFailure] = field(default_factory=list)

    def enter(self, state: TransactionState) -> None:
        logger.info(
            "[%s] %s: %s -> %s",
            self.request_id,
            self.operation.value,
            self.state.value,
            state.value,
        )
        self.state = state

    def finish(
        self,
        outcome: SyncOutcome,
        message: str,
        errors: list[str] | None = None,
        error_detail: str | None = None,
    ) -> TransactionResult:
        self.enter(TransactionState.DONE)
        resolution = self.resolution
        return TransactionResult(
            operation=self.operation,
            outcome=outcome,
            message=message,
            request_id=self.request_id,
            committed=self.committed,
            pulled=self.pulled,
            pushed=self.pushed,
            commits_received=self.commits_received,
            upload=self.upload,
            download=self.download,
            auto_resolved_conflict=resolution is not None,
            conflicted_paths=resolution.resolved_paths if resolution else [],
            lost_changes=resolution.discarded_local_changes if resolution else [],
            validation_errors=self.validation_errors,
            errors=errors or [],
            error_detail=error_detail,
        )


class Coordinator:
    """Run commit / pull / push transactions against one working copy.

    Args:
        config: Runtime configuration.
        sync_log: Where every finished attempt is recorded.
        client: Git client; built from *config* when omitted.
        store: Metadata document access; built from *config* when omitted.
        validator: Asset validation collaborator returning ``(ok, reason)``.
    """

    def __init__(
        self,
        config: Config,
        sync_log: SyncLog,
        client: GitClient | None = None,
        store: MetadataStore | None = None,
        validator: Validator = validate_asset,
    ) -> None:
        self.config = config
        self.sync_log = sync_log
        self.client = client or GitClient(config)
        self.store = store or MetadataStore(config.repo, config.metadata_file)
        self.inspector = Inspector(config, self.client, self.store)
        self.resolver = RemoteWinsResolver(config, self.client, self.inspector)
        self.validator = validator

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self, operation: OperationKind) -> TransactionResult:
        """Execute one transaction.

        ``OperationKind.CHECK`` forces a remote check: it fetches and pulls
        even when nothing changed locally, and never commits or pushes.
        ``MANUAL_SYNC`` and ``AUTO_PUSH`` run the full transaction and differ
        only in how the attempt is recorded.

        Returns:
            The outcome. Configuration problems, git failures and failed
            conflict resolution are reported as ``SyncOutcome.FAILED``.
        """
        tx = _Transaction(operation)
        logger.info("[%s] Starting %s", tx.request_id, operation.value)
        try:
            # A stopped rebase detaches HEAD, so clear it before checking the branch
            if self.inspector.operation_in_progress():
                logger.warning(
                    "[%s] Aborting rebase left over from an earlier run", tx.request_id
                )
                self.resolver.abort()

            identity = self.inspector.verify_identity()
            if not identity.ok:
                raise ConfigurationError(identity.errors)

            status = self.inspector.inspect()
            if operation == OperationKind.CHECK:
                result = self._check(tx, status)
            else:
                result = self._full(tx, status)
        except ConfigurationError as exc:
            result = tx.finish(
                SyncOutcome.FAILED,
                "Repository configuration is invalid",
                errors=exc.errors,
                error_detail=str(exc),
            )
        except (GitCommandError, ResolutionError) as exc:
            logger.error("[%s] %s failed in %s: %s", tx.request_id, operation.value, tx.state.value, exc)
            result = tx.finish(
                SyncOutcome.FAILED,
                f"Sync failed while {tx.state.value}",
                error_detail=str(exc),
            )
        except Exception as exc:
            logger.exception("[%s] Unexpected error during %s", tx.request_id, operation.value)
            self._record(tx.finish(SyncOutcome.FAILED, "Unexpected error", error_detail=str(exc)))
            raise

        logger.info(
            "[%s] %s finished: %s (%s)",
            tx.request_id,
            operation.value,
            result.outcome.value,
            result.message,
        )
        self._record(result)
        return result

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _check(self, tx: _Transaction, status: RepositoryStatus) -> TransactionResult:
        if status.commits_behind == 0:
            return tx.finish(SyncOutcome.SKIPPED_NO_OP, "Already up to date")
        if status.has_local_changes:
            logger.info(
                "[%s] Remote is %d commit(s) ahead but the working tree has uncommitted changes",
                tx.request_id,
                status.commits_behind,
            )
            return tx.finish(SyncOutcome.SKIPPED_UNCOMMITTED_CONFLICT, UNCOMMITTED_REASON)

        self._pull(tx, status.commits_behind)
        return tx.finish(self._outcome(tx), self._message(tx))

    def _full(self, tx: _Transaction, status: RepositoryStatus) -> TransactionResult:
        if (
            not status.has_local_changes
            and status.commits_ahead == 0
            and status.commits_behind == 0
        ):
            return tx.finish(SyncOutcome.SKIPPED_NO_OP, "Already in sync")

        if status.has_local_changes:
            self._commit(tx)

        ahead, behind = self.client.ahead_behind()
        if behind:
            self._pull(tx, behind)
            ahead, _ = self.client.ahead_behind()

        if ahead:
            tx.enter(TransactionState.PUSHING)
            self.client.push()
            tx.pushed = True

        if not (tx.committed or tx.pulled or tx.pushed):
            return tx.finish(SyncOutcome.SUCCESS, "No valid changes to sync")
        return tx.finish(self._outcome(tx), self._message(tx))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _commit(self, tx: _Transaction) -> None:
        tx.enter(TransactionState.COMMITTING)
        has_head = self.client.has_head()
        prior = self.inspector.document_at("HEAD" if has_head else None)

        self.client.add_all()
        tx.validation_errors = self._drop_invalid(self.inspector.staged_changes())
        if not self.client.has_staged_changes():
            logger.info("[%s] Nothing left to commit", tx.request_id)
            return

        staged = self.inspector.staged_changes()
        tx.upload = summarize_for_upload(
            prior,
            self.inspector.document_at(""),
            staged,
            self.config.library_dir,
        )
        message = build_commit_message(tx.upload)
        self.client.commit(message)
        tx.committed = True
        logger.info("[%s] Committed: %s", tx.request_id, message.splitlines()[0])

    def _drop_invalid(self, staged: list[FileChange]) -> list[ValidationFailure]:
        """Unstage library files that fail validation, with their thumbnails."""
        failures: list[ValidationFailure] = []
        drop: list[str] = []
        staged_paths = {c.path for c in staged}
        library_prefix = f"{self.config.library_dir}/"

        for change in staged:
            if change.kind == ChangeKind.DELETED:
                continue
            if not change.path.startswith(library_prefix):
                continue
            ok, reason = self.validator(self.inspector.absolute(change.path))
            if ok:
                continue
            name = PurePosixPath(change.path).name
            logger.warning("Asset %s failed validation: %s", name, reason)
            failures.append(ValidationFailure(file=name, reason=reason))
            drop.append(change.path)
            if change.old_path:
                drop.append(change.old_path)
            thumb = thumbnail_for(
                change.path, self.config.library_dir, self.config.thumbs_dir
            )
            if thumb in staged_paths:
                drop.append(thumb)

        self.client.unstage(drop)
        return failures

    def _pull(self, tx: _Transaction, behind: int) -> None:
        tx.enter(TransactionState.PULLING)
        base = self.inspector.merge_base()
        upstream = self.client.upstream
        tx.download = summarize_for_download(
            self.inspector.document_at(base),
            self.inspector.document_at(upstream),
            self.inspector.changes_between(base, upstream),
            self.config.library_dir,
        )
        if not self.client.rebase():
            try:
                self._resolve(tx)
            except BaseException:
                # Never leave conflict markers or a stopped rebase behind
                self.resolver.abort()
                raise

        tx.pulled = True
        tx.commits_received = behind
        if self.config.large_asset_extension:
            self.client.lfs_pull()

    def _resolve(self, tx: _Transaction) -> None:
        tx.enter(TransactionState.CONFLICT_DETECTED)
        conflicted = self.inspector.conflicted_paths()
        logger.warning(
            "[%s] Conflict on %s, keeping remote version",
            tx.request_id,
            ", ".join(conflicted),
        )
        tx.enter(TransactionState.RESOLVING)
        tx.resolution = self.resolver.resolve(conflicted)

        tx.enter(TransactionState.PULLING)
        if not self.client.rebase():
            raise ResolutionError("Pull still conflicts after resolution")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _outcome(tx: _Transaction) -> SyncOutcome:
        if tx.resolution is not None:
            return SyncOutcome.CONFLICT_AUTO_RESOLVED
        return SyncOutcome.SUCCESS

    @staticmethod
    def _message(tx: _Transaction) -> str:
        parts = []
        if tx.committed:
            parts.append("committed local changes")
        if tx.pulled:
            parts.append(f"pulled {tx.commits_received} commit(s)")
        if tx.pushed:
            parts.append("pushed to remote")
        message = "Sync complete: " + ", ".join(parts)
        if tx.resolution is not None:
            message += " (conflict auto-resolved, remote version kept)"
        return message

    def _record(self, result: TransactionResult) -> None:
        change_set = None
        if result.upload or result.download:
            change_set = ChangeSet(
                upload=result.upload or ChangeSummary(),
                download=result.download or ChangeSummary(),
            )
        attempt = SyncAttempt(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation_kind=result.operation,
            outcome=result.outcome,
            message=result.message,
            request_id=result.request_id,
            change_set=change_set,
            conflicted_paths=result.conflicted_paths or None,
            discarded_local_changes=result.lost_changes or None,
            error_detail=result.error_detail,
        )
        try:
            self.sync_log.record(attempt)
        except OSError:
            logger.exception("[%s] Could not write sync log", result.request_id)
