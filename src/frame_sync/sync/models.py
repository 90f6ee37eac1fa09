"""Pydantic models for the sync engine.

Defines the data contracts shared by the sync modules:

- ``RepositoryStatus``: fresh snapshot of divergence and working-tree state.
- ``ChangeSummary``: domain-level description of one direction of a sync.
- ``SyncAttempt``: one Sync Log entry.
- ``TransactionResult``: outcome of one coordinator run.
- ``StatusProjection``: read-only "what would sync do" view.
- ``ConflictDetails``: unmerged paths of a stopped rebase or merge.

All models are frozen (immutable) and serialize with camelCase keys via
``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_MODEL_CONFIG = {
    "frozen": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class ChangeKind(str, Enum):
    """Working-tree change classification."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    CONFLICTED = "conflicted"


class OperationKind(str, Enum):
    """What triggered a sync attempt."""

    CHECK = "check"
    MANUAL_SYNC = "manualSync"
    AUTO_PUSH = "autoPush"
    ABORT_REBASE = "abortRebase"
    ABORT_MERGE = "abortMerge"
    RESET_TO_REMOTE = "resetToRemote"


class SyncOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED_NO_OP = "skippedNoOp"
    SKIPPED_UNCOMMITTED_CONFLICT = "skippedUncommittedConflict"
    CONFLICT_AUTO_RESOLVED = "conflictAutoResolved"
    FAILED = "failed"


class TransactionState(str, Enum):
    """Coordinator states, in the order a full transaction visits them."""

    IDLE = "idle"
    COMMITTING = "committing"
    PULLING = "pulling"
    CONFLICT_DETECTED = "conflictDetected"
    RESOLVING = "resolving"
    PUSHING = "pushing"
    DONE = "done"


# ---------------------------------------------------------------------------
# Repository state
# ---------------------------------------------------------------------------


class FileChange(BaseModel):
    path: str
    kind: ChangeKind
    old_path: str | None = None

    model_config = _MODEL_CONFIG


class LastCommit(BaseModel):
    hash: str
    message: str
    timestamp: str
    author: str = ""

    model_config = _MODEL_CONFIG


class RepositoryStatus(BaseModel):
    """Divergence and working-tree state, computed after a fetch.

    Attributes:
        current_branch: Checked-out branch name (``HEAD`` when detached).
        commits_ahead: Local commits missing from the remote branch.
        commits_behind: Remote commits missing locally.
        working_tree_files: Uncommitted changes, including untracked files.
        last_commit: Tip of the local branch, ``None`` before the first commit.
        rebase_in_progress: A rebase or merge stopped midway.
    """

    current_branch: str
    commits_ahead: int = Field(default=0, ge=0)
    commits_behind: int = Field(default=0, ge=0)
    working_tree_files: list[FileChange] = Field(default_factory=list)
    last_commit: LastCommit | None = None
    rebase_in_progress: bool = False

    model_config = _MODEL_CONFIG

    @property
    def has_local_changes(self) -> bool:
        return bool(self.working_tree_files)

    @property
    def conflicted_files(self) -> list[str]:
        return [
            f.path for f in self.working_tree_files if f.kind == ChangeKind.CONFLICTED
        ]

    @property
    def is_clean(self) -> bool:
        return not self.working_tree_files and not self.rebase_in_progress


class IdentityCheck(BaseModel):
    """Result of verifying the working copy is the expected repository."""

    branch_ok: bool
    remote_ok: bool
    large_asset_extension_ok: bool
    current_branch: str | None = None
    remote_url: str | None = None
    errors: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    @property
    def ok(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Change summaries
# ---------------------------------------------------------------------------


class ChangeSummary(BaseModel):
    """Upload or download side of a ChangeSet.

    Attributes:
        new_assets: Assets present only after the change.
        modified_assets: Assets whose file or metadata changed.
        deleted_assets: Assets present only before the change.
        renamed_assets: Assets moved to a new name (counted once).
        items: One human-readable line per affected asset.
    """

    new_assets: int = 0
    modified_assets: int = 0
    deleted_assets: int = 0
    renamed_assets: int = 0
    items: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    @property
    def has_changes(self) -> bool:
        return bool(self.items)

    def count_line(self) -> str:
        """Aggregate counts, e.g. ``2 new, 1 renamed, 3 modified``."""
        parts = [
            (self.new_assets, "new"),
            (self.renamed_assets, "renamed"),
            (self.modified_assets, "modified"),
            (self.deleted_assets, "deleted"),
        ]
        return ", ".join(f"{n} {label}" for n, label in parts if n)


class ChangeSet(BaseModel):
    upload: ChangeSummary = Field(default_factory=ChangeSummary)
    download: ChangeSummary = Field(default_factory=ChangeSummary)

    model_config = _MODEL_CONFIG


class ValidationFailure(BaseModel):
    file: str
    reason: str

    model_config = _MODEL_CONFIG


class ResolutionResult(BaseModel):
    """What the conflict policy threw away.

    Attributes:
        resolved_paths: Every path that was in conflict.
        discarded_local_changes: Readable description of the local edits
            replaced by the remote version.
    """

    resolved_paths: list[str] = Field(default_factory=list)
    discarded_local_changes: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


# ---------------------------------------------------------------------------
# Transaction outcome and audit trail
# ---------------------------------------------------------------------------


class SyncAttempt(BaseModel):
    """One Sync Log entry. Never modified after it is written."""

    timestamp: str
    operation_kind: OperationKind
    outcome: SyncOutcome
    message: str = ""
    request_id: str | None = None
    change_set: ChangeSet | None = None
    conflicted_paths: list[str] | None = None
    discarded_local_changes: list[str] | None = None
    error_detail: str | None = None

    model_config = _MODEL_CONFIG


class TransactionResult(BaseModel):
    """Outcome of one coordinator run."""

    operation: OperationKind
    outcome: SyncOutcome
    message: str
    request_id: str
    committed: bool = False
    pulled: bool = False
    pushed: bool = False
    commits_received: int = 0
    upload: ChangeSummary | None = None
    download: ChangeSummary | None = None
    auto_resolved_conflict: bool = False
    conflicted_paths: list[str] = Field(default_factory=list)
    lost_changes: list[str] = Field(default_factory=list)
    validation_errors: list[ValidationFailure] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    error_detail: str | None = None

    model_config = _MODEL_CONFIG

    @property
    def success(self) -> bool:
        return self.outcome != SyncOutcome.FAILED

    @property
    def skipped(self) -> bool:
        return self.outcome in (
            SyncOutcome.SKIPPED_NO_OP,
            SyncOutcome.SKIPPED_UNCOMMITTED_CONFLICT,
        )


class StatusProjection(BaseModel):
    has_changes: bool
    upload: ChangeSummary
    download: ChangeSummary
    branch: str
    last_commit: LastCommit | None = None
    has_conflicts: bool = False
    conflicted_files: list[str] = Field(default_factory=list)
    commits_ahead: int = 0
    commits_behind: int = 0

    model_config = _MODEL_CONFIG


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


class ConflictedFile(BaseModel):
    """One unmerged path of a stopped rebase or merge.

    Attributes:
        path: Repository path.
        name: Base file name, as summaries name assets.
        local_present: The local side still has the file.
        remote_present: The remote side still has the file.
    """

    path: str
    name: str
    local_present: bool
    remote_present: bool

    model_config = _MODEL_CONFIG


class ConflictDetails(BaseModel):
    operation: str | None = None
    has_conflicts: bool = False
    conflicted_files: list[ConflictedFile] = Field(default_factory=list)

    model_config = _MODEL_CONFIG
