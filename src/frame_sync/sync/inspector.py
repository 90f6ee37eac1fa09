"""Repository State Inspector.

Reports local/remote divergence and working-tree status. Every report of
ahead/behind counts is preceded by a fetch inside :meth:`Inspector.inspect`
itself; callers cannot obtain counts that skipped it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ..config import Config
from ..core.client import DiffEntry, GitClient, StatusEntry
from ..file_handler import MetadataStore, parse_document
from .models import ChangeKind, FileChange, IdentityCheck, LastCommit, RepositoryStatus

logger = logging.getLogger(__name__)

_CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}


def _classify(entry: StatusEntry) -> ChangeKind:
    code = entry.code
    if code in _CONFLICT_CODES:
        return ChangeKind.CONFLICTED
    if code == "??":
        return ChangeKind.ADDED
    if entry.index in "RC":
        return ChangeKind.RENAMED
    if "D" in code:
        return ChangeKind.DELETED
    if entry.index == "A":
        return ChangeKind.ADDED
    return ChangeKind.MODIFIED


_DIFF_KINDS = {
    "A": ChangeKind.ADDED,
    "C": ChangeKind.ADDED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "U": ChangeKind.CONFLICTED,
}


def _from_diff(entry: DiffEntry) -> FileChange:
    kind = _DIFF_KINDS.get(entry.status, ChangeKind.MODIFIED)
    old_path = entry.old_path if kind == ChangeKind.RENAMED else None
    return FileChange(path=entry.path, kind=kind, old_path=old_path)


class Inspector:
    """Read-only view of one working copy.

    The only side effect is ``git fetch`` in :meth:`inspect`, which updates
    remote-tracking refs but never the branch or the working tree.
    """

    def __init__(self, config: Config, client: GitClient, store: MetadataStore):
        self.config = config
        self.client = client
        self.store = store

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def inspect(self) -> RepositoryStatus:
        """Fetch, then report divergence and working-tree state.

        Raises:
            GitCommandError: If the fetch (or any git query) fails.
        """
        self.client.fetch()
        ahead, behind = self.client.ahead_behind()
        return RepositoryStatus(
            current_branch=self.client.current_branch(),
            commits_ahead=ahead,
            commits_behind=behind,
            working_tree_files=self.working_tree(),
            last_commit=self.last_commit(),
            rebase_in_progress=self.operation_in_progress(),
        )

    def working_tree(self) -> list[FileChange]:
        """Uncommitted changes, without touching the network."""
        return [
            FileChange(path=e.path, kind=_classify(e), old_path=e.old_path)
            for e in self.client.status()
        ]

    def operation_in_progress(self) -> bool:
        return self.client.rebase_in_progress() or self.client.merge_in_progress()

    def conflicted_paths(self) -> list[str]:
        return self.client.conflicted_paths()

    def last_commit(self) -> LastCommit | None:
        info = self.client.last_commit()
        if info is None:
            return None
        return LastCommit(
            hash=info["hash"],
            message=info["message"],
            timestamp=info["date"],
            author=info["author"],
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def verify_identity(self) -> IdentityCheck:
        """Check remote, branch and large-asset extension in one pass.

        Every problem is collected so an operator can fix them together.
        """
        errors: list[str] = []
        remote = self.config.remote

        probe = self.client.run("rev-parse", "--is-inside-work-tree", check=False)
        if probe.stdout.strip() != "true":
            errors.append(f"Not a git repository: {self.config.repo_path}")
            return IdentityCheck(
                branch_ok=False,
                remote_ok=False,
                large_asset_extension_ok=False,
                errors=errors,
            )

        remote_url = self.client.remote_url()
        remote_ok = remote_url is not None
        if remote_url is None:
            errors.append(f"Remote '{remote}' is not configured")
        elif self.config.expected_remote and self.config.expected_remote not in remote_url:
            remote_ok = False
            errors.append(
                f"Remote '{remote}' points to {remote_url}, "
                f"expected a URL containing '{self.config.expected_remote}'"
            )

        lfs_ok = True
        if self.config.large_asset_extension:
            if not self.client.lfs_available():
                lfs_ok = False
                errors.append("Git LFS is not installed (git lfs version failed)")
            if not (self.config.repo / ".gitattributes").exists():
                lfs_ok = False
                errors.append("Git LFS is not configured (.gitattributes is missing)")

        branch = self.client.current_branch()
        branch_ok = branch == self.config.branch
        if not branch_ok:
            errors.append(
                f"Repository is on branch '{branch}', expected '{self.config.branch}'"
            )

        for message in errors:
            logger.warning("Identity check: %s", message)

        return IdentityCheck(
            branch_ok=branch_ok,
            remote_ok=remote_ok,
            large_asset_extension_ok=lfs_ok,
            current_branch=branch,
            remote_url=remote_url,
            errors=errors,
        )

    # ------------------------------------------------------------------
    # Documents and diffs
    # ------------------------------------------------------------------

    def document_at(self, rev: str | None) -> dict[str, Any]:
        """Metadata document as of *rev*; empty when absent or *rev* is None."""
        if rev is None:
            return parse_document(None)
        return parse_document(self.client.show(rev, self.config.metadata_file))

    def working_document(self) -> dict[str, Any]:
        return self.store.read()

    def upstream_exists(self) -> bool:
        return self.client.has_ref(self.client.upstream)

    def merge_base(self) -> str | None:
        """Common ancestor of HEAD and the tracking branch.

        Falls back to HEAD when the remote branch does not exist yet.
        """
        if not self.client.has_head():
            return None
        if not self.upstream_exists():
            return self.client.rev_parse("HEAD")
        return self.client.merge_base()

    def changes_between(self, base: str | None, target: str) -> list[FileChange]:
        if base is None:
            out = self.client.run("ls-tree", "-r", "--name-only", "-z", target).stdout
            return [
                FileChange(path=p, kind=ChangeKind.ADDED)
                for p in out.split("\0")
                if p
            ]
        return [_from_diff(e) for e in self.client.diff_name_status(base, target)]

    def pending_changes(self, base: str | None) -> list[FileChange]:
        """Changes from *base* to the working tree, untracked files included."""
        if base is None:
            tracked = self.client.run("ls-files", "-z").stdout.split("\0")
            changes = [FileChange(path=p, kind=ChangeKind.ADDED) for p in tracked if p]
        else:
            changes = [_from_diff(e) for e in self.client.diff_name_status(base)]
        seen = {c.path for c in changes}
        changes.extend(
            FileChange(path=p, kind=ChangeKind.ADDED)
            for p in self.client.untracked_files()
            if p not in seen
        )
        return changes

    def staged_changes(self) -> list[FileChange]:
        if not self.client.has_head():
            return self.pending_changes(None)
        return [_from_diff(e) for e in self.client.diff_name_status("HEAD", cached=True)]

    def absolute(self, path: str) -> Path:
        return self.config.repo / path
