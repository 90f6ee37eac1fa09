"""Conflict resolution for interrupted pulls.

One fixed policy: every conflicted path takes the remote version and the
local version is discarded. Before a conflict step throws anything away, the
local side of that step is described with the change summarizer so the
caller can tell the user what was lost. Edits from local commits that replay
cleanly are kept and never reported.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from ..config import Config
from ..core.client import GitClient, GitCommandError
from ..file_handler import parse_document
from .errors import ResolutionError
from .inspector import Inspector
from .models import ChangeKind, FileChange, ResolutionResult
from .summarizer import summarize

logger = logging.getLogger(__name__)

# A rebase replays at most this many local commits; a loop longer than
# that means git is not making progress.
_MAX_STEPS = 500

# Index stages of an unmerged path
BASE_STAGE = 1
OURS_STAGE = 2
THEIRS_STAGE = 3


class RemoteWinsResolver:
    """Keep the remote version of every conflicted path."""

    def __init__(self, config: Config, client: GitClient, inspector: Inspector):
        self.config = config
        self.client = client
        self.inspector = inspector

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def resolve(self, conflicted_paths: list[str]) -> ResolutionResult:
        """Resolve a stopped rebase (or merge) in favour of the remote.

        Args:
            conflicted_paths: Paths git reported as conflicted.

        Returns:
            The resolved paths and a description of the discarded edits.

        Raises:
            ResolutionError: If resolution fails or the tree is not clean
                afterwards. The rebase is aborted first, restoring the
                pre-pull state. Any other error also aborts before it
                propagates.
        """
        discarded: list[str] = []
        try:
            resolved = self._take_remote(discarded)
            leftover = [
                f.path
                for f in self.inspector.working_tree()
                if f.kind == ChangeKind.CONFLICTED
            ]
            if leftover or self.inspector.operation_in_progress():
                raise ResolutionError(
                    "Working tree not clean after resolution: "
                    + (", ".join(leftover) or "operation still in progress")
                )
        except ResolutionError:
            self.abort()
            raise
        except GitCommandError as exc:
            self.abort()
            raise ResolutionError(f"Conflict resolution failed: {exc}") from exc
        except BaseException:
            self.abort()
            raise

        return ResolutionResult(
            resolved_paths=sorted(set(resolved) | set(conflicted_paths)),
            discarded_local_changes=discarded,
        )

    # ------------------------------------------------------------------
    # Description of what is about to be lost
    # ------------------------------------------------------------------

    def describe_step(self, paths: list[str], local_stage: int) -> list[str]:
        """Describe the local side of one stopped step, base stage to *local_stage*.

        During a rebase the local commit being replayed is stage 3; during a
        merge the local branch is stage 2.
        """
        if not paths:
            return []
        library_prefix = f"{self.config.library_dir}/"
        files: list[FileChange] = []
        prior = current = parse_document(None)
        extra: list[str] = []

        for path in paths:
            stages = self.client.unmerged_stages(path)
            name = PurePosixPath(path).name
            if path == self.config.metadata_file:
                try:
                    prior = parse_document(self._stage_text(BASE_STAGE, path, stages))
                    current = parse_document(self._stage_text(local_stage, path, stages))
                except ValueError:
                    logger.warning("Local %s is unreadable, not describing it", path)
                    extra.append(f"discarded local version: {name}")
                    prior = current = parse_document(None)
                continue
            if not path.startswith(library_prefix):
                extra.append(f"discarded local version: {name}")
                continue
            if local_stage not in stages:
                kind = ChangeKind.DELETED
            elif BASE_STAGE not in stages:
                kind = ChangeKind.ADDED
            else:
                kind = ChangeKind.MODIFIED
            files.append(FileChange(path=path, kind=kind))

        items = summarize(prior, current, files, self.config.library_dir).items
        items.extend(extra)
        if not items:
            items = [f"discarded local version: {PurePosixPath(p).name}" for p in paths]
        return items

    def _stage_text(self, stage: int, path: str, stages: set[int]) -> str | None:
        if stage not in stages:
            return None
        return self.client.show(f":{stage}", path)

    # ------------------------------------------------------------------
    # Git steps
    # ------------------------------------------------------------------

    def _take_remote(self, discarded: list[str]) -> list[str]:
        resolved: list[str] = []
        for _ in range(_MAX_STEPS):
            in_rebase = self.client.rebase_in_progress()
            if not in_rebase and not self.client.merge_in_progress():
                return resolved

            # During a rebase "ours" is the upstream being rebased onto
            if in_rebase:
                side, remote_stage, local_stage = "ours", OURS_STAGE, THEIRS_STAGE
            else:
                side, remote_stage, local_stage = "theirs", THEIRS_STAGE, OURS_STAGE

            paths = self.client.conflicted_paths()
            for line in self.describe_step(paths, local_stage):
                logger.warning("Discarding local change: %s", line)
                if line not in discarded:
                    discarded.append(line)

            for path in paths:
                if remote_stage in self.client.unmerged_stages(path):
                    self.client.checkout_stage(side, path)
                    self.client.add([path])
                else:
                    self.client.remove(path)
                resolved.append(path)
                logger.info("Kept remote version of %s", path)

            if not in_rebase:
                self.client.run("commit", "--no-edit", "-q")
                continue
            if self.client.has_staged_changes():
                step = self.client.rebase_continue()
            else:
                step = self.client.rebase_skip()
            if (
                step.returncode != 0
                and self.client.rebase_in_progress()
                and not self.client.conflicted_paths()
            ):
                raise GitCommandError(["rebase", "--continue"], step.returncode, step.stderr)
        raise ResolutionError(f"Rebase did not finish after {_MAX_STEPS} steps")

    def abort(self) -> None:
        """Abandon a stopped rebase or merge, restoring the pre-pull state."""
        try:
            if self.client.rebase_in_progress():
                self.client.rebase_abort()
            elif self.client.merge_in_progress():
                self.client.merge_abort()
        except GitCommandError:
            logger.exception("Failed to abort in-progress operation")
            raise
