"""Thin subprocess wrapper over ``git`` and ``git lfs`` for one working copy."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from ..config import Config

logger = logging.getLogger(__name__)

_NUL = "\0"
_FIELD = "\x1f"


class GitCommandError(Exception):
    """A git invocation exited non-zero or timed out."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_ = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(
            f"git {' '.join(args)} failed ({returncode}): {self.stderr}"
        )


@dataclass(frozen=True)
class StatusEntry:
    """One ``git status --porcelain`` record."""

    index: str
    worktree: str
    path: str
    old_path: str | None = None

    @property
    def code(self) -> str:
        return self.index + self.worktree


@dataclass(frozen=True)
class DiffEntry:
    """One ``git diff --name-status`` record."""

    status: str
    path: str
    old_path: str | None = None


class GitClient:
    def __init__(self, config: Config):
        self.config = config
        self.cwd = str(config.repo)
        self.timeout = config.git_timeout
        self._env = {
            **os.environ,
            "GIT_TERMINAL_PROMPT": "0",
            "GIT_EDITOR": "true",
            # Queries must not take index.lock while a transaction holds the tree
            "GIT_OPTIONAL_LOCKS": "0",
            "LC_ALL": "C",
        }

    @property
    def upstream(self) -> str:
        return f"{self.config.remote}/{self.config.branch}"

    def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run ``git <args>`` in the working copy.

        Raises:
            GitCommandError: On timeout, missing git binary, or (when
                *check*) a non-zero exit status.
        """
        cmd = ["git", *args]
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env,
            )
        except subprocess.TimeoutExpired:
            raise GitCommandError(
                list(args), -1, f"timed out after {self.timeout}s"
            ) from None
        except FileNotFoundError:
            raise GitCommandError(list(args), -1, "git executable not found") from None

        if result.stderr.strip():
            logger.debug("git %s stderr: %s", args[0], result.stderr.strip())
        if check and result.returncode != 0:
            raise GitCommandError(list(args), result.returncode, result.stderr)
        return result

    def _succeeds(self, *args: str) -> bool:
        return self.run(*args, check=False).returncode == 0

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    def fetch(self) -> None:
        self.run("fetch", "--prune", self.config.remote)

    def push(self) -> None:
        self.run("push", self.config.remote, f"HEAD:refs/heads/{self.config.branch}")

    def rebase(self) -> bool:
        """Rebase local commits onto the remote tracking branch.

        Returns:
            ``True`` when the rebase completed, ``False`` when it stopped on
            a conflict (the rebase is left in progress).

        Raises:
            GitCommandError: If the rebase failed for any other reason.
        """
        result = self.run("rebase", "--autostash", self.upstream, check=False)
        if result.returncode == 0:
            return True
        if self.rebase_in_progress():
            return False
        raise GitCommandError(
            ["rebase", self.upstream], result.returncode, result.stderr or result.stdout
        )

    def rebase_continue(self) -> subprocess.CompletedProcess:
        return self.run("-c", "core.editor=true", "rebase", "--continue", check=False)

    def rebase_skip(self) -> subprocess.CompletedProcess:
        return self.run("rebase", "--skip", check=False)

    def rebase_abort(self) -> None:
        self.run("rebase", "--abort")

    def merge_abort(self) -> None:
        self.run("merge", "--abort")

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def has_ref(self, ref: str) -> bool:
        return self._succeeds("rev-parse", "-q", "--verify", f"{ref}^{{commit}}")

    def has_head(self) -> bool:
        return self.has_ref("HEAD")

    def current_branch(self) -> str:
        result = self.run("symbolic-ref", "--short", "-q", "HEAD", check=False)
        return result.stdout.strip() if result.returncode == 0 else "HEAD"

    def remote_url(self) -> str | None:
        result = self.run("remote", "get-url", self.config.remote, check=False)
        return result.stdout.strip() if result.returncode == 0 else None

    def ahead_behind(self) -> tuple[int, int]:
        """Return ``(ahead, behind)`` of HEAD against the tracking branch."""
        has_head = self.has_head()
        has_upstream = self.has_ref(self.upstream)
        if has_head and has_upstream:
            out = self.run(
                "rev-list", "--left-right", "--count", f"HEAD...{self.upstream}"
            ).stdout.split()
            return int(out[0]), int(out[1])
        if has_head:
            return int(self.run("rev-list", "--count", "HEAD").stdout.strip()), 0
        if has_upstream:
            return 0, int(self.run("rev-list", "--count", self.upstream).stdout.strip())
        return 0, 0

    def merge_base(self, a: str = "HEAD", b: str | None = None) -> str | None:
        result = self.run("merge-base", a, b or self.upstream, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def rev_parse(self, rev: str) -> str | None:
        result = self.run("rev-parse", "-q", "--verify", rev, check=False)
        return result.stdout.strip() if result.returncode == 0 else None

    def show(self, rev: str, path: str) -> str | None:
        """Return the content of *path* at *rev*, or ``None`` if absent."""
        result = self.run("show", f"{rev}:{path}", check=False)
        return result.stdout if result.returncode == 0 else None

    def status(self) -> list[StatusEntry]:
        out = self.run(
            "status", "--porcelain=v1", "-z", "--untracked-files=all"
        ).stdout
        fields = out.split(_NUL)
        entries: list[StatusEntry] = []
        i = 0
        while i < len(fields):
            record = fields[i]
            i += 1
            if len(record) < 4:
                continue
            x, y, path = record[0], record[1], record[3:]
            old_path = None
            if x in "RC":
                old_path = fields[i]
                i += 1
            entries.append(StatusEntry(x, y, path, old_path))
        return entries

    def diff_name_status(
        self, base: str, target: str | None = None, cached: bool = False
    ) -> list[DiffEntry]:
        """Name-status diff from *base* to *target* (or the working tree).

        Renames are detected so a moved file is one ``R`` entry.
        """
        args = ["diff", "--name-status", "-M", "-z"]
        if cached:
            args.append("--cached")
        args.append(base)
        if target:
            args.append(target)
        fields = self.run(*args).stdout.split(_NUL)
        entries: list[DiffEntry] = []
        i = 0
        while i < len(fields) and fields[i]:
            status = fields[i]
            if status[0] in "RC":
                entries.append(DiffEntry(status[0], fields[i + 2], fields[i + 1]))
                i += 3
            else:
                entries.append(DiffEntry(status[0], fields[i + 1]))
                i += 2
        return entries

    def untracked_files(self) -> list[str]:
        out = self.run("ls-files", "--others", "--exclude-standard", "-z").stdout
        return [p for p in out.split(_NUL) if p]

    def conflicted_paths(self) -> list[str]:
        out = self.run("diff", "--name-only", "--diff-filter=U", "-z").stdout
        return sorted({p for p in out.split(_NUL) if p})

    def unmerged_stages(self, path: str) -> set[int]:
        out = self.run("ls-files", "-u", "-z", "--", path).stdout
        stages = set()
        for record in out.split(_NUL):
            if record:
                # "<mode> <sha> <stage>\t<path>"
                stages.add(int(record.split("\t", 1)[0].split()[2]))
        return stages

    def has_staged_changes(self) -> bool:
        if not self.has_head():
            return bool(self.run("ls-files", "-z").stdout)
        return not self._succeeds("diff", "--cached", "--quiet")

    def rebase_in_progress(self) -> bool:
        for name in ("rebase-merge", "rebase-apply"):
            result = self.run("rev-parse", "--git-path", name, check=False)
            if result.returncode != 0:
                return False
            if (Path(self.cwd) / result.stdout.strip()).exists():
                return True
        return False

    def merge_in_progress(self) -> bool:
        return self.has_ref("MERGE_HEAD")

    def last_commit(self) -> dict | None:
        if not self.has_head():
            return None
        out = self.run(
            "log", "-1", f"--format=%H{_FIELD}%s{_FIELD}%cI{_FIELD}%an"
        ).stdout.strip()
        commit_hash, message, date, author = out.split(_FIELD)
        return {
            "hash": commit_hash,
            "message": message,
            "date": date,
            "author": author,
        }

    def lfs_available(self) -> bool:
        try:
            return self._succeeds("lfs", "version")
        except GitCommandError:
            return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_all(self) -> None:
        self.run("add", "-A")

    def add(self, paths: list[str]) -> None:
        if paths:
            self.run("add", "--", *paths)

    def unstage(self, paths: list[str]) -> None:
        if not paths:
            return
        if self.has_head():
            self.run("reset", "-q", "--", *paths)
        else:
            self.run("rm", "--cached", "-q", "--ignore-unmatch", "--", *paths)

    def commit(self, message: str) -> None:
        self.run("commit", "-q", "-m", message)

    def checkout_stage(self, side: str, path: str) -> None:
        self.run("checkout", f"--{side}", "--", path)

    def remove(self, path: str) -> None:
        self.run("rm", "-q", "--", path)

    def reset_hard(self, rev: str) -> None:
        self.run("reset", "-q", "--hard", rev)

    def clean(self) -> list[str]:
        """Delete untracked files and directories; return what was removed."""
        out = self.run("clean", "-f", "-d").stdout
        return [
            line.removeprefix("Removing ").strip()
            for line in out.splitlines()
            if line.startswith("Removing ")
        ]

    def lfs_pull(self) -> None:
        self.run("lfs", "pull", self.config.remote)
