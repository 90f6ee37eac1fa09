"""Shared pytest fixtures for frame-sync-server tests.

Git-backed tests run against real throwaway repositories under ``tmp_path``:
a bare repository plays the remote and each test clones it as often as it
needs independent working copies.
"""

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from frame_sync.config import Config
from frame_sync.file_handler import empty_document
from frame_sync.sync.service import SyncService

_ENV_VARS = (
    "FRAME_SYNC_CONFIG",
    "FRAME_SYNC_REPO_PATH",
    "FRAME_SYNC_REMOTE",
    "FRAME_SYNC_BRANCH",
    "FRAME_SYNC_EXPECTED_REMOTE",
    "FRAME_SYNC_LFS",
    "FRAME_SYNC_LOG_PATH",
    "FRAME_SYNC_LOG_LIMIT",
    "FRAME_SYNC_GIT_TIMEOUT",
    "FRAME_SYNC_DEBUG",
    "LOG_LEVEL",
    "LOG_FILE",
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "git: mark test as requiring the git executable"
    )


def pytest_collection_modifyitems(config, items):
    """Skip git-backed tests when git is not installed."""
    if shutil.which("git"):
        return
    skip_git = pytest.mark.skip(reason="git executable not found")
    for item in items:
        if "git" in item.keywords:
            item.add_marker(skip_git)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep user git config and FRAME_SYNC_* variables out of tests."""
    home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


# -------------------------------------------------------------------------
# Git helpers
# -------------------------------------------------------------------------


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git():
    """Run a git command in a directory and return stdout."""
    return run_git


@pytest.fixture
def write_doc():
    """Write a metadata document the way the metadata store does."""

    def _write(repo: Path, document: dict) -> None:
        (repo / "metadata.json").write_text(
            json.dumps(document, indent=2) + "\n", encoding="utf-8"
        )

    return _write


@pytest.fixture
def read_doc():
    def _read(repo: Path) -> dict:
        return json.loads((repo / "metadata.json").read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def add_asset():
    """Create a library file (and optionally its thumbnail)."""

    def _add(repo: Path, name: str, content: bytes = b"\xff\xd8 jpeg", thumb: bool = False) -> Path:
        path = repo / "library" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if thumb:
            thumbs = repo / "thumbs"
            thumbs.mkdir(exist_ok=True)
            (thumbs / f"thumb_{name}").write_bytes(b"thumb " + content)
        return path

    return _add


@pytest.fixture
def remote_repo(tmp_path):
    """Bare remote seeded with one commit holding an empty metadata document."""
    remote = tmp_path / "remote.git"
    run_git(tmp_path, "init", "-q", "--bare", "-b", "main", str(remote))

    seed = tmp_path / "seed"
    run_git(tmp_path, "clone", "-q", str(remote), str(seed))
    run_git(seed, "config", "user.name", "Seed")
    run_git(seed, "config", "user.email", "seed@example.com")
    run_git(seed, "symbolic-ref", "HEAD", "refs/heads/main")
    (seed / "metadata.json").write_text(
        json.dumps(empty_document(), indent=2) + "\n", encoding="utf-8"
    )
    run_git(seed, "add", "-A")
    run_git(seed, "commit", "-q", "-m", "Initial library")
    run_git(seed, "push", "-q", "origin", "HEAD:refs/heads/main")
    return remote


@pytest.fixture
def clone(tmp_path, remote_repo):
    """Factory: clone the remote into ``tmp_path/<name>``."""

    def _clone(name: str) -> Path:
        path = tmp_path / name
        run_git(tmp_path, "clone", "-q", str(remote_repo), str(path))
        run_git(path, "config", "user.name", f"User {name}")
        run_git(path, "config", "user.email", f"{name}@example.com")
        return path

    return _clone


@pytest.fixture
def make_config(tmp_path):
    """Factory: Config for a working copy, large-file checks disabled."""

    def _make(repo: Path, **overrides) -> Config:
        values = {
            "repo_path": str(repo),
            "large_asset_extension": False,
            "log_path": str(tmp_path / "logs" / f"{repo.name}.json"),
        }
        values.update(overrides)
        return Config(**values)

    return _make


@pytest.fixture
def make_service(make_config):
    """Factory: SyncService for a working copy."""

    def _make(repo: Path, **overrides) -> SyncService:
        return SyncService(make_config(repo, **overrides))

    return _make


@pytest.fixture
def remote_files(remote_repo):
    """List the files on the remote branch."""

    def _files() -> list[str]:
        out = run_git(remote_repo, "ls-tree", "-r", "--name-only", "main")
        return out.split()

    return _files
