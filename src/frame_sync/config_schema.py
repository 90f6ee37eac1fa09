"""Unified configuration schema for frame_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the repository, the sync engine, and logging. Includes an
adapter function that produces the runtime ``Config`` dataclass.

Usage:
    from frame_sync.config_schema import (
        UnifiedConfig, build_config, to_legacy_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_legacy_config(unified, cli_overrides={"repo": "/srv/frame_art"})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RepositoryConfig(BaseModel):
    """Working copy and remote settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    path: str | None = Field(
        default=None, description="Working copy of the art library"
    )
    remote: str = Field(default="origin", description="Remote name")
    branch: str = Field(default="main", description="Branch to sync")
    expected_remote: str | None = Field(
        default=None,
        description="Substring the remote URL must contain (e.g. owner/repo)",
    )
    large_asset_extension: bool = Field(
        default=True, description="Require Git LFS to be installed"
    )
    metadata_file: str = Field(
        default="metadata.json", description="Metadata document path"
    )
    library_dir: str = Field(
        default="library", description="Directory holding asset files"
    )
    thumbs_dir: str = Field(
        default="thumbs", description="Directory holding thumbnails"
    )
    git_timeout: int = Field(
        default=120,
        ge=1,
        le=3600,
        description="Seconds before a git call is abandoned (1-3600)",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Sync engine settings.

    Attributes:
        log_path: Where the bounded sync log is persisted.
        log_limit: Maximum number of sync log entries kept.
        check_on_startup: Run one remote check when the server starts.
    """

    log_path: str | None = Field(default=None, description="Sync log path")
    log_limit: int = Field(default=100, ge=1, le=10000)
    check_on_startup: bool = Field(default=True)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` is always
    valid.
    """

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def fallbacks(self) -> dict:
        """Flatten ``repository`` and ``sync`` into ``load_config`` fallbacks.

        ``None`` values are dropped so they never shadow built-in defaults.
        """
        merged = {
            **self.repository.model_dump(),
            **self.sync.model_dump(),
        }
        return {k: v for k, v in merged.items() if v is not None}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully: anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the runtime ``Config`` dataclass,
    applying CLI overrides on top.

    CLI overrides dict keys: repo, remote, branch, debug.

    Returns:
        ``Config`` instance (NOT validated; caller should run
        ``validate_config()`` separately if needed).
    """
    # Import here to avoid circular imports
    from .config import DEFAULT_LOG_PATH, Config

    overrides = cli_overrides or {}
    repo = unified.repository
    sync = unified.sync

    return Config(
        repo_path=overrides.get("repo") or repo.path or "",
        remote=overrides.get("remote") or repo.remote,
        branch=overrides.get("branch") or repo.branch,
        expected_remote=repo.expected_remote,
        large_asset_extension=repo.large_asset_extension,
        metadata_file=repo.metadata_file,
        library_dir=repo.library_dir,
        thumbs_dir=repo.thumbs_dir,
        git_timeout=repo.git_timeout,
        log_path=sync.log_path or DEFAULT_LOG_PATH,
        log_limit=sync.log_limit,
        check_on_startup=sync.check_on_startup,
        debug=overrides.get("debug", False),
    )
