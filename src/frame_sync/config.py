"""Runtime configuration for the sync server.

Reads repository and sync settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    FRAME_SYNC_REPO_PATH: Working copy of the art library (required)
    FRAME_SYNC_REMOTE: Remote name (optional, default: origin)
    FRAME_SYNC_BRANCH: Branch to sync (optional, default: main)
    FRAME_SYNC_EXPECTED_REMOTE: Substring the remote URL must contain (optional)
    FRAME_SYNC_LFS: Require the Git LFS extension (optional, default: true)
    FRAME_SYNC_LOG_PATH: Sync log file (optional, default: ~/.frame_sync/sync_logs.json)
    FRAME_SYNC_LOG_LIMIT: Max sync log entries kept (optional, default: 100)
    FRAME_SYNC_GIT_TIMEOUT: Seconds before a git call is abandoned (optional, default: 120)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = str(Path.home() / ".frame_sync" / "sync_logs.json")


@dataclass
class Config:
    repo_path: str
    remote: str = "origin"
    branch: str = "main"
    expected_remote: str | None = None
    large_asset_extension: bool = True
    metadata_file: str = "metadata.json"
    library_dir: str = "library"
    thumbs_dir: str = "thumbs"
    git_timeout: int = 120
    log_path: str = field(default=DEFAULT_LOG_PATH)
    log_limit: int = 100
    check_on_startup: bool = True
    debug: bool = False

    @property
    def repo(self) -> Path:
        return Path(self.repo_path)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the repository path is missing, names are empty, or
            numeric limits are out of range.
    """
    config.repo_path = config.repo_path.strip()
    repo = Path(config.repo_path).expanduser()
    if not repo.exists():
        raise ValueError(
            f"Repository path '{config.repo_path}' does not exist"
        )
    if not repo.is_dir():
        raise ValueError(
            f"Repository path '{config.repo_path}' is not a directory"
        )
    config.repo_path = str(repo.resolve())

    if not config.remote.strip():
        raise ValueError("Remote name cannot be empty.")
    if not config.branch.strip():
        raise ValueError("Branch name cannot be empty.")

    if not (1 <= config.git_timeout <= 3600):
        raise ValueError(
            f"Invalid git timeout {config.git_timeout}: must be between 1 and 3600 seconds"
        )
    if not (1 <= config.log_limit <= 10000):
        raise ValueError(
            f"Invalid log limit {config.log_limit}: must be between 1 and 10000"
        )

    # The log must not dirty the working tree it audits
    log_path = Path(config.log_path).expanduser().resolve()
    if log_path.is_relative_to(Path(config.repo_path)):
        raise ValueError(
            f"Sync log path '{config.log_path}' must be outside the repository"
        )
    config.log_path = str(log_path)

    if not config.large_asset_extension:
        logger.warning(
            "Git LFS check disabled (large_asset_extension=False). Binary assets will be committed as regular blobs."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int_env(key: str, low: int, high: int) -> int | None:
    """Return an int from env var, or None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    repo_path: str | None = None,
    remote: str | None = None,
    branch: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        repo_path: Override repository path.
        remote: Override remote name.
        branch: Override branch name.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened values from the YAML ``repository`` and
            ``sync`` sections, used when CLI arg and env var are unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the repository path is missing after checking all
            sources, or any value fails validation.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    final_repo = (
        repo_path or os.getenv("FRAME_SYNC_REPO_PATH") or fb.get("path")
    )
    if not final_repo:
        raise ValueError(
            "Repository path not found. Set FRAME_SYNC_REPO_PATH environment variable, "
            "pass --repo CLI argument, or add 'repository.path' to config.yml."
        )

    final_remote = (
        remote or os.getenv("FRAME_SYNC_REMOTE") or fb.get("remote") or "origin"
    )
    final_branch = (
        branch or os.getenv("FRAME_SYNC_BRANCH") or fb.get("branch") or "main"
    )
    final_expected = os.getenv("FRAME_SYNC_EXPECTED_REMOTE") or fb.get(
        "expected_remote"
    )
    final_log_path = (
        os.getenv("FRAME_SYNC_LOG_PATH") or fb.get("log_path") or DEFAULT_LOG_PATH
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    env_lfs = _get_bool_env("FRAME_SYNC_LFS")
    if env_lfs is not None:
        final_lfs = env_lfs
    else:
        final_lfs = bool(fb.get("large_asset_extension", True))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("FRAME_SYNC_DEBUG")
        final_debug = env_debug if env_debug is not None else False

    # --- Numeric fields: env > YAML > default ---

    final_timeout = _get_int_env("FRAME_SYNC_GIT_TIMEOUT", 1, 3600)
    if final_timeout is None:
        final_timeout = int(fb.get("git_timeout", 120))

    final_limit = _get_int_env("FRAME_SYNC_LOG_LIMIT", 1, 10000)
    if final_limit is None:
        final_limit = int(fb.get("log_limit", 100))

    config = Config(
        repo_path=final_repo,
        remote=final_remote.strip(),
        branch=final_branch.strip(),
        expected_remote=final_expected,
        large_asset_extension=final_lfs,
        metadata_file=fb.get("metadata_file", "metadata.json"),
        library_dir=fb.get("library_dir", "library"),
        thumbs_dir=fb.get("thumbs_dir", "thumbs"),
        git_timeout=final_timeout,
        log_path=final_log_path,
        log_limit=final_limit,
        check_on_startup=bool(fb.get("check_on_startup", True)),
        debug=final_debug,
    )

    validate_config(config)

    return config
