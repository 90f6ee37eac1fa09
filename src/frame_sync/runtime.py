"""Startup shared by the MCP and HTTP servers.

Resolves configuration from every source, builds the SyncService, and runs
the startup tasks (library layout bootstrap, identity check, startup sync
check).
"""

import logging
import sys
from typing import Any

from dotenv import load_dotenv

from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import build_config
from .core.async_utils import run_sync
from .sync.service import SyncService

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def load_runtime_config(overrides: dict[str, Any] | None = None) -> Config:
    """Load configuration with unified precedence.

    CLI args > env vars (.env loaded first) > YAML config > defaults.

    Args:
        overrides: CLI values (repo, remote, branch, debug).

    Raises:
        RuntimeError: If the configuration is invalid.
    """
    overrides = overrides or {}
    try:
        # .env first so ${VAR} references in YAML can use its values
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        sources = []
        config_files = discover_config_files()
        if config_files:
            yaml_fallbacks = build_config(load_hierarchical_config()).fallbacks()
            sources.append(f"config file: {config_files[0]}")

        config = load_config(
            repo_path=overrides.get("repo"),
            remote=overrides.get("remote"),
            branch=overrides.get("branch"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    if any(overrides.get(k) for k in ("repo", "remote", "branch")):
        sources.append("CLI arguments")
    sources.append("environment variables")
    logger.info("Configuration loaded from: %s", ", ".join(sources))
    logger.info(
        "Repository: %s (%s/%s)", config.repo_path, config.remote, config.branch
    )
    _stderr_print(f"  Repository: {config.repo_path} ({config.remote}/{config.branch})")
    return config


async def start_service(config: Config) -> SyncService:
    """Build the service and run startup tasks.

    Identity problems are reported but do not stop the server: every sync
    attempt reports them again until they are fixed.
    """
    service = SyncService(config)
    created = await run_sync(service.bootstrap)
    if created:
        _stderr_print(f"  Initialized: {', '.join(created)}")

    verification = await run_sync(service.verify)
    for error in verification["verification"]["errors"]:
        logger.warning("Repository configuration problem: %s", error)
        _stderr_print(f"  WARNING: {error}")

    if verification["success"]:
        result = await run_sync(service.startup_check)
        if result is not None:
            _stderr_print(f"  Startup check: {result['message']}")
    return service
