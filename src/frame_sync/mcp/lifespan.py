"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ..runtime import load_runtime_config, start_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env, YAML config and env vars into one validated Config
    - Fail fast if the configuration is invalid
    - Bootstrap the library layout, report identity problems, and run the
      startup sync check when enabled

    Yields:
        Dict with 'service' key containing the SyncService

    Raises:
        RuntimeError: If configuration is invalid.
    """
    logger.info("MCP server starting...")
    print("Frame Sync MCP Server starting...", file=sys.stderr, flush=True)

    config = load_runtime_config(config_overrides)
    service = await start_service(config)
    print(
        "Server ready. Waiting for MCP client connection...",
        file=sys.stderr,
        flush=True,
    )

    yield {"service": service}

    logger.info("MCP server shutting down")
    print("Frame Sync MCP Server shutting down.", file=sys.stderr, flush=True)
