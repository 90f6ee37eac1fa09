"""MCP Server exposing the frame art sync engine over stdio.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..logger import setup_logging
from ..sync.service import SyncService
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

server = Server("frame-sync-server")

# Initialized in main()
_service: SyncService | None = None
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_service() -> SyncService:
    """Get the global SyncService instance.

    Raises:
        RuntimeError: If the service is not initialized
    """
    if _service is None:
        raise RuntimeError("SyncService not initialized. Server lifespan not started.")
    return _service


def set_service(service: SyncService | None) -> None:
    global _service
    _service = service


def get_registry() -> ToolRegistry:
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    service = get_service()
    try:
        return await get_registry().call_tool(name, arguments, service)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: CLI values (repo, remote, branch, log_file,
            read_only).
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(mode="mcp", log_file=overrides.get("log_file"))

    registry = ToolRegistry(ALL_SPECS, read_only=overrides.get("read_only", False))
    logger.info(
        "Registered %d tools (of %d total)", registry.tool_count(), len(ALL_SPECS)
    )
    set_registry(registry)

    # set_service() is called here rather than in the lifespan so that
    # running as __main__ does not update a second copy of this module.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_service(ctx["service"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="frame-sync-server",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_service(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Frame Sync MCP Server - git-backed sync for a frame art library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .frame_sync/config.yml)
  frame-sync-server

  # Point at a working copy
  frame-sync-server --repo /srv/frame_art

  # Expose read-only tools only
  frame-sync-server --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--repo",
        help="Working copy of the art library (overrides FRAME_SYNC_REPO_PATH)",
    )
    parser.add_argument("--remote", help="Remote name (overrides FRAME_SYNC_REMOTE)")
    parser.add_argument("--branch", help="Branch to sync (overrides FRAME_SYNC_BRANCH)")
    parser.add_argument(
        "--log-file",
        default="/tmp/frame-sync-server.log",
        help="Log file path (default: /tmp/frame-sync-server.log)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Hide tools that commit, pull, push, abort, reset or clear the sync log",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"frame-sync-server version {__version__}",
    )
    args = parser.parse_args()

    config_overrides = {
        key: value
        for key, value in {
            "repo": args.repo,
            "remote": args.remote,
            "branch": args.branch,
            "log_file": args.log_file,
            "read_only": args.read_only,
        }.items()
        if value
    }

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Error already printed to stderr during startup
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
