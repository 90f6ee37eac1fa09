"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, whether the tool
  mutates the working copy, and an async handler with signature
  (service, args) -> CallToolResult.
- ToolRegistry: Drops mutating tools in read-only mode at construction time,
  then provides list_tools() and call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.client import GitCommandError
from ...sync.service import SyncService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        mutating: True if the tool commits, pulls, pushes or clears data.
        handler: Async handler with signature (service, args) -> CallToolResult.
    """

    tool: types.Tool
    mutating: bool
    handler: Callable[[SyncService, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs, optionally restricted to read-only tools."""

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if not (read_only and spec.mutating)
        }

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        service: SyncService,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Git failures, validation errors and unexpected exceptions are
        translated into structured CallToolResult responses.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, translate_git_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(service, args)
        except GitCommandError as e:
            logger.warning("Git failure in %s: %s", name, e)
            return translate_git_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log, then retry.",
            )
