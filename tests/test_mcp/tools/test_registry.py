"""Tests for ToolSpec and ToolRegistry.

Covers:
- ToolSpec immutability
- Read-only filtering of mutating tools
- call_tool dispatch and error translation
"""

import dataclasses
from unittest.mock import MagicMock

import mcp.types as types
import pytest

from frame_sync.core.client import GitCommandError
from frame_sync.mcp.tools import ALL_SPECS
from frame_sync.mcp.tools.registry import ToolRegistry, ToolSpec


def _make_spec(name: str, mutating: bool = False, handler=None) -> ToolSpec:
    if handler is None:

        async def handler(service, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        mutating=mutating,
        handler=handler,
    )


class TestToolSpec:
    def test_frozen(self):
        spec = _make_spec("sync_status")
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.mutating = True  # type: ignore[misc]


class TestToolRegistry:
    def test_all_tools_listed(self):
        registry = ToolRegistry([_make_spec("a"), _make_spec("b", mutating=True)])
        assert [t.name for t in registry.list_tools()] == ["a", "b"]
        assert registry.tool_count() == 2

    def test_read_only_drops_mutating(self):
        registry = ToolRegistry(
            [_make_spec("a"), _make_spec("b", mutating=True)], read_only=True
        )
        assert [t.name for t in registry.list_tools()] == ["a"]

    def test_read_only_real_specs(self):
        names = {t.name for t in ToolRegistry(ALL_SPECS, read_only=True).list_tools()}
        assert names == {
            "sync_status",
            "sync_logs",
            "sync_git_status",
            "sync_verify",
            "sync_conflicts",
        }

    def test_all_real_specs(self):
        assert ToolRegistry(ALL_SPECS).tool_count() == 11

    async def test_call_dispatches(self):
        registry = ToolRegistry([_make_spec("a")])
        result = await registry.call_tool("a", None, MagicMock())
        assert result.content[0].text == "ok:a"

    async def test_unknown_tool_raises(self):
        registry = ToolRegistry([_make_spec("a")])
        with pytest.raises(ValueError, match="Unknown tool: nope"):
            await registry.call_tool("nope", {}, MagicMock())

    async def test_filtered_tool_raises(self):
        registry = ToolRegistry([_make_spec("b", mutating=True)], read_only=True)
        with pytest.raises(ValueError):
            await registry.call_tool("b", {}, MagicMock())

    async def test_git_error_translated(self):
        async def failing(service, args):
            raise GitCommandError(
                ["fetch"], 128, "fatal: unable to access 'https://example.com/': Could not resolve host"
            )

        registry = ToolRegistry([_make_spec("a", handler=failing)])
        result = await registry.call_tool("a", {}, MagicMock())

        assert result.isError is True
        assert "network_error" in result.content[0].text

    async def test_value_error_translated(self):
        async def failing(service, args):
            raise ValueError("limit must be a positive integer")

        registry = ToolRegistry([_make_spec("a", handler=failing)])
        result = await registry.call_tool("a", {}, MagicMock())

        assert result.isError is True
        assert "validation_error" in result.content[0].text

    async def test_unexpected_error_translated(self):
        async def failing(service, args):
            raise RuntimeError("boom")

        registry = ToolRegistry([_make_spec("a", handler=failing)])
        result = await registry.call_tool("a", {}, MagicMock())

        assert result.isError is True
        assert "server_error" in result.content[0].text
