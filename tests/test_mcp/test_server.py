"""Tests for MCP server handlers and global accessors."""

from unittest.mock import MagicMock

import pytest

from frame_sync.mcp import server
from frame_sync.mcp.tools import ALL_SPECS, ToolRegistry


@pytest.fixture(autouse=True)
def reset_globals():
    yield
    server.set_service(None)
    server.set_registry(None)


class TestAccessors:
    def test_service_not_initialized(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            server.get_service()

    def test_registry_not_initialized(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            server.get_registry()


class TestHandlers:
    async def test_list_tools(self):
        server.set_registry(ToolRegistry(ALL_SPECS, read_only=True))
        tools = await server.handle_list_tools()
        assert "sync_full" not in {t.name for t in tools}

    async def test_unknown_tool(self):
        server.set_registry(ToolRegistry(ALL_SPECS, read_only=True))
        server.set_service(MagicMock())

        result = await server.handle_call_tool("sync_full", {})

        assert result.isError is True
        assert result.content[0].text.startswith("Error (unknown_tool)")
