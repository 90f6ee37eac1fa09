"""MCP stdio surface for the sync engine."""
