"""MCP tool definitions and handlers."""
