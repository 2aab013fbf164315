"""MCP server for the identity tools."""

from .server import SERVER_NAME, MCPServerBase, build_context, create_server

__all__ = ["SERVER_NAME", "MCPServerBase", "build_context", "create_server"]
