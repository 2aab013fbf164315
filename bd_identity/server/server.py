"""MCP server exposing the identity tools over stdio.

The gateway starts one server per agent session and passes the session
context on the command line or in the environment. Tool arguments never
carry identity.
"""

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import EmbeddedResource, ImageContent, TextContent, Tool

from ..core.config import Settings
from ..permissions.context import ToolContext
from ..permissions.identity import SessionIdentity
from ..tools import TOOL_MODULES, ToolServices

logger = logging.getLogger(__name__)

SERVER_NAME = "bd-identity"


class MCPServerBase:
    """
    MCP server with tool registration.

    Tools are registered with a name, description, JSON schema and an async
    handler; handlers return result dicts which are sent back as JSON text.
    """

    def __init__(self, name: str):
        """
        Initialize MCP server.

        Args:
            name: Server name
        """
        self.app = Server(name)
        self.tools: dict[str, dict[str, Any]] = {}
        self._tool_handlers: dict[str, Callable] = {}

    def register_tool(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        handler: Callable,
    ):
        """
        Register a tool with the server.

        Args:
            name: Tool name
            description: Tool description
            input_schema: JSON schema for tool inputs
            handler: Async function to handle tool calls
        """
        self.tools[name] = {
            "name": name,
            "description": description,
            "input_schema": input_schema,
        }
        self._tool_handlers[name] = handler
        logger.info(f"Registered tool: {name}")

    async def call(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Dispatch a tool call and return its result dict."""
        if name not in self._tool_handlers:
            raise ValueError(f"Unknown tool: {name}")
        return await self._tool_handlers[name](**(arguments or {}))

    def setup_handlers(self) -> None:
        """Set up MCP handlers for tool listing and calling."""

        @self.app.list_tools()
        async def list_tools() -> list[Tool]:
            """List available MCP tools."""
            logger.info("Listing available tools")
            return [
                Tool(
                    name=tool_info["name"],
                    description=tool_info["description"],
                    inputSchema=tool_info["input_schema"],
                )
                for tool_info in self.tools.values()
            ]

        @self.app.call_tool()
        async def call_tool(
            name: str, arguments: Any
        ) -> Sequence[TextContent | ImageContent | EmbeddedResource]:
            """Execute a tool with the given arguments."""
            logger.info(f"Calling tool: {name} with command: {(arguments or {}).get('command')}")

            try:
                result = await self.call(name, arguments)
            except (ValueError, TypeError) as e:
                logger.error(f"Invalid call to {name}: {e}")
                result = {
                    "status": "error",
                    "message": str(e),
                    "error_type": "ValidationError",
                    "retryable": False,
                    "tool": name,
                }

            return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    async def run(self) -> None:
        """Run the MCP server."""
        logger.info(f"Starting MCP Server: {self.app.name}")

        async with stdio_server() as (read_stream, write_stream):
            logger.info("MCP server running on stdio")
            await self.app.run(
                read_stream,
                write_stream,
                self.app.create_initialization_options(),
            )


def build_context(settings: Settings) -> ToolContext:
    """Build the caller context from the gateway-injected settings."""
    caller = SessionIdentity.from_gateway(
        session_key=settings.session_key,
        agent_id=settings.agent_id,
        sandboxed=settings.sandboxed,
    )
    return ToolContext.for_session(caller, coordinator_agent=settings.coordinator_agent)


def create_server(
    settings: Settings,
    services: ToolServices | None = None,
    context: ToolContext | None = None,
) -> MCPServerBase:
    """
    Create the server with agent_self, bd_project and specs registered.

    Args:
        settings: Loaded settings (session context included)
        services: Pre-built components (defaults to ones built from settings)
        context: Caller context (defaults to the one in settings)

    Returns:
        MCPServerBase with handlers set up
    """
    services = services or ToolServices.from_settings(settings)
    context = context or build_context(settings)

    server = MCPServerBase(SERVER_NAME)
    for module, factory in TOOL_MODULES:
        server.register_tool(
            name=module.TOOL_NAME,
            description=module.DESCRIPTION,
            input_schema=module.input_schema(),
            handler=factory(context, services),
        )
    server.setup_handlers()
    logger.info(f"bd-identity: registered {', '.join(server.tools)} for {context.caller}")
    return server
