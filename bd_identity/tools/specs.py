"""The ``specs`` tool: shared spec documents."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..permissions.context import ToolContext
from ..permissions.tool_permissions import commands_for
from ..utils.tool_decorators import handle_tool_errors
from .common import authorize, require_param
from .services import ToolServices

logger = logging.getLogger(__name__)

TOOL_NAME = "specs"

DESCRIPTION = """Read and write spec documents. Specs are markdown documents that define work \
for agents: PRDs, design docs, implementation plans.

Specs live in workspace/specs/ and are shared across all agents.

Commands:
- list: List the names of all specs (available to all agents)
- read: Read a spec by name (available to all agents)
- write: Create or replace a spec (coordinator only)

Specs are referenced by name (no extension needed). Task beads carry the spec name."""


def input_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "enum": commands_for(TOOL_NAME),
                "description": "The specs command to run",
            },
            "name": {
                "type": "string",
                "description": 'Spec name, e.g. "red-team". No .md extension needed.',
            },
            "text": {
                "type": "string",
                "description": "Markdown content for the spec (required for write).",
            },
        },
        "required": ["command"],
    }


def create_specs_handler(
    ctx: ToolContext, services: ToolServices
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Build the ``specs`` handler bound to the caller's context."""

    @handle_tool_errors
    async def specs(command: str, name: str | None = None, text: str | None = None) -> dict[str, Any]:
        authorize(ctx, TOOL_NAME, command)

        if command == "list":
            names = services.specs.list()
            message = "\n".join(names) if names else "No specs yet."
            return {"message": message, "specs": names}

        name = require_param(name, "name", command)

        if command == "read":
            content = services.specs.read(name)
            return {"message": content, "name": name}

        text = require_param(text, "text", "write")
        path = services.specs.write(name, text)
        logger.info(f"Spec {path.name} written by {ctx.agent_id}")
        return {"message": f"Spec written: specs/{path.name}", "name": path.stem}

    return specs
