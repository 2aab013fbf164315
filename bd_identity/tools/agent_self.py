"""The ``agent_self`` tool: the caller's own identity bead, memory and topics.

Every command acts on the caller as identified by the gateway. There is no
parameter for choosing another agent, so an agent can never reach another
agent's identity bead or memory directory through this tool.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..memory.search import ALL_SCOPE
from ..memory.workspace import validate_date
from ..permissions.context import ToolContext
from ..permissions.tool_permissions import commands_for
from ..utils.tool_decorators import handle_tool_errors
from .common import authorize, require_param
from .formatting import format_comments, format_record, format_record_list
from .services import ToolServices

logger = logging.getLogger(__name__)

TOOL_NAME = "agent_self"

DESCRIPTION = """Manage your agent identity bead, your workspace memory and your topics. \
Your identity is resolved from your session; you cannot access other agents' beads or memory.

Identity bead:
- whoami: Show your session key, agent id and identity bead
- show: Display your identity bead
- comment: Add a comment to your identity bead
- edit: Replace your identity bead description
- comments: List the comments on your identity bead
- init: Find or create your identity bead

Personality and long-term memory:
- soul_read / soul_write: memory/<agentId>/SOUL.md
- ltm_read / ltm_write: memory/<agentId>/MEMORY.md
- shared_read / shared_write: the shared MEMORY.md (write: coordinator only)

Daily memory:
- memory_write: Append text to today's daily file
- memory_load: Shared MEMORY.md, SOUL.md, your MEMORY.md, yesterday and today
- memory_read: Read one day's file (text = YYYY-MM-DD)
- memory_search: Search your memory (text = query)
- memory_search_all: Search every agent's memory (text = query)

Topics (short-lived working memory beads):
- topic_create (text = title), topic_list, topic_show (id),
  topic_comment (id, text), topic_close (id; writes a closure note to today's file)

Keep your identity bead lean: current focus, active tasks, recent decisions."""


def input_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "enum": commands_for(TOOL_NAME),
                "description": "The identity command to run",
            },
            "text": {
                "type": "string",
                "description": (
                    "Text for comment, edit, *_write and topic commands. Date (YYYY-MM-DD) "
                    "for memory_read. Query string for memory_search."
                ),
            },
            "id": {
                "type": "string",
                "description": "Topic bead id (for topic_show, topic_comment, topic_close)",
            },
        },
        "required": ["command"],
    }


class AgentSelfCommands:
    """One method per ``agent_self`` command."""

    def __init__(self, ctx: ToolContext, services: ToolServices):
        self.ctx = ctx
        self.services = services

    @property
    def agent_id(self) -> str:
        return self.ctx.agent_id

    # Identity bead

    async def whoami(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        caller = self.ctx.caller
        identity_id = await self.services.identity_id(self.ctx)
        role = "coordinator" if self.ctx.is_coordinator else "worker"
        lines = [
            f"Session Key: {caller.session_key}",
            f"Agent ID:    {caller.agent_id}",
            f"Bead ID:     {identity_id or '<not found, run init>'}",
            f"Labels:      {', '.join(caller.labels)}",
            f"Sandboxed:   {'unknown' if caller.sandboxed is None else caller.sandboxed}",
            f"Role:        {role}",
            f"Memory Dir:  memory/{caller.agent_id}/",
        ]
        return {"message": "\n".join(lines), "identity_id": identity_id, **caller.to_dict()}

    async def show(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        identity_id = await self.services.require_identity_id(self.ctx)
        record = await self.services.guard.require_identity_write(identity_id, identity_id)
        comments = await self.services.store.comments_list(identity_id)
        record = record.model_copy(update={"comments": comments})
        return {"message": format_record(record), "bead": record.to_dict()}

    async def comment(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "comment")
        identity_id = await self.services.require_identity_id(self.ctx)
        await self.services.guard.require_identity_write(identity_id, identity_id)
        await self.services.store.comment_add(identity_id, text)
        return {"message": f"Comment added to {identity_id}", "bead_id": identity_id}

    async def edit(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "edit")
        identity_id = await self.services.require_identity_id(self.ctx)
        await self.services.guard.require_identity_write(identity_id, identity_id)
        await self.services.store.update_description(identity_id, text)
        return {"message": f"Description updated on {identity_id}", "bead_id": identity_id}

    async def comments(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        identity_id = await self.services.require_identity_id(self.ctx)
        await self.services.guard.require_identity_write(identity_id, identity_id)
        comments = await self.services.store.comments_list(identity_id)
        return {"message": format_comments(comments), "count": len(comments)}

    async def init(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        caller = self.ctx.caller
        resolution = await self.services.resolver.create_or_get(list(caller.labels), caller.agent_id)
        if not resolution.created:
            message = f"Identity bead already exists: {resolution.bead_id}"
        else:
            message = f"Created identity bead: {resolution.bead_id} (label: {resolution.label})"
        return {
            "message": message,
            "bead_id": resolution.bead_id,
            "created": resolution.created,
            "label": resolution.label,
        }

    # Personality and long-term memory

    async def soul_read(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        content = self.services.memory.read_soul(self.agent_id)
        if content is None:
            return {"message": f"No SOUL.md file found for agent {self.agent_id}.", "found": False}
        return {"message": content, "found": True}

    async def soul_write(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "soul_write")
        path = self.services.memory.write_soul(self.agent_id, text)
        return {"message": f"Written to {self.services.memory.relative(path)}"}

    async def ltm_read(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        content = self.services.memory.read_ltm(self.agent_id)
        if content is None:
            return {"message": f"No MEMORY.md file found for agent {self.agent_id}.", "found": False}
        return {"message": content, "found": True}

    async def ltm_write(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "ltm_write")
        path = self.services.memory.write_ltm(self.agent_id, text)
        return {"message": f"Written to {self.services.memory.relative(path)}"}

    async def shared_read(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        content = self.services.memory.read_shared()
        if content is None:
            return {"message": "No shared MEMORY.md file found.", "found": False}
        return {"message": content, "found": True}

    async def shared_write(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "shared_write")
        path = self.services.memory.write_shared(text)
        return {"message": f"Written to {self.services.memory.relative(path)}"}

    # Daily memory

    async def memory_write(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "memory_write")
        path = self.services.memory.append_daily(self.agent_id, text)
        self.services.indexer.schedule(self.agent_id, path.stem, path)
        return {"message": f"Appended to {self.services.memory.relative(path)}"}

    async def memory_load(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        return {"message": self.services.memory.load(self.agent_id)}

    async def memory_read(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "memory_read", "date as YYYY-MM-DD")
        date_str = validate_date(text)
        content = self.services.memory.read_daily(self.agent_id, date_str)
        if not content:
            return {"message": f"No memory file for {date_str} ({self.agent_id}).", "found": False}
        return {"message": content, "found": True}

    async def memory_search(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "memory_search", "search query")
        results = await self.services.search.search(self.agent_id, text.strip())
        return {"message": results.format(), "results": results.to_dict()}

    async def memory_search_all(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "memory_search_all", "search query")
        results = await self.services.search.search(ALL_SCOPE, text.strip())
        return {"message": results.format(), "results": results.to_dict()}

    # Topics

    async def topic_create(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        title = require_param(text, "text", "topic_create", "topic title")
        identity_id = await self.services.identity_id(self.ctx)
        new_id = await self.services.topics.create(self.agent_id, identity_id, title)
        return {"message": f"Created topic: {new_id}", "bead_id": new_id}

    async def topic_list(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        topics = await self.services.topics.list(self.agent_id)
        return {
            "message": format_record_list(topics, empty="No open topics."),
            "topics": [t.to_dict() for t in topics],
        }

    async def topic_show(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "topic_show").strip()
        record = await self.services.topics.show(self.agent_id, bead_id)
        return {"message": format_record(record), "bead": record.to_dict()}

    async def topic_comment(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "topic_comment").strip()
        text = require_param(text, "text", "topic_comment")
        await self.services.topics.comment(self.agent_id, bead_id, text)
        return {"message": f"Comment added to {bead_id}", "bead_id": bead_id}

    async def topic_close(self, text: str | None, bead_id: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "topic_close").strip()
        note = await self.services.topics.close(self.agent_id, bead_id)
        return {"message": f"Closed {bead_id}. {note}", "bead_id": bead_id, "note": note}


def create_agent_self_handler(
    ctx: ToolContext, services: ToolServices
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Build the ``agent_self`` handler bound to the caller's context."""
    commands = AgentSelfCommands(ctx, services)

    @handle_tool_errors
    async def agent_self(command: str, text: str | None = None, id: str | None = None) -> dict[str, Any]:
        ctx.require_session()
        authorize(ctx, TOOL_NAME, command)
        logger.info(f"agent_self {command} for {ctx.caller}")
        handler = getattr(commands, command)
        return await handler(text, id)

    return agent_self
