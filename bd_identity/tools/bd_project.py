"""The ``bd_project`` tool: shared project beads and the task lifecycle.

General commands give full bead access except to identity beads: writes to
them are refused and they are left out of reads. Task and topic beads can be
shown, commented on, edited and labelled here only by their owners, and are
closed only through their lifecycle commands.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..permissions.context import ToolContext
from ..permissions.guard import check_label
from ..permissions.tool_permissions import commands_for
from ..storage.records import Record, is_identity
from ..utils.tool_decorators import handle_tool_errors
from .common import authorize, require_param
from .formatting import format_record, format_record_list
from .services import ToolServices

logger = logging.getLogger(__name__)

TOOL_NAME = "bd_project"

# Task commands need a gateway session, like every agent_self command
SESSION_COMMANDS = frozenset(c for c in commands_for(TOOL_NAME) if c.startswith("task_"))

DESCRIPTION = """Manage project and task beads. Full bead access EXCEPT agent identity beads; \
identity beads are managed exclusively through agent_self.

Commands:
- show (id), list, ready, query (text = expression)
- comment (id, text), edit (id, text), create (text = title), close (id)
- label (id, text = label; identity, task, topic, trivial, stage and agent labels are refused)
- sync

Tasks (backlog -> ready -> closed):
- task_create (text = title with optional #hashtags; #ready, #trivial, #backlog)
- task_list (text = mine | ready | backlog | all | unassigned | label:<name>)
- task_show (id), task_comment (id, text), task_close (id): your own tasks only
- task_promote (id, text = spec reference): coordinator only
- task_assign (id, text = agent id): coordinator, or take an unassigned task yourself"""


def input_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "enum": commands_for(TOOL_NAME),
                "description": "The project command to run",
            },
            "id": {
                "type": "string",
                "description": "Bead ID (for show, comment, edit, close, label and task_* commands)",
            },
            "text": {
                "type": "string",
                "description": "Text content (title, comment, description, query, label, list mode)",
            },
        },
        "required": ["command"],
    }


def _visible(records: list[Record]) -> list[Record]:
    """Drop identity beads from general-path reads."""
    return [r for r in records if not is_identity(r)]


class ProjectCommands:
    """One method per ``bd_project`` command."""

    def __init__(self, ctx: ToolContext, services: ToolServices):
        self.ctx = ctx
        self.services = services

    @property
    def store(self):
        return self.services.store

    async def _resolve_identity(self) -> str | None:
        return await self.services.identity_id(self.ctx)

    async def _authorize(self, command: str, bead_id: str) -> Record:
        return await self.services.guard.require_project_access(
            command, bead_id, self.ctx.agent_id, self._resolve_identity
        )

    # General reads

    async def show(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "show").strip()
        record = await self._authorize("show", bead_id)
        return {"message": format_record(record), "bead": record.to_dict()}

    async def list(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        records = _visible(await self.store.list(self.services.settings.bd_list_limit))
        return {"message": format_record_list(records), "beads": [r.to_dict() for r in records]}

    async def ready(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        records = _visible(await self.store.ready())
        return {"message": format_record_list(records), "beads": [r.to_dict() for r in records]}

    async def query(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        expression = require_param(text, "text", "query").strip()
        records = _visible(await self.store.query(expression))
        return {"message": format_record_list(records), "beads": [r.to_dict() for r in records]}

    # General writes

    async def comment(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "comment").strip()
        text = require_param(text, "text", "comment")
        await self._authorize("comment", bead_id)
        await self.store.comment_add(bead_id, text)
        return {"message": f"Comment added to {bead_id}", "bead_id": bead_id}

    async def edit(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "edit").strip()
        text = require_param(text, "text", "edit")
        await self._authorize("edit", bead_id)
        await self.store.update_description(bead_id, text)
        return {"message": f"Description updated on {bead_id}", "bead_id": bead_id}

    async def create(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        title = require_param(text, "text", "create", "bead title").strip()
        new_id = await self.store.create(title)
        return {"message": f"Created bead: {new_id}", "bead_id": new_id}

    async def close(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "close").strip()
        await self._authorize("close", bead_id)
        await self.store.close(bead_id)
        return {"message": f"Closed {bead_id}", "bead_id": bead_id}

    async def label(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "label").strip()
        label = require_param(text, "text", "label", "label name").strip()
        roster = self.services.settings.roster
        check_label(label, general_path=True, roster=roster).raise_if_denied()
        await self._authorize("label", bead_id)
        await self.store.label_add(bead_id, label)
        return {"message": f"Label '{label}' added to {bead_id}", "bead_id": bead_id}

    async def sync(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        output = await self.store.sync()
        return {"message": output or "Synced."}

    # Task lifecycle

    async def task_create(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        text = require_param(text, "text", "task_create", "task title")
        created = await self.services.tasks.create(text)
        return {
            "message": f"Created task {created.bead_id}: {created.title} (status: {created.status})",
            "bead_id": created.bead_id,
            "labels": created.labels,
            "task_status": created.status,
        }

    async def task_list(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        mode = (text or "mine").strip() or "mine"
        identity_id = await self._resolve_identity() if mode == "mine" else None
        tasks = await self.services.tasks.list(mode, identity_id)
        return {
            "message": format_record_list(tasks, empty=f"No tasks ({mode})."),
            "tasks": [t.to_dict() for t in tasks],
        }

    async def task_show(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "task_show").strip()
        record = await self.services.tasks.show(bead_id, await self._resolve_identity())
        return {"message": format_record(record), "bead": record.to_dict()}

    async def task_promote(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "task_promote").strip()
        record = await self.services.tasks.promote(self.ctx, bead_id, text)
        return {"message": f"Task {bead_id} promoted to ready", "bead": record.to_dict()}

    async def task_assign(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "task_assign").strip()
        target = (text or "").strip() or self.ctx.agent_id
        record = await self.services.tasks.assign(self.ctx, bead_id, target)
        return {"message": f"Task {bead_id} assigned to {target}", "bead": record.to_dict()}

    async def task_comment(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "task_comment").strip()
        text = require_param(text, "text", "task_comment")
        await self.services.tasks.comment(bead_id, await self._resolve_identity(), text)
        return {"message": f"Comment added to {bead_id}", "bead_id": bead_id}

    async def task_close(self, bead_id: str | None, text: str | None) -> dict[str, Any]:
        bead_id = require_param(bead_id, "id", "task_close").strip()
        note = await self.services.tasks.close(
            self.ctx.agent_id, bead_id, await self._resolve_identity()
        )
        return {"message": f"Closed {bead_id}. {note}", "bead_id": bead_id, "note": note}


def create_bd_project_handler(
    ctx: ToolContext, services: ToolServices
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Build the ``bd_project`` handler bound to the caller's context."""
    commands = ProjectCommands(ctx, services)

    @handle_tool_errors
    async def bd_project(command: str, id: str | None = None, text: str | None = None) -> dict[str, Any]:
        if command in SESSION_COMMANDS:
            ctx.require_session()
        authorize(ctx, TOOL_NAME, command)
        logger.info(f"bd_project {command} {id or ''} for {ctx.caller}")
        handler = getattr(commands, command)
        return await handler(id, text)

    return bd_project
