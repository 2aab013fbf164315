"""Task bead lifecycle.

A task moves ``backlog -> ready -> closed``. The stage is carried by exactly
one of the ``backlog``/``ready`` labels; ``in-progress`` and ``trivial`` are
advisory labels on top. Ownership is the ``parent`` field: a task belongs to
the agent whose identity bead is its parent, and only that agent may comment
on, show or close it.

Stage changes always remove the old label before adding the new one, so a
task never carries both stage labels at once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..identity.resolver import IdentityResolver
from ..memory.search import BackgroundIndexer
from ..memory.workspace import WorkspaceMemory, validate_agent_id
from ..permissions.context import ToolContext
from ..permissions.guard import AccessGuard, check_label
from ..permissions.permissions import Permission
from ..storage.bead_store import BeadStore
from ..storage.query_builder import LabelQueryBuilder
from ..storage.records import (
    BACKLOG_LABEL,
    IDENTITY_LABEL,
    READY_LABEL,
    TASK_LABEL,
    TOPIC_LABEL,
    TRIVIAL_LABEL,
    Record,
    TaskStage,
    agent_labels,
    is_task,
    task_stage,
)
from ..utils.errors import (
    AuthorizationError,
    InvalidStateError,
    MissingIdentityError,
    ValidationError,
)
from .closure import write_closure_note

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#([A-Za-z0-9_-]+)")
SPEC_REFERENCE_MARKER = "spec"

LIST_MODES = ("mine", "ready", "backlog", "all", "unassigned", "label:<name>")

# Hashtags that would turn a task into a different kind of bead
RESERVED_HASHTAGS = frozenset({IDENTITY_LABEL, TOPIC_LABEL})


def parse_hashtags(text: str) -> tuple[str, list[str]]:
    """Split creation text into a title and hashtag labels.

    Example:
        parse_hashtags("Fix bug #urgent #ready")
        # ("Fix bug", ["urgent", "ready"])
    """
    labels: list[str] = []
    for tag in HASHTAG_PATTERN.findall(text):
        if tag not in labels:
            labels.append(tag)
    title = " ".join(HASHTAG_PATTERN.sub(" ", text).split())
    return title, labels


def has_spec_reference(record: Record) -> bool:
    """Heuristic: the title or description mentions a spec."""
    haystack = f"{record.title}\n{record.description}".lower()
    return SPEC_REFERENCE_MARKER in haystack


@dataclass(frozen=True)
class TaskCreation:
    """Result of creating a task."""

    bead_id: str
    title: str
    labels: list[str] = field(default_factory=list)
    status: str = BACKLOG_LABEL


class TaskLifecycle:
    """Create, promote, assign, comment on, show, close and list tasks.

    Example:
        tasks = TaskLifecycle(store, resolver, guard, memory, indexer, roster)
        created = await tasks.create("Fix login bug #urgent")
        await tasks.promote(coordinator_ctx, created.bead_id, "specs/login.md")
    """

    def __init__(
        self,
        store: BeadStore,
        resolver: IdentityResolver,
        guard: AccessGuard,
        memory: WorkspaceMemory,
        indexer: BackgroundIndexer | None = None,
        roster: frozenset[str] = frozenset({"main"}),
    ):
        self.store = store
        self.resolver = resolver
        self.guard = guard
        self.memory = memory
        self.indexer = indexer
        self.roster = roster

    # ------------------------------------------------------------------
    # Creation and stage transitions
    # ------------------------------------------------------------------

    async def create(self, text: str) -> TaskCreation:
        """Create a task from text with optional hashtags.

        ``#ready`` creates the task ready; otherwise it starts in backlog.
        ``#trivial`` marks it as not needing a spec to be promoted.

        Raises:
            ValidationError: Empty title, reserved hashtag, agent hashtag,
                or both ``#ready`` and ``#backlog``
        """
        title, tags = parse_hashtags(text)
        if not title:
            raise ValidationError("Task title cannot be empty.")

        for tag in tags:
            if tag in RESERVED_HASHTAGS:
                raise ValidationError(f"Cannot create a task with '#{tag}'.")
            check_label(tag, general_path=False).raise_if_denied()
            if tag in self.roster:
                raise ValidationError(
                    f"Cannot label a task '#{tag}' at creation. Use task_assign to assign it."
                )

        if READY_LABEL in tags and BACKLOG_LABEL in tags:
            raise ValidationError("A task cannot be both #ready and #backlog.")

        stage = READY_LABEL if READY_LABEL in tags else BACKLOG_LABEL
        extra = [tag for tag in tags if tag not in (READY_LABEL, BACKLOG_LABEL, TASK_LABEL)]
        labels = [TASK_LABEL, *extra, stage]

        bead_id = await self.store.create(title, labels=labels)
        if stage == READY_LABEL:
            status = READY_LABEL
        elif TRIVIAL_LABEL in extra and BACKLOG_LABEL not in tags:
            status = f"{BACKLOG_LABEL} (trivial)"
        else:
            status = BACKLOG_LABEL
        logger.info(f"Task {bead_id} created ({status}): {title}")
        return TaskCreation(bead_id=bead_id, title=title, labels=labels, status=status)

    async def promote(self, ctx: ToolContext, bead_id: str, spec_ref: str | None = None) -> Record:
        """Move a task from backlog to ready.

        Only the coordinator promotes. A non-trivial task needs a spec
        reference, either already in its title/description or supplied as
        ``spec_ref``, which is appended to the description first.

        Raises:
            AuthorizationError: If the caller is not the coordinator
            InvalidStateError: If the bead is not a backlog task
            ValidationError: If a non-trivial task has no spec reference
        """
        if not ctx.can(Permission.COORDINATE):
            raise AuthorizationError(
                f"Only the {ctx.coordinator_agent} agent can promote tasks. "
                f"You are '{ctx.agent_id}'."
            )

        record = await self.store.show(bead_id)
        if not is_task(record):
            raise InvalidStateError(f"Bead '{bead_id}' is not a task.")
        stage = task_stage(record)
        if stage is TaskStage.READY:
            raise InvalidStateError(f"Task '{bead_id}' is already ready.")
        if stage is not TaskStage.BACKLOG:
            raise InvalidStateError(f"Task '{bead_id}' is not in backlog (state: {stage.value}).")

        spec_ref = spec_ref.strip() if spec_ref else None
        trivial = record.has(TRIVIAL_LABEL)
        if not trivial and not spec_ref and not has_spec_reference(record):
            raise ValidationError(
                f"Task '{bead_id}' has no spec reference. Pass the spec name as text, "
                "or create the task with #trivial."
            )

        if spec_ref:
            description = f"{record.description}\n\n{spec_ref}" if record.description else spec_ref
            await self.store.update_description(bead_id, description)

        await self.store.label_remove(bead_id, BACKLOG_LABEL)
        await self.store.label_add(bead_id, READY_LABEL)
        logger.info(f"Task {bead_id} promoted to ready by {ctx.agent_id}")
        return await self.store.show(bead_id)

    async def assign(self, ctx: ToolContext, bead_id: str, target_agent_id: str) -> Record:
        """Assign a task to an agent.

        The coordinator may assign any task. Any other agent may only take an
        unassigned task for itself. Reassignment replaces the parent and the
        agent label; the previous owner's label is removed.

        Raises:
            ValidationError: If the target is not a known agent
            InvalidStateError: If the bead is not an open task
            AuthorizationError: If the caller may not make this assignment
            MissingIdentityError: If the target agent has no identity bead
        """
        target_agent_id = validate_agent_id(target_agent_id.strip())
        if target_agent_id not in self.roster:
            raise ValidationError(
                f"Unknown agent '{target_agent_id}'. Known agents: {', '.join(sorted(self.roster))}"
            )

        record = await self.store.show(bead_id)
        if not is_task(record):
            raise InvalidStateError(f"Bead '{bead_id}' is not a task.")
        if not record.is_open:
            raise InvalidStateError(f"Task '{bead_id}' is closed.")

        self_claim = target_agent_id == ctx.agent_id and record.parent is None
        if not ctx.is_coordinator and not self_claim:
            raise AuthorizationError(
                f"Only the {ctx.coordinator_agent} agent can assign this task. "
                "You can only take unassigned tasks for yourself."
            )

        target_identity = await self.resolver.resolve([target_agent_id])
        if target_identity is None:
            raise MissingIdentityError(
                f"No identity bead found for agent '{target_agent_id}'. It must run 'init' first."
            )

        await self.store.set_parent(bead_id, target_identity)
        if target_agent_id not in record.labels:
            await self.store.label_add(bead_id, target_agent_id)
        for previous in sorted(agent_labels(record, self.roster) - {target_agent_id}):
            await self.store.label_remove(bead_id, previous)

        logger.info(f"Task {bead_id} assigned to {target_agent_id} by {ctx.agent_id}")
        return await self.store.show(bead_id)

    # ------------------------------------------------------------------
    # Owner-only operations
    # ------------------------------------------------------------------

    async def comment(self, bead_id: str, identity_id: str | None, text: str) -> None:
        """Comment on one of the caller's tasks."""
        await self.guard.require_task(bead_id, identity_id)
        await self.store.comment_add(bead_id, text)

    async def show(self, bead_id: str, identity_id: str | None) -> Record:
        """Show one of the caller's tasks with its comments."""
        record = await self.guard.require_task(bead_id, identity_id)
        comments = await self.store.comments_list(bead_id)
        return record.model_copy(update={"comments": comments})

    async def close(self, agent_id: str, bead_id: str, identity_id: str | None) -> str:
        """Close one of the caller's tasks.

        The closure note is written to the owner's daily file first; the
        record is only closed once the note is on disk.

        Returns:
            The closure note
        """
        record = await self.guard.require_task(bead_id, identity_id)
        if not record.is_open:
            raise InvalidStateError(f"Task '{bead_id}' is already closed.")

        note = f"Task closed: {record.title} ({record.id})"
        write_closure_note(self.memory, self.indexer, agent_id, note)
        await self.store.close(bead_id)
        return note

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list(self, mode: str | None, identity_id: str | None) -> list[Record]:
        """List open tasks.

        Modes: ``mine`` (default, parent is the caller's identity),
        ``ready``, ``backlog``, ``all`` (everything not in backlog),
        ``unassigned`` (no agent label, not in backlog) and ``label:<name>``.
        Filters the query language cannot express are applied here.
        """
        mode = (mode or "mine").strip()
        query = LabelQueryBuilder().label(TASK_LABEL)

        if mode == "mine":
            if identity_id is None:
                raise MissingIdentityError()
            records = await self.store.query(query.parent(identity_id).open().build())
            return [r for r in records if is_task(r) and r.parent == identity_id]
        if mode == READY_LABEL:
            records = await self.store.query(query.label(READY_LABEL).open().build())
            return [r for r in records if is_task(r)]
        if mode == BACKLOG_LABEL:
            records = await self.store.query(query.label(BACKLOG_LABEL).open().build())
            return [r for r in records if is_task(r)]
        if mode == "all":
            records = await self.store.query(query.open().build())
            return [r for r in records if is_task(r) and not r.has(BACKLOG_LABEL)]
        if mode == "unassigned":
            records = await self.store.query(query.open().build())
            return [
                r
                for r in records
                if is_task(r) and not r.has(BACKLOG_LABEL) and not agent_labels(r, self.roster)
            ]
        if mode.startswith("label:"):
            label = mode[len("label:") :].strip()
            if not label:
                raise ValidationError("Label mode needs a name, e.g. 'label:urgent'.")
            records = await self.store.query(query.label(label).open().build())
            return [r for r in records if is_task(r)]

        raise ValidationError(f"Unknown list mode '{mode}'. Use one of: {', '.join(LIST_MODES)}")
