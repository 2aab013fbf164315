"""Access control over identity, task and topic beads.

The bead store has no ACLs. Ownership is a convention carried by labels and
the parent field, and this module is the one place that interprets it:

- Identity beads (label ``agent-identity``) are writable only through the
  identity tool, and only the caller's own resolved identity bead.
- Nothing may attach ``agent-identity`` to a bead.
- A task belongs to the agent whose identity bead is its parent.
- A topic belongs to the agent whose id it carries as a label.

Every check re-reads the record from the store; no decision is cached,
because labels and parents can change between two calls.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..storage.bead_store import BeadStore
from ..storage.records import (
    IDENTITY_LABEL,
    STAGE_LABELS,
    TASK_LABEL,
    TOPIC_LABEL,
    TRIVIAL_LABEL,
    Record,
    RecordKind,
    classify,
    is_identity,
    is_task,
)
from ..utils.errors import AuthorizationError, RecordNotFoundError

logger = logging.getLogger(__name__)

# Commands on a task or topic that only its owner may run
OWNER_COMMANDS = frozenset({"comment", "edit", "label", "show"})

# Labels that make a bead a task or topic, or mark it trivial
KIND_LABELS = frozenset({TASK_LABEL, TOPIC_LABEL, TRIVIAL_LABEL})


@dataclass(frozen=True)
class AccessDecision:
    """Allow/deny outcome of an access check."""

    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> AccessDecision:
        return cls(False, reason)

    def raise_if_denied(self) -> None:
        """Raise AuthorizationError carrying the denial reason."""
        if not self.allowed:
            logger.warning(f"Access denied: {self.reason}")
            raise AuthorizationError(self.reason)


def check_label(
    label: str,
    general_path: bool = True,
    roster: frozenset[str] = frozenset(),
) -> AccessDecision:
    """Decide whether a label may be attached to a bead.

    ``agent-identity`` is refused on every path. On the general path the
    labels the lifecycles own are refused too: the stage labels ``backlog``
    and ``ready``, the kind labels ``task``, ``topic`` and ``trivial``, and
    agent names from the roster, since an agent label is what makes a topic
    someone's and what marks a task as assigned.
    """
    label = label.strip()
    if label == IDENTITY_LABEL:
        return AccessDecision.deny(
            f"Cannot add '{IDENTITY_LABEL}' label. Identity beads are managed by the platform."
        )
    if not general_path:
        return AccessDecision.allow()
    if label in STAGE_LABELS:
        return AccessDecision.deny(
            f"Cannot add '{label}' label directly. Use task_create or task_promote."
        )
    if label in KIND_LABELS:
        return AccessDecision.deny(
            f"Cannot add '{label}' label directly. Use task_create or agent_self topic_create."
        )
    if label in roster:
        return AccessDecision.deny(
            f"Cannot add agent label '{label}' directly. Use task_assign."
        )
    return AccessDecision.allow()


def check_topic_access(agent_id: str, record: Record) -> AccessDecision:
    """A topic is accessible only to the agent whose id it carries."""
    if is_identity(record) or not record.has(TOPIC_LABEL, agent_id):
        return AccessDecision.deny(f"Bead '{record.id}' is not one of your topics.")
    return AccessDecision.allow()


def check_task_access(identity_id: str | None, record: Record) -> AccessDecision:
    """A task is accessible only to the agent whose identity bead is its parent."""
    if not is_task(record):
        return AccessDecision.deny(f"Bead '{record.id}' is not a task.")
    if identity_id is None or record.parent != identity_id:
        return AccessDecision.deny(f"Task '{record.id}' is not assigned to you.")
    return AccessDecision.allow()


def check_identity_write(resolved_id: str | None, record: Record) -> AccessDecision:
    """The identity path may only touch the caller's own identity bead."""
    if resolved_id is None or record.id != resolved_id:
        return AccessDecision.deny("You can only modify your own identity bead.")
    if not is_identity(record):
        return AccessDecision.deny(f"Bead '{record.id}' is not an identity bead.")
    return AccessDecision.allow()


def check_project_write(
    command: str,
    record: Record,
    agent_id: str,
    identity_id: str | None = None,
) -> AccessDecision:
    """Decide a general-path (bd_project) access to a bead.

    Args:
        command: One of show, comment, edit, close, label
        record: The freshly read target bead
        agent_id: Caller's gateway agent id
        identity_id: Caller's resolved identity bead id, needed for task beads
    """
    kind = classify(record)
    if kind is RecordKind.IDENTITY:
        return AccessDecision.deny(
            f"Bead '{record.id}' is an agent identity bead. "
            "Use agent_self to manage your own identity bead."
        )
    if kind is RecordKind.TASK:
        if command == "close":
            return AccessDecision.deny("Tasks are closed with task_close.")
        if command in OWNER_COMMANDS:
            return check_task_access(identity_id, record)
    if kind is RecordKind.TOPIC:
        if command == "close":
            return AccessDecision.deny("Topics are closed with agent_self topic_close.")
        if command in OWNER_COMMANDS:
            return check_topic_access(agent_id, record)
    return AccessDecision.allow()


class AccessGuard:
    """Store-backed access checks.

    The ``check_*`` functions above are pure decisions over a record. The
    guard fetches the record fresh for every call and raises
    ``AuthorizationError`` on denial.

    Example:
        guard = AccessGuard(store)
        task = await guard.require_task(bead_id, identity_id)
        await store.comment_add(task.id, "done")
    """

    def __init__(self, store: BeadStore):
        self.store = store

    async def is_identity_record(self, bead_id: str) -> bool:
        """True iff the bead carries ``agent-identity``.

        A missing bead is not an identity bead. Store failures propagate, so
        a write is never allowed just because the check could not run.
        """
        try:
            record = await self.store.show(bead_id)
        except RecordNotFoundError:
            return False
        return is_identity(record)

    async def require_identity_write(self, resolved_id: str | None, target_id: str) -> Record:
        """Fetch the target and require it to be the caller's identity bead."""
        try:
            record = await self.store.show(target_id)
        except RecordNotFoundError:
            raise AuthorizationError("You can only modify your own identity bead.") from None
        check_identity_write(resolved_id, record).raise_if_denied()
        return record

    async def require_task(self, bead_id: str, identity_id: str | None) -> Record:
        """Fetch a task and require the caller to own it.

        A missing bead is reported as a denial too, so the answer does not
        reveal whether someone else's task exists.
        """
        try:
            record = await self.store.show(bead_id)
        except RecordNotFoundError:
            raise AuthorizationError(f"Task '{bead_id}' is not assigned to you.") from None
        check_task_access(identity_id, record).raise_if_denied()
        return record

    async def require_topic(self, bead_id: str, agent_id: str) -> Record:
        """Fetch a topic and require the caller's agent label on it."""
        try:
            record = await self.store.show(bead_id)
        except RecordNotFoundError:
            raise AuthorizationError(f"Bead '{bead_id}' is not one of your topics.") from None
        check_topic_access(agent_id, record).raise_if_denied()
        return record

    async def require_project_access(
        self,
        command: str,
        bead_id: str,
        agent_id: str,
        resolve_identity: Callable[[], Awaitable[str | None]],
    ) -> Record:
        """Fetch the target of a general-path command and authorize it.

        Args:
            command: One of show, comment, edit, close, label
            bead_id: Target bead id
            agent_id: Caller's gateway agent id
            resolve_identity: Resolves the caller's identity bead id; only
                awaited when the target turns out to be a task

        Raises:
            RecordNotFoundError: If the target does not exist
            AuthorizationError: If the command is refused
        """
        record = await self.store.show(bead_id)
        identity_id = None
        if classify(record) is RecordKind.TASK and command in OWNER_COMMANDS:
            identity_id = await resolve_identity()
        check_project_write(command, record, agent_id, identity_id).raise_if_denied()
        return record
