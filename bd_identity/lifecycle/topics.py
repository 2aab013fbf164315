"""Topic bead lifecycle.

A topic is short-lived working memory for one stream of work: ``open``
until its owner closes it. It carries the labels ``topic`` and the owning
agent's id, and its parent is the owner's identity bead. Closing a topic
writes a summary line to the owner's daily memory before the bead closes.
"""

from __future__ import annotations

import logging

from ..memory.search import BackgroundIndexer
from ..memory.workspace import WorkspaceMemory
from ..permissions.guard import AccessGuard, check_label
from ..storage.bead_store import BeadStore
from ..storage.query_builder import LabelQueryBuilder
from ..storage.records import TOPIC_LABEL, Record, is_topic
from ..utils.errors import InvalidStateError, MissingIdentityError, ValidationError
from .closure import write_closure_note

logger = logging.getLogger(__name__)


def closure_note(record: Record, comment_count: int) -> str:
    """One-line summary written to the daily file when a topic closes."""
    plural = "" if comment_count == 1 else "s"
    return f"Topic closed: {record.title} ({record.id}), {comment_count} comment{plural}"


class TopicLifecycle:
    """Create, list, show, comment on and close the caller's topics."""

    def __init__(
        self,
        store: BeadStore,
        guard: AccessGuard,
        memory: WorkspaceMemory,
        indexer: BackgroundIndexer | None = None,
    ):
        self.store = store
        self.guard = guard
        self.memory = memory
        self.indexer = indexer

    async def create(self, agent_id: str, identity_id: str | None, title: str) -> str:
        """Open a topic owned by the caller.

        Raises:
            MissingIdentityError: If the caller has no identity bead yet
            ValidationError: If the title is empty
        """
        if identity_id is None:
            raise MissingIdentityError()
        title = title.strip()
        if not title:
            raise ValidationError("Topic title cannot be empty.")
        check_label(agent_id, general_path=False).raise_if_denied()

        bead_id = await self.store.create(title, labels=[agent_id, TOPIC_LABEL], parent=identity_id)
        logger.info(f"Topic {bead_id} opened by {agent_id}: {title}")
        return bead_id

    async def list(self, agent_id: str) -> list[Record]:
        """Open topics carrying the caller's agent label."""
        query = LabelQueryBuilder().label(TOPIC_LABEL).label(agent_id).open().build()
        records = await self.store.query(query)
        return [r for r in records if is_topic(r) and r.has(agent_id)]

    async def show(self, agent_id: str, bead_id: str) -> Record:
        record = await self.guard.require_topic(bead_id, agent_id)
        comments = await self.store.comments_list(bead_id)
        return record.model_copy(update={"comments": comments})

    async def comment(self, agent_id: str, bead_id: str, text: str) -> None:
        await self.guard.require_topic(bead_id, agent_id)
        await self.store.comment_add(bead_id, text)

    async def close(self, agent_id: str, bead_id: str) -> str:
        """Close one of the caller's topics.

        Returns:
            The closure note written to the daily file
        """
        record = await self.guard.require_topic(bead_id, agent_id)
        if not record.is_open:
            raise InvalidStateError(f"Topic '{bead_id}' is already closed.")

        comments = await self.store.comments_list(bead_id)
        note = closure_note(record, len(comments))
        write_closure_note(self.memory, self.indexer, agent_id, note)
        await self.store.close(bead_id)
        return note
