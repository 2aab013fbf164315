"""Closure notes written to the owner's daily memory before a close."""

import logging

from ..memory.search import BackgroundIndexer
from ..memory.workspace import WorkspaceMemory

logger = logging.getLogger(__name__)


def write_closure_note(
    memory: WorkspaceMemory,
    indexer: BackgroundIndexer | None,
    agent_id: str,
    note: str,
) -> str:
    """Append a closure note to today's daily file and queue it for indexing.

    Raises MemoryIOError when the file cannot be written; callers close the
    record only after this returns, so a failed note leaves the record open.

    Returns:
        The daily file path relative to the workspace
    """
    path = memory.append_daily(agent_id, note)
    if indexer is not None:
        indexer.schedule(agent_id, path.stem, path)
    logger.info(f"Closure note for {agent_id}: {note}")
    return memory.relative(path)
