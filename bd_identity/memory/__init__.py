"""Workspace memory, memory search and shared specs."""

from .search import BackgroundIndexer, SearchGateway, SearchHit, SearchResults
from .specs import SpecStore
from .workspace import WorkspaceMemory, validate_agent_id, validate_date

__all__ = [
    "BackgroundIndexer",
    "SearchGateway",
    "SearchHit",
    "SearchResults",
    "SpecStore",
    "WorkspaceMemory",
    "validate_agent_id",
    "validate_date",
]
