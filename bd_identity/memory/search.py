"""Memory search over MeiliSearch, with a local scan fallback.

Daily files are indexed per agent (``memory-<agentId>``) and in a combined
index (``memory-all``). When MeiliSearch is unreachable, search falls back to
a deterministic case-insensitive scan of the markdown files on disk that
returns results of the same shape.

Indexing is best effort: it runs as detached asyncio tasks whose failures
are logged and dropped, so a MeiliSearch outage never fails a memory write.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, Field

from ..utils.errors import SearchUnavailableError
from .workspace import validate_agent_id

logger = logging.getLogger(__name__)

ALL_SCOPE = "all"
CROP_LENGTH = 200
MAX_SCAN_RESULTS = 20


class SearchHit(BaseModel):
    """A single search result."""

    path: str = Field(..., description="File path relative to the memory root")
    label: str = Field(..., description="Date, filename, or path:line for scan hits")
    snippet: str = Field(default="(no preview)", description="Cropped matching content")


class SearchResults(BaseModel):
    """Search results plus where they came from."""

    query: str
    scope: str
    source: str = Field(..., description="'meilisearch' or 'scan'")
    hits: list[SearchHit] = Field(default_factory=list)
    took_ms: int | None = None

    def format(self) -> str:
        """Render results as text for the agent."""
        fallback = " (grep fallback)" if self.source == "scan" else ""
        if not self.hits:
            where = f"{self.scope}'s memory" if self.scope != ALL_SCOPE else "all memory"
            return f'No results for "{self.query}" in {where}.{fallback}'

        timing = f" ({self.took_ms}ms)" if self.took_ms is not None else ""
        lines = [f'Found {len(self.hits)} result(s) for "{self.query}"{timing}{fallback}:', ""]
        for hit in self.hits:
            if self.source == "scan":
                lines.append(f"--- {hit.label} ---")
            else:
                lines.append(f"--- {hit.path} ({hit.label}) ---")
            lines.append(hit.snippet)
            lines.append("")
        return "\n".join(lines).rstrip()

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


def index_name(scope: str) -> str:
    """MeiliSearch index for an agent id or the ``all`` scope."""
    return f"memory-{scope}"


def document_id(agent_id: str, date_str: str) -> str:
    """Stable document id for one agent's daily file."""
    return re.sub(r"[/.]", "_", f"{agent_id}_{date_str}")


class SearchGateway:
    """Full-text search over workspace memory.

    Example:
        gateway = SearchGateway(memory_root, meili_url="http://localhost:7700")
        results = await gateway.search("coder", "parser bug")
        print(results.format())
    """

    def __init__(
        self,
        memory_root: Path | str,
        meili_url: str = "http://localhost:7700",
        api_key: str | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the gateway.

        Args:
            memory_root: Directory holding every agent's memory directory
            meili_url: MeiliSearch base URL
            api_key: Optional MeiliSearch API key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.memory_root = Path(memory_root)
        self.meili_url = meili_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.meili_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def search(self, scope: str, query: str, limit: int = 10) -> SearchResults:
        """Search an agent's memory (or ``all``), falling back to a local scan."""
        if scope != ALL_SCOPE:
            validate_agent_id(scope)
        try:
            return await self.search_meili(scope, query, limit)
        except SearchUnavailableError as e:
            logger.warning(f"MeiliSearch unavailable, using scan fallback: {e}")
            return self.scan(scope, query)

    async def search_meili(self, scope: str, query: str, limit: int = 10) -> SearchResults:
        """Query MeiliSearch.

        Raises:
            SearchUnavailableError: On any transport error or error status
        """
        body = {
            "q": query,
            "limit": limit,
            "attributesToRetrieve": ["agentId", "date", "path", "filename"],
            "attributesToCrop": ["content"],
            "cropLength": CROP_LENGTH,
            "showMatchesPosition": False,
        }
        try:
            async with self._client() as client:
                response = await client.post(f"/indexes/{index_name(scope)}/search", json=body)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SearchUnavailableError(f"MeiliSearch search failed: {e}", cause=e) from e

        hits = []
        for hit in data.get("hits") or []:
            formatted = hit.get("_formatted") or {}
            hits.append(
                SearchHit(
                    path=hit.get("path") or "",
                    label=hit.get("date") or hit.get("filename") or "",
                    snippet=formatted.get("content") or "(no preview)",
                )
            )
        return SearchResults(
            query=query,
            scope=scope,
            source="meilisearch",
            hits=hits,
            took_ms=data.get("processingTimeMs"),
        )

    def scan(self, scope: str, query: str, max_results: int = MAX_SCAN_RESULTS) -> SearchResults:
        """Case-insensitive substring scan over markdown files.

        Files are visited in sorted order and each hit carries the line
        before and the two lines after the match, so results are stable.
        """
        root = self.memory_root if scope == ALL_SCOPE else self.memory_root / validate_agent_id(scope)
        needle = query.lower()
        hits: list[SearchHit] = []

        files = sorted(root.rglob("*.md")) if root.exists() else []
        for filepath in files:
            try:
                lines = filepath.read_text(encoding="utf-8", errors="replace").split("\n")
            except OSError as e:
                logger.warning(f"Skipping unreadable memory file {filepath}: {e}")
                continue
            rel_path = str(filepath.relative_to(self.memory_root))
            for i, line in enumerate(lines):
                if needle in line.lower():
                    start = max(0, i - 1)
                    end = min(len(lines) - 1, i + 2)
                    hits.append(
                        SearchHit(
                            path=rel_path,
                            label=f"{rel_path}:{i + 1}",
                            snippet="\n".join(lines[start : end + 1]),
                        )
                    )
                    if len(hits) >= max_results:
                        break
            if len(hits) >= max_results:
                break

        return SearchResults(query=query, scope=scope, source="scan", hits=hits)

    async def index_daily(self, agent_id: str, date_str: str, path: Path) -> bool:
        """Upload one daily file to the agent index and the combined index.

        Returns:
            False if there was nothing to index

        Raises:
            SearchUnavailableError: If either upload fails
        """
        if not path.exists():
            return False
        content = path.read_text(encoding="utf-8").strip()
        if not content:
            return False

        doc = [
            {
                "id": document_id(agent_id, date_str),
                "agentId": agent_id,
                "date": date_str,
                "path": str(path.relative_to(self.memory_root)),
                "filename": date_str,
                "content": content,
            }
        ]
        try:
            async with self._client() as client:
                for scope in (agent_id, ALL_SCOPE):
                    response = await client.post(f"/indexes/{index_name(scope)}/documents", json=doc)
                    response.raise_for_status()
        except httpx.HTTPError as e:
            raise SearchUnavailableError(f"MeiliSearch indexing failed: {e}", cause=e) from e
        logger.debug(f"Indexed {doc[0]['id']}")
        return True


class BackgroundIndexer:
    """Fire-and-forget indexing of daily files.

    ``schedule`` returns immediately. Tasks are kept referenced until they
    finish; ``drain`` waits for outstanding ones (used at shutdown and in
    tests).
    """

    def __init__(self, gateway: SearchGateway):
        self.gateway = gateway
        self._tasks: set[asyncio.Task] = set()

    async def _index(self, agent_id: str, date_str: str, path: Path) -> None:
        try:
            await self.gateway.index_daily(agent_id, date_str, path)
        except (SearchUnavailableError, OSError) as e:
            logger.warning(f"Indexing {agent_id}/{date_str} failed (ignored): {e}")

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Indexing task crashed (ignored): {task.exception()!r}")

    def schedule(self, agent_id: str, date_str: str, path: Path) -> asyncio.Task:
        """Start indexing one daily file in the background."""
        task = asyncio.create_task(self._index(agent_id, date_str, path))
        self._tasks.add(task)
        task.add_done_callback(self._done)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all scheduled indexing to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
