"""Components shared by the tool handlers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import httpx

from ..core.config import Settings
from ..identity.resolver import IdentityResolver
from ..lifecycle.tasks import TaskLifecycle
from ..lifecycle.topics import TopicLifecycle
from ..memory.search import BackgroundIndexer, SearchGateway
from ..memory.specs import SpecStore
from ..memory.workspace import WorkspaceMemory
from ..permissions.context import ToolContext
from ..permissions.guard import AccessGuard
from ..storage.bead_store import BeadStore, CliBeadStore
from ..utils.errors import MissingIdentityError


@dataclass
class ToolServices:
    """Everything a tool handler talks to, built once from Settings.

    Example:
        services = ToolServices.from_settings(Settings())
        identity_id = await services.identity_id(context)
    """

    settings: Settings
    store: BeadStore
    resolver: IdentityResolver
    guard: AccessGuard
    memory: WorkspaceMemory
    search: SearchGateway
    indexer: BackgroundIndexer
    specs: SpecStore
    tasks: TaskLifecycle
    topics: TopicLifecycle

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: BeadStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> ToolServices:
        """Wire up the components.

        Args:
            settings: Loaded settings
            store: Bead store to use (defaults to the bd CLI adapter)
            transport: httpx transport for MeiliSearch (tests pass a mock)
            clock: Current-time source for daily files (tests pass a fixed one)
        """
        store = store or CliBeadStore(binary=settings.bd_binary, timeout=settings.bd_timeout)
        resolver = IdentityResolver(store)
        guard = AccessGuard(store)
        memory = WorkspaceMemory(settings.workspace_dir, timezone=settings.timezone, clock=clock)
        search = SearchGateway(
            memory.memory_root,
            meili_url=settings.meili_url,
            api_key=settings.meili_api_key,
            timeout=settings.search_timeout,
            transport=transport,
        )
        indexer = BackgroundIndexer(search)
        return cls(
            settings=settings,
            store=store,
            resolver=resolver,
            guard=guard,
            memory=memory,
            search=search,
            indexer=indexer,
            specs=SpecStore(settings.specs_dir),
            tasks=TaskLifecycle(store, resolver, guard, memory, indexer, roster=settings.roster),
            topics=TopicLifecycle(store, guard, memory, indexer),
        )

    async def identity_id(self, ctx: ToolContext) -> str | None:
        """Resolve the caller's identity bead id from its session labels.

        Re-resolved on every call. Returns None when there is no session or
        no matching bead; store failures propagate.
        """
        if not ctx.caller.has_session:
            return None
        return await self.resolver.resolve(list(ctx.caller.labels))

    async def require_identity_id(self, ctx: ToolContext) -> str:
        """Like ``identity_id`` but raises MissingIdentityError when there is none."""
        identity_id = await self.identity_id(ctx)
        if identity_id is None:
            raise MissingIdentityError()
        return identity_id
