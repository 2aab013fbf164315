"""Pytest configuration and fixtures for bd-identity tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import httpx
import pytest

from bd_identity.core.config import Settings
from bd_identity.permissions.context import ToolContext
from bd_identity.permissions.identity import SessionIdentity
from bd_identity.storage.bead_store import BeadStore
from bd_identity.storage.records import (
    IDENTITY_LABEL,
    SESSION_CONTEXT_LABEL,
    Comment,
    Record,
)
from bd_identity.tools.services import ToolServices
from bd_identity.utils.errors import RecordNotFoundError, StoreCommandError

FIXED_NOW = datetime(2026, 2, 7, 15, 30, tzinfo=ZoneInfo("America/Chicago"))
ROSTER = ["main", "coder", "researcher"]


class FakeBeadStore(BeadStore):
    """In-memory bead store with the same contract as the bd adapter.

    ``calls`` records every mutating call in order, so tests can check
    ordering (for example that a closure note is written before a close).
    """

    def __init__(self):
        self.records: dict[str, Record] = {}
        self.calls: list[tuple[str, ...]] = []
        self._next_id = 1

    def add(
        self,
        title: str,
        labels: list[str] | None = None,
        parent: str | None = None,
        description: str = "",
        status: str = "open",
    ) -> str:
        """Seed a record directly, bypassing ``calls``."""
        bead_id = f"bd-{self._next_id}"
        self._next_id += 1
        self.records[bead_id] = Record(
            id=bead_id,
            title=title,
            labels=frozenset(labels or []),
            parent=parent,
            description=description,
            status=status,
        )
        return bead_id

    def _get(self, bead_id: str) -> Record:
        if bead_id not in self.records:
            raise RecordNotFoundError(bead_id)
        return self.records[bead_id]

    def _update(self, bead_id: str, **changes) -> None:
        self.records[bead_id] = self._get(bead_id).model_copy(update=changes)

    async def create(self, title, labels=None, parent=None, description=None) -> str:
        bead_id = self.add(title, labels, parent, description or "")
        self.calls.append(("create", bead_id))
        return bead_id

    async def show(self, bead_id: str) -> Record:
        return self._get(bead_id)

    async def update_description(self, bead_id: str, description: str) -> None:
        self.calls.append(("update_description", bead_id))
        self._update(bead_id, description=description)

    async def set_parent(self, bead_id: str, parent: str) -> None:
        self.calls.append(("set_parent", bead_id, parent))
        self._update(bead_id, parent=parent)

    async def label_add(self, bead_id: str, label: str) -> None:
        self.calls.append(("label_add", bead_id, label))
        self._update(bead_id, labels=self._get(bead_id).labels | {label})

    async def label_remove(self, bead_id: str, label: str) -> None:
        self.calls.append(("label_remove", bead_id, label))
        self._update(bead_id, labels=self._get(bead_id).labels - {label})

    async def comment_add(self, bead_id: str, text: str) -> None:
        self.calls.append(("comment_add", bead_id))
        record = self._get(bead_id)
        comment = Comment(text=text, author="agent", timestamp=datetime.now(UTC))
        self._update(bead_id, comments=[*record.comments, comment])

    async def comments_list(self, bead_id: str) -> list[Comment]:
        return list(self._get(bead_id).comments)

    async def close(self, bead_id: str) -> None:
        self.calls.append(("close", bead_id))
        self._update(bead_id, status="closed")

    def _matches(self, record: Record, condition: str) -> bool:
        field, _, value = condition.partition("=")
        if field == "label":
            return value in record.labels
        if field == "status":
            return record.status == value
        if field == "parent":
            return record.parent == value
        raise StoreCommandError(["query", condition], 1, f"unknown field '{field}'")

    async def query(self, expression: str, limit: int | None = None) -> list[Record]:
        conditions = [c.strip() for c in expression.split(" AND ")]
        found = [
            r for r in self.records.values() if all(self._matches(r, c) for c in conditions)
        ]
        return found[:limit] if limit is not None else found

    async def list(self, limit: int = 20) -> list[Record]:
        return [r for r in self.records.values() if r.is_open][:limit]

    async def ready(self) -> list[Record]:
        return [r for r in self.records.values() if r.is_open]

    async def sync(self) -> str:
        self.calls.append(("sync",))
        return "Sync complete."


def meili_down(request: httpx.Request) -> httpx.Response:
    """MockTransport handler for an unavailable MeiliSearch."""
    return httpx.Response(503, json={"message": "unavailable"})


@pytest.fixture
def store() -> FakeBeadStore:
    return FakeBeadStore()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path / "workspace"


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def settings(workspace: Path, tmp_path: Path) -> Settings:
    """Settings pointing at a temporary workspace, isolated from .env."""
    return Settings(
        _env_file=None,
        workspace_dir=workspace,
        log_dir=tmp_path / "logs",
        meili_url="http://meili.test",
        timezone="America/Chicago",
        coordinator_agent="main",
        agent_roster=ROSTER,
    )


@pytest.fixture
def services(settings: Settings, store: FakeBeadStore, clock) -> ToolServices:
    return ToolServices.from_settings(
        settings, store=store, transport=httpx.MockTransport(meili_down), clock=clock
    )


def make_context(session_key: str | None, agent_id: str | None = None) -> ToolContext:
    """Build a caller context the way the server does."""
    caller = SessionIdentity.from_gateway(session_key, agent_id)
    return ToolContext.for_session(caller, coordinator_agent="main")


def seed_identity(store: FakeBeadStore, label: str) -> str:
    """Seed an identity bead carrying the given label."""
    return store.add(
        f"Agent Identity: {label}",
        labels=[IDENTITY_LABEL, label, SESSION_CONTEXT_LABEL],
    )


@pytest.fixture
def main_ctx() -> ToolContext:
    return make_context("agent:main:main", "main")


@pytest.fixture
def coder_ctx() -> ToolContext:
    return make_context("agent:coder:main", "coder")


@pytest.fixture
def researcher_ctx() -> ToolContext:
    return make_context("agent:researcher:main", "researcher")


@pytest.fixture
def main_identity(store: FakeBeadStore) -> str:
    return seed_identity(store, "main-session")


@pytest.fixture
def coder_identity(store: FakeBeadStore) -> str:
    return seed_identity(store, "coder")


@pytest.fixture
def researcher_identity(store: FakeBeadStore) -> str:
    return seed_identity(store, "researcher")


@pytest.fixture
def context_for() -> Callable[..., ToolContext]:
    """Factory fixture: ``context_for(session_key, agent_id)``."""
    return make_context


@pytest.fixture
def identity_for(store: FakeBeadStore) -> Callable[[str], str]:
    """Factory fixture: ``identity_for(label)`` seeds an identity bead."""
    return lambda label: seed_identity(store, label)
