"""Bead store contract and the bd command-line adapter.

The identity layer only needs a handful of primitives from the bead store.
``BeadStore`` names them; ``CliBeadStore`` implements them by running the
``bd`` executable, one subprocess per call, each bounded by a timeout.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..utils.errors import (
    RecordNotFoundError,
    StoreCommandError,
    StoreProtocolError,
    StoreTimeoutError,
    StoreUnavailableError,
    bd_command,
)
from .records import Comment, Record

logger = logging.getLogger(__name__)


class BeadStore(ABC):
    """Primitives the identity and lifecycle layers require from the store.

    Every call is assumed atomic on its own and globally visible once it
    returns. Failures raise ``InfrastructureError`` subclasses; a missing
    record raises ``RecordNotFoundError``; an empty query returns ``[]``.
    """

    @abstractmethod
    async def create(
        self,
        title: str,
        labels: list[str] | None = None,
        parent: str | None = None,
        description: str | None = None,
    ) -> str:
        """Create a bead and return its id."""

    @abstractmethod
    async def show(self, bead_id: str) -> Record:
        """Fetch a bead by id."""

    @abstractmethod
    async def update_description(self, bead_id: str, description: str) -> None:
        """Replace a bead's description."""

    @abstractmethod
    async def set_parent(self, bead_id: str, parent: str) -> None:
        """Set a bead's parent id."""

    @abstractmethod
    async def label_add(self, bead_id: str, label: str) -> None:
        """Add a label."""

    @abstractmethod
    async def label_remove(self, bead_id: str, label: str) -> None:
        """Remove a label."""

    @abstractmethod
    async def comment_add(self, bead_id: str, text: str) -> None:
        """Append a comment."""

    @abstractmethod
    async def comments_list(self, bead_id: str) -> list[Comment]:
        """List comments, oldest first."""

    @abstractmethod
    async def close(self, bead_id: str) -> None:
        """Close (soft-delete) a bead."""

    @abstractmethod
    async def query(self, expression: str, limit: int | None = None) -> list[Record]:
        """Run a label expression query."""

    @abstractmethod
    async def list(self, limit: int = 20) -> list[Record]:
        """List open beads."""

    @abstractmethod
    async def ready(self) -> list[Record]:
        """List beads with no open blockers."""

    @abstractmethod
    async def sync(self) -> str:
        """Sync local bead changes with the shared store."""


class CliBeadStore(BeadStore):
    """Bead store backed by the ``bd`` executable.

    Example:
        store = CliBeadStore(binary="bd", timeout=10.0)
        bead_id = await store.create("Fix login bug", labels=["task", "backlog"])
        record = await store.show(bead_id)
    """

    def __init__(
        self,
        binary: str = "bd",
        timeout: float = 10.0,
        cwd: Path | str | None = None,
    ):
        """
        Initialize the CLI adapter.

        Args:
            binary: Name or path of the bd executable
            timeout: Seconds before a single invocation is killed
            cwd: Working directory for bd (selects the bead database)
        """
        self.binary = binary
        self.timeout = timeout
        self.cwd = str(cwd) if cwd else None

    async def _run(
        self,
        args: list[str],
        *positional: str,
        timeout: float | None = None,
    ) -> str:
        """Run bd and return stripped stdout.

        ``args`` holds the subcommand and its flags. Positional values (ids,
        titles, comment text, query expressions) go after a ``--`` so that
        text starting with ``-`` is never read as a flag.

        Raises:
            StoreUnavailableError: If bd cannot be started
            StoreTimeoutError: If bd exceeds the timeout (the process is killed)
            StoreCommandError: If bd exits non-zero
        """
        timeout = timeout or self.timeout
        argv = [*args, "--", *positional] if positional else list(args)
        command = bd_command(argv)
        logger.debug(f"Running {self.binary} {command}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *argv,
                cwd=self.cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Cannot start {self.binary}: {e}")
            raise StoreUnavailableError(f"Cannot start {self.binary}: {e}", cause=e) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except TimeoutError:
            process.kill()
            await process.wait()
            logger.error(f"{self.binary} {command} timed out after {timeout}s")
            raise StoreTimeoutError(argv, timeout) from None

        error_output = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise StoreCommandError(argv, process.returncode or -1, error_output)

        return stdout.decode("utf-8", errors="replace").strip()

    async def _run_json(self, args: list[str], *positional: str) -> Any:
        output = await self._run([*args, "--json"], *positional)
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise StoreProtocolError(
                f"bd {bd_command(args)} returned invalid JSON: {e}", cause=e
            ) from e

    @staticmethod
    def _records(data: Any) -> list[Record]:
        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise StoreProtocolError(f"Expected a list of beads, got {type(data).__name__}")
        return [Record.from_bd_json(item) for item in data if isinstance(item, dict) and item.get("id")]

    @staticmethod
    def _check_label(label: str) -> None:
        if not label or "," in label or label != label.strip():
            raise ValueError(f"Invalid label '{label}'")

    async def create(
        self,
        title: str,
        labels: list[str] | None = None,
        parent: str | None = None,
        description: str | None = None,
    ) -> str:
        args = ["q"]
        if labels:
            for label in labels:
                self._check_label(label)
            args.append(f"--labels={','.join(labels)}")
        bead_id = await self._run(args, title)
        if not bead_id:
            raise StoreProtocolError("bd q returned no bead id")
        # bd q prints the id on the last line
        bead_id = bead_id.splitlines()[-1].strip()
        logger.info(f"Created bead {bead_id} with labels {labels or []}")

        if parent:
            await self.set_parent(bead_id, parent)
        if description:
            await self.update_description(bead_id, description)
        return bead_id

    async def show(self, bead_id: str) -> Record:
        try:
            data = await self._run_json(["show"], bead_id)
        except StoreCommandError as e:
            if "not found" in e.stderr.lower():
                raise RecordNotFoundError(bead_id) from e
            raise
        records = self._records(data)
        if not records:
            raise RecordNotFoundError(bead_id)
        return records[0]

    async def update_description(self, bead_id: str, description: str) -> None:
        await self._run(["update", f"--description={description}"], bead_id)

    async def set_parent(self, bead_id: str, parent: str) -> None:
        await self._run(["update", f"--parent={parent}"], bead_id)

    async def label_add(self, bead_id: str, label: str) -> None:
        self._check_label(label)
        await self._run(["label", "add"], bead_id, label)

    async def label_remove(self, bead_id: str, label: str) -> None:
        self._check_label(label)
        await self._run(["label", "remove"], bead_id, label)

    async def comment_add(self, bead_id: str, text: str) -> None:
        await self._run(["comments", "add"], bead_id, text)

    async def comments_list(self, bead_id: str) -> list[Comment]:
        data = await self._run_json(["comments"], bead_id)
        if not data:
            return []
        if not isinstance(data, list):
            raise StoreProtocolError(f"Expected a list of comments, got {type(data).__name__}")
        return [Comment.from_bd_json(item) for item in data if isinstance(item, dict)]

    async def close(self, bead_id: str) -> None:
        await self._run(["close"], bead_id)
        logger.info(f"Closed bead {bead_id}")

    async def query(self, expression: str, limit: int | None = None) -> list[Record]:
        args = ["query"]
        if limit is not None:
            args.append(f"--limit={limit}")
        return self._records(await self._run_json(args, expression))

    async def list(self, limit: int = 20) -> list[Record]:
        return self._records(await self._run_json(["list", f"--limit={limit}"]))

    async def ready(self) -> list[Record]:
        return self._records(await self._run_json(["ready"]))

    async def sync(self) -> str:
        return await self._run(["sync"])
