"""Permission definitions and permission sets.

Agents fall into two roles. Every agent is a worker: it reads beads, writes
its own identity bead and memory, and works on tasks assigned to it. The
single coordinating agent additionally promotes tasks, assigns work to other
agents, writes specs and maintains the shared MEMORY.md.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class Permission(Enum):
    """Individual permissions that can be granted to agents.

    - READ: View beads, memory and specs
    - WRITE: Create or modify beads and the agent's own memory
    - COORDINATE: Coordinator-only operations (promote, assign others,
      write specs, write shared memory)
    """

    READ = auto()
    WRITE = auto()
    COORDINATE = auto()


class PermissionSet:
    """A collection of permissions with set operations.

    Example:
        worker = PermissionSet.worker()
        if worker.has(Permission.COORDINATE):
            ...  # never reached
    """

    def __init__(self, permissions: Iterable[Permission] | None = None):
        """Initialize with a collection of permissions.

        Args:
            permissions: Iterable of Permission enum values.
                If None, creates an empty permission set.
        """
        self._permissions: frozenset[Permission] = (
            frozenset(permissions) if permissions else frozenset()
        )

    @classmethod
    def worker(cls) -> PermissionSet:
        """Create the permission set every agent gets.

        Returns:
            PermissionSet with READ and WRITE permissions
        """
        return cls([Permission.READ, Permission.WRITE])

    @classmethod
    def coordinator(cls) -> PermissionSet:
        """Create the coordinating agent's permission set.

        Returns:
            PermissionSet with all permissions
        """
        return cls(list(Permission))

    def has(self, permission: Permission) -> bool:
        """Check if this set includes a specific permission."""
        return permission in self._permissions

    def __contains__(self, permission: Permission) -> bool:
        return permission in self._permissions

    def __len__(self) -> int:
        return len(self._permissions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionSet):
            return NotImplemented
        return self._permissions == other._permissions

    def __repr__(self) -> str:
        perms = sorted(p.name for p in self._permissions)
        return f"PermissionSet({{{', '.join(perms)}}})"

    def to_list(self) -> list[str]:
        """Convert to a list of permission names (for serialization)."""
        return sorted(p.name for p in self._permissions)
