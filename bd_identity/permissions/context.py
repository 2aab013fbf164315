"""Per-invocation tool context.

The ToolContext binds the gateway-supplied session identity to the
permissions of its role. It is built once per server process from the
gateway context and handed to every command handler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..utils.errors import AuthorizationError, MissingContextError
from .identity import SessionIdentity
from .permissions import Permission, PermissionSet
from .tool_permissions import get_required_permissions

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Identity and permissions of the calling agent.

    Attributes:
        caller: Session identity injected by the gateway
        permissions: What the caller's role may do
        coordinator_agent: Agent id of the coordinating role
        metadata: Additional context data

    Example:
        context = ToolContext.for_session(
            SessionIdentity.from_gateway("agent:coder:main", "coder"),
            coordinator_agent="main",
        )
        context.require_command("bd_project", "task_promote")  # raises
    """

    caller: SessionIdentity
    permissions: PermissionSet
    coordinator_agent: str = "main"
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_session(cls, caller: SessionIdentity, coordinator_agent: str = "main") -> ToolContext:
        """Create a context whose permissions follow the caller's role."""
        if caller.agent_id == coordinator_agent:
            permissions = PermissionSet.coordinator()
        else:
            permissions = PermissionSet.worker()
        return cls(caller=caller, permissions=permissions, coordinator_agent=coordinator_agent)

    @property
    def agent_id(self) -> str:
        return self.caller.agent_id

    @property
    def is_coordinator(self) -> bool:
        return self.permissions.has(Permission.COORDINATE)

    def can(self, permission: Permission) -> bool:
        """Check if this context allows a specific permission."""
        return self.permissions.has(permission)

    def require_session(self) -> SessionIdentity:
        """Return the caller's identity, or fail if the gateway gave none.

        Raises:
            MissingContextError: If no session key was injected
        """
        if not self.caller.has_session:
            raise MissingContextError()
        return self.caller

    def require_command(self, tool_name: str, command: str) -> None:
        """Require every permission the command needs.

        Raises:
            AuthorizationError: If any required permission is missing
        """
        required = get_required_permissions(tool_name, command)
        missing = [p for p in required if not self.can(p)]
        if not missing:
            return
        logger.warning(
            f"Permission denied: {self.agent_id} lacks {[p.name for p in missing]} "
            f"for {tool_name}.{command}"
        )
        if Permission.COORDINATE in missing:
            raise AuthorizationError(
                f"Only the {self.coordinator_agent} agent can run '{command}'. "
                f"You are '{self.agent_id}'."
            )
        raise AuthorizationError(
            f"Permission denied: {self.agent_id} lacks required permissions: "
            f"{', '.join(sorted(p.name for p in missing))}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "caller": self.caller.to_dict(),
            "permissions": self.permissions.to_list(),
            "is_coordinator": self.is_coordinator,
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        return f"ToolContext({self.caller}, permissions={self.permissions})"
