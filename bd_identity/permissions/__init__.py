"""Agent roles, session identity and bead access control.

This module provides the capability boundary of the plugin:

- SessionIdentity: who is calling, as injected by the gateway
- Permission / PermissionSet: what each role (worker, coordinator) may do
- ToolContext: binds a session identity to its role's permissions
- AccessGuard: ownership checks over identity, task and topic beads

Security model:
- The caller's identity comes only from the gateway, never from parameters
- Unknown commands require COORDINATE (fail-safe)
- Ownership is re-read from the store on every check
"""

from .context import ToolContext
from .guard import (
    AccessDecision,
    AccessGuard,
    check_identity_write,
    check_label,
    check_project_write,
    check_task_access,
    check_topic_access,
)
from .identity import SessionIdentity
from .permissions import Permission, PermissionSet
from .tool_permissions import COMMAND_PERMISSIONS, commands_for, get_required_permissions

__all__ = [
    "AccessDecision",
    "AccessGuard",
    "COMMAND_PERMISSIONS",
    "Permission",
    "PermissionSet",
    "SessionIdentity",
    "ToolContext",
    "check_identity_write",
    "check_label",
    "check_project_write",
    "check_task_access",
    "check_topic_access",
    "commands_for",
    "get_required_permissions",
]
