"""Helpers shared by the tool handlers."""

from ..permissions.context import ToolContext
from ..permissions.tool_permissions import commands_for
from ..utils.errors import MissingParameterError, ValidationError


def require_param(value: str | None, parameter: str, command: str, hint: str = "") -> str:
    """Return a required parameter, or raise MissingParameterError if it is empty."""
    if value is None or not value.strip():
        raise MissingParameterError(parameter, command, hint)
    return value


def authorize(ctx: ToolContext, tool_name: str, command: str) -> None:
    """Reject unknown commands, then check the caller's role permissions."""
    if command not in commands_for(tool_name):
        raise ValidationError(f"Unknown command: {command}")
    ctx.require_command(tool_name, command)
