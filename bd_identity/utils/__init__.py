"""Utility modules for the identity plugin."""

from .errors import (
    AuthorizationError,
    BeadIdentityError,
    InfrastructureError,
    MissingContextError,
    NotFoundError,
    ValidationError,
)
from .tool_decorators import handle_tool_errors

__all__ = [
    "AuthorizationError",
    "BeadIdentityError",
    "InfrastructureError",
    "MissingContextError",
    "NotFoundError",
    "ValidationError",
    "handle_tool_errors",
]
