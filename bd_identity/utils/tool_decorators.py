"""Decorators for standardizing tool error handling."""

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .errors import (
    AuthorizationError,
    BeadIdentityError,
    InfrastructureError,
    MissingContextError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def error_result(error: BaseException, error_type: str | None = None) -> dict[str, Any]:
    """Build the result dict reported for a failed command."""
    return {
        "status": "error",
        "message": str(error),
        "error_type": error_type or type(error).__name__,
        "retryable": bool(getattr(error, "retryable", False)),
    }


def handle_tool_errors(func: F) -> F:
    """Standardize error handling for async tool functions.

    Catches the plugin's error taxonomy and returns a consistent format:
    {"status": "error", "message": "...", "error_type": "...", "retryable": bool}

    NotFoundError is not a failure: it is reported as
    {"status": "not_found", "message": "..."}.

    On success, adds "status": "success" to the result if not already present.

    Example:
        @handle_tool_errors
        async def my_tool(command: str) -> dict[str, Any]:
            # If this raises, caller gets {"status": "error", "message": "...", ...}
            result = await do_something(command)
            return {"data": result}
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        tool_name = func.__name__
        try:
            result = await func(*args, **kwargs)
            if isinstance(result, dict) and "status" not in result:
                result["status"] = "success"
            return result
        except NotFoundError as e:
            logger.info(f"Tool {tool_name} not found: {e}")
            return {"status": "not_found", "message": str(e), "error_type": type(e).__name__}
        except MissingContextError as e:
            logger.warning(f"Tool {tool_name} called without session context")
            return error_result(e)
        except AuthorizationError as e:
            logger.warning(f"Tool {tool_name} denied: {e}")
            return error_result(e)
        except InfrastructureError as e:
            logger.error(f"Tool {tool_name} infrastructure failure: {e}")
            result = error_result(e)
            if e.cause is not None:
                result["cause"] = repr(e.cause)
            return result
        except BeadIdentityError as e:
            logger.info(f"Tool {tool_name} rejected input: {e}")
            return error_result(e)
        except ValueError as e:
            logger.error(f"Tool {tool_name} validation error: {e}")
            return error_result(e, "ValidationError")
        except Exception as e:
            logger.exception(f"Tool {tool_name} unexpected error: {e}")
            result = error_result(e)
            result["message"] = f"Unexpected error: {e}"
            return result

    return wrapper  # type: ignore[return-value]
