"""Error vocabulary shared by the registry, the request router and the tools.

Error Handling Strategy:
    Everything that crosses the dispatch boundary is an ``McpError`` carrying a
    JSON-RPC code. Tools raise ``HandlerError`` for expected failures with a
    hint for the AI client; the configuration layer raises the two
    ``Configuration*`` errors; anything else is an unexpected failure.
    ``format_mcp_error`` folds all of these into a single ``McpError`` before
    the registry logs and re-raises it.
"""

import traceback
from typing import Any, Optional

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, ErrorData
from pydantic import ValidationError

from .schema import summarize_validation_error


# ------------------------------------------------------------------------------
# HandlerError - Custom exception for tool failures with structured error info
# ------------------------------------------------------------------------------
# Raise this in tool handlers to return a clean error to the AI client.
# - message: What went wrong
# - hint: Actionable suggestion for the AI (optional)
# - **data: Extra context like filename, vault id, etc. (optional)
#
# Example: raise HandlerError("Template not found", hint="Check the path", name="Daily.md")
# ------------------------------------------------------------------------------
class HandlerError(Exception):
    """Structured error for tool handlers.

    Args:
        message: Description of what went wrong
        hint: Actionable suggestion for the AI (optional)
        **data: Extra context like filename, vault id, etc. (optional)
    """

    def __init__(self, message: str, hint: Optional[str] = None, **data: Any):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.data = data

    def formatted(self) -> str:
        """Message with hint and context appended, as shown to the client."""
        msg = self.message
        if self.hint:
            msg += f" (hint: {self.hint})"
        if self.data:
            msg += f" (context: {self.data})"
        return msg


class ConfigurationNotFoundError(McpError):
    """Requested vault id has no entry, or no vaults are configured at all."""

    def __init__(self, message: str):
        super().__init__(ErrorData(code=INVALID_REQUEST, message=message))


class ConfigurationLoadError(McpError):
    """The persisted vault configuration is unreadable or malformed."""

    def __init__(self, message: str):
        super().__init__(ErrorData(code=INTERNAL_ERROR, message=message))


class DuplicateToolError(ValueError):
    """A tool name was registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name}")
        self.name = name


def mcp_error(code: int, message: str, data: Any = None) -> McpError:
    """Build an ``McpError`` without spelling out ``ErrorData`` each time."""
    return McpError(ErrorData(code=code, message=message, data=data))


# ------------------------------------------------------------------------------
# format_mcp_error - Normalize any exception into one McpError shape
# ------------------------------------------------------------------------------
# - McpError             -> unchanged
# - ValidationError      -> INVALID_PARAMS with a field-level summary
# - HandlerError         -> INTERNAL_ERROR with hint/context in the message
# - anything else        -> INTERNAL_ERROR with "Type: message" and the stack
# ------------------------------------------------------------------------------
def format_mcp_error(error: BaseException) -> McpError:
    """Normalize ``error`` to an ``McpError`` (code, message, optional stack).

    Args:
        error: Any exception raised while handling a request

    Returns:
        An ``McpError``. The input is returned as-is when it already is one.
    """
    if isinstance(error, McpError):
        return error

    if isinstance(error, ValidationError):
        normalized = mcp_error(
            INVALID_PARAMS,
            f"Invalid arguments: {summarize_validation_error(error)}",
        )
    elif isinstance(error, HandlerError):
        normalized = mcp_error(INTERNAL_ERROR, error.formatted())
    else:
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        normalized = mcp_error(
            INTERNAL_ERROR,
            f"{type(error).__name__}: {error}",
            {"stack": stack},
        )

    normalized.__cause__ = error
    return normalized
