"""Central registry for MCP tools.

Tools are registered once at startup, before the server starts accepting
requests. The registry answers two questions for the transport adapter:

    - ``list()``: which tools are advertised, with their input schemas
    - ``dispatch()``: run the tool a call names, after validating arguments

Advertising and dispatch are deliberately independent: ``disable()`` hides a
tool from ``list()`` but a caller that already knows its name can still call
it.
"""

from dataclasses import dataclass
from itertools import count
from typing import Any, Awaitable, Callable, Mapping, Optional
import logging

from mcp.types import INVALID_PARAMS, INVALID_REQUEST, CallToolResult
from pydantic import BaseModel, ValidationError

from .errors import DuplicateToolError, format_mcp_error, mcp_error
from .schema import (
    EMPTY_OBJECT_SCHEMA,
    declared_keys,
    is_boolean_annotation,
    shape_to_json_schema,
    summarize_validation_error,
)

logger = logging.getLogger(__name__)

LIST_VAULTS_TOOL = "list_configured_vaults"
LIST_VAULTS_DESCRIPTION = "Lists all configured Obsidian vaults with their ID and name."


@dataclass(frozen=True)
class ToolSchema:
    """Name literal, description and argument shape of one tool."""

    name: str
    description: str = ""
    arguments: Optional[type[BaseModel]] = None

    def accepts(self, name: str) -> bool:
        """Name-acceptance check used by dispatch."""
        return name == self.name


@dataclass(frozen=True)
class ToolCall:
    """Validated call handed to a tool handler."""

    name: str
    arguments: Any


@dataclass
class DispatchContext:
    """Per-call data handed to every handler. Never persisted."""

    # Low-level mcp Server handling the request (None when dispatched directly)
    server: Any = None


ToolHandler = Callable[[ToolCall, DispatchContext], Awaitable[CallToolResult]]


@dataclass
class ToolRegistration:
    schema: ToolSchema
    handler: ToolHandler
    # Position in the advertised listing, None while disabled
    enabled_seq: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self.enabled_seq is not None


class ToolRegistry:
    """Ordered set of tool registrations plus their advertised (enabled) flag.

    Usage:
        >>> tools = ToolRegistry()
        >>> tools.register(ToolSchema("get_server_info", "..."), handler)
        >>> tools.list()["tools"][0]["name"]
        'get_server_info'
        >>> result = await tools.dispatch({"name": "get_server_info"}, context)
    """

    def __init__(self) -> None:
        self._registrations: dict[str, ToolRegistration] = {}
        self._enable_counter = count()

    # ------------------------------------------------------------------
    # Setup-time operations
    # ------------------------------------------------------------------

    def register(self, schema: ToolSchema, handler: ToolHandler) -> ToolRegistration:
        """Register ``handler`` under ``schema.name`` and enable it.

        Raises:
            DuplicateToolError: If the name is already registered. The first
                registration is kept untouched.
        """
        if schema.name in self._registrations:
            raise DuplicateToolError(schema.name)

        registration = ToolRegistration(schema=schema, handler=handler)
        self._registrations[schema.name] = registration
        self.enable(schema.name)
        return registration

    def enable(self, name: str) -> "ToolRegistry":
        """Advertise a registered tool. Re-enabling moves it to the end of the listing."""
        self._get(name).enabled_seq = next(self._enable_counter)
        return self

    def disable(self, name: str) -> "ToolRegistry":
        """Stop advertising a tool. It stays callable through ``dispatch``."""
        self._get(name).enabled_seq = None
        return self

    def names(self) -> list[str]:
        """Registered tool names in registration order."""
        return list(self._registrations)

    def is_enabled(self, name: str) -> bool:
        return self._get(name).enabled

    def __contains__(self, name: object) -> bool:
        return name in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def _get(self, name: str) -> ToolRegistration:
        if name not in self._registrations:
            raise KeyError(f"Unknown tool: {name}")
        return self._registrations[name]

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list(self) -> dict[str, list[dict[str, Any]]]:
        """Describe every enabled tool, in enable order.

        A tool whose argument shape cannot be converted to JSON Schema is
        still listed, with an empty object schema, so one bad entry never
        hides the others.
        """
        enabled = sorted(
            (r for r in self._registrations.values() if r.enabled),
            key=lambda r: r.enabled_seq,
        )
        return {"tools": [self._describe(r.schema) for r in enabled]}

    def _describe(self, schema: ToolSchema) -> dict[str, Any]:
        if schema.name == LIST_VAULTS_TOOL:
            return {
                "name": LIST_VAULTS_TOOL,
                "description": schema.description or LIST_VAULTS_DESCRIPTION,
                "inputSchema": dict(EMPTY_OBJECT_SCHEMA),
            }

        try:
            input_schema = shape_to_json_schema(schema.arguments)
        except Exception:
            logger.warning(
                "Failed to convert arguments schema to JSON Schema for tool: %s",
                schema.name,
                exc_info=True,
            )
            input_schema = dict(EMPTY_OBJECT_SCHEMA)

        return {
            "name": schema.name,
            "description": schema.description,
            "inputSchema": input_schema,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, params: Any, context: DispatchContext) -> CallToolResult:
        """Validate a call and run the matching handler.

        Args:
            params: ``{"name": ..., "arguments": {...}}`` mapping or an object
                with ``name``/``arguments`` attributes (e.g.
                ``mcp.types.CallToolRequestParams``).
            context: Per-call context passed through to the handler.

        Returns:
            Whatever the handler returned, unchanged.

        Raises:
            McpError: Every failure, normalized by ``format_mcp_error``:
                ``INVALID_REQUEST`` for unknown tools, ``INVALID_PARAMS`` for
                arguments that fail validation, the handler's own error
                otherwise.
        """
        name, arguments = _split_params(params)
        try:
            for registration in self._registrations.values():
                if registration.schema.accepts(name):
                    call = self._validate(
                        registration.schema,
                        name,
                        coerce_boolean_arguments(registration.schema, arguments),
                    )
                    return await registration.handler(call, context)
            raise mcp_error(INVALID_REQUEST, f"Unknown tool: {name}")
        except Exception as e:
            error = format_mcp_error(e)
            logger.error(
                "Error handling %s (code %s): %s | arguments=%r",
                name,
                error.error.code,
                error.error.message,
                arguments,
            )
            raise error

    @staticmethod
    def _validate(schema: ToolSchema, name: str, arguments: Optional[dict[str, Any]]) -> ToolCall:
        if not isinstance(name, str) or not schema.accepts(name):
            raise mcp_error(INVALID_PARAMS, f"Invalid tool name: {name!r}")
        if schema.arguments is None:
            return ToolCall(name=name, arguments=dict(arguments or {}))

        try:
            validated = schema.arguments.model_validate(arguments or {})
        except ValidationError as e:
            raise mcp_error(
                INVALID_PARAMS,
                f"Invalid arguments for {name}: {summarize_validation_error(e)}",
            ) from e
        return ToolCall(name=name, arguments=validated)


# ------------------------------------------------------------------------------
# coerce_boolean_arguments - Undo "true"/"false" strings sent by some clients
# ------------------------------------------------------------------------------
# Only keys declared as boolean (Optional allowed) with a value of exactly
# "true" or "false" are touched. A key whose declaration cannot be inspected
# is skipped, the rest of the call is still coerced.
# ------------------------------------------------------------------------------
def coerce_boolean_arguments(
    schema: ToolSchema, arguments: Optional[Mapping[str, Any]]
) -> Optional[dict[str, Any]]:
    if not arguments or schema.arguments is None:
        return dict(arguments) if arguments is not None else None

    try:
        declared = declared_keys(schema.arguments)
    except Exception:
        logger.debug("Could not inspect arguments of %s", schema.name, exc_info=True)
        return dict(arguments)

    fixed = dict(arguments)
    for key, value in arguments.items():
        try:
            if key not in declared or not is_boolean_annotation(declared[key]):
                continue
            if isinstance(value, str) and value in ("true", "false"):
                fixed[key] = value == "true"
        except Exception:
            continue
    return fixed


def _split_params(params: Any) -> tuple[Any, Optional[dict[str, Any]]]:
    if isinstance(params, Mapping):
        return params.get("name"), params.get("arguments")
    return getattr(params, "name", None), getattr(params, "arguments", None)
