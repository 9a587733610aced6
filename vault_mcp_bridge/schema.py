"""Argument shapes and their conversion to portable JSON Schema.

Tools declare their arguments as pydantic models deriving from
``ToolArguments``. The registry needs three things from a shape: a JSON
Schema to advertise, the declared type of each key (for boolean coercion),
and a readable summary when validation fails.
"""

import types
from typing import Annotated, Any, Optional, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationError

EMPTY_OBJECT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


class ToolArguments(BaseModel):
    """Base class for tool argument shapes.

    Strict so a string is never silently accepted where a boolean or number
    is declared. Undeclared keys are kept verbatim.
    """

    model_config = ConfigDict(strict=True, extra="allow", populate_by_name=True)


class VaultArguments(ToolArguments):
    """Arguments shared by every tool that talks to a vault."""

    vault_id: Optional[str] = Field(
        default=None,
        alias="vaultId",
        min_length=1,
        description="ID of the target vault. Omit to use the default vault.",
    )


def shape_to_json_schema(shape: Optional[type[BaseModel]]) -> dict[str, Any]:
    """Convert an argument shape to a JSON Schema object.

    Raises whatever pydantic raises when the shape cannot be represented;
    callers decide how to recover.
    """
    if shape is None:
        return dict(EMPTY_OBJECT_SCHEMA)
    schema = shape.model_json_schema(by_alias=True)
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return schema


def is_boolean_annotation(annotation: Any) -> bool:
    """True when ``annotation`` is ``bool`` once ``Optional`` is stripped."""
    annotation = _unwrap_annotated(annotation)
    if get_origin(annotation) in (Union, types.UnionType):
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) != 1:
            return False
        annotation = _unwrap_annotated(members[0])
    return annotation is bool


def _unwrap_annotated(annotation: Any) -> Any:
    if get_origin(annotation) is Annotated:
        return get_args(annotation)[0]
    return annotation


def declared_keys(shape: type[BaseModel]) -> dict[str, Any]:
    """Map each key a caller may send (alias first) to its declared annotation."""
    keys: dict[str, Any] = {}
    for name, field in shape.model_fields.items():
        keys[field.alias or name] = field.annotation
        keys.setdefault(name, field.annotation)
    return keys


def summarize_validation_error(error: ValidationError) -> str:
    """One line per failing location, e.g. ``arguments.flag: Input should be ...``."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "(root)"
        parts.append(f"{location}: {detail.get('msg', 'invalid value')}")
    return "; ".join(parts)
