"""Helpers shared by the vault tools."""
from typing import Any, Optional
from urllib.parse import quote
import json

from mcp.types import CallToolResult, TextContent
from pydantic import TypeAdapter

_JSONABLE = TypeAdapter(Any)


def to_json_text(data: Any) -> str:
    """Pretty-print a validated payload (models included) as JSON."""
    return json.dumps(_JSONABLE.dump_python(data, mode="json", by_alias=True), indent=2)


def text_result(*texts: str, vault_id: Optional[str] = None) -> CallToolResult:
    """Wrap text blocks in a tool result, noting the vault when one was named."""
    content = [TextContent(type="text", text=text) for text in texts]
    if vault_id:
        content.append(TextContent(type="text", text=f"Vault used: {vault_id}"))
    return CallToolResult(content=content)


def encode_path_component(value: str) -> str:
    """Percent-encode a file name for use as a single URL path component."""
    return quote(value, safe="")


def encode_directory(value: str) -> str:
    """Percent-encode a directory path, keeping its slashes."""
    return quote(value.strip("/"), safe="/")
