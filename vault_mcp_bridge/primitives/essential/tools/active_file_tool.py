"""Active file tools - read and modify the note currently open in Obsidian."""
from typing import Literal, Optional
from urllib.parse import quote

from pydantic import Field

from ....api_models import MIME_TYPE_NOTE_JSON, ApiNoteJson, NoContent
from ....request_router import VaultClient
from ....schema import VaultArguments
from ....tool_registry import DispatchContext, ToolCall, ToolRegistry, ToolSchema
from ._helpers import text_result, to_json_text


class FormatArguments(VaultArguments):
    format: Optional[Literal["markdown", "json"]] = Field(
        default=None,
        description='"json" returns parsed frontmatter and tags along with the content.',
    )


class ContentArguments(VaultArguments):
    content: str


class PatchArguments(VaultArguments):
    operation: Literal["append", "prepend", "replace"]
    target_type: Literal["heading", "block", "frontmatter"] = Field(alias="targetType")
    target: str = Field(
        description="Heading path (use the delimiter between levels), block reference id, or frontmatter field.",
    )
    target_delimiter: Optional[str] = Field(default=None, alias="targetDelimiter")
    trim_target_whitespace: Optional[bool] = Field(default=None, alias="trimTargetWhitespace")
    content: str
    content_type: Optional[Literal["text/markdown", "application/json"]] = Field(
        default=None, alias="contentType"
    )


def patch_headers(args: PatchArguments) -> dict[str, str]:
    """Headers the Local REST API PATCH endpoints read the operation from."""
    headers = {
        "Operation": args.operation,
        "Target-Type": args.target_type,
        # Non-ASCII headings cannot travel in a raw header value
        "Target": quote(args.target, safe=""),
    }
    if args.target_delimiter:
        headers["Target-Delimiter"] = args.target_delimiter
    if args.trim_target_whitespace is not None:
        headers["Trim-Target-Whitespace"] = "true" if args.trim_target_whitespace else "false"
    if args.content_type:
        headers["Content-Type"] = args.content_type
    return headers


def note_format(fmt: Optional[str]) -> tuple[str, object]:
    """Accept header and response shape for a markdown/json read."""
    if fmt == "json":
        return MIME_TYPE_NOTE_JSON, ApiNoteJson
    return "text/markdown", str


def register_active_file_tools(tools: ToolRegistry, client: VaultClient) -> None:
    """Register get/update/append/patch/delete tools for the active file."""

    async def get_active_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        accept, shape = note_format(args.format)
        data = await client.request(args.vault_id, shape, "/active/", headers={"Accept": accept})
        text = data if isinstance(data, str) else to_json_text(data)
        return text_result(text, vault_id=args.vault_id)

    async def update_active_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id, NoContent, "/active/", method="PUT", content=args.content
        )
        return text_result("File updated successfully", vault_id=args.vault_id)

    async def append_to_active_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id, NoContent, "/active/", method="POST", content=args.content
        )
        return text_result("Content appended successfully", vault_id=args.vault_id)

    async def patch_active_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id,
            NoContent,
            "/active/",
            method="PATCH",
            headers=patch_headers(args),
            content=args.content,
        )
        return text_result("File patched successfully", vault_id=args.vault_id)

    async def delete_active_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(args.vault_id, NoContent, "/active/", method="DELETE")
        return text_result("File deleted successfully", vault_id=args.vault_id)

    tools.register(
        ToolSchema(
            "get_active_file",
            "Returns the content of the currently active file in Obsidian. Can return either "
            "markdown content or a JSON representation including parsed tags and frontmatter.",
            FormatArguments,
        ),
        get_active_file,
    )
    tools.register(
        ToolSchema(
            "update_active_file",
            "Update the content of the active file open in Obsidian.",
            ContentArguments,
        ),
        update_active_file,
    )
    tools.register(
        ToolSchema(
            "append_to_active_file",
            "Append content to the end of the currently-open note.",
            ContentArguments,
        ),
        append_to_active_file,
    )
    tools.register(
        ToolSchema(
            "patch_active_file",
            "Insert or modify content in the currently-open note relative to a heading, "
            "block reference, or frontmatter field.",
            PatchArguments,
        ),
        patch_active_file,
    )
    tools.register(
        ToolSchema(
            "delete_active_file",
            "Delete the currently-active file in Obsidian.",
            VaultArguments,
        ),
        delete_active_file,
    )
