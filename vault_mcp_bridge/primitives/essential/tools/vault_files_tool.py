"""Vault file tools - list, read, create, append, patch and delete notes by path."""
from typing import Literal, Optional

from pydantic import Field

from ....api_models import ApiVaultDirectoryResponse, NoContent
from ....request_router import VaultClient
from ....schema import VaultArguments
from ....tool_registry import DispatchContext, ToolCall, ToolRegistry, ToolSchema
from ._helpers import encode_directory, encode_path_component, text_result, to_json_text
from .active_file_tool import PatchArguments, note_format, patch_headers


class DirectoryArguments(VaultArguments):
    directory: Optional[str] = Field(
        default=None, description="Subdirectory to list. Omit for the vault root."
    )


class FileArguments(VaultArguments):
    filename: str = Field(min_length=1, description="Path of the file relative to the vault root.")


class FileFormatArguments(FileArguments):
    format: Optional[Literal["markdown", "json"]] = None


class FileContentArguments(FileArguments):
    content: str


class FilePatchArguments(PatchArguments):
    filename: str = Field(min_length=1)


def _vault_path(filename: str) -> str:
    return f"/vault/{encode_path_component(filename)}"


def register_vault_files_tools(tools: ToolRegistry, client: VaultClient) -> None:
    """Register the /vault/ file tools."""

    async def list_vault_files(call: ToolCall, context: DispatchContext):
        args = call.arguments
        directory = encode_directory(args.directory) if args.directory else ""
        path = f"/vault/{directory}/" if directory else "/vault/"
        data = await client.request(args.vault_id, ApiVaultDirectoryResponse, path)
        return text_result(to_json_text(data), vault_id=args.vault_id)

    async def get_vault_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        accept, shape = note_format(args.format)
        data = await client.request(
            args.vault_id, shape, _vault_path(args.filename), headers={"Accept": accept}
        )
        text = data if isinstance(data, str) else to_json_text(data)
        return text_result(text, vault_id=args.vault_id)

    async def create_vault_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id,
            NoContent,
            _vault_path(args.filename),
            method="PUT",
            content=args.content,
        )
        return text_result("File created successfully", vault_id=args.vault_id)

    async def append_to_vault_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id,
            NoContent,
            _vault_path(args.filename),
            method="POST",
            content=args.content,
        )
        return text_result("Content appended successfully", vault_id=args.vault_id)

    async def patch_vault_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        headers = patch_headers(args)
        headers["Create-Target-If-Missing"] = "true"
        response = await client.request(
            args.vault_id,
            NoContent,
            _vault_path(args.filename),
            method="PATCH",
            headers=headers,
            content=args.content,
        )
        texts = ["File patched successfully"]
        if isinstance(response, str) and response:
            texts.append(response)
        return text_result(*texts, vault_id=args.vault_id)

    async def delete_vault_file(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id, NoContent, _vault_path(args.filename), method="DELETE"
        )
        return text_result("File deleted successfully", vault_id=args.vault_id)

    tools.register(
        ToolSchema(
            "list_vault_files",
            "List files in the root directory or a specified subdirectory of your vault.",
            DirectoryArguments,
        ),
        list_vault_files,
    )
    tools.register(
        ToolSchema(
            "get_vault_file",
            "Get the content of a file from your vault.",
            FileFormatArguments,
        ),
        get_vault_file,
    )
    tools.register(
        ToolSchema(
            "create_vault_file",
            "Create a new file in your vault or update an existing one.",
            FileContentArguments,
        ),
        create_vault_file,
    )
    tools.register(
        ToolSchema(
            "append_to_vault_file",
            "Append content to a new or existing file.",
            FileContentArguments,
        ),
        append_to_vault_file,
    )
    tools.register(
        ToolSchema(
            "patch_vault_file",
            "Insert or modify content in a file relative to a heading, block reference, "
            "or frontmatter field.",
            FilePatchArguments,
        ),
        patch_vault_file,
    )
    tools.register(
        ToolSchema(
            "delete_vault_file",
            "Delete a file from your vault.",
            FileArguments,
        ),
        delete_vault_file,
    )
