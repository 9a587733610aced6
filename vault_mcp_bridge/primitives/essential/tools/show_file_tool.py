"""Show file tool - open a note in the Obsidian UI."""
from typing import Optional

from pydantic import Field

from ....api_models import NoContent
from ....request_router import VaultClient
from ....schema import VaultArguments
from ....tool_registry import DispatchContext, ToolCall, ToolRegistry, ToolSchema
from ._helpers import encode_path_component, text_result


class ShowFileArguments(VaultArguments):
    filename: str = Field(min_length=1)
    new_leaf: Optional[bool] = Field(
        default=None, alias="newLeaf", description="Open the file in a new pane."
    )


def register_show_file_tool(tools: ToolRegistry, client: VaultClient) -> None:
    """Register the show_file_in_obsidian tool."""

    async def show_file_in_obsidian(call: ToolCall, context: DispatchContext):
        args = call.arguments
        await client.request(
            args.vault_id,
            NoContent,
            f"/open/{encode_path_component(args.filename)}",
            method="POST",
            params={"newLeaf": "true"} if args.new_leaf else None,
        )
        return text_result("File opened successfully", vault_id=args.vault_id)

    tools.register(
        ToolSchema(
            "show_file_in_obsidian",
            "Open a document in the Obsidian UI. Creates a new document if it doesn't exist. "
            "Returns a confirmation if the file was opened successfully.",
            ShowFileArguments,
        ),
        show_file_in_obsidian,
    )
