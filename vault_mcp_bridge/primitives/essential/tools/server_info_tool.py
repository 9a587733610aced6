"""Server info tool - status of a vault's Local REST API."""
from ....api_models import ApiStatusResponse
from ....request_router import VaultClient
from ....schema import VaultArguments
from ....tool_registry import DispatchContext, ToolCall, ToolRegistry, ToolSchema
from ._helpers import text_result, to_json_text


def register_server_info_tool(tools: ToolRegistry, client: VaultClient) -> None:
    """Register the get_server_info tool."""

    async def get_server_info(call: ToolCall, context: DispatchContext):
        args = call.arguments
        data = await client.request(args.vault_id, ApiStatusResponse, "/")
        return text_result(to_json_text(data), vault_id=args.vault_id)

    tools.register(
        ToolSchema(
            "get_server_info",
            "Returns basic details about the Obsidian Local REST API and authentication status. "
            "This is the only API request that does not require authentication.",
            VaultArguments,
        ),
        get_server_info,
    )
