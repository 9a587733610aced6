"""List configured vaults tool."""
from ....request_router import VaultClient
from ....tool_registry import (
    LIST_VAULTS_DESCRIPTION,
    LIST_VAULTS_TOOL,
    DispatchContext,
    ToolCall,
    ToolRegistry,
    ToolSchema,
)
from ....vault_config import VaultConfigManager
from ._helpers import text_result


def format_vault_list(vaults: VaultConfigManager) -> str:
    """Numbered, human-readable list of vaults with the default marked.

    Example:
        Configured vaults:

        1. ID: work (default)
           Name: Work
           Path: /home/me/Work
    """
    targets = vaults.list_targets()
    if not targets:
        return "Configured vaults:\n\nNo vaults configured."

    entries = []
    for index, target in enumerate(targets, start=1):
        marker = " (default)" if target.id == vaults.default_target_id else ""
        entries.append(
            f"{index}. ID: {target.id}{marker}\n"
            f"   Name: {target.display_name}\n"
            f"   Path: {target.local_path or 'N/A'}"
        )
    return "Configured vaults:\n\n" + "\n\n".join(entries)


def register_list_vaults_tool(tools: ToolRegistry, client: VaultClient) -> None:
    """Register the list_configured_vaults tool."""

    async def list_configured_vaults(call: ToolCall, context: DispatchContext):
        return text_result(format_vault_list(client.vaults))

    tools.register(
        ToolSchema(LIST_VAULTS_TOOL, LIST_VAULTS_DESCRIPTION),
        list_configured_vaults,
    )
