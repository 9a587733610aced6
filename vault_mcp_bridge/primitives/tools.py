"""Central tool registration module."""

from typing import Optional

import httpx

from ..request_router import VaultClient
from ..tool_registry import ToolRegistry
from ..vault_config import VaultConfigManager
from .essential.tools.active_file_tool import register_active_file_tools
from .essential.tools.list_vaults_tool import register_list_vaults_tool
from .essential.tools.search_tools import register_search_tools
from .essential.tools.server_info_tool import register_server_info_tool
from .essential.tools.show_file_tool import register_show_file_tool
from .essential.tools.template_tool import register_template_tool
from .essential.tools.vault_files_tool import register_vault_files_tools


def register_all_tools(
    tools: ToolRegistry,
    vaults: VaultConfigManager,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ToolRegistry:
    """Register every vault tool with the registry.

    Must run after the vault configuration is loaded and before the server
    accepts requests.

    Args:
        tools: Registry to populate
        vaults: Loaded vault configuration, captured by the tool handlers
        transport: Optional ``httpx`` transport for outbound calls (tests)

    Raises:
        DuplicateToolError: If a tool name is registered twice
    """
    client = VaultClient(vaults, transport=transport)

    register_list_vaults_tool(tools, client)
    register_server_info_tool(tools, client)
    register_active_file_tools(tools, client)
    register_show_file_tool(tools, client)
    register_vault_files_tools(tools, client)
    register_search_tools(tools, client)
    register_template_tool(tools, client)

    return tools
