"""Helper functions for E2E tests over an in-memory MCP client session."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from mcp import ClientSession
from mcp.shared.memory import create_connected_server_and_client_session

from vault_mcp_bridge.mcp_server import McpServer


@asynccontextmanager
async def client_session(server: McpServer) -> AsyncIterator[ClientSession]:
    """Initialized client connected to ``server`` through memory streams."""
    async with create_connected_server_and_client_session(
        server.server, raise_exceptions=False
    ) as session:
        yield session


async def list_tools(session: ClientSession) -> list[dict[str, Any]]:
    """List all advertised tools as plain dicts.

    Returns:
        Tool definitions (name, description, inputSchema).
    """
    result = await session.list_tools()
    return [tool.model_dump(exclude_none=True) for tool in result.tools]


async def call_tool(session: ClientSession, name: str, args: dict[str, Any] | None = None) -> list[str]:
    """Call a tool and return the text of its content blocks.

    Raises:
        McpError: The server answered with a JSON-RPC error.
    """
    result = await session.call_tool(name, args or {})
    return [block.text for block in result.content]
