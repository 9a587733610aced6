"""MCP server exposing the vault tools and prompts over stdio or streamable HTTP.

This module wires the ``ToolRegistry`` into the MCP SDK's low-level ``Server``.
The high-level ``call_tool`` decorator is not used: it turns every handler
error into an ``isError`` result, while the bridge reports failures as
JSON-RPC errors carrying the code chosen by ``format_mcp_error``.

Architecture:
    - ListToolsRequest -> ``ToolRegistry.list()``
    - CallToolRequest  -> ``ToolRegistry.dispatch()``
    - ListPromptsRequest -> ``VaultPrompts.list_prompts()``
    - GetPromptRequest   -> ``VaultPrompts.get_prompt()``
    - stdio transport: ``mcp.server.stdio.stdio_server``
    - HTTP transport: ``StreamableHTTPSessionManager`` mounted in a starlette
      app, served by uvicorn

Startup order:
    1. Logging is configured
    2. ``vaults.json`` is loaded (missing file -> empty configuration)
    3. Every tool is registered and the prompt source is built
    4. Request handlers are installed and the transport starts
"""

from contextlib import asynccontextmanager
from typing import Any, Optional
import logging

import httpx
import uvicorn
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.server.transport_security import TransportSecuritySettings
from starlette.applications import Starlette
from starlette.routing import Route

from . import __version__
from .config import ServerConfig
from .errors import format_mcp_error
from .logging_setup import configure_logging
from .primitives import register_all_prompts, register_all_tools
from .primitives.essential.prompts.vault_prompts import VaultPrompts
from .tool_registry import DispatchContext, ToolRegistry
from .vault_config import VaultConfigManager

logger = logging.getLogger(__name__)

SERVER_NAME = "vault-mcp-bridge"

_LOOPBACK_HOSTS = ("127.0.0.1", "localhost", "::1")


class McpServer:
    """MCP server bound to one tool registry and one prompt source.

    Attributes:
        _config: Transport settings (mode, HTTP host/port/path)
        _vaults: Loaded vault configuration, kept for introspection
        _tools: Registry the tool handlers delegate to
        _prompts: Prompt source the prompt handlers delegate to
        _server: Low-level SDK server carrying the request handlers
    """

    def __init__(
        self,
        config: ServerConfig,
        vaults: VaultConfigManager,
        tools: ToolRegistry,
        prompts: VaultPrompts,
    ) -> None:
        self._config = config
        self._vaults = vaults
        self._tools = tools
        self._prompts = prompts
        self._server: Server = Server(SERVER_NAME, version=__version__)
        self._install_handlers()

    @property
    def server(self) -> Server:
        """The low-level SDK server (used by in-memory test sessions)."""
        return self._server

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def vaults(self) -> VaultConfigManager:
        return self._vaults

    @property
    def prompts(self) -> VaultPrompts:
        return self._prompts

    # ------------------------------------------------------------------
    # Request handlers
    # ------------------------------------------------------------------

    def _install_handlers(self) -> None:
        """Route tools/* to the registry and prompts/* to the prompt source.

        Registering the ListToolsRequest and ListPromptsRequest handlers is
        also what makes ``create_initialization_options`` advertise the tools
        and prompts capabilities.
        """
        self._server.request_handlers[types.ListToolsRequest] = self._handle_list_tools
        self._server.request_handlers[types.CallToolRequest] = self._handle_call_tool
        self._server.request_handlers[types.ListPromptsRequest] = self._handle_list_prompts
        self._server.request_handlers[types.GetPromptRequest] = self._handle_get_prompt

    async def _handle_list_tools(self, req: types.ListToolsRequest) -> types.ServerResult:
        listing = self._tools.list()
        tools = [types.Tool(**entry) for entry in listing["tools"]]
        logger.debug("Listing %d tools", len(tools))
        return types.ServerResult(types.ListToolsResult(tools=tools))

    async def _handle_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        logger.debug("Calling tool %s with %r", req.params.name, req.params.arguments)
        # McpError propagates; the SDK turns it into a JSON-RPC error response
        result = await self._tools.dispatch(req.params, DispatchContext(server=self._server))
        logger.debug("Tool %s returned %d content block(s)", req.params.name, len(result.content))
        return types.ServerResult(result)

    async def _handle_list_prompts(self, req: types.ListPromptsRequest) -> types.ServerResult:
        extra = (req.params.model_extra if req.params else None) or {}
        try:
            prompts = await self._prompts.list_prompts(extra.get("vaultId"))
        except Exception as e:
            error = format_mcp_error(e)
            logger.error("Error listing prompts: %s", error.error.message)
            raise error
        logger.debug("Listing %d prompts", len(prompts))
        return types.ServerResult(types.ListPromptsResult(prompts=prompts))

    async def _handle_get_prompt(self, req: types.GetPromptRequest) -> types.ServerResult:
        logger.debug("Getting prompt %s", req.params.name)
        try:
            result = await self._prompts.get_prompt(req.params.name, req.params.arguments)
        except Exception as e:
            error = format_mcp_error(e)
            logger.error("Error getting prompt %s: %s", req.params.name, error.error.message)
            raise error
        return types.ServerResult(result)

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Serve until the transport closes (stdio) or the process is stopped (HTTP)."""
        if self._config.mode == "http":
            await self._run_http_mode()
        else:
            await self._run_stdio_mode()

    async def _run_stdio_mode(self) -> None:
        logger.info(
            "Serving %d tools over stdio (%d vaults configured)",
            len(self._tools),
            len(self._vaults.list_targets()),
        )
        async with stdio_server() as (read_stream, write_stream):
            await self._server.run(
                read_stream,
                write_stream,
                self._server.create_initialization_options(),
            )

    def http_app(self) -> Starlette:
        """Starlette app serving streamable HTTP at ``config.http_path``.

        The session manager's task group lives in the app lifespan, so the app
        must be run by an ASGI server that honours lifespan events.
        """
        session_manager = StreamableHTTPSessionManager(
            app=self._server,
            json_response=False,
            stateless=False,
            security_settings=_security_settings(self._config),
        )

        async def handle_streamable_http(scope, receive, send) -> None:
            await session_manager.handle_request(scope, receive, send)

        @asynccontextmanager
        async def lifespan(app: Starlette):
            async with session_manager.run():
                yield

        return Starlette(
            routes=[Route(self._config.http_path, endpoint=_AsgiEndpoint(handle_streamable_http))],
            lifespan=lifespan,
        )

    async def _run_http_mode(self) -> None:
        """Run the streamable HTTP app with uvicorn.

        Note:
            ``server.serve()`` blocks until uvicorn receives a shutdown signal.
        """
        app = self.http_app()
        config = uvicorn.Config(
            app,
            host=self._config.http_host,
            port=self._config.http_port,
            log_level="warning",
        )
        server = uvicorn.Server(config)

        logger.info(
            "Serving %d tools on http://%s:%d%s",
            len(self._tools),
            self._config.http_host,
            self._config.http_port,
            self._config.http_path,
        )
        await server.serve()


class _AsgiEndpoint:
    """Marks a coroutine as a raw ASGI app so starlette's Route does not wrap it."""

    def __init__(self, handler) -> None:
        self._handler = handler

    async def __call__(self, scope, receive, send) -> None:
        await self._handler(scope, receive, send)


def _security_settings(config: ServerConfig) -> TransportSecuritySettings:
    # DNS rebinding protection only makes sense for a loopback bind
    if config.http_host not in _LOOPBACK_HOSTS:
        return TransportSecuritySettings(enable_dns_rebinding_protection=False)

    port = config.http_port
    return TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=[f"127.0.0.1:{port}", f"localhost:{port}", f"[::1]:{port}"],
        allowed_origins=[
            f"http://127.0.0.1:{port}",
            f"http://localhost:{port}",
            f"http://[::1]:{port}",
        ],
    )


def build_server(
    config: ServerConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    vaults: Optional[VaultConfigManager] = None,
    setup_logging: bool = True,
) -> McpServer:
    """Create a fully wired server from settings.

    Args:
        config: Server settings
        transport: Optional ``httpx`` transport for outbound vault calls (tests)
        vaults: Pre-built vault configuration. Loaded from
            ``config.vaults_config_path`` when omitted.
        setup_logging: Install the package log handlers from ``config``

    Raises:
        ConfigurationLoadError: If ``vaults.json`` exists but is invalid
    """
    if setup_logging:
        configure_logging(config.log_level, config.log_file or None)

    if vaults is None:
        vaults = VaultConfigManager(config.vaults_config_path)
        vaults.load_or_empty()

    tools = register_all_tools(ToolRegistry(), vaults, transport=transport)
    logger.debug("Registered tools: %s", ", ".join(tools.names()))
    prompts = register_all_prompts(vaults, transport=transport)
    return McpServer(config, vaults, tools, prompts)


async def serve(config: ServerConfig, **kwargs: Any) -> None:
    """Build the server and run it on the configured transport."""
    await build_server(config, **kwargs).run()
