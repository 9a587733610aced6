"""Command line entry point.

Flags override ``VAULT_MCP_*`` environment variables, which override the
defaults in ``ServerConfig``.
"""

from typing import Optional, Sequence
import argparse
import logging
import sys

import anyio

from . import __version__
from .config import ENV_VARS, load_server_config
from .mcp_server import SERVER_NAME, serve

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    env_help = ", ".join(sorted(ENV_VARS))
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="Expose Obsidian vaults to MCP clients through the Local REST API plugin.",
        epilog=f"Environment variables: {env_help}",
    )
    parser.add_argument(
        "--version", action="version", version=f"{SERVER_NAME} {__version__}"
    )
    parser.add_argument("--mode", choices=("stdio", "http"), help="Transport (default: stdio)")
    parser.add_argument("--host", dest="http_host", help="HTTP bind address")
    parser.add_argument("--port", dest="http_port", type=int, help="HTTP port")
    parser.add_argument("--path", dest="http_path", help="HTTP endpoint path")
    parser.add_argument(
        "--vaults-config", dest="vaults_config_path", help="Path to vaults.json"
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        type=str.upper,
        help="Console log level",
    )
    parser.add_argument("--log-file", help="Log file path, empty string disables it")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        config = load_server_config(vars(args))
    except ValueError as e:
        print(f"{SERVER_NAME}: invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        anyio.run(serve, config)
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        logger.critical("Server stopped: %s", e, exc_info=True)
        sys.exit(1)
