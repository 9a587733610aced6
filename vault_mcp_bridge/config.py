"""Server settings for the vault bridge.

This module provides the settings dataclass and a loader that merges
defaults, environment variables and CLI overrides. Vault connection
details live separately in ``vault_config``.
"""

from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Literal, Mapping, Optional
import os

from .vault_config import DEFAULT_VAULTS_CONFIG_PATH

DEFAULT_LOG_FILE = Path.home() / ".local" / "state" / "vault-mcp-bridge" / "vault-mcp-bridge.log"

# Environment variable -> ServerConfig field
ENV_VARS: dict[str, str] = {
    "VAULT_MCP_MODE": "mode",
    "VAULT_MCP_HTTP_HOST": "http_host",
    "VAULT_MCP_HTTP_PORT": "http_port",
    "VAULT_MCP_HTTP_PATH": "http_path",
    "VAULT_MCP_VAULTS_CONFIG": "vaults_config_path",
    "VAULT_MCP_LOG_LEVEL": "log_level",
    "VAULT_MCP_LOG_FILE": "log_file",
}


@dataclass
class ServerConfig:
    """
    Bridge settings.

    All fields have sensible defaults - the bridge works without any
    configuration, serving MCP over stdio.
    """

    # Transport: stdio for desktop clients, http for streamable HTTP
    mode: Literal["stdio", "http"] = "stdio"

    # HTTP settings (mode == "http" only)
    http_host: str = "127.0.0.1"
    http_port: int = 3142
    http_path: str = "/mcp"

    # Where vaults.json lives
    vaults_config_path: str = str(DEFAULT_VAULTS_CONFIG_PATH)

    # Logging. Empty log_file disables the file handler.
    log_level: str = "INFO"
    log_file: str = field(default_factory=lambda: str(DEFAULT_LOG_FILE))

    def is_valid_for_mode(self) -> tuple[bool, str]:
        """
        Check if config is valid for current mode.

        Returns:
            Tuple of (is_valid, error_message). If valid, error_message is empty string.

        Examples:
            >>> ServerConfig(mode="http", http_port=80).is_valid_for_mode()
            (True, '')

            >>> ServerConfig(mode="http", http_port=70000).is_valid_for_mode()
            (False, 'Port must be between 1 and 65535')
        """
        if self.mode == "stdio":
            return True, ""
        if self.mode == "http":
            if not (1 <= self.http_port <= 65535):
                return False, "Port must be between 1 and 65535"
            if not self.http_path.startswith("/"):
                return False, "HTTP path must start with '/'"
            return True, ""
        return False, f"Unknown mode: {self.mode}"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerConfig":
        """
        Create from dict, using defaults for missing keys.

        Only includes keys that are actual dataclass fields, ignoring any
        extra keys in the input dict. ``None`` values are treated as missing
        so unset CLI flags do not clobber other sources.

        Examples:
            >>> ServerConfig.from_dict({"http_port": "8080"}).http_port
            8080

            >>> ServerConfig.from_dict({"unknown_field": "ignored"}).mode
            'stdio'
        """
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name in data and data[f.name] is not None:
                values[f.name] = data[f.name]

        if "http_port" in values:
            try:
                values["http_port"] = int(values["http_port"])
            except (TypeError, ValueError):
                raise ValueError(f"Invalid HTTP port: {values['http_port']!r}")
        if "log_level" in values:
            values["log_level"] = str(values["log_level"]).upper()
        if "mode" in values:
            values["mode"] = str(values["mode"]).lower()

        return cls(**values)


def load_server_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """
    Build settings from defaults, then environment, then ``overrides``.

    Args:
        overrides: Highest-precedence values (typically parsed CLI flags).
        environ: Environment to read, defaults to ``os.environ``.

    Raises:
        ValueError: If the merged settings are not valid for their mode.
    """
    environ = os.environ if environ is None else environ

    merged: dict[str, Any] = {}
    for env_name, field_name in ENV_VARS.items():
        if env_name in environ:
            merged[field_name] = environ[env_name]
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    config = ServerConfig.from_dict(merged)
    valid, error = config.is_valid_for_mode()
    if not valid:
        raise ValueError(error)
    return config
