"""MCP bridge to the Obsidian Local REST API, for one or more vaults."""

__version__ = "0.4.0"

__all__ = ["__version__"]
