"""MCP primitives module - tools and prompts exposed by the bridge."""

from .prompts import register_all_prompts
from .tools import register_all_tools


__all__ = ["register_all_prompts", "register_all_tools"]
