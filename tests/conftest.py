"""Shared fixtures: two configured vaults and a fake Local REST API."""
from __future__ import annotations

import logging

import pytest

from vault_mcp_bridge.primitives import register_all_tools
from vault_mcp_bridge.tool_registry import DispatchContext, ToolRegistry
from vault_mcp_bridge.vault_config import VaultConfigManager

from .helpers import FakeVaultApi, make_target


@pytest.fixture
def fake_api() -> FakeVaultApi:
    return FakeVaultApi()


@pytest.fixture
def vaults() -> VaultConfigManager:
    """``work`` (default, port 27124) and ``home`` (port 27125)."""
    return VaultConfigManager.from_targets(
        [
            make_target("work", 27124, local_path="/home/me/Work"),
            make_target("home", 27125),
        ],
        default_target_id="work",
    )


@pytest.fixture
def tools(vaults, fake_api) -> ToolRegistry:
    return register_all_tools(ToolRegistry(), vaults, transport=fake_api.transport)


@pytest.fixture
def context() -> DispatchContext:
    return DispatchContext()


@pytest.fixture
def restore_package_logger():
    """Undo configure_logging() so caplog keeps seeing package records."""
    package_logger = logging.getLogger("vault_mcp_bridge")
    saved = (list(package_logger.handlers), package_logger.level, package_logger.propagate)
    yield package_logger
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate = saved
    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = propagate
