"""E2E fixtures: a fully built server talking to the fake Local REST API."""
from __future__ import annotations

import json

import pytest

from vault_mcp_bridge.config import ServerConfig
from vault_mcp_bridge.mcp_server import build_server


@pytest.fixture
def vaults_file(tmp_path):
    """vaults.json with two vaults, ``work`` being the default."""
    path = tmp_path / "vaults.json"
    path.write_text(
        json.dumps(
            {
                "targets": [
                    {"id": "work", "name": "Work", "baseUrl": "https://127.0.0.1:27124",
                     "credential": "work-key", "path": "/vaults/work"},
                    {"id": "home", "name": "Home", "baseUrl": "https://127.0.0.1:27125",
                     "credential": "home-key"},
                ],
                "defaultTargetId": "work",
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def server(vaults_file, fake_api):
    config = ServerConfig(vaults_config_path=str(vaults_file), log_file="")
    return build_server(config, transport=fake_api.transport, setup_logging=False)
