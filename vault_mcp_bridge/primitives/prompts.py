"""Central prompt registration module."""

from typing import Optional

import httpx

from ..request_router import VaultClient
from ..vault_config import VaultConfigManager
from .essential.prompts.vault_prompts import VaultPrompts


def register_all_prompts(
    vaults: VaultConfigManager,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VaultPrompts:
    """Build the prompt source served by prompts/list and prompts/get.

    Note:
        Vault prompts are discovered on every prompts/list call, so notes
        added to ``Prompts/`` show up without a restart.

    Args:
        vaults: Loaded vault configuration
        transport: Optional ``httpx`` transport for outbound calls (tests)
    """
    return VaultPrompts(VaultClient(vaults, transport=transport))
