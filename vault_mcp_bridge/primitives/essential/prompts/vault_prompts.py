"""Vault prompts - Templater notes under ``Prompts/`` exposed as MCP prompts.

A note becomes a prompt when it lives directly in the vault's ``Prompts/``
folder, ends in ``.md`` and carries the ``mcp-tools-prompt`` tag. Its
frontmatter ``description`` is the prompt description and every
``tp.mcpTools.prompt("name", "description")`` call in its body is a required
argument. Getting the prompt runs the note through Templater and returns the
rendered text without its frontmatter.

The ``list_configured_vaults`` prompt is global and always listed first.
"""
from typing import Optional
import logging

import httpx
from mcp import types
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS

from ....api_models import (
    MIME_TYPE_NOTE_JSON,
    ApiNoteJson,
    ApiTemplateExecutionResponse,
    ApiVaultDirectoryResponse,
)
from ....errors import mcp_error
from ....request_router import VaultClient
from ....tool_registry import LIST_VAULTS_TOOL
from ..tools._helpers import encode_directory
from ..tools.list_vaults_tool import format_vault_list
from ..tools.template_tool import template_parameter_descriptions

logger = logging.getLogger(__name__)

PROMPT_DIRNAME = "Prompts"
PROMPT_TAG = "mcp-tools-prompt"

LIST_VAULTS_PROMPT = types.Prompt(
    name=LIST_VAULTS_TOOL,
    description=(
        "Displays a list of all Obsidian vaults currently configured "
        "and accessible by this server."
    ),
    arguments=[],
)


def strip_frontmatter(content: str) -> str:
    """Text after the last ``---`` delimiter, trimmed."""
    return content.split("---")[-1].strip()


class VaultPrompts:
    """Lists and renders prompts stored in the configured vaults.

    Attributes:
        _client: Shared vault client; its ``vaults`` drive prompt discovery
    """

    def __init__(self, client: VaultClient) -> None:
        self._client = client

    async def list_prompts(self, vault_id: Optional[str] = None) -> list[types.Prompt]:
        """Global prompts followed by vault prompts.

        With ``vault_id`` only that vault is read and names are bare file
        names. Otherwise every configured vault is read and names are
        prefixed with ``<vaultId>/``.
        """
        prompts = [LIST_VAULTS_PROMPT]
        if vault_id:
            prompts.extend(await self._vault_prompts(vault_id, prefix=False))
            return prompts

        targets = self._client.vaults.list_targets()
        if not targets:
            logger.info("No vaults configured, listing global prompts only")
        for target in targets:
            prompts.extend(await self._vault_prompts(target.id, prefix=True))
        return prompts

    async def _vault_prompts(self, vault_id: str, prefix: bool) -> list[types.Prompt]:
        # A vault that cannot be read contributes no prompts
        try:
            listing = await self._client.request(
                vault_id, ApiVaultDirectoryResponse, f"/vault/{PROMPT_DIRNAME}/"
            )
            prompts = []
            for filename in listing.files:
                if not filename.endswith(".md"):
                    continue
                note = await self._read_note(vault_id, f"{PROMPT_DIRNAME}/{filename}")
                if PROMPT_TAG not in note.tags:
                    continue
                prompts.append(
                    types.Prompt(
                        name=f"{vault_id}/{filename}" if prefix else filename,
                        description=note.frontmatter.get("description") or "",
                        arguments=[
                            types.PromptArgument(name=name, description=description, required=True)
                            for name, description in template_parameter_descriptions(note.content).items()
                        ],
                    )
                )
            return prompts
        except (McpError, httpx.HTTPError) as e:
            message = str(e).lower()
            if "404" in message or "not found" in message:
                logger.debug("No %s folder in vault %s: %s", PROMPT_DIRNAME, vault_id, e)
            else:
                logger.warning("Failed to list prompts for vault %s: %s", vault_id, e)
            return []

    async def get_prompt(self, name: str, arguments: Optional[dict[str, str]] = None) -> types.GetPromptResult:
        """Render prompt ``name``.

        The vault comes from the ``vaultId`` argument, else from a
        ``<vaultId>/`` prefix of the name, else the default vault.

        Raises:
            McpError: INVALID_PARAMS when a template argument is missing,
                INVALID_REQUEST when no vault can be resolved, INTERNAL_ERROR
                when the vault API fails.
        """
        if name == LIST_VAULTS_PROMPT.name:
            return types.GetPromptResult(
                description=LIST_VAULTS_PROMPT.description,
                messages=[
                    types.PromptMessage(
                        role="assistant",
                        content=types.TextContent(type="text", text=format_vault_list(self._client.vaults)),
                    )
                ],
            )

        arguments = dict(arguments or {})
        vault_id = arguments.pop("vaultId", None)
        prompt_name = name
        if not vault_id and "/" in name:
            prefix, rest = name.split("/", 1)
            if self._client.vaults.configuration.get(prefix) is not None:
                vault_id, prompt_name = prefix, rest
                logger.debug("Prompt %s resolved to vault %s", prompt_name, vault_id)

        path = f"{PROMPT_DIRNAME}/{prompt_name}"
        note = await self._read_note(vault_id, path)

        parameters = template_parameter_descriptions(note.content)
        missing = [p for p in parameters if p not in arguments]
        if missing:
            raise mcp_error(INVALID_PARAMS, f"Invalid arguments: missing {', '.join(missing)}")

        response = await self._client.request(
            vault_id,
            ApiTemplateExecutionResponse,
            "/templates/execute",
            method="POST",
            json_body={"name": path, "arguments": arguments},
        )
        return types.GetPromptResult(
            description=note.frontmatter.get("description"),
            messages=[
                types.PromptMessage(
                    role="user",
                    content=types.TextContent(type="text", text=strip_frontmatter(response.content or "")),
                )
            ],
        )

    async def _read_note(self, vault_id: Optional[str], path: str) -> ApiNoteJson:
        return await self._client.request(
            vault_id,
            ApiNoteJson,
            f"/vault/{encode_directory(path)}",
            headers={"Accept": MIME_TYPE_NOTE_JSON},
        )
