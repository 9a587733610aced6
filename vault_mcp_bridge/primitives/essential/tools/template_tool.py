"""Execute template tool - run a Templater template through the Local REST API."""
from typing import Optional
import re

from pydantic import Field

from ....api_models import MIME_TYPE_NOTE_JSON, ApiNoteJson, ApiTemplateExecutionResponse
from ....errors import HandlerError
from ....request_router import VaultClient
from ....schema import VaultArguments
from ....tool_registry import DispatchContext, ToolCall, ToolRegistry, ToolSchema
from ._helpers import encode_directory, text_result, to_json_text

# <% tp.mcpTools.prompt("topic", "What to write about") %>
_PARAMETER_PATTERN = re.compile(
    r"tp\.mcpTools\.prompt\(\s*[\"']([^\"']+)[\"']"
    r"(?:\s*,\s*[\"']([^\"']*)[\"'])?"
)


class TemplateArguments(VaultArguments):
    name: str = Field(min_length=1, description="Path of the template file in the vault.")
    arguments: dict[str, str] = Field(default_factory=dict)
    create_file: Optional[bool] = Field(default=None, alias="createFile")
    target_path: Optional[str] = Field(default=None, alias="targetPath")


def template_parameter_descriptions(content: str) -> dict[str, Optional[str]]:
    """Prompt parameters a template declares, in order, mapped to their description.

    The first description given for a name wins.
    """
    seen: dict[str, Optional[str]] = {}
    for match in _PARAMETER_PATTERN.finditer(content):
        name, description = match.group(1), match.group(2)
        if seen.get(name) is None:
            seen[name] = description or None
    return seen


def template_parameters(content: str) -> list[str]:
    """Names of the prompt parameters a template declares, in order, deduplicated."""
    return list(template_parameter_descriptions(content))


def register_template_tool(tools: ToolRegistry, client: VaultClient) -> None:
    """Register the execute_template tool."""

    async def execute_template(call: ToolCall, context: DispatchContext):
        args = call.arguments
        note = await client.request(
            args.vault_id,
            ApiNoteJson,
            f"/vault/{encode_directory(args.name)}",
            headers={"Accept": MIME_TYPE_NOTE_JSON},
        )

        missing = [p for p in template_parameters(note.content) if p not in args.arguments]
        if missing:
            raise HandlerError(
                "Missing template arguments",
                hint="Pass every parameter the template prompts for",
                template=args.name,
                missing=missing,
            )

        body = {
            "name": args.name,
            "arguments": args.arguments,
            "createFile": bool(args.create_file),
        }
        if args.target_path:
            body["targetPath"] = args.target_path

        response = await client.request(
            args.vault_id,
            ApiTemplateExecutionResponse,
            "/templates/execute",
            method="POST",
            json_body=body,
        )
        return text_result(to_json_text(response), vault_id=args.vault_id)

    tools.register(
        ToolSchema(
            "execute_template",
            "Execute a Templater template with the given arguments",
            TemplateArguments,
        ),
        execute_template,
    )
