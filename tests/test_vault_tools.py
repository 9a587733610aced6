"""Tests for the vault tools, dispatched through the registry."""
from __future__ import annotations

import json

import pytest
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST

from vault_mcp_bridge.primitives.essential.tools.list_vaults_tool import format_vault_list
from vault_mcp_bridge.primitives.essential.tools.search_tools import tag_list_query, tag_search_query
from vault_mcp_bridge.primitives.essential.tools.template_tool import template_parameters
from vault_mcp_bridge.vault_config import VaultConfigManager

from .helpers import result_texts

EXPECTED_TOOLS = [
    "list_configured_vaults",
    "get_server_info",
    "get_active_file",
    "update_active_file",
    "append_to_active_file",
    "patch_active_file",
    "delete_active_file",
    "show_file_in_obsidian",
    "list_vault_files",
    "get_vault_file",
    "create_vault_file",
    "append_to_vault_file",
    "patch_vault_file",
    "delete_vault_file",
    "search_vault",
    "search_dql",
    "search_vault_simple",
    "search_tags",
    "list_file_tags",
    "search_vault_smart",
    "execute_template",
]


async def call(tools, context, tool_name, **arguments):
    return await tools.dispatch({"name": tool_name, "arguments": arguments}, context)


class TestToolSet:
    """Tests for the registered tool set."""

    def test_all_tools_registered(self, tools):
        assert tools.names() == EXPECTED_TOOLS

    def test_list_vaults_listed_first(self, tools):
        listing = tools.list()["tools"]
        assert listing[0]["name"] == "list_configured_vaults"
        assert listing[0]["inputSchema"] == {"type": "object", "properties": {}}

    def test_vault_tools_accept_vault_id(self, tools):
        """Every tool that talks to a vault advertises the optional vaultId."""
        for entry in tools.list()["tools"][1:]:
            assert "vaultId" in entry["inputSchema"]["properties"], entry["name"]
            assert "vaultId" not in entry["inputSchema"].get("required", [])


class TestListConfiguredVaults:
    """Tests for list_configured_vaults."""

    @pytest.mark.asyncio
    async def test_lists_vaults_with_default_marked(self, tools, context, fake_api):
        result = await call(tools, context, "list_configured_vaults")

        (text,) = result_texts(result)
        assert text.startswith("Configured vaults:\n\n1. ID: work (default)\n   Name: Work")
        assert "   Path: /home/me/Work" in text
        assert "2. ID: home\n   Name: Home\n   Path: N/A" in text
        assert fake_api.requests == []

    def test_no_vaults(self):
        assert format_vault_list(VaultConfigManager.from_targets([])) == (
            "Configured vaults:\n\nNo vaults configured."
        )


class TestServerInfo:
    """Tests for get_server_info."""

    @pytest.mark.asyncio
    async def test_default_vault(self, tools, context, fake_api):
        """Without vaultId the default vault is queried and no vault line is added."""
        fake_api.on("GET", "/", json={"status": "OK", "authenticated": True, "service": "REST API"})

        result = await call(tools, context, "get_server_info")

        texts = result_texts(result)
        assert len(texts) == 1
        assert json.loads(texts[0])["status"] == "OK"
        assert fake_api.last.url.port == 27124

    @pytest.mark.asyncio
    async def test_named_vault(self, tools, context, fake_api):
        """An explicit vaultId picks that vault and is echoed back."""
        fake_api.on("GET", "/", json={"status": "OK"})

        result = await call(tools, context, "get_server_info", vaultId="home")

        assert result_texts(result)[-1] == "Vault used: home"
        assert fake_api.last.url.port == 27125

    @pytest.mark.asyncio
    async def test_unknown_vault(self, tools, context, fake_api):
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "get_server_info", vaultId="zzz")

        assert exc_info.value.error.code == INVALID_REQUEST
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_api_error(self, tools, context, fake_api):
        """Local REST API failures surface as INTERNAL_ERROR."""
        fake_api.on("GET", "/", status=500, text="boom")

        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "get_server_info")

        assert exc_info.value.error.code == INTERNAL_ERROR
        assert exc_info.value.error.message == "GET / 500: boom"


class TestActiveFile:
    """Tests for the active file tools."""

    @pytest.mark.asyncio
    async def test_get_markdown(self, tools, context, fake_api):
        fake_api.on("GET", "/active/", text="# Note\nbody")

        result = await call(tools, context, "get_active_file")

        assert result_texts(result) == ["# Note\nbody"]
        assert fake_api.last.headers["Accept"] == "text/markdown"

    @pytest.mark.asyncio
    async def test_get_json(self, tools, context, fake_api):
        fake_api.on_note_json(
            "/active/",
            {"content": "body", "path": "Daily.md", "tags": ["daily"], "frontmatter": {"a": 1}},
        )

        result = await call(tools, context, "get_active_file", format="json")

        note = json.loads(result_texts(result)[0])
        assert note["path"] == "Daily.md"
        assert note["tags"] == ["daily"]
        assert fake_api.last.headers["Accept"] == "application/vnd.olrapi.note+json"

    @pytest.mark.asyncio
    async def test_update(self, tools, context, fake_api):
        fake_api.on("PUT", "/active/", status=204)

        result = await call(tools, context, "update_active_file", content="new body")

        assert result_texts(result) == ["File updated successfully"]
        assert fake_api.last.content == b"new body"
        assert fake_api.last.headers["Content-Type"] == "text/markdown"

    @pytest.mark.asyncio
    async def test_append(self, tools, context, fake_api):
        fake_api.on("POST", "/active/", status=204)

        await call(tools, context, "append_to_active_file", content="more")

        assert fake_api.last.method == "POST"
        assert fake_api.last.content == b"more"

    @pytest.mark.asyncio
    async def test_patch_headers(self, tools, context, fake_api):
        """Patch options travel as headers; the target is percent-encoded."""
        fake_api.on("PATCH", "/active/", status=200, text="patched")

        await call(
            tools,
            context,
            "patch_active_file",
            operation="append",
            targetType="heading",
            target="Tâches::Today",
            targetDelimiter="::",
            trimTargetWhitespace="true",
            content="- item",
        )

        headers = fake_api.last.headers
        assert headers["Operation"] == "append"
        assert headers["Target-Type"] == "heading"
        assert headers["Target"] == "T%C3%A2ches%3A%3AToday"
        assert headers["Target-Delimiter"] == "::"
        assert headers["Trim-Target-Whitespace"] == "true"
        assert fake_api.last.content == b"- item"

    @pytest.mark.asyncio
    async def test_patch_rejects_unknown_operation(self, tools, context, fake_api):
        with pytest.raises(McpError) as exc_info:
            await call(
                tools, context, "patch_active_file",
                operation="merge", targetType="heading", target="H", content="x",
            )

        assert exc_info.value.error.code == INVALID_PARAMS
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_delete(self, tools, context, fake_api):
        fake_api.on("DELETE", "/active/", status=204)

        result = await call(tools, context, "delete_active_file")

        assert result_texts(result) == ["File deleted successfully"]


class TestShowFile:
    """Tests for show_file_in_obsidian."""

    @pytest.mark.asyncio
    async def test_open_in_new_leaf(self, tools, context, fake_api):
        fake_api.on("POST", "/open/Notes/Daily Note.md", status=200, text="")

        result = await call(
            tools, context, "show_file_in_obsidian", filename="Notes/Daily Note.md", newLeaf=True
        )

        assert result_texts(result) == ["File opened successfully"]
        assert fake_api.last.url.raw_path == b"/open/Notes%2FDaily%20Note.md?newLeaf=true"

    @pytest.mark.asyncio
    async def test_open_without_new_leaf(self, tools, context, fake_api):
        fake_api.on("POST", "/open/a.md", status=204)

        await call(tools, context, "show_file_in_obsidian", filename="a.md")

        assert fake_api.last.url.query == b""


class TestVaultFiles:
    """Tests for the /vault/ file tools."""

    @pytest.mark.asyncio
    async def test_list_root(self, tools, context, fake_api):
        fake_api.on("GET", "/vault/", json={"files": ["a.md", "Projects/"]})

        result = await call(tools, context, "list_vault_files")

        assert json.loads(result_texts(result)[0]) == {"files": ["a.md", "Projects/"]}

    @pytest.mark.asyncio
    async def test_list_subdirectory(self, tools, context, fake_api):
        fake_api.on("GET", "/vault/Projects/2024/", json={"files": ["plan.md"]})

        await call(tools, context, "list_vault_files", directory="/Projects/2024/")

        assert fake_api.last.url.raw_path == b"/vault/Projects/2024/"

    @pytest.mark.asyncio
    async def test_get_file(self, tools, context, fake_api):
        fake_api.on("GET", "/vault/Notes/a b.md", text="content")

        result = await call(tools, context, "get_vault_file", filename="Notes/a b.md")

        assert result_texts(result) == ["content"]
        assert fake_api.last.url.raw_path == b"/vault/Notes%2Fa%20b.md"

    @pytest.mark.asyncio
    async def test_create_file(self, tools, context, fake_api):
        fake_api.on("PUT", "/vault/new.md", status=204)

        result = await call(
            tools, context, "create_vault_file", filename="new.md", content="# New", vaultId="home"
        )

        assert result_texts(result) == ["File created successfully", "Vault used: home"]
        assert fake_api.last.content == b"# New"
        assert fake_api.last.url.port == 27125

    @pytest.mark.asyncio
    async def test_append_file(self, tools, context, fake_api):
        fake_api.on("POST", "/vault/log.md", status=204)

        result = await call(tools, context, "append_to_vault_file", filename="log.md", content="x")

        assert result_texts(result) == ["Content appended successfully"]

    @pytest.mark.asyncio
    async def test_patch_file_creates_missing_target(self, tools, context, fake_api):
        fake_api.on("PATCH", "/vault/a.md", status=200, text="# a\n- item")

        result = await call(
            tools, context, "patch_vault_file",
            filename="a.md", operation="prepend", targetType="frontmatter",
            target="status", content='"done"', contentType="application/json",
        )

        headers = fake_api.last.headers
        assert headers["Create-Target-If-Missing"] == "true"
        assert headers["Content-Type"] == "application/json"
        assert "Trim-Target-Whitespace" not in headers
        assert result_texts(result) == ["File patched successfully", "# a\n- item"]

    @pytest.mark.asyncio
    async def test_delete_file(self, tools, context, fake_api):
        fake_api.on("DELETE", "/vault/old.md", status=204)

        await call(tools, context, "delete_vault_file", filename="old.md")

        assert fake_api.last.method == "DELETE"

    @pytest.mark.asyncio
    async def test_missing_file(self, tools, context, fake_api):
        """Unrouted paths answer 404 from the fake API."""
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "get_vault_file", filename="nope.md")

        assert exc_info.value.error.message.startswith("GET /vault/nope.md 404: ")

    @pytest.mark.asyncio
    async def test_empty_filename_rejected(self, tools, context, fake_api):
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "delete_vault_file", filename="")

        assert exc_info.value.error.code == INVALID_PARAMS


class TestSearch:
    """Tests for the search tools."""

    @pytest.mark.asyncio
    async def test_dataview_query(self, tools, context, fake_api):
        fake_api.on("POST", "/search/", json=[{"filename": "a.md", "result": {"x": 1}}])

        result = await call(
            tools, context, "search_vault", queryType="dataview", query="TABLE file.mtime"
        )

        assert json.loads(result_texts(result)[0])[0]["filename"] == "a.md"
        assert fake_api.last.headers["Content-Type"] == "application/vnd.olrapi.dataview.dql+txt"
        assert fake_api.last.content == b"TABLE file.mtime"

    @pytest.mark.asyncio
    async def test_jsonlogic_query(self, tools, context, fake_api):
        fake_api.on("POST", "/search/", json=[])

        await call(tools, context, "search_vault", queryType="jsonlogic", query='{"in": ["a", "b"]}')

        assert fake_api.last.headers["Content-Type"] == "application/vnd.olrapi.jsonlogic+json"

    @pytest.mark.asyncio
    async def test_unknown_query_type(self, tools, context, fake_api):
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "search_vault", queryType="sql", query="SELECT 1")

        assert exc_info.value.error.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_simple_search(self, tools, context, fake_api):
        fake_api.on(
            "POST",
            "/search/simple/",
            json=[{"filename": "a.md", "score": 1.5,
                   "matches": [{"match": {"start": 0, "end": 3}, "context": "foo bar"}]}],
        )

        result = await call(tools, context, "search_vault_simple", query="foo", contextLength=50)

        params = fake_api.last.url.params
        assert params["query"] == "foo"
        assert params["contextLength"] == "50"
        assert json.loads(result_texts(result)[0])[0]["matches"][0]["context"] == "foo bar"

    @pytest.mark.asyncio
    async def test_smart_search(self, tools, context, fake_api):
        fake_api.on(
            "POST",
            "/search/smart",
            json={"results": [{"path": "a.md", "text": "t", "score": 0.9, "breadcrumbs": "A"}]},
        )

        result = await call(
            tools, context, "search_vault_smart",
            query="project plans", filter={"folders": ["Work"], "excludeFolders": ["Archive"]},
        )

        assert json.loads(fake_api.last.content) == {
            "query": "project plans",
            "filter": {"folders": ["Work"], "excludeFolders": ["Archive"]},
        }
        assert json.loads(result_texts(result)[0])["results"][0]["path"] == "a.md"

    @pytest.mark.asyncio
    async def test_smart_search_requires_query(self, tools, context, fake_api):
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "search_vault_smart", query="")

        assert exc_info.value.error.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_smart_search_filter_is_strict(self, tools, context, fake_api):
        """A string limit is rejected like any other mistyped argument."""
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "search_vault_smart", query="q", filter={"limit": "5"})

        assert exc_info.value.error.code == INVALID_PARAMS
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_smart_search_filter_limit(self, tools, context, fake_api):
        fake_api.on("POST", "/search/smart", json={"results": []})

        await call(tools, context, "search_vault_smart", query="q", filter={"limit": 5})

        assert json.loads(fake_api.last.content) == {"query": "q", "filter": {"limit": 5}}

    @pytest.mark.asyncio
    async def test_search_dql(self, tools, context, fake_api):
        fake_api.on("POST", "/search/", json=[{"filename": "b.md", "result": {"file.path": "b.md"}}])

        result = await call(tools, context, "search_dql", query="TABLE file.path\nFROM #book")

        assert fake_api.last.headers["Content-Type"] == "application/vnd.olrapi.dataview.dql+txt"
        assert fake_api.last.content == b"TABLE file.path\nFROM #book"
        assert json.loads(result_texts(result)[0])[0]["filename"] == "b.md"

    def test_tag_search_query(self):
        assert tag_search_query(["a", "b"], ["c", "d"], "Work") == (
            "TABLE file.path, tags\n"
            'FROM "Work" AND #a AND #b\n'
            'WHERE !(contains(file.tags,"c") OR contains(file.tags,"d"))\n'
            "SORT file.path ASC"
        )

    def test_tag_search_query_without_exclusions(self):
        assert tag_search_query(["a"]) == (
            "TABLE file.path, tags\nFROM #a\nWHERE true\nSORT file.path ASC"
        )

    @pytest.mark.asyncio
    async def test_search_tags(self, tools, context, fake_api):
        fake_api.on("POST", "/search/", json=[{"filename": "a.md", "result": {"tags": ["x", "y"]}}])

        result = await call(
            tools, context, "search_tags", include=["x"], exclude=["z"], vaultId="home"
        )

        assert fake_api.last.url.port == 27125
        assert fake_api.last.content.decode() == tag_search_query(["x"], ["z"])
        texts = result_texts(result)
        assert json.loads(texts[0])[0]["result"]["tags"] == ["x", "y"]
        assert texts[-1] == "Vault used: home"

    @pytest.mark.asyncio
    async def test_search_tags_requires_include(self, tools, context, fake_api):
        with pytest.raises(McpError) as exc_info:
            await call(tools, context, "search_tags", include="x")

        assert exc_info.value.error.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_list_file_tags(self, tools, context, fake_api):
        """Tags are collected across rows, deduplicated and sorted."""
        fake_api.on(
            "POST",
            "/search/",
            json=[
                {"filename": "a.md", "result": {"tags": ["work", "idea"]}},
                {"filename": "b.md", "result": {"tags": ["idea", "book"]}},
                {"filename": "c.md", "result": {"tags": "not-a-list"}},
            ],
        )

        result = await call(tools, context, "list_file_tags", folder="Notes")

        assert fake_api.last.content.decode() == tag_list_query("Notes")
        assert fake_api.last.content == b'TABLE tags\nFROM "Notes"\nWHERE tags'
        assert json.loads(result_texts(result)[0]) == ["book", "idea", "work"]

    def test_tag_list_query_whole_vault(self):
        assert tag_list_query() == 'TABLE tags\nFROM ""\nWHERE tags'


class TestExecuteTemplate:
    """Tests for execute_template."""

    TEMPLATE = (
        '<% tp.mcpTools.prompt("topic", "What about?") %>\n'
        "<% tp.mcpTools.prompt('mood') %>\n"
        '<% tp.mcpTools.prompt("topic") %>'
    )

    def test_template_parameters(self):
        assert template_parameters(self.TEMPLATE) == ["topic", "mood"]

    @pytest.mark.asyncio
    async def test_executes_template(self, tools, context, fake_api):
        fake_api.on_note_json("/vault/Templates/Daily.md", {"content": self.TEMPLATE, "path": "Templates/Daily.md"})
        fake_api.on("POST", "/templates/execute", json={"message": "ok", "content": "rendered"})

        result = await call(
            tools, context, "execute_template",
            name="Templates/Daily.md",
            arguments={"topic": "rust", "mood": "calm"},
            createFile=True,
            targetPath="Daily/today.md",
        )

        assert json.loads(fake_api.last.content) == {
            "name": "Templates/Daily.md",
            "arguments": {"topic": "rust", "mood": "calm"},
            "createFile": True,
            "targetPath": "Daily/today.md",
        }
        assert json.loads(result_texts(result)[0])["content"] == "rendered"

    @pytest.mark.asyncio
    async def test_missing_arguments(self, tools, context, fake_api):
        """Parameters the template prompts for must all be supplied."""
        fake_api.on_note_json("/vault/Templates/Daily.md", {"content": self.TEMPLATE, "path": "Templates/Daily.md"})

        with pytest.raises(McpError) as exc_info:
            await call(
                tools, context, "execute_template",
                name="Templates/Daily.md", arguments={"topic": "rust"},
            )

        assert exc_info.value.error.code == INTERNAL_ERROR
        assert exc_info.value.error.message.startswith("Missing template arguments")
        assert "mood" in exc_info.value.error.message
        assert [r.method for r in fake_api.requests] == ["GET"]
