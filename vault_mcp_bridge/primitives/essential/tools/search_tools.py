"""Search tools - Dataview/JsonLogic queries, tag lookups, plain text and semantic search."""
from typing import Any, Literal, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field

from ....api_models import (
    MIME_TYPE_DATAVIEW_DQL,
    MIME_TYPE_JSONLOGIC,
    ApiSearchResponse,
    ApiSimpleSearchResponse,
    ApiSmartSearchResponse,
)
from ....request_router import VaultClient
from ....schema import VaultArguments
from ....tool_registry import DispatchContext, ToolCall, ToolRegistry, ToolSchema
from ._helpers import text_result, to_json_text

logger = logging.getLogger(__name__)

QUERY_CONTENT_TYPES = {
    "dataview": MIME_TYPE_DATAVIEW_DQL,
    "jsonlogic": MIME_TYPE_JSONLOGIC,
}


class SearchArguments(VaultArguments):
    query_type: Literal["dataview", "jsonlogic"] = Field(alias="queryType")
    query: str


class DqlArguments(VaultArguments):
    query: str = Field(description="A Dataview TABLE query")


class TagSearchArguments(VaultArguments):
    include: list[str] = Field(
        description="List of tags to include, all of which must be present"
    )
    exclude: Optional[list[str]] = Field(default=None, description="List of tags to exclude")
    folder: Optional[str] = None


class TagListArguments(VaultArguments):
    folder: Optional[str] = None


class SimpleSearchArguments(VaultArguments):
    query: str
    context_length: Optional[int] = Field(default=None, alias="contextLength", gt=0)


class SmartSearchFilter(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    folders: Optional[list[str]] = Field(
        default=None,
        description='An array of folder names to include. For example, ["Public", "Work"]',
    )
    exclude_folders: Optional[list[str]] = Field(
        default=None,
        alias="excludeFolders",
        description='An array of folder names to exclude. For example, ["Private", "Archive"]',
    )
    limit: Optional[int] = Field(
        default=None, gt=0, description="The maximum number of results to return"
    )


class SmartSearchArguments(VaultArguments):
    query: str = Field(min_length=1, description="A search phrase for semantic search")
    filter: Optional[SmartSearchFilter] = None


SEARCH_DQL_DESCRIPTION = """Search vault documents using Dataview TABLE queries.
- Find docs with multiple tags:
    TABLE file.path
    FROM #tag-a AND #tag-b
- Find docs with any of multiple tags:
    TABLE file.path
    FROM #tag-a OR #tag-b
- Search in specific folders:
    TABLE file.path
    FROM "Sources" AND #tag-a AND #tag-b
- Exclude specific folders:
    TABLE file.path
    FROM #tag-a AND #tag-b
    WHERE !contains(file.path, "Sources/")
- With metadata:
    TABLE
      file.path as "Path",
      status as "Status",
      rating as "Rating"
    FROM #book
    SORT rating DESC
Results include requested fields in tabular format."""


def tag_search_query(
    include: list[str], exclude: Optional[list[str]] = None, folder: Optional[str] = None
) -> str:
    """Dataview query listing files carrying every ``include`` tag and no ``exclude`` tag.

    Example:
        >>> print(tag_search_query(["a", "b"], ["c"], "Work"))
        TABLE file.path, tags
        FROM "Work" AND #a AND #b
        WHERE !(contains(file.tags,"c"))
        SORT file.path ASC
    """
    folder_prefix = f'"{folder}" AND ' if folder else ""
    include_tags = " AND ".join(f"#{tag}" for tag in include)
    if exclude:
        exclude_clause = "!(" + " OR ".join(f'contains(file.tags,"{tag}")' for tag in exclude) + ")"
    else:
        exclude_clause = "true"
    return (
        "TABLE file.path, tags\n"
        f"FROM {folder_prefix}{include_tags}\n"
        f"WHERE {exclude_clause}\n"
        "SORT file.path ASC"
    )


def tag_list_query(folder: Optional[str] = None) -> str:
    """Dataview query returning the tags of every tagged file (under ``folder``)."""
    return f'TABLE tags\nFROM "{folder or ""}"\nWHERE tags'


def unique_tags(rows: list[Any]) -> list[str]:
    """Sorted distinct tags of search rows whose ``result.tags`` is a list."""
    tags: set[str] = set()
    for row in rows:
        result = row.result if isinstance(row.result, dict) else {}
        if isinstance(result.get("tags"), list):
            tags.update(tag for tag in result["tags"] if isinstance(tag, str))
    return sorted(tags)


def register_search_tools(tools: ToolRegistry, client: VaultClient) -> None:
    """Register the query, tag, simple and smart search tools."""

    async def run_dql(vault_id: Optional[str], query: str):
        return await client.request(
            vault_id,
            ApiSearchResponse,
            "/search/",
            method="POST",
            headers={"Content-Type": MIME_TYPE_DATAVIEW_DQL},
            content=query,
        )

    async def search_vault(call: ToolCall, context: DispatchContext):
        args = call.arguments
        data = await client.request(
            args.vault_id,
            ApiSearchResponse,
            "/search/",
            method="POST",
            headers={"Content-Type": QUERY_CONTENT_TYPES[args.query_type]},
            content=args.query,
        )
        return text_result(to_json_text(data), vault_id=args.vault_id)

    async def search_dql(call: ToolCall, context: DispatchContext):
        args = call.arguments
        data = await run_dql(args.vault_id, args.query)
        return text_result(to_json_text(data), vault_id=args.vault_id)

    async def search_tags(call: ToolCall, context: DispatchContext):
        args = call.arguments
        query = tag_search_query(args.include, args.exclude, args.folder)
        logger.debug("search_tags query: %s", query)
        data = await run_dql(args.vault_id, query)
        return text_result(to_json_text(data), vault_id=args.vault_id)

    async def list_file_tags(call: ToolCall, context: DispatchContext):
        args = call.arguments
        query = tag_list_query(args.folder)
        logger.debug("list_file_tags query: %s", query)
        data = await run_dql(args.vault_id, query)
        return text_result(to_json_text(unique_tags(data)), vault_id=args.vault_id)

    async def search_vault_simple(call: ToolCall, context: DispatchContext):
        args = call.arguments
        params = {"query": args.query}
        if args.context_length:
            params["contextLength"] = str(args.context_length)
        data = await client.request(
            args.vault_id,
            ApiSimpleSearchResponse,
            "/search/simple/",
            method="POST",
            params=params,
        )
        return text_result(to_json_text(data), vault_id=args.vault_id)

    async def search_vault_smart(call: ToolCall, context: DispatchContext):
        args = call.arguments
        body = args.model_dump(
            by_alias=True, exclude_none=True, include={"query", "filter"}
        )
        data = await client.request(
            args.vault_id,
            ApiSmartSearchResponse,
            "/search/smart",
            method="POST",
            json_body=body,
        )
        return text_result(to_json_text(data), vault_id=args.vault_id)

    tools.register(
        ToolSchema(
            "search_vault",
            "Search for documents matching a specified query using either Dataview DQL or JsonLogic.",
            SearchArguments,
        ),
        search_vault,
    )
    tools.register(
        ToolSchema("search_dql", SEARCH_DQL_DESCRIPTION, DqlArguments),
        search_dql,
    )
    tools.register(
        ToolSchema(
            "search_vault_simple",
            "Search for documents matching a text query.",
            SimpleSearchArguments,
        ),
        search_vault_simple,
    )
    tools.register(
        ToolSchema(
            "search_tags",
            "Search for documents with specific tag combinations. "
            "Returns array of matching files with their full tag lists.",
            TagSearchArguments,
        ),
        search_tags,
    )
    tools.register(
        ToolSchema(
            "list_file_tags",
            "List all unique tags used in files. Returns sorted array of tag names.",
            TagListArguments,
        ),
        list_file_tags,
    )
    tools.register(
        ToolSchema(
            "search_vault_smart",
            "Search for documents semantically matching a text string.",
            SmartSearchArguments,
        ),
        search_vault_smart,
    )
