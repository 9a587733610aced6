"""Response shapes of the Obsidian Local REST API.

Only the fields the tools rely on are declared; anything else the API sends
is kept (``extra="allow"``) so newer plugin versions do not break validation.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

MIME_TYPE_NOTE_JSON = "application/vnd.olrapi.note+json"
MIME_TYPE_DATAVIEW_DQL = "application/vnd.olrapi.dataview.dql+txt"
MIME_TYPE_JSONLOGIC = "application/vnd.olrapi.jsonlogic+json"

# Successful write endpoints answer 204; any body they do send is ignored
NoContent = Any


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class ApiStatusResponse(_ApiModel):
    status: str
    authenticated: bool = False
    service: Optional[str] = None
    versions: dict[str, Any] = Field(default_factory=dict)


class ApiNoteStat(_ApiModel):
    ctime: int
    mtime: int
    size: int


class ApiNoteJson(_ApiModel):
    content: str
    path: str
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    stat: Optional[ApiNoteStat] = None


class ApiVaultDirectoryResponse(_ApiModel):
    files: list[str]


class ApiSearchResult(_ApiModel):
    filename: str
    result: Any = None


class ApiSimpleSearchMatch(_ApiModel):
    match: dict[str, int]
    context: str


class ApiSimpleSearchResult(_ApiModel):
    filename: str
    score: Optional[float] = None
    matches: list[ApiSimpleSearchMatch] = Field(default_factory=list)


class ApiSmartSearchResult(_ApiModel):
    path: str
    text: str
    score: float
    breadcrumbs: str = ""


class ApiSmartSearchResponse(_ApiModel):
    results: list[ApiSmartSearchResult]


class ApiTemplateExecutionResponse(_ApiModel):
    message: str
    content: Optional[str] = None


ApiSearchResponse = list[ApiSearchResult]
ApiSimpleSearchResponse = list[ApiSimpleSearchResult]
