"""One HTTP call against one vault's Local REST API.

``make_request`` resolves the vault, sends a single request (no retries, no
pooling, transport-default timeout), decodes the body according to its
Content-Type and validates it against the caller's response shape. Every
failure surfaces as an ``McpError``:

    - unknown / missing vault      -> INVALID_REQUEST (from the resolver)
    - non-2xx status               -> INTERNAL_ERROR "<METHOD> <path> <status>: <body>"
    - body does not match shape    -> INTERNAL_ERROR "<METHOD> <path> <status>: <summary>"

Network failures (connection refused, TLS errors) propagate as ``httpx``
exceptions and are normalized by the registry like any other error.
"""

from functools import lru_cache
from typing import Any, Mapping, Optional, Union
import json
import logging

import httpx
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_REQUEST
from pydantic import TypeAdapter, ValidationError

from .errors import mcp_error
from .schema import summarize_validation_error
from .vault_config import VaultConfigManager, VaultTarget

logger = logging.getLogger(__name__)

NO_CONTENT = 204


@lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def _resolve(vaults: VaultConfigManager, vault_id: Optional[str]) -> VaultTarget:
    try:
        return vaults.resolve_target(vault_id)
    except McpError:
        raise
    except Exception as e:
        logger.error('Failed to get configuration for vaultId "%s": %s', vault_id or "default", e)
        raise mcp_error(
            INVALID_REQUEST,
            f'Configuration error for vaultId "{vault_id or "default"}": {e}',
        ) from e


async def make_request(
    vault_id: Optional[str],
    response_shape: Any,
    path: str,
    vaults: VaultConfigManager,
    *,
    method: str = "GET",
    headers: Optional[Mapping[str, str]] = None,
    content: Union[str, bytes, None] = None,
    json_body: Any = None,
    params: Optional[Mapping[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """Make a request to a vault's Local REST API and validate the response.

    Args:
        vault_id: Target vault. ``None`` means the default vault, then the
            first configured one.
        response_shape: Anything pydantic can build a ``TypeAdapter`` for
            (a model, ``str``, ``list[Model]``, a union, ``NoContent``).
        path: API path appended verbatim to the vault's base URL.
        vaults: Configuration resolver.
        method: HTTP method.
        headers: Extra headers. They override the defaults
            (``Authorization``, ``Content-Type: text/markdown``).
        content: Raw request body.
        json_body: Body serialized as JSON (Content-Type defaults to
            ``application/json``). Ignored when ``content`` is given.
        params: Query string parameters.
        transport: ``httpx`` transport override, used by tests.

    Returns:
        The validated payload, or ``None`` for a 204 response.

    Raises:
        McpError: See module docstring.
        httpx.HTTPError: The vault could not be reached.
    """
    target = _resolve(vaults, vault_id)
    method = method.upper()

    request_headers = httpx.Headers(
        {
            "Authorization": f"Bearer {target.credential}",
            "Content-Type": "text/markdown",
        }
    )
    if content is None and json_body is not None:
        content = json.dumps(json_body)
        request_headers["Content-Type"] = "application/json"
    if headers:
        request_headers.update(headers)

    url = f"{target.base_url}{path}"
    logger.debug("%s %s (vault: %s)", method, url, target.id)

    async with httpx.AsyncClient(
        verify=target.verify_tls,
        transport=transport,
        follow_redirects=True,
    ) as client:
        response = await client.request(
            method,
            url,
            headers=request_headers,
            content=content,
            params=params,
        )

    if not response.is_success:
        raise mcp_error(
            INTERNAL_ERROR,
            f"{method} {path} {response.status_code}: {response.text}",
        )

    if response.status_code == NO_CONTENT:
        logger.debug("Request to %s used vault %s (no content)", path, target.id)
        return None

    is_json = "json" in response.headers.get("Content-Type", "")
    if is_json:
        try:
            data = response.json()
        except ValueError as e:
            raise mcp_error(
                INTERNAL_ERROR,
                f"{method} {path} {response.status_code}: response is not valid JSON",
            ) from e
    else:
        data = response.text

    try:
        validated = _adapter(response_shape).validate_python(data)
    except ValidationError as e:
        summary = summarize_validation_error(e)
        logger.error(
            "Invalid response from Obsidian API: %s %s %s: %s | data=%r",
            method,
            path,
            response.status_code,
            summary,
            data,
        )
        raise mcp_error(
            INTERNAL_ERROR,
            f"{method} {path} {response.status_code}: {summary}",
        ) from e

    logger.debug("Request to %s used vault: %s", path, target.id)
    return validated


class VaultClient:
    """``make_request`` bound to a resolver (and optionally a transport).

    Tool handlers close over one of these instead of threading the resolver
    through every call.
    """

    def __init__(
        self,
        vaults: VaultConfigManager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.vaults = vaults
        self.transport = transport

    async def request(
        self,
        vault_id: Optional[str],
        response_shape: Any,
        path: str,
        **options: Any,
    ) -> Any:
        options.setdefault("transport", self.transport)
        return await make_request(vault_id, response_shape, path, self.vaults, **options)
