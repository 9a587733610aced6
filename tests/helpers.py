"""Fake Obsidian Local REST API for tests, served through httpx.MockTransport."""
from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx

from vault_mcp_bridge.vault_config import VaultTarget

Responder = Callable[[httpx.Request], httpx.Response]


def make_target(
    target_id: str = "work",
    port: int = 27124,
    credential: Optional[str] = None,
    **extra: Any,
) -> VaultTarget:
    """Build a vault target pointing at a local REST API port."""
    return VaultTarget(
        id=target_id,
        display_name=extra.pop("display_name", target_id.title()),
        base_url=f"https://127.0.0.1:{port}",
        credential=credential or f"{target_id}-key",
        **extra,
    )


class FakeVaultApi:
    """Routes requests by (method, decoded path) and records every request.

    Unrouted requests answer 404 with a Local REST API style error body.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Responder] = {}

    def on(self, method: str, path: str, status: int = 200, **kwargs: Any) -> "FakeVaultApi":
        """Answer ``method path`` with a fresh ``httpx.Response(status, **kwargs)``."""
        self._routes[(method.upper(), path)] = lambda request: httpx.Response(status, **kwargs)
        return self

    def on_note_json(self, path: str, note: dict[str, Any]) -> "FakeVaultApi":
        return self.on(
            "GET",
            path,
            content=json.dumps(note),
            headers={"Content-Type": "application/vnd.olrapi.note+json"},
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self._routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404, json={"errorCode": 40400, "message": "Not Found"})
        return responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


def result_texts(result: Any) -> list[str]:
    """Text blocks of a CallToolResult."""
    return [block.text for block in result.content]
