"""
HTTP Fetch MCP Tool.

Calls external JSON/text APIs for ``api_call`` requirements.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from config import HTTPToolConfig, config
from src.executor.errors import ToolExecutionError

logger = logging.getLogger(__name__)


ALLOWED_METHODS = {"GET", "POST"}


class HTTPFetchTool:
    """
    Outbound HTTP tool.

    Input keys: ``url`` (absolute, or relative to the configured base URL),
    ``method`` (GET/POST), ``params``, ``json``, ``headers``.
    """

    name = "http_api_fetch"
    description = "Fetch data from an external HTTP API"

    def __init__(
        self,
        settings: HTTPToolConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or config.http_tool
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    async def execute(self, input: dict[str, Any]) -> dict[str, Any]:
        url = input.get("url") or input.get("endpoint")
        if not url:
            raise ToolExecutionError("HTTP tool requires a 'url' parameter")

        method = str(input.get("method", "GET")).upper()
        if method not in ALLOWED_METHODS:
            raise ToolExecutionError(f"Unsupported HTTP method: {method}")

        logger.info(f"[HTTP] {method} {url}")
        try:
            response = await self.client.request(
                method,
                url,
                params=input.get("params"),
                json=input.get("json") if method == "POST" else None,
                headers=input.get("headers"),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ToolExecutionError(
                f"HTTP {e.response.status_code} from {url}",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"HTTP request failed: {e}") from e

        content_type = response.headers.get("content-type", "")
        body: Any = response.json() if "json" in content_type else response.text

        return {
            "data": {
                "success": True,
                "status_code": response.status_code,
                "url": str(response.url),
                "body": body,
                "result": body if isinstance(body, str) else f"HTTP {response.status_code} from {url}",
            },
        }

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
