"""HTTP transport performing templated GET requests against GitHub hosts."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Optional
from urllib.parse import quote

import httpx

from github_content.ports import Transport

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")

# Options consumed by the transport itself; everything else is template data.
_RESERVED = {"apiurl", "json", "binary", "token", "headers", "timeout"}


def expand_template(template: str, options: Mapping[str, Any]) -> str:
    """Substitute ``:name`` placeholders with URL-escaped option values.

    Slashes inside a value are kept so branch names and nested file paths
    stay intact.
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        value = options.get(name)
        if value is None or name in _RESERVED:
            raise ValueError(f"No value supplied for URL segment :{name}")
        return quote(str(value), safe="/")

    return _PLACEHOLDER.sub(_substitute, template)


class GitHubBase(Transport):
    """Tiny wrapper around httpx for GitHub style ``GET`` calls.

    HTTP status codes are not treated as errors: whatever body the server
    sends back is returned to the caller.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        **defaults: Any,
    ):
        self.options: dict[str, Any] = {"apiurl": API_URL, "json": True, **defaults}
        self._client = client
        self._owns_client = client is None

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def get(self, template: str, options: Mapping[str, Any]) -> Any:
        """Expand ``template`` from the merged options and fetch it."""
        merged = {**self.options, **options}
        url = merged["apiurl"].rstrip("/") + expand_template(template, merged)
        headers = dict(merged.get("headers") or {})
        if merged.get("token"):
            headers["Authorization"] = f"token {merged['token']}"
        kwargs: dict[str, Any] = {"headers": headers}
        if merged.get("timeout") is not None:
            kwargs["timeout"] = merged["timeout"]

        logger.debug("GET %s", url)
        response = await self._http().get(url, **kwargs)
        logger.debug("GET %s -> %s", url, response.status_code)
        if merged.get("json"):
            return response.json()
        if merged.get("binary"):
            return response.content
        return response.text

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client
