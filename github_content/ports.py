"""Port definitions for the transport collaborator."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, Union


class Transport(Protocol):
    """Performs templated HTTP GET requests.

    ``:name`` placeholders in ``template`` are filled from ``options``;
    ``options["apiurl"]`` is the base URL the template is appended to.
    """

    async def get(self, template: str, options: Mapping[str, Any]) -> Union[str, bytes]:
        ...
