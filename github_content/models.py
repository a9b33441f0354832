"""Pydantic models returned by the GitHub raw-content client."""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict


class FileResult(BaseModel):
    """A downloaded file: the path as requested and the body the transport returned."""

    model_config = ConfigDict(frozen=True)

    path: str
    contents: Union[str, bytes]
