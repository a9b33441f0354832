"""Configuration for the GitHub raw-content client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Optional

from dotenv import load_dotenv

from github_content.errors import MissingRepository

DEFAULT_BRANCH = "master"
RAW_CONTENT_URL = "https://raw.githubusercontent.com"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Immutable snapshot of the repository coordinates used for a fetch.

    ``options`` carries everything the transport understands (token, headers,
    timeout, ...) and is passed through untouched.
    """

    owner: Optional[str] = None
    repo: Optional[str] = None
    branch: str = DEFAULT_BRANCH
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def with_values(self, **values: Any) -> "ClientConfig":
        """Return a copy with the given coordinates replaced."""
        return replace(self, **values)


def resolve_config(
    base: ClientConfig, overrides: Optional[Mapping[str, Any]] = None
) -> ClientConfig:
    """Merge per-call overrides over ``base`` and validate the result.

    Override values win over the base, the base wins over the default branch.
    A ``repo`` of the form ``"owner/repo"`` is split, replacing any owner that
    was set separately. ``None`` or empty overrides fall back to the base.
    Raises :class:`MissingRepository` when no repository remains after merging.
    """
    overrides = dict(overrides or {})
    owner = _pick(overrides.pop("owner", None), base.owner)
    repo = _pick(overrides.pop("repo", None), base.repo)
    branch = _pick(overrides.pop("branch", None), base.branch) or DEFAULT_BRANCH

    if repo and "/" in repo:
        segments = repo.split("/")
        owner, repo = segments[0], segments[1]

    if not repo:
        raise MissingRepository("a repository is required to fetch files")

    options = {**base.options, **overrides}
    return ClientConfig(
        owner=owner or None,
        repo=repo,
        branch=branch,
        options=MappingProxyType(options),
    )


@dataclass(slots=True)
class Settings:
    """Client defaults loaded from environment variables."""

    owner: Optional[str]
    repo: Optional[str]
    branch: str
    token: Optional[str]
    timeout_seconds: float

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Create settings from environment variables (optionally loading a .env file)."""
        if env_file:
            load_dotenv(env_file, override=True)
        else:
            load_dotenv(override=False)

        return cls(
            owner=_env("GITHUB_CONTENT_OWNER"),
            repo=_env("GITHUB_CONTENT_REPO"),
            branch=_env("GITHUB_CONTENT_BRANCH") or DEFAULT_BRANCH,
            token=_env("GITHUB_TOKEN"),
            timeout_seconds=float(_env("GITHUB_CONTENT_TIMEOUT_SECONDS") or "30"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings.from_env()


def _pick(override: Optional[str], base: Optional[str]) -> Optional[str]:
    return override if override else base


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None
