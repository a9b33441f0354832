"""Client that downloads raw file contents from GitHub repositories."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any, Optional, Union

from github_content.config import (
    DEFAULT_BRANCH,
    RAW_CONTENT_URL,
    ClientConfig,
    Settings,
    resolve_config,
)
from github_content.errors import InvalidCallback, MissingRepository
from github_content.models import FileResult
from github_content.ports import Transport
from github_content.transport import GitHubBase

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[BaseException], Any], Any]
Paths = Union[str, Iterable[str], None]


class GitHubContent:
    """Download files from a GitHub repository by path.

    ```python
    async with GitHubContent("doowb", "handlebars-helpers", branch="docs") as gc:
        results = await gc.files(["scaffolds.json", "package.json"])
    ```

    ``repo`` also accepts the ``"owner/repo"`` shorthand. Any extra keyword
    arguments (``token``, ``headers``, ``timeout``...) are handed to the
    transport on every request.
    """

    def __init__(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
        *,
        transport: Optional[Transport] = None,
        **options: Any,
    ):
        self._config = ClientConfig(
            owner=owner,
            repo=repo,
            branch=branch or DEFAULT_BRANCH,
            options=MappingProxyType(dict(options)),
        )
        self._default_transport = GitHubBase() if transport is None else None
        self._transport: Transport = (
            transport if transport is not None else self._default_transport
        )
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: Optional[Transport] = None
    ) -> "GitHubContent":
        options: dict[str, Any] = {"timeout": settings.timeout_seconds}
        if settings.token:
            options["token"] = settings.token
        return cls(
            settings.owner,
            settings.repo,
            settings.branch,
            transport=transport,
            **options,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def owner(self) -> Optional[str]:
        return self._config.owner

    @property
    def repo(self) -> Optional[str]:
        return self._config.repo

    @property
    def branch(self) -> str:
        return self._config.branch

    def with_owner(self, owner: Optional[str]) -> "GitHubContent":
        """Set the owner (user or organization) used for each file."""
        self._config = self._config.with_values(owner=owner)
        return self

    def with_repo(self, repo: Optional[str]) -> "GitHubContent":
        """Set the repository used for each file; ``"owner/repo"`` is accepted."""
        self._config = self._config.with_values(repo=repo)
        return self

    def with_branch(self, branch: Optional[str]) -> "GitHubContent":
        """Set the branch used for each file; ``None`` restores ``master``."""
        self._config = self._config.with_values(branch=branch or DEFAULT_BRANCH)
        return self

    async def file(
        self, path: str, options: Optional[Mapping[str, Any]] = None
    ) -> FileResult:
        """Download a single file.

        ``options`` may override ``owner``, ``repo`` and ``branch`` for this
        call; remaining keys are passed to the transport. The returned
        ``contents`` is whatever body the server sent, so a missing file comes
        back as ``"404: Not Found"`` rather than an error.
        """
        return await self._fetch(path, resolve_config(self._config, options))

    async def files(
        self, paths: Paths, options: Optional[Mapping[str, Any]] = None
    ) -> list[FileResult]:
        """Download several files concurrently.

        Results line up with ``paths``. The first failing download cancels the
        rest and its exception is raised as-is.
        """
        targets = _as_list(paths)
        if not targets:
            return []
        return await self._fetch_all(targets, resolve_config(self._config, options))

    def fetch_file(
        self,
        path: str,
        callback: Callback,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "GitHubContent":
        """Callback flavour of :meth:`file`, invoked as ``callback(error, file)``.

        Must be called from within a running event loop. A cancelled fetch
        reports its ``CancelledError`` to the callback.
        """
        _require_callable(callback)
        loop = asyncio.get_running_loop()
        try:
            resolved = resolve_config(self._config, options)
        except MissingRepository as exc:
            _invoke(callback, exc, None)
            return self
        self._schedule(loop, self._fetch(path, resolved), callback)
        return self

    def fetch_files(
        self,
        paths: Paths,
        callback: Callback,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "GitHubContent":
        """Callback flavour of :meth:`files`, invoked as ``callback(error, files)``."""
        _require_callable(callback)
        loop = asyncio.get_running_loop()
        targets = _as_list(paths)
        if not targets:
            _invoke(callback, None, [])
            return self
        try:
            resolved = resolve_config(self._config, options)
        except MissingRepository as exc:
            _invoke(callback, exc, None)
            return self
        self._schedule(loop, self._fetch_all(targets, resolved), callback)
        return self

    async def wait(self) -> None:
        """Wait for every callback-style fetch that is still running."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        if self._default_transport is not None:
            await self._default_transport.close()

    async def __aenter__(self) -> "GitHubContent":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.wait()
        await self.close()

    async def _fetch(self, path: str, config: ClientConfig) -> FileResult:
        options: dict[str, Any] = {
            **config.options,
            "repo": config.repo,
            "branch": config.branch,
            "path": path,
            "apiurl": RAW_CONTENT_URL,
            "json": False,
        }
        if config.owner:
            template = "/:owner/:repo/:branch/:path"
            options["owner"] = config.owner
        else:
            template = "/:repo/:branch/:path"
        contents = await self._transport.get(template, options)
        return FileResult(path=path, contents=contents)

    async def _fetch_all(
        self, paths: list[str], config: ClientConfig
    ) -> list[FileResult]:
        logger.debug(
            "Fetching %d files from %s/%s@%s",
            len(paths),
            config.owner,
            config.repo,
            config.branch,
        )
        tasks = [asyncio.create_task(self._fetch(path, config)) for path in paths]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in tasks:
                if task in done and not task.cancelled():
                    error = task.exception()
                    if error is not None:
                        raise error
            return [task.result() for task in tasks]
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            # Mark every failure as retrieved, not just the one raised.
            for task in tasks:
                if task.done() and not task.cancelled():
                    task.exception()

    def _schedule(
        self,
        loop: asyncio.AbstractEventLoop,
        operation: Awaitable[Any],
        callback: Callback,
    ) -> None:
        task = loop.create_task(_complete(operation, callback))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


async def _complete(operation: Awaitable[Any], callback: Callback) -> None:
    try:
        result = await operation
    except asyncio.CancelledError as exc:
        _invoke(callback, exc, None)
        raise
    except Exception as exc:
        _invoke(callback, exc, None)
        return
    _invoke(callback, None, result)


def _invoke(callback: Callback, error: Optional[BaseException], result: Any) -> None:
    try:
        callback(error, result)
    except Exception:
        logger.exception("Completion callback raised")


def _require_callable(callback: Any) -> None:
    if not callable(callback):
        raise InvalidCallback(f"Expected a callable completion handler, got {callback!r}")


def _as_list(paths: Paths) -> list[str]:
    if paths is None:
        return []
    if isinstance(paths, str):
        return [paths]
    return list(paths)
