"""Exceptions raised by the GitHub raw-content client."""

from __future__ import annotations

import httpx

# Network failures surface as the transport's own exceptions.
TransportError = httpx.TransportError


class GitHubContentError(Exception):
    """Base class for client errors."""


class MissingRepository(GitHubContentError, ValueError):
    """No repository was configured for a fetch."""


class InvalidCallback(GitHubContentError, TypeError):
    """A callback-style fetch was started without a callable completion handler."""
