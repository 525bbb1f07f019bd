"""Stable document locators for files in a repository at a revision."""

from __future__ import annotations

from typing import Protocol
from urllib.parse import quote

from reposearch.backends.base import Backend
from reposearch.models import Repository


class LocatorResolver(Protocol):
    def to_locator(
        self, repository_identifier: str | None, identifier: str | None, relative_path: str
    ) -> str | None: ...


class RouteLocatorResolver:
    """Build repository-browser routes used as document URIs.

    ``/projects/<project>/repository[/<repository>][/revisions/<rev>]/entry/<path>``
    """

    def __init__(self, project_identifier: str, *, prefix: str = "/projects") -> None:
        self.project_identifier = project_identifier
        self.prefix = prefix.rstrip("/")

    def to_locator(
        self, repository_identifier: str | None, identifier: str | None, relative_path: str
    ) -> str | None:
        if not relative_path or not self.project_identifier:
            return None
        parts = [self.prefix, quote(self.project_identifier, safe=""), "repository"]
        if repository_identifier:
            parts.append(quote(repository_identifier, safe=""))
        if identifier:
            parts.extend(["revisions", quote(identifier, safe="")])
        parts.extend(["entry", quote(relative_path, safe="/")])
        return "/".join(parts)


def build_locator(
    resolver: LocatorResolver,
    backend: Backend,
    repository: Repository,
    identifier: str | None,
    path: str,
) -> str | None:
    """Return the URI of ``path`` at ``identifier``, or ``None`` if unresolvable."""
    relative = backend.relative_path(repository, path)
    return resolver.to_locator(repository.identifier, identifier, relative)
