"""Version-control backend protocol consumed by the indexing engine."""

from __future__ import annotations

from typing import Protocol, Sequence

from reposearch.models import Changeset, Entry, Repository


class BackendError(RuntimeError):
    """Raised when the version-control backend cannot answer a request."""


class Backend(Protocol):
    """Read-only view of a revision-addressable repository.

    A ``None`` revision identifier means the trunk/head of the repository.
    """

    def fetch_changesets(self, repository: Repository) -> None: ...

    def list_branches(self, repository: Repository) -> Sequence[str]: ...

    def list_tags(self, repository: Repository) -> Sequence[str]: ...

    def list_entries(
        self, repository: Repository, path: str | None, identifier: str | None
    ) -> Sequence[Entry]: ...

    def entry(
        self, repository: Repository, path: str, identifier: str | None
    ) -> Entry | None: ...

    def read_file_content(
        self, repository: Repository, path: str, identifier: str | None
    ) -> bytes | None: ...

    def latest_changeset(self, repository: Repository) -> Changeset | None: ...

    def changesets_in_range(
        self,
        repository: Repository,
        identifier: str | None,
        lower_exclusive: int,
        upper_inclusive: int,
    ) -> Sequence[Changeset]: ...

    def relative_path(self, repository: Repository, path: str) -> str: ...
