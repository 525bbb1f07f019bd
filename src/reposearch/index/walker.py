"""Full-tree enumeration of repository files for bulk indexing."""

from __future__ import annotations

import logging
from typing import Iterator, List, Sequence

from reposearch.backends.base import Backend
from reposearch.models import Entry, Repository

LOGGER = logging.getLogger(__name__)


def revision_identifiers(backend: Backend, repository: Repository) -> List[str | None]:
    """Branches followed by tags, in backend order; ``[None]`` when there are neither."""
    identifiers: List[str | None] = [*(backend.list_branches(repository) or ())]
    identifiers.extend(backend.list_tags(repository) or ())
    return identifiers or [None]


def walk_entries(
    backend: Backend,
    repository: Repository,
    identifier: str | None,
    entries: Sequence[Entry],
) -> Iterator[Entry]:
    """Yield every file below ``entries``, descending into directories."""
    for entry in entries:
        if entry.is_dir:
            yield from walk_entries(
                backend, repository, identifier, backend.list_entries(repository, entry.path, identifier)
            )
        elif entry.is_file:
            yield entry


def walk_all(
    backend: Backend,
    repository: Repository,
    identifiers: Sequence[str | None] | None = None,
    *,
    logger: logging.Logger | None = None,
) -> Iterator[tuple[str | None, Entry]]:
    """Yield ``(identifier, entry)`` for every file of every branch and tag."""
    logger = logger or LOGGER
    if identifiers is None:
        identifiers = revision_identifiers(backend, repository)
    for identifier in identifiers:
        logger.debug("Walking in %s - %s", repository.label, identifier or "[NOBRANCH]")
        for entry in walk_entries(backend, repository, identifier, backend.list_entries(repository, None, identifier)):
            yield identifier, entry
