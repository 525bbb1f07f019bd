"""Shared fixtures: an in-memory backend and on-disk stores."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from reposearch.backends.base import BackendError
from reposearch.index.history import SQLiteRunHistory
from reposearch.index.storage import OpenMode, SQLiteDocumentStore
from reposearch.models import Changeset, Entry, EntryKind, Repository
from reposearch.utils.files import normalize_repo_path


class FakeBackend:
    """Backend serving per-revision file trees held in dictionaries.

    ``trees`` maps a revision identifier (``None`` for head) to ``{path: bytes}``;
    a ``None`` content value makes the file unreadable.
    """

    def __init__(
        self,
        trees: Dict[str | None, Dict[str, bytes | None]] | None = None,
        *,
        branches: Sequence[str] = (),
        tags: Sequence[str] = (),
        changesets: Dict[str | None, List[Changeset]] | None = None,
    ) -> None:
        self.trees = trees or {}
        self.branches = list(branches)
        self.tags = list(tags)
        self.changesets = changesets or {}
        self.fail_on_read: set[str] = set()
        self.fetched = 0
        self.reads: List[tuple[str, str | None]] = []

    def fetch_changesets(self, repository: Repository) -> None:
        self.fetched += 1

    def list_branches(self, repository: Repository) -> Sequence[str]:
        return list(self.branches)

    def list_tags(self, repository: Repository) -> Sequence[str]:
        return list(self.tags)

    def list_entries(self, repository, path, identifier) -> Sequence[Entry]:
        tree = self.trees.get(identifier, {})
        prefix = f"{path.rstrip('/')}/" if path else ""
        seen: Dict[str, Entry] = {}
        for file_path in sorted(tree):
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix) :]
            head, sep, _ = rest.partition("/")
            child = prefix + head
            if sep:
                seen.setdefault(child, Entry(path=child, kind=EntryKind.DIRECTORY))
            else:
                seen[child] = Entry(path=child, kind=EntryKind.FILE)
        return list(seen.values())

    def entry(self, repository, path, identifier) -> Entry | None:
        if path in self.trees.get(identifier, {}):
            return Entry(path=path, kind=EntryKind.FILE)
        return None

    def read_file_content(self, repository, path, identifier) -> bytes | None:
        self.reads.append((path, identifier))
        if path in self.fail_on_read:
            raise BackendError(f"backend unreachable while reading {path}")
        return self.trees.get(identifier, {}).get(path)

    def latest_changeset(self, repository) -> Changeset | None:
        every = [cs for group in self.changesets.values() for cs in group]
        if not every:
            return None
        return max(every, key=lambda cs: cs.id)

    def changesets_in_range(self, repository, identifier, lower_exclusive, upper_inclusive):
        return [
            cs for cs in self.changesets.get(identifier, []) if lower_exclusive < cs.id <= upper_inclusive
        ]

    def relative_path(self, repository, path) -> str:
        return normalize_repo_path(path, str(repository.root))


@pytest.fixture
def backend_factory():
    return FakeBackend


@pytest.fixture
def repository() -> Repository:
    return Repository(identifier=None, root=Path("/srv/repos/demo"))


@pytest.fixture
def store(tmp_path: Path):
    """Document store opened for writing."""
    store = SQLiteDocumentStore(tmp_path / "index", timeout=0.1)
    store.open(OpenMode.WRITE)
    yield store
    store.close()


@pytest.fixture
def history(tmp_path: Path):
    history = SQLiteRunHistory(tmp_path / "history.db")
    yield history
    history.close()
