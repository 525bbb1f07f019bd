"""Repository indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from reposearch.backends.base import Backend, BackendError
from reposearch.index.diff import reduce_changesets, select_range
from reposearch.index.history import SQLiteRunHistory
from reposearch.index.locator import LocatorResolver, RouteLocatorResolver, build_locator
from reposearch.index.search import Searcher
from reposearch.index.storage import (
    OpenMode,
    SQLiteDocumentStore,
    StoreError,
    StoreOpenError,
    StorePutError,
)
from reposearch.index.walker import revision_identifiers, walk_all
from reposearch.models import (
    Action,
    Changeset,
    Entry,
    IndexedDocument,
    Project,
    Repository,
    RunStatus,
)
from reposearch.utils.files import guess_content_type
from reposearch.utils.text import decode_content

LOGGER = logging.getLogger(__name__)


class IndexingError(Exception):
    """Unrecoverable condition for the current repository's run."""


@dataclass(slots=True)
class IndexStats:
    added: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.added + self.updated + self.deleted + self.skipped + self.failed

    def increment(self, status: str) -> None:
        if status == "added":
            self.added += 1
        elif status == "updated":
            self.updated += 1
        elif status == "deleted":
            self.deleted += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1


@dataclass(slots=True)
class RepositoryRun:
    """Outcome of one repository within a project run.

    ``mode`` is one of ``full``, ``diff``, ``current`` (nothing new) or
    ``empty`` (no changesets). ``status`` is ``None`` when no run record was
    written.
    """

    repository: Repository
    mode: str
    status: RunStatus | None = None
    changeset: Changeset | None = None
    message: str | None = None
    stats: IndexStats = field(default_factory=IndexStats)


class DocumentWriter:
    """Apply one add-or-update or delete for a single file to the store."""

    def __init__(
        self,
        store: SQLiteDocumentStore,
        backend: Backend,
        resolver: LocatorResolver,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.resolver = resolver
        self.logger = logger or LOGGER

    def _remove(self, uri: str) -> bool:
        doc_id = self.store.lookup_id(uri)
        if doc_id is None:
            return False
        self.logger.info("Delete doc: %s (%s)", uri, doc_id)
        return self.store.remove_document(doc_id)

    def delete(self, repository: Repository, identifier: str | None, path: str) -> str:
        uri = build_locator(self.resolver, self.backend, repository, identifier, path)
        if uri is None:
            self.logger.debug("Unresolvable locator, skipped: %s", path)
            return "skipped"
        return "deleted" if self._remove(uri) else "skipped"

    def add_or_update(self, repository: Repository, identifier: str | None, entry: Entry) -> str:
        uri = build_locator(self.resolver, self.backend, repository, identifier, entry.path)
        if uri is None:
            self.logger.debug("Unresolvable locator, skipped: %s", entry.path)
            return "skipped"

        content = self.backend.read_file_content(repository, entry.path, identifier)
        if content is None:
            return "deleted" if self._remove(uri) else "skipped"

        existed = self._remove(uri)
        self.logger.info("Add doc: %s", uri)
        document = IndexedDocument(
            uri=uri,
            title=entry.path,
            repository=repository.label,
            rev=identifier,
            content_type=guess_content_type(entry.path),
            text=decode_content(content),
        )
        try:
            self.store.put_document(document)
        except StorePutError as exc:
            self.logger.warning("Document put failed - %s", exc)
            return "failed"
        return "updated" if existed else "added"


class ProjectIndexer:
    """Keeps a project's full-text index in sync with its repositories."""

    def __init__(
        self,
        project: Project,
        backend: Backend,
        store: SQLiteDocumentStore,
        history: SQLiteRunHistory,
        resolver: LocatorResolver | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.project = project
        self.backend = backend
        self.store = store
        self.history = history
        self.resolver = resolver or RouteLocatorResolver(project.identifier)
        self.logger = logger or LOGGER
        self.repositories = [repo for repo in project.repositories if repo.supports_content]
        self.writer = DocumentWriter(store, backend, self.resolver, logger=self.logger)

    def history_key(self, repository: Repository) -> str:
        return f"{self.project.identifier}/{repository.label}"

    def open(self, mode: OpenMode = OpenMode.READ) -> None:
        self.store.open(mode)

    def close(self) -> None:
        self.store.close()

    def search(
        self,
        tokens: Sequence[str] | None,
        repository: str | None = None,
        rev: str | None = None,
        content_type: str | None = None,
        all_words: bool = True,
    ) -> List[str]:
        return Searcher(self.store).search(
            tokens, repository, rev, content_type, all_words=all_words
        )

    def optimize(self) -> None:
        self.store.optimize()

    def remove(self) -> None:
        """Forget every run of the project's repositories and drop the index."""
        self.store.close()
        for repository in self.repositories:
            self.logger.info("Remove logs: %s - %s", self.project.display_name, repository.label)
            self.history.delete_all_runs_for(self.history_key(repository))
        self.store.purge_files()

    def index(self) -> List[RepositoryRun]:
        """Index every repository in project order, sharing one write handle."""
        if not self.store.is_open():
            self.store.open(OpenMode.WRITE)
        elif self.store.mode is not OpenMode.WRITE:
            raise StoreOpenError(f"Index opened read-only: {self.store.path}")
        return [self.index_repository(repository) for repository in self.repositories]

    def index_repository(self, repository: Repository) -> RepositoryRun:
        key = self.history_key(repository)
        run = RepositoryRun(repository=repository, mode="full")
        self.logger.info("Fetch changesets: %s - %s", self.project.display_name, repository.label)
        try:
            self.backend.fetch_changesets(repository)
            latest = self.backend.latest_changeset(repository)
            if latest is None:
                run.mode = "empty"
                return run
            run.changeset = latest
            self.logger.debug(
                "Latest revision: %s - %s - %s", self.project.display_name, repository.label, latest.revision
            )

            last = self.history.find_last_success(key)
            if last is None or last.changeset_id is None:
                self._index_all(repository, run.stats)
            elif latest.id <= last.changeset_id:
                self.logger.info(
                    "Already indexed: %s (from: %s to %s)", repository.label, last.changeset_id, latest.id
                )
                run.mode = "current"
                return run
            else:
                run.mode = "diff"
                self._index_diff(repository, last.changeset_id, latest.id, run.stats)
        except (IndexingError, StoreError, BackendError) as exc:
            self.logger.error("Indexing failed: %s - %s", repository.label, exc)
            self.history.append_run(key, run.changeset, RunStatus.FAIL, str(exc))
            run.status = RunStatus.FAIL
            run.message = str(exc)
            return run

        self.history.append_run(key, run.changeset, RunStatus.SUCCESS)
        run.status = RunStatus.SUCCESS
        self.logger.info(
            "Successfully indexed: %s - %s - %s",
            self.project.display_name,
            repository.label,
            run.changeset.revision,
        )
        return run

    def _index_all(self, repository: Repository, stats: IndexStats) -> None:
        self.logger.info("Indexing all: %s", repository.label)
        for identifier, entry in walk_all(self.backend, repository, logger=self.logger):
            stats.increment(self.writer.add_or_update(repository, identifier, entry))

    def _index_diff(self, repository: Repository, diff_from: int, diff_to: int, stats: IndexStats) -> None:
        self.logger.info("Indexing diff: %s (from: %s to %s)", repository.label, diff_from, diff_to)
        for identifier in revision_identifiers(self.backend, repository):
            self.logger.debug("Walking in %s - %s", repository.label, identifier or "[NOBRANCH]")
            changesets = select_range(
                self.backend.changesets_in_range(repository, identifier, diff_from, diff_to),
                diff_from,
                diff_to,
            )
            for path, action in reduce_changesets(changesets).items():
                stats.increment(self._apply(repository, identifier, path, action))

    def _apply(self, repository: Repository, identifier: str | None, path: str, action: Action) -> str:
        if action is Action.DELETE:
            return self.writer.delete(repository, identifier, path)
        # Only the state at the target revision matters for an add or update.
        entry = self.backend.entry(repository, path, identifier)
        if entry is None:
            return self.writer.delete(repository, identifier, path)
        if not entry.is_file:
            return "skipped"
        return self.writer.add_or_update(repository, identifier, entry)
