"""Tests for the full-tree walker."""

from __future__ import annotations

from unittest.mock import Mock

from reposearch.index.walker import revision_identifiers, walk_all, walk_entries
from reposearch.models import Entry, EntryKind


class TestRevisionIdentifiers:
    """Test branch/tag selection."""

    def test_branches_before_tags_in_backend_order(self, backend_factory, repository) -> None:
        backend = backend_factory(branches=["main", "dev"], tags=["v2", "v1"])

        assert revision_identifiers(backend, repository) == ["main", "dev", "v2", "v1"]

    def test_tags_only(self, backend_factory, repository) -> None:
        backend = backend_factory(tags=["v1"])

        assert revision_identifiers(backend, repository) == ["v1"]

    def test_neither_branches_nor_tags_walks_head(self, backend_factory, repository) -> None:
        assert revision_identifiers(backend_factory(), repository) == [None]

    def test_backend_returning_none(self, repository) -> None:
        backend = Mock()
        backend.list_branches.return_value = None
        backend.list_tags.return_value = None

        assert revision_identifiers(backend, repository) == [None]


class TestWalkAll:
    """Test recursive enumeration of files."""

    def test_emits_every_file(self, backend_factory, repository) -> None:
        backend = backend_factory({"main": {"a.txt": b"a", "dir/b.txt": b"b"}}, branches=["main"])

        pairs = list(walk_all(backend, repository))

        assert pairs == [
            ("main", Entry(path="a.txt", kind=EntryKind.FILE)),
            ("main", Entry(path="dir/b.txt", kind=EntryKind.FILE)),
        ]

    def test_deep_directories(self, backend_factory, repository) -> None:
        backend = backend_factory({None: {"x/y/z/deep.txt": b"d", "top.txt": b"t"}})

        paths = [entry.path for _, entry in walk_all(backend, repository)]

        assert sorted(paths) == ["top.txt", "x/y/z/deep.txt"]

    def test_each_identifier_walked(self, backend_factory, repository) -> None:
        backend = backend_factory(
            {"main": {"a.txt": b"1"}, "v1": {"a.txt": b"0", "old.txt": b"o"}},
            branches=["main"],
            tags=["v1"],
        )

        pairs = [(ident, entry.path) for ident, entry in walk_all(backend, repository)]

        assert pairs == [("main", "a.txt"), ("v1", "a.txt"), ("v1", "old.txt")]

    def test_explicit_identifier_list(self, backend_factory, repository) -> None:
        backend = backend_factory({"v1": {"a.txt": b"0"}}, branches=["main"], tags=["v1"])

        pairs = [(ident, entry.path) for ident, entry in walk_all(backend, repository, ["v1"])]

        assert pairs == [("v1", "a.txt")]

    def test_logs_through_given_logger(self, backend_factory, repository) -> None:
        logger = Mock()
        backend = backend_factory({"main": {"a.txt": b"0"}}, branches=["main"])

        list(walk_all(backend, repository, logger=logger))

        logger.debug.assert_called_once_with("Walking in %s - %s", "[main]", "main")

    def test_empty_tree(self, backend_factory, repository) -> None:
        assert list(walk_all(backend_factory(), repository)) == []


class TestWalkEntries:
    def test_empty_directory_stops_recursion(self, repository) -> None:
        backend = Mock()
        backend.list_entries.return_value = []

        files = list(walk_entries(backend, repository, "main", [Entry(path="empty", kind=EntryKind.DIRECTORY)]))

        assert files == []
        backend.list_entries.assert_called_once_with(repository, "empty", "main")

    def test_children_listed_at_same_identifier(self, repository) -> None:
        backend = Mock()
        backend.list_entries.return_value = [Entry(path="d/f.txt", kind=EntryKind.FILE)]

        files = list(walk_entries(backend, repository, "v1", [Entry(path="d", kind=EntryKind.DIRECTORY)]))

        assert files == [Entry(path="d/f.txt", kind=EntryKind.FILE)]
        backend.list_entries.assert_called_once_with(repository, "d", "v1")
