"""Tests for data models."""

from __future__ import annotations

from pathlib import Path

import pytest

from reposearch.models import (
    MAIN_REPOSITORY_IDENTIFIER,
    Action,
    Entry,
    EntryKind,
    Project,
    Repository,
    RunStatus,
)


class TestAction:
    """Test SCM action code mapping."""

    @pytest.mark.parametrize("code", ["A", "M", "R", "a"])
    def test_live_codes_map_to_add_or_update(self, code: str) -> None:
        assert Action.from_scm_code(code) is Action.ADD_OR_UPDATE

    def test_deleted_maps_to_delete(self) -> None:
        assert Action.from_scm_code("D") is Action.DELETE

    def test_codes_match_plugin_values(self) -> None:
        """Action and status values stay stable for stored records."""
        assert int(Action.ADD_OR_UPDATE) == 1
        assert int(Action.DELETE) == 0
        assert int(RunStatus.SUCCESS) == 1
        assert int(RunStatus.FAIL) == -1


class TestRepository:
    """Test Repository labels."""

    def test_label_uses_identifier(self) -> None:
        repo = Repository(identifier="docs", root=Path("/tmp/docs"))
        assert repo.label == "docs"

    def test_label_falls_back_to_main(self) -> None:
        repo = Repository(identifier=None, root=Path("/tmp/main"))
        assert repo.label == MAIN_REPOSITORY_IDENTIFIER == "[main]"

    def test_supports_content_default(self) -> None:
        assert Repository(identifier=None, root=Path("/tmp")).supports_content is True


class TestEntry:
    def test_file_entry(self) -> None:
        entry = Entry(path="a.txt", kind=EntryKind.FILE)
        assert entry.is_file
        assert not entry.is_dir

    def test_directory_entry(self) -> None:
        entry = Entry(path="dir", kind=EntryKind.DIRECTORY)
        assert entry.is_dir
        assert not entry.is_file


class TestProject:
    def test_display_name_defaults_to_identifier(self) -> None:
        assert Project(identifier="demo").display_name == "demo"
        assert Project(identifier="demo", name="Demo").display_name == "Demo"
