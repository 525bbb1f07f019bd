"""Core reposearch data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Tuple

MAIN_REPOSITORY_IDENTIFIER = "[main]"


class Action(IntEnum):
    """Final operation to apply to the index for a single path."""

    DELETE = 0
    ADD_OR_UPDATE = 1

    @classmethod
    def from_scm_code(cls, code: str) -> "Action":
        # A(dd), M(odified), R(eplaced) and anything else keep the file alive.
        if code.upper() == "D":
            return cls.DELETE
        return cls.ADD_OR_UPDATE


class RunStatus(IntEnum):
    SUCCESS = 1
    FAIL = -1


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "dir"


@dataclass(slots=True)
class Repository:
    """Revision-addressable source tree owned by a project."""

    identifier: str | None
    root: Path
    supports_content: bool = True

    @property
    def label(self) -> str:
        return self.identifier or MAIN_REPOSITORY_IDENTIFIER


@dataclass(slots=True)
class Project:
    identifier: str
    repositories: list[Repository] = field(default_factory=list)
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.identifier


@dataclass(slots=True, frozen=True)
class Entry:
    """Node of a repository tree at a given revision identifier."""

    path: str
    kind: EntryKind

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE


@dataclass(slots=True, frozen=True)
class Change:
    path: str
    action: str


@dataclass(slots=True, frozen=True)
class Changeset:
    """Atomic commit; ``id`` gives the total order within a repository."""

    id: int
    revision: str
    changes: Tuple[Change, ...] = ()


@dataclass(slots=True, frozen=True)
class IndexingRun:
    """One append-only outcome of an indexing attempt."""

    repository: str
    changeset_id: int | None
    revision: str | None
    status: RunStatus
    message: str | None = None
    id: int | None = None
    created_at: str | None = None


@dataclass(slots=True)
class IndexedDocument:
    """Document as stored in the full-text index, keyed by ``uri``."""

    uri: str
    title: str
    repository: str
    rev: str | None
    text: str = ""
    content_type: str | None = None
    id: int | None = None
