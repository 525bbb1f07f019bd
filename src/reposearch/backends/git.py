"""Git implementation of the backend protocol, built on the ``git`` executable."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from reposearch.backends.base import BackendError
from reposearch.models import Change, Changeset, Entry, EntryKind, Repository
from reposearch.utils.files import looks_binary, normalize_repo_path

LOGGER = logging.getLogger(__name__)

HEAD = "HEAD"


class GitError(BackendError):
    """Raised when a git command fails."""


def _run_git_bytes(args: Iterable[str], *, cwd: Path, git_binary: str = "git") -> bytes:
    """Run a git sub-command and return raw stdout."""
    try:
        completed = subprocess.run(
            [git_binary, *args],
            cwd=str(cwd),
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise GitError(f"Unable to run git in {cwd}: {exc}") from exc
    if completed.returncode != 0:
        message = completed.stderr.decode("utf-8", errors="replace").strip()
        raise GitError(message or "git command failed")
    return completed.stdout


def _run_git(args: Iterable[str], *, cwd: Path, git_binary: str = "git") -> str:
    """Run a git sub-command and return decoded stdout."""
    return _run_git_bytes(args, cwd=cwd, git_binary=git_binary).decode("utf-8", errors="replace")


def _split_z(output: str) -> List[str]:
    return [item for item in output.split("\0") if item]


class GitBackend:
    """Expose a local git work tree as changesets, entries and file content.

    Changeset ids are the 1-based position of each commit in
    ``git rev-list --all --reverse --date-order``. The mapping is cached per
    repository root until :meth:`fetch_changesets` is called.
    """

    def __init__(self, *, max_file_size: int | None = None, git_binary: str = "git") -> None:
        self.max_file_size = max_file_size
        self.git_binary = git_binary
        self._commit_ids: Dict[str, Dict[str, int]] = {}

    def _git(self, repository: Repository, *args: str) -> str:
        return _run_git(args, cwd=Path(repository.root), git_binary=self.git_binary)

    def _git_bytes(self, repository: Repository, *args: str) -> bytes:
        return _run_git_bytes(args, cwd=Path(repository.root), git_binary=self.git_binary)

    def supports_content(self, root: Path) -> bool:
        try:
            output = _run_git(["rev-parse", "--is-inside-work-tree"], cwd=Path(root), git_binary=self.git_binary)
        except GitError:
            return False
        return output.strip() == "true"

    def fetch_changesets(self, repository: Repository) -> None:
        self._commit_ids.pop(str(repository.root), None)

    def _ids(self, repository: Repository) -> Dict[str, int]:
        key = str(repository.root)
        if key not in self._commit_ids:
            output = self._git(repository, "rev-list", "--all", "--reverse", "--date-order")
            shas = [line.strip() for line in output.splitlines() if line.strip()]
            self._commit_ids[key] = {sha: index for index, sha in enumerate(shas, start=1)}
        return self._commit_ids[key]

    def _refs(self, repository: Repository, namespace: str) -> List[str]:
        output = self._git(repository, "for-each-ref", "--format=%(refname:short)", namespace)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def list_branches(self, repository: Repository) -> Sequence[str]:
        return self._refs(repository, "refs/heads")

    def list_tags(self, repository: Repository) -> Sequence[str]:
        return self._refs(repository, "refs/tags")

    def _parse_ls_tree(self, output: str) -> List[Entry]:
        entries: List[Entry] = []
        for record in _split_z(output):
            meta, _, path = record.partition("\t")
            parts = meta.split()
            if len(parts) < 2:
                continue
            if parts[1] == "tree":
                entries.append(Entry(path=path, kind=EntryKind.DIRECTORY))
            elif parts[1] == "blob":
                entries.append(Entry(path=path, kind=EntryKind.FILE))
            # submodule commits are not part of this tree
        return entries

    def list_entries(
        self, repository: Repository, path: str | None, identifier: str | None
    ) -> Sequence[Entry]:
        ref = identifier or HEAD
        if path:
            output = self._git(repository, "ls-tree", "-z", ref, "--", path.rstrip("/") + "/")
        else:
            output = self._git(repository, "ls-tree", "-z", ref)
        return self._parse_ls_tree(output)

    def entry(self, repository: Repository, path: str, identifier: str | None) -> Entry | None:
        output = self._git(repository, "ls-tree", "-z", identifier or HEAD, "--", path)
        for found in self._parse_ls_tree(output):
            if found.path == path:
                return found
        return None

    def read_file_content(
        self, repository: Repository, path: str, identifier: str | None
    ) -> bytes | None:
        spec = f"{identifier or HEAD}:{path}"
        found = self.entry(repository, path, identifier)
        if found is None or not found.is_file:
            LOGGER.debug("No content for %s in %s", spec, repository.label)
            return None
        # Any failure past this point is a broken repository, not a missing file.
        size = int(self._git(repository, "cat-file", "-s", spec).strip())
        if self.max_file_size is not None and size > self.max_file_size:
            LOGGER.debug("Skip large file: %s (%s bytes)", spec, size)
            return None
        data = self._git_bytes(repository, "cat-file", "blob", spec)
        if looks_binary(data):
            LOGGER.debug("Skip binary file: %s", spec)
            return None
        return data

    def latest_changeset(self, repository: Repository) -> Changeset | None:
        ids = self._ids(repository)
        if not ids:
            return None
        sha, changeset_id = max(ids.items(), key=lambda item: item[1])
        return Changeset(id=changeset_id, revision=sha)

    def changesets_in_range(
        self,
        repository: Repository,
        identifier: str | None,
        lower_exclusive: int,
        upper_inclusive: int,
    ) -> Sequence[Changeset]:
        ids = self._ids(repository)
        output = self._git(repository, "rev-list", identifier or HEAD)
        changesets: List[Changeset] = []
        for line in output.splitlines():
            sha = line.strip()
            changeset_id = ids.get(sha)
            if changeset_id is None:
                continue
            if lower_exclusive < changeset_id <= upper_inclusive:
                changesets.append(
                    Changeset(id=changeset_id, revision=sha, changes=self._changes(repository, sha))
                )
        return changesets

    def _changes(self, repository: Repository, sha: str) -> tuple[Change, ...]:
        parents = self._git(repository, "rev-list", "--parents", "-n", "1", sha).split()[1:]
        if parents:
            output = self._git(repository, "diff", "--name-status", "--no-renames", "-z", parents[0], sha)
        else:
            output = self._git(
                repository, "diff-tree", "-r", "--root", "--no-commit-id", "--name-status", "--no-renames", "-z", sha
            )
        fields = _split_z(output)
        changes: List[Change] = []
        for status, path in zip(fields[0::2], fields[1::2]):
            code = status[:1]
            if code == "T":
                code = "M"
            changes.append(Change(path=path, action=code))
        return tuple(changes)

    def relative_path(self, repository: Repository, path: str) -> str:
        return normalize_repo_path(path, str(repository.root))
