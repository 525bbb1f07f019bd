"""Append-only log of indexing runs."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from reposearch.models import Changeset, IndexingRun, RunStatus

LOGGER = logging.getLogger(__name__)


class HistoryError(Exception):
    """Run history could not be read or written."""


class SQLiteRunHistory:
    """Indexing run records, one row per attempt, never updated in place."""

    def __init__(self, db_path: Path, *, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self.db_path, timeout=timeout)
            self._conn.row_factory = sqlite3.Row
            self._ensure_schema()
        except sqlite3.Error as exc:
            raise HistoryError(f"Unable to open run history {self.db_path}: {exc}") from exc

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise HistoryError(str(exc)) from exc
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS indexing_runs (
                    id INTEGER PRIMARY KEY,
                    repository TEXT NOT NULL,
                    changeset_id INTEGER,
                    revision TEXT,
                    status INTEGER NOT NULL,
                    message TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_indexing_runs_repository
                    ON indexing_runs(repository, status)
                """
            )

    @staticmethod
    def _to_run(row: sqlite3.Row) -> IndexingRun:
        return IndexingRun(
            id=row["id"],
            repository=row["repository"],
            changeset_id=row["changeset_id"],
            revision=row["revision"],
            status=RunStatus(row["status"]),
            message=row["message"],
            created_at=row["created_at"],
        )

    def find_last_success(self, repository: str) -> IndexingRun | None:
        try:
            row = self._conn.execute(
                """
                SELECT * FROM indexing_runs
                WHERE repository = ? AND status = ?
                ORDER BY id DESC LIMIT 1
                """,
                (repository, int(RunStatus.SUCCESS)),
            ).fetchone()
        except sqlite3.Error as exc:
            raise HistoryError(str(exc)) from exc
        return None if row is None else self._to_run(row)

    def append_run(
        self,
        repository: str,
        changeset: Changeset | None,
        status: RunStatus,
        message: str | None = None,
    ) -> IndexingRun:
        with self.transaction() as conn:
            run_id = conn.execute(
                """
                INSERT INTO indexing_runs(repository, changeset_id, revision, status, message)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    repository,
                    changeset.id if changeset else None,
                    changeset.revision if changeset else None,
                    int(status),
                    message,
                ),
            ).lastrowid
        return IndexingRun(
            id=run_id,
            repository=repository,
            changeset_id=changeset.id if changeset else None,
            revision=changeset.revision if changeset else None,
            status=status,
            message=message,
        )

    def list_runs(self, repository: str) -> List[IndexingRun]:
        try:
            rows = self._conn.execute(
                "SELECT * FROM indexing_runs WHERE repository = ? ORDER BY id", (repository,)
            ).fetchall()
        except sqlite3.Error as exc:
            raise HistoryError(str(exc)) from exc
        return [self._to_run(row) for row in rows]

    def delete_all_runs_for(self, repository: str) -> int:
        LOGGER.info("Remove logs: %s", repository)
        with self.transaction() as conn:
            return conn.execute(
                "DELETE FROM indexing_runs WHERE repository = ?", (repository,)
            ).rowcount
