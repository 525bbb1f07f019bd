"""SQLite FTS5 document store."""

from __future__ import annotations

import logging
import shutil
import sqlite3
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, List

from reposearch.models import IndexedDocument

if TYPE_CHECKING:
    from reposearch.index.search import SearchCondition

LOGGER = logging.getLogger(__name__)

DB_FILENAME = "index.db"

# Attribute name -> column for exact-match search constraints
ATTRIBUTE_COLUMNS = {
    "repository": "repository",
    "rev": "rev",
    "content_type": "content_type",
}


class StoreError(Exception):
    """Base class for document store failures."""


class StoreOpenError(StoreError):
    pass


class StoreCloseError(StoreError):
    """Releasing the store handle failed; logged, never raised."""


class StorePutError(StoreError):
    pass


class StoreRemoveError(StorePutError):
    """Removing an existing document failed inside the store."""


class StoreOptimizeError(StoreError):
    pass


class OpenMode(str, Enum):
    READ = "read"
    WRITE = "write"


class SQLiteDocumentStore:
    """Full-text document index keyed by document URI.

    Documents are immutable once inserted: an update is a removal followed by a
    fresh insertion. A store opened in ``WRITE`` mode holds an exclusive lock on
    the database file until it is closed, so a second writer cannot open it.
    """

    def __init__(self, path: Path, *, timeout: float = 5.0) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self.mode: OpenMode | None = None
        self._conn: sqlite3.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self.path / DB_FILENAME

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(f"Index is not open: {self.path}")
        return self._conn

    def is_open(self) -> bool:
        return self._conn is not None

    def open(self, mode: OpenMode = OpenMode.READ) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        if self.is_open():
            return
        LOGGER.debug("Open DB: %s (%s)", self.path, mode.value)
        try:
            if mode is OpenMode.WRITE:
                conn = sqlite3.connect(self.db_path, timeout=self.timeout)
                conn.row_factory = sqlite3.Row
                self._conn = conn
                conn.execute("PRAGMA locking_mode=EXCLUSIVE;")
                conn.execute("BEGIN EXCLUSIVE")
                self._create_schema(conn)
                conn.commit()
            else:
                conn = sqlite3.connect(
                    f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True, timeout=self.timeout
                )
                conn.row_factory = sqlite3.Row
                self._conn = conn
                conn.execute("SELECT 1 FROM documents LIMIT 1").fetchall()
        except sqlite3.Error as exc:
            self._discard()
            message = f"Open failed (Need to create indexes) - '{exc}'"
            LOGGER.error(message)
            raise StoreOpenError(message) from exc
        self.mode = mode

    def _discard(self) -> None:
        conn, self._conn = self._conn, None
        self.mode = None
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error:
                LOGGER.debug("Ignoring close failure on discarded handle: %s", self.path)

    def close(self) -> None:
        if self.is_open():
            LOGGER.debug("Close DB: %s", self.path)
            try:
                self._conn.close()
            except sqlite3.Error as exc:
                error = StoreCloseError(f"Close failed (Try to restart) - '{exc}'")
                LOGGER.error("%s", error)
        self._conn = None
        self.mode = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                id INTEGER PRIMARY KEY,
                uri TEXT NOT NULL UNIQUE,
                title TEXT,
                repository TEXT,
                rev TEXT,
                content_type TEXT,
                text TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        conn.execute(
            """
            CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts
                USING fts5(text, content='documents', content_rowid='id')
            """
        )
        conn.execute(
            """
            CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents
            BEGIN
                INSERT INTO documents_fts(rowid, text) VALUES (new.id, new.text);
            END;
            """
        )
        conn.execute(
            """
            CREATE TRIGGER IF NOT EXISTS documents_ad AFTER DELETE ON documents
            BEGIN
                INSERT INTO documents_fts(documents_fts, rowid, text)
                VALUES ('delete', old.id, old.text);
            END;
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_documents_repository ON documents(repository, rev)")

    def lookup_id(self, uri: str) -> int | None:
        try:
            row = self.connection.execute("SELECT id FROM documents WHERE uri = ?", (uri,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Document lookup failed: {uri} - {exc}") from exc
        return None if row is None else int(row["id"])

    def get_document(self, doc_id: int, *, include_text: bool = False) -> IndexedDocument | None:
        columns = "id, uri, title, repository, rev, content_type"
        if include_text:
            columns += ", text"
        try:
            row = self.connection.execute(
                f"SELECT {columns} FROM documents WHERE id = ?", (doc_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Document get failed: {doc_id} - {exc}") from exc
        if row is None:
            return None
        return IndexedDocument(
            id=row["id"],
            uri=row["uri"],
            title=row["title"],
            repository=row["repository"],
            rev=row["rev"],
            content_type=row["content_type"],
            text=row["text"] if include_text else "",
        )

    def put_document(self, document: IndexedDocument) -> int:
        """Insert a new document; fails if its URI is already present."""
        try:
            with self.transaction() as conn:
                doc_id = conn.execute(
                    """
                    INSERT INTO documents(uri, title, repository, rev, content_type, text)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        document.uri,
                        document.title,
                        document.repository,
                        document.rev,
                        document.content_type,
                        document.text,
                    ),
                ).lastrowid
        except sqlite3.Error as exc:
            raise StorePutError(f"Document put failed: {document.uri} - {exc}") from exc
        document.id = doc_id
        return doc_id

    def remove_document(self, doc_id: int) -> bool:
        """Remove a document by id. Returns ``False`` when nothing was there."""
        try:
            with self.transaction() as conn:
                removed = conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,)).rowcount
        except sqlite3.Error as exc:
            raise StoreRemoveError(f"Document remove failed: {doc_id} - {exc}") from exc
        return removed > 0

    def search(self, condition: "SearchCondition") -> List[str]:
        """Return URIs of documents matching the condition, best match first."""
        sql = [
            "SELECT d.uri AS uri FROM documents_fts",
            "JOIN documents d ON d.id = documents_fts.rowid",
            "WHERE documents_fts MATCH ?",
        ]
        params: list[str] = [condition.phrase]
        for name, value in condition.attributes.items():
            column = ATTRIBUTE_COLUMNS.get(name)
            if column is None:
                raise ValueError(f"Unknown search attribute: {name}")
            sql.append(f"AND d.{column} = ?")
            params.append(value)
        sql.append("ORDER BY documents_fts.rank, d.uri")
        try:
            rows = self.connection.execute(" ".join(sql), params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Search failed: {exc}") from exc
        return [row["uri"] for row in rows]

    def document_count(self) -> int:
        try:
            row = self.connection.execute("SELECT COUNT(*) FROM documents").fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Document count failed: {exc}") from exc
        return int(row[0])

    def optimize(self) -> None:
        LOGGER.debug("Optimize DB: %s", self.path)
        try:
            with self.transaction() as conn:
                conn.execute("INSERT INTO documents_fts(documents_fts) VALUES ('optimize')")
            self.connection.execute("VACUUM")
        except (sqlite3.Error, StoreError) as exc:
            raise StoreOptimizeError(f"Optimize failed: {exc}") from exc

    def purge_files(self) -> None:
        """Close the store and delete everything under the index directory."""
        self.close()
        LOGGER.info("Remove DB: %s", self.path)
        if not self.path.exists():
            return
        for child in self.path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink(missing_ok=True)
