"""
Storage utilities for raw documents and stored stories.

Raw documents are plain files in one directory, written atomically so a
crashed crawl never leaves a half-written document behind. Stories live
in a SQLite table with unique constraints on ``slug`` and
``source_identifier``.
"""

import logging
import os
import sqlite3
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from story_pipeline.constants import RAW_DOCUMENT_SUFFIX

logger = logging.getLogger(__name__)


# ============================================================================
# Raw documents
# ============================================================================

def write_raw_document(raw_dir: str, filename: str, content: str) -> str:
    """
    Persist fetched markup atomically.

    The document is written to a temporary file in the same directory,
    flushed to disk and renamed over the final name.

    Args:
        raw_dir: Raw document directory
        filename: Derived filename for the target
        content: Markup to store

    Returns:
        Path of the written document
    """
    os.makedirs(raw_dir, exist_ok=True)
    path = os.path.join(raw_dir, filename)

    fd, tmp_path = tempfile.mkstemp(dir=raw_dir, prefix=".tmp-", suffix=".part")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise

    return path


def read_raw_document(raw_dir: str, filename: str) -> str:
    """Read a raw document, replacing undecodable bytes."""
    with open(os.path.join(raw_dir, filename), encoding="utf-8", errors="replace") as fh:
        return fh.read()


def list_raw_documents(raw_dir: str) -> list[str]:
    """
    List raw document filenames in sorted order.

    Returns:
        Sorted filenames; empty if the directory does not exist
    """
    try:
        names = os.listdir(raw_dir)
    except FileNotFoundError:
        return []
    return sorted(name for name in names if name.endswith(RAW_DOCUMENT_SUFFIX))


# ============================================================================
# Story table
# ============================================================================

SCHEMA = """
CREATE TABLE IF NOT EXISTS stories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT NOT NULL UNIQUE,
    title TEXT,
    author TEXT,
    excerpt TEXT,
    genre TEXT,
    reading_time TEXT,
    created_at TEXT,
    word_count INTEGER,
    content TEXT,
    source_identifier TEXT NOT NULL UNIQUE
);
CREATE INDEX IF NOT EXISTS idx_stories_slug ON stories(slug);
CREATE INDEX IF NOT EXISTS idx_stories_source_identifier ON stories(source_identifier);
"""

STORY_COLUMNS = (
    "slug",
    "title",
    "author",
    "excerpt",
    "genre",
    "reading_time",
    "created_at",
    "word_count",
    "content",
    "source_identifier",
)


@dataclass
class StoredStory:
    """A persisted story row."""

    id: int
    slug: str
    title: str
    author: str
    excerpt: str
    genre: str | None
    reading_time: str
    created_at: str
    word_count: int
    content: str
    source_identifier: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "StoredStory":
        """Create StoredStory from a sqlite3.Row."""
        return cls(**{key: row[key] for key in row.keys()})


class StoryStore:
    """SQLite-backed story table; insert-only."""

    def __init__(self, db_path: str):
        """
        Initialize the store and create the schema if needed.

        Args:
            db_path: SQLite database path (":memory:" is not supported
                because every operation opens its own connection)
        """
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.init_database()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection that is always closed afterwards."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block as one all-or-nothing transaction.

        Commits if the block finishes, rolls back if it raises.
        """
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def init_database(self) -> None:
        """Create the stories table and its indexes."""
        with self.get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    def has_source(self, source_identifier: str, conn: sqlite3.Connection | None = None) -> bool:
        """Check whether a raw document already has a stored story."""
        return self._exists("source_identifier", source_identifier, conn)

    def slug_exists(self, slug: str, conn: sqlite3.Connection | None = None) -> bool:
        """Check whether a slug is already taken."""
        return self._exists("slug", slug, conn)

    def _exists(self, column: str, value: str, conn: sqlite3.Connection | None) -> bool:
        query = f"SELECT 1 FROM stories WHERE {column} = ? LIMIT 1"
        if conn is not None:
            return conn.execute(query, (value,)).fetchone() is not None
        with self.get_connection() as own_conn:
            return own_conn.execute(query, (value,)).fetchone() is not None

    def stored_sources(self) -> set[str]:
        """Return every source identifier that has a stored story."""
        with self.get_connection() as conn:
            rows = conn.execute("SELECT source_identifier FROM stories").fetchall()
        return {row["source_identifier"] for row in rows}

    def insert_story(self, conn: sqlite3.Connection, values: dict[str, Any]) -> int:
        """
        Insert one story inside an open transaction.

        Args:
            conn: Connection from transaction()
            values: Column values keyed by STORY_COLUMNS

        Returns:
            Row id of the new story

        Raises:
            sqlite3.IntegrityError: On a unique constraint violation
        """
        placeholders = ", ".join(f":{name}" for name in STORY_COLUMNS)
        cursor = conn.execute(
            f"INSERT INTO stories ({', '.join(STORY_COLUMNS)}) VALUES ({placeholders})",
            {name: values.get(name) for name in STORY_COLUMNS},
        )
        return cursor.lastrowid

    def all_stories(self) -> list[StoredStory]:
        """Return every stored story in id order."""
        with self.get_connection() as conn:
            rows = conn.execute("SELECT * FROM stories ORDER BY id").fetchall()
        return [StoredStory.from_row(row) for row in rows]

    def count(self) -> int:
        """Return the number of stored stories."""
        with self.get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM stories").fetchone()[0]
