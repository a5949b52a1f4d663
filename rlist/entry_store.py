"""
Entry store using SQLite.

The entry store is the source of truth for:
- Entry identity (unique identifier)
- URL, title, author
- Topics
- Date added

Every mutating call commits before it returns; a call that fails rolls
back and leaves the file as it was. SQLite's journal keeps the file
consistent if another process writes to it at the same time, although
results are only well defined for one process at a time.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .errors import DuplicateIdentifier, InvalidEntry, NotFound, StorageIoFailure
from .types import Entry, EntryPatch, normalize_topics, validate_identifier

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class EntryStore:
    """
    SQLite-backed store for reading-list entries.

    Open one per invocation and close it when done; it is a context
    manager so ``with EntryStore(path) as store:`` releases the file on
    every exit path.
    """

    def __init__(self, store_path: Path):
        """
        Args:
            store_path: Path to SQLite database file
        """
        self._db_path = Path(store_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def path(self) -> Path:
        return self._db_path

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.row_factory = sqlite3.Row

            version = self._conn.execute("PRAGMA user_version").fetchone()[0]
            if version > SCHEMA_VERSION:
                raise StorageIoFailure(
                    f"Store {self._db_path} has schema version {version}, "
                    f"newer than supported ({SCHEMA_VERSION})"
                )

            with self._conn:
                self._conn.execute("""
                    CREATE TABLE IF NOT EXISTS entries (
                        identifier TEXT PRIMARY KEY NOT NULL,
                        url TEXT NOT NULL,
                        title TEXT NOT NULL,
                        author TEXT,
                        topics_json TEXT NOT NULL DEFAULT '[]',
                        date_added TEXT NOT NULL
                    )
                """)

                # Index for date range queries
                self._conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_entries_date_added
                    ON entries(date_added)
                """)
                self._conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        except (sqlite3.Error, OSError) as e:
            self.close()
            raise StorageIoFailure(f"Cannot open reading list at {self._db_path}: {e}") from e
        except StorageIoFailure:
            self.close()
            raise
        logger.debug("Opened store %s", self._db_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of writes as one commit; roll back on any error."""
        conn = self._connection()
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise StorageIoFailure(f"Reading list write failed: {e}") from e

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageIoFailure(f"Store {self._db_path} is closed")
        return self._conn

    def _read(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._connection().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageIoFailure(f"Reading list read failed: {e}") from e

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> Entry:
        try:
            return Entry(
                identifier=row["identifier"],
                url=row["url"],
                title=row["title"],
                author=row["author"],
                topics=frozenset(json.loads(row["topics_json"])),
                date_added=date.fromisoformat(row["date_added"]),
            )
        except (ValueError, TypeError, InvalidEntry) as e:
            raise StorageIoFailure(
                f"Corrupt entry {row['identifier']!r} in reading list: {e}"
            ) from e

    @staticmethod
    def _entry_params(entry: Entry) -> tuple:
        return (
            entry.identifier,
            entry.url,
            entry.title,
            entry.author,
            json.dumps(sorted(entry.topics), ensure_ascii=False),
            entry.date_added.isoformat(),
        )

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(self, entry: Entry) -> Entry:
        """
        Insert a new entry.

        Raises:
            DuplicateIdentifier: an entry with the same identifier exists
        """
        try:
            with self._transaction() as conn:
                conn.execute("""
                    INSERT INTO entries
                    (identifier, url, title, author, topics_json, date_added)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, self._entry_params(entry))
        except sqlite3.IntegrityError as e:
            raise DuplicateIdentifier(entry.identifier) from e
        logger.info("Added %s (%s)", entry.identifier, entry.url)
        return entry

    def update(self, identifier: str, patch: EntryPatch) -> Entry:
        """
        Apply a partial change to an existing entry.

        Identifier and date_added are never touched; use rename() for the
        former.

        Returns:
            The entry as stored after the change
        """
        current = self.get(identifier)
        updated = patch.apply(current)
        if updated == current:
            return current

        with self._transaction() as conn:
            cursor = conn.execute("""
                UPDATE entries
                SET url = ?, title = ?, author = ?, topics_json = ?
                WHERE identifier = ?
            """, (
                updated.url,
                updated.title,
                updated.author,
                json.dumps(sorted(updated.topics), ensure_ascii=False),
                identifier,
            ))
            if cursor.rowcount == 0:
                raise NotFound(identifier)
        logger.info("Edited %s", identifier)
        return updated

    def rename(self, old_identifier: str, new_identifier: str) -> Entry:
        """
        Move an entry to a new identifier, keeping every other field.

        Renaming an entry to its own identifier is a no-op.
        """
        current = self.get(old_identifier)
        if old_identifier == new_identifier:
            return current
        validate_identifier(new_identifier)

        try:
            with self._transaction() as conn:
                conn.execute("""
                    UPDATE entries
                    SET identifier = ?
                    WHERE identifier = ?
                """, (new_identifier, old_identifier))
        except sqlite3.IntegrityError as e:
            raise DuplicateIdentifier(new_identifier) from e
        logger.info("Renamed %s to %s", old_identifier, new_identifier)
        return current.with_identifier(new_identifier)

    def delete(self, identifier: str) -> Entry:
        """
        Delete an entry.

        Returns:
            The entry that was removed
        """
        entry = self.get(identifier)
        with self._transaction() as conn:
            cursor = conn.execute("""
                DELETE FROM entries
                WHERE identifier = ?
            """, (identifier,))
            if cursor.rowcount == 0:
                raise NotFound(identifier)
        logger.info("Deleted %s", identifier)
        return entry

    def delete_by_topics(self, topics: Iterable[str]) -> list[Entry]:
        """
        Delete every entry tagged with at least one of the given topics.

        Returns:
            The removed entries, ordered by identifier (empty is not an error)
        """
        wanted = sorted(normalize_topics(topics))
        if not wanted:
            return []

        placeholders = ",".join("?" * len(wanted))
        matching = f"""
            EXISTS (
                SELECT 1 FROM json_each(entries.topics_json)
                WHERE json_each.value IN ({placeholders})
            )
        """
        with self._transaction() as conn:
            rows = conn.execute(f"""
                SELECT identifier, url, title, author, topics_json, date_added
                FROM entries
                WHERE {matching}
                ORDER BY identifier
            """, tuple(wanted)).fetchall()
            removed = [self._row_to_entry(row) for row in rows]
            conn.execute(f"DELETE FROM entries WHERE {matching}", tuple(wanted))
        logger.info(
            "Deleted %d entries with topics %s: %s",
            len(removed), ", ".join(wanted), ", ".join(e.identifier for e in removed),
        )
        return removed

    def import_batch(self, entries: Iterable[Entry], *, overwrite: bool = False) -> dict:
        """
        Write many entries in a single transaction.

        Args:
            entries: Entries to store
            overwrite: Replace existing entries with the same identifier.
                When False, the first collision aborts the whole batch.

        Returns:
            Dict with stats: {imported, overwritten}
        """
        imported = 0
        overwritten = 0
        try:
            with self._transaction() as conn:
                for entry in entries:
                    params = self._entry_params(entry)
                    if overwrite:
                        exists = conn.execute(
                            "SELECT 1 FROM entries WHERE identifier = ?",
                            (entry.identifier,),
                        ).fetchone() is not None
                        conn.execute("""
                            INSERT OR REPLACE INTO entries
                            (identifier, url, title, author, topics_json, date_added)
                            VALUES (?, ?, ?, ?, ?, ?)
                        """, params)
                        if exists:
                            overwritten += 1
                    else:
                        try:
                            conn.execute("""
                                INSERT INTO entries
                                (identifier, url, title, author, topics_json, date_added)
                                VALUES (?, ?, ?, ?, ?, ?)
                            """, params)
                        except sqlite3.IntegrityError as e:
                            raise DuplicateIdentifier(entry.identifier) from e
                    imported += 1
        except sqlite3.IntegrityError as e:
            raise StorageIoFailure(f"Import failed: {e}") from e
        logger.info("Imported %d entries (%d overwritten)", imported, overwritten)
        return {"imported": imported, "overwritten": overwritten}

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, identifier: str) -> Entry:
        """
        Get an entry by identifier.

        Raises:
            NotFound: no such entry
        """
        rows = self._read("""
            SELECT identifier, url, title, author, topics_json, date_added
            FROM entries
            WHERE identifier = ?
        """, (identifier,))
        if not rows:
            raise NotFound(identifier)
        return self._row_to_entry(rows[0])

    def exists(self, identifier: str) -> bool:
        """Check if an entry exists."""
        rows = self._read("""
            SELECT 1 FROM entries
            WHERE identifier = ?
        """, (identifier,))
        return bool(rows)

    def list_all(self) -> tuple[Entry, ...]:
        """All entries, ordered by identifier."""
        rows = self._read("""
            SELECT identifier, url, title, author, topics_json, date_added
            FROM entries
            ORDER BY identifier
        """)
        return tuple(self._row_to_entry(row) for row in rows)

    def count(self) -> int:
        """Count entries."""
        return self._read("SELECT COUNT(*) FROM entries")[0][0]

    def list_topics(self) -> list[tuple[str, int]]:
        """
        List distinct topics with the number of entries carrying each.

        Returns:
            (topic, count) pairs sorted by topic
        """
        rows = self._read("""
            SELECT json_each.value AS topic, COUNT(*) AS n
            FROM entries, json_each(entries.topics_json)
            GROUP BY json_each.value
            ORDER BY json_each.value
        """)
        return [(row["topic"], row["n"]) for row in rows]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
