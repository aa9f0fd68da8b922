"""SQLite link cache with fuzzy full-text search.

Links live in a ``links`` table keyed by Link.key. An external-content
FTS5 table with the trigram tokenizer mirrors titles and subtitles; it
is maintained by triggers, so a link and its index entry always change
in the same transaction.

Writes are buffered in a transaction until commit(). Closing the cache
without committing discards them.
"""
import sqlite3
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from linkcache.config import Config
from linkcache.errors import StoreError
from linkcache.link import Link
from linkcache.migrations import apply_migrations, get_schema_version
from linkcache.search import FuzzyScorer, Scorer


DB_FILENAME = "linkcache.sqlite"
TRIGRAM = 3


class LinkCache:
    """Persistent, searchable store of Links."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        config: Optional[Config] = None,
        scorer: Optional[Scorer] = None,
    ):
        """Initialize the link cache.

        Args:
            data_dir: Directory for linkcache.sqlite. Defaults to the config's data dir
            config: Settings; defaults to Config() (not read from the environment)
            scorer: Relevance scorer for non-empty queries
        """
        self.config = config or Config()
        self.data_dir = Path(data_dir) if data_dir else self.config.resolved_data_dir
        self.db_path = self.data_dir / DB_FILENAME
        self.scorer: Scorer = scorer or FuzzyScorer()
        self._connection: Optional[sqlite3.Connection] = None

    @classmethod
    def open(
        cls,
        data_dir: Optional[Path] = None,
        config: Optional[Config] = None,
        scorer: Optional[Scorer] = None,
    ) -> "LinkCache":
        """Create and initialize a cache in one step."""
        cache = cls(data_dir, config, scorer)
        cache.initialize()
        return cache

    def initialize(self) -> None:
        """Open the database and migrate it to the current schema.

        Raises:
            StoreError: If the database cannot be created, opened or read
            MigrationError: If the schema cannot be brought up to date.
                The cache stays closed.
        """
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.db_path, timeout=self.config.busy_timeout)
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Could not open link cache at {self.db_path}: {e}") from e

        connection.row_factory = sqlite3.Row

        try:
            # Persists in the file; readers see the last commit while a refresh writes
            connection.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            connection.close()
            raise StoreError(f"Could not open link cache at {self.db_path}: {e}") from e

        try:
            apply_migrations(connection)
        except StoreError:
            connection.close()
            raise

        self._connection = connection

    def close(self) -> None:
        """Close the database connection, discarding uncommitted writes."""
        if self._connection:
            if self._connection.in_transaction:
                self._connection.rollback()
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "LinkCache":
        if self._connection is None:
            self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if not self._connection:
            raise StoreError("Cache not initialized. Call initialize() first.")
        return self._connection

    @property
    def schema_version(self) -> int:
        return get_schema_version(self.conn)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, link: Link) -> None:
        """Insert a link, replacing any stored link with the same key.

        The old row is deleted and the new one inserted, so no field of
        the previous version survives. Call commit() to persist; batch
        updates should call add() many times and commit() once.

        Args:
            link: Link to store. Its score is ignored
        """
        try:
            self.conn.execute("DELETE FROM links WHERE id = ?", (link.key,))
            self.conn.execute(
                """
                INSERT INTO links (id, url, title, subtitle, source, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    link.key,
                    link.url,
                    link.title or "",
                    link.subtitle,
                    link.source,
                    _format_timestamp(link.timestamp),
                ),
            )
        except sqlite3.Error as e:
            raise StoreError(f"Could not add link {link.key}: {e}") from e

    def add_all(self, links: Iterable[Link]) -> int:
        """Add many links.

        Returns:
            Number of links added
        """
        count = 0
        for link in links:
            self.add(link)
            count += 1
        return count

    def remove(self, link: Link) -> None:
        """Remove a link by key. Removing an unknown link is a no-op.

        A link built without an explicit id is keyed by its URL, and
        removes every stored link with that URL. A link with an explicit
        id removes only that id, even when the id equals the URL.
        """
        try:
            if link.url_keyed:
                self.conn.execute("DELETE FROM links WHERE id = ? OR url = ?", (link.key, link.url))
            else:
                self.conn.execute("DELETE FROM links WHERE id = ?", (link.key,))
        except sqlite3.Error as e:
            raise StoreError(f"Could not remove link {link.key}: {e}") from e

    def commit(self) -> None:
        """Persist buffered add/remove operations."""
        try:
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not commit link cache: {e}") from e

    def rollback(self) -> None:
        """Discard buffered add/remove operations."""
        try:
            self.conn.rollback()
        except sqlite3.Error as e:
            raise StoreError(f"Could not roll back link cache: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Link]:
        """Get a link by key.

        Returns:
            Link or None if not found
        """
        row = self._fetchone("SELECT * FROM links WHERE id = ?", (key,))
        return self._row_to_link(row) if row else None

    def count(self) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM links", ())
        return int(row[0])

    def keys(self, source: Optional[str] = None) -> Set[str]:
        """Get the keys of stored links, optionally only those from one source."""
        if source is None:
            rows = self._fetchall("SELECT id FROM links", ())
        else:
            rows = self._fetchall("SELECT id FROM links WHERE source = ?", (source,))
        return {row["id"] for row in rows}

    def latest(self, n: int) -> List[Link]:
        """Get the n most recent links, newest first."""
        rows = self._fetchall(
            "SELECT * FROM links ORDER BY timestamp DESC, id LIMIT ?",
            (n,),
        )
        return [self._row_to_link(row) for row in rows]

    def search(self, query: str, limit: Optional[int] = None) -> List[Link]:
        """Search the cache.

        An empty query returns the most recent links (browse mode,
        without scores). Otherwise links whose title or subtitle fuzzily
        match the query are returned best first, each with its score.
        Queries never fail on syntax; unusable input just matches nothing.

        Args:
            query: Free-text query
            limit: Maximum results (defaults to the configured search limit;
                browse mode never exceeds the browse limit)

        Returns:
            List of matching links
        """
        search_config = self.config.search

        if not query or not query.strip():
            browse_limit = search_config.browse_limit
            return self.latest(min(limit, browse_limit) if limit else browse_limit)

        terms = self.scorer.tokenize(query)
        if not terms:
            return []

        results = []
        for link in self._candidates(terms):
            score = self.scorer.score(terms, link)
            if score >= search_config.min_score:
                results.append(replace(link, score=score))

        results.sort(key=lambda l: (-l.score, -l.timestamp.timestamp(), l.id))

        return results[: limit or search_config.search_limit]

    def _candidates(self, terms: List[str]) -> List[Link]:
        """Find links sharing at least a trigram (or a short term) with the query."""
        rows: Dict[str, sqlite3.Row] = {}
        candidate_limit = self.config.search.candidate_limit

        trigrams = sorted({
            term[i:i + TRIGRAM]
            for term in terms
            if len(term) >= TRIGRAM
            for i in range(len(term) - TRIGRAM + 1)
        })
        short_terms = [term for term in terms if len(term) < TRIGRAM]

        if trigrams:
            match = " OR ".join('"' + t.replace('"', '""') + '"' for t in trigrams)
            try:
                fts_rows = self.conn.execute(
                    """
                    SELECT links.* FROM links_fts
                    JOIN links ON links.rowid = links_fts.rowid
                    WHERE links_fts MATCH ?
                    ORDER BY links_fts.rank
                    LIMIT ?
                    """,
                    (match, candidate_limit),
                ).fetchall()
            except sqlite3.OperationalError:
                # Unusable MATCH expression; fall back to substring probes
                short_terms = list(terms)
            else:
                for row in fts_rows:
                    rows[row["id"]] = row

        for term in short_terms:
            pattern = "%" + _escape_like(term) + "%"
            like_rows = self._fetchall(
                """
                SELECT * FROM links
                WHERE title LIKE ? ESCAPE '\\' OR subtitle LIKE ? ESCAPE '\\'
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (pattern, pattern, candidate_limit),
            )
            for row in like_rows:
                rows.setdefault(row["id"], row)

        return [self._row_to_link(row) for row in rows.values()]

    def _fetchone(self, sql: str, params: tuple) -> Optional[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Link cache query failed: {e}") from e

    def _fetchall(self, sql: str, params: tuple) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Link cache query failed: {e}") from e

    def _row_to_link(self, row: sqlite3.Row) -> Link:
        """Convert a database row to a Link."""
        return Link(
            id=row["id"],
            url=row["url"],
            title=row["title"],
            subtitle=row["subtitle"],
            source=row["source"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )


def _format_timestamp(value: datetime) -> str:
    # Fixed-width so the TEXT column sorts chronologically
    return value.isoformat(timespec="microseconds")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
