"""Firefox browser adapter: bookmarks and history from places.sqlite."""
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from linkcache.errors import SourceError
from linkcache.link import EPOCH, Link
from linkcache.replica import create_replica
from linkcache.sidebar import SEPARATOR


PLACES_REPLICA_NAME = "places.linkcache.sqlite"

# moz_bookmarks ids of the built-in roots: menu, toolbar, unfiled, mobile
ROOT_FOLDER_IDS = (2, 3, 5, 6)

BOOKMARKS_QUERY = f"""
WITH RECURSIVE folder_paths AS (
    SELECT id, title AS folder_path
    FROM moz_bookmarks
    WHERE parent IN ({", ".join(str(i) for i in ROOT_FOLDER_IDS)})
      AND type = 2

    UNION ALL

    SELECT b.id, fp.folder_path || '{SEPARATOR}' || b.title
    FROM moz_bookmarks b
             JOIN folder_paths fp ON b.parent = fp.id
    WHERE b.type = 2
)
SELECT b.guid,
       p.url,
       CAST(COALESCE(NULLIF(b.title, ''), p.title, '') AS TEXT) AS title,
       CAST(COALESCE(fp.folder_path, '') AS TEXT)                AS subtitle,
       COALESCE(NULLIF(b.lastModified, 0), b.dateAdded, 0) / 1000000 AS last_modified
FROM moz_bookmarks b
         JOIN moz_places p ON b.fk = p.id
         LEFT JOIN folder_paths fp ON b.parent = fp.id
WHERE b.type = 1
ORDER BY subtitle, title
"""

HISTORY_QUERY = """
SELECT p.guid,
       p.url,
       CAST(COALESCE(p.title, '') AS TEXT)      AS title,
       COALESCE(p.last_visit_date / 1000000, 0) AS last_visit
FROM moz_places p
         LEFT JOIN moz_origins o ON o.id = p.origin_id
WHERE ((p.frecency >= 500) OR (p.frecency >= 100 AND o.frecency >= 1000))
  AND p.url NOT LIKE 'https://www.google.com/search%'
ORDER BY p.frecency DESC
LIMIT ?
"""


def _from_seconds(seconds: Optional[int]) -> datetime:
    if not seconds:
        return EPOCH
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class FirefoxBrowser:
    """Reads bookmarks and frequently visited pages from a Firefox profile."""

    name = "firefox"

    def __init__(self, profile_dir: Path, replica_dir: Optional[Path] = None, history_limit: int = 5000):
        """Initialize the adapter.

        Args:
            profile_dir: Firefox profile directory containing places.sqlite
            replica_dir: Where to copy the locked database. Defaults to the profile directory.
            history_limit: Maximum history entries to read
        """
        self.profile_dir = Path(profile_dir)
        self.replica_dir = Path(replica_dir) if replica_dir else self.profile_dir
        self.history_limit = history_limit

    @property
    def places_path(self) -> Path:
        return self.profile_dir / "places.sqlite"

    @property
    def places_replica_path(self) -> Path:
        return self.replica_dir / PLACES_REPLICA_NAME

    def create_places_replica(self) -> Path:
        """Copy places.sqlite aside; Firefox holds a lock on the original."""
        return create_replica(self.places_path, self.places_replica_path)

    def _query(self, sql: str, params: tuple = ()) -> list:
        uri = self.places_replica_path.resolve().as_uri() + "?mode=ro"
        try:
            connection = sqlite3.connect(uri, uri=True)
            try:
                return connection.execute(sql, params).fetchall()
            finally:
                connection.close()
        except sqlite3.Error as e:
            raise SourceError(f"Could not read Firefox places database: {e}") from e

    def bookmark_links(self) -> List[Link]:
        """Read bookmarks from the places replica (call create_places_replica first).

        Subtitles are the folder path below the built-in roots, e.g. "Dev / Rust".
        """
        links = []
        for guid, url, title, subtitle, last_modified in self._query(BOOKMARKS_QUERY):
            if not url:
                continue
            links.append(Link(
                id=f"firefox-{guid}",
                url=url,
                title=title,
                subtitle=subtitle or None,
                source=self.name,
                timestamp=_from_seconds(last_modified),
            ))
        return links

    def history_links(self) -> List[Link]:
        """Read frequently visited pages from the places replica."""
        links = []
        for guid, url, title, last_visit in self._query(HISTORY_QUERY, (self.history_limit,)):
            links.append(Link(
                id=f"firefox-{guid}",
                url=url,
                title=title,
                source=self.name,
                timestamp=_from_seconds(last_visit),
            ))
        return links

    def links(self) -> List[Link]:
        self.create_places_replica()
        return self.bookmark_links() + self.history_links()
