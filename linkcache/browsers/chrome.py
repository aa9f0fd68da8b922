"""Chrome browser adapter: Bookmarks JSON and History database."""
import json
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from linkcache.errors import SourceError
from linkcache.link import EPOCH, Link
from linkcache.replica import create_replica
from linkcache.sidebar import SEPARATOR


ROOT_NAMES = ["bookmark_bar", "other", "synced"]
HISTORY_REPLICA_NAME = "History.linkcache"

# Chrome timestamps count microseconds from 1601-01-01 UTC
WEBKIT_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def webkit_to_datetime(value: Any) -> Optional[datetime]:
    """Convert a Chrome (WebKit) timestamp to a UTC datetime.

    Args:
        value: Microseconds since 1601, as int or numeric string

    Returns:
        datetime, or None if the value is missing or zero
    """
    try:
        micros = int(value)
    except (TypeError, ValueError):
        return None
    if micros <= 0:
        return None
    return WEBKIT_EPOCH + timedelta(microseconds=micros)


def load_bookmarks_file(bookmarks_path: Path) -> Dict[str, Any]:
    """Load Chrome bookmarks JSON file.

    Args:
        bookmarks_path: Path to the Bookmarks file

    Returns:
        Parsed JSON bookmarks data

    Raises:
        SourceError: If the file doesn't exist or is malformed
    """
    if not bookmarks_path.exists():
        raise SourceError(f"Bookmarks file not found at {bookmarks_path}")

    try:
        with open(bookmarks_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SourceError(f"Could not read bookmarks at {bookmarks_path}: {e}") from e


def extract_bookmarks(node: Dict[str, Any], links: List[Link], path: List[str]) -> None:
    """Recursively extract bookmarks from Chrome bookmarks structure.

    Args:
        node: Current node in the bookmarks tree
        links: List to accumulate links
        path: Names of the folders above this node
    """
    if node.get("type") == "url":
        url = node.get("url", "")
        if not url:
            return
        link = Link(
            id=f"chrome-{node.get('id') or url}",
            url=url,
            title=node.get("name", ""),
            subtitle=SEPARATOR.join(path) or None,
            source="chrome",
            timestamp=webkit_to_datetime(node.get("date_added")) or EPOCH,
        )
        links.append(link)
    elif node.get("type") == "folder":
        # This is a folder, recurse into children
        folder_path = path + [node["name"]] if node.get("name") else path
        for child in node.get("children", []):
            extract_bookmarks(child, links, folder_path)


class ChromeBrowser:
    """Reads bookmarks and history from a Chrome profile directory."""

    name = "chrome"

    def __init__(self, profile_dir: Path, replica_dir: Optional[Path] = None):
        """Initialize the adapter.

        Args:
            profile_dir: Chrome profile directory (e.g. .../Google/Chrome/Default)
            replica_dir: Where to copy the locked History database.
                Defaults to the profile directory.
        """
        self.profile_dir = Path(profile_dir)
        self.replica_dir = Path(replica_dir) if replica_dir else self.profile_dir

    @property
    def bookmarks_path(self) -> Path:
        return self.profile_dir / "Bookmarks"

    @property
    def history_path(self) -> Path:
        return self.profile_dir / "History"

    @property
    def history_replica_path(self) -> Path:
        return self.replica_dir / HISTORY_REPLICA_NAME

    def bookmark_links(self) -> List[Link]:
        """Read all bookmarks from the Bookmarks file.

        Subtitles are the folder path, e.g. "Bookmarks bar / Work".
        """
        bookmarks_data = load_bookmarks_file(self.bookmarks_path)

        links: List[Link] = []

        # Chrome stores bookmarks in roots: bookmark_bar, other, synced
        roots = bookmarks_data.get("roots", {})

        for root_name in ROOT_NAMES:
            if root_name in roots:
                extract_bookmarks(roots[root_name], links, [])

        return links

    def history_links(self) -> List[Link]:
        """Read visited pages from a fresh copy of the History database."""
        create_replica(self.history_path, self.history_replica_path)

        uri = self.history_replica_path.resolve().as_uri() + "?mode=ro"
        try:
            connection = sqlite3.connect(uri, uri=True)
            try:
                rows = connection.execute(
                    """
                    SELECT id, url, COALESCE(title, '') AS title, last_visit_time
                    FROM urls
                    ORDER BY last_visit_time DESC
                    """
                ).fetchall()
            finally:
                connection.close()
        except sqlite3.Error as e:
            raise SourceError(f"Could not read Chrome history: {e}") from e

        links = []
        for row_id, url, title, last_visit_time in rows:
            link = Link(
                id=f"chrome-history-{row_id}",
                url=url,
                title=title,
                source=self.name,
                timestamp=webkit_to_datetime(last_visit_time) or EPOCH,
            )
            links.append(link)

        return links

    def links(self) -> List[Link]:
        links = self.bookmark_links()
        if self.history_path.exists():
            links.extend(self.history_links())
        return links
