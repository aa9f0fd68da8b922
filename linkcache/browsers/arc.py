"""Arc browser adapter: pinned sidebar bookmarks with folder breadcrumbs."""
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from linkcache.link import EPOCH, Link
from linkcache.sidebar import SidebarDocument, breadcrumb, build_item_map


SIDEBAR_FILENAME = "StorableSidebar.json"

# Arc stores createdAt as seconds since the Cocoa reference date
COCOA_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)


def cocoa_to_datetime(seconds: Optional[float]) -> datetime:
    """Convert an Arc createdAt value, or return EPOCH when it is missing."""
    if not seconds:
        return EPOCH
    return COCOA_EPOCH + timedelta(seconds=seconds)


class ArcBrowser:
    """Reads the Arc sidebar from a profile directory."""

    name = "arc"

    def __init__(self, profile_dir: Path):
        self.profile_dir = Path(profile_dir)

    @property
    def sidebar_path(self) -> Path:
        return self.profile_dir / SIDEBAR_FILENAME

    def load_sidebar(self) -> SidebarDocument:
        return SidebarDocument.load(self.sidebar_path)

    def sidebar_links(self) -> List[Link]:
        """Build a Link for each bookmark pinned in the sidebar.

        The subtitle is the bookmark's folder path, e.g. "Work / Areas / Alfred".
        Bookmarks without a URL are skipped.

        Raises:
            SourceError: If StorableSidebar.json is missing or malformed
        """
        document = self.load_sidebar()
        item_map = build_item_map(document)

        links = []
        for bookmark in document.bookmarks():
            if not bookmark.url:
                continue
            links.append(Link(
                id=f"arc-{bookmark.url}",
                url=bookmark.url,
                title=bookmark.effective_title,
                subtitle=breadcrumb(item_map, bookmark),
                source=self.name,
                timestamp=cocoa_to_datetime(bookmark.created_at),
            ))

        return links

    def links(self) -> List[Link]:
        return self.sidebar_links()
