"""Browser adapters that turn bookmark and history snapshots into Links."""
from typing import List, Protocol

from linkcache.link import Link


class LinkSource(Protocol):
    """Protocol for browser adapters."""

    name: str

    def links(self) -> List[Link]:
        """Read every link this source provides.

        Raises:
            SourceError: If the browser's data cannot be read
        """
        ...
