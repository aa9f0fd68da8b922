"""Fuzzy-searchable cache of browser bookmarks and history."""
from linkcache.cache import LinkCache
from linkcache.errors import LinkCacheError, MigrationError, SourceError, StoreError
from linkcache.link import Link

__all__ = [
    "Link",
    "LinkCache",
    "LinkCacheError",
    "MigrationError",
    "SourceError",
    "StoreError",
]
