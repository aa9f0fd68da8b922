"""Exceptions raised by linkcache.

Library code raises these; only the front ends (CLI, MCP server) decide
whether to print, exit or return an empty result.
"""


class LinkCacheError(Exception):
    """Base class for all linkcache errors."""


class StoreError(LinkCacheError):
    """The cache database could not be read or written."""


class MigrationError(StoreError):
    """The cache schema could not be brought up to date.

    Fatal: a cache that fails migration is never opened.
    """


class SourceError(LinkCacheError):
    """A browser's bookmark or history data could not be read."""
