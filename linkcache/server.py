"""MCP server exposing the link cache to agents."""
import json
import sys
from typing import Any, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from linkcache.cache import LinkCache
from linkcache.config import get_config
from linkcache.errors import LinkCacheError
from linkcache.refresh import SOURCE_NAMES, spawn_refresh


SERVER_NAME = "linkcache"

# Global state
_link_cache: Optional[LinkCache] = None


def get_link_cache() -> LinkCache:
    """Get or open the global link cache.

    Returns:
        Initialized LinkCache
    """
    global _link_cache

    if _link_cache is None:
        config = get_config()
        _link_cache = LinkCache.open(config=config)

    return _link_cache


def close_link_cache() -> None:
    global _link_cache

    if _link_cache is not None:
        _link_cache.close()
        _link_cache = None


def _text(text: str) -> List[TextContent]:
    return [TextContent(type="text", text=text)]


async def search_links_tool(query: str, limit: Optional[int] = None) -> List[TextContent]:
    """Tool handler for search_links.

    Args:
        query: Search query string; empty lists the most recent links
        limit: Maximum number of results

    Returns:
        List of TextContent with link results as JSON
    """
    try:
        results = get_link_cache().search(query, limit=limit)
    except LinkCacheError as e:
        print(f"Error searching link cache: {e}", file=sys.stderr)
        return _text(f"Error searching link cache: {e}")

    if not results:
        return _text(f"No links found matching query: {query}")

    return _text(json.dumps([link.to_dict() for link in results], indent=2))


async def refresh_links_tool(sources: Optional[List[str]] = None, force: bool = False) -> List[TextContent]:
    """Tool handler for refresh_links.

    Starts a background refresh process and returns immediately.
    """
    unknown = [s for s in sources or [] if s not in SOURCE_NAMES]
    if unknown:
        return _text(f"Error: unknown sources {unknown}. Choose from {SOURCE_NAMES}")

    started = spawn_refresh(get_config(), sources, force=force)
    status = "started" if started else "skipped_recent"
    return _text(json.dumps({"status": status, "sources": sources or SOURCE_NAMES}))


async def cache_status_tool() -> List[TextContent]:
    """Tool handler for cache_status."""
    try:
        cache = get_link_cache()
        status = {
            "db_path": str(cache.db_path),
            "links": cache.count(),
            "schema_version": cache.schema_version,
        }
    except LinkCacheError as e:
        return _text(f"Error reading link cache: {e}")

    return _text(json.dumps(status, indent=2))


def create_server() -> Server:
    """Create and configure the MCP server.

    Returns:
        Configured Server instance
    """
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name="search_links",
                description=(
                    "Fuzzy search bookmarks and history collected from Arc, Chrome and Firefox. "
                    "Tolerates typos, partial words and any word order. An empty query lists "
                    "the most recent links. Returns url, title, subtitle (folder path), source and score."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Search query to find relevant links"
                        },
                        "limit": {
                            "type": "integer",
                            "description": "Maximum number of results",
                            "minimum": 1
                        }
                    },
                    "required": ["query"]
                }
            ),
            Tool(
                name="refresh_links",
                description=(
                    "Re-index browser bookmarks and history in the background. "
                    "Returns immediately; new links become searchable when the refresh finishes."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "sources": {
                            "type": "array",
                            "items": {"type": "string", "enum": SOURCE_NAMES},
                            "description": "Browsers to refresh (default: all)"
                        },
                        "force": {
                            "type": "boolean",
                            "description": "Refresh even if a refresh ran recently"
                        }
                    }
                }
            ),
            Tool(
                name="cache_status",
                description="Show the link cache location, link count and schema version.",
                inputSchema={"type": "object", "properties": {}}
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        arguments = arguments or {}
        if name == "search_links":
            return await search_links_tool(arguments.get("query", ""), arguments.get("limit"))
        elif name == "refresh_links":
            return await refresh_links_tool(arguments.get("sources"), bool(arguments.get("force", False)))
        elif name == "cache_status":
            return await cache_status_tool()
        else:
            raise ValueError(f"Unknown tool: {name}")

    return server


async def main():
    """Main entry point for the MCP server."""
    server = create_server()

    try:
        async with stdio_server() as (read_stream, write_stream):
            initialization_options = server.create_initialization_options()
            await server.run(read_stream, write_stream, initialization_options)
    finally:
        close_link_cache()
