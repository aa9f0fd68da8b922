"""Main entry point for the linkcache MCP server."""
import asyncio

from linkcache.server import main

if __name__ == "__main__":
    asyncio.run(main())
