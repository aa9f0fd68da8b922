"""
Command line interface for the link cache.

Usage:
    linkcache search vis stdio
    linkcache refresh --source arc
    linkcache serve
"""
import asyncio
import json
from typing import List, Optional

import typer
from typing_extensions import Annotated

from linkcache.cache import LinkCache
from linkcache.config import ProfileLocator, get_config
from linkcache.errors import LinkCacheError
from linkcache.link import Link
from linkcache.refresh import SOURCE_NAMES, build_sources, refresh_all, spawn_refresh


app = typer.Typer(
    name="linkcache",
    help="Fuzzy search over browser bookmarks and history.",
    no_args_is_help=True,
)


def _format_link(link: Link) -> str:
    lines = [link.title or link.url]
    if link.subtitle:
        lines.append(f"  {link.subtitle}")
    lines.append(f"  {link.url}")
    return "\n".join(lines)


@app.command()
def search(
    query: Annotated[Optional[List[str]], typer.Argument(help="Search terms; omit to list recent links")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", min=1, help="Maximum number of results")] = None,
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    background_refresh: Annotated[bool, typer.Option(
        "--refresh/--no-refresh",
        help="Start a background refresh if the cache has not been refreshed recently",
    )] = True,
):
    """Search cached links."""
    config = get_config()
    text = " ".join(query or [])

    try:
        with LinkCache(config=config) as cache:
            results = cache.search(text, limit=limit)
    except LinkCacheError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if background_refresh:
        spawn_refresh(config)

    if output_json:
        typer.echo(json.dumps([link.to_dict() for link in results], indent=2))
        return

    if not results:
        typer.echo("No links found.", err=True)
        return

    for link in results:
        typer.echo(_format_link(link))


@app.command()
def refresh(
    source: Annotated[Optional[List[str]], typer.Option(
        "--source", "-s", help=f"Browser to refresh ({', '.join(SOURCE_NAMES)}); repeatable",
    )] = None,
    prune: Annotated[bool, typer.Option(
        "--prune/--no-prune", help="Remove links a browser no longer has",
    )] = True,
):
    """Re-index browser bookmarks and history into the cache."""
    config = get_config()

    unknown = [name for name in source or [] if name not in SOURCE_NAMES]
    if unknown:
        typer.echo(f"Error: unknown source(s): {', '.join(unknown)}", err=True)
        raise typer.Exit(2)

    sources = build_sources(
        source or None,
        locator=ProfileLocator(config.profiles),
        replica_dir=config.resolved_data_dir,
    )

    try:
        with LinkCache(config=config) as cache:
            counts = refresh_all(cache, sources, prune=prune)
    except LinkCacheError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    for name, count in counts.items():
        typer.echo(f"{name}: {count} links")


@app.command()
def status():
    """Show the cache location and size."""
    try:
        with LinkCache(config=get_config()) as cache:
            typer.echo(f"Cache:   {cache.db_path}")
            typer.echo(f"Links:   {cache.count()}")
            typer.echo(f"Schema:  v{cache.schema_version}")
    except LinkCacheError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def serve():
    """Run the MCP server on stdio."""
    from linkcache.server import main

    asyncio.run(main())


def main():
    app()


if __name__ == "__main__":
    main()
