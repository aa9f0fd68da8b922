"""Re-indexing the cache from browser snapshots.

A full refresh copies and parses every browser's data, which is far too
slow for an interactive search. Front ends call spawn_refresh(), which
starts ``python -m linkcache refresh`` as a detached process; the two
processes only share the SQLite file.
"""
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from linkcache.browsers import LinkSource
from linkcache.browsers.arc import ArcBrowser
from linkcache.browsers.chrome import ChromeBrowser
from linkcache.browsers.firefox import FirefoxBrowser
from linkcache.cache import LinkCache
from linkcache.config import Config, ProfileLocator
from linkcache.errors import SourceError
from linkcache.link import Link
from linkcache.replica import is_fresh


SOURCE_NAMES = ["arc", "chrome", "firefox"]
REFRESH_STAMP = "refresh.stamp"


def build_sources(
    names: Optional[Iterable[str]] = None,
    locator: Optional[ProfileLocator] = None,
    replica_dir: Optional[Path] = None,
) -> List[LinkSource]:
    """Create adapters for the named browsers.

    Args:
        names: Browsers to include (default: all of SOURCE_NAMES)
        locator: Profile directory provider
        replica_dir: Where adapters copy locked databases

    Returns:
        Adapters; Firefox is left out when no profile can be found

    Raises:
        ValueError: If a name is not a known browser
    """
    locator = locator or ProfileLocator()
    sources: List[LinkSource] = []

    for name in names or SOURCE_NAMES:
        if name == "arc":
            sources.append(ArcBrowser(locator.arc_profile()))
        elif name == "chrome":
            sources.append(ChromeBrowser(locator.chrome_profile(), replica_dir=replica_dir))
        elif name == "firefox":
            profile = locator.firefox_profile()
            if profile is None:
                print("[Refresh] No Firefox profile found, skipping", file=sys.stderr)
                continue
            sources.append(FirefoxBrowser(profile, replica_dir=replica_dir))
        else:
            raise ValueError(f"Unknown source: {name}")

    return sources


def refresh_source(cache: LinkCache, source: LinkSource, prune: bool = True) -> int:
    """Load every link from one source into the cache and commit.

    With ``prune``, links previously cached from this source that it no
    longer provides are removed in the same transaction.

    Returns:
        Number of links stored
    """
    links = source.links()

    try:
        fresh_keys = set()
        for link in links:
            cache.add(link)
            fresh_keys.add(link.key)

        if prune:
            for key in cache.keys(source.name) - fresh_keys:
                cache.remove(Link(id=key, url=""))

        cache.commit()
    except Exception:
        cache.rollback()
        raise

    return len(fresh_keys)


def refresh_all(cache: LinkCache, sources: Iterable[LinkSource], prune: bool = True) -> Dict[str, int]:
    """Refresh the cache from several sources.

    A source whose data cannot be read is reported on stderr and skipped;
    cache errors propagate.

    Returns:
        Dict mapping source name to links stored
    """
    counts: Dict[str, int] = {}

    for source in sources:
        try:
            counts[source.name] = refresh_source(cache, source, prune=prune)
        except SourceError as e:
            print(f"[Refresh] Skipping {source.name}: {e}", file=sys.stderr)

    stamp = cache.data_dir / REFRESH_STAMP
    stamp.touch()

    return counts


def spawn_refresh(
    config: Config,
    names: Optional[Iterable[str]] = None,
    force: bool = False,
) -> bool:
    """Start a background refresh unless one ran recently.

    Args:
        config: Settings (data dir and refresh interval)
        names: Browsers to refresh (default: all)
        force: Ignore the refresh interval

    Returns:
        True if a refresh process was started
    """
    data_dir = config.resolved_data_dir
    stamp = data_dir / REFRESH_STAMP

    if not force and is_fresh(stamp, config.refresh_interval):
        return False

    data_dir.mkdir(parents=True, exist_ok=True)
    stamp.touch()

    command = [sys.executable, "-m", "linkcache", "refresh"]
    for name in names or []:
        command += ["--source", name]

    env = dict(os.environ, LINKCACHE_DATA_DIR=str(data_dir))
    kwargs = {"start_new_session": True} if os.name == "posix" else {}

    subprocess.Popen(
        command,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        env=env,
        **kwargs,
    )
    return True
