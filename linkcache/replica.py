"""Point-in-time copies of browser databases.

A running browser keeps an exclusive lock on its history database, so
adapters read a copy instead.
"""
import os
import shutil
import time
from pathlib import Path

from linkcache.errors import SourceError


def create_replica(source: Path, dest: Path) -> Path:
    """Copy a SQLite database (and its write-ahead log, if any) aside.

    Args:
        source: Database held open by the browser
        dest: Where to put the copy

    Returns:
        Path to the replica

    Raises:
        SourceError: If the source is missing or cannot be copied
    """
    if not source.exists():
        raise SourceError(f"Browser database not found at {source}")

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)

        wal = source.with_name(source.name + "-wal")
        dest_wal = dest.with_name(dest.name + "-wal")
        if wal.exists():
            shutil.copyfile(wal, dest_wal)
        elif dest_wal.exists():
            dest_wal.unlink()

        # copyfile keeps no metadata, but make the copy's age explicit
        now = time.time()
        os.utime(dest, (now, now))
    except OSError as e:
        raise SourceError(f"Could not copy {source} to {dest}: {e}") from e

    return dest


def is_fresh(path: Path, max_age: float) -> bool:
    """Check whether a file exists and was modified less than max_age seconds ago."""
    try:
        return time.time() - path.stat().st_mtime < max_age
    except OSError:
        return False
