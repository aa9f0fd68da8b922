"""Schema migrations for the link cache database.

Migrations are forward-only and applied in order. The applied version is
kept in SQLite's ``PRAGMA user_version``. Each migration runs in its own
transaction together with the version bump, and every statement uses
IF NOT EXISTS so a migration that is re-applied does no harm.
"""
import sqlite3
from dataclasses import dataclass
from typing import List

from linkcache.errors import MigrationError, StoreError


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    sql: str


MIGRATIONS: List[Migration] = [
    Migration(
        version=1,
        name="create_links",
        sql="""
            CREATE TABLE IF NOT EXISTS links (
                id TEXT PRIMARY KEY,
                url TEXT NOT NULL,
                title TEXT NOT NULL,
                subtitle TEXT,
                source TEXT,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_links_timestamp ON links(timestamp DESC);
        """,
    ),
    Migration(
        version=2,
        name="create_links_fts",
        sql="""
            CREATE VIRTUAL TABLE IF NOT EXISTS links_fts USING fts5 (
                title, subtitle,
                content='links',
                content_rowid='rowid',
                tokenize='trigram'
            );

            CREATE TRIGGER IF NOT EXISTS links_fts_insert AFTER INSERT ON links
            BEGIN
                INSERT INTO links_fts (rowid, title, subtitle)
                VALUES (new.rowid, new.title, new.subtitle);
            END;

            CREATE TRIGGER IF NOT EXISTS links_fts_delete AFTER DELETE ON links
            BEGIN
                INSERT INTO links_fts (links_fts, rowid, title, subtitle)
                VALUES ('delete', old.rowid, old.title, old.subtitle);
            END;

            CREATE TRIGGER IF NOT EXISTS links_fts_update AFTER UPDATE ON links
            BEGIN
                INSERT INTO links_fts (links_fts, rowid, title, subtitle)
                VALUES ('delete', old.rowid, old.title, old.subtitle);
                INSERT INTO links_fts (rowid, title, subtitle)
                VALUES (new.rowid, new.title, new.subtitle);
            END;

            INSERT INTO links_fts (links_fts) VALUES ('rebuild');
        """,
    ),
]

SCHEMA_VERSION = MIGRATIONS[-1].version


def get_schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    return int(row[0]) if row else 0


def apply_migrations(conn: sqlite3.Connection, migrations: List[Migration] = MIGRATIONS) -> int:
    """Bring a database up to the latest schema version.

    Args:
        conn: Open connection with no transaction in progress
        migrations: Ordered migrations to apply

    Returns:
        Schema version after migrating

    Raises:
        StoreError: If the database cannot be read (locked, corrupt, not a database)
        MigrationError: If the database is newer than this code supports
            or a migration fails. A failed migration is rolled back.
    """
    latest = migrations[-1].version if migrations else 0

    try:
        current = get_schema_version(conn)
    except sqlite3.Error as e:
        raise StoreError(f"Could not read schema version: {e}") from e

    if current > latest:
        raise MigrationError(
            f"Cache schema version {current} is newer than supported version {latest}"
        )

    for migration in migrations:
        if migration.version <= current:
            continue

        script = f"BEGIN;\n{migration.sql}\nPRAGMA user_version = {migration.version};\nCOMMIT;"
        try:
            conn.executescript(script)
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise MigrationError(
                f"Migration {migration.version} ({migration.name}) failed: {e}"
            ) from e

        current = migration.version

    return current
