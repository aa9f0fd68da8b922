"""Shared fixtures for tests."""
import json
import sqlite3
from datetime import datetime, timezone

import pytest

from linkcache.cache import LinkCache
from linkcache.config import Config, reset_config
from linkcache.link import Link


SAMPLE_BOOKMARKS = {
    "checksum": "test",
    "roots": {
        "bookmark_bar": {
            "children": [
                {
                    "id": "1",
                    "name": "Python Docs",
                    "type": "url",
                    "url": "https://docs.python.org",
                    "date_added": "13300000000000000"
                },
                {
                    "id": "2",
                    "name": "Work",
                    "type": "folder",
                    "children": [
                        {
                            "id": "3",
                            "name": "Jira Board",
                            "type": "url",
                            "url": "https://jira.example.com/board"
                        },
                        {
                            "id": "4",
                            "name": "Confluence",
                            "type": "url",
                            "url": "https://confluence.example.com"
                        }
                    ]
                },
                {
                    "id": "5",
                    "name": "Tutorials",
                    "type": "folder",
                    "children": [
                        {
                            "id": "6",
                            "name": "SQLite Guide",
                            "type": "url",
                            "url": "https://sqlite.org/guide"
                        }
                    ]
                }
            ],
            "id": "0",
            "name": "Bookmarks Bar",
            "type": "folder"
        },
        "other": {
            "children": [
                {
                    "id": "7",
                    "name": "Stack Overflow",
                    "type": "url",
                    "url": "https://stackoverflow.com"
                }
            ],
            "id": "100",
            "name": "Other Bookmarks",
            "type": "folder"
        },
        "synced": {
            "children": [],
            "id": "200",
            "name": "Mobile Bookmarks",
            "type": "folder"
        }
    },
    "version": 1
}


def _folder(id, title, parent_id=None, children=(), data=None):
    return {
        "id": id,
        "title": title,
        "parentID": parent_id,
        "childrenIds": list(children),
        "data": data if data is not None else {"list": {}},
    }


def _tab(id, title, parent_id, url, saved_title=None, created_at=None):
    item = {
        "id": id,
        "title": title,
        "parentID": parent_id,
        "childrenIds": [],
        "data": {"tab": {"savedTitle": saved_title, "savedURL": url}},
    }
    if created_at is not None:
        item["createdAt"] = created_at
    return item


SAMPLE_SPACES = [
    "space-work",
    {"id": "space-work", "title": "Work"},
    "space-home",
    {"id": "space-home", "title": "Home"},
]

SAMPLE_ITEMS = [
    "pinned-work",
    # Arc's per-space container: untitled, linked to its space by pointer only
    _folder(
        "pinned-work", None, children=["areas", "bm-custom"],
        data={"itemContainer": {"containerType": {"spaceItems": {"_0": "space-work"}}}},
    ),
    "areas",
    _folder("areas", "Areas", "pinned-work", ["alfred", "bm-no-url"]),
    _folder("alfred", "Alfred", "areas", ["bm-alfred"]),
    _tab("bm-alfred", None, "alfred", "https://alfred.app/workflows", saved_title="Alfred Workflows", created_at=700000000.0),
    _tab("bm-custom", "Team Wiki", "pinned-work", "https://wiki.example.com", saved_title="Wiki Home"),
    _tab("bm-no-url", "Empty Tab", "areas", None),
    # Malformed: id is not a string
    {"id": 42, "data": {"tab": {"savedURL": "https://broken.example.com"}}},
    {"id": "mystery", "data": {"somethingElse": {}}},
    # Parent cycle
    _folder("loop-a", "Loop A", "loop-b", ["bm-loop"]),
    _folder("loop-b", "Loop B", "loop-a", ["loop-a"]),
    _tab("bm-loop", "Loopy", "loop-a", "https://loop.example.com"),
    # Parent that does not exist
    _tab("bm-orphan", "Orphan", "missing-folder", "https://orphan.example.com"),
]


@pytest.fixture
def sample_sidebar():
    """A decoded StorableSidebar.json document."""
    return {
        "sidebar": {
            "containers": [
                {"global": {}},
                {"spaces": SAMPLE_SPACES, "items": SAMPLE_ITEMS},
            ]
        },
        "sidebarSyncState": {"version": 7},
    }


@pytest.fixture
def arc_profile(tmp_path, sample_sidebar):
    """An Arc data directory with a StorableSidebar.json."""
    profile = tmp_path / "Arc"
    profile.mkdir()
    (profile / "StorableSidebar.json").write_text(json.dumps(sample_sidebar))
    return profile


@pytest.fixture
def sample_bookmarks_path(tmp_path):
    """Create a temporary bookmarks file with sample data."""
    bookmarks_file = tmp_path / "Bookmarks"
    bookmarks_file.write_text(json.dumps(SAMPLE_BOOKMARKS, indent=3))
    return bookmarks_file


@pytest.fixture
def chrome_profile(tmp_path):
    """A Chrome profile directory with Bookmarks and a History database."""
    profile = tmp_path / "Chrome" / "Default"
    profile.mkdir(parents=True)
    (profile / "Bookmarks").write_text(json.dumps(SAMPLE_BOOKMARKS))

    connection = sqlite3.connect(profile / "History")
    connection.executescript(
        """
        CREATE TABLE urls (id INTEGER PRIMARY KEY, url TEXT, title TEXT, last_visit_time INTEGER);
        INSERT INTO urls VALUES (1, 'https://github.com/', 'GitHub', 13350000000000000);
        INSERT INTO urls VALUES (2, 'https://news.ycombinator.com/', NULL, 0);
        """
    )
    connection.commit()
    connection.close()
    return profile


@pytest.fixture
def firefox_profile(tmp_path):
    """A Firefox profile directory with a minimal places.sqlite."""
    profile = tmp_path / "firefox" / "abcd.default-release"
    profile.mkdir(parents=True)

    connection = sqlite3.connect(profile / "places.sqlite")
    connection.executescript(
        """
        CREATE TABLE moz_origins (id INTEGER PRIMARY KEY, host TEXT, frecency INTEGER);
        CREATE TABLE moz_places (
            id INTEGER PRIMARY KEY, url TEXT, title TEXT, guid TEXT,
            frecency INTEGER, last_visit_date INTEGER, origin_id INTEGER
        );
        CREATE TABLE moz_bookmarks (
            id INTEGER PRIMARY KEY, type INTEGER, fk INTEGER, parent INTEGER,
            title TEXT, guid TEXT, dateAdded INTEGER, lastModified INTEGER
        );

        INSERT INTO moz_origins VALUES (1, 'rarely.example.com', 10);
        INSERT INTO moz_origins VALUES (2, 'news.ycombinator.com', 1500);

        INSERT INTO moz_places VALUES (1, 'https://doc.rust-lang.org/book/', 'Rust Book page', 'pl-rust', 50, 1700000000000000, 1);
        INSERT INTO moz_places VALUES (2, 'https://developer.mozilla.org/', 'MDN Web Docs', 'pl-mdn', 2000, 1700000100000000, 1);
        INSERT INTO moz_places VALUES (3, 'https://www.google.com/search?q=rust', 'rust - Google Search', 'pl-google', 5000, 1700000200000000, 1);
        INSERT INTO moz_places VALUES (4, 'https://news.ycombinator.com/', 'Hacker News', 'pl-hn', 200, 1700000300000000, 2);
        INSERT INTO moz_places VALUES (5, 'https://rarely.example.com/', 'Rarely', 'pl-rare', 10, 1600000000000000, 1);

        INSERT INTO moz_bookmarks VALUES (1, 2, NULL, 0, '', 'root________', 0, 0);
        INSERT INTO moz_bookmarks VALUES (2, 2, NULL, 1, 'menu', 'menu________', 0, 0);
        INSERT INTO moz_bookmarks VALUES (3, 2, NULL, 1, 'toolbar', 'toolbar_____', 0, 0);
        INSERT INTO moz_bookmarks VALUES (5, 2, NULL, 1, 'unfiled', 'unfiled_____', 0, 0);
        INSERT INTO moz_bookmarks VALUES (10, 2, NULL, 3, 'Dev', 'folder-dev', 0, 0);
        INSERT INTO moz_bookmarks VALUES (11, 2, NULL, 10, 'Rust', 'folder-rust', 0, 0);
        INSERT INTO moz_bookmarks VALUES (20, 1, 1, 11, 'The Rust Book', 'bm-rust', 0, 1700000000000000);
        INSERT INTO moz_bookmarks VALUES (21, 1, 2, 3, '', 'bm-mdn', 1690000000000000, 0);
        """
    )
    connection.commit()
    connection.close()
    return profile


@pytest.fixture
def profiles_ini_dir(tmp_path):
    """A Firefox config directory whose profiles.ini names a default profile."""
    config_dir = tmp_path / "firefox-config"
    config_dir.mkdir()
    (config_dir / "profiles.ini").write_text(
        "[Profile1]\n"
        "Name=old\n"
        "IsRelative=1\n"
        "Path=Profiles/old.default\n"
        "Default=1\n"
        "\n"
        "[Profile0]\n"
        "Name=default-release\n"
        "IsRelative=1\n"
        "Path=Profiles/abcd.default-release\n"
        "\n"
        "[Install4F96D1932A9F858E]\n"
        "Default=Profiles/abcd.default-release\n"
        "Locked=1\n"
    )
    return config_dir


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the real environment and home directory."""
    for name in [
        "LINKCACHE_DATA_DIR", "LINKCACHE_BROWSE_LIMIT", "LINKCACHE_SEARCH_LIMIT",
        "LINKCACHE_MIN_SCORE", "LINKCACHE_CANDIDATE_LIMIT", "LINKCACHE_BUSY_TIMEOUT",
        "LINKCACHE_REFRESH_INTERVAL", "LINKCACHE_ARC_PROFILE",
        "LINKCACHE_CHROME_PROFILE", "LINKCACHE_FIREFOX_PROFILE",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LINKCACHE_DATA_DIR", str(tmp_path / "data"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir):
    """An initialized cache in a temporary directory."""
    link_cache = LinkCache.open(cache_dir, config=Config())
    yield link_cache
    link_cache.close()


def _make_link(url, title, subtitle=None, id="", seconds=1_700_000_000, source="test"):
    """Build a Link with a fixed timestamp."""
    return Link(
        url=url,
        title=title,
        id=id,
        subtitle=subtitle,
        source=source,
        timestamp=datetime.fromtimestamp(seconds, tz=timezone.utc),
    )


@pytest.fixture
def make_link():
    """Factory for Links with a fixed timestamp."""
    return _make_link


@pytest.fixture
def sample_links():
    return [
        _make_link("https://code.visualstudio.com", "Visual Studio Code", "Tools / Editors", seconds=1_700_000_500),
        _make_link("https://www.sublimetext.com", "Sublime Text", "Tools / Editors", seconds=1_700_000_400),
        _make_link("https://docs.python.org", "Python Docs", "Reference", seconds=1_700_000_300),
        _make_link("https://alfred.app/workflows", "Alfred Workflows", "Work / Areas / Alfred", seconds=1_700_000_200),
        _make_link("https://sqlite.org/fts5.html", "SQLite FTS5 Extension", None, seconds=1_700_000_100),
    ]
