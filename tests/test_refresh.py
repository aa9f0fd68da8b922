"""Tests for re-indexing the cache from browser sources."""
import os
import sys
import time
from unittest.mock import patch

import pytest

from linkcache.browsers.arc import ArcBrowser
from linkcache.browsers.chrome import ChromeBrowser
from linkcache.browsers.firefox import FirefoxBrowser
from linkcache.config import Config, ProfileConfig, ProfileLocator
from linkcache.errors import SourceError
from linkcache.refresh import REFRESH_STAMP, build_sources, refresh_all, refresh_source, spawn_refresh


class FakeSource:
    def __init__(self, name, links=None, error=None):
        self.name = name
        self._links = links or []
        self._error = error

    def links(self):
        if self._error:
            raise self._error
        return list(self._links)


class TestRefreshSource:
    def test_stores_and_commits(self, cache, make_link):
        source = FakeSource("arc", [make_link("https://a.example", "Alpha", source="arc")])
        assert refresh_source(cache, source) == 1

        cache.rollback()
        assert cache.count() == 1

    def test_prunes_links_the_source_dropped(self, cache, make_link):
        refresh_source(cache, FakeSource("arc", [
            make_link("https://a.example", "Alpha", source="arc"),
            make_link("https://b.example", "Beta", source="arc"),
        ]))
        refresh_source(cache, FakeSource("arc", [make_link("https://b.example", "Beta", source="arc")]))

        assert cache.keys("arc") == {"https://b.example"}

    def test_prune_leaves_other_sources(self, cache, make_link):
        refresh_source(cache, FakeSource("chrome", [make_link("https://c.example", "Gamma", source="chrome")]))
        refresh_source(cache, FakeSource("arc", []))

        assert cache.keys("chrome") == {"https://c.example"}

    def test_no_prune(self, cache, make_link):
        refresh_source(cache, FakeSource("arc", [make_link("https://a.example", "Alpha", source="arc")]))
        refresh_source(cache, FakeSource("arc", []), prune=False)

        assert cache.count() == 1


class TestRefreshAll:
    def test_skips_unreadable_sources(self, cache, make_link, capsys):
        counts = refresh_all(cache, [
            FakeSource("arc", error=SourceError("sidebar missing")),
            FakeSource("chrome", [make_link("https://c.example", "Gamma", source="chrome")]),
        ])

        assert counts == {"chrome": 1}
        assert "Skipping arc" in capsys.readouterr().err

    def test_touches_stamp(self, cache):
        refresh_all(cache, [])
        assert (cache.data_dir / REFRESH_STAMP).exists()

    def test_end_to_end_search(self, cache, arc_profile, chrome_profile, tmp_path):
        refresh_all(cache, [ArcBrowser(arc_profile), ChromeBrowser(chrome_profile, replica_dir=tmp_path)])

        results = cache.search("alfred areas")
        assert results[0].url == "https://alfred.app/workflows"
        assert results[0].subtitle == "Work / Areas / Alfred"


class TestBuildSources:
    def test_all_sources(self, arc_profile, chrome_profile, firefox_profile):
        locator = ProfileLocator(ProfileConfig(arc=arc_profile, chrome=chrome_profile, firefox=firefox_profile))
        sources = build_sources(locator=locator)
        assert [type(s) for s in sources] == [ArcBrowser, ChromeBrowser, FirefoxBrowser]

    def test_firefox_skipped_without_profile(self, tmp_path, capsys):
        sources = build_sources(["firefox"], locator=ProfileLocator(home=tmp_path))
        assert sources == []
        assert "No Firefox profile" in capsys.readouterr().err

    def test_unknown_source(self, tmp_path):
        with pytest.raises(ValueError):
            build_sources(["safari"], locator=ProfileLocator(home=tmp_path))


class TestSpawnRefresh:
    @pytest.fixture
    def config(self, tmp_path):
        return Config(data_dir=tmp_path / "data", refresh_interval=600.0)

    def test_starts_detached_process(self, config):
        with patch("linkcache.refresh.subprocess.Popen") as popen:
            assert spawn_refresh(config, ["arc"]) is True

        command = popen.call_args.args[0]
        assert command == [sys.executable, "-m", "linkcache", "refresh", "--source", "arc"]
        assert popen.call_args.kwargs["env"]["LINKCACHE_DATA_DIR"] == str(config.data_dir)
        assert (config.data_dir / REFRESH_STAMP).exists()

    def test_skips_recent_refresh(self, config):
        with patch("linkcache.refresh.subprocess.Popen") as popen:
            spawn_refresh(config)
            assert spawn_refresh(config) is False

        assert popen.call_count == 1

    def test_force(self, config):
        with patch("linkcache.refresh.subprocess.Popen") as popen:
            spawn_refresh(config)
            assert spawn_refresh(config, force=True) is True

        assert popen.call_count == 2

    def test_stale_stamp_refreshes(self, config):
        config.data_dir.mkdir(parents=True)
        stamp = config.data_dir / REFRESH_STAMP
        stamp.touch()
        old = time.time() - 3600
        os.utime(stamp, (old, old))

        with patch("linkcache.refresh.subprocess.Popen") as popen:
            assert spawn_refresh(config) is True
        popen.assert_called_once()
