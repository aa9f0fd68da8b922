"""Configuration for linkcache.

All environment and home-directory lookups live here. The cache and the
sidebar resolver never look at the environment themselves; browser
adapters receive their profile directory from a ProfileLocator.
"""
import configparser
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_DATA_DIR = Path.home() / ".linkcache"


@dataclass
class SearchConfig:
    """Configuration for cache search and ranking."""
    browse_limit: int = 50  # Results for an empty query
    search_limit: int = 50  # Default cap on fuzzy results
    min_score: float = 55.0  # Drop fuzzy matches scoring below this (0-100)
    candidate_limit: int = 500  # Rows pulled from the FTS index before scoring

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """Create config from environment variables."""
        return cls(
            browse_limit=int(os.environ.get("LINKCACHE_BROWSE_LIMIT", "50")),
            search_limit=int(os.environ.get("LINKCACHE_SEARCH_LIMIT", "50")),
            min_score=float(os.environ.get("LINKCACHE_MIN_SCORE", "55.0")),
            candidate_limit=int(os.environ.get("LINKCACHE_CANDIDATE_LIMIT", "500")),
        )


@dataclass
class ProfileConfig:
    """Explicit browser profile directories. None = discover the default."""
    arc: Optional[Path] = None
    chrome: Optional[Path] = None
    firefox: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "ProfileConfig":
        return cls(
            arc=_env_path("LINKCACHE_ARC_PROFILE"),
            chrome=_env_path("LINKCACHE_CHROME_PROFILE"),
            firefox=_env_path("LINKCACHE_FIREFOX_PROFILE"),
        )


@dataclass
class Config:
    """Main configuration for linkcache."""
    search: SearchConfig = field(default_factory=SearchConfig)
    profiles: ProfileConfig = field(default_factory=ProfileConfig)
    data_dir: Optional[Path] = None  # None = use default
    busy_timeout: float = 5.0  # Seconds to wait on a locked cache database
    refresh_interval: float = 600.0  # Minimum seconds between background refreshes

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        return cls(
            search=SearchConfig.from_env(),
            profiles=ProfileConfig.from_env(),
            data_dir=_env_path("LINKCACHE_DATA_DIR"),
            busy_timeout=float(os.environ.get("LINKCACHE_BUSY_TIMEOUT", "5.0")),
            refresh_interval=float(os.environ.get("LINKCACHE_REFRESH_INTERVAL", "600")),
        )

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir or DEFAULT_DATA_DIR


def _env_path(name: str) -> Optional[Path]:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else None


class ProfileLocator:
    """Finds browser profile directories for the adapters.

    Explicit directories from ProfileConfig win; otherwise the usual
    per-OS location under the user's home directory is used.
    """

    def __init__(self, profiles: Optional[ProfileConfig] = None, home: Optional[Path] = None):
        self.profiles = profiles or ProfileConfig()
        self.home = home or Path.home()

    def arc_profile(self) -> Path:
        """Get the Arc data directory holding StorableSidebar.json."""
        if self.profiles.arc:
            return self.profiles.arc
        if sys.platform == "darwin":
            return self.home / "Library" / "Application Support" / "Arc"
        if os.name == "nt":
            return self.home / "AppData" / "Local" / "Arc"
        return self.home / ".config" / "arc"

    def chrome_profile(self, profile: str = "Default") -> Path:
        """Get the Chrome profile directory.

        Args:
            profile: Chrome profile name (default: "Default")

        Returns:
            Path to the profile directory holding Bookmarks and History
        """
        if self.profiles.chrome:
            return self.profiles.chrome
        if os.name == "nt":  # Windows
            return self.home / "AppData" / "Local" / "Google" / "Chrome" / "User Data" / profile
        if sys.platform == "darwin":  # macOS
            return self.home / "Library" / "Application Support" / "Google" / "Chrome" / profile
        chrome_path = self.home / ".config" / "google-chrome" / profile
        # Also check for chromium
        if not chrome_path.exists():
            chromium_path = self.home / ".config" / "chromium" / profile
            if chromium_path.exists():
                return chromium_path
        return chrome_path

    def firefox_config_dir(self) -> Path:
        """Get the directory holding Firefox's profiles.ini."""
        if sys.platform == "darwin":
            return self.home / "Library" / "Application Support" / "Firefox"
        if os.name == "nt":
            return self.home / "AppData" / "Roaming" / "Mozilla" / "Firefox"
        return self.home / ".mozilla" / "firefox"

    def firefox_profile(self) -> Optional[Path]:
        """Get the default Firefox profile directory.

        Returns:
            Profile path, or None if profiles.ini names no default profile
        """
        if self.profiles.firefox:
            return self.profiles.firefox
        return find_firefox_profile(self.firefox_config_dir())


def find_firefox_profile(config_dir: Path) -> Optional[Path]:
    """Read profiles.ini and return the default release profile.

    The [Install...] sections name the profile each Firefox install
    actually uses; older files only flag a [Profile...] with Default=1.

    Args:
        config_dir: Directory containing profiles.ini

    Returns:
        Path to the profile directory, or None if none is found
    """
    ini_path = config_dir / "profiles.ini"
    if not ini_path.exists():
        return None

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(ini_path, encoding="utf-8")

    for section in parser.sections():
        if section.startswith("Install") and parser.has_option(section, "Default"):
            return config_dir / parser.get(section, "Default")

    for section in parser.sections():
        if not section.startswith("Profile"):
            continue
        if parser.get(section, "Default", fallback="0") != "1":
            continue
        path = parser.get(section, "Path", fallback=None)
        if path is None:
            continue
        if parser.get(section, "IsRelative", fallback="1") == "1":
            return config_dir / path
        return Path(path)

    return None


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config


def reset_config() -> None:
    """Forget the global config so the next get_config() re-reads the environment."""
    global _config
    _config = None
