"""Page store - filesystem layer for the extracted tldr snapshot.

Layout under the cache root:
    pages/<platform>/<name>.md          English pages
    pages.<lang>/<platform>/<name>.md   Translated pages
    index.json                          Flat command index
    .last_updated                       Sentinel, mtime = snapshot age

No freshness policy lives here; see cache_store.
"""

import logging
import os
import time
from pathlib import Path

logger = logging.getLogger(__name__)

PAGES_DIR = "pages"
PAGE_SUFFIX = ".md"
INDEX_FILE = "index.json"
SENTINEL_FILE = ".last_updated"
DEFAULT_LANGUAGES = ("", "en")


def pages_dir_name(language: str) -> str:
    """Directory name holding pages for a language.

    Example:
        >>> pages_dir_name("")
        'pages'
        >>> pages_dir_name("pt_BR")
        'pages.pt_BR'
    """
    if language in DEFAULT_LANGUAGES:
        return PAGES_DIR
    return f"{PAGES_DIR}.{language}"


def touch_sentinel(root: Path, timestamp: float | None = None) -> Path:
    """Create or update the freshness sentinel inside a snapshot directory.

    Args:
        root: Snapshot directory
        timestamp: Modification time to set (default: now)

    Returns:
        Path to the sentinel file
    """
    sentinel = root / SENTINEL_FILE
    sentinel.touch()
    if timestamp is not None:
        os.utime(sentinel, (timestamp, timestamp))
    return sentinel


class PageStore:
    """Read access to one snapshot directory.

    Example:
        >>> store = PageStore(Path("~/.tldr").expanduser())
        >>> text = store.read_page("common", "tar", "")
    """

    def __init__(self, root: Path, index_file: str = INDEX_FILE):
        self.root = root
        self.index_file = index_file

    @property
    def index_path(self) -> Path:
        return self.root / self.index_file

    @property
    def sentinel_path(self) -> Path:
        return self.root / SENTINEL_FILE

    def exists(self) -> bool:
        """True when the snapshot directory is present."""
        return self.root.is_dir()

    def last_updated(self) -> float | None:
        """Sentinel mtime, or None when the snapshot has no sentinel."""
        try:
            return self.sentinel_path.stat().st_mtime
        except FileNotFoundError:
            return None

    def age(self, now: float | None = None) -> float:
        """Seconds since the last successful refresh.

        A snapshot without a sentinel is infinitely old.
        """
        updated = self.last_updated()
        if updated is None:
            return float("inf")
        return (now if now is not None else time.time()) - updated

    def page_path(self, platform: str, name: str, language: str = "") -> Path:
        return self.root / pages_dir_name(language) / platform / f"{name}{PAGE_SUFFIX}"

    def read_page(self, platform: str, name: str, language: str = "") -> str | None:
        """Read a page file.

        Args:
            platform: Platform directory tag
            name: Canonical page name (hyphen-joined, lowercase)
            language: Language tag

        Returns:
            Page text, or None when the file is absent
        """
        path = self.page_path(platform, name, language)
        if not path.is_file():
            return None
        logger.debug(f"Reading page: {path}")
        return path.read_text(encoding="utf-8")

    def read_index(self) -> str:
        """Read the raw index file.

        Raises:
            OSError: If the index file cannot be read
        """
        return self.index_path.read_text(encoding="utf-8")
