"""
Shared test fixtures and configuration for tldrlite tests.

This module provides common fixtures used across all test types:
- Snapshot directories with sample pages and index
- In-memory zip archives shaped like the tldr-pages release
- Fake archive fetchers (no network access in tests)
- Isolated HOME / TLDR_HOME
"""

import io
import json
import time
import zipfile
from pathlib import Path

import pytest

from tldrlite.archive_fetcher import FetchError
from tldrlite.page_store import touch_sentinel

GIT_CHECKOUT_PAGE = """\
# git checkout

> Checkout a branch or paths to the working tree.
> More information: <https://git-scm.com/docs/git-checkout>.

- Switch to an existing branch:

`git checkout {{branch}}`
"""

TAR_PAGE = """\
# tar

> Archiving utility.
> Often combined with a compression method, such as gzip or bzip2.
> More information: <https://www.gnu.org/software/tar>.

- Create an archive from files:

`tar cf {{target.tar}} {{file1}} {{file2}}`

- Extract an archive in a target directory:

`tar xf {{source.tar}} --directory={{directory}}`

- List the contents of a tar file:

`tar tvf {{source.tar}}`
"""

LS_LINUX_PAGE = """\
# ls

> List directory contents.

- List files one per line:

`ls -1`
"""

SAMPLE_INDEX = {
    "commands": [
        {"name": "git-checkout", "platform": ["common"], "language": ["en"]},
        {"name": "ls", "platform": ["common", "linux"], "language": ["en", "es"]},
        {"name": "lsblk", "platform": ["linux"], "language": ["en"]},
        {"name": "lsof", "platform": ["common"], "language": ["en"]},
        {"name": "tar", "platform": ["common"], "language": ["en"]},
    ]
}


def write_page(root: Path, platform: str, name: str, text: str, language: str = "") -> Path:
    """Write a page file into a snapshot directory."""
    pages = "pages" if language in ("", "en") else f"pages.{language}"
    path = root / pages / platform / f"{name}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def sample_files() -> dict[str, str]:
    """Relative path -> content for a small tldr-pages release."""
    return {
        "pages/common/git-checkout.md": GIT_CHECKOUT_PAGE,
        "pages/common/tar.md": TAR_PAGE,
        "pages/linux/ls.md": LS_LINUX_PAGE,
        "index.json": json.dumps(SAMPLE_INDEX),
    }


def make_zip(files: dict[str, str]) -> bytes:
    """Build a zip archive in memory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


class FakeFetcher:
    """Stands in for ArchiveFetcher.

    Writes `files` into the destination, or raises FetchError when `error`
    is set.
    """

    def __init__(self, files: dict[str, str] | None = None, error: str | None = None):
        self.files = files if files is not None else sample_files()
        self.error = error
        self.calls: list[Path] = []

    def fetch(self, dest: Path, work_dir: Path) -> None:
        self.calls.append(dest)
        if self.error:
            raise FetchError(self.error)
        for name, content in self.files.items():
            path = dest / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")


# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


@pytest.fixture
def cache_root(tmp_path):
    """Path of a snapshot directory that does not exist yet."""
    return tmp_path / ".tldr"


@pytest.fixture
def snapshot(cache_root):
    """Fresh snapshot populated with the sample release."""
    for name, content in sample_files().items():
        path = cache_root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    touch_sentinel(cache_root, time.time())
    return cache_root


@pytest.fixture
def stale_snapshot(snapshot):
    """Sample snapshot whose sentinel is 30 days old."""
    touch_sentinel(snapshot, time.time() - 30 * 24 * 3600)
    return snapshot


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """HOME and TLDR_HOME pointing into tmp_path.

    Keeps tests away from the real ~/.tldr.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("TLDR_HOME", str(home / ".tldr"))
    return home
