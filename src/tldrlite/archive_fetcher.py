"""Remote archive download and extraction.

Fetches the tldr-pages zip archive over HTTP and unpacks it into a directory
that nothing else is reading yet. Swapping that directory into place is the
cache store's job.

Public API:
    ArchiveFetcher: Download + extract into a target directory
    FetchError: Raised when download or extraction fails
"""

import logging
import zipfile
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FetchError(Exception):
    """Raised when the remote archive cannot be downloaded or extracted."""

    pass


class ArchiveFetcher:
    """Download and extract the tldr-pages archive.

    Example:
        >>> fetcher = ArchiveFetcher("https://tldr.sh/assets/tldr.zip", timeout=30.0)
        >>> fetcher.fetch(Path("/tmp/tldr-new"), work_dir=Path("/tmp"))
    """

    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout

    def fetch(self, dest: Path, work_dir: Path) -> None:
        """Download the archive into work_dir and extract it into dest.

        Args:
            dest: Empty directory to extract into
            work_dir: Directory for the temporary archive file

        Raises:
            FetchError: If download or extraction fails
        """
        archive_path = work_dir / f".{dest.name}.zip"
        try:
            self.download(archive_path)
            self.extract(archive_path, dest)
        finally:
            if archive_path.exists():
                archive_path.unlink()

    def download(self, target: Path) -> None:
        """Stream the archive to a local file.

        Raises:
            FetchError: On connection errors, timeouts or HTTP error statuses
        """
        logger.debug(f"Downloading {self.url} (timeout {self.timeout}s)")
        try:
            with requests.get(self.url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(target, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise FetchError(f"Failed to download {self.url}: {e}") from e
        except OSError as e:
            raise FetchError(f"Failed to write archive {target}: {e}") from e

        logger.debug(f"Downloaded archive to {target} ({target.stat().st_size} bytes)")

    def extract(self, archive_path: Path, dest: Path) -> None:
        """Extract a zip archive, rejecting members that escape dest.

        Raises:
            FetchError: If the archive is corrupt or contains unsafe paths
        """
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()
        try:
            with zipfile.ZipFile(archive_path) as archive:
                for member in archive.infolist():
                    target = (root / member.filename).resolve()
                    if target != root and root not in target.parents:
                        raise FetchError(f"Unsafe path in archive: {member.filename}")
                archive.extractall(root)
        except zipfile.BadZipFile as e:
            raise FetchError(f"Corrupt archive {archive_path}: {e}") from e
        except OSError as e:
            raise FetchError(f"Failed to extract {archive_path}: {e}") from e

        logger.debug(f"Extracted archive into {dest}")
