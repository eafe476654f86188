"""Cache Store Module - Freshness policy and atomic refresh of the tldr snapshot.

Philosophy:
- File-based snapshot for persistence across CLI invocations
- TTL-based expiration from a sentinel file's mtime
- Extract-then-swap: a refresh never writes into the live directory
- Stale but present beats unavailable: offline runs still serve pages

Public API (the "studs"):
    CacheStore: Initialize/refresh the snapshot
    CacheState: Result of CacheStore.initialize
    CacheStatus: fresh / refreshed / expired / update_failed
    CacheStoreError: Fatal failure (no snapshot and refresh failed)

Architecture:
- Snapshot dir: ~/.tldr (see page_store for layout)
- Lock file: ~/.tldr.lock, held for the whole refresh
- Staging dir: ~/.tldr.staging-XXXX (same filesystem, so renames are atomic)
- Backup dir: ~/.tldr.old-<pid>, restored on the next run if a swap was cut short
"""

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from tldrlite.archive_fetcher import ArchiveFetcher, FetchError
from tldrlite.config_manager import (
    DEFAULT_CACHE_TTL_DAYS,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_SOURCE_URL,
    TldrOptions,
)
from tldrlite.file_lock_manager import LockTimeoutError, acquire_file_lock
from tldrlite.page_store import PageStore, touch_sentinel

logger = logging.getLogger(__name__)

CACHE_EXPIRED_MESSAGE = "more than a week passed, should update tldr using --update"


class CacheStoreError(Exception):
    """Raised when no usable snapshot exists and one cannot be fetched."""

    pass


class CacheStatus(StrEnum):
    """Outcome of CacheStore.initialize."""

    FRESH = "fresh"  # snapshot within TTL, nothing fetched
    REFRESHED = "refreshed"  # new snapshot swapped in
    EXPIRED = "expired"  # stale snapshot kept, refresh failed
    UPDATE_FAILED = "update_failed"  # fresh snapshot kept, forced refresh failed


@dataclass(frozen=True)
class CacheState:
    """Snapshot state after initialization.

    Attributes:
        exists: Snapshot directory is present
        last_updated: Sentinel mtime (None when missing)
        ttl: Freshness window in seconds
        status: What initialize did
        error: Refresh failure text for EXPIRED / UPDATE_FAILED
    """

    exists: bool
    last_updated: float | None
    ttl: int
    status: CacheStatus
    error: str | None = None

    @property
    def expired(self) -> bool:
        return self.status == CacheStatus.EXPIRED

    @property
    def warning(self) -> str | None:
        """User-facing warning, if the run should print one."""
        if self.status == CacheStatus.EXPIRED:
            return CACHE_EXPIRED_MESSAGE
        if self.status == CacheStatus.UPDATE_FAILED:
            return f"failed to update tldr: {self.error}"
        return None


class CacheStore:
    """Keep a usable tldr snapshot on disk.

    Example:
        >>> cache = CacheStore(Path("~/.tldr").expanduser())
        >>> state = cache.initialize(TldrOptions(platform="linux"))
        >>> if state.warning:
        ...     print(state.warning)
    """

    TTL = DEFAULT_CACHE_TTL_DAYS * 24 * 3600
    LOCK_TIMEOUT = 30.0

    def __init__(
        self,
        root: Path,
        ttl: int | None = None,
        fetcher: ArchiveFetcher | None = None,
        source_url: str = DEFAULT_SOURCE_URL,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        """Initialize cache store.

        Args:
            root: Snapshot directory (default layout ~/.tldr)
            ttl: Freshness window in seconds (default: 7 days)
            fetcher: Archive fetcher (default: ArchiveFetcher for source_url)
            source_url: Archive URL used when no fetcher is given
            fetch_timeout: HTTP timeout used when no fetcher is given
        """
        self.store = PageStore(root)
        self.ttl = self.TTL if ttl is None else ttl
        self.fetcher = fetcher or ArchiveFetcher(source_url, timeout=fetch_timeout)

    @property
    def root(self) -> Path:
        return self.store.root

    @property
    def lock_path(self) -> Path:
        return self.root.with_name(f"{self.root.name}.lock")

    def is_stale(self, now: float | None = None) -> bool:
        return self.store.age(now) > self.ttl

    def state(self, status: CacheStatus, error: str | None = None) -> CacheState:
        return CacheState(
            exists=self.store.exists(),
            last_updated=self.store.last_updated(),
            ttl=self.ttl,
            status=status,
            error=error,
        )

    def initialize(self, options: TldrOptions) -> CacheState:
        """Make sure a usable snapshot exists, refreshing it when due.

        Args:
            options: Invocation options (force_update is honored here)

        Returns:
            CacheState describing the outcome

        Raises:
            CacheStoreError: If there is no snapshot and the refresh fails
        """
        if not self.store.exists():
            self.recover()

        if not self.store.exists():
            logger.debug(f"No snapshot at {self.root}, fetching")
            try:
                self.refresh()
            except (FetchError, LockTimeoutError, OSError) as e:
                raise CacheStoreError(f"Failed to download tldr pages: {e}") from e
            return self.state(CacheStatus.REFRESHED)

        stale = self.is_stale()
        if not stale and not options.force_update:
            logger.debug(f"Snapshot is fresh (age {self.store.age():.0f}s)")
            return self.state(CacheStatus.FRESH)

        logger.debug(f"Refreshing snapshot (stale={stale}, forced={options.force_update})")
        try:
            self.refresh()
        except (FetchError, LockTimeoutError, OSError) as e:
            logger.debug(f"Refresh failed, keeping existing snapshot: {e}")
            status = CacheStatus.EXPIRED if stale else CacheStatus.UPDATE_FAILED
            return self.state(status, error=str(e))
        return self.state(CacheStatus.REFRESHED)

    def recover(self) -> None:
        """Undo an interrupted refresh under the refresh lock.

        Failures are logged; the caller falls back to a full refresh.
        """
        try:
            with acquire_file_lock(self.lock_path, timeout=self.LOCK_TIMEOUT):
                self._recover()
        except (LockTimeoutError, OSError) as e:
            logger.debug(f"Snapshot recovery skipped: {e}")

    def refresh(self) -> None:
        """Fetch the archive into a staging directory and swap it in.

        The live snapshot is only touched by the final renames, after the new
        one is completely extracted.

        Raises:
            FetchError: If download or extraction fails
            LockTimeoutError: If another process holds the refresh lock
            OSError: If the directory swap fails
        """
        parent = self.root.parent
        parent.mkdir(parents=True, exist_ok=True)

        with acquire_file_lock(self.lock_path, timeout=self.LOCK_TIMEOUT):
            self._recover()
            staging = Path(tempfile.mkdtemp(prefix=self.staging_prefix, dir=parent))
            try:
                self.fetcher.fetch(staging, work_dir=parent)
                touch_sentinel(staging, time.time())
                self._swap(staging)
            except BaseException:
                shutil.rmtree(staging, ignore_errors=True)
                raise

        logger.debug(f"Snapshot refreshed at {self.root}")

    @property
    def staging_prefix(self) -> str:
        return f"{self.root.name}.staging-"

    @property
    def backup_prefix(self) -> str:
        return f"{self.root.name}.old-"

    def _recover(self) -> None:
        """Restore a snapshot left at a backup name and drop refresh leftovers.

        Only safe while holding the refresh lock: every staging dir, archive
        and backup found then belongs to a dead process.
        """
        parent = self.root.parent
        if not parent.is_dir():
            return

        backups = [p for p in parent.glob(f"{self.backup_prefix}*") if p.is_dir()]
        if backups and not self.root.exists():
            newest = max(backups, key=lambda p: PageStore(p).last_updated() or 0.0)
            logger.debug(f"Restoring snapshot from {newest}")
            newest.rename(self.root)
            backups.remove(newest)

        leftovers = backups + list(parent.glob(f"{self.staging_prefix}*"))
        leftovers += parent.glob(f".{self.staging_prefix}*.zip")
        for path in leftovers:
            logger.debug(f"Removing refresh leftover {path}")
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink(missing_ok=True)

    def _swap(self, staging: Path) -> None:
        """Replace the live snapshot with staging by rename."""
        if not self.root.exists():
            staging.rename(self.root)
            return

        backup = self.root.with_name(f"{self.backup_prefix}{os.getpid()}")
        if backup.exists():
            shutil.rmtree(backup)

        self.root.rename(backup)
        try:
            staging.rename(self.root)
        except OSError:
            backup.rename(self.root)
            raise
        shutil.rmtree(backup, ignore_errors=True)
