"""Tests for the cache store - freshness policy and atomic refresh.

No network: the archive fetcher is replaced with FakeFetcher from conftest.
"""

import time
from pathlib import Path

import pytest
from conftest import FakeFetcher

from tldrlite.cache_store import (
    CACHE_EXPIRED_MESSAGE,
    CacheStatus,
    CacheStore,
    CacheStoreError,
)
from tldrlite.config_manager import TldrOptions
from tldrlite.page_store import touch_sentinel

OPTIONS = TldrOptions(platform="linux")
FORCE = TldrOptions(platform="linux", force_update=True)


def snapshot_bytes(root: Path) -> dict[str, bytes]:
    """Relative path -> content for every file under root."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and p.name != ".last_updated"
    }


def leftovers(root: Path) -> list[str]:
    """Staging/backup entries left beside the cache root."""
    return sorted(
        p.name
        for p in root.parent.iterdir()
        if p.name.startswith(root.name) and p.name not in (root.name, f"{root.name}.lock")
    )


class TestInitializeMissingSnapshot:
    def test_fetches_when_absent(self, cache_root):
        fetcher = FakeFetcher()
        state = CacheStore(cache_root, fetcher=fetcher).initialize(OPTIONS)

        assert state.status == CacheStatus.REFRESHED
        assert state.exists
        assert state.last_updated is not None
        assert (cache_root / "pages" / "common" / "tar.md").is_file()
        assert len(fetcher.calls) == 1
        assert leftovers(cache_root) == []

    def test_absent_and_offline_is_fatal(self, cache_root):
        cache = CacheStore(cache_root, fetcher=FakeFetcher(error="offline"))
        with pytest.raises(CacheStoreError, match="offline"):
            cache.initialize(OPTIONS)
        assert not cache_root.exists()
        assert leftovers(cache_root) == []


class TestInitializeExistingSnapshot:
    def test_fresh_snapshot_not_fetched(self, snapshot):
        fetcher = FakeFetcher()
        state = CacheStore(snapshot, fetcher=fetcher).initialize(OPTIONS)

        assert state.status == CacheStatus.FRESH
        assert state.warning is None
        assert fetcher.calls == []

    def test_stale_snapshot_replaced(self, stale_snapshot):
        new_files = {"pages/common/new.md": "# new\n", "index.json": '{"commands": []}'}
        cache = CacheStore(stale_snapshot, fetcher=FakeFetcher(files=new_files))

        state = cache.initialize(OPTIONS)

        assert state.status == CacheStatus.REFRESHED
        assert not state.expired
        assert state.warning is None
        assert (stale_snapshot / "pages" / "common" / "new.md").is_file()
        assert not (stale_snapshot / "pages" / "common" / "tar.md").exists()
        assert not cache.is_stale()
        assert leftovers(stale_snapshot) == []

    def test_stale_and_offline_reports_expired(self, stale_snapshot):
        before = snapshot_bytes(stale_snapshot)
        before_mtime = (stale_snapshot / ".last_updated").stat().st_mtime

        state = CacheStore(stale_snapshot, fetcher=FakeFetcher(error="offline")).initialize(
            OPTIONS
        )

        assert state.status == CacheStatus.EXPIRED
        assert state.expired
        assert state.warning == CACHE_EXPIRED_MESSAGE
        assert state.error == "offline"
        assert snapshot_bytes(stale_snapshot) == before
        assert (stale_snapshot / ".last_updated").stat().st_mtime == before_mtime
        assert leftovers(stale_snapshot) == []

    def test_missing_sentinel_counts_as_stale(self, snapshot):
        (snapshot / ".last_updated").unlink()
        cache = CacheStore(snapshot, fetcher=FakeFetcher())
        assert cache.is_stale()
        assert cache.initialize(OPTIONS).status == CacheStatus.REFRESHED

    def test_custom_ttl(self, snapshot):
        cache = CacheStore(snapshot, ttl=60, fetcher=FakeFetcher())
        assert not cache.is_stale()
        assert cache.is_stale(now=time.time() + 120)

    def test_zero_ttl_makes_fresh_snapshot_stale(self, snapshot):
        cache = CacheStore(snapshot, ttl=0, fetcher=FakeFetcher())
        assert cache.ttl == 0
        assert cache.is_stale(now=cache.store.last_updated() + 1)

    def test_force_update_refreshes_fresh_snapshot(self, snapshot):
        fetcher = FakeFetcher()
        state = CacheStore(snapshot, fetcher=fetcher).initialize(FORCE)
        assert state.status == CacheStatus.REFRESHED
        assert len(fetcher.calls) == 1

    def test_force_update_failure_keeps_fresh_snapshot(self, snapshot):
        before = snapshot_bytes(snapshot)
        state = CacheStore(snapshot, fetcher=FakeFetcher(error="offline")).initialize(FORCE)

        assert state.status == CacheStatus.UPDATE_FAILED
        assert not state.expired
        assert "offline" in state.warning
        assert snapshot_bytes(snapshot) == before


class TestSwap:
    def test_failed_swap_restores_live_snapshot(self, stale_snapshot, monkeypatch):
        before = snapshot_bytes(stale_snapshot)
        real_rename = Path.rename

        def failing_rename(self, target):
            # Moving the staging dir into place fails; everything else works
            if Path(target) == stale_snapshot and self.name.startswith(".tldr.staging-"):
                raise OSError("disk full")
            return real_rename(self, target)

        monkeypatch.setattr(Path, "rename", failing_rename)

        state = CacheStore(stale_snapshot, fetcher=FakeFetcher()).initialize(OPTIONS)

        assert state.status == CacheStatus.EXPIRED
        assert "disk full" in state.error
        assert snapshot_bytes(stale_snapshot) == before
        assert leftovers(stale_snapshot) == []

    def test_lock_file_beside_root(self, cache_root):
        cache = CacheStore(cache_root, fetcher=FakeFetcher())
        assert cache.lock_path == cache_root.parent / ".tldr.lock"


class TestRecovery:
    """A refresh killed mid-way must not cost the snapshot or leave debris."""

    def test_backup_restored_when_swap_was_interrupted(self, stale_snapshot):
        before = snapshot_bytes(stale_snapshot)
        # Killed after moving the live snapshot aside, before staging moved in
        stale_snapshot.rename(stale_snapshot.with_name(".tldr.old-12345"))

        cache = CacheStore(stale_snapshot, fetcher=FakeFetcher(error="offline"))
        state = cache.initialize(OPTIONS)

        assert state.status == CacheStatus.EXPIRED
        assert state.warning == CACHE_EXPIRED_MESSAGE
        assert snapshot_bytes(stale_snapshot) == before
        assert leftovers(stale_snapshot) == []

    def test_newest_backup_wins(self, stale_snapshot):
        older = stale_snapshot.with_name(".tldr.old-1")
        stale_snapshot.rename(older)
        newer = stale_snapshot.with_name(".tldr.old-2")
        for name, content in {"pages/common/new.md": "# new\n", "index.json": "{}"}.items():
            path = newer / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        touch_sentinel(newer, time.time())

        state = CacheStore(stale_snapshot, fetcher=FakeFetcher()).initialize(OPTIONS)

        assert state.status == CacheStatus.FRESH
        assert (stale_snapshot / "pages" / "common" / "new.md").is_file()
        assert leftovers(stale_snapshot) == []

    def test_orphaned_staging_and_archive_removed(self, stale_snapshot):
        staging = stale_snapshot.with_name(".tldr.staging-abc123")
        (staging / "pages").mkdir(parents=True)
        archive = stale_snapshot.with_name("..tldr.staging-abc123.zip")
        archive.write_bytes(b"partial")

        state = CacheStore(stale_snapshot, fetcher=FakeFetcher()).initialize(OPTIONS)

        assert state.status == CacheStatus.REFRESHED
        assert not staging.exists()
        assert not archive.exists()
        assert leftovers(stale_snapshot) == []

    def test_unrelated_siblings_untouched(self, stale_snapshot):
        sibling = stale_snapshot.with_name(".tldr-notes")
        sibling.mkdir()

        CacheStore(stale_snapshot, fetcher=FakeFetcher()).initialize(OPTIONS)

        assert sibling.is_dir()
