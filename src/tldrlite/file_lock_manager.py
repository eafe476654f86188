"""Advisory file locking around snapshot refresh.

A refresh renames the live snapshot directory out of the way and moves a
freshly extracted one into its place. Two tldr processes refreshing at the
same time would race on those renames, so the refresh runs while holding an
exclusive lock on a small file next to the cache root.

Public API:
    acquire_file_lock: Context manager for acquiring exclusive file lock
    LockTimeoutError: Exception raised when lock cannot be acquired within timeout

Example:
    >>> from pathlib import Path
    >>> lock = Path("~/.tldr.lock").expanduser()
    >>> with acquire_file_lock(lock, timeout=30.0, operation="snapshot refresh"):
    ...     pass  # swap directories

Backoff: 0.1s -> 0.2s -> 0.4s -> 0.8s -> 1.6s -> 2.0s (capped)
"""

import logging
import platform
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, TextIO

# Platform-specific imports
_system = platform.system()
if TYPE_CHECKING or _system == "Windows":
    import msvcrt  # type: ignore[import-not-found]
if TYPE_CHECKING or _system != "Windows":
    import fcntl  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

__all__ = ["LockTimeoutError", "acquire_file_lock"]


class LockTimeoutError(Exception):
    """Raised when file lock cannot be acquired within timeout period."""


@contextmanager
def acquire_file_lock(
    lock_path: Path,
    timeout: float = 30.0,
    operation: str = "snapshot refresh",
) -> Generator[None, None, None]:
    """Hold an exclusive advisory lock on lock_path for the duration of the block.

    The lock file is created when missing and left in place afterwards.

    Args:
        lock_path: Path to the lock file
        timeout: Maximum seconds to wait for lock acquisition
        operation: Description of operation (used in error messages)

    Raises:
        PermissionError: If lacking permissions to lock file
        LockTimeoutError: If lock cannot be acquired within timeout
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    with open(lock_path, "a") as file_handle:
        try:
            _acquire_lock_with_backoff(file_handle, lock_path, timeout, operation)
            logger.debug(f"Acquired lock for {operation}: {lock_path}")
            yield
        finally:
            _release_lock(file_handle)


def _acquire_lock_with_backoff(
    file_handle: TextIO | BinaryIO,
    lock_path: Path,
    timeout: float,
    operation: str,
) -> None:
    start_time = time.time()
    delay = 0.1
    attempt = 0

    while True:
        elapsed = time.time() - start_time
        if elapsed >= timeout:
            raise LockTimeoutError(
                f"Failed to acquire file lock for {operation} after {timeout} seconds. "
                f"File: {lock_path}. Another tldr process may be refreshing the cache."
            )

        try:
            if _system == "Windows":
                msvcrt.locking(file_handle.fileno(), msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
            else:
                fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            return

        except (BlockingIOError, PermissionError) as e:
            # First permission error might be genuine permission issue
            if isinstance(e, PermissionError) and attempt == 0 and _system != "Windows":
                raise

            sleep_time = min(delay, timeout - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)

            delay = min(delay * 2, 2.0)
            attempt += 1


def _release_lock(file_handle: TextIO | BinaryIO) -> None:
    try:
        if _system == "Windows":
            msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        else:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
    except OSError as e:
        logger.debug(f"Error during lock cleanup: {e}")
