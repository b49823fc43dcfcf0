"""
Per-volume lock manager for mount/unmount/health-check operations.

Operations against the same mount path are serialized: health checks may
share the lock with each other, mount and unmount hold it exclusively.
Within a process this uses an asyncio readers/writer lock per path; when a
lock directory is configured, file-based locking (flock) extends the same
guarantee across processes (CLI invocations and the reconciler daemon).
"""

import asyncio
import errno
import fcntl
import hashlib
import os
import time
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Dict, Iterator, Optional

from volmount.utils.exceptions import LockTimeoutException
from volmount.utils.logger import get_logger
from volmount.utils.system import normalize_path

logger = get_logger(__name__)


class _PathLock:
    """Readers/writer state for one mount path. Writers are preferred."""

    def __init__(self):
        self.condition = asyncio.Condition()
        self.readers = 0
        self.writer = False
        self.waiting_writers = 0
        # holders plus waiters; the entry is dropped when this reaches zero
        self.users = 0


class VolumeLockManager:
    """
    Manages per-path locks for volume operations.
    """

    DEFAULT_LOCK_DIR = "/var/lock/volmount"
    LOCK_TIMEOUT = 300  # 5 minutes default timeout
    POLL_INTERVAL = 0.1

    def __init__(self, lock_dir: Optional[str] = None, timeout: float = LOCK_TIMEOUT):
        """
        Initialize the lock manager.

        Args:
            lock_dir: Directory to store lock files; None keeps locking in-process
            timeout: Maximum time to wait for lock acquisition in seconds
        """
        self.lock_dir = lock_dir
        self.timeout = timeout
        self._locks: Dict[str, _PathLock] = {}

    @contextmanager
    def _path_lock(self, path: str) -> Iterator[_PathLock]:
        """Borrow the state for a path, dropping it once nobody holds or waits on it."""
        key = normalize_path(path)
        state = self._locks.get(key)
        if state is None:
            state = self._locks[key] = _PathLock()
        state.users += 1
        try:
            yield state
        finally:
            state.users -= 1
            if state.users == 0 and self._locks.get(key) is state:
                del self._locks[key]

    def lock_file_path(self, path: str) -> str:
        digest = hashlib.sha1(normalize_path(path).encode()).hexdigest()[:16]
        return os.path.join(self.lock_dir, f"volume_{digest}.lock")

    @asynccontextmanager
    async def shared(self, path: str, operation: str = "health check") -> AsyncIterator[None]:
        """
        Hold the path lock in shared mode (concurrent with other shared holders).

        Raises:
            LockTimeoutException: If the lock cannot be acquired within timeout
        """
        deadline = time.monotonic() + self.timeout

        with self._path_lock(path) as state:
            async def acquire():
                async with state.condition:
                    await state.condition.wait_for(
                        lambda: not state.writer and state.waiting_writers == 0
                    )
                    state.readers += 1

            await self._wait(acquire(), deadline, path, operation)
            try:
                async with self._file_lock(path, fcntl.LOCK_SH, deadline, operation):
                    yield
            finally:
                async with state.condition:
                    state.readers -= 1
                    state.condition.notify_all()

    @asynccontextmanager
    async def exclusive(self, path: str, operation: str = "mount") -> AsyncIterator[None]:
        """
        Hold the path lock exclusively.

        Example:
            async with lock_manager.exclusive('/var/lib/volmount/volumes/a/_data'):
                # Perform mount/unmount operation
                pass

        Raises:
            LockTimeoutException: If the lock cannot be acquired within timeout
        """
        deadline = time.monotonic() + self.timeout

        with self._path_lock(path) as state:
            async def acquire():
                async with state.condition:
                    state.waiting_writers += 1
                    acquired = False
                    try:
                        await state.condition.wait_for(
                            lambda: not state.writer and state.readers == 0
                        )
                        state.writer = True
                        acquired = True
                    finally:
                        state.waiting_writers -= 1
                        if not acquired:
                            state.condition.notify_all()

            await self._wait(acquire(), deadline, path, operation)
            logger.debug(f"Acquired lock for {operation} on {path}")
            try:
                async with self._file_lock(path, fcntl.LOCK_EX, deadline, operation):
                    yield
            finally:
                async with state.condition:
                    state.writer = False
                    state.condition.notify_all()
                logger.debug(f"Released lock for {operation} on {path}")

    async def _wait(self, acquire, deadline: float, path: str, operation: str):
        remaining = max(deadline - time.monotonic(), 0)
        try:
            await asyncio.wait_for(acquire, timeout=remaining)
        except asyncio.TimeoutError:
            raise LockTimeoutException(
                f"Could not acquire lock for {operation} on {path} "
                f"after {self.timeout} seconds"
            ) from None

    @asynccontextmanager
    async def _file_lock(self, path: str, mode: int, deadline: float,
                         operation: str) -> AsyncIterator[None]:
        if not self.lock_dir:
            yield
            return

        os.makedirs(self.lock_dir, mode=0o755, exist_ok=True)
        lock_file = open(self.lock_file_path(path), 'a')
        acquired = False
        try:
            while True:
                try:
                    # Non-blocking lock attempt
                    fcntl.flock(lock_file.fileno(), mode | fcntl.LOCK_NB)
                    acquired = True
                    break
                except OSError as e:
                    if e.errno not in (errno.EAGAIN, errno.EACCES):
                        raise
                    if time.monotonic() >= deadline:
                        raise LockTimeoutException(
                            f"Could not acquire lock for {operation} on {path} "
                            f"after {self.timeout} seconds"
                        )
                    await asyncio.sleep(self.POLL_INTERVAL)
            yield
        finally:
            if acquired:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
                except OSError as e:
                    logger.error(f"Error releasing lock: {e}")
            lock_file.close()
