import logging
import threading
from pathlib import Path
from contextlib import contextmanager
from typing import Dict, Iterator

# --- Platform-specific advisory file locking ---
try:
    import msvcrt

    def _lock_file(fd: int) -> None:
        # LK_LOCK retries for ~10s, so loop until the lock is granted.
        while True:
            try:
                msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
                return
            except OSError:
                continue

    def _unlock_file(fd: int) -> None:
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
except ImportError:
    import fcntl

    def _lock_file(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX)

    def _unlock_file(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)

log = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_thread_locks: Dict[str, threading.Lock] = {}


def _thread_lock_for(path: Path) -> threading.Lock:
    """Returns the in-process lock shared by every thread touching `path`."""
    key = str(path.resolve())
    with _registry_lock:
        lock = _thread_locks.get(key)
        if lock is None:
            lock = _thread_locks[key] = threading.Lock()
        return lock


@contextmanager
def unit_lock(runtime_dir: Path, key: str) -> Iterator[None]:
    """
    Holds the exclusive lock for one unit.

    Threads of the same process are serialized by a threading.Lock and
    separate processes by an advisory lock on '<runtime_dir>/<key>.lock'.

    :param runtime_dir: The runtime state directory.
    :param key: The unit key.
    """
    runtime_dir.mkdir(parents=True, exist_ok=True)
    lock_path = runtime_dir / f"{key}.lock"
    with _thread_lock_for(lock_path):
        with open(lock_path, "a+b") as lock_file:
            lock_file.seek(0)
            _lock_file(lock_file.fileno())
            log.debug(f"Acquired lock {lock_path}")
            try:
                yield
            finally:
                _unlock_file(lock_file.fileno())
                log.debug(f"Released lock {lock_path}")
