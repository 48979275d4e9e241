"""Process-wide reentrant lock serializing working directory changes.

The thread that holds the lock may acquire it again without blocking; every
other thread waits until the holder has released it as many times as it
acquired it.
"""

from __future__ import annotations

import logging
import threading

from .errors import LockOwnershipError

logger = logging.getLogger(__name__)


class ReentrantDirectoryLock:
    """Reentrant mutex keyed on the owning Thread object.

    Built from a plain mutex and a condition variable rather than
    ``threading.RLock`` so the owner and depth can be inspected. All reads
    and writes of ``_owner``/``_depth`` happen under ``_mutex``.

    Ownership is tracked by Thread object rather than ``get_ident()``, since
    idents are reused once a thread exits. A thread that exits while holding
    the lock keeps it held forever; release every guard before a thread ends.
    """

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._released = threading.Condition(self._mutex)
        self._owner: threading.Thread | None = None
        self._depth = 0

    @property
    def owner(self) -> threading.Thread | None:
        """Thread holding the lock, or None when unheld."""
        with self._mutex:
            return self._owner

    @property
    def depth(self) -> int:
        """Number of nested acquisitions by the current owner."""
        with self._mutex:
            return self._depth

    def is_owned(self) -> bool:
        """Check if the calling thread holds the lock."""
        with self._mutex:
            return self._owner is threading.current_thread()

    def acquire(self) -> int:
        """Acquire the lock for the calling thread, blocking if another thread holds it.

        Returns:
            The depth after this acquisition.
        """
        me = threading.current_thread()
        with self._mutex:
            if self._owner is me:
                self._depth += 1
                return self._depth

            if self._owner is not None:
                logger.debug(
                    "%s waiting for directory lock held by %s", me.name, self._owner.name
                )
            while self._owner is not None:
                self._released.wait()

            self._owner = me
            self._depth = 1
            return 1

    def release(self) -> int:
        """Release one level of the calling thread's hold on the lock.

        Returns:
            The depth remaining after this release.

        Raises:
            LockOwnershipError: If the calling thread does not hold the lock.
                The lock state is left untouched.
        """
        me = threading.current_thread()
        with self._mutex:
            if self._owner is not me or self._depth <= 0:
                raise LockOwnershipError(
                    f"{me.name} released the directory lock but it is held by "
                    f"{self._owner.name if self._owner else None} (depth {self._depth})"
                )
            self._depth -= 1
            if self._depth == 0:
                self._owner = None
                self._released.notify_all()
            return self._depth

    def __enter__(self) -> ReentrantDirectoryLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:
        with self._mutex:
            owner = self._owner.name if self._owner else None
            return f"<ReentrantDirectoryLock owner={owner} depth={self._depth}>"


_directory_lock: ReentrantDirectoryLock | None = None
_init_lock = threading.Lock()


def get_directory_lock() -> ReentrantDirectoryLock:
    """Return the process-wide directory lock, creating it on first use.

    The lock holds no external resources and lives until the process exits.
    """
    global _directory_lock
    if _directory_lock is None:
        with _init_lock:
            if _directory_lock is None:
                _directory_lock = ReentrantDirectoryLock()
    return _directory_lock
