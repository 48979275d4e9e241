"""Scoped working directory changes.

A DirectoryGuard holds one unit of the process-wide directory lock for as
long as it is active and puts the previous working directory back when it
is torn down. Use it as a context manager so teardown runs on every exit
path::

    with enter("build"):
        run_the_build()
    # back in the original directory, lock released

Guards on one thread may nest; they must be torn down innermost first.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable

from .config import WithDirConfig, get_config
from .errors import (
    CwdUnreadableError,
    GuardOrderError,
    LockOwnershipError,
    RestoreFailedError,
    translate_oserror,
)
from .lock import ReentrantDirectoryLock, get_directory_lock

logger = logging.getLogger(__name__)

# Active guards of each thread, innermost last
_active = threading.local()


def _guard_stack() -> list[DirectoryGuard]:
    stack = getattr(_active, "guards", None)
    if stack is None:
        stack = _active.guards = []
    return stack


class DirectoryGuard:
    """An active change of the working directory.

    Created by enter(), temp(), create() or create_all(); not meant to be
    instantiated directly. Teardown happens once, through ``close()`` or by
    leaving the ``with`` block, and must run on the thread that entered.
    """

    def __init__(
        self,
        path: Path,
        previous_directory: str,
        lock: ReentrantDirectoryLock,
        config: WithDirConfig,
        finalizer: Callable[[], None] | None = None,
    ):
        self._path = path
        self._previous_directory = previous_directory
        self._lock = lock
        self._config = config
        self._finalizer = finalizer
        self._thread = threading.current_thread()
        self._closed = False

    @property
    def path(self) -> Path:
        """The directory this guard changed into."""
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Restore the previous working directory and release the lock.

        Calling close() on a guard that is already torn down does nothing.

        Raises:
            LockOwnershipError: If called from a thread other than the one
                that entered the guard.
            GuardOrderError: If a guard entered later on this thread is
                still active.
            RestoreFailedError: If the previous directory could not be
                restored. The lock is released before this is raised.
        """
        if self._closed:
            return
        if threading.current_thread() is not self._thread:
            raise LockOwnershipError(
                f"Guard for '{self._path}' was entered on {self._thread.name} "
                f"and cannot be closed from {threading.current_thread().name}"
            )
        stack = _guard_stack()
        if not stack or stack[-1] is not self:
            raise GuardOrderError(
                f"Guard for '{self._path}' closed while a nested guard is still active"
            )

        stack.pop()
        self._closed = True
        restore_error: OSError | None = None
        try:
            os.chdir(self._previous_directory)
        except OSError as exc:
            restore_error = exc
        finally:
            self._lock.release()

        try:
            if self._finalizer is not None:
                self._finalizer()
        finally:
            if restore_error is not None:
                self._restore_failed(restore_error)

        logger.debug("Left %s, back in %s", self._path, self._previous_directory)

    def _restore_failed(self, exc: OSError) -> None:
        logger.critical(
            "Could not restore working directory to %s: %s",
            self._previous_directory,
            exc,
        )
        if self._config.on_restore_failure == "abort":
            os.abort()
        raise RestoreFailedError(self._previous_directory, exc) from exc

    def __enter__(self) -> DirectoryGuard:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __fspath__(self) -> str:
        return os.fspath(self._path)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "active"
        return f"<DirectoryGuard {str(self._path)!r} {state}>"


def _open_guard(
    prepare: Callable[[], Any],
    finalizer: Callable[[], None] | None = None,
) -> DirectoryGuard:
    """Acquire the lock, snapshot the CWD, then change into ``prepare()``'s result.

    ``prepare`` runs with the lock held and returns the target directory.
    On any failure the lock unit is released and ``finalizer`` runs before
    the error propagates; the working directory is unchanged. The guard's
    path is read back with ``os.getcwd()`` so it names the directory actually
    entered, whatever form ``prepare()`` returned (str, bytes or an fd).
    """
    lock = get_directory_lock()
    config = get_config()
    depth = lock.acquire()
    try:
        try:
            previous_directory = os.getcwd()
        except OSError as exc:
            raise CwdUnreadableError.from_oserror(exc) from exc

        try:
            target = prepare()
            os.chdir(target)
        except OSError as exc:
            raise translate_oserror(exc) from exc

        try:
            path = Path(os.getcwd())
            guard = DirectoryGuard(path, previous_directory, lock, config, finalizer)
            _guard_stack().append(guard)
        except BaseException as exc:
            os.chdir(previous_directory)
            if isinstance(exc, OSError):
                raise CwdUnreadableError.from_oserror(exc) from exc
            raise
    except BaseException:
        lock.release()
        if finalizer is not None:
            finalizer()
        raise

    logger.debug("Entered %s from %s (depth %d)", path, previous_directory, depth)
    return guard


def enter(path: str | bytes | int | os.PathLike) -> DirectoryGuard:
    """Change the working directory to ``path`` until the guard is torn down.

    Blocks while another thread has an active guard. Nested calls on the
    thread that already holds one do not block.

    Args:
        path: Existing directory, absolute or relative to the current one,
            or an open directory fd where os.chdir accepts one.

    Returns:
        The active DirectoryGuard.

    Raises:
        DirectoryNotFoundError: If ``path`` does not exist.
        DirectoryNotADirectoryError: If ``path`` is not a directory.
        DirectoryPermissionError: If access to ``path`` is denied.
        CwdUnreadableError: If the current directory cannot be read.
    """
    return _open_guard(lambda: path)


def temp(
    suffix: str | None = None,
    prefix: str | None = None,
    dir: str | os.PathLike[str] | None = None,
) -> DirectoryGuard:
    """Enter a fresh temporary directory that is removed at teardown.

    Arguments are passed to tempfile.TemporaryDirectory.
    """
    holder: list[tempfile.TemporaryDirectory[str]] = []

    def prepare() -> str:
        holder.append(tempfile.TemporaryDirectory(suffix=suffix, prefix=prefix, dir=dir))
        return holder[0].name

    def finalizer() -> None:
        if holder:
            holder[0].cleanup()

    return _open_guard(prepare, finalizer)


def create(path: str | os.PathLike[str]) -> DirectoryGuard:
    """Make directory ``path`` and enter it. The directory outlives the guard.

    Raises:
        DirectoryExistsError: If ``path`` already exists.
        DirectoryNotFoundError: If the parent of ``path`` does not exist.
    """

    def prepare() -> str | os.PathLike[str]:
        os.mkdir(path)
        return path

    return _open_guard(prepare)


def create_all(path: str | os.PathLike[str]) -> DirectoryGuard:
    """Make ``path`` and any missing parents, then enter it.

    Existing directories are fine; the directories outlive the guard.
    """

    def prepare() -> str | os.PathLike[str]:
        os.makedirs(path, exist_ok=True)
        return path

    return _open_guard(prepare)
