"""Exceptions raised by withdir.

``DirectoryError`` and its subclasses are recoverable: when ``enter()``
raises one, the lock and the working directory have already been rolled
back. ``RestoreFailedError`` and ``LockOwnershipError`` are not part of
that taxonomy.
"""

from __future__ import annotations

import errno


class DirectoryError(OSError):
    """A directory could not be entered.

    Carries ``errno``, ``strerror`` and ``filename`` of the underlying
    OSError, which is also chained as ``__cause__``.
    """

    @classmethod
    def from_oserror(cls, exc: OSError) -> DirectoryError:
        if exc.errno is None:
            return cls(str(exc))
        return cls(exc.errno, exc.strerror, exc.filename)


class DirectoryNotFoundError(DirectoryError):
    """Target directory does not exist."""


class DirectoryNotADirectoryError(DirectoryError):
    """Target exists but is not a directory."""


class DirectoryPermissionError(DirectoryError):
    """The OS refused to change into the target."""


class DirectoryExistsError(DirectoryError):
    """``create()`` target already exists."""


class CwdUnreadableError(DirectoryError):
    """The working directory could not be read before the change."""


class RestoreFailedError(BaseException):
    """The previous working directory could not be restored.

    Derives from BaseException so ``except Exception`` does not swallow it:
    after this the process CWD is unknown and relative paths are unsafe.
    The directory lock has already been released when this is raised.
    """

    def __init__(self, previous_directory: str, cause: OSError):
        super().__init__(
            f"Could not restore working directory to '{previous_directory}': {cause}"
        )
        self.previous_directory = previous_directory


class LockOwnershipError(RuntimeError):
    """The directory lock or a guard was released by a thread that does not own it."""


class GuardOrderError(LockOwnershipError):
    """A guard was torn down while a guard entered after it was still active."""


_ERRNO_MAP: dict[int, type[DirectoryError]] = {
    errno.ENOENT: DirectoryNotFoundError,
    errno.ENOTDIR: DirectoryNotADirectoryError,
    errno.EACCES: DirectoryPermissionError,
    errno.EPERM: DirectoryPermissionError,
    errno.EEXIST: DirectoryExistsError,
}


def translate_oserror(exc: OSError) -> DirectoryError:
    """Map an OSError from chdir/mkdir to the matching DirectoryError."""
    error_cls = _ERRNO_MAP.get(exc.errno, DirectoryError) if exc.errno else DirectoryError
    return error_cls.from_oserror(exc)
