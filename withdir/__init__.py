"""withdir: Scoped, thread-serialized changes of the working directory."""

from .config import WithDirConfig, configure, get_config
from .errors import (
    CwdUnreadableError,
    DirectoryError,
    DirectoryExistsError,
    DirectoryNotADirectoryError,
    DirectoryNotFoundError,
    DirectoryPermissionError,
    GuardOrderError,
    LockOwnershipError,
    RestoreFailedError,
)
from .guard import DirectoryGuard, create, create_all, enter, temp
from .lock import ReentrantDirectoryLock, get_directory_lock

__all__ = [
    "configure",
    "create",
    "create_all",
    "CwdUnreadableError",
    "DirectoryError",
    "DirectoryExistsError",
    "DirectoryGuard",
    "DirectoryNotADirectoryError",
    "DirectoryNotFoundError",
    "DirectoryPermissionError",
    "enter",
    "get_config",
    "get_directory_lock",
    "GuardOrderError",
    "LockOwnershipError",
    "ReentrantDirectoryLock",
    "RestoreFailedError",
    "temp",
    "WithDirConfig",
]
