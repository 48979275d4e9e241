"""Configuration for directory guards.

Provides the WithDirConfig dataclass and the configure() factory that
installs it as the process default.
"""

import threading
from dataclasses import dataclass
from typing import Literal

RestorePolicy = Literal["raise", "abort"]

_RESTORE_POLICIES = ("raise", "abort")


@dataclass(frozen=True)
class WithDirConfig:
    """Process-wide behavior of directory guards.

    Attributes:
        on_restore_failure: What a guard does when the previous working
            directory cannot be restored at teardown.
            - "raise": raise RestoreFailedError (default).
            - "abort": log and terminate the process with os.abort().
            The directory lock is released first in both cases.
    """

    on_restore_failure: RestorePolicy = "raise"


_config = WithDirConfig()
_config_lock = threading.Lock()


def get_config() -> WithDirConfig:
    """Return the current process default configuration."""
    with _config_lock:
        return _config


def configure(**kwargs) -> WithDirConfig:
    """Install a new process default configuration.

    Guards snapshot the configuration when they are entered, so the change
    applies to guards entered afterwards.

    Args:
        **kwargs: Fields of WithDirConfig.
            - on_restore_failure (str): "raise" or "abort".

    Returns:
        The installed WithDirConfig.

    Examples:
        >>> configure(on_restore_failure="raise")
        WithDirConfig(on_restore_failure='raise')
    """
    global _config
    on_restore_failure = kwargs.pop("on_restore_failure", "raise")
    if kwargs:
        raise ValueError(f"Unexpected configuration arguments: {list(kwargs.keys())}")
    if on_restore_failure not in _RESTORE_POLICIES:
        raise ValueError(
            f"Unsupported restore failure policy: {on_restore_failure}. "
            "Use 'raise' or 'abort'."
        )

    new_config = WithDirConfig(on_restore_failure=on_restore_failure)
    with _config_lock:
        _config = new_config
    return new_config
