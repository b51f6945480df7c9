"""Errors raised by shokolat, each tied to a process exit code.

Library code raises; only the CLI layer (the commands and
:func:`shokolat.app.main`) prints a :class:`ShokolatError` and exits with
its ``exit_code``. The engines catch their own per-request failures and
never let these escape into the proxy.

::

    ShokolatError            exit 1
    |-- InvalidUsageError    exit 2
    |-- ConnectionError_     exit 6
    |-- CacheKeyError        exit 1
    `-- ConfigError          exit 1
        `-- PatternError     exit 7
"""

from shokolat.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PATTERN_ERROR,
)


class ShokolatError(Exception):
    """Base class; ``exit_code`` comes from :mod:`shokolat.exit_codes`.

    Args:
        message: Shown to the user on stderr.
        exit_code: Replaces the class default for this one instance.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ShokolatError):
    """A command was given an argument it cannot act on."""

    exit_code = EXIT_INVALID_USAGE


class ConnectionError_(ShokolatError):
    """An origin could not be reached or the transfer broke off.

    The trailing underscore keeps the builtin ``ConnectionError`` visible.
    """

    exit_code = EXIT_CONNECTION_ERROR


class CacheKeyError(ShokolatError):
    """A URL has no safe file under the cache root.

    Covers ``..`` segments, NUL bytes, and URLs whose key would have no
    file name (``/``, ``/dir/``).
    """


class ConfigError(ShokolatError):
    """Settings are unreadable or invalid, or the cache root is unusable."""


class PatternError(ConfigError):
    """The cache list cannot be read or one of its lines is not a valid regex."""

    exit_code = EXIT_PATTERN_ERROR
