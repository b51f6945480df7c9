"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~shokolat.exceptions.ShokolatError` subclass.
Service managers and shell wrappers can inspect the exit code to tell a
bad cache list apart from an unreachable origin without parsing stderr.

Example::

    $ shokolat serve --cl broken.txt
    $ echo $?
    7   # EXIT_PATTERN_ERROR -- the cache list did not compile
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while fetching from an origin."""

EXIT_PATTERN_ERROR = 7
"""The cache list could not be read or contains an invalid regular expression."""
