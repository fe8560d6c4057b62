"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~typedcache.exceptions.TypedCacheError` subclass.
Shell scripts wrapping the ``typedcache`` command can inspect the exit code
to tell a missing key apart from a broken cache directory without parsing
stderr.

Example::

    $ typedcache get session:42
    $ echo $?
    4   # EXIT_NOT_FOUND -- no entry stored under that key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""The requested cache entry does not exist."""

EXIT_BACKEND_ERROR = 5
"""The cache file could not be read or written (permissions, disk full, ...)."""

EXIT_DECODE_ERROR = 6
"""A stored value could not be decoded with the requested codec."""
