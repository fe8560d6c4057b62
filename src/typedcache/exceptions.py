"""Exception hierarchy for typedcache.

All exceptions inherit from :class:`TypedCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`typedcache.exit_codes`.
The CLI entry point :func:`typedcache.app.main` catches ``TypedCacheError``
and exits with the appropriate code; library callers simply catch the
subclass they care about.

Corruption of the cache file is deliberately *not* part of this hierarchy:
the storage engine recovers from it internally (see
:mod:`typedcache.store.loader`). :class:`DocumentDecodeError` only travels
between the document codec and the loader.

Subclass hierarchy::

    TypedCacheError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- NotFoundError           (exit 4)
    +-- CacheBackendError       (exit 5)
    +-- CacheTypeMismatchError  (exit 6)
    +-- CacheDecodeError        (exit 6)
    +-- ConfigError             (exit 1)
"""

from __future__ import annotations

from typedcache.exit_codes import (
    EXIT_BACKEND_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)


class TypedCacheError(Exception):
    """Base exception for all typedcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`typedcache.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(TypedCacheError):
    """Raised for invalid arguments, e.g. a cache call without any codec."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(TypedCacheError):
    """Raised by the CLI when a requested key is not in the cache."""

    exit_code = EXIT_NOT_FOUND


class CacheBackendError(TypedCacheError):
    """Raised when the cache file cannot be read or written.

    Wraps the underlying :class:`OSError` (available as ``__cause__``).
    Never raised for a corrupted file; corruption is recovered silently.
    """

    exit_code = EXIT_BACKEND_ERROR


class CacheTypeMismatchError(TypedCacheError):
    """Raised when a stored entry's ``type_id`` differs from the requested codec's.

    Only raised when the cache is configured with
    ``delete_corrupted_entries=False``; otherwise the entry is evicted.
    """

    exit_code = EXIT_DECODE_ERROR


class CacheDecodeError(TypedCacheError):
    """Raised when a codec fails to decode a stored payload.

    Only raised when the cache is configured with
    ``delete_corrupted_entries=False``; otherwise the entry is evicted.
    """

    exit_code = EXIT_DECODE_ERROR


class ConfigError(TypedCacheError):
    """Raised for configuration problems (invalid JSON, bad location names)."""

    exit_code = EXIT_GENERIC_FAILURE


class DocumentDecodeError(ValueError):
    """Raised by the document codec when text is not a well-shaped cache document.

    Internal to the storage engine: the recovery loader turns it into a
    recovery attempt and it never reaches callers of the backend.
    """
