"""typedcache -- a persistent, typed key-value cache stored in one JSON file.

Values are encoded by codecs, stamped with an expiry, optionally tagged, and
persisted with a crash-safe write protocol: the cache file is never observed
half-written, and a corrupted file is recovered from its backup.

Typical use::

    import typedcache

    cache = typedcache.create()
    await cache.put("user:1", {"name": "Ada"}, ttl=timedelta(minutes=5), tags={"users"})
    user = await cache.get("user:1")
    await cache.invalidate_by_tag("users")

Modules:
    cache: The :class:`TypedCache` façade.
    store: The storage engine (:class:`JsonFileBackend` and its parts).
    codecs: Value codecs.
    clock / ttl: Time source and expiry policy.
    models: Pydantic models shared across the package.
    config: XDG-aware settings and cache path resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: The ``typedcache`` inspection CLI.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from typedcache.cache import TypedCache
from typedcache.clock import Clock, ManualClock, SystemClock
from typedcache.codecs import CacheCodec, JsonCodec, JsonMapCodec, ModelCodec
from typedcache.config import cache_path_for, resolve_settings
from typedcache.models import CacheDocument, CacheEntry, CacheLocation, CacheSettings
from typedcache.store import JsonFileBackend
from typedcache.ttl import DefaultTtlPolicy, TtlPolicy

__version__ = "0.1.0"

__all__ = [
    "CacheCodec",
    "CacheDocument",
    "CacheEntry",
    "CacheLocation",
    "CacheSettings",
    "Clock",
    "DefaultTtlPolicy",
    "JsonCodec",
    "JsonFileBackend",
    "JsonMapCodec",
    "ManualClock",
    "ModelCodec",
    "SystemClock",
    "TtlPolicy",
    "TypedCache",
    "create",
]


def create(
    settings: Optional[CacheSettings] = None,
    *,
    logger: Optional[logging.Logger] = None,
    clock: Optional[Clock] = None,
    default_codec: Optional[CacheCodec[Any, Any]] = None,
) -> TypedCache:
    """Create a :class:`TypedCache` backed by a JSON file.

    Args:
        settings: Where and how to store the cache. Defaults to the
            settings resolved by :func:`~typedcache.config.resolve_settings`
            (user config, project config, environment).
        logger: Sink for non-fatal diagnostics of both the cache and its
            storage backend.
        clock: Time source. Defaults to the system clock.
        default_codec: Codec used when calls omit one. Defaults to
            :class:`JsonCodec`.

    Returns:
        A ready-to-use cache. No file is touched until the first operation.

    Raises:
        ConfigError: If the resolved settings are invalid.

    Example::

        cache = create(CacheSettings(location=CacheLocation.CACHE, subdir="my_app"))
    """
    if settings is None:
        settings = resolve_settings()

    backend = JsonFileBackend(
        cache_path_for(settings),
        enable_recovery=settings.enable_recovery,
        logger=logger,
    )
    default_ttl = (
        timedelta(seconds=settings.default_ttl_seconds)
        if settings.default_ttl_seconds is not None
        else None
    )
    return TypedCache(
        backend,
        clock=clock,
        ttl_policy=DefaultTtlPolicy(default_ttl),
        logger=logger,
        delete_corrupted_entries=settings.delete_corrupted_entries,
        default_codec=default_codec or JsonCodec(),
    )
