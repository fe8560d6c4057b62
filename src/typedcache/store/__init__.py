"""The JSON-file storage engine behind :class:`~typedcache.cache.TypedCache`.

One cache file holds the whole dataset. Every operation loads it, mutates it
in memory and rewrites it atomically, one operation at a time:

* :class:`JsonFileBackend` -- the public operation set.
* :class:`OperationSerializer` -- FIFO ordering of asynchronous operations.
* :class:`RecoveryLoader` -- loading with fallback to backup and temp files.
* :class:`AtomicFileWriter` -- temp-write / backup / rename persistence.
* :mod:`typedcache.store.index` -- tag-index maintenance.
* :mod:`typedcache.store.document` -- the JSON document codec.
"""

from typedcache.store.backend import JsonFileBackend
from typedcache.store.base import CacheBackend
from typedcache.store.loader import DocumentSource, LoadResult, RecoveryLoader
from typedcache.store.serializer import OperationSerializer
from typedcache.store.writer import AtomicFileWriter, FileArtifacts, PersistReport

__all__ = [
    "AtomicFileWriter",
    "CacheBackend",
    "DocumentSource",
    "FileArtifacts",
    "JsonFileBackend",
    "LoadResult",
    "OperationSerializer",
    "PersistReport",
    "RecoveryLoader",
]
