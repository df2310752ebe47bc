"""
File-backed JSON key-value store.

This package provides a local key-value store with:
- get/set/has/delete(key) - dotted/indexed paths into one JSON document
- query(key, query, skip, take) - MongoDB-style filtering of a collection
- Optional AES-256-CBC encryption at rest
- Change notifications (loaded, persisted, changed, deleted, cleared)
"""

from kstor.engine.store import KStor
from kstor.models.exceptions import (
    DecryptError,
    DocumentDecodeError,
    InvalidPathError,
    KStorError,
    MalformedQueryError,
    StoreClosedError,
)
from kstor.models.options import KStorOptions

__all__ = [
    "DecryptError",
    "DocumentDecodeError",
    "InvalidPathError",
    "KStor",
    "KStorError",
    "KStorOptions",
    "MalformedQueryError",
    "StoreClosedError",
]
