"""
Data models for the key-value store.
"""

from kstor.models.exceptions import (
    DecryptError,
    DocumentDecodeError,
    InvalidPathError,
    KStorError,
    MalformedQueryError,
    StoreClosedError,
)
from kstor.models.item import StoreItem
from kstor.models.options import KStorOptions, resolve_store_path
from kstor.models.path import Path
from kstor.models.query import Condition, LogicalGroup, NormalizedQuery, Operator

__all__ = [
    "Condition",
    "DecryptError",
    "DocumentDecodeError",
    "InvalidPathError",
    "KStorError",
    "KStorOptions",
    "LogicalGroup",
    "MalformedQueryError",
    "NormalizedQuery",
    "Operator",
    "Path",
    "StoreClosedError",
    "StoreItem",
    "resolve_store_path",
]
