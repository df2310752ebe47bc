"""
StoreItem - a top-level key and its value.
"""

from typing import Any, NamedTuple


class StoreItem(NamedTuple):
    """One entry yielded by KStor.iterate()."""

    key: str
    value: Any
