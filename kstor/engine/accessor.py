"""
PathAccessor - get/has/set/delete against nested dicts and lists.

Rules shared by all operations:
- Dicts are addressed by key. An int segment addresses the key str(index),
  as JSON object keys are always strings.
- Lists are addressed by non-negative index. A digit-only name segment is
  accepted as an index.
- Walking through anything else (str, number, bool, None) resolves to
  nothing. get/has report "not found"; set and delete do nothing.
- A None slot inside a list is a hole: delete leaves one behind and has()
  reports it as absent. A None value under a dict key is present.
"""

from typing import Any

from kstor.models.path import Path


class _Missing:
    """Marker for a location that does not exist."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _as_index(segment: str | int) -> int | None:
    if isinstance(segment, int):
        return segment
    if segment.isdigit():
        return int(segment)
    return None


def _child(node: Any, segment: str | int) -> Any:
    """Return the child of `node` at `segment`, or MISSING."""
    if isinstance(node, dict):
        return node.get(str(segment), MISSING)

    if isinstance(node, list):
        index = _as_index(segment)
        if index is None or index >= len(node):
            return MISSING
        return node[index]

    return MISSING


def _assign(node: Any, segment: str | int, value: Any) -> bool:
    """Store `value` in `node` at `segment`. Returns False if not possible."""
    if isinstance(node, dict):
        node[str(segment)] = value
        return True

    if isinstance(node, list):
        index = _as_index(segment)
        if index is None:
            return False
        if index >= len(node):
            node.extend([None] * (index + 1 - len(node)))
        node[index] = value
        return True

    return False


def get(root: Any, path: str | Path, default: Any = None) -> Any:
    """
    Get the value at `path`.

    Args:
        root: The nested structure to read.
        path: Path string or parsed Path.
        default: Returned when the path does not resolve.

    Returns:
        The value found, or `default`.

    Raises:
        InvalidPathError: If `path` cannot be parsed.
    """
    node = root
    for segment in Path.parse(path).segments:
        node = _child(node, segment)
        if node is MISSING:
            return default
    return node


def has(root: Any, path: str | Path) -> bool:
    """True if `path` resolves to a location in `root`."""
    segments = Path.parse(path).segments
    parent = get(root, Path(segments[:-1]), MISSING)
    value = _child(parent, segments[-1])
    if value is MISSING:
        return False
    if value is None and isinstance(parent, list):
        return False
    return True


def set(root: Any, path: str | Path, value: Any) -> None:
    """
    Assign `value` at `path`, creating intermediate containers.

    A list is created when the following segment is an int index, a dict
    otherwise. Existing None values along the way are replaced.
    """
    segments = Path.parse(path).segments
    node = root
    for segment, following in zip(segments, segments[1:]):
        child = _child(node, segment)
        if child is MISSING or child is None:
            child = [] if isinstance(following, int) else {}
            if not _assign(node, segment, child):
                return
        elif not isinstance(child, (dict, list)):
            # Scalar in the way
            return
        node = child

    _assign(node, segments[-1], value)


def delete(root: Any, path: str | Path) -> None:
    """
    Remove the value at `path`. No-op if the path does not resolve.

    Removing a list element leaves a hole so later indices keep their
    positions. Removing the last element shortens the list by one.
    """
    segments = Path.parse(path).segments
    parent = get(root, Path(segments[:-1]), MISSING)
    last = segments[-1]

    if isinstance(parent, dict):
        parent.pop(str(last), None)
        return

    if isinstance(parent, list):
        index = _as_index(last)
        if index is None or index >= len(parent):
            return
        if index == len(parent) - 1:
            parent.pop()
        else:
            parent[index] = None
