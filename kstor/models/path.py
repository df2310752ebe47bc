"""
Path - parsed form of a dotted/bracketed property path.
"""

import re
from dataclasses import dataclass

from kstor.models.exceptions import InvalidPathError

# name followed by zero or more [index] groups, e.g. "tags[0][1]"
_SEGMENT = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")


@dataclass(frozen=True)
class Path:
    """
    Ordered sequence of path segments.

    Attributes:
        segments: Property names (str) and array indices (int), root first.
    """

    segments: tuple[str | int, ...]

    @classmethod
    def parse(cls, path: "str | Path") -> "Path":
        """
        Parse a path string such as `blogs.nba.days[1]`.

        Args:
            path: The path string, or an already parsed Path.

        Returns:
            The parsed Path.

        Raises:
            InvalidPathError: If the path is empty, has an empty segment,
                or contains malformed brackets.
        """
        if isinstance(path, Path):
            return path
        if not isinstance(path, str):
            raise InvalidPathError(repr(path), f"expected str, got {type(path).__name__}")
        if not path:
            raise InvalidPathError(path, "path is empty")

        segments: list[str | int] = []
        for part in path.split("."):
            if not part:
                raise InvalidPathError(path, "empty segment")

            match = _SEGMENT.match(part)
            if match is None:
                raise InvalidPathError(path, f"malformed segment {part!r}")

            name, indices = match.groups()
            if name:
                segments.append(name)
            segments.extend(int(i) for i in _INDEX.findall(indices))

        return cls(tuple(segments))

    def join(self, other: "str | Path") -> "Path":
        """Return a new Path with `other` appended below this one."""
        return Path(self.segments + Path.parse(other).segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        out = ""
        for segment in self.segments:
            if isinstance(segment, int):
                out += f"[{segment}]"
            else:
                out += f".{segment}" if out else segment
        return out
