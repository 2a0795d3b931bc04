"""
Path patterns and request path handling.

A pattern is compiled once, at rule construction, into a tuple of segment
specifiers:

    users/{userId}            -> (LiteralSegment("users"), Capture("userId"))
    analytics/{document=**}   -> (LiteralSegment("analytics"), RecursiveCapture("document"))

Matching a request path against a compiled pattern is a single left-to-right
walk over both sequences, so evaluation never re-parses pattern text.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from pathrules.errors import InvalidPathError, InvalidPatternError

RECURSIVE_SUFFIX = "=**"


@dataclass(frozen=True)
class LiteralSegment:
    """Matches one segment equal to `name` (case-sensitive)."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Capture:
    """Matches any one segment and binds it to `name`."""

    name: str

    def __str__(self) -> str:
        return "{" + self.name + "}"


@dataclass(frozen=True)
class RecursiveCapture:
    """Matches zero or more trailing segments and binds them, joined by '/'."""

    name: str

    def __str__(self) -> str:
        return "{" + self.name + RECURSIVE_SUFFIX + "}"


Segment = LiteralSegment | Capture | RecursiveCapture


@dataclass(frozen=True)
class PathPattern:
    """
    A compiled path pattern.

    Invariants (checked on construction):
        - at least one segment
        - a RecursiveCapture may only be the final segment
        - capture names are identifiers and unique within the pattern

    Attributes:
        segments: Ordered segment specifiers
    """

    segments: tuple[Segment, ...]

    def __post_init__(self) -> None:
        text = str(self)
        if not self.segments:
            raise InvalidPatternError(pattern=text, reason="pattern is empty")

        seen: set[str] = set()
        last = len(self.segments) - 1
        for i, segment in enumerate(self.segments):
            if isinstance(segment, RecursiveCapture) and i != last:
                raise InvalidPatternError(
                    pattern=text,
                    reason=f"recursive capture {segment} must be the last segment",
                )
            if isinstance(segment, LiteralSegment):
                if not segment.name or "/" in segment.name:
                    raise InvalidPatternError(
                        pattern=text,
                        reason=f"invalid literal segment {segment.name!r}",
                    )
                continue
            if not segment.name.isidentifier():
                raise InvalidPatternError(
                    pattern=text,
                    reason=f"invalid capture name {segment.name!r}",
                )
            if segment.name in seen:
                raise InvalidPatternError(
                    pattern=text,
                    reason=f"capture {segment.name!r} appears more than once",
                )
            seen.add(segment.name)

    @classmethod
    def parse(cls, text: str) -> "PathPattern":
        """
        Compile pattern text such as "/users/{userId}".

        One leading '/' is ignored. Raises InvalidPatternError for empty
        patterns, empty segments, stray braces and misplaced recursive
        captures.
        """
        body = text[1:] if text.startswith("/") else text
        if not body:
            raise InvalidPatternError(pattern=text, reason="pattern is empty")

        segments: list[Segment] = []
        for part in body.split("/"):
            if not part:
                raise InvalidPatternError(pattern=text, reason="pattern has an empty segment")
            if part.startswith("{") and part.endswith("}"):
                inner = part[1:-1]
                if inner.endswith(RECURSIVE_SUFFIX):
                    segments.append(RecursiveCapture(inner[: -len(RECURSIVE_SUFFIX)]))
                else:
                    segments.append(Capture(inner))
            elif "{" in part or "}" in part:
                raise InvalidPatternError(
                    pattern=text,
                    reason=f"malformed segment {part!r}",
                )
            else:
                segments.append(LiteralSegment(part))

        return cls(tuple(segments))

    def __str__(self) -> str:
        return "/" + "/".join(str(s) for s in self.segments)

    @property
    def variables(self) -> frozenset[str]:
        """Names bound by this pattern's captures."""
        return frozenset(s.name for s in self.segments if not isinstance(s, LiteralSegment))

    @property
    def is_recursive(self) -> bool:
        return isinstance(self.segments[-1], RecursiveCapture)

    def match(self, path: Sequence[str]) -> dict[str, str] | None:
        """
        Match already-split path segments.

        Returns:
            Fresh bindings dict on success, None if the path doesn't match
        """
        bindings: dict[str, str] = {}
        for i, spec in enumerate(self.segments):
            if isinstance(spec, RecursiveCapture):
                bindings[spec.name] = "/".join(path[i:])
                return bindings
            if i >= len(path):
                return None
            if isinstance(spec, LiteralSegment):
                if path[i] != spec.name:
                    return None
            else:
                bindings[spec.name] = path[i]

        if len(path) != len(self.segments):
            return None
        return bindings


def compile_pattern(pattern: "PathPattern | str") -> PathPattern:
    """Return `pattern` compiled, parsing it first if given as text."""
    if isinstance(pattern, PathPattern):
        return pattern
    return PathPattern.parse(pattern)


def split_path(path: str | Sequence[str]) -> tuple[str, ...]:
    """
    Normalize a request path into its segments.

    Accepts "users/alice", "/users/alice" or ["users", "alice"].

    Raises:
        InvalidPathError: If the path is empty or has an empty segment
    """
    if isinstance(path, str):
        body = path[1:] if path.startswith("/") else path
        if not body:
            raise InvalidPathError(path=path, reason="path is empty")
        segments = tuple(body.split("/"))
        if any(not s for s in segments):
            raise InvalidPathError(path=path, reason="path has an empty segment")
        return segments

    segments = tuple(path)
    shown = "/".join(str(s) for s in segments)
    if not segments:
        raise InvalidPathError(path=shown, reason="path is empty")
    for segment in segments:
        if not isinstance(segment, str):
            raise InvalidPathError(
                path=shown,
                reason=f"segment {segment!r} is not a string",
            )
        if not segment:
            raise InvalidPathError(path=shown, reason="path has an empty segment")
        if "/" in segment:
            raise InvalidPathError(
                path=shown,
                reason=f"segment {segment!r} contains '/'",
            )
    return segments
