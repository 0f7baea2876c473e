"""Explicit path expressions: ``Field(name) | Index(i) | Key(k)``.

Paths are the attribute-free way to reach a position::

    parse_path("tasks[0].title")   # (Field("tasks"), Index(0), Field("title"))
    parse_path('todos["a b"]')     # (Field("todos"), Key("a b"))

Stepping a cursor always goes through :meth:`Cursor.step`, so the
position's live kind decides how a selector is interpreted; the segment
type records what the caller meant and how the path is printed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from localfirst.core.errors import UnsupportedTraversal


@dataclass(frozen=True)
class Field:
    name: str

    @property
    def selector(self) -> str:
        return self.name


@dataclass(frozen=True)
class Index:
    index: int

    @property
    def selector(self) -> int:
        return self.index


@dataclass(frozen=True)
class Key:
    key: Any

    @property
    def selector(self) -> Any:
        return self.key


Segment = Field | Index | Key
Path = tuple[Segment, ...]

_TOKEN_RE = re.compile(
    r"""
    (?P<dot>\.)?(?P<name>[A-Za-z_][A-Za-z0-9_]*)   # .field
    | \[(?P<index>\d+)\]                           # [3]
    | \[(?P<quote>["'])(?P<key>(?:\\.|(?!(?P=quote)).)*)(?P=quote)\]  # ["key"]
    """,
    re.VERBOSE,
)


def parse_path(text: str) -> Path:
    """Parse ``a.b[0]["k"]`` into path segments."""
    segments: list[Segment] = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or (match.group("name") and segments and not match.group("dot")):
            raise UnsupportedTraversal(f"Cannot parse path {text!r} at offset {pos}")
        if match.group("name") is not None:
            if match.group("dot") and not segments:
                raise UnsupportedTraversal(f"Path {text!r} must not start with '.'")
            segments.append(Field(match.group("name")))
        elif match.group("index") is not None:
            segments.append(Index(int(match.group("index"))))
        else:
            segments.append(Key(re.sub(r"\\(.)", r"\1", match.group("key"))))
        pos = match.end()
    return tuple(segments)


def format_path(path: Path) -> str:
    """Render segments back into the text accepted by :func:`parse_path`."""
    parts: list[str] = []
    for segment in path:
        if isinstance(segment, Field):
            parts.append(f".{segment.name}" if parts else segment.name)
        elif isinstance(segment, Index):
            parts.append(f"[{segment.index}]")
        else:
            escaped = str(segment.key).replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'["{escaped}"]')
    return "".join(parts)


def as_path(path: str | Path | list) -> Path:
    """Accept path text or a sequence of segments/selectors."""
    if isinstance(path, str):
        return parse_path(path)
    segments: list[Segment] = []
    for item in path:
        if isinstance(item, (Field, Index, Key)):
            segments.append(item)
        elif isinstance(item, int) and not isinstance(item, bool):
            segments.append(Index(item))
        elif isinstance(item, str):
            segments.append(Field(item))
        else:
            raise UnsupportedTraversal(f"Not a path segment: {item!r}")
    return tuple(segments)
