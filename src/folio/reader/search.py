"""Substring search across chapters in spine order."""

from __future__ import annotations

import enum
from typing import Iterator, Optional, Sequence

from folio.library.models import Chapter, Position

from .reflow import line_of


class Direction(enum.Enum):
    FORWARD = "/"
    BACKWARD = "?"


def _forward(
    chapters: Sequence[Chapter], chapter: int, offset: int, query: str
) -> Iterator[tuple[int, int]]:
    yield chapter, chapters[chapter].text.find(query, offset)
    for c in range(chapter + 1, len(chapters)):
        yield c, chapters[c].text.find(query)


def _backward(
    chapters: Sequence[Chapter], chapter: int, offset: int, query: str
) -> Iterator[tuple[int, int]]:
    yield chapter, chapters[chapter].text.rfind(query, 0, offset)
    for c in range(chapter - 1, -1, -1):
        yield c, chapters[c].text.rfind(query)


def search(
    chapters: Sequence[Chapter],
    position: Position,
    query: str,
    direction: Direction,
    skip: bool = False,
) -> Optional[Position]:
    """Find the next occurrence of ``query`` from ``position``.

    Forward searches start at the current line's start (its end when
    ``skip`` is set, so a match on the current line is passed over);
    backward searches mirror that. Each chapter is scanned on its own, so
    a query split across a chapter boundary never matches.
    """
    start, end = chapters[position.chapter].lines[position.line]
    if direction is Direction.FORWARD:
        scan = _forward(chapters, position.chapter, end if skip else start, query)
    else:
        scan = _backward(chapters, position.chapter, start if skip else end, query)

    for chapter, offset in scan:
        if offset >= 0:
            return Position(chapter, line_of(chapters[chapter].lines, offset))
    return None
