"""Data models for loaded books and reading progress."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import NamedTuple


class Style(enum.Flag):
    NONE = 0
    BOLD = enum.auto()
    ITALIC = enum.auto()
    UNDERLINE = enum.auto()


class StyleRun(NamedTuple):
    """Style state active from ``offset`` until the next run."""

    offset: int
    state: Style


class LinkSpan(NamedTuple):
    start: int
    end: int  # exclusive
    href: str


class Position(NamedTuple):
    chapter: int
    line: int


@dataclass
class Chapter:
    """One spine document rendered to a flat text buffer.

    Every other table indexes into ``text`` by offset; ``lines`` is the
    only field rewritten after load (on a width change).
    """

    title: str
    text: str
    style_runs: list[StyleRun] = field(
        default_factory=lambda: [StyleRun(0, Style.NONE)]
    )
    link_spans: list[LinkSpan] = field(default_factory=list)
    path: str = ""
    lines: list[tuple[int, int]] = field(default_factory=list)


@dataclass
class Book:
    file_path: str
    chapters: list[Chapter] = field(default_factory=list)
    # "ch.xhtml" or "ch.xhtml#frag" -> (chapter index, offset)
    links: dict[str, tuple[int, int]] = field(default_factory=dict)
    meta: str = ""


@dataclass
class ReadingProgress:
    file_path: str
    chapter_index: int = 0
    byte_offset: int = 0  # offset into the chapter text
    updated_at: float = field(default_factory=time.time)
