"""Line wrapping and the offset -> line index."""

from __future__ import annotations

import unicodedata
from bisect import bisect_right

BREAK_AFTER = ("-", "—")


def char_width(ch: str) -> int:
    """Terminal columns taken by one character."""
    if unicodedata.combining(ch) or unicodedata.category(ch) in ("Mn", "Me", "Cf", "Cc"):
        return 0
    if unicodedata.east_asian_width(ch) in ("F", "W"):
        return 2
    return 1


def display_width(text: str) -> int:
    return sum(char_width(ch) for ch in text)


def truncate(text: str, width: int) -> str:
    """Cut ``text`` to ``width`` columns, marking the cut with an ellipsis."""
    if display_width(text) <= width:
        return text
    out: list[str] = []
    cols = 0
    for ch in text:
        w = char_width(ch)
        if cols + w > width - 1:
            break
        out.append(ch)
        cols += w
    return "".join(out) + "…"


def wrap(text: str, max_cols: int) -> list[tuple[int, int]]:
    """Split ``text`` into ``(start, end)`` spans no wider than ``max_cols``.

    Newlines always break and spaces are preferred break points; both are
    consumed and belong to no span. A hyphen or em dash that still fits
    ends its line. A word longer than the width is cut where it overflows.
    """
    max_cols = max(1, max_cols)
    lines: list[tuple[int, int]] = []
    start = 0
    end = 0
    # columns since the last break opportunity
    after = 0
    # columns of the current unbroken line
    cols = 0
    # does the pending break consume a character?
    space = False

    for i, ch in enumerate(text):
        w = char_width(ch)
        cols += w
        if ch == "\n":
            after = 0
            end = i
            space = True
            cols = max_cols + 1
        elif ch == " ":
            after = 0
            end = i
            space = True
        elif ch in BREAK_AFTER and cols <= max_cols:
            after = 0
            end = i + 1
            space = False
        else:
            after += w

        if cols > max_cols:
            if cols == after and i == start:
                # a lone character wider than the line keeps it to itself
                continue
            if cols == after:
                # single token wider than the line
                after = w
                end = i
                space = False
            lines.append((start, end))
            start = end + 1 if space else end
            cols = after
            if cols > max_cols and i > start:
                # the carried-over word still overflows: cut before this character
                lines.append((start, i))
                start = i
                cols = after = w

    if start < len(text):
        lines.append((start, len(text)))
    return lines or [(0, 0)]


def line_of(lines: list[tuple[int, int]], offset: int) -> int:
    """Index of the last line starting at or before ``offset``."""
    return max(0, bisect_right(lines, offset, key=lambda span: span[0]) - 1)
