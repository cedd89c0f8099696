"""Hit-testing of link spans and resolution of hrefs to book positions."""

from __future__ import annotations

import posixpath
from typing import Optional, Sequence
from urllib.parse import unquote, urlsplit

from folio.library.models import LinkSpan

from .reflow import char_width


def column_to_offset(text: str, span: tuple[int, int], column: int) -> Optional[int]:
    """Offset of the character drawn at ``column`` of a line, if any."""
    start, end = span
    cols = 0
    for i in range(start, end):
        cols += char_width(text[i])
        if cols > column:
            return i
    return None


def find_link(spans: Sequence[LinkSpan], offset: int) -> Optional[LinkSpan]:
    """Binary search for the span containing ``offset``."""
    lo, hi = 0, len(spans)
    while lo < hi:
        mid = (lo + hi) // 2
        span = spans[mid]
        if offset < span.start:
            hi = mid
        elif offset >= span.end:
            lo = mid + 1
        else:
            return span
    return None


def resolve_href(
    links: dict[str, tuple[int, int]], href: str
) -> Optional[tuple[int, int]]:
    """Look up ``href`` in the book's link table.

    Keys are chapter file names, optionally with a fragment. An href whose
    fragment is not registered falls back to the start of its chapter;
    external URLs never resolve.
    """
    if urlsplit(href).scheme:
        return None
    path, _, frag = href.partition("#")
    name = posixpath.basename(unquote(path))
    if frag and f"{name}#{frag}" in links:
        return links[f"{name}#{frag}"]
    return links.get(name)
