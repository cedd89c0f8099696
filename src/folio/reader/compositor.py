"""Merge style runs and search highlights into renderable line strings."""

from __future__ import annotations

import heapq
from bisect import bisect_right
from typing import Iterable, NamedTuple

from folio.library.models import Chapter, Style, StyleRun

RESET = "\x1b[0m"
HIGHLIGHT_ON = "\x1b[7m"
HIGHLIGHT_OFF = "\x1b[27m"

# Style -> (on, off) SGR sequences
SGR = {
    Style.BOLD: ("\x1b[1m", "\x1b[22m"),
    Style.ITALIC: ("\x1b[3m", "\x1b[23m"),
    Style.UNDERLINE: ("\x1b[4m", "\x1b[24m"),
}


class Event(NamedTuple):
    offset: int
    token: str


def _run_at(runs: list[StyleRun], offset: int) -> int:
    return max(0, bisect_right(runs, offset, key=lambda r: r.offset) - 1)


def base_events(runs: list[StyleRun], text_start: int, text_end: int) -> list[Event]:
    """Style transitions for ``[text_start, text_end]``.

    The state active at ``text_start`` is replayed as "on" events so the
    first visible line starts correctly styled.
    """
    i = _run_at(runs, text_start)
    state = runs[i].state
    events = [Event(text_start, SGR[s][0]) for s in SGR if s in state]
    for run in runs[i + 1 :]:
        if run.offset > text_end:
            break
        for s, (on, off) in SGR.items():
            if s in state and s not in run.state:
                events.append(Event(run.offset, off))
        for s, (on, off) in SGR.items():
            if s in run.state and s not in state:
                events.append(Event(run.offset, on))
        state = run.state
    return events


def highlight_events(text: str, text_start: int, text_end: int, query: str) -> list[Event]:
    events: list[Event] = []
    if not query:
        return events
    pos = text.find(query, text_start, text_end)
    while pos >= 0:
        events.append(Event(pos, HIGHLIGHT_ON))
        events.append(Event(pos + len(query), HIGHLIGHT_OFF))
        pos = text.find(query, pos + len(query), text_end)
    return events


def merge_events(base: Iterable[Event], highlight: Iterable[Event]) -> list[Event]:
    """Merge by offset; on ties base events come first."""
    return list(heapq.merge(base, highlight, key=lambda e: e.offset))


def splice(text: str, spans: list[tuple[int, int]], events: list[Event]) -> list[str]:
    """Insert event tokens into the text of each span."""
    out = []
    it = iter(events)
    pending = next(it, None)
    for start, end in spans:
        parts = []
        while pending is not None and pending.offset <= end:
            if pending.offset > start:
                parts.append(text[start : pending.offset])
                start = pending.offset
            parts.append(pending.token)
            pending = next(it, None)
        parts.append(text[start:end])
        out.append("".join(parts))
    return out


def compose(chapter: Chapter, first_line: int, count: int, query: str = "") -> list[str]:
    """Render ``count`` lines of ``chapter`` starting at ``first_line``."""
    spans = chapter.lines[first_line : first_line + count]
    if not spans:
        return []
    text_start = spans[0][0]
    text_end = spans[-1][1]
    events = merge_events(
        base_events(chapter.style_runs, text_start, text_end),
        highlight_events(chapter.text, text_start, text_end, query),
    )
    return splice(chapter.text, spans, events)
