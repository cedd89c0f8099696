"""Render chapter XHTML into a flat text buffer with style and link tables."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from html.entities import html5

from bs4 import BeautifulSoup, CData, NavigableString, Tag
from lxml import etree

from folio.library.models import LinkSpan, Style, StyleRun

log = logging.getLogger(__name__)

_XML_ENTITIES = frozenset(["amp", "lt", "gt", "quot", "apos"])
_ENTITY_RE = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_ASCII_SPACE = " \t\n\r\f"
_ASCII_SPACE_RE = re.compile(r"[ \t\n\r\f]+")

HEADINGS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6"])
BLOCKS = frozenset(["p", "div", "blockquote", "tr", "section"])
SKIPPED = frozenset(["script", "style", "head"])


def register_entities(markup: str) -> str:
    """Replace HTML named entities with numeric references.

    XML only predeclares five entities, but EPUB chapters routinely use
    ``&nbsp;``, ``&mdash;`` and friends without a DTD.
    """

    def replace(m: re.Match) -> str:
        name = m.group(1)
        if name in _XML_ENTITIES:
            return m.group(0)
        chars = html5.get(name + ";")
        if chars is None:
            return m.group(0)
        return "".join(f"&#{ord(c)};" for c in chars)

    return _ENTITY_RE.sub(replace, markup)


@dataclass
class RenderedChapter:
    text: str = ""
    style_runs: list[StyleRun] = field(default_factory=list)
    link_spans: list[LinkSpan] = field(default_factory=list)
    anchors: dict[str, int] = field(default_factory=dict)


class _Renderer:
    def __init__(self, base_name: str) -> None:
        self._base_name = base_name
        self._parts: list[str] = []
        self._len = 0
        self._tail = ""  # last two characters written
        self._state = Style.NONE
        self.runs = [StyleRun(0, Style.NONE)]
        self.links: list[LinkSpan] = []
        self.anchors: dict[str, int] = {}

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def _write(self, s: str) -> None:
        if not s:
            return
        self._parts.append(s)
        self._len += len(s)
        self._tail = (self._tail + s)[-2:]

    def newline(self) -> None:
        # never lead with a break, and keep at most one blank line
        if self._len and self._tail != "\n\n":
            self._write("\n")

    def line_start(self) -> None:
        if self._len and self._tail[-1:] != "\n":
            self._write("\n")

    def space(self) -> None:
        if self._len and self._tail[-1:] not in (" ", "\n"):
            self._write(" ")

    def words(self, raw: str) -> None:
        # no-break spaces are content
        content = [w for w in _ASCII_SPACE_RE.split(raw) if w]
        if raw[:1] and raw[:1] in _ASCII_SPACE:
            self.space()
        if content:
            self._write(" ".join(content))
            if raw[-1:] and raw[-1:] in _ASCII_SPACE:
                self.space()

    def _set_state(self, state: Style) -> None:
        self._state = state
        offset = self._len
        last = self.runs[-1]
        if last.offset == offset:
            self.runs.pop()
            if self.runs and self.runs[-1].state == state:
                return
        elif last.state == state:
            return
        self.runs.append(StyleRun(offset, state))

    def styled(self, node: Tag, style: Style) -> None:
        before = self._state
        self._set_state(before | style)
        self.children(node)
        self._set_state(before)

    def children(self, node: Tag) -> None:
        for child in node.children:
            self.node(child)

    def node(self, n) -> None:
        if isinstance(n, NavigableString):
            if type(n) in (NavigableString, CData):
                self.words(str(n))
            return
        if not isinstance(n, Tag):
            return

        name = n.name.lower()
        if name in SKIPPED:
            return
        # leading break first so the anchor lands on the block's own line
        if name in HEADINGS or name in BLOCKS:
            self.newline()
        elif name == "li":
            self.line_start()
        if n.get("id"):
            self.anchors.setdefault(n["id"], self._len)

        if name == "br":
            self._write("\n")
            self.children(n)
        elif name == "hr":
            self.newline()
            self._write("* * *")
            self.newline()
            self.children(n)
        elif name in ("img", "image"):
            alt = " ".join(n.get("alt", "").split())
            self.newline()
            self._write(f"[IMG: {alt}]" if alt else "[IMG]")
            self.newline()
            self.children(n)
        elif name == "a" and n.get("href"):
            href = n["href"]
            if href.startswith("#"):
                href = self._base_name + href
            start = self._len
            self.styled(n, Style.UNDERLINE)
            if self._len > start and (not self.links or self.links[-1].end <= start):
                self.links.append(LinkSpan(start, self._len, href))
        elif name in ("em", "i"):
            self.styled(n, Style.ITALIC)
        elif name in ("strong", "b"):
            self.styled(n, Style.BOLD)
        elif name in HEADINGS:
            self.styled(n, Style.BOLD)
            self.newline()
        elif name in BLOCKS:
            self.children(n)
            self.newline()
        elif name == "li":
            self._write("- ")
            self.children(n)
            self.newline()
        else:
            self.children(n)


def _parse(markup: str) -> BeautifulSoup:
    """Parse as XHTML, falling back to the HTML builder for tag soup.

    The ``xml`` builder recovers from errors by dropping content, so the
    markup is checked for well-formedness first.
    """
    try:
        etree.fromstring(markup.encode("utf-8"), etree.XMLParser(encoding="utf-8"))
    except etree.XMLSyntaxError as e:
        log.warning("malformed chapter markup, parsing as HTML: %s", e)
        return BeautifulSoup(markup, "lxml")
    return BeautifulSoup(markup, "xml")


def render_chapter(markup: str, base_name: str = "") -> RenderedChapter:
    """Walk the body of one chapter document depth-first.

    ``base_name`` is the chapter's file name; fragment-only hrefs are
    prefixed with it so every link can be looked up in the book's link table.
    """
    soup = _parse(register_entities(markup))
    body = soup.find("body")
    if body is None:
        raise ValueError("chapter has no body element")

    r = _Renderer(base_name)
    r.children(body)
    return RenderedChapter(
        text=r.text, style_runs=r.runs, link_spans=r.links, anchors=r.anchors
    )
