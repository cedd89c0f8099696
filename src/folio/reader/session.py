"""Reading session: position, marks, search and the modal view state machine.

The session never touches the terminal. The UI feeds it key names, mouse
actions and resizes, and draws whatever :meth:`Session.render` returns.
Keys are single characters for printable input, otherwise Textual key
names such as ``"escape"``, ``"pagedown"`` or ``"ctrl+o"``.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import Callable, NamedTuple

from folio.library.models import Book, Chapter, Position

from .compositor import HIGHLIGHT_ON, RESET, compose
from .links import column_to_offset, find_link, resolve_href
from .reflow import line_of, truncate, wrap
from .search import Direction
from .search import search as search_chapters

log = logging.getLogger(__name__)

PREVIOUS_MARK = "'"
SCROLL_LINES = 3

HELP_TEXT = """
                   Esc q  Quit
                  F1-F12  Help
                     Tab  Table of Contents
                       i  Progress and Metadata

PageDown Right Space f l  Page Down
         PageUp Left b h  Page Up
                       d  Half Page Down
                       u  Half Page Up
                  Down j  Line Down
                    Up k  Line Up
                  Home g  Chapter Start
                   End G  Chapter End
                       [  Previous Chapter
                       ]  Next Chapter

                       /  Search Forward
                       ?  Search Backward
                       n  Repeat search forward
                       N  Repeat search backward
                      mx  Set mark x
                      'x  Jump to mark x
                  Ctrl-O  Jump back
                  Ctrl-R  Jump forward
"""

_FUNCTION_KEY = re.compile(r"f\d{1,2}")


class View(enum.Enum):
    PAGE = "page"
    TOC = "toc"
    SEARCH = "search"
    HELP = "help"
    MARK_SET = "mark_set"
    MARK_JUMP = "mark_jump"
    METADATA = "metadata"


class MouseKind(enum.Enum):
    DOWN = "down"
    SCROLL_DOWN = "scroll_down"
    SCROLL_UP = "scroll_up"


class MouseAction(NamedTuple):
    kind: MouseKind
    column: int
    row: int


class Session:
    def __init__(
        self,
        book: Book,
        cols: int,
        rows: int,
        max_width: int = 75,
        chapter: int = 0,
        offset: int = 0,
        toc: bool = False,
    ) -> None:
        if not book.chapters:
            raise ValueError("book has no chapters")
        self.book = book
        self.chapters: list[Chapter] = book.chapters
        self.cols = max(1, cols)
        self.rows = max(1, rows)
        self.max_width = max(1, max_width)

        # position in the book
        self.chapter = min(max(0, chapter), len(self.chapters) - 1)
        self.line = 0
        self.marks: dict[str, Position] = {}
        self.back: list[Position] = []
        self.forward: list[Position] = []

        # view state
        self.view = View.PAGE
        self.toc_top = 0
        self.toc_cursor = 0
        self.query = ""
        self.direction = Direction.FORWARD
        self.meta_lines: list[str] = []
        self.quit = False

        self._page_keys = self._build_page_keys()
        self._toc_keys = self._build_toc_keys()
        self._key_handlers: dict[View, Callable[[str], None]] = {
            View.PAGE: self._page_key,
            View.TOC: self._toc_key,
            View.SEARCH: self._search_key,
            View.HELP: self._dismiss_key,
            View.METADATA: self._dismiss_key,
            View.MARK_SET: self._mark_set_key,
            View.MARK_JUMP: self._mark_jump_key,
        }
        self._mouse_handlers: dict[View, Callable[[MouseAction], None]] = {
            View.PAGE: self._page_mouse,
            View.TOC: self._toc_mouse,
        }
        self._renderers: dict[View, Callable[[], list[str]]] = {
            View.PAGE: self._render_page,
            View.TOC: self._render_toc,
            View.SEARCH: self._render_search,
            View.HELP: self._render_help,
            View.METADATA: self._render_metadata,
            View.MARK_SET: self._render_page,
            View.MARK_JUMP: self._render_page,
        }

        self._rewrap()
        self.line = line_of(self.chap.lines, offset)
        self.mark(PREVIOUS_MARK)
        if toc:
            self.open_toc()

    # ── Layout ─────────────────────────────────────

    @property
    def width(self) -> int:
        return min(self.cols, self.max_width)

    @property
    def pad(self) -> int:
        return max(0, self.cols - self.max_width) // 2

    @property
    def chap(self) -> Chapter:
        return self.chapters[self.chapter]

    @property
    def position(self) -> Position:
        return Position(self.chapter, self.line)

    def _rewrap(self) -> None:
        width = self.width
        for c in self.chapters:
            c.lines = wrap(c.text, width)
        meta = self.book.meta
        self.meta_lines = [meta[a:b] for a, b in wrap(meta, width)]

    def _offset_of(self, pos: Position) -> tuple[int, int]:
        lines = self.chapters[pos.chapter].lines
        if not lines:
            return pos.chapter, 0
        return pos.chapter, lines[min(pos.line, len(lines) - 1)][0]

    def _position_at(self, chapter: int, offset: int) -> Position:
        return Position(chapter, line_of(self.chapters[chapter].lines, offset))

    def _clamp(self) -> None:
        self.line = max(0, min(self.line, len(self.chap.lines) - 1))

    def on_resize(self, cols: int, rows: int) -> None:
        """Re-wrap every chapter when the text width changes.

        The position, marks and jump history are carried over by the
        offset of their line start, so they stay on the same text.
        """
        self.rows = max(1, rows)
        cols = max(1, cols)
        old_width = self.width
        self.cols = cols
        if self.width != old_width:
            here = self._offset_of(self.position)
            marks = {k: self._offset_of(p) for k, p in self.marks.items()}
            back = [self._offset_of(p) for p in self.back]
            forward = [self._offset_of(p) for p in self.forward]

            self._rewrap()

            self.chapter, self.line = self._position_at(*here)
            self.marks = {k: self._position_at(*o) for k, o in marks.items()}
            self.back = [self._position_at(*o) for o in back]
            self.forward = [self._position_at(*o) for o in forward]
            log.debug("rewrapped %d chapters at width %d", len(self.chapters), self.width)
        self._clamp()
        if self.view is View.TOC:
            self._toc_follow()

    def resume_offset(self) -> tuple[int, int]:
        """``(chapter, offset)`` to persist for the next session."""
        return self._offset_of(self.position)

    # ── Movement ───────────────────────────────────

    def _goto(self, pos: Position) -> None:
        self.chapter = min(max(0, pos.chapter), len(self.chapters) - 1)
        self.line = pos.line
        self._clamp()

    def scroll_down(self, n: int) -> None:
        if self.line + self.rows < len(self.chap.lines):
            self.line = min(self.line + n, len(self.chap.lines) - 1)
        elif self.chapter < len(self.chapters) - 1:
            self.chapter += 1
            self.line = 0

    def scroll_up(self, n: int) -> None:
        if self.line > 0:
            self.line = max(0, self.line - n)
        elif self.chapter > 0:
            self.chapter -= 1
            self.line = max(0, len(self.chap.lines) - self.rows)

    def next_chapter(self) -> None:
        if self.chapter < len(self.chapters) - 1:
            self.chapter += 1
            self.line = 0

    def prev_chapter(self) -> None:
        if self.chapter > 0:
            self.chapter -= 1
            self.line = 0

    def mark(self, key: str) -> None:
        self.marks[key] = self.position

    def jump(self, pos: Position) -> None:
        """Move to ``pos``, remembering where we came from."""
        self.back.append(self.position)
        self.forward.clear()
        self.mark(PREVIOUS_MARK)
        self._goto(pos)

    def jump_reset(self) -> None:
        self._goto(self.marks[PREVIOUS_MARK])

    def jump_back(self) -> None:
        if not self.back:
            return
        self.forward.append(self.position)
        self.mark(PREVIOUS_MARK)
        self._goto(self.back.pop())

    def jump_forward(self) -> None:
        if not self.forward:
            return
        self.back.append(self.position)
        self.mark(PREVIOUS_MARK)
        self._goto(self.forward.pop())

    # ── Search ─────────────────────────────────────

    def start_search(self, direction: Direction) -> None:
        self.mark(PREVIOUS_MARK)
        self.query = ""
        self.direction = direction
        self.view = View.SEARCH

    def search(self, direction: Direction, skip: bool) -> bool:
        """Move to the next match; the position is untouched on a miss."""
        found = search_chapters(self.chapters, self.position, self.query, direction, skip)
        if found is None:
            log.debug("no match for %r searching %s", self.query, direction.name.lower())
            return False
        self._goto(found)
        return True

    def _search_key(self, key: str) -> None:
        if key == "escape":
            self.jump_reset()
            self.query = ""
            self.view = View.PAGE
        elif key == "enter":
            pre = self.marks[PREVIOUS_MARK]
            if pre != self.position:
                self.back.append(pre)
                self.forward.clear()
            self.view = View.PAGE
        elif key == "backspace":
            self.query = self.query[:-1]
            self.jump_reset()
            if self.query:
                self.search(self.direction, skip=False)
        elif len(key) == 1:
            self.query += key
            if not self.search(self.direction, skip=False):
                self.jump_reset()

    # ── Input dispatch ─────────────────────────────

    def on_key(self, key: str) -> None:
        self._key_handlers[self.view](key)

    def on_mouse(self, action: MouseAction) -> None:
        handler = self._mouse_handlers.get(self.view)
        if handler is not None:
            handler(action)

    def render(self) -> list[str]:
        return self._renderers[self.view]()

    def _dismiss_key(self, key: str) -> None:
        self.view = View.PAGE

    def _mark_set_key(self, key: str) -> None:
        if len(key) == 1:
            self.mark(key)
        self.view = View.PAGE

    def _mark_jump_key(self, key: str) -> None:
        if len(key) == 1 and key in self.marks:
            self.jump(self.marks[key])
        self.view = View.PAGE

    # ── Page view ──────────────────────────────────

    def _build_page_keys(self) -> dict[str, Callable[[], None]]:
        def set_view(view: View) -> Callable[[], None]:
            def action() -> None:
                self.view = view

            return action

        def chapter_start() -> None:
            self.mark(PREVIOUS_MARK)
            self.line = 0

        def chapter_end() -> None:
            self.mark(PREVIOUS_MARK)
            self.line = max(0, len(self.chap.lines) - self.rows)

        page_down = lambda: self.scroll_down(self.rows)
        page_up = lambda: self.scroll_up(self.rows)
        line_down = lambda: self.scroll_down(SCROLL_LINES)
        line_up = lambda: self.scroll_up(SCROLL_LINES)

        keys: dict[str, Callable[[], None]] = {
            "q": self._quit,
            "escape": self._quit,
            "tab": self.open_toc,
            "i": set_view(View.METADATA),
            "m": set_view(View.MARK_SET),
            "'": set_view(View.MARK_JUMP),
            "/": lambda: self.start_search(Direction.FORWARD),
            "?": lambda: self.start_search(Direction.BACKWARD),
            "n": lambda: self.search(Direction.FORWARD, skip=True),
            "N": lambda: self.search(Direction.BACKWARD, skip=True),
            "g": chapter_start,
            "home": chapter_start,
            "G": chapter_end,
            "end": chapter_end,
            "d": lambda: self.scroll_down(self.rows // 2),
            "u": lambda: self.scroll_up(self.rows // 2),
            "[": self.prev_chapter,
            "]": self.next_chapter,
            "ctrl+o": self.jump_back,
            "ctrl+r": self.jump_forward,
        }
        for key in ("j", "down"):
            keys[key] = line_down
        for key in ("k", "up"):
            keys[key] = line_up
        for key in ("f", "l", " ", "right", "pagedown", "space"):
            keys[key] = page_down
        for key in ("b", "h", "left", "pageup"):
            keys[key] = page_up
        return keys

    def _quit(self) -> None:
        self.quit = True

    def _page_key(self, key: str) -> None:
        if _FUNCTION_KEY.fullmatch(key):
            self.view = View.HELP
            return
        action = self._page_keys.get(key)
        if action is not None:
            action()

    def _page_mouse(self, action: MouseAction) -> None:
        if action.kind is MouseKind.DOWN:
            self.click(action.column, action.row)
        elif action.kind is MouseKind.SCROLL_DOWN:
            self.scroll_down(SCROLL_LINES)
        elif action.kind is MouseKind.SCROLL_UP:
            self.scroll_up(SCROLL_LINES)

    def click(self, column: int, row: int) -> bool:
        """Follow the link drawn at a screen cell; True if we moved."""
        c = self.chap
        line = self.line + row
        if column < self.pad or line >= len(c.lines):
            return False
        offset = column_to_offset(c.text, c.lines[line], column - self.pad)
        if offset is None:
            return False
        link = find_link(c.link_spans, offset)
        if link is None:
            return False
        target = resolve_href(self.book.links, link.href)
        if target is None:
            log.debug("ignoring unresolved link %s", link.href)
            return False
        self.jump(self._position_at(*target))
        return True

    def _render_page(self) -> list[str]:
        return compose(self.chap, self.line, self.rows, self.query)

    # ── Contents view ──────────────────────────────

    def open_toc(self) -> None:
        self.mark(PREVIOUS_MARK)
        self.toc_cursor = self.chapter
        self.toc_top = max(0, self.chapter - self.rows // 2)
        self.view = View.TOC

    def _toc_follow(self) -> None:
        if self.toc_cursor < self.toc_top:
            self.toc_top = self.toc_cursor
        elif self.toc_cursor >= self.toc_top + self.rows:
            self.toc_top = self.toc_cursor - self.rows + 1

    def _toc_confirm(self) -> None:
        self.view = View.PAGE
        self.jump(Position(self.toc_cursor, 0))

    def _toc_cancel(self) -> None:
        self.view = View.PAGE
        self.jump_reset()

    def _toc_move(self, cursor: int) -> None:
        self.toc_cursor = min(max(0, cursor), len(self.chapters) - 1)
        self._toc_follow()

    def _toc_scroll_down(self, n: int) -> None:
        self.toc_top = min(self.toc_top + n, len(self.chapters) - 1)
        self.toc_cursor = max(self.toc_cursor, self.toc_top)

    def _toc_scroll_up(self, n: int) -> None:
        self.toc_top = max(0, self.toc_top - n)
        self.toc_cursor = min(self.toc_cursor, self.toc_top + self.rows - 1)

    def _toc_home(self) -> None:
        self.toc_cursor = 0
        self.toc_top = 0

    def _toc_end(self) -> None:
        self.toc_cursor = len(self.chapters) - 1
        self.toc_top = max(0, len(self.chapters) - self.rows)

    def _build_toc_keys(self) -> dict[str, Callable[[], None]]:
        keys: dict[str, Callable[[], None]] = {
            "g": self._toc_home,
            "home": self._toc_home,
            "G": self._toc_end,
            "end": self._toc_end,
            "f": lambda: self._toc_scroll_down(self.rows),
            "pagedown": lambda: self._toc_scroll_down(self.rows),
            "b": lambda: self._toc_scroll_up(self.rows),
            "pageup": lambda: self._toc_scroll_up(self.rows),
            "d": lambda: self._toc_scroll_down(self.rows // 2),
            "u": lambda: self._toc_scroll_up(self.rows // 2),
        }
        for key in ("escape", "tab", "left", "h", "q"):
            keys[key] = self._toc_cancel
        for key in ("enter", "right", "l"):
            keys[key] = self._toc_confirm
        for key in ("down", "j"):
            keys[key] = lambda: self._toc_move(self.toc_cursor + 1)
        for key in ("up", "k"):
            keys[key] = lambda: self._toc_move(self.toc_cursor - 1)
        return keys

    def _toc_key(self, key: str) -> None:
        action = self._toc_keys.get(key)
        if action is not None:
            action()

    def _toc_mouse(self, action: MouseAction) -> None:
        if action.kind is MouseKind.DOWN:
            if self.toc_top + action.row < len(self.chapters):
                self.toc_cursor = self.toc_top + action.row
                self._toc_confirm()
        elif action.kind is MouseKind.SCROLL_DOWN:
            self._toc_scroll_down(SCROLL_LINES)
        elif action.kind is MouseKind.SCROLL_UP:
            self._toc_scroll_up(SCROLL_LINES)

    def _render_toc(self) -> list[str]:
        end = min(self.toc_top + self.rows, len(self.chapters))
        out = []
        for i in range(self.toc_top, end):
            title = truncate(self.chapters[i].title, self.width)
            if i == self.toc_cursor:
                title = f"{HIGHLIGHT_ON}{title}{RESET}"
            out.append(title)
        return out

    # ── Overlays ───────────────────────────────────

    def _render_search(self) -> list[str]:
        buf = self._render_page()
        if len(buf) >= self.rows:
            buf = buf[: self.rows - 1]
        else:
            buf.extend([""] * (self.rows - 1 - len(buf)))
        buf.append(f"{RESET}{self.direction.value}{self.query}")
        return buf

    def _render_help(self) -> list[str]:
        return HELP_TEXT.splitlines()

    def _render_metadata(self) -> list[str]:
        counts = [len(c.lines) for c in self.chapters]
        current = sum(counts[: self.chapter]) + self.line
        total = sum(counts)
        pages = max(1, -(-counts[self.chapter] // self.rows))
        page = self.line // self.rows + 1
        lines = [
            f"chapter: {page}/{pages}",
            f"total: {current / max(1, total):.0%}",
            "",
        ]
        lines.extend(self.meta_lines)
        return lines
