from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Static

from folio.library.models import Book
from folio.reader.session import MouseAction, MouseKind, Session

if TYPE_CHECKING:
    from folio.app import FolioApp


def _key_name(event: events.Key) -> str:
    """Printable input as the character itself, everything else by key name."""
    if event.character and event.character.isprintable():
        return event.character
    return event.key


class ReaderScreen(Screen):
    """Full-screen view of a :class:`Session`.

    The session does all the work; this screen only forwards input and
    paints the lines it renders.
    """

    def __init__(
        self, book: Book, chapter: int = 0, offset: int = 0, toc: bool = False
    ) -> None:
        super().__init__()
        self._book = book
        self._chapter = chapter
        self._offset = offset
        self._toc = toc
        self.session: Session | None = None

    @property
    def fw(self) -> FolioApp:
        return self.app  # type: ignore[return-value]

    def compose(self) -> ComposeResult:
        yield Static("", id="page")

    def on_mount(self) -> None:
        size = self.app.size
        self.session = Session(
            self._book,
            cols=size.width,
            rows=size.height,
            max_width=self.fw.config.default_width,
            chapter=self._chapter,
            offset=self._offset,
            toc=self._toc,
        )
        self._refresh_page()

    # ── Drawing ────────────────────────────────────

    def _refresh_page(self) -> None:
        if self.session is None:
            return
        page = self.query_one("#page", Static)
        page.styles.padding = (0, 0, 0, self.session.pad)
        page.update(Text.from_ansi("\n".join(self.session.render()), no_wrap=True))

    # ── Input ──────────────────────────────────────

    def on_key(self, event: events.Key) -> None:
        if self.session is None:
            return
        event.stop()
        event.prevent_default()
        self.session.on_key(_key_name(event))
        if self.session.quit:
            self.app.exit()
            return
        self._refresh_page()

    def _mouse(self, kind: MouseKind, event: events.MouseEvent) -> None:
        if self.session is None or not self.fw.config.mouse:
            return
        event.stop()
        self.session.on_mouse(MouseAction(kind, event.screen_x, event.screen_y))
        self._refresh_page()

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self._mouse(MouseKind.DOWN, event)

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self._mouse(MouseKind.SCROLL_DOWN, event)

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self._mouse(MouseKind.SCROLL_UP, event)

    def on_resize(self, event: events.Resize) -> None:
        if self.session is None:
            return
        self.session.on_resize(event.size.width, event.size.height)
        self._refresh_page()
