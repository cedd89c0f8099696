"""Folio - terminal EPUB reader."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from textual.app import App

from folio.config import AppConfig, load_config
from folio.library.database import Database
from folio.library.models import Book, ReadingProgress
from folio.parsers.base import get_parser
from folio.parsers.container import EpubError
from folio.ui.screens.reader_screen import ReaderScreen
from folio.ui.themes import APP_CSS

log = logging.getLogger("folio")


class FolioApp(App):
    """A terminal EPUB reader with marks, search and resumable progress."""

    TITLE = "Folio"
    CSS = APP_CSS

    def __init__(
        self,
        book: Book,
        config: AppConfig | None = None,
        db: Database | None = None,
        chapter: int = 0,
        offset: int = 0,
        toc: bool = False,
    ) -> None:
        super().__init__()
        self.config = config or load_config()
        self.db = db or Database(self.config.db_path)
        self.book = book
        self.reader: ReaderScreen | None = None
        self._start = (chapter, offset)
        self._toc = toc

    def on_mount(self) -> None:
        chapter, offset = self._start
        self.reader = ReaderScreen(self.book, chapter=chapter, offset=offset, toc=self._toc)
        self.push_screen(self.reader)

    def save_progress(self) -> None:
        if self.reader is None or self.reader.session is None:
            return
        session = self.reader.session
        chapter, offset = session.resume_offset()
        self.db.save_progress(
            ReadingProgress(
                file_path=self.book.file_path,
                chapter_index=chapter,
                byte_offset=offset,
            )
        )
        log.info("saved %s at chapter %d offset %d", self.book.file_path, chapter, offset)


def _setup_logging(config: AppConfig) -> None:
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("folio")
    root.setLevel(getattr(logging, config.log_level, logging.INFO))
    root.addHandler(handler)


def _build_arg_parser(config: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="folio", description="Read EPUB books in the terminal.")
    parser.add_argument("path", nargs="?", help="book to open; defaults to the last one read")
    parser.add_argument(
        "-w",
        "--width",
        type=int,
        default=config.default_width,
        help=f"maximum text width in columns (default {config.default_width})",
    )
    parser.add_argument("-t", "--toc", action="store_true", help="start in the table of contents")
    parser.add_argument("-m", "--meta", action="store_true", help="print metadata and exit")
    return parser


def _fail(message: str) -> int:
    print(f"error: {message}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_config()
    _setup_logging(config)
    args = _build_arg_parser(config).parse_args(argv)
    if args.width < 1:
        return _fail("width must be at least 1")
    config.default_width = args.width

    db = Database(config.db_path)
    try:
        if args.path:
            file_path = Path(args.path).expanduser().resolve()
        else:
            last = db.get_last_progress()
            if last is None:
                return _fail("no book given and no reading history")
            file_path = Path(last.file_path)
        if not file_path.exists():
            return _fail(f"file not found: {file_path}")

        try:
            book = get_parser(file_path).parse(file_path, meta_only=args.meta)
        except (EpubError, ValueError, OSError) as e:
            log.error("failed to open %s: %s", file_path, e)
            return _fail(str(e))

        if args.meta:
            print(book.meta)
            return 0

        progress = db.get_progress(book.file_path)
        app = FolioApp(
            book,
            config=config,
            db=db,
            chapter=progress.chapter_index if progress else 0,
            offset=progress.byte_offset if progress else 0,
            toc=args.toc,
        )
        app.run(mouse=config.mouse)
        app.save_progress()
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
