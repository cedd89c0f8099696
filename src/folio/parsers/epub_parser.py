"""EPUB parser: container + markup renderer -> Book."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from bs4.builder import ParserRejectedMarkup

from folio.library.models import Book, Chapter

from .base import BaseParser
from .container import EpubError, ZipContainer, read_package
from .markup import RenderedChapter, render_chapter

log = logging.getLogger(__name__)

UNAVAILABLE = "[chapter unavailable]"


class EpubParser(BaseParser):
    SUPPORTED_EXTENSIONS = (".epub",)

    def parse(self, file_path: Path, meta_only: bool = False) -> Book:
        book = Book(file_path=str(file_path))

        # Decode everything up front; search never touches the zip again.
        with ZipContainer(file_path) as container:
            package = read_package(container)
            book.meta = package.meta
            if meta_only:
                return book

            for title, path in package.spine:
                rendered = self._render(container, package.root_dir + path)
                if not rendered.text.strip():
                    log.debug("dropping empty chapter %s", path)
                    continue
                self._add_chapter(book, title, path, rendered)

        if not book.chapters:
            raise EpubError(f"{file_path.name} has no readable chapters")
        log.info("loaded %s: %d chapters", file_path.name, len(book.chapters))
        return book

    @staticmethod
    def _render(container: ZipContainer, member: str) -> RenderedChapter:
        base_name = posixpath.basename(member)
        try:
            return render_chapter(container.read_text(member), base_name)
        except (EpubError, ValueError, ParserRejectedMarkup) as e:
            log.warning("chapter %s unavailable: %s", member, e)
            return RenderedChapter(text=UNAVAILABLE)

    @staticmethod
    def _add_chapter(
        book: Book, title: str, path: str, rendered: RenderedChapter
    ) -> None:
        index = len(book.chapters)
        base_name = posixpath.basename(path)
        book.links[base_name] = (index, 0)
        for frag, offset in rendered.anchors.items():
            book.links[f"{base_name}#{frag}"] = (index, offset)

        chapter = Chapter(title=title, text=rendered.text, path=path)
        if rendered.style_runs:
            chapter.style_runs = rendered.style_runs
        chapter.link_spans = rendered.link_spans
        book.chapters.append(chapter)
