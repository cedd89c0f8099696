"""Base parser interface for ebook formats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from folio.library.models import Book


class BaseParser(ABC):
    """Abstract base for format-specific parsers."""

    SUPPORTED_EXTENSIONS: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, file_path: Path, meta_only: bool = False) -> Book:
        """Parse a file into a fully rendered book.

        With ``meta_only`` only the package metadata is read.
        """

    @classmethod
    def can_handle(cls, file_path: Path) -> bool:
        return file_path.suffix.lower() in cls.SUPPORTED_EXTENSIONS


def get_parser(file_path: Path) -> BaseParser:
    """Return the appropriate parser for a file."""
    from folio.parsers.epub_parser import EpubParser

    parsers: list[type[BaseParser]] = [EpubParser]
    for parser_cls in parsers:
        if parser_cls.can_handle(file_path):
            return parser_cls()

    supported = []
    for p in parsers:
        supported.extend(p.SUPPORTED_EXTENSIONS)
    raise ValueError(
        f"Unsupported format: {file_path.suffix}. Supported: {', '.join(supported)}"
    )
