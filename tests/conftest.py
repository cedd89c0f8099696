"""Shared fixtures for tests."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Callable, Optional

import pytest

from folio.config import AppConfig
from folio.library.database import Database
from folio.library.models import Book, Chapter

CONTAINER_XML = """<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

# (file name, nav title or None, body markup or None to leave the file out)
ChapterDef = tuple[str, Optional[str], Optional[str]]

SAMPLE_CHAPTERS: list[ChapterDef] = [
    (
        "ch1.xhtml",
        "Chapter One",
        "<h1>Chapter One</h1>"
        "<p>It was a <b>dark</b> and <i>stormy</i> night.</p>"
        '<p>See <a href="ch2.xhtml#s3">section three</a> for more.</p>',
    ),
    (
        "ch2.xhtml",
        "Chapter Two",
        "<h1>Chapter Two</h1>"
        "<p>Opening paragraph.</p>"
        '<p id="s3">Section three starts here.</p>',
    ),
    ("ch3.xhtml", None, "<p>An untitled epilogue.</p>"),
]


def xhtml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        f"<head><title>t</title></head><body>{body}</body></html>"
    )


def _opf(chapters: list[ChapterDef], version: str, title: str, creator: str) -> str:
    items = [
        f'<item id="c{i}" href="{name}" media-type="application/xhtml+xml"/>'
        for i, (name, _, _) in enumerate(chapters)
    ]
    if version.startswith("3"):
        items.append(
            '<item id="nav" href="nav.xhtml" properties="nav" '
            'media-type="application/xhtml+xml"/>'
        )
        spine_attr = ""
    else:
        items.append('<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>')
        spine_attr = ' toc="ncx"'
    refs = [f'<itemref idref="c{i}"/>' for i in range(len(chapters))]
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<package xmlns="http://www.idpf.org/2007/opf" version="{version}">'
        '<metadata xmlns:dc="http://purl.org/dc/elements/1.1/">'
        f"<dc:title>{title}</dc:title><dc:creator>{creator}</dc:creator>"
        '<meta name="cover" content="none"/>'
        "</metadata>"
        f"<manifest>{''.join(items)}</manifest>"
        f"<spine{spine_attr}>{''.join(refs)}</spine>"
        "</package>"
    )


def _nav(chapters: list[ChapterDef]) -> str:
    entries = "".join(
        f'<li><a href="{name}">{label}</a></li>' for name, label, _ in chapters if label
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">'
        f'<body><nav epub:type="toc"><ol>{entries}</ol></nav></body></html>'
    )


def _ncx(chapters: list[ChapterDef]) -> str:
    points = "".join(
        f'<navPoint id="p{i}"><navLabel><text>{label}</text></navLabel>'
        f'<content src="{name}"/></navPoint>'
        for i, (name, label, _) in enumerate(chapters)
        if label
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">'
        f"<navMap>{points}</navMap></ncx>"
    )


def write_epub(
    path: Path,
    chapters: list[ChapterDef],
    version: str = "2.0",
    title: str = "Test Book",
    creator: str = "Test Author",
    extra: Optional[dict[str, str]] = None,
) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr("META-INF/container.xml", CONTAINER_XML)
        zf.writestr("OEBPS/content.opf", _opf(chapters, version, title, creator))
        if version.startswith("3"):
            zf.writestr("OEBPS/nav.xhtml", _nav(chapters))
        else:
            zf.writestr("OEBPS/toc.ncx", _ncx(chapters))
        for name, _, body in chapters:
            if body is not None:
                zf.writestr(f"OEBPS/{name}", xhtml(body))
        for name, data in (extra or {}).items():
            zf.writestr(name, data)
    return path


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def db(tmp_path: Path) -> Database:
    db_path = tmp_path / "test.db"
    database = Database(db_path)
    yield database
    database.close()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def make_epub(tmp_path: Path) -> Callable[..., Path]:
    """Build an EPUB in ``tmp_path``; chapters default to the sample book."""

    def factory(
        chapters: Optional[list[ChapterDef]] = None,
        name: str = "book.epub",
        **kwargs,
    ) -> Path:
        return write_epub(tmp_path / name, chapters or SAMPLE_CHAPTERS, **kwargs)

    return factory


@pytest.fixture
def sample_epub(make_epub) -> Path:
    return make_epub()


@pytest.fixture
def make_book() -> Callable[..., Book]:
    """Build a book from plain chapter texts, no styles or links."""

    def factory(*texts: str) -> Book:
        chapters = [Chapter(title=f"Chapter {i + 1}", text=t) for i, t in enumerate(texts)]
        return Book(file_path="/books/plain.epub", chapters=chapters)

    return factory
