"""EPUB container access: root pointer, package document and navigation."""

from __future__ import annotations

import logging
import posixpath
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

from bs4 import BeautifulSoup, Tag

log = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"


class EpubError(ValueError):
    """The package is structurally broken and cannot be opened."""


@dataclass
class Package:
    root_dir: str  # directory of the package document, "" or ending in "/"
    spine: list[tuple[str, str]] = field(default_factory=list)  # (title, path)
    meta: str = ""


class ZipContainer:
    """Read-only access to container members by internal path."""

    def __init__(self, path: Path) -> None:
        try:
            self._zip = zipfile.ZipFile(path)
        except (zipfile.BadZipFile, OSError) as e:
            raise EpubError(f"cannot open {path}: {e}") from e

    def __enter__(self) -> ZipContainer:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def read(self, name: str) -> bytes:
        try:
            return self._zip.read(name)
        except KeyError as e:
            raise EpubError(f"missing file in container: {name}") from e
        except (zipfile.BadZipFile, zlib.error) as e:
            raise EpubError(f"corrupt file in container: {name}: {e}") from e

    def read_text(self, name: str) -> str:
        return self.read(name).decode("utf-8", errors="replace")


def _parse_xml(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "xml")


def _text(tag: Tag) -> str:
    return " ".join(tag.get_text().split())


def _strip_fragment(href: str) -> str:
    return unquote(href.split("#", 1)[0])


def read_package(container: ZipContainer) -> Package:
    """Resolve the spine into ``(title, path)`` pairs plus metadata text.

    Paths are relative to the package document directory. The spine is
    the reading order; the navigation document only supplies titles.
    """
    doc = _parse_xml(container.read_text(CONTAINER_PATH))
    rootfile = doc.find("rootfile")
    if rootfile is None or not rootfile.get("full-path"):
        raise EpubError("container.xml has no rootfile")
    opf_path = rootfile["full-path"]
    root_dir = posixpath.dirname(opf_path)
    if root_dir:
        root_dir += "/"

    opf = _parse_xml(container.read_text(opf_path))
    package = opf.find("package")
    manifest_node = opf.find("manifest")
    spine_node = opf.find("spine")
    if package is None or manifest_node is None or spine_node is None:
        raise EpubError(f"{opf_path} has no manifest or spine")

    meta_lines = []
    metadata = opf.find("metadata")
    if metadata is not None:
        for node in metadata.find_all(recursive=False):
            value = _text(node)
            if node.name != "meta" and value:
                meta_lines.append(f"{node.name}: {value}")

    manifest: dict[str, str] = {}
    nav_href = None
    for item in manifest_node.find_all("item"):
        item_id, href = item.get("id"), item.get("href")
        if not item_id or not href:
            continue
        manifest[item_id] = posixpath.normpath(unquote(href))
        if "nav" in item.get("properties", "").split():
            nav_href = manifest[item_id]

    version = package.get("version", "")
    if version.startswith("3") and nav_href:
        nav = _read_nav(container, root_dir, nav_href)
    else:
        toc_id = spine_node.get("toc") or "ncx"
        if toc_id not in manifest:
            raise EpubError(f"{opf_path} has no navigation document")
        nav = _read_ncx(container, root_dir, manifest[toc_id])

    spine = []
    for i, itemref in enumerate(spine_node.find_all("itemref")):
        idref = itemref.get("idref")
        if idref not in manifest:
            raise EpubError(f"spine item {idref!r} missing from manifest")
        path = manifest[idref]
        spine.append((nav.get(path, str(i)), path))

    log.debug("package %s: %d spine items, %d nav titles", opf_path, len(spine), len(nav))
    return Package(root_dir=root_dir, spine=spine, meta="\n".join(meta_lines))


def _resolve(base: str, href: str) -> str:
    """Resolve ``href`` found in document ``base`` (both package-relative)."""
    return posixpath.normpath(posixpath.join(posixpath.dirname(base), href))


def _read_nav(container: ZipContainer, root_dir: str, nav_path: str) -> dict[str, str]:
    doc = _parse_xml(container.read_text(root_dir + nav_path))
    navs = doc.find_all("nav")
    if not navs:
        raise EpubError(f"{nav_path} has no nav element")
    toc = next((n for n in navs if n.get("epub:type") == "toc" or n.get("type") == "toc"), navs[0])
    ol = toc.find("ol")
    if ol is None:
        raise EpubError(f"{nav_path} has no table of contents list")

    nav: dict[str, str] = {}
    for a in ol.find_all("a"):
        href = _strip_fragment(a.get("href", ""))
        if not href:
            continue
        nav.setdefault(_resolve(nav_path, href), _text(a))
    return nav


def _read_ncx(container: ZipContainer, root_dir: str, ncx_path: str) -> dict[str, str]:
    doc = _parse_xml(container.read_text(root_dir + ncx_path))
    nav_map = doc.find("navMap")
    if nav_map is None:
        raise EpubError(f"{ncx_path} has no navMap")

    nav: dict[str, str] = {}
    # TODO show nested navPoints as indented subsections in the contents view
    for point in nav_map.find_all("navPoint"):
        content = point.find("content")
        label = point.find("text")
        if content is None or label is None:
            continue
        src = _strip_fragment(content.get("src", ""))
        if src:
            nav.setdefault(_resolve(ncx_path, src), _text(label))
    return nav
