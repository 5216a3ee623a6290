"""Discovery of favicon candidates inside a page's HTML.

This is a tolerant pattern scan, not an HTML parser: real sites serve broken
markup (unclosed tags, stray quotes, uppercase attributes) and the scan only
needs to find `<link rel="...icon...">` elements and the Windows tile meta
tags. The function is pure so it can be tested without any I/O.
"""

from __future__ import annotations

import re

from core.domain.models import IconCandidate

_LINK_RE = re.compile(r"<link\s([^>]*)>", re.IGNORECASE)
_REL_ICON_RE = re.compile(r"""rel=["'][^"']*icon[^"']*["']""", re.IGNORECASE)
_HREF_RE = re.compile(r"""href=["']([^"']*)["']""", re.IGNORECASE)

_META_RE = re.compile(r"<meta([^>]*)>", re.IGNORECASE)
_TILE_NAME_RE = re.compile(r"""name=["']msapplication-([^"']*)["']""", re.IGNORECASE)
_CONTENT_RE = re.compile(r"""content=["']([^"']*)["']""", re.IGNORECASE)


def fixup_url(url: str, root_url: str, protocol: str) -> str:
    """Make a scraped reference absolute against the host root.

    `//cdn/x.ico` gets the page protocol, `/x.ico` gets the root origin;
    anything else is returned as found.
    """

    if url.startswith("//"):
        return f"{protocol}:{url}"
    if url.startswith("/"):
        return root_url + url
    return url


def resolve_candidates(html: str, root_url: str, protocol: str) -> list[IconCandidate]:
    """Return the icon candidates declared in `html`, in document order.

    Link-declared icons come first; a `msapplication-TileImage` adds exactly one
    trailing candidate, carrying `msapplication-TileColor` when present.
    """

    if not html:
        return []

    candidates: list[IconCandidate] = []
    for match in _LINK_RE.finditer(html):
        attrs = match.group(1)
        if not _REL_ICON_RE.search(attrs):
            continue
        href = _HREF_RE.search(attrs)
        if not href or not href.group(1).strip():
            continue
        candidates.append(IconCandidate(url=fixup_url(href.group(1).strip(), root_url, protocol)))

    tile_url: str | None = None
    tile_color: str | None = None
    for match in _META_RE.finditer(html):
        attrs = match.group(1)
        name = _TILE_NAME_RE.search(attrs)
        content = _CONTENT_RE.search(attrs)
        if not name or not content:
            continue
        # Last declaration wins.
        key = name.group(1).strip().lower()
        value = content.group(1).strip()
        if key == "tileimage" and value:
            tile_url = value
        elif key == "tilecolor" and value:
            tile_color = value

    if tile_url:
        candidates.append(
            IconCandidate(
                url=fixup_url(tile_url, root_url, protocol),
                background_color=tile_color,
            )
        )
    return candidates
