"""Tests for HTML favicon discovery"""

from core.services.candidate_resolver import fixup_url, resolve_candidates

ROOT = "http://example.com"


def test_fixup_url_variants():
    assert fixup_url("//cdn.example.net/i.ico", ROOT, "https") == "https://cdn.example.net/i.ico"
    assert fixup_url("/static/icon.png", ROOT, "http") == "http://example.com/static/icon.png"
    assert fixup_url("https://other.org/x.png", ROOT, "http") == "https://other.org/x.png"
    # Relative paths are not resolved
    assert fixup_url("img/icon.png", ROOT, "http") == "img/icon.png"


def test_link_icons_in_document_order():
    html = """
    <html><head>
      <link rel="stylesheet" href="/site.css">
      <link rel="shortcut icon" href="/favicon-16.ico">
      <LINK REL='Apple-Touch-Icon' HREF='//cdn.example.com/touch.png'>
      <link href="/mask.svg" rel="mask-icon">
    </head></html>
    """
    found = resolve_candidates(html, ROOT, "https")

    assert [c.url for c in found] == [
        "http://example.com/favicon-16.ico",
        "https://cdn.example.com/touch.png",
        "http://example.com/mask.svg",
    ]
    assert all(c.payload is None and c.background_color is None for c in found)


def test_tile_image_appended_last_with_color():
    html = """
    <meta name="msapplication-TileColor" content="#da532c">
    <meta name="msapplication-TileImage" content="/mstile-144x144.png">
    <link rel="icon" href="/icon.png">
    """
    found = resolve_candidates(html, ROOT, "http")

    assert [c.url for c in found] == [
        "http://example.com/icon.png",
        "http://example.com/mstile-144x144.png",
    ]
    assert found[-1].background_color == "#da532c"
    assert found[0].background_color is None


def test_tile_image_without_color():
    html = '<meta content="/tile.png" name="msapplication-TileImage">'
    found = resolve_candidates(html, ROOT, "http")

    assert len(found) == 1
    assert found[0].url == "http://example.com/tile.png"
    assert found[0].background_color is None


def test_tile_color_alone_adds_nothing():
    html = '<meta name="msapplication-TileColor" content="#ffffff">'
    assert resolve_candidates(html, ROOT, "http") == []


def test_link_without_href_or_icon_rel_is_ignored():
    html = """
    <link rel="icon">
    <link rel="icon" href="">
    <link rel="canonical" href="/page">
    <link rel=icon href=/unquoted.ico>
    """
    assert resolve_candidates(html, ROOT, "http") == []


def test_malformed_markup_does_not_raise():
    html = '<link rel="icon" href="/a.ico"<link <meta name=" <<<>>> <link rel="icon" href="/b.ico">'
    found = resolve_candidates(html, ROOT, "http")
    assert "http://example.com/b.ico" in [c.url for c in found]

    assert resolve_candidates("", ROOT, "http") == []
    assert resolve_candidates("\x00\xff not html at all", ROOT, "http") == []
