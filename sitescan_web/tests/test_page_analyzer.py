from __future__ import annotations

import pytest

from sitescan_web.domain.errors import ParseError
from sitescan_web.services.document_model import parse_document
from sitescan_web.services.page_analyzer import PageAnalyzer, count_words, is_http_url, resolve_url

from sitescan_web.tests.conftest import EXAMPLE_HTML


def analyze(html: str, base: str = "https://example.com", **kwargs):
    return PageAnalyzer(**kwargs).analyze(parse_document(html), base)


def test_example_page_end_to_end():
    result = analyze(EXAMPLE_HTML)

    assert result.status == "completed"
    assert result.error is None
    assert result.title == "Example Domain"
    assert result.description == "An example page used in documentation."
    assert result.images == ("https://example.com/logo.png",)
    assert result.scripts == ("https://example.com/static/app.js",)
    assert result.stylesheets == ("https://example.com/static/site.css",)
    # mailto: is not a page link
    assert result.links == ("https://example.com/about",)
    assert result.seo.h1_tags == ("Example Domain",)
    assert result.seo.word_count == 13
    assert result.html == EXAMPLE_HTML


def test_missing_tags_give_empty_values():
    result = analyze("<html><body><p>bare</p></body></html>")

    assert result.title == ""
    assert result.description == ""
    assert result.links == ()
    assert result.images == ()
    assert result.seo.canonical_url is None
    assert result.seo.robots is None
    assert result.seo.open_graph == {}
    assert result.seo.structured_data == []


def test_links_are_resolved_filtered_and_capped():
    anchors = "".join(f'<a href="/p/{i}">p{i}</a>' for i in range(60))
    html = f"""<body>
      <a href="javascript:void(0)">js</a>
      <a href="tel:+15550100">call</a>
      <a href="https://other.example/x">other</a>
      {anchors}
    </body>"""
    result = analyze(html, "https://example.com/blog/")

    assert len(result.links) == 50
    assert result.links[0] == "https://other.example/x"
    assert result.links[1] == "https://example.com/p/0"
    assert all(link.startswith("http") for link in result.links)


def test_max_links_is_configurable():
    html = "".join(f'<a href="/p/{i}">x</a>' for i in range(10))
    assert len(analyze(html, max_links=3).links) == 3


def test_duplicate_images_are_kept():
    html = '<img src="a.png"><img src="a.png"><img src="https://cdn.example/b.png">'
    result = analyze(html, "https://example.com/dir/page.html")
    assert result.images == (
        "https://example.com/dir/a.png",
        "https://example.com/dir/a.png",
        "https://cdn.example/b.png",
    )


def test_word_count_ignores_scripts_styles_and_head():
    html = """<html><head><title>Many words in the title</title></head>
    <body>
      <script>var hidden = "not counted at all";</script>
      <style>.x { color: red; }</style>
      <p>one two three</p>
    </body></html>"""
    assert analyze(html).seo.word_count == 3


def test_every_text_node_is_its_own_word_boundary():
    # adjacent block elements without whitespace still count as separate words
    html = "<html><body><h1>Title</h1><p>Body</p><p>Hel<b>lo</b></p></body></html>"
    assert analyze(html).seo.word_count == 4


def test_open_graph_and_twitter_last_write_wins():
    html = """<head>
      <meta property="og:title" content="First">
      <meta property="og:title" content="Second">
      <meta property="og:image" content="https://example.com/og.png">
      <meta name="twitter:card" content="summary">
      <meta name="twitter:card" content="summary_large_image">
    </head>"""
    seo = analyze(html).seo
    assert seo.open_graph == {"og:title": "Second", "og:image": "https://example.com/og.png"}
    assert seo.twitter_card == {"twitter:card": "summary_large_image"}


def test_malformed_json_ld_blocks_are_skipped_individually():
    html = """<head>
      <script type="application/ld+json">{"@type": "Organization", "name": "Acme"}</script>
      <script type="application/ld+json">{not json</script>
      <script type="application/ld+json">[{"@type": "WebSite"}]</script>
    </head>"""
    seo = analyze(html).seo
    assert seo.structured_data == [{"@type": "Organization", "name": "Acme"}, [{"@type": "WebSite"}]]


def test_seo_fields_from_head():
    html = """<html><head>
      <title>Acme Widgets</title>
      <meta name="description" content="Widgets for everyone">
      <meta name="robots" content="index, follow">
      <link rel="canonical" href="https://acme.example/">
    </head><body><h1>Widgets</h1><h2>Small</h2><h2>Large</h2></body></html>"""
    seo = analyze(html).seo
    assert seo.title == "Acme Widgets"
    assert seo.title_length == len("Acme Widgets")
    assert seo.meta_description_length == len("Widgets for everyone")
    assert seo.robots == "index, follow"
    assert seo.canonical_url == "https://acme.example/"
    assert seo.h2_tags == ("Small", "Large")


def test_parse_document_rejects_non_text():
    with pytest.raises(ParseError):
        parse_document(b"<html></html>")


def test_document_model_helpers():
    doc = parse_document('<html lang="de"><body><h1>A</h1><h3>B</h3><h2>C</h2></body></html>')
    assert doc.html_lang() == "de"
    assert doc.heading_levels() == [1, 3, 2]
    assert parse_document("<p>x</p>").html_lang() is None


@pytest.mark.parametrize(
    "url, ok",
    [("https://a.example", True), ("http://a.example/x", True), ("mailto:a@b.c", False), ("javascript:void(0)", False)],
)
def test_is_http_url(url, ok):
    assert is_http_url(url) is ok


def test_small_helpers():
    assert resolve_url(" /x ", "https://example.com/a/b") == "https://example.com/x"
    assert count_words("  one\ttwo\nthree  ") == 3
