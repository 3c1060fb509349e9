"""Tests for tag extraction and XML rewriting."""

from textwrap import dedent

import pytest

from reelarr.core.models.settings import Processor
from reelarr.core.tags import extract_tags, rewrite_document, rewrite_tag


# ─── extract_tags ────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    ("xml", "tag", "expected"),
    [
        ("<title>Test Movie</title>", "title", ["Test Movie"]),
        ("<title>title1</title><title>title2</title><title>title3</title>", "title", ["title1", "title2", "title3"]),
        ("<title>First Movie\nSecond Line</title><title>Second Movie</title>", "title", ["First Movie\nSecond Line", "Second Movie"]),
        ("<title></title><title>Not Empty</title>", "title", ["", "Not Empty"]),
        ('<item id="1"><title>Movie 1</title></item><item id="2"><title>Movie 2</title></item>', "title", ["Movie 1", "Movie 2"]),
        ("<br /><title>Test</title>", "title", ["Test"]),
        ("<title/><title>Test</title>", "title", ["Test"]),
        ("<title>Test</title>", "nonexistent", []),
        ("", "title", []),
        ("<link>https://example.com</link><link>https://test.com</link>", "link", ["https://example.com", "https://test.com"]),
        ("<title>Movie & OVA</title><title>Test &amp; Title</title>", "title", ["Movie & OVA", "Test &amp; Title"]),
        ("<title>   Padded Title   </title>", "title", ["   Padded Title   "]),
        ('<title lang="en">With Attr</title>', "title", ["With Attr"]),
        ("<titles>Not Me</titles><title>Me</title>", "title", ["Me"]),
    ],
    ids=[
        "single", "multiple", "multiline", "empty_tag", "inside_items", "self_closing_other",
        "self_closing_same", "missing_tag", "empty_document", "links", "entities", "whitespace",
        "attributes", "longer_tag_name",
    ],
)
def test_extract_tags(xml, tag, expected):
    assert extract_tags(xml, tag) == expected


def test_extract_nested_same_tag_closes_at_first_end():
    xml = "<title>outer <title>inner</title> rest</title>"
    assert extract_tags(xml, "title") == ["outer <title>inner"]


def test_extract_real_world_feed():
    xml = dedent("""
        <item>
          <title>Griffin in Summer [2024]</title>
          <link>https://example.com/download</link>
          <description>6.44 GB</description>
        </item>
        <item>
          <title>The Wonderfully Weird World of Gumball [2025]</title>
          <link>https://example.com/download2</link>
          <description>15.39 GB</description>
        </item>
    """)
    assert extract_tags(xml, "title") == ["Griffin in Summer [2024]", "The Wonderfully Weird World of Gumball [2025]"]
    assert extract_tags(xml, "link") == ["https://example.com/download", "https://example.com/download2"]
    assert extract_tags(xml, "description") == ["6.44 GB", "15.39 GB"]


# ─── rewrite_tag / rewrite_document ──────────────────────────────────────────

FEED = dedent("""\
    <?xml version="1.0"?>
    <rss><channel>
    <title>Tracker feed</title>
    <item><title>Griffin in Summer [2024] 1080p</title><link>https://example.com/1</link></item>
    <item><title>Some.Show.S01E01</title><link>https://example.com/2</link></item>
    </channel></rss>
""")


@pytest.fixture
def year_pattern(make_pattern):
    return make_pattern(
        "${title} (${year})",
        {"name": "year", "regex": r"^.*\[(\d{4})\].*$", "replaceWith": "$1"},
        {"name": "title", "regex": r"\s*\[\d{4}\].*$", "replaceWith": ""},
    )


def test_rewrite_only_matching_fragments(year_pattern):
    out = rewrite_tag(FEED, "title", year_pattern)
    assert "<title>Griffin in Summer (2024)</title>" in out
    assert "<title>Some.Show.S01E01</title>" in out
    assert "<title>Tracker feed</title>" in out
    assert out.replace("<title>Griffin in Summer (2024)</title>", "<title>Griffin in Summer [2024] 1080p</title>") == FEED


def test_rewrite_document_empty_map_is_identity():
    assert rewrite_document(FEED, {}, lambda ref: None) == FEED


def test_rewrite_document_looks_up_pattern_ids(year_pattern):
    lookup = {"year": year_pattern}.get
    out = rewrite_document(FEED, {"title": "year"}, lookup)
    assert "<title>Griffin in Summer (2024)</title>" in out


def test_rewrite_document_skips_missing_pattern(mocker, year_pattern):
    logger = mocker.patch("reelarr.core.tags.logger")
    out = rewrite_document(FEED, [("link", "missing"), ("title", year_pattern)], lambda ref: None)
    assert "<title>Griffin in Summer (2024)</title>" in out
    assert "<link>https://example.com/1</link>" in out
    logger.warning.assert_called_once()


def test_rewrite_document_accepts_inline_processor():
    processor = Processor.model_validate({
        "tag": "link",
        "variables": [{"name": "host", "regex": r"^https://([^/]+)/.*$", "replaceWith": "$1"}],
        "output": "https://mirror.${host}/",
    })
    out = rewrite_document(FEED, [("link", processor)], lambda ref: None)
    assert extract_tags(out, "link") == ["https://mirror.example.com/", "https://mirror.example.com/"]


def test_later_tags_see_earlier_rewrites(make_pattern):
    to_upper = make_pattern("MOVIE", {"name": "x", "regex": "^movie$", "replaceWith": ""})
    needs_upper = make_pattern("seen ${x}", {"name": "x", "regex": "^MOVIE$", "replaceWith": "$&"})
    doc = "<a>movie</a>"
    out = rewrite_document(doc, [("a", to_upper), ("a", needs_upper)], lambda ref: None)
    assert out == "<a>seen MOVIE</a>"


def test_duplicate_fragments_replaced_front_to_back(make_pattern):
    counter = make_pattern("done", {"name": "x", "regex": "dup", "replaceWith": ""})
    doc = "<t>dup</t><t>other</t><t>dup</t>"
    assert rewrite_tag(doc, "t", counter) == "<t>done</t><t>other</t><t>done</t>"


def test_literal_replace_can_hit_an_already_rewritten_fragment(make_pattern):
    # a -> b, b -> c
    pattern = make_pattern(
        "${m}",
        {"name": "g", "regex": "^[ab]$", "replaceWith": "$&"},
        {"name": "n", "from": "g", "regex": "b", "replaceWith": "c"},
        {"name": "m", "from": "n", "regex": "a", "replaceWith": "b"},
    )
    # the second fragment's rewrite lands on the first, already rewritten, occurrence
    assert rewrite_tag("<t>a</t><t>b</t>", "t", pattern) == "<t>c</t><t>b</t>"


def test_attributed_tags_are_extracted_but_not_replaced(year_pattern):
    doc = '<title lang="en">Alien [1979]</title>'
    assert rewrite_tag(doc, "title", year_pattern) == doc


def test_rewrite_is_not_idempotent(make_pattern):
    append_x = make_pattern("${v}x", {"name": "v", "regex": "^m", "replaceWith": "$&"})
    once = rewrite_tag("<t>m</t>", "t", append_x)
    twice = rewrite_tag(once, "t", append_x)
    assert once == "<t>mx</t>"
    assert twice == "<t>mxx</t>"
