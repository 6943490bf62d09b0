"""Unit tests for static item page extraction and thumbnail scoring."""
from scraper import html_extract
from scraper.thumbnails import (
    SOURCE_INLINE,
    SOURCE_JSON_LD,
    SOURCE_META,
    ImageCandidate,
    absolute_image_url,
    is_generic_thumbnail,
    pick_thumbnail,
)

PAGE_URL = "https://fareharbor.com/embeds/book/floridarama/items/12345/?full-items=yes&flow=1438415"
GENERIC_OG = "https://marketing.fareharbor.com/wp-content/uploads/2020/01/fh-og.png"

ITEM_HTML = """
<html>
<head>
    <title>Sunset Paddle | Floridarama</title>
    <meta property="og:title" content="Sunset Paddle (og)">
    <meta property="og:image" content="https://marketing.fareharbor.com/wp-content/uploads/2020/01/fh-og.png">
    <script type="application/ld+json">
        {"@type": "Product", "name": "Sunset Paddle", "image": ["https://cdn.example.com/paddle.jpg"]}
    </script>
    <script>var leaked = "11pm - 2am";</script>
</head>
<body>
    <h1>  Sunset
        Paddle &amp; Picnic </h1>
    <div class="fh-item__image" style="background-image: url('/media/hero.jpg')"></div>
    <p>Event is 6 - 9PM. Ages 8+</p>
    <p>Prices for <a href="/embeds/book/floridarama/items/12345/availability/1770373765/book/?flow=1438415&amp;full-items=yes">Saturday, January 31, 2026</a></p>
</body>
</html>
"""


class TestExtractTitle:
    """Test cases for title selection order."""

    def test_prefers_h1(self):
        soup = html_extract.parse_html(ITEM_HTML)

        assert html_extract.extract_title(soup) == "Sunset Paddle & Picnic"

    def test_falls_back_to_title_element(self):
        soup = html_extract.parse_html(
            "<html><head><title>Kayak Tour</title>"
            "<meta property='og:title' content='OG Kayak'></head><body></body></html>"
        )

        assert html_extract.extract_title(soup) == "Kayak Tour"

    def test_falls_back_to_social_meta(self):
        soup = html_extract.parse_html(
            "<html><head><meta name='twitter:title' content='Twitter Kayak'></head></html>"
        )

        assert html_extract.extract_title(soup) == "Twitter Kayak"

    def test_skips_template_placeholder_heading(self):
        soup = html_extract.parse_html(
            "<html><head><title>Real Name</title></head><body><h1>[! item.name !]</h1></body></html>"
        )

        assert html_extract.extract_title(soup) == "Real Name"

    def test_no_title(self):
        assert html_extract.extract_title(html_extract.parse_html("<p>nothing</p>")) is None


class TestParsePricesAnchor:
    """Test cases for the "Prices for" availability link."""

    def test_extracts_absolute_link_and_label(self):
        url, label = html_extract.parse_prices_anchor(ITEM_HTML)

        assert url == (
            "https://fareharbor.com/embeds/book/floridarama/items/12345"
            "/availability/1770373765/book/?flow=1438415&full-items=yes"
        )
        assert label == "Saturday, January 31, 2026"

    def test_missing_anchor(self):
        assert html_extract.parse_prices_anchor("<p>Sold out</p>") is None

    def test_ignores_non_availability_links(self):
        markup = 'Prices for <a href="/embeds/book/floridarama/items/1/">Saturday, January 31, 2026</a>'

        assert html_extract.parse_prices_anchor(markup) is None


class TestThumbnails:
    """Test cases for thumbnail ranking."""

    def test_json_ld_image_wins(self):
        soup = html_extract.parse_html(ITEM_HTML)

        assert html_extract.extract_thumbnail(soup, PAGE_URL) == "https://cdn.example.com/paddle.jpg"

    def test_generic_og_skipped_for_inline_background(self):
        markup = ITEM_HTML.replace('"image": ["https://cdn.example.com/paddle.jpg"]', '"image": []')
        soup = html_extract.parse_html(markup)

        assert html_extract.extract_thumbnail(soup, PAGE_URL) == "https://fareharbor.com/media/hero.jpg"

    def test_non_generic_og_beats_inline_images(self):
        soup = html_extract.parse_html(
            "<html><head><meta property='og:image' content='https://cdn.example.com/og.jpg'></head>"
            "<body><img src='https://cdn.example.com/inline.jpg'></body></html>"
        )

        assert html_extract.extract_thumbnail(soup, PAGE_URL) == "https://cdn.example.com/og.jpg"

    def test_generic_og_used_as_last_resort(self):
        soup = html_extract.parse_html(
            f"<html><head><meta property='og:image' content='{GENERIC_OG}'></head><body></body></html>"
        )

        assert html_extract.extract_thumbnail(soup, PAGE_URL) == GENERIC_OG

    def test_no_images(self):
        assert html_extract.extract_thumbnail(html_extract.parse_html("<p>hi</p>"), PAGE_URL) is None

    def test_json_ld_image_object_and_graph(self):
        raw = '{"@graph": [{"@type": "ImageObject", "image": {"url": "/img/a.png"}}]}'

        assert html_extract.images_from_json_ld(raw) == ["/img/a.png"]

    def test_malformed_json_ld_is_ignored(self):
        assert html_extract.images_from_json_ld("{not json") == []

    def test_pick_thumbnail_prefers_hero_then_area(self):
        candidates = [
            ImageCandidate(url="https://cdn.example.com/logo.png", source=SOURCE_INLINE, area=40_000),
            ImageCandidate(url="https://cdn.example.com/hero.jpg", source=SOURCE_INLINE, area=10_000, in_hero=True),
            ImageCandidate(url="https://cdn.example.com/big.jpg", source=SOURCE_INLINE, area=90_000),
        ]

        assert pick_thumbnail(candidates) == "https://cdn.example.com/hero.jpg"

    def test_pick_thumbnail_filters_denylist_before_scoring(self):
        candidates = [
            ImageCandidate(url=GENERIC_OG, source=SOURCE_JSON_LD),
            ImageCandidate(url="https://cdn.example.com/small.jpg", source=SOURCE_INLINE, area=10),
        ]

        assert pick_thumbnail(candidates, fallback=GENERIC_OG) == "https://cdn.example.com/small.jpg"

    def test_pick_thumbnail_ties_keep_first(self):
        candidates = [
            ImageCandidate(url="https://cdn.example.com/first.jpg", source=SOURCE_META),
            ImageCandidate(url="https://cdn.example.com/second.jpg", source=SOURCE_META),
        ]

        assert pick_thumbnail(candidates) == "https://cdn.example.com/first.jpg"

    def test_generic_patterns(self):
        assert is_generic_thumbnail(GENERIC_OG)
        assert is_generic_thumbnail("https://cdn.example.com/fh-og-default.png")
        assert not is_generic_thumbnail("https://cdn.example.com/paddle.jpg")

    def test_absolute_image_url(self):
        assert absolute_image_url("/a.jpg", PAGE_URL) == "https://fareharbor.com/a.jpg"
        assert absolute_image_url("data:image/png;base64,AAAA", PAGE_URL) is None
        assert absolute_image_url("", PAGE_URL) is None


def test_page_text_excludes_scripts_and_collapses_whitespace():
    text = html_extract.page_text(html_extract.parse_html(ITEM_HTML))

    assert "Event is 6 - 9PM." in text
    assert "Sunset Paddle & Picnic" in text
    assert "leaked" not in text
    assert "Sunset Paddle" in text and "\n" not in text
