"""Fact extraction from static FareHarbor item page markup."""
import html
import json
import logging
import re
from typing import Any, Iterator, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import PreformattedString

from processor.config import FAREHARBOR_ORIGIN
from processor.time_parser import normalize_text
from scraper.thumbnails import (
    HERO_CLASSES,
    SOURCE_INLINE,
    SOURCE_JSON_LD,
    SOURCE_META,
    ImageCandidate,
    absolute_image_url,
    pick_thumbnail,
)

logger = logging.getLogger(__name__)

# Prices for <a href=".../availability/1770373765/book/?...">Saturday, January 31, 2026</a>
PRICES_FOR_RE = re.compile(
    r'Prices\s+for\s*<a[^>]+href=["\']([^"\']*/availability/\d+/book/[^"\']*)["\'][^>]*>([^<]+)</a>',
    re.IGNORECASE
)
# Unrendered template token FareHarbor puts in <h1> before scripts run.
TITLE_PLACEHOLDER_RE = re.compile(r'\[!\s*item\.name\s*!\]', re.IGNORECASE)
CSS_URL_RE = re.compile(r'url\(\s*[\'"]?([^\'")]+)[\'"]?\s*\)', re.IGNORECASE)
CSS_IMAGE_URL_RE = re.compile(r'url\(\s*[\'"]?([^\'")]+\.(?:png|jpe?g|webp))[\'"]?\s*\)', re.IGNORECASE)

NON_TEXT_TAGS = {'script', 'style', 'noscript', 'template'}


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, 'html.parser')


def meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    """Content of a <meta property=key> or <meta name=key> tag."""
    for attr in ('property', 'name'):
        tag = soup.find('meta', attrs={attr: key})
        if tag and tag.get('content'):
            return normalize_text(tag['content'])
    return None


def is_placeholder_title(title: Optional[str]) -> bool:
    return bool(title and TITLE_PLACEHOLDER_RE.search(title))


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    """
    Item title: first <h1>, then <title>, then og:title / twitter:title.

    Headings still holding the template placeholder are ignored.
    """
    candidates = []
    h1 = soup.find('h1')
    if h1:
        candidates.append(h1.get_text(' ', strip=True))
    if soup.title:
        candidates.append(soup.title.get_text(' ', strip=True))
    candidates.append(meta_content(soup, 'og:title'))
    candidates.append(meta_content(soup, 'twitter:title'))

    for candidate in candidates:
        text = normalize_text(candidate)
        if text and not is_placeholder_title(text):
            return text
    return None


def parse_prices_anchor(markup: str) -> Optional[Tuple[str, str]]:
    """
    Find the next availability link in raw markup.

    Args:
        markup: Raw item page HTML

    Returns:
        Tuple of (absolute availability URL, date label) or None
    """
    match = PRICES_FOR_RE.search(markup or '')
    if not match:
        return None
    href = html.unescape(match.group(1))
    label = normalize_text(html.unescape(match.group(2)))
    if not label:
        return None
    return urljoin(FAREHARBOR_ORIGIN, href), label


def _image_values(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        if isinstance(value.get('url'), str):
            yield value['url']
    elif isinstance(value, list):
        for item in value:
            yield from _image_values(item)


def images_from_json_ld(raw: Optional[str]) -> List[str]:
    """
    Image and thumbnailUrl values from one JSON-LD document.

    Args:
        raw: Text of a <script type="application/ld+json"> block

    Returns:
        Image references in document order; empty for malformed JSON
    """
    raw = (raw or '').strip()
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.debug(f"Ignoring malformed JSON-LD block: {e}")
        return []

    objects = data if isinstance(data, list) else [data]
    expanded = []
    for obj in objects:
        if isinstance(obj, dict) and isinstance(obj.get('@graph'), list):
            expanded.extend(obj['@graph'])
        expanded.append(obj)

    images = []
    for obj in expanded:
        if not isinstance(obj, dict):
            continue
        for key in ('image', 'thumbnailUrl'):
            images.extend(_image_values(obj.get(key)))
    return images


def json_ld_images(soup: BeautifulSoup) -> List[str]:
    """JSON-LD images across all blocks on the page."""
    images = []
    for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
        images.extend(images_from_json_ld(script.string or script.get_text()))
    return images


def _in_hero(tag) -> bool:
    node = tag
    while node is not None and getattr(node, 'name', None):
        if HERO_CLASSES.intersection(node.get('class') or []):
            return True
        node = node.parent
    return False


def image_candidates(soup: BeautifulSoup, page_url: str) -> List[ImageCandidate]:
    """
    Collect thumbnail candidates from static markup.

    Args:
        soup: Parsed item page
        page_url: URL used to resolve relative references

    Returns:
        Candidates in page order
    """
    candidates = []

    for raw in json_ld_images(soup):
        url = absolute_image_url(raw, page_url)
        if url:
            candidates.append(ImageCandidate(url=url, source=SOURCE_JSON_LD))

    for key in ('og:image', 'twitter:image'):
        url = absolute_image_url(meta_content(soup, key), page_url)
        if url:
            candidates.append(ImageCandidate(url=url, source=SOURCE_META))

    for img in soup.find_all('img'):
        url = absolute_image_url(img.get('src'), page_url)
        if url:
            candidates.append(ImageCandidate(url=url, source=SOURCE_INLINE, in_hero=_in_hero(img)))

    for tag in soup.find_all(style=re.compile(r'background', re.IGNORECASE)):
        for raw in CSS_URL_RE.findall(tag['style']):
            url = absolute_image_url(raw, page_url)
            if url:
                candidates.append(ImageCandidate(url=url, source=SOURCE_INLINE, in_hero=_in_hero(tag)))

    for style in soup.find_all('style'):
        for raw in CSS_IMAGE_URL_RE.findall(style.string or ''):
            url = absolute_image_url(raw, page_url)
            if url:
                candidates.append(ImageCandidate(url=url, source=SOURCE_INLINE))

    return candidates


def extract_thumbnail(soup: BeautifulSoup, page_url: str) -> Optional[str]:
    """Best non-generic image, else the generic og/twitter image."""
    fallback = None
    for key in ('og:image', 'twitter:image'):
        fallback = absolute_image_url(meta_content(soup, key), page_url)
        if fallback:
            break
    return pick_thumbnail(image_candidates(soup, page_url), fallback=fallback)


def page_text(soup: BeautifulSoup) -> str:
    """Visible text of the page with whitespace collapsed."""
    parts = []
    for string in soup.find_all(string=True):
        if isinstance(string, PreformattedString):
            continue
        if string.parent is not None and string.parent.name in NON_TEXT_TAGS:
            continue
        parts.append(string)
    return normalize_text(' '.join(parts))
