"""Discovery of FareHarbor item pages from the items listing."""
import html
import logging
import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from processor.config import FAREHARBOR_ORIGIN, SyncConfig
from processor.exceptions import FetchError, ListingResolutionError, RenderError
from processor.models import CalendarEvent
from scraper.browser import BrowserRenderer
from scraper.fetcher import PageFetcher

logger = logging.getLogger(__name__)

ABSOLUTE_ITEM_RE = re.compile(
    r'https://fareharbor\.com/embeds/book/[^\s"\']+/items/\d+/?[^"\'\s<]*',
    re.IGNORECASE
)
RELATIVE_ITEM_RE = re.compile(
    r'href=["\'](/embeds/book/[\w-]+/items/\d+/?[^"\']*)["\']',
    re.IGNORECASE
)
ITEM_PATH_RE = re.compile(r'/items/\d+/?', re.IGNORECASE)
ITEM_ID_RE = re.compile(r'/items/(\d+)\b', re.IGNORECASE)


def unique(urls: Iterable[str]) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(urls))


def extract_item_urls(markup: str) -> List[str]:
    """
    Pull item page URLs out of listing markup.

    Args:
        markup: Raw listing page HTML

    Returns:
        Absolute item URLs in page order, duplicates removed
    """
    urls = [html.unescape(m) for m in ABSOLUTE_ITEM_RE.findall(markup or '')]
    urls.extend(
        urljoin(FAREHARBOR_ORIGIN, html.unescape(m))
        for m in RELATIVE_ITEM_RE.findall(markup or '')
    )
    return unique(urls)


def filter_company_urls(urls: Iterable[str], config: SyncConfig) -> List[str]:
    """Keep absolute item URLs that belong to the configured company."""
    kept = []
    for url in urls:
        absolute = urljoin(FAREHARBOR_ORIGIN, url)
        path = urlparse(absolute).path
        if config.company_path in path and ITEM_PATH_RE.search(path):
            kept.append(absolute)
    return unique(kept)


def item_id_from_url(url: Optional[str]) -> Optional[str]:
    match = ITEM_ID_RE.search(url or '')
    return match.group(1) if match else None


def reconstruct_item_urls(events: Iterable[CalendarEvent], config: SyncConfig) -> List[str]:
    """
    Rebuild item page URLs from the item ids of persisted FareHarbor events.

    Args:
        events: Events read from the events document
        config: Run configuration

    Returns:
        Item page URLs, one per distinct item id
    """
    ids = unique(
        item_id
        for item_id in (item_id_from_url(e.url) for e in events if config.is_platform_url(e.url))
        if item_id
    )
    return [config.item_url(item_id) for item_id in ids]


class ListingResolver:
    """Finds item pages, trying static HTML first and a browser render second."""

    def __init__(
        self,
        config: SyncConfig,
        fetcher: PageFetcher,
        renderer: Optional[BrowserRenderer] = None
    ):
        self.config = config
        self.fetcher = fetcher
        self.renderer = renderer

    def resolve(self) -> Tuple[List[str], bool]:
        """
        Resolve the configured listing into item URLs.

        Returns:
            Tuple of (item URLs capped at max_items, whether the browser was used)

        Raises:
            ListingResolutionError: If the listing could not be loaded at all
        """
        listing_url = self.config.listing_url
        logger.info(f"Fetching items listing: {listing_url}")

        try:
            markup = self.fetcher.fetch_html(listing_url)
        except FetchError as e:
            raise ListingResolutionError(f"Listing fetch failed: {e}") from e

        item_urls = filter_company_urls(extract_item_urls(markup), self.config)
        if item_urls:
            return item_urls[:self.config.max_items], False

        if self.renderer is None:
            logger.warning("Listing HTML had no item links and no browser is available")
            return [], False

        logger.info("Listing HTML had no item links; rendering in browser")
        try:
            hrefs = self.renderer.listing_links(listing_url)
        except RenderError as e:
            raise ListingResolutionError(f"Listing render failed: {e}") from e

        item_urls = filter_company_urls(hrefs, self.config)
        return item_urls[:self.config.max_items], True
