"""Per-item fact extraction with a static tier and a browser fallback tier."""
import logging
from typing import List, Optional
from urllib.parse import urljoin

from processor.exceptions import FetchError, RenderError
from processor.models import ItemPageFacts
from processor.time_parser import extract_time_window, normalize_text
from scraper import html_extract
from scraper.browser import BrowserRenderer
from scraper.fetcher import PageFetcher
from scraper.thumbnails import (
    SOURCE_INLINE,
    SOURCE_JSON_LD,
    SOURCE_META,
    ImageCandidate,
    absolute_image_url,
    pick_thumbnail,
)

logger = logging.getLogger(__name__)


class StaticPageTier:
    """Reads facts from the HTML the server sends, without running scripts."""

    name = 'static'

    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher

    def extract(self, item_url: str) -> Optional[ItemPageFacts]:
        """
        Fetch and parse an item page.

        Args:
            item_url: Item page URL

        Returns:
            ItemPageFacts, or None if the page could not be fetched
        """
        try:
            markup = self.fetcher.fetch_html(item_url)
        except FetchError as e:
            logger.warning(f"Static fetch failed for {item_url}: {e}")
            return None

        soup = html_extract.parse_html(markup)
        facts = ItemPageFacts(
            title=html_extract.extract_title(soup),
            thumbnail=html_extract.extract_thumbnail(soup, item_url),
            body_text=html_extract.page_text(soup)
        )
        prices = html_extract.parse_prices_anchor(markup)
        if prices:
            facts.availability_url, facts.date_label = prices
        return facts


class BrowserPageTier:
    """Reads facts from the live DOM after FareHarbor's scripts have run."""

    name = 'browser'

    def __init__(self, renderer: BrowserRenderer):
        self.renderer = renderer

    def extract(self, item_url: str) -> Optional[ItemPageFacts]:
        try:
            dom = self.renderer.render_item(item_url)
        except RenderError as e:
            logger.warning(f"Browser fallback failed for {item_url}: {e}")
            return None
        return self.facts_from_dom(dom or {}, item_url)

    @staticmethod
    def facts_from_dom(dom: dict, item_url: str) -> ItemPageFacts:
        """
        Turn the raw DOM snapshot into facts, scoring thumbnail candidates.

        Args:
            dom: Dict returned by BrowserRenderer.render_item
            item_url: Page URL used to resolve relative references

        Returns:
            ItemPageFacts
        """
        candidates = []
        for raw in dom.get('jsonLd') or []:
            for image in html_extract.images_from_json_ld(raw):
                url = absolute_image_url(image, item_url)
                if url:
                    candidates.append(ImageCandidate(url=url, source=SOURCE_JSON_LD))

        meta_image = absolute_image_url(dom.get('metaImage'), item_url)
        if meta_image:
            candidates.append(ImageCandidate(url=meta_image, source=SOURCE_META))

        for image in dom.get('images') or []:
            url = absolute_image_url(image.get('url'), item_url)
            if url:
                candidates.append(ImageCandidate(
                    url=url,
                    source=SOURCE_INLINE,
                    area=float(image.get('area') or 0),
                    in_hero=bool(image.get('inHero'))
                ))

        title = normalize_text(dom.get('title'))
        if html_extract.is_placeholder_title(title):
            title = ''

        facts = ItemPageFacts(
            title=title or None,
            thumbnail=pick_thumbnail(candidates, fallback=meta_image),
            body_text=dom.get('bodyText') or ''
        )
        availability_url = dom.get('availabilityUrl')
        if availability_url:
            availability_url = urljoin(item_url, availability_url)
        date_label = normalize_text(dom.get('dateLabel'))
        if availability_url and date_label:
            facts.availability_url = availability_url
            facts.date_label = date_label
        return facts


class ItemExtractor:
    """
    Runs extraction tiers in order until an item's facts are complete.

    Facts are complete once there is an availability link and the page
    text yields a time window. A later tier only fills what earlier tiers
    could not.
    """

    def __init__(self, tiers: List):
        self.tiers = tiers

    @classmethod
    def build(cls, fetcher: PageFetcher, renderer: Optional[BrowserRenderer] = None) -> 'ItemExtractor':
        tiers = [StaticPageTier(fetcher)]
        if renderer is not None:
            tiers.append(BrowserPageTier(renderer))
        return cls(tiers)

    @staticmethod
    def is_complete(facts: ItemPageFacts) -> bool:
        return facts.has_availability and extract_time_window(facts.body_text) is not None

    def extract(self, item_url: str) -> ItemPageFacts:
        """
        Extract facts for one item.

        Args:
            item_url: Item page URL

        Returns:
            ItemPageFacts, possibly without an availability link

        Raises:
            FetchError: If the first tier could not load the page
        """
        facts = None
        for tier in self.tiers:
            if facts is not None and self.is_complete(facts):
                break
            if facts is not None:
                logger.info(f"Falling back to {tier.name} tier for {item_url}")

            found = tier.extract(item_url)
            if found is None:
                if facts is None:
                    raise FetchError(item_url, f"Item page unavailable to the {tier.name} tier")
                continue
            facts = found if facts is None else facts.merged_with(found)

        return facts
