"""End-to-end FareHarbor events sync."""
import logging
import time
from typing import List, Optional

from processor.config import SyncConfig
from processor.event_assembler import EventAssembler
from processor.exceptions import FetchError, ListingResolutionError, ParseError
from processor.models import CalendarEvent, SyncResult
from scraper.browser import BrowserRenderer
from scraper.fetcher import PageFetcher
from scraper.item_extractor import ItemExtractor
from scraper.listing import ListingResolver, reconstruct_item_urls

logger = logging.getLogger(__name__)


class EventSyncRunner:
    """Resolves items, extracts each one, assembles and publishes the result."""

    PREVIEW_COUNT = 5

    def __init__(
        self,
        config: SyncConfig,
        store,
        resolver: Optional[ListingResolver] = None,
        extractor: Optional[ItemExtractor] = None,
        assembler: Optional[EventAssembler] = None,
        sleep=time.sleep
    ):
        """
        Wire up the pipeline.

        Args:
            config: Run configuration
            store: Events store (read_events / write_events)
            resolver: Listing resolver (default: built from config)
            extractor: Item extractor (default: built from config)
            assembler: Event assembler (default: built from config)
            sleep: Delay function used between items
        """
        self.config = config
        self.store = store
        self.sleep = sleep

        if resolver is None or extractor is None:
            fetcher = PageFetcher(timeout=config.timeout)
            renderer = BrowserRenderer(timeout=config.timeout)
            if resolver is None:
                resolver = ListingResolver(config, fetcher, renderer)
            if extractor is None:
                extractor = ItemExtractor.build(
                    fetcher, renderer if config.use_browser else None
                )

        self.resolver = resolver
        self.extractor = extractor
        self.assembler = assembler or EventAssembler(config)
        self._existing: Optional[List[CalendarEvent]] = None

    def _existing_events(self) -> List[CalendarEvent]:
        if self._existing is None:
            self._existing = self.store.read_events()
        return self._existing

    def resolve_items(self, result: SyncResult) -> List[str]:
        """
        Find item pages, falling back to ids from the persisted document.

        Args:
            result: Run statistics to update

        Returns:
            Item page URLs
        """
        try:
            item_urls, used_browser = self.resolver.resolve()
            result.used_browser_listing = used_browser
        except ListingResolutionError as e:
            logger.warning(
                f"Listing scrape failed ({e}). Falling back to existing event item IDs."
            )
            item_urls = reconstruct_item_urls(self._existing_events(), self.config)
            result.used_fallback_listing = True

        item_urls = item_urls[:self.config.max_items]
        logger.info(
            f"Found {len(item_urls)} item link(s)."
            + (" (via browser render)" if result.used_browser_listing else "")
        )
        return item_urls

    def scrape_items(self, item_urls: List[str], result: SyncResult) -> List[CalendarEvent]:
        """
        Extract one candidate event per item, one item at a time.

        Items that cannot be fetched or have no availability are skipped
        and recorded in result.errors, as is any other per-item failure.
        """
        events = []
        total = len(item_urls)

        for index, item_url in enumerate(item_urls, start=1):
            logger.info(f"[{index}/{total}] Fetching item: {item_url}")
            result.items_processed += 1
            try:
                facts = self.extractor.extract(item_url)
                if not facts.has_availability:
                    self._skip(result, item_url, "No availability found")
                    continue
                event = self.assembler.build_event(facts)
            except (FetchError, ParseError) as e:
                self._skip(result, item_url, str(e))
            except Exception as e:
                logger.warning(f"Unexpected error processing {item_url}: {e}", exc_info=True)
                self._skip(result, item_url, f"{type(e).__name__}: {e}")
            else:
                logger.info(f"  {event.start} {event.title}")
                events.append(event)
            finally:
                self.sleep(self.config.item_delay)

        return events

    @staticmethod
    def _skip(result: SyncResult, item_url: str, reason: str) -> None:
        message = f"Skipping {item_url}: {reason}"
        logger.warning(message)
        result.items_skipped += 1
        result.errors.append(message)

    def run(self) -> SyncResult:
        """
        Execute one sync run.

        Returns:
            SyncResult with run statistics

        Raises:
            EmptyResultError: If writing is enabled, the result is empty and
                empty writes are not allowed; the document is left untouched
        """
        result = SyncResult()

        item_urls = self.resolve_items(result)
        result.items_found = len(item_urls)

        scraped = self.scrape_items(item_urls, result)
        result.events_scraped = len(scraped)

        existing = None
        if self.config.merge_existing:
            existing = self._existing_events()
        else:
            logger.info("Overwrite mode: output will match the FareHarbor booking flow exactly.")

        events = self.assembler.assemble(scraped, existing)
        result.events_total = len(events)
        result.foreign_kept = sum(1 for e in events if not self.assembler.is_platform_event(e))

        if not self.config.write:
            logger.info(f"Dry-run: would write {len(events)} event(s) to {self.config.events_file}.")
            for event in events[:self.PREVIEW_COUNT]:
                logger.info(f"- {event.start} {event.title}")
            return result

        self.assembler.check_publishable(events, allow_empty=self.config.allow_empty)
        self.store.write_events(events)
        result.written = True
        return result
