"""Assembly of scraped item facts into the published event list."""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from dateutil import tz

from processor.config import SyncConfig
from processor.exceptions import EmptyResultError, ParseError
from processor.models import CalendarEvent, ItemPageFacts
from processor.time_parser import (
    DEFAULT_WINDOW,
    extract_time_window,
    parse_date_label,
    to_local_iso,
)

logger = logging.getLogger(__name__)


class EventAssembler:
    """Builds, deduplicates, merges, filters and orders calendar events."""

    DEFAULT_TITLE = 'Untitled Event'

    def __init__(self, config: SyncConfig):
        """
        Initialize the assembler.

        Args:
            config: Run configuration (company scope and timezone)
        """
        self.config = config

    def build_event(self, facts: ItemPageFacts) -> CalendarEvent:
        """
        Turn one item's facts into a calendar event.

        Items with no detectable time get DEFAULT_WINDOW rather than
        being dropped.

        Args:
            facts: Facts extracted from the item page

        Returns:
            CalendarEvent with local start/end timestamps

        Raises:
            ParseError: If there is no availability date or it cannot be parsed
        """
        if not facts.has_availability:
            raise ParseError("No availability link found")

        day = parse_date_label(facts.date_label)
        if day is None:
            raise ParseError(f"Could not parse date from: {facts.date_label}")

        window = extract_time_window(facts.body_text) or DEFAULT_WINDOW
        start_hour, start_minute = window.start.to_24h()
        end_hour, end_minute = window.end.to_24h()

        return CalendarEvent(
            title=facts.title or self.DEFAULT_TITLE,
            start=to_local_iso(day, start_hour, start_minute),
            end=to_local_iso(day, end_hour, end_minute),
            url=facts.availability_url,
            thumbnail=facts.thumbnail or None
        )

    def deduplicate(self, events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
        """Keep the first event for each (url, start) pair."""
        by_key = {}
        for event in events:
            key = (event.url, event.start)
            if key not in by_key:
                by_key[key] = event
        return list(by_key.values())

    def is_platform_event(self, event: CalendarEvent) -> bool:
        return self.config.is_platform_url(event.url)

    def partition(
        self, events: Iterable[CalendarEvent]
    ) -> Tuple[List[CalendarEvent], List[CalendarEvent]]:
        """
        Split persisted events by origin.

        Returns:
            Tuple of (foreign events, FareHarbor events)
        """
        foreign, platform = [], []
        for event in events:
            (platform if self.is_platform_event(event) else foreign).append(event)
        return foreign, platform

    def today_in_timezone(self) -> str:
        """Today's date (YYYY-MM-DD) in the configured timezone."""
        zone = tz.gettz(self.config.timezone)
        if zone is None:
            logger.warning(f"Unknown timezone {self.config.timezone!r}; using UTC")
            zone = tz.UTC
        return datetime.now(zone).date().isoformat()

    def filter_upcoming(self, events: Iterable[CalendarEvent], today: str) -> List[CalendarEvent]:
        """
        Drop FareHarbor events that ended before today.

        Foreign events are kept regardless of date.
        """
        kept = []
        for event in events:
            if not self.is_platform_event(event):
                kept.append(event)
                continue
            end_day = (event.end or event.start or '')[:10]
            if end_day and end_day >= today:
                kept.append(event)
        return kept

    def assemble(
        self,
        candidates: Iterable[CalendarEvent],
        existing: Optional[Iterable[CalendarEvent]] = None,
        today: Optional[str] = None
    ) -> List[CalendarEvent]:
        """
        Produce the full event list to publish.

        Args:
            candidates: Events built from this run's scrape, in scrape order
            existing: Persisted events to merge with, or None to overwrite
            today: Override for today's date (YYYY-MM-DD)

        Returns:
            Events sorted by start
        """
        fresh = self.deduplicate(candidates)

        kept: List[CalendarEvent] = []
        if existing is not None:
            kept, replaced = self.partition(existing)
            logger.info(
                f"Merging: keeping {len(kept)} non-FareHarbor event(s), "
                f"replacing {len(replaced)} FareHarbor event(s)"
            )

        events = self.filter_upcoming(kept + fresh, today or self.today_in_timezone())
        events.sort(key=lambda e: e.start)
        return events

    def check_publishable(self, events: List[CalendarEvent], allow_empty: bool = False) -> None:
        """
        Refuse to publish an empty calendar unless explicitly allowed.

        Raises:
            EmptyResultError: If events is empty and allow_empty is False
        """
        if not events and not allow_empty:
            raise EmptyResultError(
                "Refusing to overwrite events with 0 events "
                "(scrape likely failed; re-run or allow empty writes to force)"
            )
