"""Data models for event extraction and assembly."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CalendarEvent:
    """
    Calendar entry, either freshly scraped or read from the events document.

    Entries read from the document keep the object they were read from in
    ``source`` and are written back exactly as read. Manually added
    entries may lack any of the usual keys.
    """
    title: str
    start: str
    end: Optional[str]
    url: str
    thumbnail: Optional[str] = None
    source: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the persisted JSON shape.

        Key order is fixed so repeated writes of the same events are
        byte-identical. ``thumbnail`` is omitted when unset.
        """
        if self.source is not None:
            return dict(self.source)

        item: Dict[str, Any] = {
            'title': self.title,
            'start': self.start,
        }
        if self.end is not None:
            item['end'] = self.end
        item['url'] = self.url
        if self.thumbnail:
            item['thumbnail'] = self.thumbnail
        return item

    @classmethod
    def from_dict(cls, item: Any) -> Optional['CalendarEvent']:
        """
        Wrap a persisted JSON object.

        Args:
            item: One entry of the events document

        Returns:
            CalendarEvent, or None if the entry is not a JSON object
        """
        if not isinstance(item, dict):
            return None

        end = item.get('end')
        return cls(
            title=str(item.get('title') or ''),
            start=str(item.get('start') or ''),
            end=str(end) if end is not None else None,
            url=str(item.get('url') or ''),
            thumbnail=item.get('thumbnail') or None,
            source=item
        )


@dataclass
class ItemPageFacts:
    """Best-effort facts pulled from one item page."""
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    availability_url: Optional[str] = None
    date_label: Optional[str] = None
    body_text: str = ''

    @property
    def has_availability(self) -> bool:
        return bool(self.availability_url and self.date_label)

    def merged_with(self, other: 'ItemPageFacts') -> 'ItemPageFacts':
        """Overlay the non-empty facts of a later extraction tier."""
        merged = ItemPageFacts(
            title=other.title or self.title,
            thumbnail=other.thumbnail or self.thumbnail,
            availability_url=self.availability_url,
            date_label=self.date_label,
            body_text=other.body_text or self.body_text
        )
        if other.has_availability:
            merged.availability_url = other.availability_url
            merged.date_label = other.date_label
        return merged


@dataclass(frozen=True)
class ClockTime:
    """12-hour clock time."""
    hour12: int
    minute: int
    meridiem: str

    def to_24h(self) -> tuple[int, int]:
        hour = self.hour12 % 12
        if self.meridiem == 'PM':
            hour += 12
        return hour, self.minute


@dataclass(frozen=True)
class TimeWindow:
    """Start and end clock times, both meridiem-qualified."""
    start: ClockTime
    end: ClockTime


@dataclass
class SyncResult:
    """Result of one sync run."""
    items_found: int = 0
    items_processed: int = 0
    items_skipped: int = 0
    events_scraped: int = 0
    foreign_kept: int = 0
    events_total: int = 0
    written: bool = False
    used_browser_listing: bool = False
    used_fallback_listing: bool = False
    errors: List[str] = field(default_factory=list)
