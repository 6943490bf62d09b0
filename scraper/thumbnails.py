"""Thumbnail candidate scoring shared by the static and browser tiers."""
import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urljoin

# FareHarbor's own marketing art shows up as og:image on every item page.
GENERIC_THUMB_PATTERNS = [
    re.compile(r'marketing\.fareharbor\.com/wp-content/uploads/', re.IGNORECASE),
    re.compile(r'fh-og', re.IGNORECASE),
]

SOURCE_JSON_LD = 'json_ld'
SOURCE_META = 'meta'
SOURCE_INLINE = 'inline'

SOURCE_RANK = {
    SOURCE_JSON_LD: 2,
    SOURCE_META: 1,
    SOURCE_INLINE: 0,
}
RANK_STEP = 100_000_000
HERO_BONUS = 5_000_000

HERO_SELECTORS = '.fh-item__image,.item-image,.hero,.gallery,.carousel,.slider'
HERO_CLASSES = {'fh-item__image', 'item-image', 'hero', 'gallery', 'carousel', 'slider'}


@dataclass
class ImageCandidate:
    """One possible thumbnail found on a page."""
    url: str
    source: str
    area: float = 0
    in_hero: bool = False
    weight: float = 1.0

    @property
    def score(self) -> float:
        area = self.area if self.area > 0 else 1
        return (
            SOURCE_RANK.get(self.source, 0) * RANK_STEP
            + area * self.weight
            + (HERO_BONUS if self.in_hero else 0)
        )


def is_generic_thumbnail(url: Optional[str]) -> bool:
    return any(pattern.search(url or '') for pattern in GENERIC_THUMB_PATTERNS)


def absolute_image_url(url: Optional[str], page_url: str) -> Optional[str]:
    """
    Resolve an image reference against its page.

    Args:
        url: Raw src/href/url() value
        page_url: URL of the page it appeared on

    Returns:
        Absolute http(s) URL, or None for empty and data: references
    """
    if not url or not isinstance(url, str):
        return None
    url = url.strip()
    if not url or url.lower().startswith('data:'):
        return None
    absolute = urljoin(page_url, url)
    if not absolute.startswith(('http://', 'https://')):
        return None
    return absolute


def pick_thumbnail(
    candidates: Iterable[ImageCandidate],
    fallback: Optional[str] = None
) -> Optional[str]:
    """
    Choose the best thumbnail.

    Generic FareHarbor artwork is dropped before scoring. Ties go to the
    candidate seen first.

    Args:
        candidates: Candidates in page order
        fallback: Generic meta image used when nothing else qualifies

    Returns:
        Thumbnail URL or None
    """
    usable = [c for c in candidates if c.url and not is_generic_thumbnail(c.url)]
    if usable:
        return max(usable, key=lambda c: c.score).url
    return fallback
