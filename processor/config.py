"""Run configuration for the FareHarbor events sync."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote, urlparse

FAREHARBOR_ORIGIN = "https://fareharbor.com"


def _flag(value: Optional[str]) -> bool:
    return (value or '').strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class SyncConfig:
    """
    Everything one sync run needs to know.

    Passed explicitly through the resolver, extractor and assembler so
    tests can inject their own values instead of patching the environment.
    """
    company: str = 'floridarama'
    flow: str = '1438415'
    timezone: str = 'America/New_York'
    events_file: str = 'events.json'
    write: bool = False
    merge_existing: bool = False
    use_browser: bool = False
    allow_empty: bool = False
    max_items: int = 50
    item_delay: float = 0.25
    timeout: int = 30

    @property
    def company_path(self) -> str:
        """Path prefix that scopes item pages to the configured company."""
        return f"/embeds/book/{self.company}/items/"

    @property
    def listing_url(self) -> str:
        return (
            f"{FAREHARBOR_ORIGIN}{self.company_path}"
            f"?flow={quote(self.flow, safe='')}&full-items=yes"
        )

    def item_url(self, item_id: str) -> str:
        """Rebuild an item page URL from its numeric id."""
        return (
            f"{FAREHARBOR_ORIGIN}{self.company_path}{item_id}/"
            f"?full-items=yes&flow={quote(self.flow, safe='')}"
        )

    def is_platform_url(self, url: Optional[str]) -> bool:
        """True for URLs on fareharbor.com inside the company's item pages."""
        try:
            parsed = urlparse(url or '')
        except ValueError:
            return False
        return 'fareharbor.com' in (parsed.hostname or '') and self.company_path in parsed.path

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'SyncConfig':
        """
        Read configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            SyncConfig populated from the environment, defaults elsewhere
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            company=env.get('FAREHARBOR_COMPANY') or defaults.company,
            flow=env.get('FAREHARBOR_FLOW') or defaults.flow,
            timezone=env.get('FAREHARBOR_TZ') or defaults.timezone,
            events_file=env.get('EVENTS_FILE') or defaults.events_file,
            write=_flag(env.get('WRITE_EVENTS')),
            merge_existing=_flag(env.get('MERGE_EXISTING')),
            use_browser=_flag(env.get('USE_PLAYWRIGHT')),
            allow_empty=_flag(env.get('ALLOW_EMPTY')),
            max_items=int(env.get('MAX_ITEMS', defaults.max_items)),
            item_delay=float(env.get('ITEM_DELAY_SECONDS', defaults.item_delay)),
            timeout=int(env.get('TIMEOUT_SECONDS', defaults.timeout))
        )
