"""Static HTML fetcher for FareHarbor embed pages."""
import logging
import time
from typing import Optional

import requests

from processor.exceptions import FetchError

logger = logging.getLogger(__name__)


class PageFetcher:
    """Plain HTTP fetcher with retry and exponential backoff."""

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120 Safari/537.36"
    )
    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(self, timeout: int = 30, session: Optional[requests.Session] = None):
        """
        Initialize the fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': self.USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml',
        })

    def fetch_html(self, url: str) -> str:
        """
        Fetch a page, retrying transient failures.

        Args:
            url: Absolute page URL

        Returns:
            Response body as text

        Raises:
            FetchError: If all retry attempts fail
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                logger.debug(f"GET {url} (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed for {url}. Last error: {e}"
                    )
                    raise FetchError(url, str(e)) from e
