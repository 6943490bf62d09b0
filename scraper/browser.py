"""Headless browser rendering for pages FareHarbor builds client-side."""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from playwright.sync_api import BrowserContext, Page
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from processor.exceptions import RenderError
from scraper.thumbnails import HERO_SELECTORS

logger = logging.getLogger(__name__)

LISTING_LINKS_SCRIPT = """
els => els.map(a => a.getAttribute("href")).filter(Boolean)
"""

TITLE_RESOLVED_SCRIPT = """
() => {
    const h1 = document.querySelector("h1");
    const t = (h1 && h1.textContent || "").trim();
    return t && !/\\[!\\s*item\\.name\\s*!\\]/i.test(t);
}
"""

# Returns raw facts; filtering and thumbnail scoring happen in Python.
ITEM_FACTS_SCRIPT = """
(heroSelectors) => {
    const abs = (u) => {
        if (!u) return null;
        try { return new URL(u, window.location.href).toString(); } catch (e) { return null; }
    };
    const meta = (attr, value) => {
        const el = document.querySelector(`meta[${attr}="${value}"]`);
        return el ? el.getAttribute("content") : null;
    };

    const h1 = document.querySelector("h1");
    const title = ((h1 && h1.textContent) || document.title || "").trim();

    const metaImage = abs(
        meta("property", "og:image") || meta("name", "og:image") ||
        meta("name", "twitter:image") || meta("property", "twitter:image")
    );

    const jsonLd = [];
    for (const s of Array.from(document.querySelectorAll('script[type="application/ld+json"]')).slice(0, 8)) {
        const txt = (s.textContent || "").trim();
        if (txt) jsonLd.push(txt);
    }

    const images = [];
    for (const img of Array.from(document.querySelectorAll("img")).slice(0, 80)) {
        const url = abs(img.currentSrc || img.src || img.getAttribute("src"));
        if (!url) continue;
        const w = Number(img.naturalWidth || 0);
        const h = Number(img.naturalHeight || 0);
        images.push({url, area: w && h ? w * h : 0, inHero: Boolean(img.closest(heroSelectors))});
    }

    const bgEls = Array.from(document.querySelectorAll('[style*="background"],' + heroSelectors)).slice(0, 120);
    for (const el of bgEls) {
        const bg = window.getComputedStyle(el).backgroundImage || "";
        const m = bg.match(/url\\(\\s*['"]?([^'")]+)['"]?\\s*\\)/i);
        if (!m) continue;
        const url = abs(m[1]);
        if (!url) continue;
        const r = el.getBoundingClientRect();
        images.push({
            url,
            area: Math.max(0, r.width) * Math.max(0, r.height),
            inHero: el.matches(heroSelectors) || Boolean(el.closest(heroSelectors)),
        });
    }

    const link = Array.from(document.querySelectorAll("a")).find((a) => {
        const href = a.getAttribute("href") || "";
        return /\\/availability\\/\\d+\\/book\\//i.test(href) && /\\d{4}/.test((a.textContent || "").trim());
    });

    return {
        title,
        metaImage,
        jsonLd,
        images,
        availabilityUrl: link ? abs(link.getAttribute("href")) : null,
        dateLabel: link ? (link.textContent || "").trim() : null,
        bodyText: (document.body && document.body.innerText) || "",
    };
}
"""


class BrowserRenderer:
    """Renders pages in headless Chromium via Playwright."""

    SETTLE_MS = 1500
    NETWORK_IDLE_TIMEOUT_MS = 15_000
    TITLE_TIMEOUT_MS = 10_000

    def __init__(self, timeout: int = 30, headless: bool = True):
        """
        Initialize the renderer.

        Args:
            timeout: Navigation timeout in seconds (default: 30)
            headless: Run Chromium without a window (default: True)
        """
        self.timeout = timeout
        self.headless = headless

    @contextmanager
    def session(self) -> Iterator[BrowserContext]:
        """Fresh browser and context, closed on exit."""
        with sync_playwright() as pw:
            browser = pw.chromium.launch(headless=self.headless)
            context = browser.new_context()
            try:
                yield context
            finally:
                context.close()
                browser.close()

    def _open(self, context: BrowserContext, url: str) -> Page:
        page = context.new_page()
        page.set_default_timeout(self.timeout * 1000)
        page.goto(url, wait_until='domcontentloaded')
        page.wait_for_timeout(self.SETTLE_MS)
        try:
            page.wait_for_load_state('networkidle', timeout=self.NETWORK_IDLE_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.debug(f"Network never went idle for {url}; continuing")
        return page

    def listing_links(self, listing_url: str) -> List[str]:
        """
        Render the items listing and read its item anchors.

        Args:
            listing_url: FareHarbor items listing URL

        Returns:
            Raw href values of anchors pointing at item pages

        Raises:
            RenderError: If the browser fails to load the page
        """
        logger.info(f"Rendering listing in browser: {listing_url}")
        try:
            with self.session() as context:
                page = self._open(context, listing_url)
                try:
                    return page.eval_on_selector_all('a[href*="/items/"]', LISTING_LINKS_SCRIPT)
                finally:
                    page.close()
        except PlaywrightError as e:
            raise RenderError(listing_url, f"Browser render failed: {e}") from e

    def render_item(self, item_url: str) -> Dict[str, Any]:
        """
        Render one item page in its own browser session.

        Args:
            item_url: FareHarbor item page URL

        Returns:
            Dict with title, metaImage, jsonLd, images, availabilityUrl,
            dateLabel and bodyText as read from the live DOM

        Raises:
            RenderError: If the browser fails to load or evaluate the page
        """
        try:
            with self.session() as context:
                page = self._open(context, item_url)
                try:
                    try:
                        page.wait_for_function(TITLE_RESOLVED_SCRIPT, timeout=self.TITLE_TIMEOUT_MS)
                    except PlaywrightTimeoutError:
                        logger.debug(f"Title placeholder never resolved on {item_url}; continuing")
                    return page.evaluate(ITEM_FACTS_SCRIPT, HERO_SELECTORS)
                finally:
                    page.close()
        except PlaywrightError as e:
            raise RenderError(item_url, f"Browser render failed: {e}") from e
