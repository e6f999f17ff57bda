"""Restaurant locator - search the area listing and open the best matching restaurant."""
import logging
import re
import unicodedata
from urllib.parse import urljoin
from dataclasses import dataclass
from typing import Optional, Sequence

from playwright.async_api import (
    ElementHandle,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeout,
)

from menuscout.common.errors import NavigationError, RestaurantNotFoundError
from menuscout.config import Settings, get_settings
from menuscout.crawler.selectors import (
    StepOutcome,
    StepResult,
    chain,
    click_quietly,
    fill_and_submit,
    pause,
    resolve_first,
)

logger = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[^\w\s]|_")
_SPACE_RE = re.compile(r"\s+")


def normalize_name(text: Optional[str]) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace.

    ``"Café  Münoush!"`` -> ``"cafe munoush"``. Letters of non-Latin scripts
    are kept.
    """
    if not text:
        return ""
    nfkd = unicodedata.normalize("NFKD", text.lower())
    stripped = "".join(c for c in nfkd if not unicodedata.combining(c))
    stripped = _PUNCT_RE.sub(" ", stripped)
    return _SPACE_RE.sub(" ", stripped).strip()


def word_match_pattern(query: str) -> Optional[re.Pattern]:
    """Regex matching the normalized query as whole words, or ``None`` if empty."""
    tokens = normalize_name(query).split()
    if not tokens:
        return None
    return re.compile(r"\b" + r"\s+".join(re.escape(t) for t in tokens) + r"\b")


@dataclass(frozen=True)
class LinkCandidate:
    """A restaurant detail link as seen in the search results."""

    index: int
    href: str
    text: str = ""
    aria_label: str = ""

    @property
    def label(self) -> str:
        return (self.aria_label or self.text).strip()


def choose_link(candidates: Sequence[LinkCandidate], query: str) -> Optional[LinkCandidate]:
    """Pick the first candidate whose text or label contains the query as whole words.

    Falls back to the first candidate when nothing matches; ``None`` only when
    there are no candidates at all.
    """
    if not candidates:
        return None
    pattern = word_match_pattern(query)
    if pattern is not None:
        for cand in candidates:
            combined = f"{normalize_name(cand.text)} {normalize_name(cand.aria_label)}"
            if pattern.search(combined):
                return cand
    logger.info("No result matched %r; falling back to first link %r", query, candidates[0].label)
    return candidates[0]


class RestaurantLocator:
    """Search for a restaurant by name and open its page."""

    SEARCH_INPUT_SELECTORS = [
        'input[placeholder="Search restaurants"]',
        'input[placeholder*="Search restaurants"]',
        'input[type="search"]',
        'input[placeholder*="Search for area"]',
        'input[type="text"]',
    ]

    def __init__(self, page: Page, settings: Optional[Settings] = None):
        self.page = page
        self.settings = settings or get_settings()
        self.link_selector = f'a[href*="{self.settings.restaurant_path}"]'

    async def locate(self, restaurant_name: str) -> tuple[LinkCandidate, StepResult]:
        """Search, choose a result link and click through to the restaurant page."""
        s = self.settings
        found = await resolve_first(self.page, chain(self.SEARCH_INPUT_SELECTORS, s.selector_timeout))
        if not found:
            raise NavigationError("search input not found")

        logger.info("Searching for %r via %s", restaurant_name, found.candidate.selector)
        await fill_and_submit(self.page, found.handle, restaurant_name, s.typing_delay)
        await pause(self.page, 1200)

        try:
            await self.page.wait_for_selector(
                self.link_selector, timeout=s.results_wait_timeout, state="attached"
            )
        except PlaywrightTimeout:
            logger.warning("No restaurant links after %dms; matching over what is present",
                           s.results_wait_timeout)

        candidates, handles = await self.collect_links()
        if not candidates:
            # Results can be lazy-loaded below the fold
            await self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            await pause(self.page, 1000)
            candidates, handles = await self.collect_links()

        chosen = choose_link(candidates, restaurant_name)
        if chosen is None:
            raise RestaurantNotFoundError(restaurant_name)

        url = urljoin(s.site_base_url, chosen.href)
        logger.info("Opening restaurant %r (%s)", chosen.label, url)
        navigated = await self._open(handles[chosen.index])
        outcome = StepResult(
            "locate_restaurant",
            StepOutcome.DONE,
            url if navigated else f"{url} (navigation not confirmed)",
        )
        return chosen, outcome

    async def collect_links(self) -> tuple[list[LinkCandidate], list[ElementHandle]]:
        """Read href, text and aria-label of every restaurant detail link in DOM order."""
        candidates: list[LinkCandidate] = []
        handles: list[ElementHandle] = []
        for handle in await self.page.query_selector_all(self.link_selector):
            try:
                href = await handle.get_attribute("href") or ""
                if self.settings.restaurant_path not in href:
                    continue
                text = (await handle.text_content() or "").strip()
                aria = (await handle.get_attribute("aria-label") or "").strip()
            except PlaywrightError as exc:
                # Result cards re-render while we read them
                logger.debug("Skipping unreadable result link: %s", exc)
                continue
            candidates.append(LinkCandidate(len(candidates), href, text, aria))
            handles.append(handle)
        logger.debug("Restaurant links seen: %s", [c.label for c in candidates[:30]])
        return candidates, handles

    async def _open(self, handle: ElementHandle) -> bool:
        """Click a result link and wait for the URL to change. Returns False on timeout."""
        s = self.settings
        try:
            await handle.scroll_into_view_if_needed()
        except PlaywrightError as exc:
            logger.debug("scroll_into_view failed: %s", exc)
        await pause(self.page, 300)

        before = self.page.url
        if not await click_quietly(handle, "restaurant link"):
            return False
        try:
            await self.page.wait_for_url(
                lambda url: url != before,
                wait_until="domcontentloaded",
                timeout=s.navigation_timeout,
            )
        except PlaywrightTimeout:
            logger.warning("Navigation after click not confirmed within %dms", s.navigation_timeout)
            return False
        await pause(self.page, 2000)
        return True
