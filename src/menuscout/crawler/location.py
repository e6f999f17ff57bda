"""Location resolver - drive a city landing page to an area restaurant listing."""
import logging
import re
from typing import Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from menuscout.common.errors import NavigationError
from menuscout.config import Settings, get_settings
from menuscout.crawler.selectors import (
    StepOutcome,
    StepResult,
    chain,
    click_quietly,
    fill_and_submit,
    resolve_first,
)

logger = logging.getLogger(__name__)

CONSENT_SELECTORS = [
    'button:text-matches("accept|agree|consent|allow", "i")',
    'a:text-matches("accept|agree|consent|allow", "i")',
]


async def dismiss_consent(page: Page, settings: Optional[Settings] = None) -> StepResult:
    """Click a cookie/consent banner button if one is showing."""
    settings = settings or get_settings()
    found = await resolve_first(page, chain(CONSENT_SELECTORS, settings.probe_timeout))
    if not found:
        return StepResult("dismiss_consent", StepOutcome.SKIPPED)
    if await click_quietly(found.handle, "consent banner"):
        return StepResult("dismiss_consent", StepOutcome.DONE)
    return StepResult("dismiss_consent", StepOutcome.FAILED, "click failed")


class LocationResolver:
    """Enter the delivery area on the landing page and confirm it."""

    LOCATION_INPUT_SELECTORS = [
        "#search-box-map-first",
        'input[placeholder*="Search for area"]',
        'input[placeholder*="Search area"]',
        'input[type="text"]',
    ]

    CONFIRM_SELECTORS = [
        '[data-testid="letsgo-btn-mm3"]',
        "button:text-matches(\"let's go\", \"i\")",
    ]

    def __init__(self, page: Page, settings: Optional[Settings] = None):
        self.page = page
        self.settings = settings or get_settings()
        self.area_re = re.compile(self.settings.area_path_pattern, re.IGNORECASE)

    def is_area_listing(self, url: str) -> bool:
        return bool(self.area_re.search(url or ""))

    async def resolve(self) -> StepResult:
        """Leave the page on an area listing.

        Raises ``NavigationError`` when no location input can be found. A
        missing confirmation button or a slow redirect is tolerated; the
        restaurant search that follows re-checks the page state.
        """
        if self.is_area_listing(self.page.url):
            logger.info("Already on area listing %s", self.page.url)
            return StepResult("resolve_location", StepOutcome.SKIPPED, "already on area page")

        s = self.settings
        found = await resolve_first(self.page, chain(self.LOCATION_INPUT_SELECTORS, s.selector_timeout))
        if not found:
            raise NavigationError("location input not found")

        logger.info("Entering area %r via %s", s.area_text, found.candidate.selector)
        await fill_and_submit(self.page, found.handle, s.area_text, s.typing_delay, settle_ms=1200)

        confirm = await resolve_first(self.page, chain(self.CONFIRM_SELECTORS, s.probe_timeout))
        if confirm:
            await click_quietly(confirm.handle, "area confirmation")

        try:
            await self.page.wait_for_url(self.area_re, timeout=s.area_wait_timeout)
        except PlaywrightTimeout:
            logger.warning("Area listing URL not reached within %dms; continuing", s.area_wait_timeout)
            return StepResult("resolve_location", StepOutcome.DONE, "area url not confirmed")

        logger.info("Reached area listing %s", self.page.url)
        return StepResult("resolve_location", StepOutcome.DONE)
