"""Menu revealer - handle the optional "Show menu" / confirm-area interaction."""
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError, Page

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


class MenuRevealer:
    """Brand pages hide the menu behind a button and sometimes an area prompt."""

    SHOW_MENU_SELECTORS = [
        '[data-testid="header-show-menu-btn"]',
        'button:has(svg[data-icon="chevron-right"])',
    ]

    AREA_INPUT_SELECTORS = [
        "#search-box-map-first",
        'input[placeholder*="Search for area"]',
    ]

    def __init__(self, page: Page, settings: Optional[Settings] = None):
        self.page = page
        self.settings = settings or get_settings()

    async def reveal(self) -> StepResult:
        s = self.settings
        show = await resolve_first(self.page, chain(self.SHOW_MENU_SELECTORS, s.probe_timeout))
        if not show:
            logger.info("No show-menu control; assuming menu is visible")
            return StepResult("reveal_menu", StepOutcome.SKIPPED, "no show-menu control")

        if not await click_quietly(show.handle, "show menu"):
            return StepResult("reveal_menu", StepOutcome.FAILED, "show-menu click failed")
        await pause(self.page, 1000)

        area = await resolve_first(self.page, chain(self.AREA_INPUT_SELECTORS, s.probe_timeout))
        if not area:
            return StepResult("reveal_menu", StepOutcome.DONE)

        logger.info("Confirming delivery area %r", s.fallback_area)
        try:
            await fill_and_submit(self.page, area.handle, s.fallback_area, s.typing_delay, settle_ms=1200)
        except PlaywrightError as exc:
            logger.info("Could not type fallback area: %s", exc)
            return StepResult("reveal_menu", StepOutcome.FAILED, "area confirmation failed")
        await pause(self.page, 1000)

        again = await resolve_first(self.page, chain(self.SHOW_MENU_SELECTORS[:1], s.probe_timeout))
        if again:
            await click_quietly(again.handle, "show menu (after area)")
            await pause(self.page, 2000)
        return StepResult("reveal_menu", StepOutcome.DONE, f"area confirmed as {s.fallback_area}")
