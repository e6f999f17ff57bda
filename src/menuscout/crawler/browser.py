"""Per-job Playwright browser session.

A session owns one Chromium process and one page for the duration of a single
extraction. Sessions are never pooled: each job starts from a fresh browser so
state left behind by a previous navigation cannot leak into the next one.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from menuscout.config import Settings, get_settings

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1366, "height": 900}
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class BrowserSession:
    """Exclusive owner of a Playwright driver, browser, context and page."""

    def __init__(
        self,
        playwright: Any,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self.page = page
        self.closed = False

    @classmethod
    async def acquire(cls, settings: Optional[Settings] = None) -> "BrowserSession":
        """Launch a fresh browser and open one page.

        Anything started before a failure is torn down before re-raising.
        """
        settings = settings or get_settings()
        pw = await async_playwright().start()
        browser: Optional[Browser] = None
        try:
            logger.info("Launching browser (headless=%s) ...", settings.headless)
            browser = await pw.chromium.launch(headless=settings.headless, args=LAUNCH_ARGS)
            context = await browser.new_context(
                user_agent=USER_AGENT,
                viewport=VIEWPORT,
                extra_http_headers={"accept-language": "en-US,en;q=0.9"},
            )
            page = await context.new_page()
            page.set_default_timeout(settings.browser_timeout)
        except BaseException:
            # Includes cancellation by the job timeout while launching
            if browser is not None:
                await browser.close()
            await pw.stop()
            raise
        return cls(pw, browser, context, page)

    async def close(self) -> None:
        """Release page, context, browser and driver. Safe to call twice."""
        if self.closed:
            return
        self.closed = True
        for label, closer in (
            ("page", self.page.close),
            ("context", self._context.close),
            ("browser", self._browser.close),
            ("playwright", self._playwright.stop),
        ):
            try:
                await closer()
            except Exception as exc:
                logger.info("Ignoring error closing %s: %s", label, exc)


SessionFactory = Callable[[Settings], Awaitable[BrowserSession]]


@asynccontextmanager
async def browser_session(
    settings: Optional[Settings] = None,
    acquire: Optional[SessionFactory] = None,
) -> AsyncIterator[BrowserSession]:
    """Scoped acquisition: the session is closed on every exit path.

    ``acquire`` replaces ``BrowserSession.acquire`` (tests inject fakes here).
    """
    settings = settings or get_settings()
    session = await (acquire or BrowserSession.acquire)(settings)
    try:
        yield session
    finally:
        await session.close()
