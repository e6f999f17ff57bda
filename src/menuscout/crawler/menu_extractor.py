"""Menu extractor - parse the rendered restaurant menu into MenuItems."""
import logging
from typing import Iterable, Optional

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from menuscout.common.schemas import PRICE_RE, MenuItem
from menuscout.config import Settings, get_settings
from menuscout.crawler.selectors import pause

logger = logging.getLogger(__name__)

CATEGORY_SELECTOR = 'div[data-testid="menu-category"]'
OPEN_CONTENT_SELECTOR = ".content.open"
# Items carry no semantic marker; the "clickable" style class is the only
# consistent hook on the site.
ITEM_SELECTOR = 'div.clickable, div[class*="clickable"]'
NAME_SELECTOR = ".item-name .f-15"
DESCRIPTION_SELECTOR = ".item-name .f-12.description, .item-name .description"
PRICE_REGION_SELECTOR = ".text-right.price-rating"
PRICE_SELECTOR = ".currency"
OLD_PRICE_TESTID = "old-price"

def normalize_price(raw: Optional[str]) -> Optional[str]:
    """Return the single number in a price label, e.g. ``"R.O. 2.500"`` -> ``"2.500"``.

    Labels with no number or with more than one are rejected.
    """
    if not raw:
        return None
    numbers = PRICE_RE.findall(raw)
    if len(numbers) != 1:
        return None
    return numbers[0]


def _text(el: Optional[Tag]) -> str:
    return el.get_text(" ", strip=True) if el is not None else ""


def _is_old_price(el: Tag) -> bool:
    if el.get("data-testid") == OLD_PRICE_TESTID:
        return True
    return el.find_parent(attrs={"data-testid": OLD_PRICE_TESTID}) is not None


def pick_price(container: Tag) -> str:
    """Raw text of the current price inside an item container.

    Struck-through prices (inside ``data-testid="old-price"``) are skipped;
    when every price is marked old the last one is used.
    """
    region = container.select_one(PRICE_REGION_SELECTOR)
    if region is None:
        return ""
    prices = region.select(PRICE_SELECTOR)
    for el in prices:
        if not _is_old_price(el):
            return _text(el)
    return _text(prices[-1]) if prices else ""


def parse_item(container: Tag) -> Optional[MenuItem]:
    """Build a MenuItem from one item container, or ``None`` if it is not valid."""
    name = _text(container.select_one(NAME_SELECTOR))
    if not name:
        return None
    price = normalize_price(pick_price(container))
    if price is None:
        logger.debug("Discarding %r: no valid price", name)
        return None
    description = _text(container.select_one(DESCRIPTION_SELECTOR))
    return MenuItem(name=name, description=description, price=price)


def _parse_all(containers: Iterable[Tag]) -> list[MenuItem]:
    items = []
    for container in containers:
        item = parse_item(container)
        if item is not None:
            items.append(item)
    return items


def dedupe_items(items: Iterable[MenuItem]) -> list[MenuItem]:
    """Drop repeats of (lowercased name, price), keeping first-seen order."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for item in items:
        key = (item.name.lower().strip(), item.price)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def extract_menu_items(html: str) -> list[MenuItem]:
    """Extract menu items from a restaurant page.

    Walks the open section of every menu category first. If that yields
    nothing, falls back to every clickable container on the page.
    """
    soup = BeautifulSoup(html, "html.parser")

    items: list[MenuItem] = []
    categories = soup.select(CATEGORY_SELECTOR)
    for category in categories:
        content = category.select_one(OPEN_CONTENT_SELECTOR)
        if content is None:
            continue
        items.extend(_parse_all(content.select(ITEM_SELECTOR)))

    if not items:
        logger.info("Category pass found no items (%d categories); trying flat pass", len(categories))
        items = _parse_all(soup.select(ITEM_SELECTOR))

    unique = dedupe_items(items)
    logger.info("Extracted %d menu items (%d before dedupe)", len(unique), len(items))
    return unique


class MenuExtractor:
    """Wait for the menu to render, then parse it."""

    def __init__(self, page: Page, settings: Optional[Settings] = None):
        self.page = page
        self.settings = settings or get_settings()

    async def extract(self) -> list[MenuItem]:
        try:
            await self.page.wait_for_selector(
                CATEGORY_SELECTOR, timeout=self.settings.menu_wait_timeout, state="attached"
            )
        except PlaywrightTimeout:
            logger.warning("No menu categories after %dms; parsing page as is",
                           self.settings.menu_wait_timeout)
        await pause(self.page, 2000)
        html = await self.page.content()
        return extract_menu_items(html)
