"""Unit tests for menu HTML parsing (no browser)."""
import asyncio

import pytest

from conftest import make_page
from menuscout.common.schemas import MenuItem
from menuscout.crawler.menu_extractor import (
    MenuExtractor,
    dedupe_items,
    extract_menu_items,
    normalize_price,
)


def _item(name="Zaatar Manoushe", desc="Thyme and olive oil", prices=("OMR 1.200",), old=()):
    """Render one item container the way the site lays it out."""
    price_html = "".join(
        f'<div data-testid="old-price"><span class="currency">{p}</span></div>' for p in old
    ) + "".join(f'<span class="currency">{p}</span>' for p in prices)
    name_html = f'<div class="f-15">{name}</div>' if name is not None else ""
    return (
        '<div class="clickable item">'
        f'<div class="item-name">{name_html}<div class="f-12 description">{desc}</div></div>'
        f'<div class="text-right price-rating">{price_html}</div>'
        "</div>"
    )


def _category(*items, open_=True):
    state = "content open" if open_ else "content"
    return f'<div data-testid="menu-category"><div class="{state}">{"".join(items)}</div></div>'


def _page(*blocks):
    return f"<html><body>{''.join(blocks)}</body></html>"


# ------------------------------------------------------------------
# normalize_price
# ------------------------------------------------------------------

class TestNormalizePrice:

    @pytest.mark.parametrize("raw,expected", [
        ("OMR 2.500", "2.500"),
        ("  1.200 ", "1.200"),
        ("3", "3"),
        ("4,750", "4,750"),
        ("R.O. 2.500", "2.500"),
        ("2.500 O.R.", "2.500"),
        ("OMR. 1.200", "1.200"),
    ])
    def test_strips_currency(self, raw, expected):
        assert normalize_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "Free", "1.2.3", "OMR", "OMR 1.200 OMR 0.900"])
    def test_rejects_non_numeric(self, raw):
        assert normalize_price(raw) is None


# ------------------------------------------------------------------
# extract_menu_items
# ------------------------------------------------------------------

class TestExtractMenuItems:

    def test_parses_open_categories(self):
        html = _page(_category(
            _item("Zaatar Manoushe", prices=("OMR 1.200",)),
            _item("Cheese Manoushe", desc="Akkawi", prices=("OMR 1.500",)),
        ))
        items = extract_menu_items(html)
        assert [i.name for i in items] == ["Zaatar Manoushe", "Cheese Manoushe"]
        assert items[1].description == "Akkawi"
        assert items[1].price == "1.500"

    def test_skips_old_price(self):
        html = _page(_category(_item("Falafel Wrap", prices=("OMR 0.900",), old=("OMR 1.100",))))
        items = extract_menu_items(html)
        assert items[0].price == "0.900"

    def test_uses_last_price_when_all_are_old(self):
        html = _page(_category(_item("Hummus", prices=(), old=("OMR 1.100", "OMR 0.800"))))
        assert extract_menu_items(html)[0].price == "0.800"

    def test_discards_invalid_price(self):
        html = _page(_category(
            _item("Water", prices=("Free",)),
            _item("Ayran", prices=("OMR 0.400",)),
        ))
        assert [i.name for i in extract_menu_items(html)] == ["Ayran"]

    def test_dotted_currency_label(self):
        html = _page(_category(_item("Mixed Grill", prices=("R.O. 4.500",))))
        assert extract_menu_items(html)[0].price == "4.500"

    def test_skips_container_without_name(self):
        html = _page(_category(_item(name=None), _item("Labneh")))
        assert [i.name for i in extract_menu_items(html)] == ["Labneh"]

    def test_missing_description_is_empty(self):
        html = _page(_category(_item("Tea", desc="")))
        assert extract_menu_items(html)[0].description == ""

    def test_closed_categories_ignored_when_open_ones_have_items(self):
        html = _page(
            _category(_item("Open Item")),
            _category(_item("Closed Item"), open_=False),
        )
        assert [i.name for i in extract_menu_items(html)] == ["Open Item"]

    def test_flat_fallback_when_no_categories(self):
        html = _page(_item("Shawarma", prices=("OMR 1.000",)), _item("Fries", prices=("OMR 0.500",)))
        assert [i.name for i in extract_menu_items(html)] == ["Shawarma", "Fries"]

    def test_flat_fallback_when_categories_yield_nothing(self):
        html = _page(_category(_item("Hidden"), open_=False))
        assert [i.name for i in extract_menu_items(html)] == ["Hidden"]

    def test_dedupes_case_insensitively_keeping_first(self):
        html = _page(_category(
            _item("Kebab", desc="first", prices=("OMR 2.000",)),
            _item("Soup", prices=("OMR 1.000",)),
            _item("KEBAB", desc="second", prices=("OMR 2.000",)),
            _item("Salad", prices=("OMR 1.500",)),
        ))
        items = extract_menu_items(html)
        assert [i.name for i in items] == ["Kebab", "Soup", "Salad"]
        assert items[0].description == "first"

    def test_same_name_different_price_kept(self):
        html = _page(_category(
            _item("Juice", prices=("OMR 1.000",)),
            _item("Juice", prices=("OMR 1.500",)),
        ))
        assert len(extract_menu_items(html)) == 2

    def test_empty_page(self):
        assert extract_menu_items("<html><body><p>Closed</p></body></html>") == []


class TestDedupeItems:

    def test_preserves_order(self):
        a = MenuItem(name="A", price="1")
        b = MenuItem(name="B", price="2")
        a2 = MenuItem(name="a ", description="dup", price="1")
        c = MenuItem(name="C", price="3")
        assert dedupe_items([a, b, a2, c]) == [a, b, c]


# ------------------------------------------------------------------
# MenuExtractor (page wrapper)
# ------------------------------------------------------------------

class TestMenuExtractor:

    def test_parses_page_content_even_when_categories_never_appear(self, settings):
        page = make_page()
        page.content.return_value = _page(_item("Mandi", prices=("OMR 3.000",)))
        items = asyncio.run(MenuExtractor(page, settings).extract())
        assert [i.name for i in items] == ["Mandi"]
        page.content.assert_awaited_once()
