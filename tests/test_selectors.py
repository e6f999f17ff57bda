"""Tests for ordered selector resolution."""
import asyncio
from unittest.mock import AsyncMock

from playwright.async_api import Error as PlaywrightError

from conftest import make_handle, make_page
from menuscout.crawler.selectors import (
    Candidate,
    StepOutcome,
    StepResult,
    chain,
    click_quietly,
    resolve_first,
)


class TestResolveFirst:

    def test_returns_first_present_in_order(self):
        second, third = make_handle(), make_handle()
        page = make_page({"#b": second, "#c": third})
        found = asyncio.run(resolve_first(page, chain(["#a", "#b", "#c"], 50)))
        assert found.handle is second
        assert found.candidate.selector == "#b"

    def test_each_candidate_gets_its_own_timeout(self):
        page = make_page()
        candidates = [Candidate("#a", 100), Candidate("#b", 250, "attached")]
        assert asyncio.run(resolve_first(page, candidates)) is None
        calls = page.wait_for_selector.await_args_list
        assert calls[0].kwargs == {"timeout": 100, "state": "visible"}
        assert calls[1].kwargs == {"timeout": 250, "state": "attached"}

    def test_playwright_errors_fall_through(self):
        handle = make_handle()
        page = make_page()
        page.wait_for_selector = AsyncMock(side_effect=[PlaywrightError("detached"), handle])
        found = asyncio.run(resolve_first(page, chain(["#a", "#b"], 10)))
        assert found.handle is handle

    def test_empty_list(self):
        assert asyncio.run(resolve_first(make_page(), [])) is None


class TestClickQuietly:

    def test_reports_failure(self):
        handle = make_handle()
        handle.click.side_effect = PlaywrightError("element is not visible")
        assert asyncio.run(click_quietly(handle, "button")) is False

    def test_reports_success(self):
        assert asyncio.run(click_quietly(make_handle(), "button")) is True


def test_step_result_str():
    assert str(StepResult("reveal_menu", StepOutcome.SKIPPED)) == "reveal_menu=skipped"
    assert str(StepResult("extract_menu", StepOutcome.DONE, "3 items")) == "extract_menu=done (3 items)"
