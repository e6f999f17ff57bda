"""Ordered, time-bounded selector candidates and step outcome records.

The target site does not publish a stable markup contract, so every UI
interaction is expressed as a list of ``Candidate`` locators tried in order.
``resolve_first`` is the single routine that evaluates such a list.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from playwright.async_api import (
    ElementHandle,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeout,
)

logger = logging.getLogger(__name__)


class Candidate(NamedTuple):
    """One locator strategy with its own wait bound."""

    selector: str
    timeout_ms: int
    state: str = "visible"


class Resolved(NamedTuple):
    candidate: Candidate
    handle: ElementHandle


class StepOutcome(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """What happened at one pipeline step.

    ``SKIPPED`` means the step had nothing to do (control absent, already on
    the right page); ``FAILED`` means it was attempted and did not succeed but
    the failure was not fatal to the job.
    """

    step: str
    outcome: StepOutcome
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.step}={self.outcome.value}"
        return f"{text} ({self.detail})" if self.detail else text


def chain(selectors: Iterable[str], timeout_ms: int, state: str = "visible") -> list[Candidate]:
    """Build a candidate list sharing one timeout."""
    return [Candidate(sel, timeout_ms, state) for sel in selectors]


async def resolve_first(page: Page, candidates: Iterable[Candidate]) -> Optional[Resolved]:
    """Return the first candidate that appears within its timeout, else ``None``."""
    for candidate in candidates:
        try:
            handle = await page.wait_for_selector(
                candidate.selector,
                timeout=candidate.timeout_ms,
                state=candidate.state,
            )
        except PlaywrightTimeout:
            logger.debug("Selector %r not found within %dms", candidate.selector, candidate.timeout_ms)
            continue
        except PlaywrightError as exc:
            logger.debug("Selector %r failed: %s", candidate.selector, exc)
            continue
        if handle is not None:
            logger.debug("Resolved selector %r", candidate.selector)
            return Resolved(candidate, handle)
    return None


async def pause(page: Page, ms: int) -> None:
    """Let client-side rendering settle."""
    await page.wait_for_timeout(ms)


async def fill_and_submit(
    page: Page,
    handle: ElementHandle,
    text: str,
    delay_ms: int = 20,
    settle_ms: int = 0,
) -> None:
    """Clear an input, type ``text`` key by key and press Enter."""
    await handle.click(click_count=3)
    await handle.fill("")
    await page.keyboard.type(text, delay=delay_ms)
    if settle_ms:
        await pause(page, settle_ms)
    await page.keyboard.press("Enter")


async def click_quietly(handle: ElementHandle, label: str) -> bool:
    """Click ``handle``; report failure instead of raising."""
    try:
        await handle.click()
        return True
    except PlaywrightError as exc:
        logger.info("Click on %s failed: %s", label, exc)
        return False
