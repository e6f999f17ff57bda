"""LangGraph workflow for one menu extraction.

The graph is strictly linear; each node is one UI stage. The Playwright page
and settings travel in ``config["configurable"]`` so concurrent jobs never
share a page.
"""
import logging
import operator
import time
from typing import Annotated, Optional, TypedDict

from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, END
from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from menuscout.common.errors import ExtractionEmptyResult
from menuscout.common.schemas import MenuItem, ScrapeResult
from menuscout.config import Settings, get_settings
from menuscout.crawler.browser import SessionFactory, browser_session
from menuscout.crawler.location import LocationResolver, dismiss_consent
from menuscout.crawler.menu_extractor import MenuExtractor
from menuscout.crawler.menu_revealer import MenuRevealer
from menuscout.crawler.restaurant_locator import RestaurantLocator
from menuscout.crawler.selectors import StepOutcome, StepResult, pause


logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Workflow state
# ---------------------------------------------------------------------------

class MenuState(TypedDict, total=False):
    """State for the menu workflow."""
    restaurant_query: str

    # One entry per stage, in execution order
    steps: Annotated[list[StepResult], operator.add]

    chosen_link: Optional[str]
    menu_items: list[MenuItem]


def _runtime(config: RunnableConfig) -> tuple[Page, Settings]:
    """Return the page and settings for this run.  Raises if not provided."""
    configurable = (config or {}).get("configurable", {})
    page = configurable.get("page")
    if page is None:
        raise RuntimeError("No browser page in workflow config – use scrape_menu()")
    return page, configurable.get("settings") or get_settings()


# ---------------------------------------------------------------------------
# Node implementations
# ---------------------------------------------------------------------------

async def open_start_page_node(state: MenuState, config: RunnableConfig) -> dict:
    """Load the start URL and clear any consent banner."""
    page, settings = _runtime(config)
    logger.info("Navigating to %s (timeout=%dms)", settings.start_url, settings.browser_timeout)
    steps: list[StepResult] = []
    try:
        await page.goto(settings.start_url, wait_until="domcontentloaded",
                        timeout=settings.browser_timeout)
        steps.append(StepResult("open_start_page", StepOutcome.DONE))
    except PlaywrightTimeout:
        # SPA shells often never settle; later steps check for their own elements
        logger.warning("Start page load timed out; continuing")
        steps.append(StepResult("open_start_page", StepOutcome.FAILED, "load timed out"))
    await pause(page, 2000)
    steps.append(await dismiss_consent(page, settings))
    return {"steps": steps}


async def resolve_location_node(state: MenuState, config: RunnableConfig) -> dict:
    page, settings = _runtime(config)
    result = await LocationResolver(page, settings).resolve()
    return {"steps": [result]}


async def locate_restaurant_node(state: MenuState, config: RunnableConfig) -> dict:
    page, settings = _runtime(config)
    chosen, result = await RestaurantLocator(page, settings).locate(state["restaurant_query"])
    return {"steps": [result], "chosen_link": chosen.href}


async def reveal_menu_node(state: MenuState, config: RunnableConfig) -> dict:
    page, settings = _runtime(config)
    result = await MenuRevealer(page, settings).reveal()
    return {"steps": [result]}


async def extract_menu_node(state: MenuState, config: RunnableConfig) -> dict:
    page, settings = _runtime(config)
    items = await MenuExtractor(page, settings).extract()
    outcome = StepOutcome.DONE if items else StepOutcome.FAILED
    return {
        "steps": [StepResult("extract_menu", outcome, f"{len(items)} items")],
        "menu_items": items,
    }


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def create_menu_workflow() -> StateGraph:
    """Create the LangGraph menu workflow."""

    workflow = StateGraph(MenuState)

    # Nodes
    workflow.add_node("open_start_page", open_start_page_node)
    workflow.add_node("resolve_location", resolve_location_node)
    workflow.add_node("locate_restaurant", locate_restaurant_node)
    workflow.add_node("reveal_menu", reveal_menu_node)
    workflow.add_node("extract_menu", extract_menu_node)

    # Entry
    workflow.set_entry_point("open_start_page")

    # Edges
    workflow.add_edge("open_start_page", "resolve_location")
    workflow.add_edge("resolve_location", "locate_restaurant")
    workflow.add_edge("locate_restaurant", "reveal_menu")
    workflow.add_edge("reveal_menu", "extract_menu")
    workflow.add_edge("extract_menu", END)

    return workflow


# ---------------------------------------------------------------------------
# Public entry-point
# ---------------------------------------------------------------------------

async def scrape_menu(
    restaurant_query: str,
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
) -> ScrapeResult:
    """
    Run the full pipeline for one restaurant.

    A fresh browser session is acquired for this call and closed before
    returning or raising.

    Raises
    ------
    NavigationError, RestaurantNotFoundError:
        A required step could not be completed.
    ExtractionEmptyResult:
        Navigation succeeded but no menu items were found; ``exc.result``
        holds the empty ``ScrapeResult``.
    """
    settings = settings or get_settings()
    app = create_menu_workflow().compile()

    start = time.time()
    async with browser_session(settings, acquire=session_factory) as session:
        final = await app.ainvoke(
            {"restaurant_query": restaurant_query, "steps": []},
            config={"configurable": {"page": session.page, "settings": settings}},
        )

    logger.info(
        "Pipeline for %r finished in %.1fs: %s",
        restaurant_query,
        time.time() - start,
        ", ".join(str(s) for s in final.get("steps", [])),
    )
    result = ScrapeResult(
        restaurant=restaurant_query,
        source=settings.source_name,
        menu_items=final.get("menu_items") or [],
    )
    if not result.menu_items:
        raise ExtractionEmptyResult(result)
    return result
