"""Shared test fixtures for pytest."""
import os
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, patch

# Settings require a job store URL; tests never touch a real database.
os.environ.setdefault("MENUSCOUT_DATABASE_URL", "sqlite:///:memory:")

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from menuscout.common.models import Base
from menuscout.config import Settings


@pytest.fixture
def test_db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture
def test_session(test_db_engine):
    """Create a test database session."""
    SessionLocal = sessionmaker(bind=test_db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def job_db(tmp_path):
    """Point the job store at a throwaway SQLite file.

    A file rather than ``:memory:`` because the worker reaches the store from
    threads, and every thread would otherwise get its own empty database.
    Yields the session factory so tests can inspect or seed rows directly.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'jobs.db'}")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @contextmanager
    def _get_session():
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    with patch("menuscout.jobs.store.get_session", _get_session):
        yield SessionLocal
    engine.dispose()


@pytest.fixture
def settings():
    """Settings with short timeouts and no .env lookup."""
    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        start_url="https://www.talabat.com/oman/city/muscat",
        selector_timeout=10,
        probe_timeout=10,
        typing_delay=0,
        job_timeout_seconds=5,
        poll_interval_seconds=0.01,
    )


def make_handle(href=None, text=None, aria=None):
    """A fake Playwright ElementHandle."""
    handle = MagicMock()
    attrs = {"href": href, "aria-label": aria}
    handle.get_attribute = AsyncMock(side_effect=lambda name: attrs.get(name))
    handle.text_content = AsyncMock(return_value=text)
    handle.click = AsyncMock()
    handle.fill = AsyncMock()
    handle.scroll_into_view_if_needed = AsyncMock()
    return handle


def make_page(present=None, url="https://www.talabat.com/oman/city/muscat"):
    """A fake Playwright Page.

    ``present`` maps selectors to handles; ``wait_for_selector`` resolves those
    and times out for everything else.
    """
    present = present if present is not None else {}
    page = MagicMock()
    page.url = url

    async def wait_for_selector(selector, timeout=None, state=None):
        if selector in present:
            return present[selector]
        raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    page.wait_for_selector = AsyncMock(side_effect=wait_for_selector)
    page.wait_for_timeout = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.goto = AsyncMock()
    page.content = AsyncMock(return_value="<html></html>")
    page.evaluate = AsyncMock()
    page.query_selector_all = AsyncMock(return_value=[])
    page.keyboard.type = AsyncMock()
    page.keyboard.press = AsyncMock()
    return page
