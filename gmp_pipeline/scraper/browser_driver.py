"""Headless Chromium helpers for GMP source pages that render their tables in JS."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from gmp_pipeline import config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def with_browser(headless: Optional[bool] = None) -> AsyncIterator[Browser]:
    """Async context manager yielding a configured Chromium browser instance."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=config.PLAYWRIGHT_HEADLESS if headless is None else headless
        )
        try:
            yield browser
        finally:
            await browser.close()


@asynccontextmanager
async def with_context(browser: Browser) -> AsyncIterator[BrowserContext]:
    """Create a new browser context with project defaults applied."""
    context = await browser.new_context(
        user_agent=config.REQUEST_USER_AGENT,
        locale=config.PLAYWRIGHT_LOCALE,
        timezone_id=config.TZ_DISPLAY,
        viewport=config.PLAYWRIGHT_VIEWPORT,
    )
    try:
        yield context
    finally:
        await context.close()


async def new_page(context: BrowserContext) -> Page:
    page = await context.new_page()
    page.set_default_timeout(60_000)
    page.set_default_navigation_timeout(90_000)
    return page


async def wait_for_network_idle(page: Page, timeout: float = 30_000) -> None:
    """Wait for the network to be idle so late-loading tables are present."""
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout)
    except PlaywrightTimeoutError as exc:
        logger.debug(f"Network did not go idle ({exc}); waiting briefly instead")
        await asyncio.sleep(2)


async def fetch_rendered_html(url: str) -> str:
    """Load ``url`` in headless Chromium and return the rendered HTML."""
    async with with_browser() as browser:
        async with with_context(browser) as context:
            page = await new_page(context)
            logger.info(f"Rendering {url} in headless browser")
            await page.goto(url)
            await wait_for_network_idle(page)
            return await page.content()
