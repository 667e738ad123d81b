"""
Headless browser sessions.

Every extraction gets its own Chromium instance and context; nothing is
pooled or shared between requests. The browser is closed exactly once when
the ``async with`` block exits, whatever the reason (result, error, or the
task being cancelled because the client went away).
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Browser
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .config import ExtractionSettings, get_logger
from .errors import PageNavigationFailure, SessionTeardownFailure
from .spotify import SpotifyPlaylistPage

logger = get_logger("browser")


async def _close_browser(browser: Browser, playlist_id: str) -> None:
    # Must not replace an error that is already propagating
    try:
        await browser.close()
    except Exception as exc:
        failure = SessionTeardownFailure("Browser did not close cleanly", str(exc))
        logger.warning(f"[{playlist_id}] {failure}")
    else:
        logger.debug(f"[{playlist_id}] Browser closed")


@asynccontextmanager
async def open_playlist_page(
    playlist_id: str,
    settings: ExtractionSettings,
) -> AsyncIterator[SpotifyPlaylistPage]:
    """Launch Chromium, load the playlist page, and yield its adapter."""
    url = settings.playlist_url(playlist_id)
    logger.info(f"[{playlist_id}] Opening {url}")

    async with async_playwright() as pw:
        try:
            browser = await pw.chromium.launch(headless=settings.headless)
        except PlaywrightError as exc:
            raise PageNavigationFailure("Could not start the browser", str(exc)) from exc

        try:
            context = await browser.new_context(
                user_agent=settings.user_agent,
                viewport={"width": settings.viewport_width, "height": settings.viewport_height},
            )
            page = await context.new_page()
            try:
                await page.goto(url, timeout=settings.navigation_timeout_seconds * 1000)
            except PlaywrightError as exc:
                raise PageNavigationFailure(f"Could not load playlist {playlist_id}", str(exc)) from exc

            yield SpotifyPlaylistPage(page)
        finally:
            await _close_browser(browser, playlist_id)
