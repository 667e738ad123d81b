"""
Spotify playlist page adapter.

open.spotify.com renders the track list as a virtualized grid: only a window
of rows exists in the DOM at a time and more are rendered as the grid is
scrolled. This module knows the page's markup; the engine only sees the
three PlaylistPage operations.

NOTE: the selectors below track Spotify's web player markup and break when it
changes. The title/artist lookups fall back to generic structure so small
changes degrade to "Unknown ..." values instead of empty output.
"""
from __future__ import annotations

import re
from typing import Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import get_logger
from .errors import ExtractionEvaluationFailure, ScrollInteractionFailure, SelectorTimeout
from .models import TrackCandidate

logger = get_logger("spotify")

ROW_SELECTOR = '[data-testid="tracklist-row"]'

_PLAYLIST_ID_RE = re.compile(r"playlist/([A-Za-z0-9]+)")
_BARE_ID_RE = re.compile(r"^[A-Za-z0-9]{16,32}$")

# Runs inside the page; one round-trip per pass
_READ_ROWS_SCRIPT = """
(rowSelector) => {
    const rows = Array.from(document.querySelectorAll(rowSelector));
    return rows.map(row => {
        const titleElement =
            row.querySelector('[data-testid="track-name"]') ||
            row.querySelector('a[href*="/track/"]') ||
            row.querySelector('div[dir="auto"].encore-text-body-medium');

        const artistElements = row.querySelectorAll('[data-testid="track-artist"], a[href*="/artist/"]');
        let artists = Array.from(artistElements)
            .map(el => (el.textContent || '').trim())
            .filter(Boolean);
        if (artists.length === 0) {
            const fallback = row.querySelector('span.encore-text-body-small');
            artists = [((fallback && fallback.textContent) || '').trim() || 'Unknown Artist'];
        }

        return {
            title: ((titleElement && titleElement.textContent) || '').trim() || 'Unknown Title',
            artists: [...new Set(artists)],
        };
    });
}
"""


def extract_playlist_id(url: str) -> str:
    """Pull the playlist id out of an open.spotify.com URL (or accept a bare id)."""
    url = (url or "").strip()
    m = _PLAYLIST_ID_RE.search(url)
    if m:
        return m.group(1)
    if _BARE_ID_RE.match(url):
        return url
    raise ValueError(f"Could not find playlist ID in URL: {url}")


class PlaylistPage(Protocol):
    """What the engine needs from a rendered playlist page."""

    async def wait_for_rows(self, timeout: float) -> None:
        ...

    async def read_rows(self) -> list[TrackCandidate]:
        ...

    async def advance(self, delta: int) -> None:
        ...


class SpotifyPlaylistPage:
    """PlaylistPage backed by a live Playwright page."""

    def __init__(self, page: Page, row_selector: str = ROW_SELECTOR):
        self.page = page
        self.row_selector = row_selector

    async def wait_for_rows(self, timeout: float) -> None:
        try:
            await self.page.wait_for_selector(self.row_selector, timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise SelectorTimeout(
                "Timeout waiting for tracks. The playlist might be private or the page structure has changed.",
                str(exc),
            ) from exc

    async def read_rows(self) -> list[TrackCandidate]:
        try:
            rows = await self.page.evaluate(_READ_ROWS_SCRIPT, self.row_selector)
        except PlaywrightError as exc:
            raise ExtractionEvaluationFailure("Could not read track rows", str(exc)) from exc
        return [TrackCandidate.from_row(r) for r in rows or []]

    async def advance(self, delta: int) -> None:
        """
        Scroll the track grid forward.

        Hovering the last rendered row first makes the wheel event land in the
        grid's own scroll container rather than the page body. If there is no
        row to hover, or hover/wheel fails, scroll the window instead.
        """
        rows = self.page.locator(self.row_selector)
        try:
            count = await rows.count()
            if count > 0:
                await rows.nth(count - 1).hover()
                await self.page.mouse.wheel(0, delta)
                return
            logger.debug("No rendered rows to anchor on, scrolling the page")
        except PlaywrightError as exc:
            logger.warning(f"Row hover/scroll failed, scrolling the page instead: {exc}")

        try:
            await self.page.evaluate("(dy) => window.scrollBy(0, dy)", delta)
        except PlaywrightError as exc:
            raise ScrollInteractionFailure("Page scroll failed", str(exc)) from exc
